from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from app.core.catalog_client import WooCommerceClient, get_catalog_client
from app.db.session import get_db
from app.services.sync import sync_catalog, sync_one

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/sync", tags=["sync"])


@router.post("/products")
async def sync_products(
    db: AsyncSession = Depends(get_db),
    client: WooCommerceClient = Depends(get_catalog_client),
):
    logger.info("Catalog sync requested")
    result = await sync_catalog(db, client)
    return {
        "success": True,
        "partial": result.partial,
        **result.model_dump(),
    }


@router.post("/products/{external_id}")
async def sync_product(
    external_id: int,
    parent_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    client: WooCommerceClient = Depends(get_catalog_client),
):
    product = await sync_one(db, external_id, parent_id, client)
    return {"success": True, "product": product}
