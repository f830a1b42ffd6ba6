from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_rates
from app.db.session import get_db
from app.schemas.product import ListFilters, ListOptions
from app.schemas.purchase import PurchaseAnalysis, PurchaseGroups
from app.services import costing
from app.services.batch import collapse_cart_to_batch, group_purchases
from app.services.listing import build_rows, load_catalog


router = APIRouter(prefix="/api/v1/purchases", tags=["purchases"])


@router.get("", response_model=PurchaseGroups)
async def get_purchases(
    rates: dict = Depends(get_rates),
    db: AsyncSession = Depends(get_db),
):
    products, extensions = await load_catalog(db)
    rows = build_rows(products, extensions, ListOptions(filters=ListFilters(purchased=True), rates=rates))
    return group_purchases(rows)


@router.post("/batches")
async def create_batch(db: AsyncSession = Depends(get_db)):
    result = await collapse_cart_to_batch(db)
    return {"success": True, **result.model_dump()}


@router.get("/analysis", response_model=PurchaseAnalysis)
async def get_analysis(
    fee_percent: Decimal = Decimal("0"),
    exclude_category: List[str] = Query(default=[]),
    rates: dict = Depends(get_rates),
    db: AsyncSession = Depends(get_db),
):
    products, extensions = await load_catalog(db)
    purchased = [extension for extension in extensions if extension.purchased]
    purchase_value = costing.total_purchase_value(purchased, rates)

    return PurchaseAnalysis(
        total_asset_value=costing.total_asset_value(products, costing.excluding_categories(exclude_category)),
        total_purchase_value=purchase_value,
        total_purchase_with_fee=costing.with_fee(purchase_value, fee_percent),
        fee_percent=fee_percent,
        unconverted_ids=costing.unconvertible_ids(purchased, rates),
        cart_count=sum(1 for extension in purchased if not extension.order_batch_id),
        batch_count=len({extension.order_batch_id for extension in purchased if extension.order_batch_id}),
        excluded_category=", ".join(exclude_category) or None,
    )
