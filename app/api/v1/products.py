from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_list_options
from app.db.session import get_db
from app.schemas.product import (
    BackupLocationUpdate,
    ExtensionResponse,
    ListOptions,
    NoteUpdate,
    SuppliersUpdate,
)
from app.schemas.purchase import PurchaseCost
from app.services import purchase
from app.services.listing import list_rows, load_catalog, low_stock_rows


router = APIRouter(prefix="/api/v1/products", tags=["products"])


def _extension_result(extension) -> dict:
    return {"success": True, "extension": ExtensionResponse.model_validate(extension)}


@router.get("")
async def list_products(
    options: ListOptions = Depends(get_list_options),
    db: AsyncSession = Depends(get_db),
):
    rows = await list_rows(db, options)
    return {"items": rows, "total": len(rows)}


@router.get("/low-stock")
async def list_low_stock(
    options: ListOptions = Depends(get_list_options),
    db: AsyncSession = Depends(get_db),
):
    products, extensions = await load_catalog(db)
    rows = low_stock_rows(products, extensions, options)
    return {"items": rows, "total": len(rows)}


@router.put("/{external_id}/note")
async def set_note(external_id: int, data: NoteUpdate, db: AsyncSession = Depends(get_db)):
    return _extension_result(await purchase.upsert_note(db, external_id, data.note))


@router.put("/{external_id}/suppliers")
async def set_suppliers(external_id: int, data: SuppliersUpdate, db: AsyncSession = Depends(get_db)):
    return _extension_result(await purchase.upsert_suppliers(db, external_id, data.supplier_names))


@router.put("/{external_id}/backup-location")
async def set_backup_location(external_id: int, data: BackupLocationUpdate, db: AsyncSession = Depends(get_db)):
    return _extension_result(await purchase.upsert_backup_location(db, external_id, data.backup_location))


@router.post("/{external_id}/purchase")
async def mark_purchased(external_id: int, cost: PurchaseCost, db: AsyncSession = Depends(get_db)):
    return _extension_result(await purchase.mark_purchased(db, external_id, cost))


@router.patch("/{external_id}/purchase")
async def update_cost(external_id: int, cost: PurchaseCost, db: AsyncSession = Depends(get_db)):
    return _extension_result(await purchase.update_cost(db, external_id, cost))


@router.delete("/{external_id}/purchase")
async def unmark_purchased(external_id: int, db: AsyncSession = Depends(get_db)):
    return _extension_result(await purchase.unmark_purchased(db, external_id))
