import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, TransientIOError, ValidationError
from app.db.models import AuditLog, ProductType, PurchaseExtension, StoreProduct
from app.schemas.purchase import PurchaseCost

logger = logging.getLogger(__name__)


def normalize_supplier_names(names: Iterable[str]) -> list[str]:
    """Supplier tags are a set; they are stored sorted and deduplicated."""
    return sorted({name.strip() for name in names if name and name.strip()})


def supplier_label(names: Iterable[str]) -> str:
    return ", ".join(names)


def validate_cost(cost: PurchaseCost) -> None:
    if cost.package_count is None or cost.package_count < 1:
        raise ValidationError("Package count must be at least 1")
    if cost.units_per_package is None or cost.units_per_package < 1:
        raise ValidationError("Units per package must be at least 1")
    if cost.price is None or Decimal(cost.price) <= 0:
        raise ValidationError("Purchase price must be greater than 0")


def _apply_cost(extension: PurchaseExtension, cost: PurchaseCost) -> None:
    extension.purchase_package_count = cost.package_count
    extension.purchase_units_per_package = cost.units_per_package
    extension.purchase_price = cost.price
    extension.purchase_currency = cost.currency


async def _get_product(db: AsyncSession, external_id: int) -> StoreProduct:
    product = await db.get(StoreProduct, external_id)
    if product is None:
        raise NotFoundError(f"Product {external_id} not found")
    return product


async def get_extension(db: AsyncSession, external_id: int) -> Optional[PurchaseExtension]:
    return await db.get(PurchaseExtension, external_id)


async def _get_or_create_extension(db: AsyncSession, external_id: int) -> PurchaseExtension:
    await _get_product(db, external_id)
    extension = await db.get(PurchaseExtension, external_id)
    if extension is None:
        extension = PurchaseExtension(
            external_id=external_id,
            supplier_names=[],
            purchased=False,
            purchase_package_count=1,
        )
        db.add(extension)
    return extension


async def _save(db: AsyncSession, extension: PurchaseExtension, action: str, audit_data: dict) -> PurchaseExtension:
    extension.updated_at = datetime.utcnow()
    db.add(AuditLog(
        action=action,
        entity="purchase_extension",
        entity_id=extension.external_id,
        audit_data=audit_data,
    ))
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to save {action} for product {extension.external_id}: {str(e)}")
        raise TransientIOError(f"Could not save product {extension.external_id}, please retry")
    await db.refresh(extension)
    return extension


async def upsert_note(db: AsyncSession, external_id: int, text: Optional[str]) -> PurchaseExtension:
    extension = await _get_or_create_extension(db, external_id)
    extension.note = text or None
    return await _save(db, extension, "NOTE_UPDATE", {"note": extension.note})


async def upsert_suppliers(db: AsyncSession, external_id: int, names: Iterable[str]) -> PurchaseExtension:
    extension = await _get_or_create_extension(db, external_id)
    extension.supplier_names = normalize_supplier_names(names)
    return await _save(db, extension, "SUPPLIER_UPDATE", {"supplier_names": extension.supplier_names})


async def upsert_backup_location(db: AsyncSession, external_id: int, code: Optional[str]) -> PurchaseExtension:
    extension = await _get_or_create_extension(db, external_id)
    extension.backup_location = code.strip() if code and code.strip() else None
    return await _save(db, extension, "BACKUP_LOCATION_UPDATE", {"backup_location": extension.backup_location})


async def mark_purchased(db: AsyncSession, external_id: int, cost: PurchaseCost) -> PurchaseExtension:
    validate_cost(cost)
    product = await _get_product(db, external_id)
    if product.type == ProductType.VARIABLE:
        raise ValidationError("Variable products are purchased per variation")

    extension = await _get_or_create_extension(db, external_id)
    if extension.purchased and extension.order_batch_id:
        raise ValidationError(
            f"Product is already in order batch {extension.order_batch_id}; undo that purchase first"
        )
    _apply_cost(extension, cost)
    extension.purchased = True
    extension.purchased_at = datetime.utcnow()
    extension.order_batch_id = None

    logger.info(f"Product {external_id} marked purchased: {cost.package_count} x {cost.units_per_package} @ {cost.price} {cost.currency.value}")
    return await _save(db, extension, "MARK_PURCHASED", cost.model_dump(mode="json"))


async def unmark_purchased(db: AsyncSession, external_id: int) -> PurchaseExtension:
    extension = await _get_or_create_extension(db, external_id)
    previous_batch = extension.order_batch_id
    extension.purchased = False
    extension.purchased_at = None
    extension.order_batch_id = None

    logger.info(f"Product {external_id} unmarked purchased (batch was {previous_batch})")
    return await _save(db, extension, "UNMARK_PURCHASED", {"previous_batch": previous_batch})


async def update_cost(db: AsyncSession, external_id: int, cost: PurchaseCost) -> PurchaseExtension:
    validate_cost(cost)
    extension = await get_extension(db, external_id)
    if extension is None or not extension.purchased:
        raise ValidationError("Purchase data can only be edited on purchased products")

    _apply_cost(extension, cost)
    return await _save(db, extension, "COST_UPDATE", {**cost.model_dump(mode="json"), "batch": extension.order_batch_id})
