import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.db.models import AuditLog, PurchaseExtension, StoreSupplier
from app.services.purchase import normalize_supplier_names

logger = logging.getLogger(__name__)


async def list_suppliers(db: AsyncSession) -> list[StoreSupplier]:
    result = await db.execute(select(StoreSupplier).order_by(StoreSupplier.name))
    return list(result.scalars().all())


async def _ensure_unique(db: AsyncSession, name: str, exclude_id: int = None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Supplier name is required")
    if "," in name:
        raise ValidationError("Supplier name cannot contain a comma")
    query = select(StoreSupplier).where(StoreSupplier.name == name)
    if exclude_id is not None:
        query = query.where(StoreSupplier.id != exclude_id)
    existing = await db.execute(query)
    if existing.scalar_one_or_none():
        raise ValidationError(f"Supplier {name} already exists")
    return name


async def _tagged_with(db: AsyncSession, name: str) -> list[PurchaseExtension]:
    # JSON containment differs per dialect; the extension table is small
    result = await db.execute(select(PurchaseExtension))
    return [extension for extension in result.scalars().all() if name in (extension.supplier_names or [])]


async def add_supplier(db: AsyncSession, name: str) -> StoreSupplier:
    name = await _ensure_unique(db, name)
    supplier = StoreSupplier(name=name)
    db.add(supplier)
    await db.commit()
    await db.refresh(supplier)
    return supplier


async def rename_supplier(db: AsyncSession, supplier_id: int, name: str) -> StoreSupplier:
    supplier = await db.get(StoreSupplier, supplier_id)
    if not supplier:
        raise NotFoundError("Supplier not found")

    name = await _ensure_unique(db, name, exclude_id=supplier_id)
    old_name = supplier.name
    supplier.name = name

    updated = 0
    if old_name != name:
        for extension in await _tagged_with(db, old_name):
            extension.supplier_names = normalize_supplier_names(
                name if n == old_name else n for n in extension.supplier_names
            )
            updated += 1

    db.add(AuditLog(
        action="SUPPLIER_RENAME",
        entity="supplier",
        entity_id=supplier_id,
        audit_data={"from": old_name, "to": name, "products": updated},
    ))
    await db.commit()
    await db.refresh(supplier)
    logger.info(f"Renamed supplier {old_name} to {name} on {updated} products")
    return supplier


async def delete_supplier(db: AsyncSession, supplier_id: int) -> int:
    supplier = await db.get(StoreSupplier, supplier_id)
    if not supplier:
        raise NotFoundError("Supplier not found")

    name = supplier.name
    await db.delete(supplier)

    updated = 0
    for extension in await _tagged_with(db, name):
        extension.supplier_names = [n for n in extension.supplier_names if n != name]
        updated += 1

    db.add(AuditLog(
        action="SUPPLIER_DELETE",
        entity="supplier",
        entity_id=supplier_id,
        audit_data={"name": name, "products": updated},
    ))
    await db.commit()
    logger.info(f"Deleted supplier {name}, untagged {updated} products")
    return updated
