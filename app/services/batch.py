"""Cart → dated order batch transition.

The cart is every purchased extension without an ``order_batch_id``. A
collapse moves all of them into one new batch inside a single transaction.
"""
import logging
from datetime import date, datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NoOpError, TransientIOError
from app.db.models import AuditLog, PurchaseExtension
from app.schemas.purchase import BatchResult, OrderBatchGroup, PurchaseGroups

logger = logging.getLogger(__name__)


def store_today() -> date:
    return datetime.now(ZoneInfo(settings.STORE_TIMEZONE)).date()


def batch_sort_key(batch_id: str) -> tuple[str, int]:
    """``2026-02-27`` sorts before ``2026-02-27-2``, which sorts before ``2026-02-27-10``."""
    day, seq = batch_id[:10], batch_id[11:]
    return day, int(seq) if seq.isdigit() else 1


def next_batch_id(day: date, existing: Iterable[str]) -> str:
    base = day.isoformat()
    taken = {batch_id for batch_id in existing if batch_id and batch_id[:10] == base}
    if base not in taken:
        return base
    seq = 2
    while f"{base}-{seq}" in taken:
        seq += 1
    return f"{base}-{seq}"


async def list_batch_ids(db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(PurchaseExtension.order_batch_id)
        .where(PurchaseExtension.order_batch_id.is_not(None))
        .distinct()
    )
    return sorted((row[0] for row in result.all()), key=batch_sort_key, reverse=True)


async def _used_batch_ids(db: AsyncSession) -> set[str]:
    # Batches whose items were all unmarked only survive in the audit trail
    used = set(await list_batch_ids(db))
    result = await db.execute(select(AuditLog.audit_data).where(AuditLog.action == "ORDER_BATCH"))
    used.update(data.get("batch_id") for data in result.scalars().all() if data)
    return used


async def get_cart(db: AsyncSession) -> list[PurchaseExtension]:
    result = await db.execute(
        select(PurchaseExtension)
        .where(
            PurchaseExtension.purchased.is_(True),
            PurchaseExtension.order_batch_id.is_(None),
        )
        .order_by(PurchaseExtension.external_id)
    )
    return list(result.scalars().all())


async def collapse_cart_to_batch(db: AsyncSession, today: Optional[date] = None) -> BatchResult:
    cart = await get_cart(db)
    if not cart:
        raise NoOpError("No items in the cart to order")

    batch_id = next_batch_id(today or store_today(), await _used_batch_ids(db))
    moved_ids = [extension.external_id for extension in cart]

    try:
        for extension in cart:
            extension.order_batch_id = batch_id
        db.add(AuditLog(
            action="ORDER_BATCH",
            entity="purchase_extension",
            audit_data={"batch_id": batch_id, "items": moved_ids},
        ))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Collapsing cart into batch {batch_id} failed, nothing moved: {str(e)}")
        raise TransientIOError("Could not create the order batch, please retry") from e
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Moved {len(moved_ids)} cart items into order batch {batch_id}")
    return BatchResult(batch_id=batch_id, moved_count=len(moved_ids))


def group_purchases(rows: Iterable) -> PurchaseGroups:
    """Splits purchased list rows into the cart and the batches, newest batch first."""
    cart = []
    batches: dict[str, list] = {}
    for row in rows:
        if not row.purchased:
            continue
        if row.order_batch_id:
            batches.setdefault(row.order_batch_id, []).append(row)
        else:
            cart.append(row)

    return PurchaseGroups(
        cart=cart,
        batches=[
            OrderBatchGroup(batch_id=batch_id, count=len(batches[batch_id]), rows=batches[batch_id])
            for batch_id in sorted(batches, key=batch_sort_key, reverse=True)
        ],
    )
