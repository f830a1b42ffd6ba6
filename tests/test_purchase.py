import pytest
from decimal import Decimal
from sqlalchemy import select

from app.core.exceptions import NotFoundError, ValidationError
from app.db.models import AuditLog, Currency, ProductType, PurchaseExtension
from app.schemas.purchase import PurchaseCost
from app.services import purchase
from app.services.batch import collapse_cart_to_batch


def _cost(units=10, price="1000", count=2, currency=Currency.IDR):
    return PurchaseCost(package_count=count, units_per_package=units, price=Decimal(price), currency=currency)


@pytest.mark.asyncio
async def test_mark_purchased_records_cost(db_session, add_product):
    await add_product(501, "Keychain")

    extension = await purchase.mark_purchased(db_session, 501, _cost(currency=Currency.CNY, price="12.50"))

    assert extension.purchased is True
    assert extension.purchased_at is not None
    assert extension.order_batch_id is None
    assert extension.purchase_package_count == 2
    assert extension.purchase_units_per_package == 10
    assert extension.purchase_price == Decimal("12.50")
    assert extension.purchase_currency == Currency.CNY


@pytest.mark.asyncio
@pytest.mark.parametrize("cost", [
    PurchaseCost(package_count=1, units_per_package=0, price=Decimal("1000"), currency=Currency.IDR),
    PurchaseCost(package_count=0, units_per_package=5, price=Decimal("1000"), currency=Currency.IDR),
    PurchaseCost(package_count=1, units_per_package=5, price=Decimal("0"), currency=Currency.IDR),
    PurchaseCost(package_count=1, units_per_package=5, price=Decimal("-10"), currency=Currency.USD),
])
async def test_invalid_cost_leaves_product_unpurchased(db_session, add_product, cost):
    await add_product(502, "Sticker")

    with pytest.raises(ValidationError):
        await purchase.mark_purchased(db_session, 502, cost)

    extension = await purchase.get_extension(db_session, 502)
    assert extension is None or extension.purchased is False


@pytest.mark.asyncio
async def test_mark_purchased_unknown_product(db_session):
    with pytest.raises(NotFoundError):
        await purchase.mark_purchased(db_session, 404, _cost())


@pytest.mark.asyncio
async def test_variable_parent_cannot_be_purchased(db_session, add_product):
    await add_product(600, "Tote Bag", type=ProductType.VARIABLE)

    with pytest.raises(ValidationError):
        await purchase.mark_purchased(db_session, 600, _cost())


@pytest.mark.asyncio
async def test_batched_item_must_be_unmarked_before_repurchase(db_session, add_product):
    await add_product(503, "Pin")
    await purchase.mark_purchased(db_session, 503, _cost())
    await collapse_cart_to_batch(db_session)

    with pytest.raises(ValidationError):
        await purchase.mark_purchased(db_session, 503, _cost(units=1))

    extension = await purchase.get_extension(db_session, 503)
    assert extension.order_batch_id is not None
    assert extension.purchase_units_per_package == 10


@pytest.mark.asyncio
async def test_unmark_clears_batch(db_session, add_product):
    await add_product(504, "Patch")
    await purchase.mark_purchased(db_session, 504, _cost())
    await collapse_cart_to_batch(db_session)

    extension = await purchase.unmark_purchased(db_session, 504)

    assert extension.purchased is False
    assert extension.purchased_at is None
    assert extension.order_batch_id is None


@pytest.mark.asyncio
async def test_update_cost_requires_purchased(db_session, add_product):
    await add_product(505, "Badge")

    with pytest.raises(ValidationError):
        await purchase.update_cost(db_session, 505, _cost())

    await purchase.upsert_note(db_session, 505, "check colour")
    with pytest.raises(ValidationError):
        await purchase.update_cost(db_session, 505, _cost())


@pytest.mark.asyncio
async def test_update_cost_keeps_batch(db_session, add_product):
    await add_product(506, "Lanyard")
    await purchase.mark_purchased(db_session, 506, _cost())
    batch = await collapse_cart_to_batch(db_session)

    extension = await purchase.update_cost(db_session, 506, _cost(units=12, price="900", currency=Currency.USD))

    assert extension.order_batch_id == batch.batch_id
    assert extension.purchase_units_per_package == 12
    assert extension.purchase_price == Decimal("900")
    assert extension.purchase_currency == Currency.USD


@pytest.mark.asyncio
async def test_unpurchased_rows_never_keep_a_batch(db_session, add_product):
    for external_id in (507, 508, 509):
        await add_product(external_id, f"Item {external_id}")
        await purchase.mark_purchased(db_session, external_id, _cost())
    await collapse_cart_to_batch(db_session)
    await purchase.unmark_purchased(db_session, 508)
    await purchase.mark_purchased(db_session, 508, _cost(units=3))
    await purchase.unmark_purchased(db_session, 509)
    await purchase.upsert_note(db_session, 509, "out of stock at supplier")

    result = await db_session.execute(select(PurchaseExtension))
    for extension in result.scalars().all():
        if not extension.purchased:
            assert extension.order_batch_id is None

    repurchased = await purchase.get_extension(db_session, 508)
    assert repurchased.purchased is True
    assert repurchased.order_batch_id is None


@pytest.mark.asyncio
async def test_local_fields_and_audit(db_session, add_product):
    await add_product(510, "Poster")

    await purchase.upsert_suppliers(db_session, 510, ["Yiwu Market", " Alibaba ", "Yiwu Market", ""])
    await purchase.upsert_backup_location(db_session, 510, "  R3-B ")
    extension = await purchase.upsert_note(db_session, 510, "")

    assert extension.supplier_names == ["Alibaba", "Yiwu Market"]
    assert extension.backup_location == "R3-B"
    assert extension.note is None
    assert extension.purchased is False

    audit = await db_session.execute(select(AuditLog.action).where(AuditLog.entity_id == 510).order_by(AuditLog.id))
    assert audit.scalars().all() == ["SUPPLIER_UPDATE", "BACKUP_LOCATION_UPDATE", "NOTE_UPDATE"]


@pytest.mark.asyncio
async def test_local_fields_need_mirrored_product(db_session):
    with pytest.raises(NotFoundError):
        await purchase.upsert_note(db_session, 777, "orphan")
