import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.services import purchase
from app.services.supplier import add_supplier, delete_supplier, list_suppliers, rename_supplier


@pytest.mark.asyncio
async def test_add_and_list_suppliers(db_session):
    await add_supplier(db_session, "Yiwu Market")
    await add_supplier(db_session, "  Alibaba ")

    suppliers = await list_suppliers(db_session)

    assert [supplier.name for supplier in suppliers] == ["Alibaba", "Yiwu Market"]


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["", "   ", "Guangzhou, Baiyun"])
async def test_invalid_supplier_names(db_session, name):
    with pytest.raises(ValidationError):
        await add_supplier(db_session, name)


@pytest.mark.asyncio
async def test_duplicate_supplier_rejected(db_session):
    await add_supplier(db_session, "Alibaba")
    other = await add_supplier(db_session, "Taobao")

    with pytest.raises(ValidationError):
        await add_supplier(db_session, "Alibaba")
    with pytest.raises(ValidationError):
        await rename_supplier(db_session, other.id, "Alibaba")


@pytest.mark.asyncio
async def test_rename_propagates_to_products(db_session, add_product):
    supplier = await add_supplier(db_session, "Yiwu")
    await add_product(1, "Mug")
    await add_product(2, "Bag")
    await purchase.upsert_suppliers(db_session, 1, ["Yiwu", "Alibaba"])
    await purchase.upsert_suppliers(db_session, 2, ["Alibaba"])

    renamed = await rename_supplier(db_session, supplier.id, "Yiwu Market")

    assert renamed.name == "Yiwu Market"
    first = await purchase.get_extension(db_session, 1)
    second = await purchase.get_extension(db_session, 2)
    assert first.supplier_names == ["Alibaba", "Yiwu Market"]
    assert second.supplier_names == ["Alibaba"]


@pytest.mark.asyncio
async def test_delete_untags_products(db_session, add_product):
    supplier = await add_supplier(db_session, "Taobao")
    await add_product(1, "Mug")
    await purchase.upsert_suppliers(db_session, 1, ["Taobao", "Alibaba"])

    updated = await delete_supplier(db_session, supplier.id)

    assert updated == 1
    extension = await purchase.get_extension(db_session, 1)
    assert extension.supplier_names == ["Alibaba"]
    assert await list_suppliers(db_session) == []


@pytest.mark.asyncio
async def test_unknown_supplier(db_session):
    with pytest.raises(NotFoundError):
        await rename_supplier(db_session, 42, "Nobody")
    with pytest.raises(NotFoundError):
        await delete_supplier(db_session, 42)
