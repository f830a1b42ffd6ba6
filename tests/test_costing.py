import pytest
from decimal import Decimal
from types import SimpleNamespace

from app.core.exceptions import ValidationError
from app.db.models import Currency, ProductStatus, ProductType
from app.services import costing


def _entry(price, stock, type=ProductType.SIMPLE, status=ProductStatus.PUBLISH, categories=None):
    return SimpleNamespace(
        price=Decimal(price),
        stock_quantity=stock,
        type=type,
        status=status,
        categories=categories or [],
    )


def _purchase(external_id, price, currency, count=1, units=1, purchased=True):
    return SimpleNamespace(
        external_id=external_id,
        purchased=purchased,
        purchase_price=Decimal(price),
        purchase_currency=currency,
        purchase_package_count=count,
        purchase_units_per_package=units,
    )


def test_idr_needs_no_rate():
    assert costing.to_local(Decimal("15000"), Currency.IDR, {}) == Decimal("15000")


def test_foreign_currency_uses_rate():
    assert costing.to_local(Decimal("10"), Currency.CNY, {"CNY": Decimal("2200")}) == Decimal("22000")
    assert costing.to_local(Decimal("10"), "usd", {"USD": "16000"}) == Decimal("160000")


def test_missing_rate_is_unavailable_not_one():
    assert costing.to_local(Decimal("10"), Currency.USD, {"CNY": Decimal("2200")}) is None
    assert costing.to_local(Decimal("10"), Currency.USD, {"USD": Decimal("0")}) is None
    assert costing.to_local(Decimal("10"), Currency.CNY, None) is None


def test_per_piece_cost():
    assert costing.per_piece_cost(2, 10, Decimal("1000")) == Decimal("100")
    assert costing.per_piece_cost(1, 1, Decimal("2500")) == Decimal("2500")


def test_per_piece_cost_rejects_zero_pieces():
    with pytest.raises(ValidationError):
        costing.per_piece_cost(1, 0, Decimal("1000"))


def test_margin_and_format():
    assert costing.margin(Decimal("150"), Decimal("100")) == Decimal("50")
    assert costing.format_margin(Decimal("1250")) == "+1,250"
    assert costing.format_margin(Decimal("-30")) == "-30"
    assert costing.format_margin(Decimal("0")) == "+0"
    assert costing.format_margin(None) == "—"


def test_with_fee():
    assert costing.with_fee(Decimal("1000"), Decimal("2.5")) == Decimal("1025")
    assert costing.with_fee(Decimal("1000"), 0) == Decimal("1000")


def test_total_asset_value_ignores_negative_stock():
    entries = [
        _entry("100", 5),
        _entry("50", -3),
        _entry("20", 2, type=ProductType.VARIATION),
    ]
    assert costing.total_asset_value(entries) == Decimal("540")


def test_total_asset_value_skips_parents_and_unpublished():
    entries = [
        _entry("100", 5, type=ProductType.VARIABLE),
        _entry("100", 5, status=ProductStatus.DRAFT),
        _entry("10", 1),
    ]
    assert costing.total_asset_value(entries) == Decimal("10")


def test_total_asset_value_excluding_category():
    entries = [
        _entry("100", 1, categories=[{"id": 1, "name": "Samples"}]),
        _entry("10", 1, categories=[{"id": 2, "name": "Toys"}]),
    ]
    include = costing.excluding_categories(["samples"])
    assert costing.total_asset_value(entries, include) == Decimal("10")


def test_total_purchase_value_skips_unconvertible_rows():
    extensions = [
        _purchase(1, "1000", Currency.IDR, count=2, units=3),
        _purchase(2, "10", Currency.CNY, count=1, units=2),
        _purchase(3, "5", Currency.USD),
        _purchase(4, "99999", Currency.IDR, purchased=False),
    ]
    rates = {"CNY": Decimal("2000")}

    assert costing.total_purchase_value(extensions, rates) == Decimal("6000") + Decimal("40000")
    assert costing.unconvertible_ids(extensions, rates) == [3]


def test_row_per_piece_cost_converts_first():
    extension = _purchase(1, "20", Currency.CNY, count=2, units=10)
    assert costing.row_per_piece_cost(extension, {"CNY": Decimal("2000")}) == Decimal("4000")
    assert costing.row_per_piece_cost(extension, {}) is None
