"""Currency conversion, per-piece cost and margin helpers.

Everything here is pure: rates are passed in by the caller on every call and
a missing rate means "conversion unavailable" (``None``), never an implicit 1.0.
"""
import logging
from decimal import Decimal
from typing import Callable, Iterable, Mapping, Optional, Union

from app.core.exceptions import ValidationError
from app.db.models import Currency, ProductStatus, ProductType

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]
Rates = Mapping[str, Number]


def _dec(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _code(currency) -> str:
    if isinstance(currency, Currency):
        return currency.value
    return str(currency).strip().upper()


def rate_for(currency, rates: Optional[Rates]) -> Optional[Decimal]:
    """Returns the local-currency rate for ``currency`` or None when unknown."""
    code = _code(currency)
    if code == Currency.IDR.value:
        return Decimal("1")
    for key, value in (rates or {}).items():
        if _code(key) == code and value is not None:
            rate = _dec(value)
            return rate if rate > 0 else None
    return None


def to_local(amount: Number, currency, rates: Optional[Rates]) -> Optional[Decimal]:
    rate = rate_for(currency, rates)
    if rate is None:
        return None
    return _dec(amount) * rate


def total_pieces(package_count: int, units_per_package: int) -> int:
    return package_count * units_per_package


def per_piece_cost(package_count: int, units_per_package: int, price_per_package_local: Number) -> Decimal:
    """Total spend divided by total pieces received."""
    pieces = total_pieces(package_count, units_per_package)
    if pieces <= 0:
        raise ValidationError("Package count and units per package must be at least 1")
    return (_dec(price_per_package_local) * package_count) / pieces


def margin(sell_price: Number, per_piece_cost_local: Number) -> Decimal:
    return _dec(sell_price) - _dec(per_piece_cost_local)


def format_margin(value: Optional[Decimal]) -> str:
    if value is None:
        return "—"
    sign = "+" if value >= 0 else "-"
    return f"{sign}{abs(value):,.0f}"


def with_fee(total: Number, fee_percent: Number) -> Decimal:
    total = _dec(total)
    return total + total * _dec(fee_percent) / Decimal("100")


def _has_purchase_data(extension) -> bool:
    return bool(
        extension.purchased
        and extension.purchase_price is not None
        and extension.purchase_currency is not None
        and extension.purchase_units_per_package
    )


def purchase_total(extension, rates: Optional[Rates]) -> Optional[Decimal]:
    """Local-currency cost of one extension's purchase, or None if unconvertible."""
    if not _has_purchase_data(extension):
        return None
    price_local = to_local(extension.purchase_price, extension.purchase_currency, rates)
    if price_local is None:
        return None
    return price_local * (extension.purchase_package_count or 1) * extension.purchase_units_per_package


def row_per_piece_cost(extension, rates: Optional[Rates]) -> Optional[Decimal]:
    if not _has_purchase_data(extension):
        return None
    price_local = to_local(extension.purchase_price, extension.purchase_currency, rates)
    if price_local is None:
        return None
    return per_piece_cost(extension.purchase_package_count or 1, extension.purchase_units_per_package, price_local)


def total_asset_value(entries: Iterable, include: Optional[Callable[[object], bool]] = None) -> Decimal:
    """Sum of ``price * max(stock, 0)`` over published, stock-carrying entries."""
    total = Decimal("0")
    for entry in entries:
        if entry.type not in (ProductType.SIMPLE, ProductType.VARIATION):
            continue
        if entry.status != ProductStatus.PUBLISH:
            continue
        if include is not None and not include(entry):
            continue
        stock = max(entry.stock_quantity or 0, 0)
        total += _dec(entry.price or 0) * stock
    return total


def total_purchase_value(extensions: Iterable, rates: Optional[Rates]) -> Decimal:
    total = Decimal("0")
    for extension in extensions:
        value = purchase_total(extension, rates)
        if value is None:
            if _has_purchase_data(extension):
                logger.warning(
                    f"No {_code(extension.purchase_currency)} rate supplied, "
                    f"skipping purchase value of product {extension.external_id}"
                )
            continue
        total += value
    return total


def unconvertible_ids(extensions: Iterable, rates: Optional[Rates]) -> list[int]:
    return [
        extension.external_id
        for extension in extensions
        if _has_purchase_data(extension) and purchase_total(extension, rates) is None
    ]


def excluding_categories(names: Iterable[str]) -> Callable[[object], bool]:
    """Predicate for ``total_asset_value`` that drops entries in any named category."""
    excluded = {name.strip().lower() for name in names if name and name.strip()}

    def include(entry) -> bool:
        for category in entry.categories or []:
            name = category["name"] if isinstance(category, dict) else category.name
            if name.strip().lower() in excluded:
                return False
        return True

    return include
