from decimal import Decimal
from typing import List, Optional

from fastapi import Query

from app.db.models import ProductType
from app.schemas.product import ListFilters, ListOptions, SortDirection, SortOption


def get_rates(
    cny_rate: Optional[Decimal] = Query(default=None, description="CNY → IDR rate"),
    usd_rate: Optional[Decimal] = Query(default=None, description="USD → IDR rate"),
) -> dict:
    """Exchange rates are supplied by the caller on every request."""
    rates = {}
    if cny_rate is not None:
        rates["CNY"] = cny_rate
    if usd_rate is not None:
        rates["USD"] = usd_rate
    return rates


def get_list_options(
    search: str = "",
    sort: Optional[str] = None,
    direction: SortDirection = SortDirection.ASC,
    expanded: List[int] = Query(default=[]),
    has_sku: Optional[bool] = None,
    product_type: Optional[ProductType] = None,
    has_discount: Optional[bool] = None,
    has_photo: Optional[bool] = None,
    has_price: Optional[bool] = None,
    has_weight: Optional[bool] = None,
    has_backup_location: Optional[bool] = None,
    price_min: Optional[Decimal] = None,
    price_max: Optional[Decimal] = None,
    supplier: List[str] = Query(default=[]),
    purchased: Optional[bool] = None,
    missing: Optional[bool] = None,
    cny_rate: Optional[Decimal] = None,
    usd_rate: Optional[Decimal] = None,
) -> ListOptions:
    return ListOptions(
        search=search,
        sort=SortOption(key=sort, direction=direction) if sort else None,
        expanded_parents=set(expanded),
        filters=ListFilters(
            has_sku=has_sku,
            product_type=product_type,
            has_discount=has_discount,
            has_photo=has_photo,
            has_price=has_price,
            has_weight=has_weight,
            has_backup_location=has_backup_location,
            price_min=price_min,
            price_max=price_max,
            suppliers=supplier,
            purchased=purchased,
            missing=missing,
        ),
        rates=get_rates(cny_rate, usd_rate),
    )
