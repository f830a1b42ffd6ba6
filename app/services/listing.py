"""Builds the parent → variation display list from mirror and extension rows.

Parents and variations live in one flat table linked by ``parent_id``; the
grouping only exists here, on read. Every filter facet is one boolean
predicate and a row must pass all active ones.
"""
import enum
import logging
from collections import defaultdict
from typing import Callable, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.db.models import PurchaseExtension, StoreProduct
from app.schemas.product import ListFilters, ListOptions, ListRow, SortDirection, SortOption
from app.services import costing
from app.services.purchase import supplier_label

logger = logging.getLogger(__name__)

DIRECT_SORT_KEYS = {
    "external_id", "name", "sku", "type", "status", "stock_quantity", "price",
    "regular_price", "sale_price", "weight", "supplier_label", "note",
    "backup_location", "purchased", "purchased_at", "purchase_package_count",
    "purchase_units_per_package", "purchase_price", "purchase_currency", "order_batch_id",
}
DERIVED_SORT_KEYS = {"stock", "total_pieces_purchased", "per_piece_cost_local", "margin"}

Predicate = Callable[[ListRow], bool]


def join_row(product, extension, rates=None) -> ListRow:
    names = list(extension.supplier_names or []) if extension is not None else []
    row = ListRow(
        external_id=product.external_id,
        parent_id=product.parent_id,
        type=product.type,
        name=product.name,
        sku=product.sku,
        status=product.status,
        stock_quantity=product.stock_quantity or 0,
        price=product.price or 0,
        regular_price=product.regular_price or 0,
        sale_price=product.sale_price or 0,
        weight=product.weight,
        images=product.images or [],
        categories=product.categories or [],
        attributes=product.attributes or [],
        is_missing_from_source=product.is_missing_from_source,
        supplier_names=names,
        supplier_label=supplier_label(names),
        stock=product.stock_quantity or 0,
    )
    if extension is None:
        return row

    row.note = extension.note
    row.backup_location = extension.backup_location
    row.purchased = extension.purchased
    row.purchased_at = extension.purchased_at
    row.purchase_package_count = extension.purchase_package_count or 1
    row.purchase_units_per_package = extension.purchase_units_per_package
    row.purchase_price = extension.purchase_price
    row.purchase_currency = extension.purchase_currency
    row.order_batch_id = extension.order_batch_id

    if extension.purchased and extension.purchase_units_per_package:
        row.total_pieces_purchased = costing.total_pieces(row.purchase_package_count, extension.purchase_units_per_package)
        row.per_piece_cost_local = costing.row_per_piece_cost(extension, rates)
        if row.per_piece_cost_local is not None:
            row.margin = costing.margin(row.price, row.per_piece_cost_local)
    return row


def search_tokens(search: Optional[str]) -> list[str]:
    return (search or "").lower().split()


def matches_search(row: ListRow, tokens: list[str]) -> bool:
    if not tokens:
        return True
    haystack = " ".join([row.name or "", row.sku or "", row.supplier_label]).lower()
    return all(token in haystack for token in tokens)


def has_discount(row: ListRow) -> bool:
    return 0 < row.sale_price < row.regular_price


def facet_predicates(filters: ListFilters) -> list[Predicate]:
    predicates: list[Predicate] = []

    def facet(wanted: Optional[bool], test: Predicate):
        if wanted is not None:
            predicates.append(lambda row: test(row) == wanted)

    facet(filters.has_sku, lambda row: bool(row.sku))
    facet(filters.has_discount, has_discount)
    facet(filters.has_photo, lambda row: bool(row.images))
    facet(filters.has_price, lambda row: row.price > 0 or row.regular_price > 0)
    facet(filters.has_weight, lambda row: row.weight is not None and row.weight > 0)
    facet(filters.has_backup_location, lambda row: bool(row.backup_location))
    facet(filters.purchased, lambda row: row.purchased)
    facet(filters.missing, lambda row: row.is_missing_from_source)

    if filters.product_type is not None:
        product_type = filters.product_type
        predicates.append(lambda row: row.type == product_type)
    if filters.price_min is not None:
        price_min = filters.price_min
        predicates.append(lambda row: row.price >= price_min)
    if filters.price_max is not None:
        price_max = filters.price_max
        predicates.append(lambda row: row.price <= price_max)
    if filters.suppliers:
        wanted_suppliers = set(filters.suppliers)
        predicates.append(lambda row: bool(wanted_suppliers.intersection(row.supplier_names)))

    return predicates


def _sort_value(row: ListRow, key: str):
    value = getattr(row, key)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, str):
        return value.lower()
    return value


def sort_rows(items: list, sort: Optional[SortOption], row_of: Callable = lambda item: item) -> list:
    """Stable sort; rows without a value for the key always go last."""
    if sort is None:
        return list(items)
    if sort.key not in DIRECT_SORT_KEYS and sort.key not in DERIVED_SORT_KEYS:
        raise ValidationError(f"Unknown sort key: {sort.key}")

    present = [item for item in items if _sort_value(row_of(item), sort.key) not in (None, "")]
    absent = [item for item in items if _sort_value(row_of(item), sort.key) in (None, "")]
    present.sort(key=lambda item: _sort_value(row_of(item), sort.key), reverse=sort.direction == SortDirection.DESC)
    return present + absent


def build_rows(products: Iterable, extensions: Iterable, options: Optional[ListOptions] = None) -> list[ListRow]:
    options = options or ListOptions()
    extension_by_id = {extension.external_id: extension for extension in extensions}
    rows = [join_row(product, extension_by_id.get(product.external_id), options.rates) for product in products]

    known_ids = {row.external_id for row in rows}
    parents: list[ListRow] = []
    children: dict[int, list[ListRow]] = defaultdict(list)
    for row in rows:
        if row.parent_id is not None and row.parent_id in known_ids:
            row.depth = 1
            children[row.parent_id].append(row)
        else:
            # Variations whose parent is not mirrored are listed on their own
            parents.append(row)

    for parent in parents:
        kids = children.get(parent.external_id, [])
        parent.child_count = len(kids)
        if kids:
            parent.stock = sum(kid.stock_quantity for kid in kids)

    tokens = search_tokens(options.search)
    predicates = facet_predicates(options.filters)
    query_active = bool(tokens or predicates)

    def matches(row: ListRow) -> bool:
        return matches_search(row, tokens) and all(predicate(row) for predicate in predicates)

    groups = []
    for parent in parents:
        kids = children.get(parent.external_id, [])
        matched_kids = [kid for kid in kids if matches(kid)]
        if not matches(parent) and not matched_kids:
            continue
        if parent.external_id in options.expanded_parents:
            shown = kids
        elif query_active:
            shown = matched_kids
        else:
            shown = []
        groups.append((parent, shown))

    ordered: list[ListRow] = []
    for parent, shown in sort_rows(groups, options.sort, row_of=lambda group: group[0]):
        ordered.append(parent)
        ordered.extend(sort_rows(shown, options.sort))
    return ordered


def low_stock_rows(products: Iterable, extensions: Iterable, options: Optional[ListOptions] = None) -> list[ListRow]:
    """Unpurchased entries, lowest stock first."""
    options = (options or ListOptions()).model_copy(deep=True)
    options.filters.purchased = False
    if options.sort is None:
        options.sort = SortOption(key="stock", direction=SortDirection.ASC)
    return build_rows(products, extensions, options)


async def load_catalog(db: AsyncSession) -> tuple[list[StoreProduct], list[PurchaseExtension]]:
    products = await db.execute(select(StoreProduct).order_by(StoreProduct.external_id.desc()))
    extensions = await db.execute(select(PurchaseExtension))
    return list(products.scalars().all()), list(extensions.scalars().all())


async def list_rows(db: AsyncSession, options: Optional[ListOptions] = None) -> list[ListRow]:
    products, extensions = await load_catalog(db)
    rows = build_rows(products, extensions, options)
    logger.debug(f"Listed {len(rows)} of {len(products)} catalog rows")
    return rows
