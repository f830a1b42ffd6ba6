import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.catalog_client import WooCommerceClient, catalog_client
from app.core.exceptions import StoreError, TransientIOError
from app.db.models import AuditLog, ProductStatus, ProductType, StoreProduct
from app.schemas.product import CatalogEntry
from app.schemas.sync import SyncResult

logger = logging.getLogger(__name__)

ITEM_ERRORS = (StoreError, SQLAlchemyError, KeyError, TypeError, ValueError, ArithmeticError)


def _money(value) -> Decimal:
    if value in (None, ""):
        return Decimal("0")
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except InvalidOperation:
        return Decimal("0")


def _weight(value) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    try:
        weight = Decimal(str(value))
    except InvalidOperation:
        return None
    return weight.quantize(Decimal("0.001")) if weight > 0 else None


def _status(value) -> ProductStatus:
    try:
        return ProductStatus(value)
    except ValueError:
        logger.debug(f"Unmapped product status {value!r}, storing as draft")
        return ProductStatus.DRAFT


def _categories(items) -> list[dict]:
    return [{"id": int(c["id"]), "name": c["name"]} for c in items or []]


def parse_product(data: dict, parent: Optional[dict] = None) -> dict:
    """Maps a WooCommerce product or variation payload onto mirror columns.

    Variations carry no name or categories of their own in the listing, so
    they take both from ``parent``.
    """
    if parent is not None or data.get("type") == "variation" or data.get("parent_id"):
        product_type = ProductType.VARIATION
    elif data.get("type") == "variable":
        product_type = ProductType.VARIABLE
    else:
        product_type = ProductType.SIMPLE

    if product_type == ProductType.VARIATION:
        image = data.get("image")
        images = [image["src"]] if image and image.get("src") else []
        parent_id = parent["id"] if parent is not None else data.get("parent_id")
        name = parent["name"] if parent is not None else (data.get("name") or f"Variation #{data['id']}")
        categories = _categories(parent.get("categories") if parent is not None else data.get("categories"))
        attributes = [
            {"name": a.get("name", ""), "option": str(a.get("option", ""))}
            for a in data.get("attributes") or []
        ]
    else:
        images = [img["src"] for img in data.get("images") or [] if img.get("src")]
        parent_id = None
        name = data["name"]
        categories = _categories(data.get("categories"))
        attributes = []

    return {
        "external_id": int(data["id"]),
        "parent_id": int(parent_id) if parent_id else None,
        "type": product_type,
        "name": name,
        "slug": data.get("slug") or None,
        "sku": data.get("sku") or None,
        "status": _status(data.get("status")),
        "stock_quantity": int(data.get("stock_quantity") or 0),
        "price": _money(data.get("price")),
        "regular_price": _money(data.get("regular_price")),
        "sale_price": _money(data.get("sale_price")),
        "weight": _weight(data.get("weight")),
        "images": images,
        "categories": categories,
        "attributes": attributes,
        "is_missing_from_source": False,
    }


async def upsert_entry(db: AsyncSession, values: dict) -> bool:
    """Inserts or updates one mirror row; returns True when anything changed."""
    product = await db.get(StoreProduct, values["external_id"])
    if product is None:
        db.add(StoreProduct(**values, synced_at=datetime.utcnow()))
        await db.flush()
        return True

    changed = False
    for field, value in values.items():
        if getattr(product, field) != value:
            setattr(product, field, value)
            changed = True
    if changed:
        product.synced_at = datetime.utcnow()
        await db.flush()
    return changed


async def _upsert_item(db: AsyncSession, data: dict, parent: Optional[dict] = None) -> dict:
    values = parse_product(data, parent)
    async with db.begin_nested():
        await upsert_entry(db, values)
    return values


async def sync_catalog(db: AsyncSession, client: Optional[WooCommerceClient] = None) -> SyncResult:
    client = client or catalog_client
    logger.info("Starting catalog sync")

    seen: set[int] = set()
    unverified_parents: set[int] = set()
    result = SyncResult()

    try:
        async for page in client.iter_product_pages():
            for item in page:
                if item.get("id") is not None:
                    seen.add(int(item["id"]))
                try:
                    values = await _upsert_item(db, item)
                    result.updated += 1
                except ITEM_ERRORS as e:
                    result.failed += 1
                    if item.get("type") == "variable" and item.get("id") is not None:
                        # Its variations were never listed, so they cannot be judged missing
                        unverified_parents.add(int(item["id"]))
                    logger.warning(f"Failed to upsert product {item.get('id')} ({item.get('name')}): {str(e)}")
                    continue

                if values["type"] != ProductType.VARIABLE:
                    continue

                try:
                    variations = await client.list_variations(values["external_id"])
                except StoreError as e:
                    result.failed += 1
                    unverified_parents.add(values["external_id"])
                    logger.warning(f"Failed to fetch variations for product {values['external_id']}: {str(e)}")
                    continue

                if not variations:
                    logger.warning(f"Product {values['external_id']} is variable but returned 0 variations")
                for variation in variations:
                    if variation.get("id") is not None:
                        seen.add(int(variation["id"]))
                    try:
                        await _upsert_item(db, variation, parent=item)
                        result.updated += 1
                    except ITEM_ERRORS as e:
                        result.failed += 1
                        logger.warning(f"Failed to upsert variation {variation.get('id')} of {values['external_id']}: {str(e)}")
    except TransientIOError as e:
        if not seen:
            logger.error(f"Catalog sync aborted before any product was fetched: {str(e)}")
            await db.rollback()
            raise
        result.failed += 1
        result.complete = False
        logger.warning(f"Catalog listing interrupted after {len(seen)} entries, keeping partial result: {str(e)}")

    result.total = len(seen)

    # An empty or interrupted listing proves nothing about absent ids
    if seen and result.complete:
        rows = await db.execute(select(StoreProduct).where(StoreProduct.is_missing_from_source.is_(False)))
        for product in rows.scalars().all():
            if product.external_id in seen or product.parent_id in unverified_parents:
                continue
            product.is_missing_from_source = True
            result.missing += 1
        if result.missing:
            logger.info(f"Flagged {result.missing} products as missing from the store")

    db.add(AuditLog(
        action="SYNC",
        entity="product",
        audit_data=result.model_dump(),
    ))
    await db.commit()

    logger.info(f"Catalog sync complete. Updated: {result.updated}, failed: {result.failed}, total: {result.total}")
    return result


async def sync_one(
    db: AsyncSession,
    external_id: int,
    parent_id: Optional[int] = None,
    client: Optional[WooCommerceClient] = None,
) -> CatalogEntry:
    client = client or catalog_client

    existing = await db.get(StoreProduct, external_id)
    if parent_id is None and existing is not None:
        parent_id = existing.parent_id

    # NotFoundError / TransientIOError propagate before anything is written
    if parent_id:
        data = await client.get_variation(parent_id, external_id)
    else:
        data = await client.get_product(external_id)
        parent_id = data.get("parent_id") or None

    parent = None
    if parent_id:
        parent_row = await db.get(StoreProduct, parent_id)
        if parent_row is not None:
            parent = {"id": parent_row.external_id, "name": parent_row.name, "categories": parent_row.categories}
        elif not data.get("parent_id"):
            data = {**data, "parent_id": parent_id}

    try:
        values = parse_product(data, parent)
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Malformed store payload for product {external_id}: {str(e)}")
        raise TransientIOError(f"Store returned a malformed product {external_id}")

    changed = await upsert_entry(db, values)
    db.add(AuditLog(
        action="SYNC_ONE",
        entity="product",
        entity_id=external_id,
        audit_data={"changed": changed},
    ))
    await db.commit()

    product = await db.get(StoreProduct, external_id)
    logger.info(f"Refreshed product {external_id} (changed={changed})")
    return CatalogEntry.model_validate(product)
