from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Set
from datetime import datetime
from decimal import Decimal
import enum

from app.db.models import Currency, ProductStatus, ProductType


class CategoryRef(BaseModel):
    id: int
    name: str


class AttributeRef(BaseModel):
    name: str
    option: str


class CatalogEntry(BaseModel):
    external_id: int
    parent_id: Optional[int] = None
    type: ProductType = ProductType.SIMPLE
    name: str
    slug: Optional[str] = None
    sku: Optional[str] = None
    status: ProductStatus = ProductStatus.PUBLISH
    stock_quantity: int = 0
    price: Decimal = Decimal("0")
    regular_price: Decimal = Decimal("0")
    sale_price: Decimal = Decimal("0")
    weight: Optional[Decimal] = None
    images: List[str] = []
    categories: List[CategoryRef] = []
    attributes: List[AttributeRef] = []
    is_missing_from_source: bool = False

    class Config:
        from_attributes = True


class ExtensionResponse(BaseModel):
    external_id: int
    supplier_names: List[str] = []
    note: Optional[str] = None
    backup_location: Optional[str] = None
    purchased: bool = False
    purchased_at: Optional[datetime] = None
    purchase_package_count: int = 1
    purchase_units_per_package: Optional[int] = None
    purchase_price: Optional[Decimal] = None
    purchase_currency: Optional[Currency] = None
    order_batch_id: Optional[str] = None

    class Config:
        from_attributes = True


class NoteUpdate(BaseModel):
    note: Optional[str] = None


class SuppliersUpdate(BaseModel):
    supplier_names: List[str] = []


class BackupLocationUpdate(BaseModel):
    backup_location: Optional[str] = None


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


class SortOption(BaseModel):
    key: str
    direction: SortDirection = SortDirection.ASC


class ListFilters(BaseModel):
    """Independent facets; ``None`` means the facet is inactive."""

    has_sku: Optional[bool] = None
    product_type: Optional[ProductType] = None
    has_discount: Optional[bool] = None
    has_photo: Optional[bool] = None
    has_price: Optional[bool] = None
    has_weight: Optional[bool] = None
    has_backup_location: Optional[bool] = None
    price_min: Optional[Decimal] = None
    price_max: Optional[Decimal] = None
    suppliers: List[str] = []
    purchased: Optional[bool] = None
    missing: Optional[bool] = None


class ListOptions(BaseModel):
    search: str = ""
    filters: ListFilters = Field(default_factory=ListFilters)
    sort: Optional[SortOption] = None
    expanded_parents: Set[int] = set()
    rates: Dict[str, Decimal] = {}


class ListRow(BaseModel):
    """A catalog entry joined with its extension, plus derived display values."""

    external_id: int
    parent_id: Optional[int] = None
    depth: int = 0
    child_count: int = 0
    type: ProductType
    name: str
    sku: Optional[str] = None
    status: ProductStatus
    stock_quantity: int = 0
    price: Decimal = Decimal("0")
    regular_price: Decimal = Decimal("0")
    sale_price: Decimal = Decimal("0")
    weight: Optional[Decimal] = None
    images: List[str] = []
    categories: List[CategoryRef] = []
    attributes: List[AttributeRef] = []
    is_missing_from_source: bool = False

    supplier_names: List[str] = []
    supplier_label: str = ""
    note: Optional[str] = None
    backup_location: Optional[str] = None
    purchased: bool = False
    purchased_at: Optional[datetime] = None
    purchase_package_count: int = 1
    purchase_units_per_package: Optional[int] = None
    purchase_price: Optional[Decimal] = None
    purchase_currency: Optional[Currency] = None
    order_batch_id: Optional[str] = None

    stock: int = 0
    total_pieces_purchased: Optional[int] = None
    per_piece_cost_local: Optional[Decimal] = None
    margin: Optional[Decimal] = None
