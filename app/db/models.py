from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, DateTime, JSON, Enum as SQLEnum
import enum

from app.db.base import Base


class ProductType(str, enum.Enum):
    SIMPLE = "simple"
    VARIABLE = "variable"
    VARIATION = "variation"


class ProductStatus(str, enum.Enum):
    PUBLISH = "publish"
    DRAFT = "draft"
    PRIVATE = "private"
    PENDING = "pending"


class Currency(str, enum.Enum):
    IDR = "IDR"
    CNY = "CNY"
    USD = "USD"


class StoreProduct(Base):
    """Local mirror of one WooCommerce product or variation."""

    __tablename__ = "store_products"

    external_id = Column(Integer, primary_key=True, autoincrement=False)
    parent_id = Column(Integer, nullable=True, index=True)
    type = Column(SQLEnum(ProductType), default=ProductType.SIMPLE, nullable=False)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True)
    sku = Column(String(100), nullable=True, index=True)
    status = Column(SQLEnum(ProductStatus), default=ProductStatus.PUBLISH, nullable=False)
    stock_quantity = Column(Integer, default=0, nullable=False)
    price = Column(Numeric(14, 2), default=0, nullable=False)
    regular_price = Column(Numeric(14, 2), default=0, nullable=False)
    sale_price = Column(Numeric(14, 2), default=0, nullable=False)
    weight = Column(Numeric(10, 3), nullable=True)
    images = Column(JSON, default=list, nullable=False)
    categories = Column(JSON, default=list, nullable=False)
    attributes = Column(JSON, default=list, nullable=False)
    is_missing_from_source = Column(Boolean, default=False, nullable=False, index=True)
    synced_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PurchaseExtension(Base):
    """Locally owned fields attached to a mirrored product by external id."""

    __tablename__ = "purchase_extensions"

    external_id = Column(Integer, primary_key=True, autoincrement=False)
    supplier_names = Column(JSON, default=list, nullable=False)
    note = Column(Text, nullable=True)
    backup_location = Column(String(50), nullable=True)
    purchased = Column(Boolean, default=False, nullable=False, index=True)
    purchased_at = Column(DateTime, nullable=True)
    purchase_package_count = Column(Integer, default=1, nullable=False)
    purchase_units_per_package = Column(Integer, nullable=True)
    purchase_price = Column(Numeric(14, 2), nullable=True)
    purchase_currency = Column(SQLEnum(Currency), nullable=True)
    order_batch_id = Column(String(20), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class StoreSupplier(Base):
    __tablename__ = "store_suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(50), nullable=False, index=True)
    entity = Column(String(50), nullable=False)
    entity_id = Column(Integer, nullable=True)
    audit_data = Column(JSON, default=dict, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
