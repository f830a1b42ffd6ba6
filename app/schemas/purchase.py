from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal

from app.db.models import Currency
from app.schemas.product import ListRow


class PurchaseCost(BaseModel):
    package_count: int = 1
    units_per_package: int
    price: Decimal
    currency: Currency


class BatchResult(BaseModel):
    batch_id: str
    moved_count: int


class OrderBatchGroup(BaseModel):
    batch_id: str
    count: int
    rows: List[ListRow] = []


class PurchaseGroups(BaseModel):
    cart: List[ListRow] = []
    batches: List[OrderBatchGroup] = []


class PurchaseAnalysis(BaseModel):
    total_asset_value: Decimal
    total_purchase_value: Decimal
    total_purchase_with_fee: Decimal
    fee_percent: Decimal = Decimal("0")
    unconverted_ids: List[int] = []
    cart_count: int = 0
    batch_count: int = 0
    excluded_category: Optional[str] = None
