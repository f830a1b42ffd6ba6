import re

import httpx
import pytest
from decimal import Decimal
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.core.catalog_client import WooCommerceClient
from app.db.base import Base
from app.db.session import enable_sqlite_savepoints
from app.db.models import ProductStatus, ProductType, StoreProduct


DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    engine = create_async_engine(DATABASE_URL, echo=False, future=True)
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with AsyncSessionLocal() as session:
        yield session


class FakeStore:
    """In-memory WooCommerce REST endpoint served through httpx.MockTransport."""

    def __init__(self):
        self.products: dict[int, dict] = {}
        self.variations: dict[int, dict[int, dict]] = {}
        self.failing: set[str] = set()
        self.failing_pages: set[int] = set()
        self.requests: list[str] = []

    def add_product(self, product_id, name, type="simple", **fields):
        self.products[product_id] = {
            "id": product_id,
            "name": name,
            "slug": name.lower().replace(" ", "-"),
            "type": type,
            "status": fields.pop("status", "publish"),
            "sku": fields.pop("sku", ""),
            "price": fields.pop("price", "0"),
            "regular_price": fields.pop("regular_price", "0"),
            "sale_price": fields.pop("sale_price", ""),
            "stock_quantity": fields.pop("stock_quantity", 0),
            "weight": fields.pop("weight", ""),
            "images": [{"src": src} for src in fields.pop("images", [])],
            "categories": fields.pop("categories", []),
            "parent_id": 0,
            **fields,
        }
        if type == "variable":
            self.variations.setdefault(product_id, {})
        return self.products[product_id]

    def add_variation(self, parent_id, variation_id, **fields):
        image = fields.pop("image", None)
        self.variations.setdefault(parent_id, {})[variation_id] = {
            "id": variation_id,
            "parent_id": parent_id,
            "sku": fields.pop("sku", ""),
            "status": fields.pop("status", "publish"),
            "price": fields.pop("price", "0"),
            "regular_price": fields.pop("regular_price", "0"),
            "sale_price": fields.pop("sale_price", ""),
            "stock_quantity": fields.pop("stock_quantity", 0),
            "weight": fields.pop("weight", ""),
            "image": {"src": image} if image else None,
            "attributes": fields.pop("attributes", []),
            **fields,
        }

    def _page(self, items, request):
        per_page = int(request.url.params.get("per_page", 100))
        page = int(request.url.params.get("page", 1))
        start = (page - 1) * per_page
        return httpx.Response(200, json=items[start:start + per_page])

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/wp-json/wc/v3")
        self.requests.append(path)
        if path in self.failing:
            return httpx.Response(500, json={"message": "Internal error"})

        if path == "/products":
            if int(request.url.params.get("page", 1)) in self.failing_pages:
                return httpx.Response(503, text="Service Unavailable")
            return self._page([self.products[k] for k in sorted(self.products)], request)

        match = re.fullmatch(r"/products/(\d+)/variations", path)
        if match:
            parent_id = int(match.group(1))
            if parent_id not in self.variations:
                return httpx.Response(404, json={"code": "woocommerce_rest_product_invalid_id"})
            variations = self.variations[parent_id]
            return self._page([variations[k] for k in sorted(variations)], request)

        match = re.fullmatch(r"/products/(\d+)/variations/(\d+)", path)
        if match:
            variation = self.variations.get(int(match.group(1)), {}).get(int(match.group(2)))
            if variation is None:
                return httpx.Response(404, json={"code": "woocommerce_rest_product_variation_invalid_id"})
            return httpx.Response(200, json=variation)

        match = re.fullmatch(r"/products/(\d+)", path)
        if match:
            product = self.products.get(int(match.group(1)))
            if product is None:
                return httpx.Response(404, json={"code": "woocommerce_rest_product_invalid_id"})
            return httpx.Response(200, json=product)

        return httpx.Response(404, json={"code": "rest_no_route"})


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
async def woo_client(fake_store):
    client = WooCommerceClient(
        base_url="https://store.example.com",
        consumer_key="ck_test",
        consumer_secret="cs_test",
        per_page=2,
        transport=httpx.MockTransport(fake_store.handler),
    )
    yield client
    await client.close()


@pytest.fixture
def add_product(db_session):
    async def _add(external_id, name="Product", type=ProductType.SIMPLE, parent_id=None, **fields):
        product = StoreProduct(
            external_id=external_id,
            parent_id=parent_id,
            type=type,
            name=name,
            sku=fields.pop("sku", None),
            status=fields.pop("status", ProductStatus.PUBLISH),
            stock_quantity=fields.pop("stock_quantity", 0),
            price=fields.pop("price", Decimal("0")),
            regular_price=fields.pop("regular_price", Decimal("0")),
            sale_price=fields.pop("sale_price", Decimal("0")),
            images=fields.pop("images", []),
            categories=fields.pop("categories", []),
            attributes=fields.pop("attributes", []),
            **fields,
        )
        db_session.add(product)
        await db_session.commit()
        return product

    return _add
