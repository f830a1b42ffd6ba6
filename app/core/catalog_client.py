import logging
import httpx
from typing import AsyncIterator, Optional

from app.core.config import settings
from app.core.exceptions import CatalogConfigError, NotFoundError, TransientIOError

logger = logging.getLogger(__name__)


class WooCommerceClient:
    """Read-only client for the WooCommerce REST API (wc/v3)."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        consumer_key: Optional[str] = None,
        consumer_secret: Optional[str] = None,
        per_page: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.WC_URL).rstrip("/")
        self.consumer_key = consumer_key if consumer_key is not None else settings.WC_CONSUMER_KEY
        self.consumer_secret = consumer_secret if consumer_secret is not None else settings.WC_CONSUMER_SECRET
        self.per_page = per_page or settings.WC_PER_PAGE
        self.transport = transport
        self.client = None

    async def _get_client(self) -> httpx.AsyncClient:
        if not self.base_url or not self.consumer_key or not self.consumer_secret:
            logger.error(
                f"Missing WooCommerce credentials: url={bool(self.base_url)}, "
                f"key={bool(self.consumer_key)}, secret={bool(self.consumer_secret)}"
            )
            raise CatalogConfigError("WooCommerce API credentials are not configured")
        if self.client is None:
            self.client = httpx.AsyncClient(
                base_url=f"{self.base_url}/wp-json/wc/v3",
                auth=(self.consumer_key, self.consumer_secret),
                headers={"Accept": "application/json"},
                timeout=settings.WC_TIMEOUT_SECONDS,
                transport=self.transport,
            )
        return self.client

    async def _get(self, path: str, params: Optional[dict] = None):
        client = await self._get_client()
        try:
            response = await client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.warning(f"WooCommerce resource not found: {path}")
                raise NotFoundError(f"Product not found in store: {path}")
            logger.error(f"WooCommerce request {path} failed with status {e.response.status_code}: {e.response.text}")
            raise TransientIOError(f"Store API returned {e.response.status_code} for {path}")
        except httpx.HTTPError as e:
            logger.error(f"WooCommerce request {path} failed: {str(e)}")
            raise TransientIOError(f"Store API unreachable: {str(e)}")
        except ValueError as e:
            logger.error(f"WooCommerce response for {path} is not JSON: {str(e)}")
            raise TransientIOError(f"Store API returned an invalid response for {path}")

    async def _paginate(self, path: str, params: Optional[dict] = None) -> AsyncIterator[list]:
        page = 1
        while True:
            query = dict(params or {})
            query.update({"per_page": self.per_page, "page": page})
            logger.info(f"Fetching {path} page {page}")
            items = await self._get(path, params=query)
            if not isinstance(items, list) or not items:
                return
            yield items
            if len(items) < self.per_page:
                return
            page += 1

    def iter_product_pages(self) -> AsyncIterator[list]:
        # status=any also returns drafts, private and pending products
        return self._paginate("/products", {"status": "any"})

    async def list_variations(self, product_id: int) -> list:
        variations = []
        async for page in self._paginate(f"/products/{product_id}/variations"):
            variations.extend(page)
        logger.info(f"Found {len(variations)} variations for product {product_id}")
        return variations

    async def get_product(self, product_id: int) -> dict:
        return await self._get(f"/products/{product_id}")

    async def get_variation(self, parent_id: int, variation_id: int) -> dict:
        return await self._get(f"/products/{parent_id}/variations/{variation_id}")

    async def close(self):
        if self.client:
            await self.client.aclose()
            self.client = None


catalog_client = WooCommerceClient()


def get_catalog_client() -> WooCommerceClient:
    return catalog_client
