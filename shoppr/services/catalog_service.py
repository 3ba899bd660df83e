"""Catalog search adapter for the Rainforest product-search API"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

from shoppr.core.config import settings
from shoppr.core.errors import CatalogUpstreamError
from shoppr.schemas.search import Product

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")
_PRICE_FIELDS = ("raw", "value", "amount", "price")

PLACEHOLDER_TITLE = "Untitled Product"
PLACEHOLDER_IMAGE = ""
PLACEHOLDER_URL = "#"


def normalize_price(price: Any) -> float:
    """
    Turn a catalog price representation into a float.

    Accepts a number, a string such as ``"£1,234.56"`` (first numeric
    substring, thousands separators dropped) or a dict carrying one of
    ``raw``/``value``/``amount``/``price``, normalized the same way.
    Anything unresolvable becomes 0.0.
    """
    if price is None or isinstance(price, bool):
        return 0.0
    if isinstance(price, (int, float)):
        return float(price)
    if isinstance(price, str):
        match = _NUMBER_RE.search(price)
        return float(match.group(0).replace(",", "")) if match else 0.0
    if isinstance(price, dict):
        for name in _PRICE_FIELDS:
            value = price.get(name)
            if value:
                return normalize_price(value)
    return 0.0


def _text(value: Any, placeholder: str) -> str:
    return value if isinstance(value, str) and value else placeholder


def normalize_product(raw: dict[str, Any], index: int, default_currency: str | None = None) -> Product:
    """Map one raw search listing to a Product. Missing or non-text fields get placeholders."""
    default_currency = default_currency or settings.DEFAULT_CURRENCY
    price = raw.get("price")
    currency = price.get("currency") if isinstance(price, dict) else None
    return Product(
        id=str(raw.get("asin") or f"product-{index}"),
        title=_text(raw.get("title"), PLACEHOLDER_TITLE),
        price=max(normalize_price(price), 0.0),
        currency=_text(currency, default_currency).upper(),
        image=_text(raw.get("image"), PLACEHOLDER_IMAGE),
        url=_text(raw.get("link"), PLACEHOLDER_URL),
    )


@dataclass
class CatalogPage:
    listings: list[dict[str, Any]] = field(default_factory=list)
    total_results: int | None = None


class CatalogService:
    """Search the product catalog. Failures propagate as CatalogUpstreamError."""

    def __init__(self, http_client: httpx.AsyncClient, api_key: str | None = None):
        self.http_client = http_client
        self.api_key = settings.CATALOG_API_KEY if api_key is None else api_key

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _params(self, query: str, category_id: str) -> dict[str, str]:
        return {
            "api_key": self.api_key,
            "type": "search",
            "amazon_domain": settings.CATALOG_DOMAIN,
            "search_term": query,
            "category_id": category_id,
            "language": settings.CATALOG_LANGUAGE,
            "currency": settings.CATALOG_CURRENCY,
            "page": "1",
            "num_reviews_threshold": str(settings.CATALOG_MIN_REVIEWS),
        }

    async def search(self, query: str, category_id: str) -> CatalogPage:
        """
        Fetch the first page of listings for a query within a category.

        Args:
            query: Optimized search phrase
            category_id: Catalog category identifier

        Returns:
            CatalogPage with raw listings and the provider's total count
        """
        logger.info(f"Catalog request: '{query}' in {category_id}")
        try:
            response = await asyncio.wait_for(
                self.http_client.get(
                    settings.CATALOG_API_URL,
                    params=self._params(query, category_id),
                    timeout=settings.CATALOG_TIMEOUT,
                ),
                timeout=settings.CATALOG_TIMEOUT,
            )
            response.raise_for_status()
            data = response.json()
        except asyncio.TimeoutError as e:
            logger.error(f"Catalog search timed out after {settings.CATALOG_TIMEOUT}s")
            raise CatalogUpstreamError("Search failed", details="Catalog request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Catalog API error: {e.response.status_code}")
            raise CatalogUpstreamError("Search failed", details=f"API error: {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Catalog search failed: {e}")
            raise CatalogUpstreamError("Search failed", details=str(e)) from e

        if not isinstance(data, dict):
            raise CatalogUpstreamError("Search failed", details="Unexpected catalog response")

        listings = [item for item in data.get("search_results") or [] if isinstance(item, dict)]
        total = data.get("total_results")
        logger.info(f"Catalog response: {len(listings)} products")
        return CatalogPage(listings=listings, total_results=total if isinstance(total, int) else None)
