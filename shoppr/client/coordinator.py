"""
Client request coordinator.

Sits between the search screen and the API: serves repeat searches from a
5-minute cache, cancels the previous in-flight search when a new one starts,
and exposes the loading/result/error state the screen renders.
"""

import asyncio
import logging
import random
import time

from shoppr.client.api import ShopprApiClient
from shoppr.client.state import ClientState, LocalStateStore
from shoppr.core.cache import TTLCache
from shoppr.core.config import settings
from shoppr.schemas.search import Category, SearchResult

logger = logging.getLogger(__name__)

SEARCH_FAILED_MESSAGE = "Search failed. Please try again."

LOADING_MESSAGES = [
    "Shoppr AI is finding perfect matches...",
    "Analyzing your preferences...",
    "Curating personalized picks...",
    "Scanning for the best deals...",
    "Finding your style matches...",
    "AI working its magic...",
    "Personalizing just for you...",
    "Discovering hidden gems...",
    "Matching your vibe...",
    "Almost ready to swipe...",
]


class SearchCoordinator:
    """
    One coordinator per search surface.

    Only the most recent search may change ``results``/``error``/
    ``is_searching``; a superseded search is cancelled and its outcome is
    dropped.
    """

    def __init__(
        self,
        api: ShopprApiClient,
        state: ClientState,
        store: LocalStateStore | None = None,
        cache: TTLCache | None = None,
        rng: random.Random | None = None,
    ):
        self.api = api
        self.state = state
        self.store = store
        self.cache = cache if cache is not None else TTLCache(ttl=settings.CLIENT_CACHE_TTL)
        self.rng = rng or random.Random()

        self.results: SearchResult | None = None
        self.error: str | None = None
        self.is_searching = False
        self.has_searched = False
        self.loading_message = ""
        self._inflight: asyncio.Task | None = None

    @staticmethod
    def cache_key(query: str, category_id: str, user_id: str | None) -> tuple[str, str, str]:
        return (query, category_id, user_id or "anonymous")

    async def _fetch(self, query: str, category: Category, user_id: str | None) -> SearchResult:
        key = self.cache_key(query, category.id, user_id)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Using cached search result for '{query}'")
            return cached

        started = time.perf_counter()
        result = await self.api.search(query, category.id, category.name, user_id)
        self.cache.set(key, result)
        logger.info(f"Search for '{query}' completed in {(time.perf_counter() - started) * 1000:.0f}ms")
        return result

    def cancel(self) -> None:
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()

    async def search(self, query: str, category: Category, user_id: str | None = None) -> SearchResult | None:
        """
        Run a search for the surface.

        Returns the result, or None when the query is blank, the search was
        superseded, or it failed (``error`` then holds a retryable message).
        """
        query = query.strip()
        if not query:
            return None

        self.cancel()
        task = asyncio.create_task(self._fetch(query, category, user_id))
        self._inflight = task

        self.is_searching = True
        self.has_searched = True
        self.error = None
        self.loading_message = self.rng.choice(LOADING_MESSAGES)

        try:
            result = await task
        except asyncio.CancelledError:
            if self._inflight is not task:
                logger.info(f"Search for '{query}' superseded")
                return None
            self.is_searching = False
            raise
        except Exception as e:
            if self._inflight is not task:
                return None
            logger.error(f"Search error for '{query}': {e}")
            self.error = SEARCH_FAILED_MESSAGE
            self.is_searching = False
            return None

        if self._inflight is not task:
            return None

        self.results = result
        self.is_searching = False
        self.state.record_search(category.id, query)
        if self.store is not None:
            self.store.save(self.state)
        return result
