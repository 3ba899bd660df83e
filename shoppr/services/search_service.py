"""Search service: orchestrates profile lookup, query optimization, catalog search and ranking"""

import asyncio
import logging
import time

from shoppr.core.config import settings
from shoppr.core.errors import ValidationError
from shoppr.schemas.search import SearchRequest, SearchResult
from shoppr.schemas.user import PersonalizationProfile
from shoppr.services.catalog_service import CatalogService, normalize_product
from shoppr.services.product_ranker import ProductRanker
from shoppr.services.profile_store import ProfileStore
from shoppr.services.query_optimizer import QueryOptimizer

logger = logging.getLogger(__name__)


class SearchService:
    """
    Handles one search request end to end.

    Search Flow:
    1. Validate the request
    2. In parallel: load the user's survey profile and optimize the query
       without it (the common, cheap path)
    3. If a profile exists and that optimization fell back, optimize again
       with the profile
    4. Catalog search with the optimized query (failure fails the request)
    5. Keep the first 25 listings, normalize them, drop unpriced ones
    6. Rank with the profile
    """

    def __init__(
        self,
        profiles: ProfileStore,
        optimizer: QueryOptimizer,
        catalog: CatalogService,
        ranker: ProductRanker,
    ):
        self.profiles = profiles
        self.optimizer = optimizer
        self.catalog = catalog
        self.ranker = ranker

    async def _load_profile(self, user_id: str | None) -> PersonalizationProfile | None:
        if not user_id:
            return None
        try:
            return await self.profiles.get_profile(user_id)
        except Exception as e:
            # Personalization is optional; a store hiccup must not fail the search
            logger.warning(f"Profile lookup failed for {user_id}: {e}")
            return None

    async def search(self, request: SearchRequest) -> SearchResult:
        """
        Execute a personalized catalog search.

        Args:
            request: SearchRequest from the client

        Returns:
            SearchResult with products sorted ascending by rank
        """
        query = (request.query or "").strip()
        category_id = (request.category_id or "").strip()
        category_name = (request.category_name or "").strip()
        if not query or not category_id or not category_name:
            raise ValidationError("Query, category_id, and category_name are required")

        started = time.perf_counter()
        logger.info(f"🔍 Search start: '{query}' in {category_name} ({category_id}) user={request.user_id}")

        # Step 2: must run concurrently, step 3 needs both results
        profile, optimization = await asyncio.gather(
            self._load_profile(request.user_id),
            self.optimizer.optimize(query, category_name),
        )

        # Step 3
        if profile is not None and optimization.used_fallback:
            optimization = await self.optimizer.optimize(query, category_name, profile)

        # Step 4
        page = await self.catalog.search(optimization.optimized_text, category_id)

        # Step 5
        products = [
            normalize_product(listing, index)
            for index, listing in enumerate(page.listings[: settings.RESULT_CANDIDATE_LIMIT])
        ]
        products = [p for p in products if p.price > 0]

        # Step 6
        ranked = await self.ranker.rank(query, products, profile)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"✅ Search complete: {len(ranked)} products in {elapsed_ms:.0f}ms")

        return SearchResult(
            query=query,
            optimized_query=optimization.optimized_text,
            category_id=category_id,
            category_name=category_name,
            products=ranked,
            total_results=page.total_results or len(ranked),
            optimization_reasoning=optimization.reasoning,
        )
