"""Query optimizer service: rewrites a user's search phrase for the catalog using an LLM"""

import logging

from shoppr.core.cache import TTLCache
from shoppr.core.config import settings
from shoppr.core.errors import UpstreamError
from shoppr.schemas.search import OptimizedQuery
from shoppr.schemas.user import PersonalizationProfile, profile_signature
from shoppr.services.language_model import LanguageModelClient, parse_json_object

logger = logging.getLogger(__name__)

FALLBACK_REASONING = "Direct search (AI optimization unavailable)"


def build_profile_context(profile: PersonalizationProfile | None) -> str:
    """Condensed one-line description of the shopper for the prompt."""
    if profile is None:
        return "General user"
    budget = profile.budget.value if profile.budget else "unspecified"
    likes = ", ".join(profile.categories[:3]) or "anything"
    return f"User: {profile.gender or 'unspecified'}, budget: {budget}, likes: {likes}"


def fallback_optimization(query: str) -> OptimizedQuery:
    return OptimizedQuery(optimized_text=query, reasoning=FALLBACK_REASONING, used_fallback=True)


class QueryOptimizer:
    """Rewrite raw search phrases into catalog-friendly search terms"""

    def __init__(self, llm: LanguageModelClient, cache: TTLCache):
        self.llm = llm
        self.cache = cache

    @staticmethod
    def cache_key(query: str, category_name: str, profile: PersonalizationProfile | None) -> tuple:
        return ("optimize", query, category_name, *profile_signature(profile))

    async def optimize(
        self,
        query: str,
        category_name: str,
        profile: PersonalizationProfile | None = None,
    ) -> OptimizedQuery:
        """
        Optimize a search phrase for a category.

        Never raises for upstream problems: any failure returns the raw query
        with ``used_fallback=True``. Only successful optimizations are cached.

        Args:
            query: Raw user query
            category_name: Category the search is scoped to
            profile: Optional survey profile for personalization

        Returns:
            OptimizedQuery
        """
        key = self.cache_key(query, category_name, profile)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Optimizer cache hit for '{query}'")
            return cached

        if not self.llm.is_configured:
            logger.info("Language model not configured, using direct search")
            return fallback_optimization(query)

        context = build_profile_context(profile)
        prompt = (
            f'Optimize this search for {category_name}: "{query}". {context}.\n'
            'Return JSON: {"optimized_search": "enhanced search term", "reasoning": "brief reason"}'
        )

        try:
            text = await self.llm.generate(
                prompt,
                model=settings.QUERY_OPTIMIZER_MODEL,
                temperature=settings.OPTIMIZER_TEMPERATURE,
                max_tokens=settings.OPTIMIZER_MAX_TOKENS,
                timeout=settings.OPTIMIZER_TIMEOUT,
            )
            payload = parse_json_object(text)
            optimized = payload.get("optimized_search")
            if not isinstance(optimized, str) or not optimized.strip():
                raise UpstreamError("Response missing optimized_search")
            reasoning = payload.get("reasoning")
            result = OptimizedQuery(
                optimized_text=optimized.strip(),
                reasoning=reasoning if isinstance(reasoning, str) and reasoning else "AI optimized search",
            )
        except UpstreamError as e:
            logger.warning(f"Query optimization failed for '{query}': {e.message}")
            return fallback_optimization(query)

        self.cache.set(key, result)
        logger.info(f"Optimized '{query}' -> '{result.optimized_text}'")
        return result
