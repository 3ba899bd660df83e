"""
Product ranker service.

Asks the LLM to order the first N catalog candidates for a query (and the
shopper's profile) and maps the answer back onto the full candidate list by
1-based position. Products the model does not mention keep their original
position as rank.
"""

import hashlib
import json
import logging
from typing import Any

from shoppr.core.cache import TTLCache
from shoppr.core.config import settings
from shoppr.core.errors import UpstreamError
from shoppr.schemas.search import Product, RankedProduct
from shoppr.schemas.user import PersonalizationProfile, profile_signature
from shoppr.services.language_model import LanguageModelClient, parse_json_array

logger = logging.getLogger(__name__)

AI_RANKED = "AI ranked"
CACHED_RANKING = "Cached ranking"
DEFAULT_UNAVAILABLE = "Default ranking (AI unavailable)"
DEFAULT_ERROR = "Default ranking (error)"

TITLE_PROMPT_LENGTH = 80


def build_user_context(profile: PersonalizationProfile | None) -> str:
    if profile is None:
        return "General preferences"
    budget = profile.budget.value if profile.budget else "any"
    motivation = profile.motivations[0] if profile.motivations else "no particular motivation"
    return f"{profile.gender or 'unspecified'}, {budget} budget, prefers {motivation}"


def candidate_fingerprint(products: list[Product]) -> str:
    """Hash of the candidate id sequence; a cached ranking is only valid for the same candidates."""
    digest = hashlib.sha256("\x1f".join(p.id for p in products).encode("utf-8"))
    return digest.hexdigest()[:16]


def default_ranking(products: list[Product], reasoning: str) -> list[RankedProduct]:
    return [
        RankedProduct(**product.model_dump(), rank=position, reasoning=reasoning)
        for position, product in enumerate(products, start=1)
    ]


def normalize_rankings(entries: list[Any], candidate_count: int) -> list[dict[str, Any]]:
    """
    Keep well-formed ``{position, rank, reasoning}`` entries.

    Positions must address a ranked candidate and ranks must lie in
    ``1..candidate_count``; the first entry for a position wins.
    """
    rankings: list[dict[str, Any]] = []
    seen: set[int] = set()
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        position = entry.get("position")
        rank = entry.get("rank")
        if isinstance(position, bool) or isinstance(rank, bool):
            continue
        if not isinstance(position, int) or not isinstance(rank, int):
            continue
        if not 1 <= position <= candidate_count or not 1 <= rank <= candidate_count:
            continue
        if position in seen:
            continue
        seen.add(position)
        reasoning = entry.get("reasoning")
        rankings.append({
            "position": position,
            "rank": rank,
            "reasoning": reasoning if isinstance(reasoning, str) and reasoning else None,
        })
    return rankings


def apply_rankings(
    products: list[Product],
    rankings: list[dict[str, Any]],
    default_reasoning: str,
) -> list[RankedProduct]:
    """Attach ranks by position and stable-sort ascending by rank."""
    by_position = {r["position"]: r for r in rankings}
    ranked = []
    for position, product in enumerate(products, start=1):
        entry = by_position.get(position)
        ranked.append(
            RankedProduct(
                **product.model_dump(),
                rank=entry["rank"] if entry else position,
                reasoning=(entry and entry["reasoning"]) or default_reasoning,
            )
        )
    # list.sort is stable: ties keep catalog order
    ranked.sort(key=lambda p: p.rank)
    return ranked


class ProductRanker:
    """Rank catalog candidates with the LLM, falling back to catalog order"""

    def __init__(self, llm: LanguageModelClient, cache: TTLCache):
        self.llm = llm
        self.cache = cache

    @staticmethod
    def cache_key(query: str, candidates: list[Product], profile: PersonalizationProfile | None) -> tuple:
        return ("rank", query, len(candidates), *profile_signature(profile), candidate_fingerprint(candidates))

    async def rank(
        self,
        query: str,
        products: list[Product],
        profile: PersonalizationProfile | None = None,
    ) -> list[RankedProduct]:
        """
        Rank products for a query.

        Args:
            query: The user's original (not optimized) query
            products: Normalized candidates in catalog order
            profile: Optional survey profile

        Returns:
            RankedProducts sorted ascending by rank
        """
        if not products:
            return []

        candidates = products[: settings.RANK_CANDIDATE_LIMIT]
        key = self.cache_key(query, candidates, profile)

        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Ranking cache hit for '{query}'")
            return apply_rankings(products, cached, CACHED_RANKING)

        if not self.llm.is_configured:
            return default_ranking(products, DEFAULT_UNAVAILABLE)

        products_data = [
            {"pos": position, "title": product.title[:TITLE_PROMPT_LENGTH], "price": product.price}
            for position, product in enumerate(candidates, start=1)
        ]
        prompt = (
            f'Rank these {len(products_data)} products for "{query}" ({build_user_context(profile)}):\n'
            f"{json.dumps(products_data)}\n"
            'Return JSON array: [{"position":1,"rank":1,"reasoning":"brief"},...]'
        )

        try:
            text = await self.llm.generate(
                prompt,
                model=settings.RANKER_MODEL,
                temperature=settings.RANKER_TEMPERATURE,
                max_tokens=settings.RANKER_MAX_TOKENS,
                timeout=settings.RANKER_TIMEOUT,
            )
            rankings = normalize_rankings(parse_json_array(text), len(candidates))
        except UpstreamError as e:
            logger.warning(f"Ranking failed for '{query}': {e.message}")
            return default_ranking(products, DEFAULT_ERROR)

        self.cache.set(key, rankings)
        logger.info(f"Ranked {len(products)} products for '{query}' ({len(rankings)} AI entries)")
        return apply_rankings(products, rankings, AI_RANKED)
