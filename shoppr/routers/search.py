import logging

from fastapi import APIRouter, Depends

from shoppr.core.errors import ShopprError
from shoppr.core.dependencies import get_search_service
from shoppr.schemas.search import SearchRequest, SearchResult
from shoppr.services.search_service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


@router.post("", response_model=SearchResult)
async def search_products(request: SearchRequest, service: SearchService = Depends(get_search_service)):
    """
    Personalized product search.

    1. **Query Optimization** (LLM): rewrites "earbuds for running" into a
       catalog-friendly phrase; falls back to the raw query on any failure
    2. **Catalog Search**: first page of listings for the optimized phrase
    3. **Ranking** (LLM): orders the first 20 candidates for the shopper;
       falls back to catalog order

    📝 **Example:**
        ```json
        {"query": "wireless earbuds", "category_id": "493964", "category_name": "Electronics", "userId": "..."}
        ```

    Returns 400 when query, category_id or category_name is missing and 500
    when the catalog search fails.
    """
    try:
        return await service.search(request)
    except ShopprError:
        raise
    except Exception as e:
        logger.exception("Unexpected search failure")
        raise ShopprError("Search failed", details=str(e)) from e
