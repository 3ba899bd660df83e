from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from shoppr.core.categories import CATEGORIES
from shoppr.core.dependencies import Services, get_services
from shoppr.schemas.search import Category

router = APIRouter(tags=["system"])


def _now() -> str:
    return datetime.now(UTC).isoformat()


@router.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": _now()}


@router.get("/diagnostics")
async def diagnostics(services: Services = Depends(get_services)):
    """Report which upstream services are configured and the AI cache size."""
    return {
        "message": "Diagnostics endpoint working",
        "ai_configured": services.llm.is_configured,
        "catalog_configured": services.catalog.is_configured,
        "cache_size": len(services.ai_cache),
        "timestamp": _now(),
    }


@router.get("/categories", response_model=list[Category])
async def list_categories():
    return CATEGORIES
