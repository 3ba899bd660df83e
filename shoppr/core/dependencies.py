"""
Per-process service wiring.

The lifespan in ``shoppr.main`` builds one AI-response cache, one HTTP client
and the services on top of them, and stores them on ``app.state``. Routers
reach them through the ``get_*`` dependencies below; tests assign their own
``Services`` to ``app.state.services``.
"""

from dataclasses import dataclass

import httpx
from fastapi import Request

from shoppr.core.cache import TTLCache
from shoppr.core.config import settings
from shoppr.core.kv_store import KeyValueStore
from shoppr.services.catalog_service import CatalogService
from shoppr.services.language_model import LanguageModelClient
from shoppr.services.product_ranker import ProductRanker
from shoppr.services.profile_store import ProfileStore
from shoppr.services.query_optimizer import QueryOptimizer
from shoppr.services.search_service import SearchService
from shoppr.services.user_service import UserService


@dataclass
class Services:
    kv_store: KeyValueStore
    ai_cache: TTLCache
    llm: LanguageModelClient
    catalog: CatalogService
    search: SearchService


def build_services(
    kv_store: KeyValueStore,
    http_client: httpx.AsyncClient,
    llm: LanguageModelClient,
    ai_cache: TTLCache | None = None,
) -> Services:
    if ai_cache is None:
        ai_cache = TTLCache(ttl=settings.AI_CACHE_TTL)
    catalog = CatalogService(http_client)
    search = SearchService(
        profiles=ProfileStore(kv_store),
        optimizer=QueryOptimizer(llm, ai_cache),
        catalog=catalog,
        ranker=ProductRanker(llm, ai_cache),
    )
    return Services(kv_store=kv_store, ai_cache=ai_cache, llm=llm, catalog=catalog, search=search)


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services not initialized. Ensure the app lifespan ran.")
    return services


def get_kv_store(request: Request) -> KeyValueStore:
    return get_services(request).kv_store


def get_search_service(request: Request) -> SearchService:
    return get_services(request).search


def get_user_service(request: Request) -> UserService:
    return UserService(get_kv_store(request))


def get_profile_store(request: Request) -> ProfileStore:
    return ProfileStore(get_kv_store(request))
