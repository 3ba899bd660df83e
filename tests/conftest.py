"""Shared fixtures: in-memory key-value store, fake LLM, fake clock, mocked catalog."""

import asyncio
import copy
from types import SimpleNamespace

import httpx
import pytest

from shoppr.core.cache import TTLCache
from shoppr.core.dependencies import build_services
from shoppr.main import app
from shoppr.services.catalog_service import CatalogService


class MemoryKeyValueStore:
    """KeyValueStore kept in a dict. Every call yields once so concurrent callers interleave."""

    def __init__(self):
        self.data: dict = {}

    async def get(self, key):
        await asyncio.sleep(0)
        return copy.deepcopy(self.data.get(key))

    async def set(self, key, value):
        await asyncio.sleep(0)
        self.data[key] = copy.deepcopy(value)

    async def set_if_absent(self, key, value):
        await asyncio.sleep(0)
        if key in self.data:
            return False
        self.data[key] = copy.deepcopy(value)
        return True

    async def delete(self, key):
        await asyncio.sleep(0)
        self.data.pop(key, None)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLanguageModel:
    """
    Stands in for LanguageModelClient.

    ``responder(prompt)`` returns the reply text or raises; ``calls`` records
    every prompt.
    """

    def __init__(self, responder=None, configured: bool = True):
        self.responder = responder or (lambda prompt: "")
        self.is_configured = configured
        self.calls: list[str] = []

    async def generate(self, prompt, **kwargs):
        self.calls.append(prompt)
        return self.responder(prompt)

    def calls_for(self, prefix: str) -> list[str]:
        return [c for c in self.calls if c.startswith(prefix)]


def chat_response(text):
    """Object shaped like an OpenAI chat completion."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def catalog_payload(prices, total_results=None):
    results = [
        {
            "asin": f"ASIN{i}",
            "title": f"Product {i}",
            "price": price,
            "image": f"https://img.example/{i}.jpg",
            "link": f"https://shop.example/dp/ASIN{i}",
        }
        for i, price in enumerate(prices)
    ]
    payload = {"search_results": results}
    if total_results is not None:
        payload["total_results"] = total_results
    return payload


def catalog_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def json_catalog(payload, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)
    return handler


def default_responder(prompt: str) -> str:
    if prompt.startswith("Optimize"):
        return 'Sure! {"optimized_search": "optimized term", "reasoning": "more specific"}'
    if prompt.startswith("Rank"):
        return "[]"
    raise AssertionError(f"unexpected prompt: {prompt}")


@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ai_cache(clock):
    return TTLCache(ttl=600, timer=clock)


@pytest.fixture
def fake_llm():
    return FakeLanguageModel(default_responder)


@pytest.fixture
def catalog_handler():
    """Mutable holder so tests can swap the catalog response per test."""
    return {"handler": json_catalog(catalog_payload([19.99, 45.00]))}


@pytest.fixture
def services(kv_store, ai_cache, fake_llm, catalog_handler):
    http_client = catalog_client(lambda request: catalog_handler["handler"](request))
    built = build_services(kv_store=kv_store, http_client=http_client, llm=fake_llm, ai_cache=ai_cache)
    built.catalog.api_key = "test-key"
    return built


@pytest.fixture
def wired_app(services):
    """The FastAPI app with test services installed in place of the lifespan's."""
    app.state.services = services
    yield app
    del app.state.services


@pytest.fixture
def catalog_service():
    def make(handler) -> CatalogService:
        return CatalogService(catalog_client(handler), api_key="test-key")
    return make
