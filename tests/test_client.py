"""Tests for the client data layer: API client, request coordinator, local state, suggestions."""

import asyncio
import json
import random

import httpx
import pytest

from conftest import FakeClock
from shoppr.client.api import ApiError, ShopprApiClient
from shoppr.client.coordinator import SEARCH_FAILED_MESSAGE, SearchCoordinator
from shoppr.client.state import ClientState, LocalStateStore
from shoppr.client.suggestions import SuggestionGenerator
from shoppr.core.cache import TTLCache
from shoppr.core.config import settings
from shoppr.schemas.search import Category, Product, RankedProduct, SearchResult
from shoppr.schemas.user import PersonalizationProfile, SurveyRecord

ELECTRONICS = Category(id="493964", name="Electronics")


def search_result(query="earbuds"):
    return {
        "success": True,
        "query": query,
        "optimized_query": query,
        "category_id": ELECTRONICS.id,
        "category_name": ELECTRONICS.name,
        "products": [
            {"id": "A", "title": "Buds", "price": 19.99, "currency": "GBP", "image": "", "url": "#",
             "rank": 1, "reasoning": "AI ranked"},
        ],
        "total_results": 1,
        "optimization_reasoning": "ok",
    }


def api_for(handler) -> ShopprApiClient:
    return ShopprApiClient(httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://api"))


class ScriptedApi:
    """Search API whose calls block until released, to exercise cancellation."""

    def __init__(self):
        self.calls = []
        self.gates: dict[str, asyncio.Event] = {}
        self.failures: set[str] = set()

    def release(self, query):
        self.gates.setdefault(query, asyncio.Event()).set()

    async def search(self, query, category_id, category_name, user_id=None):
        self.calls.append(query)
        gate = self.gates.setdefault(query, asyncio.Event())
        await gate.wait()
        if query in self.failures:
            raise ApiError(500, "Search failed")
        return SearchResult.model_validate(search_result(query))


# -- API client ---------------------------------------------------------------


async def test_api_client_search_sends_body():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=search_result())

    result = await api_for(handler).search("earbuds", ELECTRONICS.id, ELECTRONICS.name, "u1")

    assert seen["path"] == f"{settings.API_PREFIX}/search"
    assert seen["body"] == {"query": "earbuds", "category_id": "493964", "category_name": "Electronics",
                            "userId": "u1"}
    assert result.products[0].rank == 1


async def test_api_client_raises_server_message():
    api = api_for(lambda request: httpx.Response(409, json={"error": "Username is already taken"}))

    with pytest.raises(ApiError) as exc:
        await api.create_user("Ada", "ada")

    assert exc.value.status_code == 409
    assert exc.value.message == "Username is already taken"


async def test_api_client_non_json_error():
    api = api_for(lambda request: httpx.Response(502, text="Bad Gateway"))
    with pytest.raises(ApiError) as exc:
        await api.get_user("u1")
    assert exc.value.message == "Bad Gateway"


async def test_api_client_escapes_username():
    seen = {}

    def handler(request):
        seen["raw_path"] = request.url.raw_path
        return httpx.Response(200, json={"available": True, "username": "a/b"})

    assert await api_for(handler).check_username("a/b") is True
    assert seen["raw_path"].endswith(b"/check-username/a%2Fb")


async def test_api_client_login_without_survey():
    user = {"id": "u1", "name": "Ada", "username": "ada", "created_at": "2026-01-01T00:00:00+00:00"}
    api = api_for(lambda request: httpx.Response(200, json={"user": user, "survey": None}))

    profile, survey = await api.login("ada")

    assert profile.id == "u1"
    assert survey is None


# -- Coordinator --------------------------------------------------------------


async def test_coordinator_caches_results():
    api = ScriptedApi()
    api.release("earbuds")
    coordinator = SearchCoordinator(api, ClientState())

    first = await coordinator.search("earbuds", ELECTRONICS, "u1")
    second = await coordinator.search("earbuds", ELECTRONICS, "u1")

    assert api.calls == ["earbuds"]
    assert second is first


def test_coordinator_uses_given_cache():
    cache = TTLCache(ttl=300)
    coordinator = SearchCoordinator(ScriptedApi(), ClientState(), cache=cache)
    assert coordinator.cache is cache


async def test_coordinator_cache_keyed_by_user_and_expires():
    api = ScriptedApi()
    api.release("earbuds")
    clock = FakeClock()
    coordinator = SearchCoordinator(api, ClientState(), cache=TTLCache(ttl=300, timer=clock))

    await coordinator.search("earbuds", ELECTRONICS, "u1")
    await coordinator.search("earbuds", ELECTRONICS, "u2")
    clock.advance(300)
    await coordinator.search("earbuds", ELECTRONICS, "u1")

    assert len(api.calls) == 3


async def test_new_search_cancels_previous():
    api = ScriptedApi()
    state = ClientState()
    coordinator = SearchCoordinator(api, state)

    first = asyncio.create_task(coordinator.search("earbuds", ELECTRONICS))
    await asyncio.sleep(0)
    assert coordinator.is_searching

    second = asyncio.create_task(coordinator.search("headphones", ELECTRONICS))
    await asyncio.sleep(0)
    api.release("headphones")

    assert await first is None
    result = await second
    assert result.query == "headphones"
    assert coordinator.results is result
    assert coordinator.is_searching is False
    assert state.history_for(ELECTRONICS.id) == ["headphones"]


async def test_superseded_failure_does_not_touch_state():
    api = ScriptedApi()
    api.failures.add("earbuds")
    coordinator = SearchCoordinator(api, ClientState())

    first = asyncio.create_task(coordinator.search("earbuds", ELECTRONICS))
    await asyncio.sleep(0)
    second = asyncio.create_task(coordinator.search("headphones", ELECTRONICS))
    await asyncio.sleep(0)
    api.release("earbuds")
    api.release("headphones")

    assert await first is None
    assert (await second).query == "headphones"
    assert coordinator.error is None


async def test_failure_sets_generic_error():
    api = ScriptedApi()
    api.failures.add("earbuds")
    api.release("earbuds")
    coordinator = SearchCoordinator(api, ClientState())

    assert await coordinator.search("earbuds", ELECTRONICS) is None
    assert coordinator.error == SEARCH_FAILED_MESSAGE
    assert coordinator.is_searching is False


async def test_blank_query_is_ignored():
    api = ScriptedApi()
    coordinator = SearchCoordinator(api, ClientState())
    assert await coordinator.search("   ", ELECTRONICS) is None
    assert api.calls == []


async def test_successful_search_persists_history(tmp_path):
    api = ScriptedApi()
    api.release("earbuds")
    store = LocalStateStore(tmp_path / "state.json")
    coordinator = SearchCoordinator(api, ClientState(), store=store, rng=random.Random(1))

    await coordinator.search(" earbuds ", ELECTRONICS)

    assert store.load().history_for(ELECTRONICS.id) == ["earbuds"]
    assert coordinator.loading_message


# -- Local state --------------------------------------------------------------


def make_product(product_id):
    return RankedProduct(id=product_id, title="t", price=1.0, currency="GBP", image="", url="#",
                         rank=1, reasoning="r")


def test_cart_is_duplicate_free_and_ordered():
    state = ClientState()
    assert state.add_to_cart(make_product("A"))
    assert state.add_to_cart(make_product("B"))
    assert not state.add_to_cart(make_product("A"))

    assert [p.id for p in state.cart] == ["A", "B"]
    assert type(state.cart[0]) is Product

    state.remove_from_cart("A")
    assert [p.id for p in state.cart] == ["B"]
    state.clear_cart()
    assert state.cart == []


def test_history_is_bounded_deduplicated_most_recent_first():
    state = ClientState()
    for q in ["a", "b", "c", "d", "e", "f", "g", "c"]:
        state.record_search("cat", q)

    assert state.history_for("cat") == ["c", "g", "f", "e", "d", "b"]
    assert state.history_for("other") == []


def test_clear_history_empties_every_category():
    state = ClientState()
    state.record_search("493964", "earbuds")
    state.record_search("1000", "novels")

    state.clear_history()

    assert state.history_for("493964") == []
    assert state.history_for("1000") == []


def test_tutorial_can_be_reset(tmp_path):
    store = LocalStateStore(tmp_path / "state.json")
    state = ClientState()
    state.complete_tutorial()
    store.save(state)
    assert store.load().tutorial_completed is True

    state.reset_tutorial()
    store.save(state)

    assert store.load().tutorial_completed is False


def test_state_round_trips_through_disk(tmp_path):
    store = LocalStateStore(tmp_path / "nested" / "state.json")
    state = ClientState(tutorial_completed=True)
    state.add_to_cart(make_product("A"))
    state.record_search("cat", "shoes")
    state.survey = SurveyRecord(user_id="u1", completed_at="now", budget="luxury", brand_preference="brand loyal")
    store.save(state)

    loaded = store.load()

    assert loaded.tutorial_completed is True
    assert [p.id for p in loaded.cart] == ["A"]
    assert loaded.history_for("cat") == ["shoes"]
    assert loaded.survey.brand_preference == "brand loyal"


def test_corrupt_state_file_starts_fresh(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    assert LocalStateStore(path).load() == ClientState()


def test_logout_clears_everything():
    state = ClientState(tutorial_completed=True, suggestions={"k": ["x"]})
    state.add_to_cart(make_product("A"))
    state.record_search("cat", "q")

    state.logout()

    assert state == ClientState()


# -- Suggestions --------------------------------------------------------------


def test_suggestions_without_profile_use_base_list():
    generator = SuggestionGenerator()
    assert generator.get_suggestions("493964", None, "u1")[:2] == ["wireless headphones", "smartphone case"]
    assert generator.get_suggestions("unknown", None, "u1") == [
        "trending items", "popular products", "best sellers", "new arrivals",
    ]


def test_suggestions_personalized_and_cached():
    cache: dict = {}
    generator = SuggestionGenerator(cache=cache, rng=random.Random(0))
    profile = PersonalizationProfile(budget="premium", motivations=["quality"])

    suggestions = generator.get_suggestions("493964", profile, "u1")

    assert len(suggestions) == 8
    assert all(s.split()[0] in ("premium", "luxury") for s in suggestions)
    assert generator.get_suggestions("493964", profile, "u1") is suggestions
    assert cache == {"suggestions-493964-u1": suggestions}


def test_suggestions_add_profile_terms_and_dedupe():
    generator = SuggestionGenerator()
    profile = PersonalizationProfile(
        brand_preference="no preference",
        style_preferences=["modern minimal"],
        shopping_pattern="planned purchases",
    )
    base = ["essentials", "jeans"]

    result = generator.personalize(base, profile, "7141124011")

    assert result == ["essentials", "jeans", "generic products", "unbranded items", "modern style",
                      "contemporary", "must-have", "practical"]


def test_style_terms_only_for_style_categories():
    generator = SuggestionGenerator()
    profile = PersonalizationProfile(style_preferences=["classic"])
    assert generator.personalize(["a"], profile, "493964") == ["a"]


def test_search_box_suggestions():
    generator = SuggestionGenerator()
    history = ["earbuds", "usb cable", "charger", "tv", "laptop"]

    assert generator.search_box_suggestions("", "493964", history, None, "u1") == [
        ("earbuds", "history"), ("usb cable", "history"), ("charger", "history"), ("tv", "history"),
    ]
    assert generator.search_box_suggestions("", "493964", [], None, "u1") == []
    assert len(generator.search_box_suggestions("", "493964", [], None, "u1", focused=True)) == 4
    assert generator.search_box_suggestions("WIRELESS", "493964", history, None, "u1") == [
        ("wireless headphones", "suggestion"), ("wireless charger", "suggestion"),
    ]
    assert generator.search_box_suggestions("smart watch", "493964", [], None, "u1") == []


def test_new_survey_invalidates_suggestions():
    state = ClientState()
    generator = SuggestionGenerator(cache=state.suggestions)
    generator.get_suggestions("493964", PersonalizationProfile(budget="budget"), "u1")
    assert state.suggestions

    state.set_survey(SurveyRecord(user_id="u1", completed_at="now"))

    assert generator.cache == {}
