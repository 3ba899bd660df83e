"""
HTTP client for the Shoppr API, used by the app's data layer.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from shoppr.core.config import settings
from shoppr.schemas.search import SearchResult
from shoppr.schemas.user import SurveyData, SurveyRecord, UserProfile

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response from the API, carrying the server's error message."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ShopprApiClient:
    def __init__(self, http_client: httpx.AsyncClient, prefix: str = settings.API_PREFIX):
        self.http_client = http_client
        self.prefix = prefix.rstrip("/")

    async def _request(self, method: str, endpoint: str, json: Any = None) -> dict[str, Any]:
        url = f"{self.prefix}{endpoint}"
        logger.debug(f"{method} {url}")
        response = await self.http_client.request(method, url, json=json)

        if response.is_error:
            try:
                message = response.json().get("error") or "Request failed"
            except ValueError:
                message = response.text or "Request failed"
            logger.warning(f"Request failed: {method} {url} -> {response.status_code} {message}")
            raise ApiError(response.status_code, message)

        return response.json()

    async def search(
        self,
        query: str,
        category_id: str,
        category_name: str,
        user_id: str | None = None,
    ) -> SearchResult:
        body = {"query": query, "category_id": category_id, "category_name": category_name}
        if user_id:
            body["userId"] = user_id
        data = await self._request("POST", "/search", json=body)
        return SearchResult.model_validate(data)

    async def check_username(self, username: str) -> bool:
        data = await self._request("GET", f"/check-username/{quote(username, safe='')}")
        return bool(data["available"])

    async def create_user(self, name: str, username: str) -> UserProfile:
        data = await self._request("POST", "/users", json={"name": name, "username": username})
        return UserProfile.model_validate(data["user"])

    async def get_user(self, user_id: str) -> UserProfile:
        data = await self._request("GET", f"/users/{user_id}")
        return UserProfile.model_validate(data["user"])

    async def update_user(self, user_id: str, name: str, username: str) -> UserProfile:
        data = await self._request("PUT", f"/users/{user_id}", json={"name": name, "username": username})
        return UserProfile.model_validate(data["user"])

    async def save_survey(self, user_id: str, survey: SurveyData) -> SurveyRecord:
        data = await self._request(
            "POST", f"/users/{user_id}/survey", json=survey.model_dump(mode="json", by_alias=True)
        )
        return SurveyRecord.model_validate(data["survey"])

    async def get_survey(self, user_id: str) -> SurveyRecord:
        data = await self._request("GET", f"/users/{user_id}/survey")
        return SurveyRecord.model_validate(data["survey"])

    async def login(self, username: str) -> tuple[UserProfile, SurveyRecord | None]:
        data = await self._request("POST", "/login", json={"username": username})
        survey = data.get("survey")
        return UserProfile.model_validate(data["user"]), SurveyRecord.model_validate(survey) if survey else None
