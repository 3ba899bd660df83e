"""Error taxonomy shared by services and routers.

Routers never build error responses by hand: any ``ShopprError`` raised below
them is rendered by the exception handler registered in ``shoppr.main`` as
``{"error": message}`` (plus ``details`` when present) with ``status_code``.
"""

from fastapi import status


class ShopprError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, str]:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ShopprError):
    """Missing or empty required request fields."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ShopprError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ShopprError):
    status_code = status.HTTP_409_CONFLICT


class UpstreamError(ShopprError):
    """Generative-language call failed. Recovered locally, never surfaced."""

    status_code = status.HTTP_502_BAD_GATEWAY


class UpstreamTimeout(UpstreamError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT


class CatalogUpstreamError(ShopprError):
    """Catalog search failed. There is no substitute data source."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
