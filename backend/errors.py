"""Exception types raised by the card render pipeline."""

from __future__ import annotations


class CardServiceError(Exception):
    """Base class for every error the service reports to callers."""

    status_code = 500


class ConfigurationError(CardServiceError):
    """Required environment configuration is missing or malformed."""


class RequestValidationError(CardServiceError):
    """The inbound request body is missing fields or carries bad values."""

    status_code = 400


class NotFoundError(CardServiceError):
    """An order, template or stored object does not exist."""


class AssetInliningError(CardServiceError):
    """A mandatory image could not be downloaded and embedded."""


class RenderServiceError(CardServiceError):
    """The HTML-to-PDF service answered with a non-2xx response."""

    def __init__(self, status_code: int, body: str, route: str = "") -> None:
        self.response_status = status_code
        self.body = body
        self.route = route
        label = f" for {route}" if route else ""
        super().__init__(f"Gotenberg error{label} ({status_code}): {body}")


class StorageError(CardServiceError):
    """Reading or writing the object storage bucket failed."""


class DatabaseError(CardServiceError):
    """The PostgREST API rejected a query or update."""


__all__ = [
    "AssetInliningError",
    "CardServiceError",
    "ConfigurationError",
    "DatabaseError",
    "NotFoundError",
    "RenderServiceError",
    "RequestValidationError",
    "StorageError",
]
