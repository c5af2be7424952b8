"""Exception hierarchy for the Harvest API client."""

from __future__ import annotations


class HarvestError(Exception):
    """Base exception for all Harvest API errors."""


class ApiConnectionError(HarvestError):
    """The request never completed (network error, DNS, timeout)."""


class ApiResponseError(HarvestError):
    """API returned an unexpected status code.

    Attributes:
        status_code: HTTP status code, if available.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ApiResponseError):
    """The access token or account id was rejected."""


class RateLimitError(ApiResponseError):
    """API returned 429 Too Many Requests.

    Attributes:
        retry_after: Seconds to wait before retrying, if provided by the server.
    """

    def __init__(
        self,
        message: str = "Rate limited",
        *,
        status_code: int = 429,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after


class EmptyResultError(HarvestError):
    """The response was well-formed but carried no usable data."""
