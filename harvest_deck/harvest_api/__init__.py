"""Async Python client for the Harvest time tracking API."""

from .const import __version__
from ._client import HarvestApiClient
from .exceptions import (
    ApiConnectionError,
    ApiResponseError,
    AuthenticationError,
    EmptyResultError,
    HarvestError,
    RateLimitError,
)
from .models import NamedRef, TimeEntry

__all__ = [
    "__version__",
    "HarvestApiClient",
    "ApiConnectionError",
    "ApiResponseError",
    "AuthenticationError",
    "EmptyResultError",
    "HarvestError",
    "RateLimitError",
    "NamedRef",
    "TimeEntry",
]
