"""Harvest API client."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any

import aiohttp

from ._throttle import RequestThrottle
from .const import (
    DEFAULT_THROTTLE_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    HEADER_ACCOUNT_ID,
    PER_PAGE,
    TIME_ENTRIES_ENDPOINT,
    TIME_ENTRY_STOP_ENDPOINT,
    USER_AGENT,
)
from .exceptions import (
    ApiConnectionError,
    ApiResponseError,
    AuthenticationError,
    EmptyResultError,
    RateLimitError,
)
from .models import TimeEntry

_LOGGER = logging.getLogger(__name__)


class HarvestApiClient:
    """Async client for the Harvest v2 time entry API.

    Usage::

        async with aiohttp.ClientSession() as session:
            client = HarvestApiClient(session)
            running = await client.async_get_running_entries("123", "token")

    The client holds no credentials of its own: every call receives the
    account id and access token of the button it is serving, so one client
    can poll any number of accounts.

    If no session is provided, the client creates and manages its own.
    The caller is responsible for calling ``async_close()`` when done
    (or use the client as an async context manager).
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        request_interval: float = DEFAULT_THROTTLE_SECONDS,
        request_timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._owns_session = session is None
        self._session = session or aiohttp.ClientSession()
        self._throttle = RequestThrottle(min_interval=request_interval)
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)

    async def __aenter__(self) -> HarvestApiClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.async_close()

    async def async_close(self) -> None:
        """Close the HTTP session if the client owns it."""
        if self._owns_session:
            await self._session.close()

    # ------------------------------------------------------------------ #
    #  Time entries
    # ------------------------------------------------------------------ #

    async def async_get_running_entries(
        self, account_id: str, access_token: str
    ) -> list[TimeEntry]:
        """Fetch the entries currently running on an account.

        Harvest allows a single running timer per user, so the list
        normally holds zero or one entry.
        """
        data = await self._request(
            "GET",
            TIME_ENTRIES_ENDPOINT,
            account_id=account_id,
            access_token=access_token,
            params={"is_running": "true"},
        )
        return _parse_entries(data)

    async def async_get_entries(
        self,
        account_id: str,
        access_token: str,
        from_date: date | str,
        to_date: date | str,
    ) -> list[TimeEntry]:
        """Fetch every entry with a spent date in ``[from_date, to_date]``.

        Follows Harvest's ``next_page`` pagination until all pages are read.
        """
        params: dict[str, str] = {
            "from": _format_date(from_date),
            "to": _format_date(to_date),
            "per_page": str(PER_PAGE),
        }
        entries: list[TimeEntry] = []
        page: int | None = 1
        while page is not None:
            if page > 1:
                params["page"] = str(page)
            data = await self._request(
                "GET",
                TIME_ENTRIES_ENDPOINT,
                account_id=account_id,
                access_token=access_token,
                params=params,
            )
            entries.extend(_parse_entries(data))
            next_page = data.get("next_page")
            page = int(next_page) if next_page else None
        return entries

    async def async_start_timer(
        self,
        account_id: str,
        access_token: str,
        project_id: str,
        task_id: str,
        spent_date: date | str,
    ) -> str:
        """Create a running time entry and return its id.

        Harvest stops any other running timer of the same user as a side
        effect of starting a new one.
        """
        body = {
            "project_id": int(project_id),
            "task_id": int(task_id),
            "spent_date": _format_date(spent_date),
        }
        data = await self._request(
            "POST",
            TIME_ENTRIES_ENDPOINT,
            account_id=account_id,
            access_token=access_token,
            json_body=body,
            expected_status=201,
        )
        if not isinstance(data, dict) or data.get("id") is None:
            raise EmptyResultError("Start timer response did not include an entry id")
        return TimeEntry.from_api_response(data).id

    async def async_stop_timer(
        self, account_id: str, access_token: str, entry_id: str
    ) -> None:
        """Stop a running time entry."""
        url = TIME_ENTRY_STOP_ENDPOINT.format(entry_id=entry_id)
        await self._request(
            "PATCH",
            url,
            account_id=account_id,
            access_token=access_token,
        )

    # ------------------------------------------------------------------ #
    #  Internal HTTP layer
    # ------------------------------------------------------------------ #

    async def _request(
        self,
        method: str,
        url: str,
        *,
        account_id: str,
        access_token: str,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        expected_status: int = 200,
    ) -> Any:
        """Execute an authenticated API request.

        Any status other than ``expected_status`` is an error; Harvest
        answers 200 for reads and stops and 201 for created entries.

        Raises:
            AuthenticationError: On 401/403 responses.
            RateLimitError: On 429 responses.
            ApiResponseError: On any other unexpected status.
            ApiConnectionError: On network errors and timeouts.
        """
        await self._throttle.acquire((account_id, access_token))

        kwargs: dict[str, Any] = {
            "headers": _build_headers(account_id, access_token),
            "timeout": self._timeout,
        }
        if params:
            kwargs["params"] = params
        if json_body is not None:
            kwargs["json"] = json_body

        _LOGGER.debug("%s %s for account %s", method, url, account_id)
        try:
            async with self._session.request(method, url, **kwargs) as resp:
                if resp.status in (401, 403):
                    raise AuthenticationError(
                        f"Authentication failed: HTTP {resp.status}",
                        status_code=resp.status,
                    )

                if resp.status == 429:
                    retry_after = resp.headers.get("Retry-After")
                    raise RateLimitError(
                        retry_after=float(retry_after) if retry_after else None,
                    )

                if resp.status != expected_status:
                    body = await resp.text()
                    raise ApiResponseError(
                        f"API error: HTTP {resp.status} - {body}",
                        status_code=resp.status,
                    )

                return await resp.json(content_type=None)

        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            raise ApiConnectionError(f"Connection error: {err}") from err


def _build_headers(account_id: str, access_token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {access_token}",
        HEADER_ACCOUNT_ID: str(account_id),
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
    }


def _format_date(value: date | str) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return value


def _parse_entries(data: Any) -> list[TimeEntry]:
    """Extract the ``time_entries`` list of a listing response."""
    if not isinstance(data, dict) or not isinstance(data.get("time_entries"), list):
        raise EmptyResultError("Response did not include a time_entries list")
    return [TimeEntry.from_api_response(e) for e in data["time_entries"]]
