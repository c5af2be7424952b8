"""In-memory cache of the last Harvest payloads, for redraws without a fetch."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .harvest_api import TimeEntry
from .models import AccountKey, QueryKind

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Last payload stored for one ``(query kind, account)`` pair.

    ``error`` marks a placeholder written after a failed fetch; its
    ``entries`` are always empty.
    """

    entries: tuple[TimeEntry, ...]
    sequence: int
    error: bool = False


@dataclass
class PassSnapshot:
    """Accounts and totals flag of the most recent reconciliation pass."""

    accounts: tuple[AccountKey, ...] = field(default_factory=tuple)
    have_totals: bool = False


class PayloadCache:
    """Holds the newest payload per account and query kind.

    Writes carry the sequence number of the pass that issued the fetch;
    a write older than the stored one is refused so a slow response can
    not overwrite fresher data. There is no eviction: the cache is bounded
    by the number of distinct accounts.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[QueryKind, str], CacheEntry] = {}
        self.last_pass: PassSnapshot | None = None

    def get(self, kind: QueryKind, account_id: str) -> CacheEntry | None:
        return self._entries.get((kind, account_id))

    def store(
        self,
        kind: QueryKind,
        account_id: str,
        entries: list[TimeEntry] | tuple[TimeEntry, ...],
        sequence: int,
    ) -> bool:
        """Store a successful payload. Returns False if it was stale."""
        return self._put(kind, account_id, CacheEntry(tuple(entries), sequence))

    def store_failure(self, kind: QueryKind, account_id: str, sequence: int) -> bool:
        """Replace the payload with an empty, errored placeholder.

        Aggregation over a failed ``entries`` fetch then sees zero hours
        instead of stale ones. Returns False if the failure was stale.
        """
        return self._put(kind, account_id, CacheEntry((), sequence, error=True))

    def remember_pass(self, accounts: list[AccountKey], have_totals: bool) -> None:
        """Record which accounts the latest pass polled, for cache replay."""
        self.last_pass = PassSnapshot(tuple(accounts), have_totals)

    def _put(self, kind: QueryKind, account_id: str, entry: CacheEntry) -> bool:
        key = (kind, account_id)
        current = self._entries.get(key)
        if current is not None and current.sequence > entry.sequence:
            _LOGGER.debug(
                "Dropping stale %s payload for account %s (pass %s < %s)",
                kind.value,
                account_id,
                entry.sequence,
                current.sequence,
            )
            return False
        self._entries[key] = entry
        return True
