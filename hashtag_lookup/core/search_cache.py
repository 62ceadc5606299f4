from __future__ import annotations

import time
from typing import Callable

from loguru import logger

from hashtag_lookup.models.hashtags import SearchOutcome

Clock = Callable[[], float]


class SearchCache:
    """Term -> outcome memo that is wiped as a whole.

    There is a single epoch, refreshed on every write. Once ``ttl_seconds``
    have passed since the last write, :meth:`expire_if_stale` clears every
    entry at once; entries have no individual expiry.
    """

    def __init__(self, *, ttl_seconds: float = 30.0, clock: Clock | None = None):
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock or time.monotonic
        self._entries: dict[str, SearchOutcome] = {}
        self._written_at: float | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, term: str) -> bool:
        return term in self._entries

    def expire_if_stale(self) -> bool:
        if self._written_at is None:
            return False
        if self._clock() - self._written_at <= self.ttl_seconds:
            return False
        if self._entries:
            logger.debug(f"Search cache expired, dropping {len(self._entries)} entries")
        self._entries.clear()
        return True

    def get(self, term: str) -> SearchOutcome | None:
        return self._entries.get(term)

    def put(self, term: str, outcome: SearchOutcome) -> SearchOutcome:
        self._entries[term] = outcome
        self._written_at = self._clock()
        return outcome

    def clear(self) -> None:
        self._entries.clear()
        self._written_at = None
