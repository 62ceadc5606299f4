from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from loguru import logger

from hashtag_lookup.config import settings
from hashtag_lookup.core.search_cache import SearchCache
from hashtag_lookup.errors import HashtagResponseError, HashtagTransportError
from hashtag_lookup.models.hashtags import CANCELLED, SearchOutcome

WHITESPACE = re.compile(r"\s")


class SearchBackend(Protocol):
    async def search(self, term: str, order: list[str]) -> SearchOutcome: ...


class SearchState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"


@dataclass(slots=True)
class _PendingSearch:
    term: str
    order: list[str]
    future: asyncio.Future


def _settle(future: asyncio.Future, outcome: SearchOutcome) -> None:
    if not future.done():
        future.set_result(outcome)


class HashtagSearch:
    """Debounced, single-flight, cached hashtag search.

    Every call supersedes the previous one: a pending debounce is dropped and
    an in-flight request is cancelled, and the superseded caller receives
    ``CANCELLED``. Only the latest term ever reaches the backend, and at most
    one backend request is outstanding at a time.

    Outside test mode each call also races a timeout; when it fires first the
    caller gets ``CANCELLED`` while the request keeps running and still fills
    the cache when it lands.
    """

    def __init__(
        self,
        backend: SearchBackend,
        *,
        cache: SearchCache | None = None,
        input_delay_ms: int | None = None,
        timeout_ms: int | None = None,
        testing: bool | None = None,
    ):
        self._backend = backend
        if cache is None:
            cache = SearchCache(ttl_seconds=settings.hashtag_cache_ttl_seconds)
        self.cache = cache
        self.input_delay = (
            settings.hashtag_input_delay_ms if input_delay_ms is None else input_delay_ms
        ) / 1000.0
        self.timeout = (
            settings.hashtag_search_timeout_ms if timeout_ms is None else timeout_ms
        ) / 1000.0
        self.testing = settings.hashtag_testing if testing is None else testing

        self._pending: _PendingSearch | None = None
        self._debounce_handle: asyncio.TimerHandle | None = None
        self._in_flight: asyncio.Task | None = None
        self._in_flight_search: _PendingSearch | None = None

    @property
    def state(self) -> SearchState:
        if self._in_flight is not None:
            return SearchState.IN_FLIGHT
        if self._pending is not None:
            return SearchState.DEBOUNCING
        return SearchState.IDLE

    async def search(self, term: str, order: list[str]) -> SearchOutcome:
        self._supersede()
        self.cache.expire_if_stale()

        cached = self.cache.get(term)
        if cached is not None:
            logger.debug(f"Hashtag search cache hit for {term!r}")
            return cached

        if term == "" or WHITESPACE.search(term):
            return CANCELLED

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        timeout_handle = None
        if not self.testing:
            timeout_handle = loop.call_later(self.timeout, _settle, future, CANCELLED)

        self._pending = _PendingSearch(term=term, order=list(order), future=future)
        self._debounce_handle = loop.call_later(self.input_delay, self._fire)
        try:
            return await future
        finally:
            if timeout_handle is not None:
                timeout_handle.cancel()

    async def aclose(self) -> None:
        task = self._in_flight
        self._supersede()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def _supersede(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        if self._pending is not None:
            _settle(self._pending.future, CANCELLED)
            self._pending = None

        if self._in_flight is not None:
            logger.debug(f"Aborting in-flight hashtag search for {self._in_flight_search.term!r}")
            self._in_flight.cancel()
            _settle(self._in_flight_search.future, CANCELLED)
            self._in_flight = None
            self._in_flight_search = None

    def _fire(self) -> None:
        self._debounce_handle = None
        pending, self._pending = self._pending, None
        if pending is None or pending.future.cancelled():
            return
        self._in_flight_search = pending
        self._in_flight = asyncio.get_running_loop().create_task(self._request(pending))

    async def _request(self, pending: _PendingSearch) -> None:
        try:
            outcome = await self._backend.search(pending.term, pending.order)
        except asyncio.CancelledError:
            _settle(pending.future, CANCELLED)
            raise
        except HashtagTransportError as exc:
            logger.warning(f"Hashtag search transport failure for {pending.term!r}: {exc}")
            if not pending.future.done():
                pending.future.set_exception(exc)
            return
        except HashtagResponseError as exc:
            logger.warning(f"Hashtag search failed for {pending.term!r}: {exc}")
            _settle(pending.future, CANCELLED)
            return
        except Exception as exc:
            logger.exception(f"Unexpected hashtag search failure for {pending.term!r}: {exc}")
            _settle(pending.future, CANCELLED)
            return
        finally:
            if self._in_flight is asyncio.current_task():
                self._in_flight = None
                self._in_flight_search = None

        self.cache.put(pending.term, outcome)
        _settle(pending.future, outcome)
