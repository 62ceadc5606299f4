from __future__ import annotations

from bs4 import BeautifulSoup, Tag

from hashtag_lookup.config import settings
from hashtag_lookup.core.linker import HashtagLinker
from hashtag_lookup.core.registry import SeenHashtagRegistry
from hashtag_lookup.core.search import HashtagSearch
from hashtag_lookup.core.search_cache import Clock, SearchCache
from hashtag_lookup.core.trigger import TriggerContext, should_trigger
from hashtag_lookup.models.hashtags import SearchOutcome
from hashtag_lookup.tools.hashtag_api import HashtagApiClient


class HashtagSession:
    """Per-editor state: search cache, seen-hashtag registry and search pipeline.

    One session lives as long as the editing surface it serves. Nothing is
    shared between sessions.
    """

    def __init__(
        self,
        api: HashtagApiClient | None = None,
        *,
        type_order: list[str] | None = None,
        trigger_char: str | None = None,
        input_delay_ms: int | None = None,
        timeout_ms: int | None = None,
        cache_ttl_seconds: float | None = None,
        testing: bool | None = None,
        clock: Clock | None = None,
    ):
        self._owns_api = api is None
        self.api = api or HashtagApiClient()
        self.type_order = list(type_order or settings.type_order)
        self.trigger_char = trigger_char or settings.hashtag_trigger_char
        self.cache = SearchCache(
            ttl_seconds=(
                settings.hashtag_cache_ttl_seconds if cache_ttl_seconds is None else cache_ttl_seconds
            ),
            clock=clock,
        )
        self.registry = SeenHashtagRegistry()
        self.searcher = HashtagSearch(
            self.api,
            cache=self.cache,
            input_delay_ms=input_delay_ms,
            timeout_ms=timeout_ms,
            testing=testing,
        )
        self.linker = HashtagLinker(self.api, self.registry, trigger_char=self.trigger_char)

    async def __aenter__(self) -> HashtagSession:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.searcher.aclose()
        if self._owns_api:
            await self.api.aclose()

    def should_trigger(self, context: TriggerContext) -> bool:
        return should_trigger(context, trigger_char=self.trigger_char)

    async def search(self, term: str, type_order: list[str] | None = None) -> SearchOutcome:
        return await self.searcher.search(term, type_order or self.type_order)

    async def fetch_unseen(self, slugs: list[str], type_order: list[str] | None = None) -> None:
        await self.linker.fetch_unseen(type_order or self.type_order, slugs)

    def resolve_seen(self, root: Tag | None, type_order: list[str] | None = None) -> list[str]:
        return self.linker.resolve_seen(type_order or self.type_order, root)

    async def link_hashtags(self, root: Tag | None, type_order: list[str] | None = None) -> list[str]:
        """Cook what is already known, fetch the rest, then cook again.

        Returns the refs that still have not been looked up (the lookup failed).
        """
        order = type_order or self.type_order
        unseen = self.linker.resolve_seen(order, root)
        if not unseen:
            return []
        await self.linker.fetch_unseen(order, unseen)
        return self.linker.resolve_seen(order, root)

    async def cook_html(self, html: str, type_order: list[str] | None = None) -> str:
        soup = BeautifulSoup(html, "html.parser")
        await self.link_hashtags(soup, type_order)
        return str(soup)
