from __future__ import annotations

from typing import Protocol

from bs4 import BeautifulSoup, Tag
from loguru import logger

from hashtag_lookup.config import settings
from hashtag_lookup.core.registry import SeenHashtagRegistry
from hashtag_lookup.errors import HashtagLookupError
from hashtag_lookup.models.hashtags import HashtagItem
from hashtag_lookup.services import logger as log_service

PLACEHOLDER_SELECTOR = "span.hashtag-raw"
COOKED_CLASS = "hashtag-cooked"

# Only used to mint new tags; they are moved into the caller's tree.
_TAG_FACTORY = BeautifulSoup("", "html.parser")


class LookupBackend(Protocol):
    async def lookup(self, slugs: list[str], order: list[str]) -> dict[str, list[HashtagItem]]: ...


def build_cooked_link(item: HashtagItem, item_type: str) -> Tag:
    """Markup for a resolved hashtag.

    Must stay in sync with the server-side cooked hashtag markup.
    """
    link = _TAG_FACTORY.new_tag(
        "a",
        attrs={
            "class": COOKED_CLASS,
            "href": item.relative_url,
            "data-type": item_type,
            "data-slug": item.slug,
        },
    )
    svg = _TAG_FACTORY.new_tag(
        "svg",
        attrs={"class": f"fa d-icon d-icon-{item.icon} svg-icon svg-node"},
    )
    svg.append(_TAG_FACTORY.new_tag("use", attrs={"href": f"#{item.icon}"}))
    label = _TAG_FACTORY.new_tag("span")
    label.string = item.text
    link.append(svg)
    link.append(label)
    return link


class HashtagLinker:
    """Turns raw hashtag placeholders into cooked links.

    The lookup does not take mixed contexts into account (for example a chat
    quote inside a post), so a ref without a ``::type`` suffix is resolved with
    the priority of the surrounding context only.
    """

    def __init__(
        self,
        backend: LookupBackend,
        registry: SeenHashtagRegistry | None = None,
        *,
        trigger_char: str | None = None,
    ):
        self._backend = backend
        self.registry = registry if registry is not None else SeenHashtagRegistry()
        self.trigger_char = trigger_char or settings.hashtag_trigger_char

    async def fetch_unseen(self, order: list[str], slugs: list[str]) -> None:
        pending: dict[str, str] = {}
        for slug in slugs:
            key = slug.lower()
            if key not in pending and not self.registry.is_checked(key):
                pending[key] = slug
        if not pending:
            return

        try:
            response = await self._backend.lookup(list(pending.values()), order)
        except HashtagLookupError as exc:
            logger.warning(f"Hashtag lookup failed for {len(pending)} refs: {exc}")
            return

        inserted = 0
        for item_type, items in response.items():
            for item in items:
                if self.registry.insert_if_absent(item_type, item.ref, item):
                    inserted += 1
        self.registry.mark_checked(pending)

        log_service.log_event(
            "hashtags_resolved",
            "Batch hashtag lookup complete",
            requested=len(pending),
            inserted=inserted,
        )

    def resolve_seen(self, order: list[str], root: Tag | None) -> list[str]:
        """Replace every placeholder under ``root`` the registry can resolve.

        Returns the lowercased, de-duplicated refs that were never looked up.
        """
        if root is None:
            return []
        placeholders = root.select(PLACEHOLDER_SELECTOR)
        if not placeholders:
            return []

        refs = [self._raw_ref(placeholder) for placeholder in placeholders]
        for placeholder, ref in zip(placeholders, refs):
            self._replace_placeholder(ref, order, placeholder)

        unique = dict.fromkeys(ref.lower() for ref in refs)
        return [ref for ref in unique if not self.registry.is_checked(ref)]

    def _raw_ref(self, placeholder: Tag) -> str:
        text = placeholder.get_text().strip()
        if text.startswith(self.trigger_char):
            text = text[len(self.trigger_char):]
        return text

    def _replace_placeholder(self, ref: str, order: list[str], placeholder: Tag) -> bool:
        for item_type in order:
            suffix = f"::{item_type}"
            if ref.endswith(suffix):
                ref = ref[: -len(suffix)]

            item = self.registry.get(item_type, ref)
            if item is not None:
                placeholder.replace_with(build_cooked_link(item, item_type))
                return True
        return False
