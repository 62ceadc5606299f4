from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

from loguru import logger

from hashtag_lookup.config import settings
from hashtag_lookup.core.search import WHITESPACE
from hashtag_lookup.core.trigger import TriggerContext
from hashtag_lookup.errors import HashtagTransportError
from hashtag_lookup.models.hashtags import CANCELLED
from hashtag_lookup.session import HashtagSession

HASHTAG_TEMPLATE = "hashtag-autocomplete"
LEGACY_TEMPLATE = "category-tag-autocomplete"

DataSource = Callable[[str], Awaitable[Any]]


@dataclass(slots=True)
class AutocompleteOptions:
    key: str
    template: str
    data_source: DataSource
    trigger_rule: Callable[[TriggerContext], bool]
    transform_complete: Callable[[Any], str]
    after_complete: Callable[[str], Any] | None = None
    treat_as_textarea: bool = False


class AutocompleteWidget(Protocol):
    """Editing surface that owns keystrokes, the popup and selection commit."""

    def autocomplete(self, options: AutocompleteOptions) -> Any: ...


def setup_hashtag_autocomplete(
    session: HashtagSession,
    widget: AutocompleteWidget,
    *,
    after_complete: Callable[[str], Any] | None = None,
    treat_as_textarea: bool = False,
    legacy_search: DataSource | None = None,
    experimental: bool | None = None,
) -> AutocompleteOptions:
    """Attach hashtag autocompletion to ``widget``.

    The type-aware path searches through ``session`` and completes with the
    entity ``ref``. With the experimental flag off, ``legacy_search`` (the
    plain category/tag search) feeds the widget and completion uses ``text``.
    """
    if experimental is None:
        experimental = settings.enable_experimental_hashtag_autocomplete

    if experimental:
        options = AutocompleteOptions(
            key=session.trigger_char,
            template=HASHTAG_TEMPLATE,
            data_source=_session_data_source(session),
            trigger_rule=session.should_trigger,
            transform_complete=lambda item: item.ref,
            after_complete=after_complete,
            treat_as_textarea=treat_as_textarea,
        )
    else:
        if legacy_search is None:
            raise ValueError("legacy_search is required when experimental autocomplete is off")
        options = AutocompleteOptions(
            key=session.trigger_char,
            template=LEGACY_TEMPLATE,
            data_source=_legacy_data_source(legacy_search),
            trigger_rule=session.should_trigger,
            transform_complete=lambda item: item.text,
            after_complete=after_complete,
        )

    widget.autocomplete(options)
    return options


def _session_data_source(session: HashtagSession) -> DataSource:
    async def data_source(term: str):
        if WHITESPACE.search(term):
            return None
        try:
            return await session.search(term)
        except HashtagTransportError as exc:
            logger.warning(f"Hashtag autocomplete unavailable: {exc}")
            return CANCELLED

    return data_source


def _legacy_data_source(legacy_search: DataSource) -> DataSource:
    async def data_source(term: str):
        if WHITESPACE.search(term):
            return None
        return await legacy_search(term)

    return data_source
