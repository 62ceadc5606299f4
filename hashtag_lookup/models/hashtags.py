from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from pydantic import BaseModel, ConfigDict


class HashtagItem(BaseModel):
    """One entity returned by the hashtag endpoints."""

    model_config = ConfigDict(extra="ignore")

    text: str
    ref: str
    relative_url: str = ""
    icon: str = ""
    slug: str = ""
    type: str = ""
    description: str = ""
    id: int | str | None = None


class SearchPayload(BaseModel):
    results: list[HashtagItem] | None = None


@dataclass(frozen=True, slots=True)
class Resolved:
    items: list[HashtagItem] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Cancelled:
    """No usable result for the query."""


CANCELLED = Cancelled()

SearchOutcome = Union[Resolved, Cancelled]


def outcome_from_payload(payload: SearchPayload) -> SearchOutcome:
    if not payload.results:
        return CANCELLED
    return Resolved(items=list(payload.results))
