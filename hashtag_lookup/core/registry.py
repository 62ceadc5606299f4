from __future__ import annotations

from typing import Iterable

from hashtag_lookup.models.hashtags import HashtagItem


class SeenHashtagRegistry:
    """Entities already resolved during this session, keyed by (type, ref).

    Writes are first-write-wins. Refs are keyed lowercased, so two refs of one
    type that differ only in case share a single entry: the first one written
    wins and the other is dropped.
    The registry also remembers which refs were already sent to the lookup
    endpoint, resolved or not, so they are never requested twice.
    """

    def __init__(self) -> None:
        self._seen: dict[str, dict[str, HashtagItem]] = {}
        self._checked: set[str] = set()

    def __len__(self) -> int:
        return sum(len(items) for items in self._seen.values())

    def insert_if_absent(self, item_type: str, ref: str, item: HashtagItem) -> bool:
        by_ref = self._seen.setdefault(item_type, {})
        key = ref.lower()
        if key in by_ref:
            return False
        by_ref[key] = item
        return True

    def get(self, item_type: str, ref: str) -> HashtagItem | None:
        return self._seen.get(item_type, {}).get(ref.lower())

    def mark_checked(self, refs: Iterable[str]) -> None:
        self._checked.update(ref.lower() for ref in refs)

    def is_checked(self, ref: str) -> bool:
        return ref.lower() in self._checked

    def clear(self) -> None:
        self._seen.clear()
        self._checked.clear()
