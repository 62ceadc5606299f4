from __future__ import annotations


class HashtagLookupError(Exception):
    """Base error for hashtag endpoint failures."""


class HashtagTransportError(HashtagLookupError):
    """The request never produced an HTTP response (DNS, connect, read...)."""


class HashtagResponseError(HashtagLookupError):
    """The endpoint answered with an error status or an unusable payload."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
