from __future__ import annotations

import time
from typing import Any

import httpx
from pydantic import ValidationError

from hashtag_lookup.config import settings
from hashtag_lookup.errors import HashtagResponseError, HashtagTransportError
from hashtag_lookup.models.hashtags import (
    HashtagItem,
    SearchOutcome,
    SearchPayload,
    outcome_from_payload,
)
from hashtag_lookup.services import logger as log_service


class HashtagApiClient:
    """Thin async client for the hashtag search and lookup endpoints.

    When no ``http_client`` is given the instance owns one and closes it in
    :meth:`aclose`.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        search_path: str | None = None,
        lookup_path: str | None = None,
        api_key: str | None = None,
        api_username: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = (base_url or settings.hashtag_base_url).rstrip("/")
        self.search_path = search_path or settings.hashtag_search_path
        self.lookup_path = lookup_path or settings.hashtag_lookup_path
        self._headers = {"Accept": "application/json"}
        key = settings.hashtag_api_key if api_key is None else api_key
        username = settings.hashtag_api_username if api_username is None else api_username
        if key:
            self._headers["Api-Key"] = key
        if username:
            self._headers["Api-Username"] = username
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout or settings.hashtag_http_timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def search(self, term: str, order: list[str]) -> SearchOutcome:
        """Search entities whose slug starts with ``term``, ranked by ``order``."""
        params: list[tuple[str, str]] = [("term", term)]
        params.extend(("order[]", item_type) for item_type in order)
        payload = await self._get_json(self.search_path, params)
        try:
            parsed = SearchPayload.model_validate(payload)
        except ValidationError as exc:
            raise HashtagResponseError(f"Malformed search payload: {exc}") from exc
        return outcome_from_payload(parsed)

    async def lookup(self, slugs: list[str], order: list[str]) -> dict[str, list[HashtagItem]]:
        """Resolve many slugs at once; returns entities grouped by type."""
        params: list[tuple[str, str]] = [("slugs[]", slug) for slug in slugs]
        params.extend(("order[]", item_type) for item_type in order)
        payload = await self._get_json(self.lookup_path, params)
        if not isinstance(payload, dict):
            raise HashtagResponseError("Lookup payload is not an object")

        resolved: dict[str, list[HashtagItem]] = {}
        for item_type, raw_items in payload.items():
            if not isinstance(raw_items, list):
                continue
            items: list[HashtagItem] = []
            for raw in raw_items:
                try:
                    items.append(HashtagItem.model_validate(raw))
                except ValidationError:
                    continue
            resolved[item_type] = items
        return resolved

    async def _get_json(self, path: str, params: list[tuple[str, str]]) -> Any:
        url = f"{self.base_url}{path}"
        t0 = time.monotonic()
        try:
            response = await self._client.get(url, params=params, headers=self._headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.RequestError as exc:
            log_service.log_http_call(path, "transport_error", error=str(exc))
            raise HashtagTransportError(f"{path}: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            log_service.log_http_call(path, "http_error", status_code=status_code, error=str(exc))
            raise HashtagResponseError(f"{path}: {exc}", status_code=status_code) from exc
        except ValueError as exc:
            log_service.log_http_call(path, "bad_json", error=str(exc))
            raise HashtagResponseError(f"{path}: invalid JSON") from exc

        log_service.log_http_call(
            path,
            "success",
            duration_ms=int((time.monotonic() - t0) * 1000),
            status_code=response.status_code,
        )
        return payload
