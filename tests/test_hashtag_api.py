from __future__ import annotations

import httpx
import pytest

from hashtag_lookup.errors import HashtagResponseError, HashtagTransportError
from hashtag_lookup.models.hashtags import CANCELLED, Resolved
from hashtag_lookup.tools.hashtag_api import HashtagApiClient


class _FakeResponse:
    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        return None

    def json(self):
        return self._payload


def _client(**kwargs) -> HashtagApiClient:
    kwargs.setdefault("base_url", "https://forum.example.com/")
    kwargs.setdefault("api_key", "")
    kwargs.setdefault("api_username", "")
    return HashtagApiClient(**kwargs)


@pytest.mark.asyncio
async def test_search_sends_term_and_order(monkeypatch):
    captured: list[dict] = []

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        captured.append({"url": url, **kwargs})
        return _FakeResponse(
            {
                "results": [
                    {
                        "text": "Development",
                        "ref": "dev",
                        "relative_url": "/c/dev/4",
                        "icon": "folder",
                        "type": "category",
                        "slug": "dev",
                    }
                ]
            }
        )

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    client = _client()
    outcome = await client.search("de", ["category", "tag"])
    await client.aclose()

    assert isinstance(outcome, Resolved)
    assert outcome.items[0].ref == "dev"
    assert outcome.items[0].relative_url == "/c/dev/4"
    assert captured[0]["url"] == "https://forum.example.com/hashtags/search.json"
    assert captured[0]["params"] == [
        ("term", "de"),
        ("order[]", "category"),
        ("order[]", "tag"),
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"results": []}, {}, {"results": None}])
async def test_search_without_results_is_cancelled(monkeypatch, payload):
    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        return _FakeResponse(payload)

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    client = _client()
    assert await client.search("nothing", ["category"]) is CANCELLED
    await client.aclose()


@pytest.mark.asyncio
async def test_lookup_groups_items_by_type_and_skips_malformed(monkeypatch):
    captured: list[dict] = []

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        captured.append({"url": url, **kwargs})
        return _FakeResponse(
            {
                "category": [
                    {"text": "Dev", "ref": "dev", "relative_url": "/c/dev", "slug": "dev", "icon": "folder"},
                    {"no_text": True},
                ],
                "tag": [{"text": "bug", "ref": "bug", "relative_url": "/tag/bug", "slug": "bug", "icon": "tag"}],
                "meta": "ignored",
            }
        )

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    client = _client()
    resolved = await client.lookup(["dev", "bug"], ["category", "tag"])
    await client.aclose()

    assert set(resolved) == {"category", "tag"}
    assert [item.ref for item in resolved["category"]] == ["dev"]
    assert resolved["tag"][0].relative_url == "/tag/bug"
    assert captured[0]["url"] == "https://forum.example.com/hashtags"
    assert captured[0]["params"] == [
        ("slugs[]", "dev"),
        ("slugs[]", "bug"),
        ("order[]", "category"),
        ("order[]", "tag"),
    ]


@pytest.mark.asyncio
async def test_api_credentials_are_sent_as_headers(monkeypatch):
    captured: list[dict] = []

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        captured.append(kwargs)
        return _FakeResponse({"results": []})

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    client = _client(api_key="secret", api_username="system")
    await client.search("x", [])
    await client.aclose()

    assert captured[0]["headers"]["Api-Key"] == "secret"
    assert captured[0]["headers"]["Api-Username"] == "system"


@pytest.mark.asyncio
async def test_http_error_raises_response_error(monkeypatch):
    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        return httpx.Response(503, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    client = _client()
    with pytest.raises(HashtagResponseError) as excinfo:
        await client.search("dev", ["category"])
    await client.aclose()

    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_connect_failure_raises_transport_error(monkeypatch):
    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    client = _client()
    with pytest.raises(HashtagTransportError):
        await client.lookup(["dev"], ["category"])
    await client.aclose()


@pytest.mark.asyncio
async def test_non_object_lookup_payload_is_rejected(monkeypatch):
    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        return _FakeResponse(["not", "a", "mapping"])

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    client = _client()
    with pytest.raises(HashtagResponseError):
        await client.lookup(["dev"], ["category"])
    await client.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [httpx.DecodingError("bad gzip"), httpx.TooManyRedirects("redirect loop")],
)
async def test_other_request_errors_raise_transport_error(monkeypatch, error):
    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        raise error

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    client = _client()
    with pytest.raises(HashtagTransportError):
        await client.search("dev", ["category"])
    await client.aclose()
