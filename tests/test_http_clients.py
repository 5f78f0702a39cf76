"""Tests for HTTP-based adapters."""

import asyncio

import httpx
import pytest
from openai import APIStatusError

from statickit.adapters.httpx_image_fetcher import HttpxImageFetcher
from statickit.adapters.httpx_key_clients import DashScopeKeyClient, GeminiKeyClient
from statickit.adapters.openai_key_client import OpenAIKeyClient
from statickit.domain.images import ImageFetchError
from statickit.services.object_urls import ObjectUrlRegistry


class _FakeModels:
    def __init__(self, error: Exception | None) -> None:
        self.error = error

    async def list(self):  # type: ignore[no-untyped-def]
        if self.error is not None:
            raise self.error
        return []


class _FakeOpenAI:
    def __init__(self, error: Exception | None = None) -> None:
        self.models = _FakeModels(error)
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def _status_error(status_code: int) -> APIStatusError:
    request = httpx.Request("GET", "https://api.openai.com/v1/models")
    response = httpx.Response(status_code, request=request)
    return APIStatusError("rejected", response=response, body=None)


def test_gemini_client_sends_key_as_query_param() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"models": []})

    client = GeminiKeyClient(
        base_url="https://gemini.test/v1beta",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    status_code = asyncio.run(client.check_key("AIzaSyExample"))

    assert status_code == 200
    assert seen[0].url.path == "/v1beta/models"
    assert seen[0].url.params["key"] == "AIzaSyExample"


def test_dashscope_client_sends_bearer_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer sk-dashscope"
        return httpx.Response(401)

    client = DashScopeKeyClient(
        base_url="https://dashscope.test/api/v1",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    assert asyncio.run(client.check_key("sk-dashscope")) == 401


def test_openai_client_reports_status_codes() -> None:
    created: list[_FakeOpenAI] = []

    def factory(error: Exception | None):  # type: ignore[no-untyped-def]
        def build(api_key: str) -> _FakeOpenAI:
            fake = _FakeOpenAI(error)
            created.append(fake)
            return fake

        return build

    ok = OpenAIKeyClient(client_factory=factory(None))  # type: ignore[arg-type]
    rejected = OpenAIKeyClient(
        client_factory=factory(_status_error(401))  # type: ignore[arg-type]
    )

    assert asyncio.run(ok.check_key("sk-good")) == 200
    assert asyncio.run(rejected.check_key("sk-bad")) == 401
    assert all(fake.closed for fake in created)


def test_image_fetcher_downloads_http_images() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/missing.png":
            return httpx.Response(404)
        return httpx.Response(
            200, content=b"png-bytes", headers={"content-type": "image/png; q=1"}
        )

    fetcher = HttpxImageFetcher(
        object_urls=ObjectUrlRegistry(),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    assert asyncio.run(fetcher.fetch("https://cdn.test/image.png")) == (
        b"png-bytes",
        "image/png",
    )
    with pytest.raises(ImageFetchError):
        asyncio.run(fetcher.fetch("https://cdn.test/missing.png"))


def test_image_fetcher_decodes_data_urls() -> None:
    fetcher = HttpxImageFetcher(
        object_urls=ObjectUrlRegistry(),
        http_client=httpx.AsyncClient(),
    )

    assert asyncio.run(fetcher.fetch("data:image/png;base64,aGVsbG8=")) == (
        b"hello",
        "image/png",
    )
    assert asyncio.run(fetcher.fetch("data:text/plain,a%20b")) == (
        b"a b",
        "text/plain",
    )
    with pytest.raises(ImageFetchError):
        asyncio.run(fetcher.fetch("data:image/png;base64,@@@"))
    with pytest.raises(ImageFetchError):
        asyncio.run(fetcher.fetch("ftp://example.com/image.png"))
