"""Shared pytest fixtures for Giftworks tests."""

from __future__ import annotations

import io
import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Generator, Union

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from giftworks.api.main import create_app
from giftworks.core.config import GiftworksConfig

IMAGEPIPELINE = "https://api.imagepipeline.io"
PRINTIFY = "https://api.printify.com/v1"
TINIFY = "https://api.tinify.com/shrink"
IMAGEKIT = "https://upload.imagekit.io/api/v1/files/upload"
API_KEY = "test-server-key"

Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeUpstream:
    """Programmable stand-in for every outbound API.

    Replies are registered per ``(method, url)``.  When several replies are
    queued they are served in order and the last one repeats, which is how
    poll sequences such as PENDING, PENDING, SUCCESS are expressed.
    """

    def __init__(self) -> None:
        self.replies: dict[tuple[str, str], list[Reply]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, url: str, *replies: Reply) -> FakeUpstream:
        self.replies[(method.upper(), url)] = list(replies)
        return self

    def json(self, method: str, url: str, *bodies: Any, status: int = 200) -> FakeUpstream:
        return self.on(method, url, *(_json_reply(body, status) for body in bodies))

    def calls(self, method: str, url: str) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method.upper() and _strip_query(request.url) == url
        ]

    def sent_json(self, method: str, url: str, index: int = -1) -> Any:
        return json.loads(self.calls(method, url)[index].content)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.replies.get((request.method, _strip_query(request.url)))
        if not queue:
            return httpx.Response(404, json={"error": f"no fake for {request.method} {request.url}"})
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        return reply(request) if callable(reply) else reply


def _json_reply(body: Any, status: int) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status, json=body)


def _strip_query(url: httpx.URL) -> str:
    return str(url.copy_with(query=None))


def png_bytes(size: tuple[int, int] = (64, 48), color=(200, 30, 30, 255)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def watermark_asset(temp_dir: Path) -> Path:
    """A small opaque white PNG watermark."""
    path = temp_dir / "watermark.png"
    Image.new("RGBA", (20, 10), (255, 255, 255, 255)).save(path, format="PNG")
    return path


@pytest.fixture
def make_config() -> Callable[..., GiftworksConfig]:
    """Factory for test configurations.

    Polling and keep-alive delays are zero so tests never sleep.  The
    environment and ``.env`` files are ignored except where a test overrides
    fields explicitly.
    """

    def _make(**overrides: Any) -> GiftworksConfig:
        values: dict[str, Any] = {
            "server_api_key": API_KEY,
            "imagepipeline_api_key": "ip-key",
            "poll_interval": 0.0,
            "poll_max_attempts": 5,
            "poll_timeout": 30.0,
            "keep_alive_delay": 0.0,
            "t2i_model_id": "sdxl-test",
            "t2i_samples": 2,
        }
        values.update(overrides)
        return GiftworksConfig(_env_file=None, **values)

    return _make


@pytest.fixture
def test_config(make_config) -> GiftworksConfig:
    return make_config()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def http_client(upstream: FakeUpstream) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))


@pytest.fixture
def build_client(http_client: httpx.AsyncClient) -> Callable[[GiftworksConfig], TestClient]:
    """Build a TestClient for an app wired to the fake upstream."""

    def _build(config: GiftworksConfig) -> TestClient:
        return TestClient(create_app(config, http_client=http_client))

    return _build


@pytest.fixture
def test_client(build_client, test_config: GiftworksConfig) -> TestClient:
    return build_client(test_config)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"x-api-key": API_KEY}
