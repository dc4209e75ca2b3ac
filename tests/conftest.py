"""Shared fixtures for tests — an in-process fake Chroma server, no network calls."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import httpx
import pytest

from vectormem.vectorstore.client import ChromaClient

BASE_URL = "http://chroma.test:8000"
API_ROOT = "/api/v1"


# ---------------------------------------------------------------------------
# Fake server
# ---------------------------------------------------------------------------


class FakeChroma:
    """Scripted responses keyed by (method, path), with a request log.

    Each route holds a queue of responses; the last one repeats once the
    others are used up. Unscripted requests get a 500.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], list[tuple[int, Any, str | None]]] = {}
        self.requests: list[httpx.Request] = []

    def on(
        self,
        method: str,
        path: str,
        status: int = 200,
        json_body: Any = None,
        text: str | None = None,
    ) -> FakeChroma:
        self._routes.setdefault((method, API_ROOT + path), []).append((status, json_body, text))
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(
                500, json={"error": f"unscripted {request.method} {request.url.path}"}
            )
        status, body, text = queue.pop(0) if len(queue) > 1 else queue[0]
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=body)

    def calls(self, method: str, path: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and (path is None or r.url.path == API_ROOT + path)
        ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake() -> FakeChroma:
    return FakeChroma()


@pytest.fixture
def client(fake: FakeChroma) -> Iterator[ChromaClient]:
    c = ChromaClient(
        BASE_URL,
        tenant="npcs",
        database="npcs",
        transport=httpx.MockTransport(fake.handler),
    )
    yield c
    c.close()


@pytest.fixture
def collection_payload() -> dict[str, Any]:
    return {
        "name": "memories",
        "id": "0f6a5b9e-1c2d-4e3f-8a9b-0c1d2e3f4a5b",
        "tenant": "npcs",
        "database": "npcs",
        "metadata": None,
    }


@pytest.fixture
def query_payload() -> dict[str, Any]:
    return {
        "ids": [["h1", "h2"]],
        "documents": [["hello", "hello there"]],
        "metadatas": [[None, {"createdAt": 1234}]],
        "distances": [[1.0e-6, 0.25]],
        "embeddings": None,
        "uris": None,
        "data": None,
    }
