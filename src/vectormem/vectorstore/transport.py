"""Single-request helpers over ``httpx``: send, log, map errors, decode."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from vectormem.vectorstore.errors import ClientClosedError, DecodeError, TransportError

logger = logging.getLogger(__name__)


def send(
    http: httpx.Client,
    method: str,
    url: httpx.URL,
    payload: Any = None,
) -> httpx.Response:
    """Send one request and return the response, whatever its status.

    Raises:
        TransportError: The request got no usable HTTP response.
        ClientClosedError: The underlying ``httpx.Client`` is closed.
    """
    if http.is_closed:
        raise ClientClosedError("the vector store client has been closed")

    try:
        resp = http.request(method, url, json=payload)
    except httpx.RequestError as exc:
        raise TransportError(f"{method} {url} failed: {exc}") from exc

    logger.debug("%s %s -> %d", method, url, resp.status_code)
    return resp


def decode_json(resp: httpx.Response) -> Any:
    """Parse a response body as JSON.

    Raises:
        DecodeError: The body is not valid JSON.
    """
    try:
        return resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeError(
            f"invalid JSON from {resp.request.method} {resp.request.url}: {exc}"
        ) from exc


def decode_object(resp: httpx.Response) -> dict[str, Any]:
    """Parse a response body that must be a JSON object."""
    data = decode_json(resp)
    if not isinstance(data, dict):
        raise DecodeError(
            f"expected a JSON object from {resp.request.url}, got {type(data).__name__}"
        )
    return data
