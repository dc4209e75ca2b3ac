"""URL construction for the REST API.

``httpx.URL`` is immutable, so every helper here returns a new URL and the
client's base URL can be shared freely between calls and threads.
"""

from __future__ import annotations

from collections.abc import Mapping
from urllib.parse import quote

import httpx

from vectormem.vectorstore.errors import MalformedConfigError

API_ROOT = "/api/v1"


def parse_base_url(raw: str) -> httpx.URL:
    """Validate a configured service address and append the API root.

    Args:
        raw: Service address, e.g. ``http://localhost:8000``.

    Returns:
        The API base URL, e.g. ``http://localhost:8000/api/v1``.

    Raises:
        MalformedConfigError: If the address is not an absolute http(s) URL.
    """
    try:
        url = httpx.URL(raw.strip())
    except (httpx.InvalidURL, TypeError, AttributeError) as exc:
        raise MalformedConfigError(f"Error parsing base URL {raw!r}: {exc}") from exc

    if url.scheme not in ("http", "https"):
        raise MalformedConfigError(f"Base URL {raw!r} must use http or https")
    if not url.host:
        raise MalformedConfigError(f"Base URL {raw!r} has no host")

    if url.query or url.fragment:
        raise MalformedConfigError(f"Base URL {raw!r} must not carry a query or fragment")

    return url.copy_with(path=url.path.rstrip("/") + API_ROOT)


def build_url(
    base: httpx.URL,
    *segments: str,
    params: Mapping[str, str] | None = None,
) -> httpx.URL:
    """Append path segments and query parameters to ``base``.

    Each segment is percent-escaped, so a resource name containing ``/``
    stays a single path level. ``base`` itself is left untouched.
    """
    path = base.path.rstrip("/")
    for segment in segments:
        path += "/" + quote(str(segment), safe="")

    url = base.copy_with(path=path)
    if params:
        url = url.copy_merge_params(dict(params))
    return url


def scope_params(tenant: str, database: str | None = None) -> dict[str, str]:
    """Query parameters scoping a request to a tenant (and database)."""
    params = {"tenant": tenant}
    if database is not None:
        params["database"] = database
    return params
