"""Get-or-create resolution for tenants, databases and collections.

Every resource goes through the same steps:

1. ``GET`` the resource at its scoped path; a success is decoded and returned.
2. Otherwise look for a not-found marker in the body. The status code alone
   is not trusted: the service has been seen answering ``500`` with
   ``"NotFoundError('Tenant x not found')"``.
3. On not-found, ``POST`` ``{name}`` (plus ``tenant`` for a database) to the
   parent endpoint. A failed creation raises ``CreateFailedError``, except
   when the resource turns out to exist already (another caller won the
   race): then it is read back once.
4. Anything else raises ``ProtocolError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from vectormem.vectorstore.errors import CreateFailedError, DecodeError, ProtocolError
from vectormem.vectorstore.paths import build_url, scope_params
from vectormem.vectorstore.schemas import Collection, Database, ResourceKind, Tenant
from vectormem.vectorstore.transport import decode_object, send

logger = logging.getLogger(__name__)

NOT_FOUND_MARKERS = ("not found", "does not exist")
ALREADY_EXISTS_MARKERS = ("already exists", "uniqueconstrainterror")

Resource = Tenant | Database | Collection


def is_not_found(resp: httpx.Response) -> bool:
    """True when a failed lookup means the resource does not exist."""
    if resp.status_code == httpx.codes.NOT_FOUND:
        return True
    body = resp.text.lower()
    return any(marker in body for marker in NOT_FOUND_MARKERS)


def is_already_exists(resp: httpx.Response) -> bool:
    """True when a failed creation means the resource exists already."""
    if resp.status_code == httpx.codes.CONFLICT:
        return True
    body = resp.text.lower()
    return any(marker in body for marker in ALREADY_EXISTS_MARKERS)


@dataclass(frozen=True)
class _Route:
    lookup: httpx.URL
    create: httpx.URL
    payload: dict[str, Any]


class ResourceResolver:
    """Resolves resources inside one tenant/database scope.

    Stateless apart from its immutable configuration, so one resolver can
    serve concurrent callers. Nothing prevents two callers from creating the
    same resource at once; the loser reads the winner's resource back.
    """

    def __init__(
        self,
        http: httpx.Client,
        base_url: httpx.URL,
        tenant: str,
        database: str,
    ):
        self._http = http
        self._base_url = base_url
        self.tenant = tenant
        self.database = database

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def ensure(self, kind: ResourceKind | str, name: str) -> Resource:
        """Return the named resource, creating it when it does not exist.

        Collections are returned unbound; the caller attaches its client.

        Raises:
            CreateFailedError: The resource was missing and creating it failed.
            ProtocolError: The lookup failed for another reason.
            DecodeError: A response body could not be decoded.
            TransportError: The service could not be reached.
        """
        kind = ResourceKind(kind)
        route = self._route(kind, name)

        resp = send(self._http, "GET", route.lookup)
        if resp.is_success:
            return self._decode(kind, resp)

        if not is_not_found(resp):
            raise ProtocolError(
                resp.status_code,
                f"looking up {kind} '{name}': non-supported HTTP status: {resp.status_code}",
            )

        logger.info("%s '%s' not found, creating it", kind.capitalize(), name)
        return self._create(kind, name, route)

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _route(self, kind: ResourceKind, name: str) -> _Route:
        if kind is ResourceKind.TENANT:
            return _Route(
                lookup=build_url(self._base_url, "tenants", name),
                create=build_url(self._base_url, "tenants"),
                payload={"name": name},
            )
        if kind is ResourceKind.DATABASE:
            params = scope_params(self.tenant)
            return _Route(
                lookup=build_url(self._base_url, "databases", name, params=params),
                create=build_url(self._base_url, "databases", params=params),
                payload={"name": name, "tenant": self.tenant},
            )
        params = scope_params(self.tenant, self.database)
        return _Route(
            lookup=build_url(self._base_url, "collections", name, params=params),
            create=build_url(self._base_url, "collections", params=params),
            payload={"name": name},
        )

    def _create(self, kind: ResourceKind, name: str, route: _Route) -> Resource:
        resp = send(self._http, "POST", route.create, route.payload)

        if not resp.is_success:
            if is_already_exists(resp):
                return self._reread(kind, name, route, resp.status_code)
            raise CreateFailedError(kind, name, resp.status_code)

        logger.info("Created %s '%s'", kind, name)

        if kind is ResourceKind.TENANT:
            return Tenant(name=name)
        if kind is ResourceKind.DATABASE:
            return Database(name=name, tenant=self.tenant)
        return self._decode(kind, resp)

    def _reread(
        self, kind: ResourceKind, name: str, route: _Route, create_status: int
    ) -> Resource:
        logger.info("%s '%s' was created concurrently, reading it back", kind.capitalize(), name)
        resp = send(self._http, "GET", route.lookup)
        if not resp.is_success:
            raise CreateFailedError(kind, name, create_status)
        return self._decode(kind, resp)

    def _decode(self, kind: ResourceKind, resp: httpx.Response) -> Resource:
        data = decode_object(resp)
        try:
            if kind is ResourceKind.TENANT:
                return Tenant(name=data["name"])
            if kind is ResourceKind.DATABASE:
                return Database(
                    name=data["name"],
                    tenant=data.get("tenant", self.tenant),
                    id=data.get("id"),
                )
            if not data["id"]:
                raise DecodeError(f"{kind} response has no id")
            return Collection(
                name=data["name"],
                id=data["id"],
                tenant=data.get("tenant", self.tenant),
                database=data.get("database", self.database),
                metadata=data.get("metadata"),
            )
        except KeyError as exc:
            raise DecodeError(f"{kind} response is missing field {exc}") from exc
