"""Data models for vector store resources and entries."""

from __future__ import annotations

import weakref
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from vectormem.vectorstore.errors import ClientClosedError
from vectormem.vectorstore.filters import DocumentFilter, Where

if TYPE_CHECKING:
    from vectormem.vectorstore.client import ChromaClient


class ResourceKind(StrEnum):
    """Resources that can be resolved with create-on-demand semantics."""

    TENANT = "tenant"
    DATABASE = "database"
    COLLECTION = "collection"


@dataclass(frozen=True)
class Tenant:
    """Top-level namespace."""

    name: str


@dataclass(frozen=True)
class Database:
    """A database inside a tenant. ``id`` is assigned by the server."""

    name: str
    tenant: str | None = None
    id: str | None = None


@dataclass
class Entry:
    """One row of a collection.

    ``distance`` is only set on query results; ``embedding`` is never set on
    them (the service does not return embeddings from a query).
    """

    id: str
    document: str = ""
    embedding: Sequence[float] | None = None
    metadata: dict[str, Any] | None = None
    distance: float | None = None


@dataclass
class QueryRequest:
    """Similarity search parameters.

    Attributes:
        embeddings: Query vectors. Only the results of the first one are
            returned.
        n_results: Maximum results; the service default applies when unset.
        where: Metadata filter.
        where_document: Document text filter.
    """

    embeddings: list[Sequence[float]]
    n_results: int | None = None
    where: Where | None = None
    where_document: DocumentFilter | None = None


@dataclass
class Collection:
    """A resolved collection, bound to the client that issued it.

    The client is held through a weak reference: a collection never keeps
    its client (and its connection pool) alive.
    """

    name: str
    id: str
    tenant: str | None = None
    database: str | None = None
    metadata: dict[str, Any] | None = None
    _client_ref: weakref.ReferenceType[ChromaClient] | None = field(
        default=None, repr=False, compare=False
    )

    def bind(self, client: ChromaClient) -> Collection:
        self._client_ref = weakref.ref(client)
        return self

    @property
    def client(self) -> ChromaClient:
        client = self._client_ref() if self._client_ref is not None else None
        if client is None:
            raise ClientClosedError(
                f"collection '{self.name}' is not bound to a live client"
            )
        return client

    def add(self, entries: Sequence[Entry]) -> None:
        """Add entries to this collection."""
        self.client.add(self, entries)

    def query(self, request: QueryRequest) -> list[Entry]:
        """Run a similarity search against this collection."""
        return self.client.query(self, request)

    def query_embedding(
        self,
        embedding: Sequence[float],
        n_results: int | None = None,
        where: Where | None = None,
        where_document: DocumentFilter | None = None,
    ) -> list[Entry]:
        """Shortcut for a single-vector query."""
        return self.query(
            QueryRequest(
                embeddings=[embedding],
                n_results=n_results,
                where=where,
                where_document=where_document,
            )
        )
