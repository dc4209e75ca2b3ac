"""Chroma REST client — resource resolution, add and query.

Usage::

    with ChromaClient("http://localhost:8000", tenant="npcs", database="npcs") as client:
        client.ensure_tenant()
        client.ensure_database()
        memories = client.ensure_collection("memories")
        memories.add([Entry(id="h1", document="hello", embedding=[1.0, 1.0, 1.0])])
        results = memories.query_embedding([1.0, 1.0, 0.99])
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

import httpx

from vectormem.vectorstore.errors import ClientClosedError, DecodeError, ProtocolError
from vectormem.vectorstore.filters import encode_document_filter, encode_where
from vectormem.vectorstore.lifecycle import Resource, ResourceResolver
from vectormem.vectorstore.paths import build_url, parse_base_url, scope_params
from vectormem.vectorstore.schemas import (
    Collection,
    Database,
    Entry,
    QueryRequest,
    ResourceKind,
    Tenant,
)
from vectormem.vectorstore.transport import decode_json, send
from vectormem.vectorstore.transpose import as_vector, batch_to_entries, entries_to_batch

if TYPE_CHECKING:
    from vectormem.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_TENANT = "default_tenant"
DEFAULT_DATABASE = "default_database"
DEFAULT_CHECK_COLLECTION = "test_collection"


class ChromaClient:
    """Client for one tenant/database scope of a Chroma server.

    Configuration is fixed at construction and the HTTP connection pool is
    thread-safe, so one client can be shared between threads. No request is
    retried and no timeout is added beyond the transport's own.
    """

    def __init__(
        self,
        base_url: str,
        tenant: str = DEFAULT_TENANT,
        database: str = DEFAULT_DATABASE,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = parse_base_url(base_url)
        self.tenant = tenant
        self.database = database

        client_kwargs: dict = {"transport": transport}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self._http = httpx.Client(**client_kwargs)
        self._resolver = ResourceResolver(self._http, self.base_url, tenant, database)

        logger.debug("Chroma client for %s (tenant=%s, database=%s)", self.base_url, tenant, database)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.BaseTransport | None = None,
    ) -> ChromaClient:
        """Build a client from the ``chroma`` section of the settings."""
        return cls(
            base_url=settings.chroma.url,
            tenant=settings.chroma.tenant,
            database=settings.chroma.database,
            timeout=settings.chroma.timeout,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the connection pool. Collections issued by this client stop working."""
        self._http.close()

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    def __enter__(self) -> ChromaClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Resource resolution
    # ------------------------------------------------------------------

    def ensure(self, kind: ResourceKind | str, name: str | None = None) -> Resource:
        """Get or create a tenant, database or collection.

        ``name`` defaults to the client's tenant/database for those kinds and
        is required for collections.
        """
        kind = ResourceKind(kind)
        if name is None:
            if kind is ResourceKind.TENANT:
                name = self.tenant
            elif kind is ResourceKind.DATABASE:
                name = self.database
            else:
                raise ValueError("a collection name is required")

        resource = self._resolver.ensure(kind, name)
        if isinstance(resource, Collection):
            resource.bind(self)
        return resource

    def ensure_tenant(self) -> Tenant:
        return self.ensure(ResourceKind.TENANT)

    def ensure_database(self) -> Database:
        return self.ensure(ResourceKind.DATABASE)

    def ensure_collection(self, name: str) -> Collection:
        """Get the named collection, creating it if needed."""
        return self.ensure(ResourceKind.COLLECTION, name)

    def remove_collection(self, name: str) -> None:
        """Delete a collection and everything in it.

        Raises:
            ProtocolError: The service did not answer 200.
        """
        url = build_url(
            self.base_url,
            "collections",
            name,
            params=scope_params(self.tenant, self.database),
        )
        resp = send(self._http, "DELETE", url)
        if resp.status_code != httpx.codes.OK:
            raise ProtocolError(
                resp.status_code,
                f"removing collection '{name}': wrong HTTP status: {resp.status_code}",
            )
        logger.info("Removed collection '%s'", name)

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def add(self, collection: Collection, entries: Sequence[Entry]) -> None:
        """Add entries to a collection.

        Raises:
            ProtocolError: The service did not answer 201.
        """
        if not entries:
            return

        url = build_url(self.base_url, "collections", self._collection_id(collection), "add")
        resp = send(self._http, "POST", url, entries_to_batch(entries))
        if resp.status_code != httpx.codes.CREATED:
            raise ProtocolError(
                resp.status_code,
                f"adding to collection '{collection.name}': HTTP status: {resp.status_code}",
            )
        logger.debug("Added %d entries to '%s'", len(entries), collection.name)

    def query(self, collection: Collection, request: QueryRequest) -> list[Entry]:
        """Similarity search; returns the results of the first query vector.

        Results come in ascending distance order, without embeddings.

        Raises:
            ProtocolError: The service did not answer 200.
            InsufficientResultsError: The response holds no result batch.
            DecodeError: The response body is malformed.
        """
        url = build_url(self.base_url, "collections", self._collection_id(collection), "query")

        payload: dict = {
            "query_embeddings": [as_vector(emb) for emb in request.embeddings],
        }
        if request.n_results is not None:
            payload["n_results"] = request.n_results
        if request.where is not None:
            payload["where"] = encode_where(request.where)
        if request.where_document is not None:
            payload["where_document"] = encode_document_filter(request.where_document)

        resp = send(self._http, "POST", url, payload)
        if resp.status_code != httpx.codes.OK:
            raise ProtocolError(
                resp.status_code,
                f"querying collection '{collection.name}': HTTP status: {resp.status_code}",
            )

        results = batch_to_entries(decode_json(resp))
        logger.debug("Query on '%s' returned %d entries", collection.name, len(results))
        return results

    # ------------------------------------------------------------------
    # Self-test
    # ------------------------------------------------------------------

    def check(self, collection_name: str = DEFAULT_CHECK_COLLECTION) -> list[Entry]:
        """Exercise every operation against the server.

        Resolves the tenant, the database and a scratch collection, adds a
        sample entry, queries it back and removes the scratch collection.

        Returns:
            The sample query results.
        """
        self.ensure_tenant()
        self.ensure_database()
        scratch = self.ensure_collection(collection_name)

        scratch.add([
            Entry(
                id="check-entry",
                document="check document",
                embedding=[1.0, 1.0, 1.0],
                metadata={"createdAt": 1234},
            )
        ])
        results = scratch.query_embedding([1.0, 1.0, 0.999])

        self.remove_collection(collection_name)
        return results

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _collection_id(self, collection: Collection) -> str:
        if self.is_closed:
            raise ClientClosedError("the vector store client has been closed")
        if not collection.id:
            raise DecodeError(f"collection '{collection.name}' has no server-assigned id")
        return collection.id
