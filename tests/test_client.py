"""Tests for the Chroma client — add, query, remove, self-test, lifecycle."""

from __future__ import annotations

import gc
import json

import httpx
import pytest

from vectormem.config import ChromaSettings, Settings
from vectormem.vectorstore.client import ChromaClient
from vectormem.vectorstore.errors import (
    ClientClosedError,
    DecodeError,
    InsufficientResultsError,
    InvalidVectorError,
    MalformedConfigError,
    ProtocolError,
    TransportError,
    UnsupportedFilterValueTypeError,
)
from vectormem.vectorstore.filters import And, FieldComparison, Operator, contains
from vectormem.vectorstore.schemas import Collection, Entry, QueryRequest

from conftest import BASE_URL, FakeChroma

COLL_ID = "0f6a5b9e-1c2d-4e3f-8a9b-0c1d2e3f4a5b"


@pytest.fixture
def memories(client: ChromaClient, fake: FakeChroma, collection_payload) -> Collection:
    fake.on("GET", "/collections/memories", 200, collection_payload)
    coll = client.ensure_collection("memories")
    fake.requests.clear()
    return coll


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_malformed_url(self):
        with pytest.raises(MalformedConfigError):
            ChromaClient("not a url")

    def test_from_settings(self):
        settings = Settings(chroma=ChromaSettings(url="http://db:8000", tenant="t", database="d"))
        with ChromaClient.from_settings(settings) as c:
            assert str(c.base_url) == "http://db:8000/api/v1"
            assert (c.tenant, c.database) == ("t", "d")

    def test_defaults(self):
        with ChromaClient("http://localhost:8000") as c:
            assert c.tenant == "default_tenant"
            assert c.database == "default_database"


# ---------------------------------------------------------------------------
# Add
# ---------------------------------------------------------------------------


class TestAdd:
    def test_transposed_body(self, memories: Collection, fake: FakeChroma):
        fake.on("POST", f"/collections/{COLL_ID}/add", 201, True)

        memories.add([
            Entry(id="a", document="first", embedding=[0.1, 0.2], metadata={"k": 1}),
            Entry(id="b", document="second", embedding=[0.3, 0.4]),
            Entry(id="c", document="third", embedding=[0.5, 0.6], metadata={"k": 3}),
        ])

        (req,) = fake.calls("POST")
        body = json.loads(req.content)
        assert body == {
            "embeddings": [[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]],
            "documents": ["first", "second", "third"],
            "metadatas": [{"k": 1}, None, {"k": 3}],
            "ids": ["a", "b", "c"],
        }

    @pytest.mark.parametrize("status", [200, 400, 422, 500])
    def test_non_201_is_protocol_error(self, memories: Collection, fake: FakeChroma, status):
        fake.on("POST", f"/collections/{COLL_ID}/add", status, {"error": "nope"})

        with pytest.raises(ProtocolError) as excinfo:
            memories.add([Entry(id="a", embedding=[1.0])])
        assert excinfo.value.status == status

    def test_empty_sends_nothing(self, memories: Collection, fake: FakeChroma):
        memories.add([])
        assert fake.requests == []


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class TestQuery:
    def test_flattens_results(self, memories: Collection, fake: FakeChroma, query_payload):
        fake.on("POST", f"/collections/{COLL_ID}/query", 200, query_payload)

        results = memories.query(QueryRequest(embeddings=[[1.0, 1.0, 0.99]]))

        assert [(e.id, e.document, e.distance) for e in results] == [
            ("h1", "hello", 1.0e-6),
            ("h2", "hello there", 0.25),
        ]
        assert results[1].metadata == {"createdAt": 1234}
        assert all(e.embedding is None for e in results)

    def test_minimal_payload(self, memories: Collection, fake: FakeChroma, query_payload):
        fake.on("POST", f"/collections/{COLL_ID}/query", 200, query_payload)

        memories.query_embedding([1, 2, 3])

        body = json.loads(fake.calls("POST")[0].content)
        assert body == {"query_embeddings": [[1.0, 2.0, 3.0]]}

    def test_filters_and_limit(self, memories: Collection, fake: FakeChroma, query_payload):
        fake.on("POST", f"/collections/{COLL_ID}/query", 200, query_payload)

        memories.query_embedding(
            [0.5],
            n_results=3,
            where=And(
                FieldComparison("speaker", Operator.EQ, "bob"),
                FieldComparison("createdAt", Operator.GTE, 100),
            ),
            where_document=contains("hello"),
        )

        body = json.loads(fake.calls("POST")[0].content)
        assert body["n_results"] == 3
        assert body["where"] == {
            "$and": [{"speaker": {"$eq": "bob"}}, {"createdAt": {"$gte": 100}}]
        }
        assert body["where_document"] == {"$contains": "hello"}

    def test_zero_batches(self, memories: Collection, fake: FakeChroma):
        fake.on(
            "POST", f"/collections/{COLL_ID}/query", 200,
            {"ids": [], "documents": [], "metadatas": [], "distances": [], "embeddings": None},
        )
        with pytest.raises(InsufficientResultsError):
            memories.query_embedding([1.0])

    def test_non_200(self, memories: Collection, fake: FakeChroma):
        fake.on("POST", f"/collections/{COLL_ID}/query", 500, {"error": "boom"})
        with pytest.raises(ProtocolError) as excinfo:
            memories.query_embedding([1.0])
        assert excinfo.value.status == 500

    def test_non_finite_filter_fails_before_sending(self, memories: Collection, fake: FakeChroma):
        with pytest.raises(UnsupportedFilterValueTypeError):
            memories.query_embedding(
                [1.0], where=FieldComparison("score", Operator.GT, float("nan"))
            )
        assert fake.requests == []

    def test_non_finite_embedding_fails_before_sending(
        self, memories: Collection, fake: FakeChroma
    ):
        with pytest.raises(InvalidVectorError):
            memories.query_embedding([1.0, float("inf")])
        with pytest.raises(InvalidVectorError):
            memories.add([Entry(id="a", embedding=[float("nan")])])
        assert fake.requests == []

    def test_invalid_json(self, memories: Collection, fake: FakeChroma):
        fake.on("POST", f"/collections/{COLL_ID}/query", 200, text="{not json")
        with pytest.raises(DecodeError):
            memories.query_embedding([1.0])


# ---------------------------------------------------------------------------
# Remove / transport / lifetime
# ---------------------------------------------------------------------------


class TestRemoveCollection:
    def test_delete_scoped(self, client: ChromaClient, fake: FakeChroma):
        fake.on("DELETE", "/collections/memories", 200, None)

        client.remove_collection("memories")

        (req,) = fake.calls("DELETE")
        assert (req.url.params["tenant"], req.url.params["database"]) == ("npcs", "npcs")

    def test_wrong_status(self, client: ChromaClient, fake: FakeChroma):
        fake.on("DELETE", "/collections/memories", 500, {"error": "does not exist"})
        with pytest.raises(ProtocolError) as excinfo:
            client.remove_collection("memories")
        assert excinfo.value.status == 500


class TestTransportAndLifetime:
    def test_transport_error(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with ChromaClient(BASE_URL, transport=httpx.MockTransport(refuse)) as c:
            with pytest.raises(TransportError):
                c.ensure_tenant()

    def test_bad_content_encoding_is_transport_error(self):
        def garbled(request: httpx.Request) -> httpx.Response:
            raise httpx.DecodingError("invalid gzip stream", request=request)

        with ChromaClient(BASE_URL, transport=httpx.MockTransport(garbled)) as c:
            with pytest.raises(TransportError):
                c.ensure_tenant()

    def test_closed_client(self, client: ChromaClient, memories: Collection):
        client.close()

        with pytest.raises(ClientClosedError):
            memories.add([Entry(id="a")])
        with pytest.raises(ClientClosedError):
            client.ensure_tenant()

    def test_collection_does_not_keep_client_alive(self, fake: FakeChroma, collection_payload):
        fake.on("GET", "/collections/memories", 200, collection_payload)
        c = ChromaClient(BASE_URL, transport=httpx.MockTransport(fake.handler))
        coll = c.ensure_collection("memories")

        c.close()
        del c
        gc.collect()

        with pytest.raises(ClientClosedError):
            coll.query_embedding([1.0])

    def test_unbound_collection(self):
        coll = Collection(name="loose", id="x")
        with pytest.raises(ClientClosedError):
            coll.add([Entry(id="a")])


# ---------------------------------------------------------------------------
# Self-test and end-to-end flow
# ---------------------------------------------------------------------------


class TestCheck:
    def test_runs_full_cycle(self, client: ChromaClient, fake: FakeChroma, query_payload):
        scratch = {"name": "test_collection", "id": "scratch-id"}
        fake.on("GET", "/tenants/npcs", 200, {"name": "npcs"})
        fake.on("GET", "/databases/npcs", 200, {"name": "npcs", "tenant": "npcs"})
        fake.on("GET", "/collections/test_collection", 200, scratch)
        fake.on("POST", "/collections/scratch-id/add", 201, True)
        fake.on("POST", "/collections/scratch-id/query", 200, query_payload)
        fake.on("DELETE", "/collections/test_collection", 200, None)

        results = client.check()

        assert len(results) == 2
        assert [r.method for r in fake.requests] == ["GET", "GET", "GET", "POST", "POST", "DELETE"]


class TestEndToEnd:
    def test_ensure_add_query(self, client: ChromaClient, fake: FakeChroma, query_payload):
        fake.on("GET", "/tenants/npcs", 404, {"error": "NotFoundError('Tenant npcs not found')"})
        fake.on("POST", "/tenants", 200, {"name": "npcs"})
        fake.on("GET", "/collections/memories", 200, {"name": "memories", "id": COLL_ID})
        fake.on("POST", f"/collections/{COLL_ID}/add", 201, True)
        fake.on("POST", f"/collections/{COLL_ID}/query", 200, query_payload)

        tenant = client.ensure_tenant()
        assert tenant.name == "npcs"

        memories = client.ensure_collection("memories")
        memories.add([Entry(id="h1", document="hello", embedding=[1, 1, 1])])
        add_body = json.loads(fake.calls("POST", f"/collections/{COLL_ID}/add")[0].content)
        assert add_body == {
            "embeddings": [[1, 1, 1]],
            "documents": ["hello"],
            "metadatas": [None],
            "ids": ["h1"],
        }

        results = memories.query(QueryRequest(embeddings=[[1, 1, 0.99]]))
        assert [r.distance for r in results] == query_payload["distances"][0]
        assert [r.document for r in results] == query_payload["documents"][0]
