"""Chroma REST client — create-on-demand resources, add and query."""

from vectormem.vectorstore.client import ChromaClient
from vectormem.vectorstore.errors import (
    ClientClosedError,
    CreateFailedError,
    DecodeError,
    InsufficientResultsError,
    InvalidVectorError,
    MalformedConfigError,
    ProtocolError,
    TransportError,
    UnsupportedFilterValueTypeError,
    VectorStoreError,
)
from vectormem.vectorstore.filters import (
    And,
    DocumentFilter,
    DocumentOperator,
    FieldComparison,
    Operator,
    Or,
    contains,
    not_contains,
)
from vectormem.vectorstore.schemas import (
    Collection,
    Database,
    Entry,
    QueryRequest,
    ResourceKind,
    Tenant,
)

__all__ = [
    "And",
    "ChromaClient",
    "ClientClosedError",
    "Collection",
    "CreateFailedError",
    "Database",
    "DecodeError",
    "DocumentFilter",
    "DocumentOperator",
    "Entry",
    "FieldComparison",
    "InsufficientResultsError",
    "InvalidVectorError",
    "MalformedConfigError",
    "Operator",
    "Or",
    "ProtocolError",
    "QueryRequest",
    "ResourceKind",
    "Tenant",
    "TransportError",
    "UnsupportedFilterValueTypeError",
    "VectorStoreError",
    "contains",
    "not_contains",
]
