"""Row ↔ column conversion for the batch wire format.

The service speaks in parallel arrays (``ids``, ``documents``, ...) while
callers work with one ``Entry`` per row.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from vectormem.vectorstore.errors import (
    DecodeError,
    InsufficientResultsError,
    InvalidVectorError,
)
from vectormem.vectorstore.schemas import Entry

_QUERY_FIELDS = ("ids", "documents", "metadatas", "distances")


def as_vector(embedding: Sequence[float]) -> list[float]:
    """Convert an embedding to a list of finite floats.

    Raises:
        InvalidVectorError: A component is not a number, or is nan or inf.
    """
    # works for lists, tuples and numpy arrays alike
    try:
        vector = [float(v) for v in embedding]
    except (TypeError, ValueError) as exc:
        raise InvalidVectorError(f"embedding is not a sequence of numbers: {exc}") from exc
    if not all(math.isfinite(v) for v in vector):
        raise InvalidVectorError("embedding contains nan or infinite values")
    return vector


def entries_to_batch(entries: Sequence[Entry]) -> dict[str, list[Any]]:
    """Transpose entries into the ``add`` request body.

    Returns four index-aligned arrays in input order. Missing embeddings and
    metadata are sent as ``null``.
    """
    batch: dict[str, list[Any]] = {
        "embeddings": [],
        "documents": [],
        "metadatas": [],
        "ids": [],
    }
    for entry in entries:
        batch["embeddings"].append(
            as_vector(entry.embedding) if entry.embedding is not None else None
        )
        batch["documents"].append(entry.document)
        batch["metadatas"].append(entry.metadata)
        batch["ids"].append(entry.id)
    return batch


def _first_batch(payload: Mapping[str, Any], key: str) -> list[Any] | None:
    outer = payload.get(key)
    if outer is None:
        return None
    if not isinstance(outer, list) or not outer or not isinstance(outer[0], list):
        raise DecodeError(f"query response field '{key}' is not a list of lists")
    return outer[0]


def batch_to_entries(payload: Any) -> list[Entry]:
    """Flatten the first batch of a query response into entries.

    Results keep the service's order (ascending distance). Further batches,
    one per extra query vector, are ignored.

    Raises:
        InsufficientResultsError: If the response holds no batch at all.
        DecodeError: If the response does not have the batch shape or the
            arrays of the first batch are not aligned.
    """
    if not isinstance(payload, Mapping):
        raise DecodeError(f"query response should be an object, got {type(payload).__name__}")

    ids_outer = payload.get("ids")
    if ids_outer is None:
        raise InsufficientResultsError("query response contains no result batch")
    if not isinstance(ids_outer, list):
        raise DecodeError("query response has no 'ids' list")
    if len(ids_outer) < 1:
        raise InsufficientResultsError("query response contains no result batch")

    columns = {key: _first_batch(payload, key) for key in _QUERY_FIELDS}
    ids = columns["ids"]
    for key, values in columns.items():
        if values is not None and len(values) != len(ids):
            raise DecodeError(
                f"query response field '{key}' has {len(values)} items, expected {len(ids)}"
            )

    documents = columns["documents"] or [None] * len(ids)
    metadatas = columns["metadatas"] or [None] * len(ids)
    distances = columns["distances"] or [None] * len(ids)

    return [
        Entry(
            id=ids[i],
            document=documents[i] if documents[i] is not None else "",
            metadata=metadatas[i],
            distance=distances[i],
        )
        for i in range(len(ids))
    ]
