"""Filter expressions for the ``where`` and ``where_document`` query fields.

Two closed families of write-only values:

* ``Where`` — ``FieldComparison``, ``And`` or ``Or`` (nestable);
* ``DocumentFilter`` — a ``$contains`` / ``$not_contains`` text match.

Each variant has its own encoder; ``encode_where`` dispatches over the
closed set and rejects anything else.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import numpy as np

from vectormem.vectorstore.errors import UnsupportedFilterValueTypeError


class Operator(StrEnum):
    """Comparison operators for metadata fields."""

    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"
    NIN = "$nin"

    @classmethod
    def _missing_(cls, value):
        # accept the bare spelling, e.g. "gte" for "$gte"
        if isinstance(value, str) and not value.startswith("$"):
            return cls._value2member_map_.get("$" + value)
        return None


class DocumentOperator(StrEnum):
    """Full-text operators for document filters."""

    CONTAINS = "$contains"
    NOT_CONTAINS = "$not_contains"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str) and not value.startswith("$"):
            return cls._value2member_map_.get("$" + value)
        return None


FilterValue = str | int | float


def _check_value(value: Any) -> FilterValue:
    """Return ``value`` as a plain JSON primitive, or raise.

    Accepted kinds: str, int, float (numpy integers and float32/float64
    included). ``bool`` is an int subclass and is rejected explicitly.
    """
    if isinstance(value, (bool, np.bool_)):
        raise UnsupportedFilterValueTypeError(
            f"filter value should be string, int or float, got bool ({value!r})"
        )
    if isinstance(value, str):
        return value
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.float32, np.float64)):
        if not math.isfinite(value):
            raise UnsupportedFilterValueTypeError(
                f"filter value should be a finite number, got {value!r}"
            )
        return float(value)
    raise UnsupportedFilterValueTypeError(
        f"filter value should be string, int or float, got {type(value).__name__}"
    )


@dataclass(frozen=True)
class FieldComparison:
    """``{"<name>": {"<operator>": <value>}}``.

    The value kind is checked here, so an invalid filter fails before any
    request is built.
    """

    name: str
    operator: Operator
    value: FilterValue

    def __post_init__(self) -> None:
        object.__setattr__(self, "operator", Operator(self.operator))
        object.__setattr__(self, "value", _check_value(self.value))


@dataclass(frozen=True, init=False)
class And:
    """All children must match."""

    children: tuple[Where, ...]

    def __init__(self, *children: Where):
        object.__setattr__(self, "children", tuple(children))


@dataclass(frozen=True, init=False)
class Or:
    """At least one child must match."""

    children: tuple[Where, ...]

    def __init__(self, *children: Where):
        object.__setattr__(self, "children", tuple(children))


Where = FieldComparison | And | Or


@dataclass(frozen=True)
class DocumentFilter:
    """``{"<operator>": "<value>"}`` applied to document text."""

    operator: DocumentOperator
    value: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "operator", DocumentOperator(self.operator))
        if not isinstance(self.value, str):
            raise UnsupportedFilterValueTypeError(
                f"document filter value should be a string, got {type(self.value).__name__}"
            )


def contains(text: str) -> DocumentFilter:
    return DocumentFilter(DocumentOperator.CONTAINS, text)


def not_contains(text: str) -> DocumentFilter:
    return DocumentFilter(DocumentOperator.NOT_CONTAINS, text)


# ---------------------------------------------------------------------------
# Encoders
# ---------------------------------------------------------------------------


def encode_field(expr: FieldComparison) -> dict[str, Any]:
    return {expr.name: {expr.operator.value: _check_value(expr.value)}}


def encode_and(expr: And) -> dict[str, Any]:
    return {"$and": [encode_where(child) for child in expr.children]}


def encode_or(expr: Or) -> dict[str, Any]:
    return {"$or": [encode_where(child) for child in expr.children]}


def encode_where(expr: Where) -> dict[str, Any]:
    """Serialize a ``Where`` expression to its JSON-ready form."""
    if isinstance(expr, FieldComparison):
        return encode_field(expr)
    if isinstance(expr, And):
        return encode_and(expr)
    if isinstance(expr, Or):
        return encode_or(expr)
    raise TypeError(
        f"expected FieldComparison, And or Or, got {type(expr).__name__}"
    )


def encode_document_filter(expr: DocumentFilter) -> dict[str, str]:
    """Serialize a ``DocumentFilter`` to its JSON-ready form."""
    if not isinstance(expr, DocumentFilter):
        raise TypeError(f"expected DocumentFilter, got {type(expr).__name__}")
    return {expr.operator.value: expr.value}
