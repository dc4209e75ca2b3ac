"""Exceptions raised by the vector store client."""

from __future__ import annotations


class VectorStoreError(Exception):
    """Base class for every error raised by the client."""


class MalformedConfigError(VectorStoreError):
    """The configured base URL cannot be used."""


class TransportError(VectorStoreError):
    """The request never got an HTTP response (connection, timeout...)."""


class ProtocolError(VectorStoreError):
    """The service answered with an unexpected HTTP status."""

    def __init__(self, status: int, message: str | None = None):
        self.status = status
        super().__init__(message or f"unexpected HTTP status: {status}")


class CreateFailedError(VectorStoreError):
    """A create-on-demand POST did not succeed."""

    def __init__(self, kind: str, name: str, status: int):
        self.kind = kind
        self.name = name
        self.status = status
        super().__init__(f"failed to create {kind} '{name}' (HTTP status: {status})")


class DecodeError(VectorStoreError):
    """A response body is not valid JSON or does not have the expected shape."""


class UnsupportedFilterValueTypeError(VectorStoreError, TypeError):
    """A filter value is not a string, int or float."""


class InsufficientResultsError(VectorStoreError):
    """A query response contained no result batch at all."""


class ClientClosedError(VectorStoreError):
    """The client was closed, or a collection outlived its client."""


class InvalidVectorError(VectorStoreError, ValueError):
    """An embedding holds a value that cannot be sent (non-numeric, nan, inf)."""
