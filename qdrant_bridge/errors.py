"""Error types raised by the Qdrant indexer and retriever.

Every error carries a machine-readable code plus the operation and
collection it happened in, so callers can tell which collection failed
without parsing messages.
"""

from typing import Any, Mapping


class AdapterError(Exception):
    """Base exception for all indexer/retriever errors.

    Attributes:
        message:    Human-readable error description.
        code:       Machine-readable error code (UPPER_SNAKE_CASE).
        operation:  Operation that failed (e.g. "index", "retrieve", "embed").
        collection: Name of the collection the operation ran against, if any.
        details:    Additional context, JSON-serialisable.
    """

    def __init__(
        self,
        message: str = "",
        *,
        code: str | None = None,
        operation: str | None = None,
        collection: str | None = None,
        details: Mapping[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.operation = operation
        self.collection = collection
        self.details = dict(details or {})

    def asdict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "message": self.message,
            "code": self.code,
            "operation": self.operation,
            "collection": self.collection,
            "details": {k: self.details[k] for k in sorted(self.details)},
        }


class ConfigurationError(AdapterError, ValueError):
    """Invalid configuration or options supplied (wrong options type, bad values)."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "CONFIGURATION_ERROR")
        super().__init__(message, **kwargs)


class PayloadEncodingError(AdapterError, ValueError):
    """A metadata value could not be encoded into a Qdrant payload value."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "ENCODING_ERROR")
        super().__init__(message, **kwargs)


class UnsupportedTypeError(PayloadEncodingError, TypeError):
    """A metadata value has a type with no payload representation."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "UNSUPPORTED_TYPE")
        super().__init__(message, **kwargs)


class UpstreamServiceError(AdapterError):
    """The embedder or the vector database failed to serve a request."""

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs: Any):
        kwargs.setdefault("code", "UPSTREAM_ERROR")
        super().__init__(message, **kwargs)
        self.status_code = status_code


class CollectionNotFoundError(AdapterError):
    """The target collection does not exist in the vector database."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "COLLECTION_NOT_FOUND")
        super().__init__(message, **kwargs)


class MissingContentError(AdapterError):
    """A query hit came back without its content payload field."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "MISSING_CONTENT")
        super().__init__(message, **kwargs)


def wrap_upstream_error(exc: Exception, *, operation: str, collection: str | None) -> UpstreamServiceError:
    """Wrap a failed external call with the operation and collection it belongs to.

    The result is meant to be raised with ``raise ... from exc`` so the
    original failure stays attached as the cause.
    """
    return UpstreamServiceError(
        f"qdrant {operation} failed for collection '{collection}': {exc}",
        status_code=getattr(exc, "status_code", None),
        operation=operation,
        collection=collection,
        details={"cause": type(exc).__name__},
    )
