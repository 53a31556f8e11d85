"""Pydantic models for per-call options and collection creation."""

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from qdrant_bridge.errors import ConfigurationError


OptionsT = TypeVar("OptionsT", bound=BaseModel)


class IndexerOptions(BaseModel):
    """Options accepted by an index call. Reserved, no fields are recognised yet."""

    model_config = ConfigDict(extra="forbid")


class RetrieverOptions(BaseModel):
    """Options accepted by a retrieve call.

    Attributes:
        k:               Maximum number of documents to return.
        filter:          Qdrant filter, passed to the backend unmodified.
        score_threshold: Minimal similarity score a hit needs to be returned.
    """

    model_config = ConfigDict(extra="forbid")

    k: int = Field(default=10, ge=1)
    filter: dict[str, Any] | None = None
    score_threshold: float | None = None


class VectorParams(BaseModel):
    """Dense vector parameters of a collection."""

    model_config = ConfigDict(extra="allow")

    size: int = Field(gt=0)
    distance: str = "Cosine"


class CollectionCreateOptions(BaseModel):
    """Explicit collection creation schema.

    Any additional Qdrant creation fields (hnsw_config, on_disk_payload, ...)
    are passed through to the backend as given.
    """

    model_config = ConfigDict(extra="allow")

    vectors: VectorParams

    def to_request(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def resolve_options(options: Any, options_type: type[OptionsT], *, operation: str, collection: str) -> OptionsT:
    """Validate the options passed to an index or retrieve call.

    Accepts None (defaults), an instance of options_type, or a mapping that
    validates as options_type.

    Raises:
        ConfigurationError: If the options have the wrong type or invalid values.
    """
    if options is None:
        return options_type()
    if isinstance(options, options_type):
        return options
    if isinstance(options, Mapping):
        try:
            return options_type.model_validate(dict(options))
        except ValidationError as exc:
            raise ConfigurationError(
                f"qdrant.{operation} received invalid {options_type.__name__}: {exc}",
                operation=operation,
                collection=collection,
            ) from exc
    raise ConfigurationError(
        f"qdrant.{operation} options have type {type(options).__name__}, want {options_type.__name__}",
        operation=operation,
        collection=collection,
    )
