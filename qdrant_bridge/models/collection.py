"""Per-collection configuration of the Qdrant indexer and retriever."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from qdrant_bridge.clients.embed.EmbedClientInterface import EmbedClientInterface
from qdrant_bridge.models.options import CollectionCreateOptions


class CollectionConfig(BaseModel):
    """Settings of one collection, resolved once when the plugin is constructed.

    Attributes:
        collection_name:  Name of the Qdrant collection. Also the name the indexer
                          and retriever are registered under ("qdrant/<collection_name>").
        content_key:      Payload field holding the document text.
        metadata_key:     Payload field holding the document metadata.
        content_type_key: Payload field holding the document content type.
        score_key:        Metadata key the similarity score is injected under on retrieval.
        create_options:   Explicit creation schema. When None, the vector size is
                          probed from the embedder on first index.
        embed_client:     Embedder of this collection. None uses the plugin default.
        embedder_options: Options passed through to the embedder on every call.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    collection_name: str = Field(min_length=1)
    content_key: str = Field(default="_content", min_length=1)
    metadata_key: str = Field(default="_metadata", min_length=1)
    content_type_key: str = Field(default="_content_type", min_length=1)
    score_key: str = Field(default="_score", min_length=1)
    create_options: CollectionCreateOptions | None = None
    embed_client: EmbedClientInterface | None = None
    embedder_options: dict[str, Any] | None = None

    def payload_fields(self) -> list[str]:
        """Returns the payload fields a retrieval asks the backend for."""
        return [self.content_key, self.metadata_key, self.content_type_key]

    @model_validator(mode="after")
    def _check_distinct_payload_fields(self) -> "CollectionConfig":
        fields = self.payload_fields()
        if len(set(fields)) != len(fields):
            raise ValueError(f"content, metadata and content type keys must differ, got {fields}")
        return self
