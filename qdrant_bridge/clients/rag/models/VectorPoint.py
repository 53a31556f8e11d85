"""VectorPoint model: a single point written to a RAG backend."""

from typing import Any

from pydantic import BaseModel

from qdrant_bridge.payload.models.Value import Value


class VectorPoint(BaseModel):
    """A vector plus its typed payload, stored under a content-derived id.

    Attributes:
        id:      UUID string derived from the point's document (see payload.point_id).
                 Re-indexing identical content yields the same id and overwrites the point.
        vector:  The dense embedding vector.
        payload: Typed payload values keyed by field name (content, metadata, content type).
    """

    id: str
    vector: list[float]
    payload: dict[str, Value] = {}

    def to_request(self) -> dict[str, Any]:
        """Render the point in the JSON form of the upsert endpoint."""
        return {
            "id": self.id,
            "vector": self.vector,
            "payload": {key: value.to_json() for key, value in self.payload.items()},
        }
