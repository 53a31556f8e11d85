from typing import Any

from pydantic import BaseModel


class QueryHit(BaseModel):
    """A single scored point returned by a nearest-neighbour query.

    Attributes:
        id:      Point id as stored in the backend (UUID string or unsigned integer).
        score:   Similarity score of the point to the query vector.
        payload: The requested payload fields, as plain JSON values.
    """

    id: str | int
    score: float
    payload: dict[str, Any] = {}
