"""Deterministic point ids.

Qdrant only allows UUIDs and unsigned integers as point ids. Ids here are
name-based UUIDs over the canonical JSON form of a document, so indexing the
same content twice overwrites the stored point instead of duplicating it.
"""

import base64
import json
import uuid
from datetime import date, datetime
from typing import Any

from qdrant_bridge.errors import PayloadEncodingError
from qdrant_bridge.models.document import Document

# Changing this value would invalidate all existing point ids.
_POINT_ID_NAMESPACE = uuid.NAMESPACE_DNS


def _json_default(o: Any) -> str:
    if isinstance(o, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(o)).decode("ascii")
    if isinstance(o, datetime | date):
        return o.isoformat()
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


def canonical_json(document: Document) -> str:
    """Serialise a document with a fixed key order.

    Keys are sorted at every level, so two documents whose metadata only
    differs in insertion order serialise identically.

    Args:
        document (Document): The document to serialise.

    Returns:
        str: Compact JSON text.

    Raises:
        PayloadEncodingError: If the document holds a value that cannot be serialised.
    """
    try:
        raw = json.dumps(
            document.model_dump(),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
            default=_json_default,
        )
        raw.encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise PayloadEncodingError(f"error serialising document: {exc}") from exc
    return raw


def generate_point_id(document: Document) -> str:
    """Generate a deterministic UUID for a document and return its string form.

    Args:
        document (Document): The document to derive the id from.

    Returns:
        str: UUID string usable as a Qdrant point id.

    Raises:
        PayloadEncodingError: If the document cannot be serialised.
    """
    return str(uuid.uuid5(_POINT_ID_NAMESPACE, canonical_json(document)))
