"""Pydantic models for documents exchanged with the host framework.

Hierarchy:
  DocumentPart     : one content chunk: text plus its declared content type.
  Document         : ordered content parts plus free-form metadata.
  Embedding        : one vector produced for a document or one of its chunks.
  RetrieverResponse: documents returned by a retrieval, best match first.
"""

from typing import Any

from pydantic import BaseModel

DEFAULT_CONTENT_TYPE = "text"


class DocumentPart(BaseModel):
    """A single content chunk of a document."""

    text: str
    content_type: str = DEFAULT_CONTENT_TYPE


class Embedding(BaseModel):
    """A vector produced by an embedder.

    Attributes:
        embedding: The vector itself.
        text:      The chunk of document text the vector represents.
                   None means the vector represents the whole document.
        metadata:  Chunk-level metadata merged into the chunk document's metadata.
    """

    embedding: list[float]
    text: str | None = None
    metadata: dict[str, Any] | None = None


class Document(BaseModel):
    """Generic document representation used on both the index and the retrieve path.

    A document carries no id of its own. The id of the point it is stored
    under is derived from its content (see payload.point_id).
    """

    content: list[DocumentPart] = []
    metadata: dict[str, Any] = {}

    @classmethod
    def from_text(cls, text: str, metadata: dict[str, Any] | None = None, content_type: str = DEFAULT_CONTENT_TYPE) -> "Document":
        """Build a single-part document from plain text."""
        return cls(
            content=[DocumentPart(text=text, content_type=content_type)],
            metadata=dict(metadata or {}),
        )

    def text(self) -> str:
        """Returns the text of all content parts, concatenated in order."""
        return "".join(part.text for part in self.content)

    def content_type(self) -> str:
        """Returns the content type of the first part, "text" for an empty document."""
        if not self.content:
            return DEFAULT_CONTENT_TYPE
        return self.content[0].content_type

    def embedding_documents(self, embeddings: list[Embedding]) -> list["Document"]:
        """Expand this document into one document per embedding.

        A single whole-document embedding maps back to the document itself.
        When the embedder split the document into chunks, every chunk becomes
        its own document carrying the chunk text, the document metadata and
        the chunk metadata. The chunk position is recorded under "chunk_index"
        unless the embedder already set it, so chunks never collapse onto the
        same point id.

        Args:
            embeddings (list[Embedding]): The embeddings produced for this document, in order.

        Returns:
            list[Document]: One document per embedding, in the same order.
        """
        if len(embeddings) == 1 and embeddings[0].text is None and not embeddings[0].metadata:
            return [self]

        documents: list[Document] = []
        for chunk_index, embedding in enumerate(embeddings):
            if embedding.text is not None:
                content = [DocumentPart(text=embedding.text, content_type=self.content_type())]
            else:
                content = list(self.content)
            metadata = {**self.metadata, **(embedding.metadata or {})}
            if len(embeddings) > 1:
                metadata.setdefault("chunk_index", chunk_index)
            documents.append(Document(content=content, metadata=metadata))
        return documents


class RetrieverResponse(BaseModel):
    """Documents returned by a retrieval, in the order the backend ranked them."""

    documents: list[Document] = []
