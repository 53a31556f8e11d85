"""Indexer service.

Embeds host documents, turns every embedded chunk into a Qdrant point with a
content-derived id and a typed payload, and writes all points of a call with
one upsert request.
"""

from typing import Any

from qdrant_bridge.clients.rag.RAGClientInterface import RAGClientInterface
from qdrant_bridge.clients.rag.models.VectorPoint import VectorPoint
from qdrant_bridge.errors import ConfigurationError, PayloadEncodingError, UpstreamServiceError, wrap_upstream_error
from qdrant_bridge.helper.HelperConfig import HelperConfig
from qdrant_bridge.models.collection import CollectionConfig
from qdrant_bridge.models.document import Document, Embedding
from qdrant_bridge.models.options import IndexerOptions, resolve_options
from qdrant_bridge.payload.models.Value import StructValue
from qdrant_bridge.payload.point_id import generate_point_id
from qdrant_bridge.payload.value_map import new_value, new_value_map
from qdrant_bridge.services.CollectionService import CollectionService


class IndexerService:
    """Indexes documents into a single collection."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        collection_service: CollectionService,
        collection: CollectionConfig,
    ) -> None:
        if collection.embed_client is None:
            raise ConfigurationError(
                f"No embedder configured for collection '{collection.collection_name}'.",
                collection=collection.collection_name,
            )
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._collection_service = collection_service
        self._collection = collection

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_index(self, documents: list[Document], options: IndexerOptions | dict[str, Any] | None = None) -> None:
        """Embed and upsert documents into the collection.

        An empty document list is a no-op without any backend call. Otherwise
        the collection is created if missing, every document is embedded and
        all resulting points are written with a single upsert.

        Args:
            documents (list[Document]): The documents to index.
            options (IndexerOptions | dict[str, Any] | None): Reserved indexer options.

        Raises:
            ConfigurationError: If the options have the wrong type.
            PayloadEncodingError: If document content or metadata cannot be stored.
            UpstreamServiceError: If embedding, collection creation or the upsert fails.
        """
        name = self._collection.collection_name
        resolve_options(options, IndexerOptions, operation="index", collection=name)

        if not documents:
            self.logging.debug("No documents to index into collection '%s'.", name)
            return

        await self._collection_service.do_ensure(self._collection, create_if_missing=True)

        embeddings = await self._embed(documents)
        try:
            points = self._build_points(documents, embeddings)
        except PayloadEncodingError as exc:
            exc.operation = "index"
            exc.collection = name
            self.logging.error("Payload conversion failed for collection '%s': %s", name, exc)
            raise

        try:
            await self._rag_client.do_upsert_points(name, points)
        except UpstreamServiceError as exc:
            self.logging.error("Upsert of %d points into collection '%s' failed: %s", len(points), name, exc)
            raise wrap_upstream_error(exc, operation="upsert", collection=name) from exc

        self.logging.info(
            "Indexed %d documents as %d points into collection '%s'.",
            len(documents), len(points), name,
        )

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _embed(self, documents: list[Document]) -> list[list[Embedding]]:
        name = self._collection.collection_name
        try:
            embeddings = await self._collection.embed_client.do_embed_documents(
                documents, self._collection.embedder_options
            )
        except UpstreamServiceError as exc:
            self.logging.error("Embedding failed for collection '%s': %s", name, exc)
            raise wrap_upstream_error(exc, operation="embed", collection=name) from exc

        if len(embeddings) != len(documents):
            raise UpstreamServiceError(
                f"qdrant embed failed for collection '{name}': got embeddings for "
                f"{len(embeddings)} of {len(documents)} documents",
                operation="embed",
                collection=name,
            )
        for doc_index, doc_embeddings in enumerate(embeddings):
            if not doc_embeddings:
                raise UpstreamServiceError(
                    f"qdrant embed failed for collection '{name}': no embedding for document #{doc_index}",
                    operation="embed",
                    collection=name,
                )
        return embeddings

    def _build_points(self, documents: list[Document], embeddings: list[list[Embedding]]) -> list[VectorPoint]:
        points: list[VectorPoint] = []
        for document, doc_embeddings in zip(documents, embeddings):
            chunk_documents = document.embedding_documents(doc_embeddings)
            for chunk_document, embedding in zip(chunk_documents, doc_embeddings):
                points.append(self._build_point(chunk_document, embedding))
        return points

    def _build_point(self, document: Document, embedding: Embedding) -> VectorPoint:
        collection = self._collection
        # payload first: its errors carry the path of the offending value
        payload = {
            collection.content_key: new_value(document.text()),
            collection.metadata_key: StructValue(fields=new_value_map(document.metadata)),
            collection.content_type_key: new_value(document.content_type()),
        }
        return VectorPoint(id=generate_point_id(document), vector=embedding.embedding, payload=payload)
