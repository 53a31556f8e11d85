"""Retriever service. Embeds a query document, runs a nearest-neighbour
query against Qdrant and rebuilds host documents from the hits."""

from typing import Any

from qdrant_bridge.clients.rag.RAGClientInterface import RAGClientInterface
from qdrant_bridge.clients.rag.models.QueryHit import QueryHit
from qdrant_bridge.errors import ConfigurationError, MissingContentError, UpstreamServiceError, wrap_upstream_error
from qdrant_bridge.helper.HelperConfig import HelperConfig
from qdrant_bridge.models.collection import CollectionConfig
from qdrant_bridge.models.document import DEFAULT_CONTENT_TYPE, Document, RetrieverResponse
from qdrant_bridge.models.options import RetrieverOptions, resolve_options
from qdrant_bridge.services.CollectionService import CollectionService


class RetrieverService:
    """Retrieves documents from a single collection."""

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

    async def do_retrieve(self, query: Document, options: RetrieverOptions | dict[str, Any] | None = None) -> RetrieverResponse:
        """Return the documents most similar to the query document.

        Args:
            query (Document): The query document.
            options (RetrieverOptions | dict[str, Any] | None): Result limit, filter and score threshold.

        Returns:
            RetrieverResponse: The matching documents, in the order Qdrant ranked them.

        Raises:
            ConfigurationError: If the options have the wrong type or invalid values.
            CollectionNotFoundError: If the collection has never been indexed into.
            MissingContentError: If a hit has no content in its payload.
            UpstreamServiceError: If embedding or the query fails.
        """
        name = self._collection.collection_name
        opts = resolve_options(options, RetrieverOptions, operation="retrieve", collection=name)

        await self._collection_service.do_ensure(self._collection, create_if_missing=False)

        vector = await self._embed_query(query)

        self.logging.debug("Querying collection '%s' with k=%d.", name, opts.k)
        try:
            hits = await self._rag_client.do_query(
                name,
                vector,
                limit=opts.k,
                filter=opts.filter,
                score_threshold=opts.score_threshold,
                with_payload=self._collection.payload_fields(),
            )
        except UpstreamServiceError as exc:
            self.logging.error("Query against collection '%s' failed: %s", name, exc)
            raise wrap_upstream_error(exc, operation="query", collection=name) from exc

        documents = [self._build_document(hit) for hit in hits]
        self.logging.debug("Retrieved %d documents from collection '%s'.", len(documents), name)
        return RetrieverResponse(documents=documents)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _embed_query(self, query: Document) -> list[float]:
        name = self._collection.collection_name
        try:
            embeddings = await self._collection.embed_client.do_embed_document(
                query, self._collection.embedder_options
            )
        except UpstreamServiceError as exc:
            self.logging.error("Query embedding failed for collection '%s': %s", name, exc)
            raise wrap_upstream_error(exc, operation="embed", collection=name) from exc

        if not embeddings:
            raise UpstreamServiceError(
                f"qdrant embed failed for collection '{name}': no embedding for the query",
                operation="embed",
                collection=name,
            )
        if len(embeddings) > 1:
            self.logging.debug("Query was split into %d chunks, querying with the first one.", len(embeddings))
        return embeddings[0].embedding

    def _build_document(self, hit: QueryHit) -> Document:
        collection = self._collection
        content = hit.payload.get(collection.content_key)
        if not isinstance(content, str) or not content:
            raise MissingContentError(
                f"qdrant retrieve failed to fetch original document text of point {hit.id}",
                operation="retrieve",
                collection=collection.collection_name,
                details={"point_id": str(hit.id)},
            )

        raw_metadata = hit.payload.get(collection.metadata_key)
        if raw_metadata is not None and not isinstance(raw_metadata, dict):
            self.logging.warning(
                "Point %s has a non-object metadata field '%s', ignoring it.", hit.id, collection.metadata_key
            )
        metadata = dict(raw_metadata) if isinstance(raw_metadata, dict) else {}
        metadata[collection.score_key] = hit.score

        content_type = hit.payload.get(collection.content_type_key)
        if content_type is not None and not isinstance(content_type, str):
            self.logging.warning(
                "Point %s has a non-string content type field '%s', using '%s'.",
                hit.id,
                collection.content_type_key,
                DEFAULT_CONTENT_TYPE,
            )
            content_type = None
        content_type = content_type or DEFAULT_CONTENT_TYPE
        return Document.from_text(content, metadata, content_type)
