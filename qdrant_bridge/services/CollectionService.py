"""Collection lifecycle.

Collections are created lazily by the first index call and never deleted
by normal operation. Retrieval never creates a collection: reading from a
collection that was never indexed into is an error, not an empty result.
"""

from qdrant_bridge.clients.rag.RAGClientInterface import RAGClientInterface
from qdrant_bridge.errors import CollectionNotFoundError, UpstreamServiceError, wrap_upstream_error
from qdrant_bridge.helper.HelperConfig import HelperConfig
from qdrant_bridge.models.collection import CollectionConfig
from qdrant_bridge.models.document import Document

DEFAULT_DISTANCE = "Cosine"
_PROBE_TEXT = "qdrant vector size probe"


class CollectionService:
    """Makes sure a collection exists before it is written to or read from."""

    def __init__(self, helper_config: HelperConfig, rag_client: RAGClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client

    ##########################################
    ############## LIFECYCLE #################
    ##########################################

    async def do_ensure(self, collection: CollectionConfig, create_if_missing: bool) -> bool:
        """Check that a collection exists, creating it if allowed.

        Without explicit create options the vector size is derived from one
        throwaway embedding of the collection's embedder.

        Args:
            collection (CollectionConfig): The collection to check.
            create_if_missing (bool): Create the collection when it is absent (indexing)
                                      instead of failing (retrieval).

        Returns:
            bool: True if the collection was created by this call, False if it already existed.

        Raises:
            CollectionNotFoundError: If the collection is absent and create_if_missing is False.
            UpstreamServiceError: If the existence check, the probe embedding or the creation fails.
        """
        name = collection.collection_name
        try:
            exists = await self._rag_client.do_existence_check(name)
        except UpstreamServiceError as exc:
            self.logging.error("Existence check failed for collection '%s': %s", name, exc)
            raise wrap_upstream_error(exc, operation="collection_exists", collection=name) from exc

        if exists:
            return False

        if not create_if_missing:
            self.logging.error("Collection '%s' does not exist.", name)
            raise CollectionNotFoundError(
                f"qdrant collection '{name}' does not exist, index documents into it first",
                operation="retrieve",
                collection=name,
            )

        payload = await self._get_create_payload(collection)
        try:
            await self._rag_client.do_create_collection(name, payload)
        except UpstreamServiceError as exc:
            # another caller created it between the check and the create
            if exc.status_code == 409:
                self.logging.info("Collection '%s' was created concurrently.", name)
                return False
            self.logging.error("Creating collection '%s' failed: %s", name, exc)
            raise wrap_upstream_error(exc, operation="create_collection", collection=name) from exc

        self.logging.info(
            "Created collection '%s' (vector size %d, distance %s).",
            name, payload["vectors"]["size"], payload["vectors"]["distance"],
        )
        return True

    async def do_delete_collection(self, collection: CollectionConfig) -> None:
        """Delete a collection and all of its points. Explicit maintenance action only.

        Args:
            collection (CollectionConfig): The collection to delete.

        Raises:
            UpstreamServiceError: If the backend rejects the deletion.
        """
        name = collection.collection_name
        try:
            await self._rag_client.do_delete_collection(name)
        except UpstreamServiceError as exc:
            self.logging.error("Deleting collection '%s' failed: %s", name, exc)
            raise wrap_upstream_error(exc, operation="delete_collection", collection=name) from exc
        self.logging.warning("Deleted collection '%s'.", name)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _get_create_payload(self, collection: CollectionConfig) -> dict:
        if collection.create_options is not None:
            return collection.create_options.to_request()
        vector_size = await self._probe_vector_size(collection)
        return self._rag_client.get_create_collection_payload(vector_size, DEFAULT_DISTANCE)

    async def _probe_vector_size(self, collection: CollectionConfig) -> int:
        name = collection.collection_name
        try:
            embeddings = await collection.embed_client.do_embed_document(
                Document.from_text(_PROBE_TEXT), collection.embedder_options
            )
        except UpstreamServiceError as exc:
            self.logging.error("Probe embedding failed for collection '%s': %s", name, exc)
            raise wrap_upstream_error(exc, operation="probe_embedding", collection=name) from exc

        if not embeddings or not embeddings[0].embedding:
            raise UpstreamServiceError(
                f"qdrant probe_embedding failed for collection '{name}': embedder returned no vector",
                operation="probe_embedding",
                collection=name,
            )
        vector_size = len(embeddings[0].embedding)
        self.logging.debug("Probed vector size %d for collection '%s'.", vector_size, name)
        return vector_size
