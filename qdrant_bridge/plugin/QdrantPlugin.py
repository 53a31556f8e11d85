"""Qdrant plugin entry point.

Registers one indexer and one retriever per configured collection with the
host registry, under the names "qdrant/<collection>".

Usage:
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    registry = PluginRegistry()

    plugin = QdrantPlugin(helper_config=config)
    await plugin.boot()
    plugin.init(registry)

    await indexer(registry, "docs").index([Document.from_text("hello")])
    response = await retriever(registry, "docs").retrieve(Document.from_text("hi"), RetrieverOptions(k=3))

    await plugin.close()
"""

import httpx
from pydantic import ValidationError

from qdrant_bridge.clients.embed.EmbedClientInterface import EmbedClientInterface
from qdrant_bridge.clients.embed.EmbedClientManager import EmbedClientManager
from qdrant_bridge.clients.rag.RAGClientInterface import RAGClientInterface
from qdrant_bridge.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from qdrant_bridge.errors import ConfigurationError
from qdrant_bridge.helper.HelperConfig import HelperConfig
from qdrant_bridge.models.collection import CollectionConfig
from qdrant_bridge.models.options import CollectionCreateOptions, VectorParams
from qdrant_bridge.plugin.PluginRegistry import IndexerAction, PluginRegistry, RetrieverAction
from qdrant_bridge.services.CollectionService import DEFAULT_DISTANCE, CollectionService
from qdrant_bridge.services.IndexerService import IndexerService
from qdrant_bridge.services.RetrieverService import RetrieverService

PROVIDER = "qdrant"

# CollectionConfig field → raw env key (prefixed "RAG_QDRANT_")
_FIELD_ENV_KEYS = {
    "content_key": "CONTENT_KEY",
    "metadata_key": "METADATA_KEY",
    "content_type_key": "CONTENT_TYPE_KEY",
    "score_key": "SCORE_KEY",
}


class QdrantPlugin:
    """Wires the Qdrant client, the embedders and the per-collection services together."""

    def __init__(
        self,
        helper_config: HelperConfig,
        collections: list[CollectionConfig] | None = None,
        rag_client: RAGClientInterface | None = None,
        embed_client: EmbedClientInterface | None = None,
    ) -> None:
        """
        Args:
            helper_config (HelperConfig): Configuration and logger.
            collections (list[CollectionConfig] | None): Collections to serve. Read from
                RAG_QDRANT_COLLECTIONS and related variables when None.
            rag_client (RAGClientInterface | None): Vector database client. A RAGClientQdrant
                configured from the environment when None.
            embed_client (EmbedClientInterface | None): Default embedder for collections that
                do not name their own. Resolved via EMBED_ENGINE when needed and None.

        Raises:
            ConfigurationError: If no collections are configured, a name is used twice or a setting is invalid.
        """
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._rag_client = rag_client or RAGClientQdrant(helper_config=helper_config)

        if collections is None:
            collections = self._collections_from_env()
        if not collections:
            raise ConfigurationError("No Qdrant collections configured.")

        names = [collection.collection_name for collection in collections]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(f"Collections configured more than once: {duplicates}")

        if embed_client is None and any(collection.embed_client is None for collection in collections):
            embed_client = EmbedClientManager(helper_config).get_client()
        self._collections = {
            collection.collection_name: (
                collection if collection.embed_client is not None
                else collection.model_copy(update={"embed_client": embed_client})
            )
            for collection in collections
        }

        self._collection_service = CollectionService(helper_config=helper_config, rag_client=self._rag_client)
        self._indexers = {
            name: IndexerService(helper_config, self._rag_client, self._collection_service, collection)
            for name, collection in self._collections.items()
        }
        self._retrievers = {
            name: RetrieverService(helper_config, self._rag_client, self._collection_service, collection)
            for name, collection in self._collections.items()
        }

    ##########################################
    ################ CONFIG ##################
    ##########################################

    def _collections_from_env(self) -> list[CollectionConfig]:
        """Build the collection configs from RAG_QDRANT_* environment variables.

        Field keys and the explicit vector size apply to every listed collection.

        Returns:
            list[CollectionConfig]: One config per name in RAG_QDRANT_COLLECTIONS.

        Raises:
            ConfigurationError: If RAG_QDRANT_COLLECTIONS is missing or a value is invalid.
        """
        rag = self._rag_client
        names = rag.get_config_val("COLLECTIONS", default=None, val_type="list")
        overrides = {
            field: rag.get_config_val(env_key, val_type="string")
            for field, env_key in _FIELD_ENV_KEYS.items()
            if rag.has_config_val(env_key)
        }
        try:
            create_options = None
            if rag.has_config_val("VECTOR_SIZE"):
                create_options = CollectionCreateOptions(
                    vectors=VectorParams(
                        size=int(rag.get_config_val("VECTOR_SIZE", val_type="number")),
                        distance=rag.get_config_val("DISTANCE", default=DEFAULT_DISTANCE, val_type="string"),
                    )
                )
            return [
                CollectionConfig(collection_name=name, create_options=create_options, **overrides)
                for name in names
            ]
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid Qdrant collection configuration: {exc}") from exc

    def get_collection_names(self) -> list[str]:
        return list(self._collections)

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Open the HTTP clients and check that Qdrant is reachable.

        Args:
            transport (httpx.AsyncBaseTransport | None): Custom transport for all clients, e.g. in tests.

        Raises:
            UpstreamServiceError: If the Qdrant healthcheck fails.
        """
        await self._rag_client.boot(transport=transport)
        for client in self._embed_clients():
            await client.boot(transport=transport)
        await self._rag_client.do_healthcheck()
        self.logging.info("Qdrant plugin ready for collections: %s", ", ".join(self._collections))

    async def close(self) -> None:
        """Close the HTTP clients."""
        await self._rag_client.close()
        for client in self._embed_clients():
            await client.close()

    def _embed_clients(self) -> list[EmbedClientInterface]:
        clients: list[EmbedClientInterface] = []
        for collection in self._collections.values():
            if not any(client is collection.embed_client for client in clients):
                clients.append(collection.embed_client)
        return clients

    ##########################################
    ############# REGISTRATION ###############
    ##########################################

    def init(self, registry: PluginRegistry) -> None:
        """Register an indexer and a retriever for every configured collection.

        Args:
            registry (PluginRegistry): The host registry.

        Raises:
            ConfigurationError: If an action with the same name is already registered.
        """
        for name in self._collections:
            registry.define_indexer(PROVIDER, name, self._indexers[name].do_index)
            registry.define_retriever(PROVIDER, name, self._retrievers[name].do_retrieve)
            self.logging.debug("Registered indexer and retriever '%s/%s'.", PROVIDER, name)

    ##########################################
    ############## MAINTENANCE ###############
    ##########################################

    async def do_delete_collection(self, collection_name: str) -> None:
        """Delete a configured collection and all of its points.

        Raises:
            ConfigurationError: If the collection is not configured in this plugin.
            UpstreamServiceError: If the backend rejects the deletion.
        """
        if collection_name not in self._collections:
            raise ConfigurationError(f"Collection '{collection_name}' is not configured.", collection=collection_name)
        await self._collection_service.do_delete_collection(self._collections[collection_name])


def indexer(registry: PluginRegistry, name: str) -> IndexerAction | None:
    """Returns the indexer registered for the given collection name."""
    return registry.lookup_indexer(PROVIDER, name)


def retriever(registry: PluginRegistry, name: str) -> RetrieverAction | None:
    """Returns the retriever registered for the given collection name."""
    return registry.lookup_retriever(PROVIDER, name)
