"""Registry of indexer and retriever actions, keyed "<provider>/<name>"."""

from typing import Any, Awaitable, Callable

from qdrant_bridge.errors import ConfigurationError
from qdrant_bridge.models.document import Document, RetrieverResponse

IndexerFn = Callable[[list[Document], Any], Awaitable[None]]
RetrieverFn = Callable[[Document, Any], Awaitable[RetrieverResponse]]


def action_key(provider: str, name: str) -> str:
    return f"{provider}/{name}"


class IndexerAction:
    """An indexer registered with the host."""

    def __init__(self, key: str, fn: IndexerFn):
        self.key = key
        self._fn = fn

    async def index(self, documents: list[Document], options: Any = None) -> None:
        await self._fn(documents, options)


class RetrieverAction:
    """A retriever registered with the host."""

    def __init__(self, key: str, fn: RetrieverFn):
        self.key = key
        self._fn = fn

    async def retrieve(self, query: Document, options: Any = None) -> RetrieverResponse:
        return await self._fn(query, options)


class PluginRegistry:
    """
    Holds the indexers and retrievers plugins define, so the host can look them up by name.
    """

    def __init__(self):
        self._indexers: dict[str, IndexerAction] = {}
        self._retrievers: dict[str, RetrieverAction] = {}

    def define_indexer(self, provider: str, name: str, fn: IndexerFn) -> IndexerAction:
        """
        Registers an indexer under "<provider>/<name>".

        Raises:
            ConfigurationError: If an indexer is already registered under that key.
        """
        key = action_key(provider, name)
        if key in self._indexers:
            raise ConfigurationError(f"Indexer '{key}' is already defined.")
        action = IndexerAction(key, fn)
        self._indexers[key] = action
        return action

    def define_retriever(self, provider: str, name: str, fn: RetrieverFn) -> RetrieverAction:
        """
        Registers a retriever under "<provider>/<name>".

        Raises:
            ConfigurationError: If a retriever is already registered under that key.
        """
        key = action_key(provider, name)
        if key in self._retrievers:
            raise ConfigurationError(f"Retriever '{key}' is already defined.")
        action = RetrieverAction(key, fn)
        self._retrievers[key] = action
        return action

    def lookup_indexer(self, provider: str, name: str) -> IndexerAction | None:
        return self._indexers.get(action_key(provider, name))

    def lookup_retriever(self, provider: str, name: str) -> RetrieverAction | None:
        return self._retrievers.get(action_key(provider, name))
