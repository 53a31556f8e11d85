from abc import abstractmethod
from typing import Any
import asyncio

from qdrant_bridge.clients.ClientInterface import ClientInterface
from qdrant_bridge.errors import ConfigurationError, UpstreamServiceError
from qdrant_bridge.helper.HelperConfig import HelperConfig
from qdrant_bridge.models.document import Document, Embedding


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        client_type = self.get_client_type().upper()
        self.embed_model = helper_config.get_string_val(f"{client_type}_MODEL", default=None)
        self.embed_model_max_chars = int(helper_config.get_number_val(f"{client_type}_MODEL_MAX_CHARS", default=0)) or None
        self.embed_chunk_overlap = int(helper_config.get_number_val(f"{client_type}_CHUNK_OVERLAP", default=100))
        self.embed_concurrency = int(helper_config.get_number_val(f"{client_type}_CONCURRENCY", default=5))

        if self.embed_model_max_chars is not None and self.embed_chunk_overlap >= self.embed_model_max_chars:
            raise ConfigurationError(
                f"{client_type}_CHUNK_OVERLAP ({self.embed_chunk_overlap}) must be smaller than "
                f"{client_type}_MODEL_MAX_CHARS ({self.embed_model_max_chars})."
            )
        if self.embed_concurrency < 1:
            raise ConfigurationError(f"{client_type}_CONCURRENCY must be at least 1, got {self.embed_concurrency}.")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str], options: dict[str, Any] | None = None) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.
            options (dict[str, Any] | None): Embedder options, passed through to the backend as given.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            UpstreamServiceError: If the response format is invalid or embeddings are empty.
        """
        pass

    def split_text(self, text: str) -> list[str]:
        """Split a document's text into overlapping chunks the model can embed.

        Text no longer than the configured maximum is returned as a single chunk.

        Args:
            text (str): The full document text.

        Returns:
            list[str]: Ordered list of text chunks.
        """
        max_chars = self.embed_model_max_chars
        if max_chars is None or len(text) <= max_chars:
            return [text]
        chunks: list[str] = []
        start = 0
        while start < len(text):
            end = min(start + max_chars, len(text))
            chunks.append(text[start:end])
            if end >= len(text):
                break
            start = end - self.embed_chunk_overlap
        return chunks

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str, options: dict[str, Any] | None = None) -> list[list[float]]:
        """Send an embedding request and return the extracted vectors.

        Args:
            texts (list[str] | str): One or more texts to embed.
            options (dict[str, Any] | None): Embedder options, passed through to the backend.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            UpstreamServiceError: If the request fails or the response does not hold one vector per text.
        """
        texts = [texts] if isinstance(texts, str) else texts
        body = self.get_embed_payload(texts, options)
        response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise UpstreamServiceError(
                "Embedding request failed with status %d." % response.status_code,
                status_code=response.status_code,
            )
        vectors = self.extract_embeddings_from_response(self._parse_json(response))
        if len(vectors) != len(texts):
            raise UpstreamServiceError(
                f"Embedding response holds {len(vectors)} vectors for {len(texts)} texts."
            )
        return vectors

    async def do_embed_document(self, document: Document, options: dict[str, Any] | None = None) -> list[Embedding]:
        """Embed a single document, splitting it into chunks if it is too long.

        Args:
            document (Document): The document to embed.
            options (dict[str, Any] | None): Embedder options, passed through to the backend.

        Returns:
            list[Embedding]: One embedding for a short document, one per chunk otherwise.
        """
        chunks = self.split_text(document.text())
        # one request for all chunks of this document
        vectors = await self.do_embed(chunks, options)
        if len(chunks) == 1:
            return [Embedding(embedding=vectors[0])]
        return [
            Embedding(embedding=vector, text=chunk, metadata={"chunk_index": chunk_index})
            for chunk_index, (chunk, vector) in enumerate(zip(chunks, vectors))
        ]

    async def do_embed_documents(self, documents: list[Document], options: dict[str, Any] | None = None) -> list[list[Embedding]]:
        """Embed several documents concurrently.

        Requests run in parallel with bounded concurrency. The result at
        position i always belongs to documents[i]. If one document fails,
        the requests of the others are cancelled before the error is raised.

        Args:
            documents (list[Document]): The documents to embed.
            options (dict[str, Any] | None): Embedder options, passed through to the backend.

        Returns:
            list[list[Embedding]]: The embeddings of each document, in input order.
        """
        sem = asyncio.Semaphore(self.embed_concurrency)

        async def _embed(document: Document) -> list[Embedding]:
            async with sem:
                return await self.do_embed_document(document, options)

        tasks = [asyncio.ensure_future(_embed(document)) for document in documents]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
