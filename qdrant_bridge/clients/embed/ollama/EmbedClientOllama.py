from typing import Any

from qdrant_bridge.clients.embed.EmbedClientInterface import EmbedClientInterface
from qdrant_bridge.errors import UpstreamServiceError
from qdrant_bridge.helper.HelperConfig import HelperConfig
from qdrant_bridge.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    """Embedder backed by an Ollama server (EMBED_OLLAMA_BASE_URL, optional EMBED_OLLAMA_API_KEY)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url: str = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._token: str = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    def _get_auth_header(self) -> dict:
        # only set when Ollama sits behind an authenticating proxy
        return {"Authorization": f"Bearer {self._token}"} if self._token else {}

    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/"

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    ##########################################
    ############ REQUEST / RESPONSE ##########
    ##########################################

    def get_embed_payload(self, texts: list[str], options: dict[str, Any] | None = None) -> dict:
        body: dict = {"model": self.embed_model, "input": texts}
        if options:
            body["options"] = options
        return body

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Read the ``embeddings`` array of an /api/embed answer.

        Raises:
            UpstreamServiceError: If the array is missing, empty, or holds an empty vector.
        """
        embeddings = response_data.get("embeddings")
        if not isinstance(embeddings, list) or not embeddings or not all(embeddings):
            raise UpstreamServiceError(
                f"Ollama model '{self.embed_model}' returned no usable embeddings "
                f"(fields in answer: {sorted(response_data)})"
            )
        return embeddings
