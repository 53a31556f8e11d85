from qdrant_bridge.clients.embed.EmbedClientInterface import EmbedClientInterface
from qdrant_bridge.errors import ConfigurationError
from qdrant_bridge.helper.HelperConfig import HelperConfig


class EmbedClientManager:
    """
    Manager class to resolve the Embed client named in the configuration.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the Embed engine from ENV configuration.

        Returns:
            str: The name of the Embed engine, capitalised (e.g. "Ollama").

        Raises:
            ConfigurationError: If no Embed engine is specified in the configuration.
        """
        engine = self.helper_config.get_string_val("EMBED_ENGINE")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> EmbedClientInterface:
        """
        Imports and instantiates qdrant_bridge.clients.embed.<engine>.EmbedClient<Engine>.

        Returns:
            EmbedClientInterface: The Embed client for the configured engine.

        Raises:
            ConfigurationError: If the configured engine has no client implementation.
        """
        engine = self._get_engine_from_env()
        className = f"EmbedClient{engine}"
        try:
            module = __import__(
                f"qdrant_bridge.clients.embed.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Unsupported Embed engine specified: '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.debug(f"Instantiated Embed client for engine: {engine}")
        return client

    def get_client(self) -> EmbedClientInterface:
        """
        Returns the instantiated Embed client.

        Returns:
            EmbedClientInterface: The Embed client instance.
        """
        return self.client
