from abc import ABC, abstractmethod
from typing import Any

import httpx
from httpx._types import QueryParamTypes, RequestContent

from qdrant_bridge.errors import ConfigurationError, UpstreamServiceError
from qdrant_bridge.helper.HelperConfig import HelperConfig
from qdrant_bridge.models.config import EnvConfig


class ClientInterface(ABC):
    """Base class of every HTTP backend client (vector database, embedder).

    One client object owns one long-lived httpx.AsyncClient which is shared by
    all in-flight calls. Call boot() before the first request and close() when
    done.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """Read every declared config key once so a bad environment fails at construction.

        Raises:
            ConfigurationError: Naming the client and the offending key.
        """
        for config in self._get_required_config():
            try:
                self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Invalid configuration for {self.get_client_type().upper()} client '{self.get_engine_name()}': {exc}"
                ) from exc

    def is_booted(self) -> bool:
        return self._client is not None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """Config prefix of the client family, "rag" or "embed"."""
        pass

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """Display name of the backend, e.g. "Qdrant"."""
        pass

    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Keys (without prefix) validated by validate_full_configuration()."""
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        # PORT on the qdrant rag client -> RAG_QDRANT_PORT
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read a prefixed config key through HelperConfig.

        Args:
            raw_key (str): Key without the client prefix, e.g. "HOST".
            default (Any): Returned when the key is unset. None makes the key required.
            val_type (str): One of "string", "number", "bool", "list".
        """
        key = self._get_config_key_name(raw_key)
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        elif val_type == "list":
            return self._helper_config.get_list_val(key, default=default)
        else:
            raise ValueError(f"Unsupported config value type '{val_type}' for key '{key}'.")

    def has_config_val(self, raw_key: str) -> bool:
        return self._helper_config.has_val(self._get_config_key_name(raw_key))

    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers carrying the backend credentials, empty when none are configured."""
        pass

    @abstractmethod
    def _get_base_url(self) -> str:
        """Scheme, host and port of the backend, without a trailing path."""
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Raises UpstreamServiceError when the backend is unreachable or answers with an error."""
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialise the HTTP client. Calling it on a booted client is a no-op.

        Args:
            transport (httpx.AsyncBaseTransport | None): Custom transport, e.g. httpx.MockTransport in tests.
        """
        if self.is_booted():
            return
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        """Close the HTTP client and any other resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send one request to the backend with the client credentials attached.

        content and json are mutually exclusive; content wins when both are set.
        endpoint is appended to the base URL, with or without a leading slash.
        Without raise_on_error the caller inspects the status itself.

        Raises:
            RuntimeError: If the client is not initialised.
            UpstreamServiceError: If the transport fails, or the status is not 2xx and raise_on_error is True.
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""

        headers: dict = {}
        headers.update(self._get_auth_header())
        if additional_headers:
            headers.update(additional_headers)

        kwargs: dict = {
            "url": f"{self._get_base_url().rstrip('/')}{endpoint}",
            "headers": headers,
            "timeout": self.timeout,
            "params": params,
        }

        # add exactly one body argument
        if content is not None:
            kwargs["content"] = content
        elif json is not None:
            kwargs["json"] = json

        try:
            response = await self._client.request(method, **kwargs)
        except httpx.HTTPError as exc:
            self.logging.error("Request to %s failed: %s", kwargs["url"], exc)
            raise UpstreamServiceError(f"Request to {kwargs['url']} failed: {exc}") from exc

        if raise_on_error and response.status_code >= 300:
            self.logging.error(
                "Request to %s failed with status %d: %s",
                kwargs["url"],
                response.status_code,
                response.text,
            )
            raise UpstreamServiceError(
                f"Request to {kwargs['url']} failed with status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        return response

    def _parse_json(self, response: httpx.Response) -> dict:
        """Decode a response body that must be a JSON object.

        Raises:
            UpstreamServiceError: If the body is not JSON or not an object.
        """
        try:
            data = response.json()
        except ValueError as exc:
            self.logging.error("Response from %s is not valid JSON: %s", response.request.url, response.text[:200])
            raise UpstreamServiceError(
                f"Response from {response.request.url} is not valid JSON: {response.text[:200]}",
                status_code=response.status_code,
            ) from exc
        if not isinstance(data, dict):
            raise UpstreamServiceError(
                f"Response from {response.request.url} is not a JSON object",
                status_code=response.status_code,
            )
        return data
