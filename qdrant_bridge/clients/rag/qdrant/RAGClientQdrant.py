"""Qdrant implementation of RAGClientInterface, talking to the Qdrant REST API via httpx."""

from urllib.parse import quote

from pydantic import ValidationError

from qdrant_bridge.clients.rag.RAGClientInterface import RAGClientInterface
from qdrant_bridge.clients.rag.models.QueryHit import QueryHit
from qdrant_bridge.errors import UpstreamServiceError
from qdrant_bridge.helper.HelperConfig import HelperConfig
from qdrant_bridge.models.config import EnvConfig


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._host = self.get_config_val("HOST", default=None, val_type="string")
        self._port = int(self.get_config_val("PORT", default=6333, val_type="number"))
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._use_tls = self.get_config_val("USE_TLS", default=False, val_type="bool")

        if self._api_key and not self._use_tls:
            self.logging.warning(
                "API key is set but TLS is not enabled. The API key will be sent in plaintext "
                "and requests may fail against Qdrant Cloud."
            )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="HOST", val_type="string", default=None),
            EnvConfig(env_key="PORT", val_type="number", default=6333),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="USE_TLS", val_type="bool", default=False),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        scheme = "https" if self._use_tls else "http"
        return f"{scheme}://{self._host}:{self._port}"

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_collection(self, collection: str) -> str:
        return f"/collections/{quote(collection, safe='')}"

    def _get_endpoint_check_collection_existence(self, collection: str) -> str:
        return f"/collections/{quote(collection, safe='')}/exists"

    def _get_endpoint_points(self, collection: str) -> str:
        return f"/collections/{quote(collection, safe='')}/points"

    def _get_endpoint_query(self, collection: str) -> str:
        return f"/collections/{quote(collection, safe='')}/points/query"

    def _get_endpoint_count(self, collection: str) -> str:
        return f"/collections/{quote(collection, safe='')}/points/count"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {"vectors": {"size": vector_size, "distance": distance}}

    def get_query_payload(
        self,
        vector: list[float],
        limit: int,
        filter: dict | None,
        score_threshold: float | None,
        with_payload: bool | list[str],
    ) -> dict:
        payload = {
            "query": vector,
            "limit": limit,
            "with_payload": with_payload,
            "with_vector": False,
        }
        if filter is not None:
            payload["filter"] = filter
        if score_threshold is not None:
            payload["score_threshold"] = score_threshold
        return payload

    def get_count_payload(self, filter: dict | None) -> dict:
        payload: dict = {"exact": True}
        if filter is not None:
            payload["filter"] = filter
        return payload

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_existence(self, raw_response: dict) -> bool:
        return bool(raw_response.get("result", {}).get("exists", False))

    def extract_query_hits(self, raw_response: dict) -> list[QueryHit]:
        try:
            points = raw_response["result"]["points"]
            return [
                QueryHit(id=point["id"], score=point.get("score", 0.0), payload=point.get("payload") or {})
                for point in points
            ]
        except (KeyError, TypeError, AttributeError, ValidationError) as exc:
            raise UpstreamServiceError(f"Unexpected Qdrant query response: {exc}") from exc
