from abc import abstractmethod
from typing import Any

import httpx

from qdrant_bridge.clients.ClientInterface import ClientInterface
from qdrant_bridge.clients.rag.models.QueryHit import QueryHit
from qdrant_bridge.clients.rag.models.VectorPoint import VectorPoint
from qdrant_bridge.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collection(self, collection: str) -> str:
        """
        Returns the endpoint path for creating and deleting a collection.

        Args:
            collection (str): Collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col")
        """
        pass

    @abstractmethod
    def _get_endpoint_check_collection_existence(self, collection: str) -> str:
        """
        Returns the endpoint path for collection existence check requests.

        Args:
            collection (str): Collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/exists")
        """
        pass

    @abstractmethod
    def _get_endpoint_points(self, collection: str) -> str:
        """
        Returns the endpoint path for points upsert requests.

        Args:
            collection (str): Collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points")
        """
        pass

    @abstractmethod
    def _get_endpoint_query(self, collection: str) -> str:
        """
        Returns the endpoint path for nearest-neighbour queries.

        Args:
            collection (str): Collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/query")
        """
        pass

    @abstractmethod
    def _get_endpoint_count(self, collection: str) -> str:
        """Returns the endpoint path for counting points matching a filter.

        Args:
            collection (str): Collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/count")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        """
        Builds the backend-specific request payload for creating a collection.

        Args:
            vector_size (int): The size of the vectors in the collection.
            distance (str): The distance metric for the vectors.

        Returns:
            dict: The payload for the create collection request.
        """
        pass

    @abstractmethod
    def get_query_payload(
        self,
        vector: list[float],
        limit: int,
        filter: dict | None,
        score_threshold: float | None,
        with_payload: bool | list[str],
    ) -> dict:
        """
        Builds the backend-specific request payload for a nearest-neighbour query.

        Args:
            vector (list[float]): The query vector.
            limit (int): The maximum number of hits to return.
            filter (dict | None): Backend filter, passed through unmodified.
            score_threshold (float | None): Minimal score a hit needs.
            with_payload (bool | list[str]): Whether to return the payload, or which payload fields.

        Returns:
            dict: The payload for the query request.
        """
        pass

    @abstractmethod
    def get_count_payload(self, filter: dict | None) -> dict:
        """Builds the backend-specific request payload for a point count.

        Args:
            filter (dict | None): Filter to apply before counting.

        Returns:
            dict: The payload for the count request.
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_existence(self, raw_response: dict) -> bool:
        """
        Extracts the existence flag from a raw collection existence response.

        Args:
            raw_response (dict): The raw JSON response from the existence endpoint.

        Returns:
            bool: True if the collection exists.
        """
        pass

    @abstractmethod
    def extract_query_hits(self, raw_response: dict) -> list[QueryHit]:
        """
        Extracts the scored hits from a raw query response, in backend order.

        Args:
            raw_response (dict): The raw JSON response from the query endpoint.

        Returns:
            list[QueryHit]: The hits, best match first.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self, collection: str) -> bool:
        """Check if a collection exists in the rag backend.

        Args:
            collection (str): Collection name.

        Returns:
            bool: True if the collection exists, False otherwise.
        """
        resp = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_check_collection_existence(collection),
            raise_on_error=True,
        )
        return self.extract_existence(self._parse_json(resp))

    async def do_create_collection(self, collection: str, payload: dict[str, Any]) -> httpx.Response:
        """Create a collection in the rag backend.

        Args:
            collection (str): Collection name.
            payload (dict[str, Any]): The creation schema, see get_create_collection_payload().

        Returns:
            httpx.Response: The response from the create collection request.
        """
        return await self.do_request(
            method="PUT",
            json=payload,
            endpoint=self._get_endpoint_collection(collection),
            raise_on_error=True,
        )

    async def do_delete_collection(self, collection: str) -> httpx.Response:
        """Delete a collection and all of its points from the rag backend.

        Never called by indexing or retrieval; this is an explicit maintenance action.

        Args:
            collection (str): Collection name.

        Returns:
            httpx.Response: The response from the delete collection request.
        """
        return await self.do_request(
            method="DELETE",
            endpoint=self._get_endpoint_collection(collection),
            raise_on_error=True,
        )

    async def do_upsert_points(self, collection: str, points: list[VectorPoint]) -> httpx.Response:
        """Upsert points into a rag backend collection in a single request.
        Inserts new points or replaces existing ones if a point with the same ID already exists.

        Args:
            collection (str): Collection name.
            points (list[VectorPoint]): The points to upsert.

        Returns:
            httpx.Response: The response from the upsert request.
        """
        return await self.do_request(
            method="PUT",
            json={"points": [point.to_request() for point in points]},
            params={"wait": "true"},
            endpoint=self._get_endpoint_points(collection),
            raise_on_error=True,
        )

    async def do_query(
        self,
        collection: str,
        vector: list[float],
        limit: int,
        filter: dict | None = None,
        score_threshold: float | None = None,
        with_payload: bool | list[str] = True,
    ) -> list[QueryHit]:
        """Run a nearest-neighbour query against a collection.

        Args:
            collection (str): Collection name.
            vector (list[float]): The query vector.
            limit (int): The maximum number of hits to return.
            filter (dict | None): Backend filter, passed through unmodified.
            score_threshold (float | None): Minimal score a hit needs.
            with_payload (bool | list[str]): Whether to return the payload, or which payload fields.

        Returns:
            list[QueryHit]: The hits in the order the backend ranked them.
        """
        resp = await self.do_request(
            method="POST",
            json=self.get_query_payload(vector, limit, filter, score_threshold, with_payload),
            endpoint=self._get_endpoint_query(collection),
            raise_on_error=True,
        )
        return self.extract_query_hits(self._parse_json(resp))

    async def do_count(self, collection: str, filter: dict | None = None) -> int:
        """Count the points of a collection matching the given filter.

        Args:
            collection (str): Collection name.
            filter (dict | None): Filter to apply before counting. None counts all points.

        Returns:
            int: Total number of matching points.
        """
        resp = await self.do_request(
            method="POST",
            json=self.get_count_payload(filter),
            endpoint=self._get_endpoint_count(collection),
            raise_on_error=True,
        )
        return self._parse_json(resp).get("result", {}).get("count", 0)
