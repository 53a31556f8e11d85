"""Shared fixtures: in-memory fakes of the Qdrant REST API and the Ollama
embedding API, served through httpx.MockTransport."""

import json
import logging
import math
from typing import Any
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio

from qdrant_bridge.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from qdrant_bridge.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from qdrant_bridge.helper.HelperConfig import HelperConfig
from qdrant_bridge.models.collection import CollectionConfig
from qdrant_bridge.services.CollectionService import CollectionService
from qdrant_bridge.services.IndexerService import IndexerService
from qdrant_bridge.services.RetrieverService import RetrieverService

QDRANT_HOST = "qdrant.test"
OLLAMA_URL = "http://ollama.test:11434"
DIM = 32


def _cosine(a: list[float], b: list[float]) -> float:
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / norm


def _lookup(payload: dict, key: str) -> Any:
    node: Any = payload
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def _matches(payload: dict, query_filter: dict | None) -> bool:
    # subset of the Qdrant filter language: must / must_not with match.value
    if not query_filter:
        return True
    for condition in query_filter.get("must", []):
        if _lookup(payload, condition["key"]) != condition["match"]["value"]:
            return False
    for condition in query_filter.get("must_not", []):
        if _lookup(payload, condition["key"]) == condition["match"]["value"]:
            return False
    return True


class FakeQdrant:
    """Keeps collections and points in memory and answers like the Qdrant REST API."""

    def __init__(self):
        self.collections: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        # (method, path suffix) -> status code to fail with
        self.failures: dict[tuple[str, str], int] = {}
        # (method, path suffix) -> body answered with status 200 instead of JSON
        self.raw_bodies: dict[tuple[str, str], str] = {}

    def add_collection(self, name: str, size: int = DIM, distance: str = "Cosine") -> None:
        self.collections[name] = {"config": {"vectors": {"size": size, "distance": distance}}, "points": {}}

    def add_point(self, name: str, point_id: str, vector: list[float], payload: dict | None) -> None:
        self.collections[name]["points"][point_id] = {"id": point_id, "vector": vector, "payload": payload}

    def points(self, name: str) -> list[dict]:
        return list(self.collections[name]["points"].values())

    def requests_to(self, method: str, suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path.endswith(suffix)]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        method = request.method

        for (fail_method, suffix), status in self.failures.items():
            if method == fail_method and path.endswith(suffix):
                return httpx.Response(status, json={"status": {"error": "injected failure"}})
        for (raw_method, suffix), text in self.raw_bodies.items():
            if method == raw_method and path.endswith(suffix):
                return httpx.Response(200, text=text)

        if path == "/healthz":
            return httpx.Response(200, text="healthz check passed")

        # split on the encoded path so quoted slashes stay inside the collection name
        raw_path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        parts = [unquote(part) for part in raw_path.strip("/").split("/")]
        if len(parts) < 2 or parts[0] != "collections":
            return httpx.Response(404, json={"status": {"error": "Not found"}})
        name, rest = parts[1], parts[2:]
        body = json.loads(request.content) if request.content else {}

        if rest == ["exists"] and method == "GET":
            return httpx.Response(200, json={"result": {"exists": name in self.collections}})
        if rest == [] and method == "PUT":
            if name in self.collections:
                return httpx.Response(409, json={"status": {"error": f"Collection `{name}` already exists!"}})
            self.collections[name] = {"config": body, "points": {}}
            return httpx.Response(200, json={"result": True})
        if rest == [] and method == "DELETE":
            self.collections.pop(name, None)
            return httpx.Response(200, json={"result": True})

        if name not in self.collections:
            return httpx.Response(404, json={"status": {"error": f"Collection `{name}` doesn't exist!"}})
        collection = self.collections[name]

        if rest == ["points"] and method == "PUT":
            size = collection["config"]["vectors"]["size"]
            for point in body["points"]:
                if len(point["vector"]) != size:
                    return httpx.Response(400, json={"status": {"error": "Wrong input: Vector dimension error"}})
            for point in body["points"]:
                collection["points"][point["id"]] = point
            return httpx.Response(200, json={"result": {"operation_id": 0, "status": "completed"}})

        if rest == ["points", "query"] and method == "POST":
            hits = []
            for point in collection["points"].values():
                payload = point.get("payload") or {}
                if not _matches(payload, body.get("filter")):
                    continue
                score = _cosine(body["query"], point["vector"])
                if body.get("score_threshold") is not None and score < body["score_threshold"]:
                    continue
                with_payload = body.get("with_payload", True)
                if isinstance(with_payload, list):
                    returned = {k: v for k, v in payload.items() if k in with_payload}
                elif with_payload:
                    returned = payload
                else:
                    returned = None
                hits.append({"id": point["id"], "version": 0, "score": score, "payload": returned})
            hits.sort(key=lambda hit: hit["score"], reverse=True)
            return httpx.Response(200, json={"result": {"points": hits[: body["limit"]]}, "status": "ok"})

        if rest == ["points", "count"] and method == "POST":
            count = sum(
                1 for point in collection["points"].values()
                if _matches(point.get("payload") or {}, body.get("filter"))
            )
            return httpx.Response(200, json={"result": {"count": count}, "status": "ok"})

        return httpx.Response(404, json={"status": {"error": "Not found"}})


class FakeOllama:
    """Answers /api/embed with registered vectors, or a constant vector for unknown texts."""

    def __init__(self, dim: int = DIM):
        self.vectors: dict[str, list[float]] = {}
        self.default: list[float] = [1.0] * dim
        self.requests: list[httpx.Request] = []
        self.status = 200
        # answered with status 200 instead of JSON when set
        self.raw_body: str | None = None

    def embed_requests(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path == "/api/embed"]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path in ("", "/"):
            return httpx.Response(200, text="Ollama is running")
        if request.url.path != "/api/embed":
            return httpx.Response(404, text="404 page not found")
        if self.status != 200:
            return httpx.Response(self.status, json={"error": "model failed to load"})
        if self.raw_body is not None:
            return httpx.Response(200, text=self.raw_body)
        body = json.loads(request.content)
        embeddings = [self.vectors.get(text, self.default) for text in body["input"]]
        return httpx.Response(200, json={"model": body["model"], "embeddings": embeddings})


@pytest.fixture(autouse=True)
def env(monkeypatch):
    for key in (
        "RAG_QDRANT_COLLECTIONS",
        "RAG_QDRANT_API_KEY",
        "RAG_QDRANT_USE_TLS",
        "RAG_QDRANT_VECTOR_SIZE",
        "RAG_QDRANT_DISTANCE",
        "RAG_QDRANT_CONTENT_KEY",
        "RAG_QDRANT_METADATA_KEY",
        "RAG_QDRANT_CONTENT_TYPE_KEY",
        "RAG_QDRANT_SCORE_KEY",
        "EMBED_OLLAMA_API_KEY",
        "EMBED_MODEL_MAX_CHARS",
        "EMBED_CHUNK_OVERLAP",
        "EMBED_CONCURRENCY",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("RAG_QDRANT_HOST", QDRANT_HOST)
    monkeypatch.setenv("RAG_QDRANT_PORT", "6333")
    monkeypatch.setenv("EMBED_ENGINE", "ollama")
    monkeypatch.setenv("EMBED_OLLAMA_BASE_URL", OLLAMA_URL)
    monkeypatch.setenv("EMBED_MODEL", "nomic-embed-text")
    return monkeypatch


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("tests"))


@pytest.fixture
def fake_qdrant() -> FakeQdrant:
    return FakeQdrant()


@pytest.fixture
def fake_ollama() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
def transport(fake_qdrant, fake_ollama) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == QDRANT_HOST:
            return fake_qdrant.handle(request)
        return fake_ollama.handle(request)

    return httpx.MockTransport(handler)


@pytest_asyncio.fixture
async def rag_client(helper_config, transport):
    client = RAGClientQdrant(helper_config=helper_config)
    await client.boot(transport=transport)
    yield client
    await client.close()


@pytest_asyncio.fixture
async def embed_client(helper_config, transport):
    client = EmbedClientOllama(helper_config=helper_config)
    await client.boot(transport=transport)
    yield client
    await client.close()


@pytest.fixture
def collection(embed_client) -> CollectionConfig:
    return CollectionConfig(collection_name="docs", embed_client=embed_client)


@pytest.fixture
def collection_service(helper_config, rag_client) -> CollectionService:
    return CollectionService(helper_config=helper_config, rag_client=rag_client)


@pytest.fixture
def indexer(helper_config, rag_client, collection_service, collection) -> IndexerService:
    return IndexerService(helper_config, rag_client, collection_service, collection)


@pytest.fixture
def retriever(helper_config, rag_client, collection_service, collection) -> RetrieverService:
    return RetrieverService(helper_config, rag_client, collection_service, collection)
