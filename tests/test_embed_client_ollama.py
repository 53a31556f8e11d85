import asyncio
import json

import httpx
import pytest

from qdrant_bridge.clients.embed.EmbedClientManager import EmbedClientManager
from qdrant_bridge.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from qdrant_bridge.errors import ConfigurationError, UpstreamServiceError
from qdrant_bridge.models.document import Document, Embedding

pytestmark = pytest.mark.asyncio


async def test_embed_request_payload(embed_client, fake_ollama):
    fake_ollama.vectors["a"] = [1.0, 0.0]
    fake_ollama.vectors["b"] = [0.0, 1.0]

    vectors = await embed_client.do_embed(["a", "b"], {"num_ctx": 2048})

    assert vectors == [[1.0, 0.0], [0.0, 1.0]]
    assert fake_ollama.embed_requests() == [
        {"model": "nomic-embed-text", "input": ["a", "b"], "options": {"num_ctx": 2048}}
    ]
    assert "authorization" not in fake_ollama.requests[0].headers


async def test_single_string_is_embedded(embed_client, fake_ollama):
    await embed_client.do_embed("hello")

    assert fake_ollama.embed_requests() == [{"model": "nomic-embed-text", "input": ["hello"]}]


async def test_bearer_token(env, helper_config, transport, fake_ollama):
    env.setenv("EMBED_OLLAMA_API_KEY", "secret")
    client = EmbedClientOllama(helper_config=helper_config)
    await client.boot(transport=transport)

    await client.do_embed(["hello"])
    await client.close()

    assert fake_ollama.requests[0].headers["authorization"] == "Bearer secret"


async def test_error_status_is_raised(embed_client, fake_ollama):
    fake_ollama.status = 500

    with pytest.raises(UpstreamServiceError) as exc_info:
        await embed_client.do_embed(["hello"])

    assert exc_info.value.status_code == 500


async def test_empty_embeddings_are_rejected(embed_client, fake_ollama):
    fake_ollama.default = []

    with pytest.raises(UpstreamServiceError, match="no usable embeddings"):
        await embed_client.do_embed(["unknown"])


async def test_short_document_is_one_embedding(embed_client, fake_ollama):
    fake_ollama.vectors["hello"] = [0.5, 0.5]

    embeddings = await embed_client.do_embed_document(Document.from_text("hello"))

    assert embeddings == [Embedding(embedding=[0.5, 0.5])]


async def test_long_document_is_split_with_overlap(env, helper_config, transport, fake_ollama):
    env.setenv("EMBED_MODEL_MAX_CHARS", "10")
    env.setenv("EMBED_CHUNK_OVERLAP", "2")
    client = EmbedClientOllama(helper_config=helper_config)
    await client.boot(transport=transport)

    embeddings = await client.do_embed_document(Document.from_text("abcdefghijklmnopqrst"))
    await client.close()

    assert [e.text for e in embeddings] == ["abcdefghij", "ijklmnopqr", "qrst"]
    assert [e.metadata for e in embeddings] == [{"chunk_index": 0}, {"chunk_index": 1}, {"chunk_index": 2}]
    # all chunks of a document go out in one request
    assert len(fake_ollama.embed_requests()) == 1


async def test_documents_keep_input_order(env, helper_config, transport, fake_ollama):
    env.setenv("EMBED_CONCURRENCY", "2")
    client = EmbedClientOllama(helper_config=helper_config)
    await client.boot(transport=transport)
    for i in range(6):
        fake_ollama.vectors[f"doc {i}"] = [float(i)]

    result = await client.do_embed_documents([Document.from_text(f"doc {i}") for i in range(6)])
    await client.close()

    assert [embeddings[0].embedding for embeddings in result] == [[float(i)] for i in range(6)]


async def test_failed_document_cancels_the_other_requests(helper_config):
    finished: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        [text] = json.loads(request.content)["input"]
        if text == "broken":
            return httpx.Response(500, json={"error": "model failed to load"})
        await asyncio.sleep(0.2)
        finished.append(text)
        return httpx.Response(200, json={"embeddings": [[1.0]]})

    client = EmbedClientOllama(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(handler))

    with pytest.raises(UpstreamServiceError):
        await client.do_embed_documents([Document.from_text("slow"), Document.from_text("broken")])
    await asyncio.sleep(0.3)
    await client.close()

    assert finished == []


async def test_split_text_without_limit(embed_client):
    assert embed_client.split_text("x" * 10_000) == ["x" * 10_000]


async def test_overlap_must_be_smaller_than_chunk_size(env, helper_config):
    env.setenv("EMBED_MODEL_MAX_CHARS", "100")
    env.setenv("EMBED_CHUNK_OVERLAP", "100")

    with pytest.raises(ConfigurationError, match="CHUNK_OVERLAP"):
        EmbedClientOllama(helper_config=helper_config)


async def test_concurrency_must_be_positive(env, helper_config):
    env.setenv("EMBED_CONCURRENCY", "0")

    with pytest.raises(ConfigurationError, match="CONCURRENCY"):
        EmbedClientOllama(helper_config=helper_config)


async def test_model_is_required(env, helper_config):
    env.delenv("EMBED_MODEL")

    with pytest.raises(ConfigurationError, match="EMBED_MODEL"):
        EmbedClientOllama(helper_config=helper_config)


async def test_base_url_is_required(env, helper_config):
    env.delenv("EMBED_OLLAMA_BASE_URL")

    with pytest.raises(ConfigurationError, match="EMBED_OLLAMA_BASE_URL"):
        EmbedClientOllama(helper_config=helper_config)


async def test_request_before_boot_fails(helper_config):
    client = EmbedClientOllama(helper_config=helper_config)

    with pytest.raises(RuntimeError, match="boot"):
        await client.do_embed(["hello"])


async def test_manager_resolves_engine(helper_config):
    client = EmbedClientManager(helper_config).get_client()

    assert isinstance(client, EmbedClientOllama)
    assert client.get_engine_name() == "ollama"


async def test_manager_rejects_unknown_engine(env, helper_config):
    env.setenv("EMBED_ENGINE", "nonexistent")

    with pytest.raises(ConfigurationError, match="Unsupported Embed engine"):
        EmbedClientManager(helper_config)
