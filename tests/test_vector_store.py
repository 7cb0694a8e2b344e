"""
Tests for the vector store clients.
"""

import asyncio
import dataclasses
import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from rag_relay.exceptions import StoreUnavailable
from rag_relay.vector_store import HttpVectorStore, LocalVectorStore, VectorStoreClient, create_vector_store


@pytest.fixture
def embedder():
    mock = MagicMock()
    mock.generate_single_embedding = AsyncMock(return_value=[1.0, 0.0, 0.0])
    return mock


@pytest.fixture
def collection_dir(tmp_path):
    records = [
        {"id": "same", "text": "Exactly the question direction.", "vector": [1.0, 0.0, 0.0]},
        {"id": "close", "text": "Nearly the same direction.", "vector": [0.9, 0.1, 0.0]},
        {"id": "far", "text": "Orthogonal content.", "vector": [0.0, 1.0, 0.0]},
        {"id": "blank", "text": "  ", "vector": [1.0, 0.0, 0.0]},
    ]
    (tmp_path / "rust-book.json").write_text(json.dumps(records), encoding="utf-8")
    return tmp_path


def make_http_store(embedder, handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpVectorStore(embedder, base_url="http://store.local/", http_client=client, **kwargs)


@pytest.mark.asyncio
async def test_local_store_returns_passages_above_threshold(embedder, collection_dir):
    store = LocalVectorStore(embedder, base_path=str(collection_dir), min_score=0.75)

    passages = await store.query("rust-book", "What is ownership?", top_k=5)

    assert [p.source_id for p in passages] == ["same", "close"]
    assert passages[0].similarity_score == pytest.approx(1.0)
    assert passages[0].similarity_score >= passages[1].similarity_score
    embedder.generate_single_embedding.assert_awaited_once_with("What is ownership?")


@pytest.mark.asyncio
async def test_local_store_respects_top_k(embedder, collection_dir):
    store = LocalVectorStore(embedder, base_path=str(collection_dir), min_score=0.0)

    passages = await store.query("rust-book", "q", top_k=1)

    assert [p.source_id for p in passages] == ["same"]


@pytest.mark.asyncio
async def test_local_store_no_qualifying_passages_is_empty(embedder, collection_dir):
    embedder.generate_single_embedding.return_value = [0.0, 0.0, 1.0]
    store = LocalVectorStore(embedder, base_path=str(collection_dir), min_score=0.75)

    assert await store.query("rust-book", "unrelated", top_k=5) == []


@pytest.mark.asyncio
async def test_local_store_missing_collection(embedder, tmp_path):
    store = LocalVectorStore(embedder, base_path=str(tmp_path))

    with pytest.raises(StoreUnavailable, match="Collection not found"):
        await store.query("missing", "q", top_k=3)


@pytest.mark.asyncio
async def test_local_store_dimension_mismatch(embedder, collection_dir):
    embedder.generate_single_embedding.return_value = [1.0, 0.0]
    store = LocalVectorStore(embedder, base_path=str(collection_dir))

    with pytest.raises(StoreUnavailable, match="dimensions"):
        await store.query("rust-book", "q", top_k=3)


@pytest.mark.asyncio
async def test_embedding_failure_is_store_unavailable(embedder, collection_dir):
    embedder.generate_single_embedding.side_effect = RuntimeError("embedding API down")
    store = LocalVectorStore(embedder, base_path=str(collection_dir))

    with pytest.raises(StoreUnavailable, match="embedding API down"):
        await store.query("rust-book", "q", top_k=3)


@pytest.mark.asyncio
async def test_query_timeout_is_store_unavailable(embedder, collection_dir):
    async def slow_embedding(text):
        await asyncio.sleep(1)
        return [1.0, 0.0, 0.0]

    embedder.generate_single_embedding.side_effect = slow_embedding
    store = LocalVectorStore(embedder, base_path=str(collection_dir), timeout=0.01)

    with pytest.raises(StoreUnavailable, match="timed out"):
        await store.query("rust-book", "q", top_k=3)


@pytest.mark.asyncio
async def test_http_store_search(embedder):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"result": [
            {"id": 7, "score": 0.80, "payload": {"text": "second"}},
            {"id": 3, "score": 0.92, "payload": {"text": "first"}},
            {"id": 9, "score": 0.40, "payload": {"text": "too weak"}},
            {"id": 5, "score": 0.99, "payload": {}},
        ]})

    store = make_http_store(embedder, handler, min_score=0.75)
    passages = await store.query("rust-book", "q", top_k=5)

    assert seen["url"] == "http://store.local/collections/rust-book/points/search"
    assert seen["body"] == {"vector": [1.0, 0.0, 0.0], "limit": 5, "with_payload": True}
    assert [(p.text, p.source_id) for p in passages] == [("first", "3"), ("second", "7")]


@pytest.mark.asyncio
async def test_http_store_error_status(embedder):
    store = make_http_store(embedder, lambda request: httpx.Response(503, text="busy"))

    with pytest.raises(StoreUnavailable, match="503"):
        await store.query("rust-book", "q", top_k=3)


@pytest.mark.asyncio
async def test_http_store_invalid_payload(embedder):
    store = make_http_store(embedder, lambda request: httpx.Response(200, json={"status": "ok"}))

    with pytest.raises(StoreUnavailable, match="invalid payload"):
        await store.query("rust-book", "q", top_k=3)


@pytest.mark.asyncio
async def test_http_store_connection_error(embedder):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    store = make_http_store(embedder, handler)

    with pytest.raises(StoreUnavailable, match="connection failed"):
        await store.query("rust-book", "q", top_k=3)


def test_vector_store_client_is_abstract(embedder):
    with pytest.raises(TypeError):
        VectorStoreClient(embedder)


def test_create_vector_store_picks_backend(relay_config, embedder):
    assert isinstance(create_vector_store(relay_config, embedder), LocalVectorStore)

    remote = dataclasses.replace(relay_config, vector_store_url="http://qdrant:6333")
    store = create_vector_store(remote, embedder)
    assert isinstance(store, HttpVectorStore)
    assert store.base_url == "http://qdrant:6333"
