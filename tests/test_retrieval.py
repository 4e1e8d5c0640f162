"""Retrieval tests — storing, searching and deleting document chunks."""

from unittest.mock import AsyncMock, patch

import pytest

from ragchat.core.errors import EmbeddingFailed
from ragchat.services.chunking import TextChunk
from ragchat.services.retrieval import (
    chunk_vector_id,
    delete_file_vectors,
    search_relevant_chunks,
    store_document_chunks,
)
from ragchat.services.vector_store import InMemoryVectorStore


def _chunks(*texts: str) -> list[TextChunk]:
    return [TextChunk(index=i, content=t, char_count=len(t)) for i, t in enumerate(texts)]


async def test_store_assigns_ids_and_metadata(vector_store, mock_embed):
    ids = await store_document_chunks(
        vector_store, _chunks("alpha text", "beta text"), "u1", "f1"
    )

    assert ids == ["f1_chunk_0", "f1_chunk_1"]
    stored = vector_store.get("f1_chunk_1")
    assert stored.metadata == {
        "userId": "u1",
        "fileId": "f1",
        "text": "beta text",
        "chunkIndex": 1,
    }
    assert [c.args[0] for c in mock_embed.call_args_list] == ["alpha text", "beta text"]


async def test_store_no_chunks_writes_nothing(vector_store, mock_embed):
    assert await store_document_chunks(vector_store, [], "u1", "f1") == []
    assert await vector_store.count() == 0


async def test_store_embedding_failure_writes_nothing(vector_store):
    embed = AsyncMock(side_effect=[[1.0, 0.0], EmbeddingFailed("quota exceeded")])
    with patch("ragchat.services.retrieval.embed_text", embed):
        with pytest.raises(EmbeddingFailed):
            await store_document_chunks(vector_store, _chunks("one", "two"), "u1", "f1")

    assert await vector_store.count() == 0


async def test_search_returns_best_match_first(vector_store, mock_embed):
    await store_document_chunks(
        vector_store,
        _chunks("zebra zoo zigzag", "apple banana salad"),
        "u1",
        "f1",
    )

    results = await search_relevant_chunks(vector_store, "banana apple", "u1", top_k=2)

    assert results[0].text == "apple banana salad"
    assert results[0].file_id == "f1"
    assert results[0].id == chunk_vector_id("f1", 1)
    assert results[0].score >= results[1].score


async def test_search_is_scoped_to_user(vector_store, mock_embed):
    await store_document_chunks(vector_store, _chunks("shared words here"), "u1", "f1")
    await store_document_chunks(vector_store, _chunks("shared words here"), "u2", "f2")

    results = await search_relevant_chunks(vector_store, "shared words", "u2")

    assert [r.file_id for r in results] == ["f2"]


async def test_search_with_no_vectors(vector_store, mock_embed):
    assert await search_relevant_chunks(vector_store, "anything", "u1") == []


async def test_delete_file_vectors_removes_every_chunk(vector_store, mock_embed):
    # More chunks than any search top_k
    texts = [f"chunk number {i}" for i in range(40)]
    await store_document_chunks(vector_store, _chunks(*texts), "u1", "f1")
    await store_document_chunks(vector_store, _chunks("keep me"), "u1", "f2")

    deleted = await delete_file_vectors(vector_store, "f1")

    assert deleted == 40
    assert await vector_store.list_ids() == ["f2_chunk_0"]


async def test_delete_file_vectors_unknown_file():
    assert await delete_file_vectors(InMemoryVectorStore(), "nope") == 0
