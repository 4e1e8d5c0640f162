"""Document-level operations on top of a VectorStore.

Metadata keys stored with every vector: ``userId``, ``fileId``, ``text`` and
``chunkIndex``. Searches are always scoped to one ``userId``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ragchat.services.chunking import TextChunk
from ragchat.services.embedding import embed_text
from ragchat.services.vector_store import StoredVector, VectorStore

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


@dataclass
class RetrievedChunk:
    """A chunk retrieved from vector search."""
    id: str
    score: float
    file_id: str
    text: str


def chunk_vector_id(file_id: str, index: int) -> str:
    return f"{file_id}_chunk_{index}"


async def store_document_chunks(
    store: VectorStore,
    chunks: Sequence[TextChunk],
    user_id: str,
    file_id: str,
) -> list[str]:
    """Embed ``chunks`` in order and upsert them as one batch.

    Embedding runs sequentially, index by index. Nothing is written until
    every chunk is embedded, so an embedding failure leaves the store
    untouched.

    Returns:
        The vector ids in chunk order.
    """
    vectors: list[StoredVector] = []
    for position, chunk in enumerate(chunks):
        values = await embed_text(chunk.content)
        vectors.append(
            StoredVector(
                id=chunk_vector_id(file_id, position),
                values=values,
                metadata={
                    "userId": user_id,
                    "fileId": file_id,
                    "text": chunk.content,
                    "chunkIndex": position,
                },
            )
        )

    await store.upsert(vectors)
    logger.info("Stored %d vectors for file %s", len(vectors), file_id)
    return [v.id for v in vectors]


async def search_relevant_chunks(
    store: VectorStore,
    query: str,
    user_id: str,
    top_k: int = DEFAULT_TOP_K,
) -> list[RetrievedChunk]:
    """Embed ``query`` and return the user's best matching chunks."""
    query_vector = await embed_text(query)
    matches = await store.search(query_vector, top_k, {"userId": user_id})
    return [
        RetrievedChunk(
            id=m.id,
            score=m.score,
            file_id=str(m.metadata.get("fileId", "")),
            text=str(m.metadata.get("text", "")),
        )
        for m in matches
    ]


async def delete_file_vectors(store: VectorStore, file_id: str) -> int:
    """Delete every vector whose ``fileId`` is ``file_id``. Returns the count."""
    ids = await store.list_ids({"fileId": file_id})
    if not ids:
        return 0
    deleted = await store.delete(ids)
    logger.info("Deleted %d vectors for file %s", deleted, file_id)
    return deleted
