"""Vector store backends — in-process cosine matcher and Qdrant.

Both backends honour the same contract: insert-or-replace by id, search
filtered by exact metadata equality (AND across keys) then ranked by cosine
similarity, and delete by id.
"""

from __future__ import annotations

import logging
import math
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PointIdsList,
    PointStruct,
    VectorParams,
)

from ragchat.core.errors import UpstreamStoreFailure

logger = logging.getLogger(__name__)

MetadataFilter = Mapping[str, Any]


@dataclass
class StoredVector:
    id: str
    values: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class VectorMatch:
    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Dot product over the product of Euclidean norms.

    A zero vector has no direction and scores 0.0 against anything.
    """
    if len(a) != len(b):
        raise ValueError(f"Vector dimensions differ: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


def matches_filter(metadata: Mapping[str, Any], filter: MetadataFilter | None) -> bool:
    if not filter:
        return True
    return all(key in metadata and metadata[key] == value for key, value in filter.items())


class VectorStore(ABC):
    """Storage for (vector, metadata) pairs with filtered nearest-neighbour search."""

    @abstractmethod
    async def upsert(self, vectors: Sequence[StoredVector]) -> int:
        """Insert or replace ``vectors`` by id. Returns how many were written."""

    @abstractmethod
    async def search(
        self,
        query_vector: Sequence[float],
        top_k: int,
        filter: MetadataFilter | None = None,
    ) -> list[VectorMatch]:
        """Best ``top_k`` matches among vectors passing ``filter``, by descending score."""

    @abstractmethod
    async def delete(self, ids: Sequence[str]) -> int:
        """Delete by id. Returns how many existed and were removed."""

    @abstractmethod
    async def list_ids(self, filter: MetadataFilter | None = None) -> list[str]:
        """Every stored id whose metadata passes ``filter``."""

    @abstractmethod
    async def count(self) -> int: ...

    async def ensure_ready(self) -> None:
        """Prepare backing resources. No-op by default."""


class InMemoryVectorStore(VectorStore):
    """Process-local store with brute-force cosine ranking.

    Used when no Qdrant URL is configured, and in tests.
    """

    def __init__(self) -> None:
        # Insertion ordered; ties in ranking keep this order
        self._vectors: dict[str, StoredVector] = {}

    async def upsert(self, vectors: Sequence[StoredVector]) -> int:
        for vector in vectors:
            # Replace moves the entry to the end, like delete + append
            self._vectors.pop(vector.id, None)
            self._vectors[vector.id] = StoredVector(
                id=vector.id,
                values=list(vector.values),
                metadata=dict(vector.metadata),
            )
        return len(vectors)

    async def search(
        self,
        query_vector: Sequence[float],
        top_k: int,
        filter: MetadataFilter | None = None,
    ) -> list[VectorMatch]:
        if top_k <= 0:
            return []
        candidates = [v for v in self._vectors.values() if matches_filter(v.metadata, filter)]
        scored = [
            VectorMatch(
                id=v.id,
                score=cosine_similarity(query_vector, v.values),
                metadata=dict(v.metadata),
            )
            for v in candidates
        ]
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:top_k]

    async def delete(self, ids: Sequence[str]) -> int:
        removed = 0
        for vector_id in ids:
            if self._vectors.pop(vector_id, None) is not None:
                removed += 1
        return removed

    async def list_ids(self, filter: MetadataFilter | None = None) -> list[str]:
        return [v.id for v in self._vectors.values() if matches_filter(v.metadata, filter)]

    async def count(self) -> int:
        return len(self._vectors)

    def get(self, vector_id: str) -> StoredVector | None:
        return self._vectors.get(vector_id)


# ── Qdrant ────────────────────────────────────────────────────

# Payload key holding our string id; Qdrant point ids must be UUIDs or ints
ID_PAYLOAD_KEY = "vector_id"
_POINT_NAMESPACE = uuid.UUID("6f1c1d56-0a7e-4f51-9a35-4c3f6f0e2b11")
SCROLL_PAGE_SIZE = 256


def point_id(vector_id: str) -> str:
    return str(uuid.uuid5(_POINT_NAMESPACE, vector_id))


def _to_qdrant_filter(filter: MetadataFilter | None) -> Filter | None:
    if not filter:
        return None
    return Filter(
        must=[
            FieldCondition(key=key, match=MatchValue(value=value))
            for key, value in filter.items()
        ]
    )


@asynccontextmanager
async def _upstream(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except UpstreamStoreFailure:
        raise
    except Exception as exc:
        raise UpstreamStoreFailure(f"Qdrant {operation} failed: {exc}") from exc


class QdrantVectorStore(VectorStore):
    """Qdrant-backed store; one collection, isolation via payload filtering."""

    def __init__(
        self,
        url: str,
        collection_name: str,
        dimensions: int,
        api_key: str | None = None,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        self.collection_name = collection_name
        self.dimensions = dimensions
        self._client = client or AsyncQdrantClient(
            url=url,
            api_key=api_key or None,
            check_compatibility=False,
        )

    async def ensure_ready(self) -> None:
        """Create the collection if it doesn't exist."""
        async with _upstream("ensure_collection"):
            collections = await self._client.get_collections()
            existing = {c.name for c in collections.collections}
            if self.collection_name not in existing:
                logger.info("Creating Qdrant collection %s", self.collection_name)
                await self._client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config=VectorParams(size=self.dimensions, distance=Distance.COSINE),
                )

    async def upsert(self, vectors: Sequence[StoredVector]) -> int:
        if not vectors:
            return 0
        points = [
            PointStruct(
                id=point_id(v.id),
                vector=list(v.values),
                payload={**v.metadata, ID_PAYLOAD_KEY: v.id},
            )
            for v in vectors
        ]
        async with _upstream("upsert"):
            await self._client.upsert(collection_name=self.collection_name, points=points)
        return len(points)

    async def search(
        self,
        query_vector: Sequence[float],
        top_k: int,
        filter: MetadataFilter | None = None,
    ) -> list[VectorMatch]:
        if top_k <= 0:
            return []
        async with _upstream("query"):
            response = await self._client.query_points(
                collection_name=self.collection_name,
                query=list(query_vector),
                query_filter=_to_qdrant_filter(filter),
                limit=top_k,
                with_payload=True,
            )
        matches = []
        for hit in response.points:
            payload = dict(hit.payload or {})
            vector_id = payload.pop(ID_PAYLOAD_KEY, str(hit.id))
            matches.append(VectorMatch(id=vector_id, score=hit.score, metadata=payload))
        return matches

    async def delete(self, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        point_ids = [point_id(i) for i in ids]
        async with _upstream("delete"):
            existing = await self._client.retrieve(
                collection_name=self.collection_name,
                ids=point_ids,
                with_payload=False,
                with_vectors=False,
            )
            await self._client.delete(
                collection_name=self.collection_name,
                points_selector=PointIdsList(points=point_ids),
            )
        return len(existing)

    async def list_ids(self, filter: MetadataFilter | None = None) -> list[str]:
        ids: list[str] = []
        offset = None
        async with _upstream("scroll"):
            while True:
                points, offset = await self._client.scroll(
                    collection_name=self.collection_name,
                    scroll_filter=_to_qdrant_filter(filter),
                    limit=SCROLL_PAGE_SIZE,
                    offset=offset,
                    with_payload=[ID_PAYLOAD_KEY],
                    with_vectors=False,
                )
                ids.extend(str((p.payload or {}).get(ID_PAYLOAD_KEY, p.id)) for p in points)
                if offset is None:
                    break
        return ids

    async def count(self) -> int:
        async with _upstream("count"):
            result = await self._client.count(collection_name=self.collection_name, exact=True)
        return result.count
