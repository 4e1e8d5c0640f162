"""Process-wide wiring: repositories, vector store and pipelines.

Built once at start-up and attached to ``app.state``; the backend of each
concern is picked from settings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from ragchat.core.config import Settings
from ragchat.core.database import create_engine, create_session_factory, init_db
from ragchat.core.locks import KeyedLock
from ragchat.repositories.base import ChatRepository, FileRepository, ReportRepository
from ragchat.repositories.memory import (
    InMemoryChatRepository,
    InMemoryFileRepository,
    InMemoryReportRepository,
    MemoryStore,
)
from ragchat.repositories.sql import SqlChatRepository, SqlFileRepository, SqlReportRepository
from ragchat.services.ingestion import IngestionPipeline
from ragchat.services.orchestrator import ChatPipeline
from ragchat.services.vector_store import InMemoryVectorStore, QdrantVectorStore, VectorStore

logger = logging.getLogger(__name__)


@dataclass
class Container:
    settings: Settings
    chats: ChatRepository
    files: FileRepository
    reports: ReportRepository
    vector_store: VectorStore
    chat_pipeline: ChatPipeline
    ingestion: IngestionPipeline
    engine: AsyncEngine | None = None

    async def startup(self) -> None:
        if self.engine is not None:
            await init_db(self.engine)
        await self.vector_store.ensure_ready()

    async def shutdown(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


def build_vector_store(settings: Settings) -> VectorStore:
    if not settings.qdrant_url:
        logger.warning("QDRANT_URL not set; using the in-memory vector store")
        return InMemoryVectorStore()
    return QdrantVectorStore(
        url=settings.qdrant_url,
        collection_name=settings.qdrant_collection,
        dimensions=settings.embedding_dimensions,
        api_key=settings.qdrant_api_key,
    )


def build_container(
    settings: Settings,
    vector_store: VectorStore | None = None,
    engine: AsyncEngine | None = None,
) -> Container:
    """Wire every component for ``settings``.

    ``vector_store`` and ``engine`` override what settings would select.
    """
    if engine is None and settings.database_url:
        engine = create_engine(settings.database_url)

    if engine is not None:
        session_factory = create_session_factory(engine)
        chats: ChatRepository = SqlChatRepository(session_factory)
        files: FileRepository = SqlFileRepository(session_factory)
        reports: ReportRepository = SqlReportRepository(session_factory)
    else:
        logger.warning("DATABASE_URL not set; chats, files and reports are kept in memory")
        store = MemoryStore()
        chats = InMemoryChatRepository(store)
        files = InMemoryFileRepository(store)
        reports = InMemoryReportRepository(store)

    if vector_store is None:
        vector_store = build_vector_store(settings)

    return Container(
        settings=settings,
        chats=chats,
        files=files,
        reports=reports,
        vector_store=vector_store,
        chat_pipeline=ChatPipeline(
            chats,
            reports,
            vector_store,
            locks=KeyedLock(),
            top_k=settings.retrieval_top_k,
        ),
        ingestion=IngestionPipeline(
            files,
            vector_store,
            settings.file_storage_path,
            locks=KeyedLock(),
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            max_file_size=settings.max_file_size,
        ),
        engine=engine,
    )
