"""Ingestion pipeline — stored upload -> text -> chunks -> vectors -> FileRecord."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from ragchat.core.errors import FileNotFound, FileTooLarge, UnsupportedFileType, ValidationError
from ragchat.core.locks import KeyedLock
from ragchat.models.base import new_id
from ragchat.models.file import FileRecord
from ragchat.repositories.base import FileRepository
from ragchat.services.chunking import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, chunk_text
from ragchat.services.extract import (
    ALLOWED_EXTENSIONS,
    MAX_FILE_SIZE,
    extract_text,
    normalize_file_type,
)
from ragchat.services.retrieval import delete_file_vectors, store_document_chunks
from ragchat.services.vector_store import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    file: FileRecord
    chunk_count: int


def storage_filename(original_name: str) -> str:
    """``<millis>-<random><ext>``, unique enough to never collide on disk."""
    ext = Path(original_name).suffix.lower()
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


class IngestionPipeline:
    """Owns uploaded blobs on disk and the vectors derived from them."""

    def __init__(
        self,
        files: FileRepository,
        vector_store: VectorStore,
        storage_dir: str | Path,
        locks: KeyedLock | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        max_file_size: int = MAX_FILE_SIZE,
    ) -> None:
        self.files = files
        self.vector_store = vector_store
        self.storage_dir = Path(storage_dir)
        self.locks = locks if locks is not None else KeyedLock()
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.max_file_size = max_file_size

    def validate_upload(self, original_name: str, size: int) -> str:
        """Check extension and size; returns the normalized file type."""
        ext = Path(original_name).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise UnsupportedFileType(ext, ALLOWED_EXTENSIONS)
        if size > self.max_file_size:
            raise FileTooLarge(
                f"File too large. Maximum size is {self.max_file_size // (1024 * 1024)} MB."
            )
        return normalize_file_type(ext)

    async def ingest_upload(self, user_id: str, original_name: str, content: bytes) -> IngestResult:
        """Store, extract, chunk and index one uploaded file.

        Either the file ends up fully indexed with a FileRecord, or nothing of
        it remains: on failure the blob and any vectors written for it are
        removed before the error propagates.
        """
        if not user_id or not user_id.strip():
            raise ValidationError("User ID is required")
        file_type = self.validate_upload(original_name, len(content))

        self.storage_dir.mkdir(parents=True, exist_ok=True)
        filename = storage_filename(original_name)
        path = self.storage_dir / filename
        await asyncio.to_thread(path.write_bytes, content)

        file_id = new_id()
        try:
            text = await asyncio.to_thread(extract_text, path, file_type)
            chunks = [
                c for c in chunk_text(text, self.chunk_size, self.chunk_overlap) if c.content
            ]
            vector_ids = await store_document_chunks(self.vector_store, chunks, user_id, file_id)
            record = await self.files.create(FileRecord(
                id=file_id,
                user_id=user_id,
                filename=filename,
                original_name=original_name,
                file_type=file_type,
                file_size=len(content),
                storage_path=str(path),
                vector_ids=vector_ids,
            ))
        except Exception:
            logger.exception("Ingestion failed for %s (user %s)", original_name, user_id)
            await self._discard(file_id, path)
            raise

        logger.info(
            "Ingested %s as file %s: %d chunks", original_name, file_id, len(vector_ids)
        )
        return IngestResult(file=record, chunk_count=len(vector_ids))

    async def _discard(self, file_id: str, path: Path) -> None:
        try:
            await delete_file_vectors(self.vector_store, file_id)
        except Exception:
            logger.exception("Failed to remove vectors of aborted file %s", file_id)
        path.unlink(missing_ok=True)

    async def list_files(self, user_id: str) -> list[FileRecord]:
        return await self.files.list_for_user(user_id)

    async def delete_file(self, file_id: str, user_id: str) -> int:
        """Remove a file's blob, vectors and record. Returns vectors removed."""
        async with self.locks.hold(file_id):
            record = await self.files.get(file_id, user_id)
            if record is None:
                raise FileNotFound(file_id)

            Path(record.storage_path).unlink(missing_ok=True)
            deleted = await delete_file_vectors(self.vector_store, file_id)
            await self.files.delete(file_id)

        logger.info("Deleted file %s (%d vectors)", file_id, deleted)
        return deleted
