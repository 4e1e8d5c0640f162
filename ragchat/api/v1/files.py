"""File upload, listing and cascading delete — all scoped to user_id."""

from fastapi import APIRouter, Form, Query, UploadFile, status
from pydantic import BaseModel

from ragchat.api.deps import Ingestion
from ragchat.models.file import FileRead

router = APIRouter(prefix="/files", tags=["files"])


class UploadResponse(BaseModel):
    file_id: str
    filename: str
    file_type: str
    file_size: int
    chunk_count: int


class FileListResponse(BaseModel):
    files: list[FileRead]


class DeleteResponse(BaseModel):
    success: bool = True
    deleted_vectors: int


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile,
    ingestion: Ingestion,
    user_id: str = Form(min_length=1),
) -> UploadResponse:
    """Upload a file, then extract, chunk and index it before responding."""
    original_name = file.filename or ""
    # Reject by extension and declared size before reading the body
    ingestion.validate_upload(original_name, file.size or 0)
    # One byte past the cap is enough for ingest_upload to reject it
    content = await file.read(ingestion.max_file_size + 1)

    result = await ingestion.ingest_upload(user_id, original_name, content)
    return UploadResponse(
        file_id=result.file.id,
        filename=result.file.original_name,
        file_type=result.file.file_type,
        file_size=result.file.file_size,
        chunk_count=result.chunk_count,
    )


@router.get("", response_model=FileListResponse)
async def list_files(
    ingestion: Ingestion,
    user_id: str = Query(min_length=1),
) -> FileListResponse:
    records = await ingestion.list_files(user_id)
    return FileListResponse(files=[FileRead.from_record(r) for r in records])


@router.delete("/{file_id}", response_model=DeleteResponse)
async def delete_file(
    file_id: str,
    ingestion: Ingestion,
    user_id: str = Query(min_length=1),
) -> DeleteResponse:
    """Delete the blob, every vector of the file, and its record."""
    deleted = await ingestion.delete_file(file_id, user_id)
    return DeleteResponse(deleted_vectors=deleted)
