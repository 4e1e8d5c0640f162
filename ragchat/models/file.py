"""FileRecord model — an uploaded file and the vectors derived from it."""

from datetime import datetime

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel

from ragchat.models.base import TimestampMixin, new_id


class FileRecord(TimestampMixin, SQLModel, table=True):
    __tablename__ = "files"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    user_id: str = Field(nullable=False, index=True, max_length=255)

    # Name on disk (random suffix) vs. name as uploaded
    filename: str = Field(max_length=255, nullable=False)
    original_name: str = Field(max_length=255, nullable=False)
    file_type: str = Field(max_length=10, nullable=False)
    file_size: int = Field(default=0)
    storage_path: str = Field(max_length=1000, nullable=False)

    # Ids of the StoredVectors, in chunk order
    vector_ids: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


# ── Pydantic schemas ─────────────────────────────────────────

class FileRead(SQLModel):
    id: str
    filename: str
    file_type: str
    file_size: int
    upload_date: datetime
    vector_count: int

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileRead":
        return cls(
            id=record.id,
            filename=record.original_name,
            file_type=record.file_type,
            file_size=record.file_size,
            upload_date=record.created_at,
            vector_count=len(record.vector_ids),
        )
