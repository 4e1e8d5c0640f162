"""Report model — a negative-feedback complaint queued for review."""

from enum import StrEnum

from sqlalchemy import JSON, Text
from sqlmodel import Column, Field, SQLModel

from ragchat.models.base import TimestampMixin, new_id


class ReportStatus(StrEnum):
    PENDING = "pending"
    REVIEWED = "reviewed"


class Report(TimestampMixin, SQLModel, table=True):
    __tablename__ = "reports"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    user_id: str = Field(nullable=False, index=True, max_length=255)
    chat_id: str = Field(nullable=False, index=True, max_length=32)

    query: str = Field(default="", sa_column=Column(Text, nullable=False))
    response: str = Field(sa_column=Column(Text, nullable=False))
    # Copy of the rated message's SourceRef dicts at report time
    sources: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    reason: str = Field(default="", max_length=2000)

    status: ReportStatus = Field(default=ReportStatus.PENDING)
    correction: str | None = Field(default=None, sa_column=Column(Text, nullable=True))


# ── Pydantic schemas ─────────────────────────────────────────

class ReportReview(SQLModel):
    correction: str | None = None
