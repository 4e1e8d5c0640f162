"""Message model — a single turn in a Chat conversation."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import JSON, DateTime, Text
from sqlmodel import Column, Field, SQLModel

from ragchat.models.base import new_id, utcnow


class MessageRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


class Feedback(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class SourceRef(SQLModel):
    """A retrieved chunk an assistant answer was grounded on."""

    file_id: str
    chunk_id: str
    text: str


class Message(SQLModel, table=True):
    __tablename__ = "messages"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    chat_id: str = Field(foreign_key="chats.id", nullable=False, index=True, max_length=32)

    # Zero-based position within the chat; the append order
    position: int = Field(nullable=False)

    role: MessageRole = Field(nullable=False)
    content: str = Field(sa_column=Column(Text, nullable=False))
    timestamp: datetime = Field(
        default_factory=utcnow, nullable=False, sa_type=DateTime(timezone=True)
    )

    # "positive", "negative", or None (assistant messages only)
    feedback: str | None = Field(default=None, max_length=20)

    # Denormalized SourceRef dicts
    sources: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


# ── Pydantic schemas ─────────────────────────────────────────

class ChatMessage(SQLModel):
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)
    feedback: Feedback | None = None
    sources: list[SourceRef] = Field(default_factory=list)
