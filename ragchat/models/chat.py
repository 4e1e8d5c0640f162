"""Chat model — a conversation session owned by one user."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from ragchat.models.base import TimestampMixin, new_id, utcnow
from ragchat.models.message import ChatMessage


class Chat(TimestampMixin, SQLModel, table=True):
    __tablename__ = "chats"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    user_id: str = Field(nullable=False, index=True, max_length=255)


# ── Pydantic schemas ─────────────────────────────────────────

class ChatSession(SQLModel):
    """A chat with its messages in append order."""

    id: str = Field(default_factory=new_id)
    user_id: str
    messages: list[ChatMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SessionSummary(SQLModel):
    chat_id: str
    user_id: str
    total_messages: int
    user_messages: int
    assistant_messages: int
    duration_minutes: int
    summary: str
