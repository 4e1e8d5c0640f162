"""Chat endpoints — the main RAG interaction point."""

from typing import Literal

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from ragchat.api.deps import Chats
from ragchat.models.chat import ChatSession, SessionSummary
from ragchat.models.message import ChatMessage, Feedback

router = APIRouter(prefix="/chat", tags=["chat"])

# Characters of each source shown in the chat response
SOURCE_PREVIEW_CHARS = 150


# ── Request / Response schemas ────────────────────────────────

class ChatRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1, max_length=32000)
    chat_id: str | None = Field(
        default=None,
        description="Existing chat session ID. Omit to start a new conversation.",
    )


class SourcePreview(BaseModel):
    file_id: str
    text: str


class ChatMessageResponse(BaseModel):
    chat_id: str
    message: str
    sources: list[SourcePreview] = Field(
        default_factory=list,
        description="Retrieved context chunks used for the answer",
    )


class ChatHistoryResponse(BaseModel):
    chats: list[ChatSession]


class FeedbackRequest(BaseModel):
    chat_id: str = Field(min_length=1)
    message_index: int
    feedback: Literal["positive", "negative"] | None
    report_reason: str | None = Field(default=None, max_length=2000)


class FeedbackResponse(BaseModel):
    success: bool = True
    message: ChatMessage


class EndSessionRequest(BaseModel):
    chat_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)


def _preview(text: str) -> str:
    if len(text) <= SOURCE_PREVIEW_CHARS:
        return text
    return text[:SOURCE_PREVIEW_CHARS] + "..."


# ── Routes ────────────────────────────────────────────────────

@router.post("/message", response_model=ChatMessageResponse, status_code=status.HTTP_200_OK)
async def post_message(body: ChatRequest, chats: Chats) -> ChatMessageResponse:
    """Send a message and get a RAG-augmented response.

    Creates a new chat session if chat_id is not provided.
    """
    turn = await chats.post_message(body.user_id, body.message, body.chat_id)
    return ChatMessageResponse(
        chat_id=turn.chat_id,
        message=turn.content,
        sources=[
            SourcePreview(file_id=c.file_id, text=_preview(c.text))
            for c in turn.retrieved_chunks
        ],
    )


@router.get("/history", response_model=ChatHistoryResponse)
async def chat_history(
    chats: Chats,
    user_id: str = Query(min_length=1),
) -> ChatHistoryResponse:
    """List the user's chat sessions, most recently updated first."""
    return ChatHistoryResponse(chats=await chats.list_chats(user_id))


@router.post("/feedback", response_model=FeedbackResponse)
async def submit_feedback(body: FeedbackRequest, chats: Chats) -> FeedbackResponse:
    """Set or clear feedback on an assistant message."""
    message = await chats.submit_feedback(
        body.chat_id,
        body.message_index,
        Feedback(body.feedback) if body.feedback else None,
        body.report_reason,
    )
    return FeedbackResponse(message=message)


@router.post("/end-session", response_model=SessionSummary)
async def end_session(body: EndSessionRequest, chats: Chats) -> SessionSummary:
    """Summarize a chat session. The session stays usable afterwards."""
    return await chats.end_session(body.chat_id, body.user_id)


@router.get("/{chat_id}", response_model=ChatSession)
async def get_chat(
    chat_id: str,
    chats: Chats,
    user_id: str = Query(min_length=1),
) -> ChatSession:
    return await chats.get_chat(chat_id, user_id)
