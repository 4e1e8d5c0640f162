"""Chat orchestrator — retrieval-augmented generation and session state.

Flow of one turn:
  1. Resolve the chat (when continuing one)
  2. Embed the message and search the user's chunks
  3. Build the grounded prompt and call the LLM
  4. Append user + assistant messages together, or create the chat with them

Steps 2 and 3 run before anything is written, so a failure in either leaves
the session untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ragchat.core.errors import (
    ChatNotFound,
    InvalidFeedbackTarget,
    InvalidMessageIndex,
    ReportNotFound,
    ValidationError,
)
from ragchat.core.locks import KeyedLock
from ragchat.models.base import as_utc, utcnow
from ragchat.models.chat import ChatSession, SessionSummary
from ragchat.models.message import ChatMessage, Feedback, MessageRole, SourceRef
from ragchat.models.report import Report, ReportStatus
from ragchat.repositories.base import ChatRepository, ReportRepository
from ragchat.services.generation import generate_response
from ragchat.services.retrieval import DEFAULT_TOP_K, RetrievedChunk, search_relevant_chunks
from ragchat.services.vector_store import VectorStore

logger = logging.getLogger(__name__)

# Session summaries list at most this many questions, each cut to this length
SUMMARY_MAX_QUESTIONS = 5
SUMMARY_QUESTION_CHARS = 100


@dataclass
class ChatTurn:
    """The result of one orchestrated chat turn."""
    chat_id: str
    content: str
    retrieved_chunks: list[RetrievedChunk] = field(default_factory=list)
    created: bool = False


def _sources(chunks: list[RetrievedChunk]) -> list[SourceRef]:
    return [SourceRef(file_id=c.file_id, chunk_id=c.id, text=c.text) for c in chunks]


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class ChatPipeline:
    def __init__(
        self,
        chats: ChatRepository,
        reports: ReportRepository,
        vector_store: VectorStore,
        locks: KeyedLock | None = None,
        top_k: int = DEFAULT_TOP_K,
    ) -> None:
        self.chats = chats
        self.reports = reports
        self.vector_store = vector_store
        self.locks = locks if locks is not None else KeyedLock()
        self.top_k = top_k

    async def post_message(
        self,
        user_id: str,
        message: str,
        chat_id: str | None = None,
    ) -> ChatTurn:
        """Answer ``message`` for ``user_id`` and record both sides of the turn.

        Raises:
            ValidationError: Blank user id or message.
            ChatNotFound: ``chat_id`` is not a chat of this user.
        """
        if not user_id or not user_id.strip() or not message or not message.strip():
            raise ValidationError("User ID and message are required")

        if chat_id and await self.chats.get(chat_id, user_id) is None:
            raise ChatNotFound(chat_id)

        asked_at = utcnow()
        retrieved = await search_relevant_chunks(
            self.vector_store, message, user_id, top_k=self.top_k
        )
        answer = await generate_response(message, retrieved)

        user_msg = ChatMessage(role=MessageRole.USER, content=message, timestamp=asked_at)
        assistant_msg = ChatMessage(
            role=MessageRole.ASSISTANT,
            content=answer,
            timestamp=utcnow(),
            sources=_sources(retrieved),
        )

        if chat_id:
            async with self.locks.hold(chat_id):
                chat = await self.chats.append_messages(chat_id, [user_msg, assistant_msg])
            created = False
        else:
            chat = await self.chats.create(
                ChatSession(user_id=user_id, messages=[user_msg, assistant_msg])
            )
            created = True

        logger.info(
            "Chat %s: answered with %d context chunks", chat.id, len(retrieved)
        )
        return ChatTurn(
            chat_id=chat.id,
            content=answer,
            retrieved_chunks=retrieved,
            created=created,
        )

    async def get_chat(self, chat_id: str, user_id: str) -> ChatSession:
        chat = await self.chats.get(chat_id, user_id)
        if chat is None:
            raise ChatNotFound(chat_id)
        return chat

    async def list_chats(self, user_id: str) -> list[ChatSession]:
        if not user_id or not user_id.strip():
            raise ValidationError("User ID is required")
        return await self.chats.list_for_user(user_id)

    async def submit_feedback(
        self,
        chat_id: str,
        message_index: int,
        feedback: Feedback | None,
        report_reason: str | None = None,
    ) -> ChatMessage:
        """Rate an assistant message; negative feedback with a reason files a Report.

        Raises:
            ChatNotFound: No such chat.
            InvalidMessageIndex: Index outside the chat's messages.
            InvalidFeedbackTarget: The message is the user's own.
        """
        async with self.locks.hold(chat_id):
            chat = await self.chats.get(chat_id)
            if chat is None:
                raise ChatNotFound(chat_id)
            if not 0 <= message_index < len(chat.messages):
                raise InvalidMessageIndex(message_index, len(chat.messages))
            rated = chat.messages[message_index]
            if rated.role != MessageRole.ASSISTANT:
                raise InvalidFeedbackTarget()

            if feedback == Feedback.NEGATIVE and report_reason:
                query = chat.messages[message_index - 1].content if message_index > 0 else ""
                report = await self.reports.create(Report(
                    user_id=chat.user_id,
                    chat_id=chat_id,
                    query=query,
                    response=rated.content,
                    sources=[s.model_dump() for s in rated.sources],
                    reason=report_reason,
                    status=ReportStatus.PENDING,
                ))
                logger.info("Report %s filed for chat %s message %d", report.id, chat_id, message_index)

            # A failed report leaves the rating unchanged
            updated = await self.chats.set_feedback(chat_id, message_index, feedback)

        return updated

    async def end_session(self, chat_id: str, user_id: str) -> SessionSummary:
        """Summarize a chat. Read-only; the chat stays open for more turns."""
        chat = await self.get_chat(chat_id, user_id)

        questions = [m.content for m in chat.messages if m.role == MessageRole.USER]
        user_count = len(questions)
        assistant_count = sum(1 for m in chat.messages if m.role == MessageRole.ASSISTANT)

        if chat.messages:
            elapsed = utcnow() - as_utc(chat.messages[0].timestamp)
            duration = max(0, int(elapsed.total_seconds() // 60))
        else:
            duration = 0

        lines = [
            "Chat session summary",
            f"Messages: {len(chat.messages)} ({user_count} questions, "
            f"{assistant_count} answers)",
            f"Duration: {duration} minute{'s' if duration != 1 else ''}",
        ]
        if questions:
            lines.append("Questions asked:")
            lines.extend(
                f"{i}. {_truncate(q, SUMMARY_QUESTION_CHARS)}"
                for i, q in enumerate(questions[:SUMMARY_MAX_QUESTIONS], 1)
            )
        if len(questions) > SUMMARY_MAX_QUESTIONS:
            lines.append(f"...and {len(questions) - SUMMARY_MAX_QUESTIONS} more")

        return SessionSummary(
            chat_id=chat.id,
            user_id=chat.user_id,
            total_messages=len(chat.messages),
            user_messages=user_count,
            assistant_messages=assistant_count,
            duration_minutes=duration,
            summary="\n".join(lines),
        )

    # ── Reports ───────────────────────────────────────────────

    async def list_reports(self, status: ReportStatus | None = None) -> list[Report]:
        return await self.reports.list_all(status)

    async def review_report(self, report_id: str, correction: str | None = None) -> Report:
        report = await self.reports.mark_reviewed(report_id, correction)
        if report is None:
            raise ReportNotFound(report_id)
        return report
