"""In-memory repositories over one shared MemoryStore."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from ragchat.core.errors import ChatNotFound, InvalidMessageIndex
from ragchat.models.base import utcnow
from ragchat.models.chat import ChatSession
from ragchat.models.file import FileRecord
from ragchat.models.message import ChatMessage, Feedback
from ragchat.models.report import Report, ReportStatus
from ragchat.repositories.base import ChatRepository, FileRepository, ReportRepository


@dataclass
class MemoryStore:
    """Owned collections for the in-memory backend, created once at start-up."""

    chats: dict[str, ChatSession] = field(default_factory=dict)
    files: dict[str, FileRecord] = field(default_factory=dict)
    reports: dict[str, Report] = field(default_factory=dict)


class InMemoryChatRepository(ChatRepository):
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def get(self, chat_id: str, user_id: str | None = None) -> ChatSession | None:
        chat = self._store.chats.get(chat_id)
        if chat is None or (user_id is not None and chat.user_id != user_id):
            return None
        return chat.model_copy(deep=True)

    async def create(self, chat: ChatSession) -> ChatSession:
        self._store.chats[chat.id] = chat.model_copy(deep=True)
        return chat

    async def append_messages(
        self, chat_id: str, messages: Sequence[ChatMessage]
    ) -> ChatSession:
        chat = self._store.chats.get(chat_id)
        if chat is None:
            raise ChatNotFound(chat_id)
        chat.messages.extend(m.model_copy(deep=True) for m in messages)
        chat.updated_at = utcnow()
        return chat.model_copy(deep=True)

    async def set_feedback(
        self, chat_id: str, index: int, feedback: Feedback | None
    ) -> ChatMessage:
        chat = self._store.chats.get(chat_id)
        if chat is None:
            raise ChatNotFound(chat_id)
        if not 0 <= index < len(chat.messages):
            raise InvalidMessageIndex(index, len(chat.messages))
        message = chat.messages[index]
        message.feedback = feedback
        chat.updated_at = utcnow()
        return message.model_copy(deep=True)

    async def list_for_user(self, user_id: str) -> list[ChatSession]:
        chats = [c for c in self._store.chats.values() if c.user_id == user_id]
        chats.sort(key=lambda c: c.updated_at, reverse=True)
        return [c.model_copy(deep=True) for c in chats]


class InMemoryFileRepository(FileRepository):
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def create(self, record: FileRecord) -> FileRecord:
        self._store.files[record.id] = record
        return record

    async def get(self, file_id: str, user_id: str | None = None) -> FileRecord | None:
        record = self._store.files.get(file_id)
        if record is None or (user_id is not None and record.user_id != user_id):
            return None
        return record

    async def list_for_user(self, user_id: str) -> list[FileRecord]:
        records = [f for f in self._store.files.values() if f.user_id == user_id]
        records.sort(key=lambda f: f.created_at, reverse=True)
        return records

    async def delete(self, file_id: str) -> bool:
        return self._store.files.pop(file_id, None) is not None


class InMemoryReportRepository(ReportRepository):
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def create(self, report: Report) -> Report:
        self._store.reports[report.id] = report
        return report

    async def get(self, report_id: str) -> Report | None:
        return self._store.reports.get(report_id)

    async def list_all(self, status: ReportStatus | None = None) -> list[Report]:
        reports = [
            r for r in self._store.reports.values() if status is None or r.status == status
        ]
        reports.sort(key=lambda r: r.created_at, reverse=True)
        return reports

    async def mark_reviewed(self, report_id: str, correction: str | None = None) -> Report | None:
        report = self._store.reports.get(report_id)
        if report is None:
            return None
        report.status = ReportStatus.REVIEWED
        if correction is not None:
            report.correction = correction
        report.updated_at = utcnow()
        return report
