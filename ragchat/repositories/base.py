"""Repository interfaces for chats, files and reports.

Services depend only on these; ``memory`` and ``sql`` provide the backends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ragchat.models.chat import ChatSession
from ragchat.models.file import FileRecord
from ragchat.models.message import ChatMessage, Feedback
from ragchat.models.report import Report, ReportStatus


class ChatRepository(ABC):
    @abstractmethod
    async def get(self, chat_id: str, user_id: str | None = None) -> ChatSession | None:
        """Fetch a chat, optionally only if owned by ``user_id``."""

    @abstractmethod
    async def create(self, chat: ChatSession) -> ChatSession: ...

    @abstractmethod
    async def append_messages(
        self, chat_id: str, messages: Sequence[ChatMessage]
    ) -> ChatSession:
        """Append ``messages`` in order. Raises ChatNotFound."""

    @abstractmethod
    async def set_feedback(
        self, chat_id: str, index: int, feedback: Feedback | None
    ) -> ChatMessage:
        """Overwrite feedback on one message. Raises ChatNotFound / InvalidMessageIndex."""

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[ChatSession]:
        """The user's chats, most recently updated first."""


class FileRepository(ABC):
    @abstractmethod
    async def create(self, record: FileRecord) -> FileRecord: ...

    @abstractmethod
    async def get(self, file_id: str, user_id: str | None = None) -> FileRecord | None: ...

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[FileRecord]:
        """The user's files, newest first."""

    @abstractmethod
    async def delete(self, file_id: str) -> bool: ...


class ReportRepository(ABC):
    @abstractmethod
    async def create(self, report: Report) -> Report: ...

    @abstractmethod
    async def get(self, report_id: str) -> Report | None: ...

    @abstractmethod
    async def list_all(self, status: ReportStatus | None = None) -> list[Report]:
        """Reports, newest first, optionally only those in ``status``."""

    @abstractmethod
    async def mark_reviewed(self, report_id: str, correction: str | None = None) -> Report | None: ...
