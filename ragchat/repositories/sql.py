"""SQLModel-backed repositories; each call runs in its own session."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func
from sqlalchemy.orm import sessionmaker
from sqlmodel import select

from ragchat.core.errors import ChatNotFound, InvalidMessageIndex
from ragchat.models.base import as_utc, utcnow
from ragchat.models.chat import Chat, ChatSession
from ragchat.models.file import FileRecord
from ragchat.models.message import ChatMessage, Feedback, Message, SourceRef
from ragchat.models.report import Report, ReportStatus
from ragchat.repositories.base import ChatRepository, FileRepository, ReportRepository


def _to_chat_message(row: Message) -> ChatMessage:
    return ChatMessage(
        role=row.role,
        content=row.content,
        timestamp=as_utc(row.timestamp),
        feedback=row.feedback,
        sources=[SourceRef.model_validate(s) for s in row.sources or []],
    )


def _to_row(chat_id: str, position: int, message: ChatMessage) -> Message:
    return Message(
        chat_id=chat_id,
        position=position,
        role=message.role,
        content=message.content,
        timestamp=message.timestamp,
        feedback=message.feedback,
        sources=[s.model_dump() for s in message.sources],
    )


class SqlChatRepository(ChatRepository):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    async def _load(self, session, chat: Chat) -> ChatSession:
        stmt = (
            select(Message)
            .where(Message.chat_id == chat.id)
            .order_by(Message.position.asc())  # type: ignore[union-attr]
        )
        result = await session.execute(stmt)
        return ChatSession(
            id=chat.id,
            user_id=chat.user_id,
            messages=[_to_chat_message(m) for m in result.scalars().all()],
            created_at=as_utc(chat.created_at),
            updated_at=as_utc(chat.updated_at),
        )

    async def get(self, chat_id: str, user_id: str | None = None) -> ChatSession | None:
        async with self._session_factory() as session:
            stmt = select(Chat).where(Chat.id == chat_id)
            if user_id is not None:
                stmt = stmt.where(Chat.user_id == user_id)
            result = await session.execute(stmt)
            chat = result.scalar_one_or_none()
            if chat is None:
                return None
            return await self._load(session, chat)

    async def create(self, chat: ChatSession) -> ChatSession:
        async with self._session_factory() as session:
            session.add(Chat(
                id=chat.id,
                user_id=chat.user_id,
                created_at=chat.created_at,
                updated_at=chat.updated_at,
            ))
            # Chat row first so the message foreign keys resolve
            await session.flush()
            session.add_all(_to_row(chat.id, i, m) for i, m in enumerate(chat.messages))
            await session.commit()
        return chat

    async def append_messages(
        self, chat_id: str, messages: Sequence[ChatMessage]
    ) -> ChatSession:
        async with self._session_factory() as session:
            chat = await session.get(Chat, chat_id)
            if chat is None:
                raise ChatNotFound(chat_id)

            stmt = select(func.count()).select_from(Message).where(Message.chat_id == chat_id)
            next_position = (await session.execute(stmt)).scalar_one()
            session.add_all(
                _to_row(chat_id, next_position + i, m) for i, m in enumerate(messages)
            )
            chat.updated_at = utcnow()
            session.add(chat)
            await session.commit()
            return await self._load(session, chat)

    async def set_feedback(
        self, chat_id: str, index: int, feedback: Feedback | None
    ) -> ChatMessage:
        async with self._session_factory() as session:
            chat = await session.get(Chat, chat_id)
            if chat is None:
                raise ChatNotFound(chat_id)

            stmt = select(Message).where(Message.chat_id == chat_id, Message.position == index)
            row = (await session.execute(stmt)).scalar_one_or_none()
            if row is None:
                count_stmt = select(func.count()).select_from(Message).where(
                    Message.chat_id == chat_id
                )
                length = (await session.execute(count_stmt)).scalar_one()
                raise InvalidMessageIndex(index, length)

            row.feedback = feedback
            chat.updated_at = utcnow()
            session.add_all([row, chat])
            await session.commit()
            return _to_chat_message(row)

    async def list_for_user(self, user_id: str) -> list[ChatSession]:
        async with self._session_factory() as session:
            stmt = (
                select(Chat)
                .where(Chat.user_id == user_id)
                .order_by(Chat.updated_at.desc())  # type: ignore[union-attr]
            )
            result = await session.execute(stmt)
            return [await self._load(session, chat) for chat in result.scalars().all()]


class SqlFileRepository(FileRepository):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    async def create(self, record: FileRecord) -> FileRecord:
        async with self._session_factory() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return record

    async def get(self, file_id: str, user_id: str | None = None) -> FileRecord | None:
        async with self._session_factory() as session:
            stmt = select(FileRecord).where(FileRecord.id == file_id)
            if user_id is not None:
                stmt = stmt.where(FileRecord.user_id == user_id)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> list[FileRecord]:
        async with self._session_factory() as session:
            stmt = (
                select(FileRecord)
                .where(FileRecord.user_id == user_id)
                .order_by(FileRecord.created_at.desc())  # type: ignore[union-attr]
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def delete(self, file_id: str) -> bool:
        async with self._session_factory() as session:
            record = await session.get(FileRecord, file_id)
            if record is None:
                return False
            await session.delete(record)
            await session.commit()
            return True


class SqlReportRepository(ReportRepository):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    async def create(self, report: Report) -> Report:
        async with self._session_factory() as session:
            session.add(report)
            await session.commit()
            await session.refresh(report)
            return report

    async def get(self, report_id: str) -> Report | None:
        async with self._session_factory() as session:
            return await session.get(Report, report_id)

    async def list_all(self, status: ReportStatus | None = None) -> list[Report]:
        async with self._session_factory() as session:
            stmt = select(Report)
            if status is not None:
                stmt = stmt.where(Report.status == status)
            stmt = stmt.order_by(Report.created_at.desc())  # type: ignore[union-attr]
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def mark_reviewed(self, report_id: str, correction: str | None = None) -> Report | None:
        async with self._session_factory() as session:
            report = await session.get(Report, report_id)
            if report is None:
                return None
            report.status = ReportStatus.REVIEWED
            if correction is not None:
                report.correction = correction
            report.updated_at = utcnow()
            session.add(report)
            await session.commit()
            await session.refresh(report)
            return report
