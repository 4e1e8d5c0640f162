"""Import all models so SQLModel.metadata picks them up."""

from ragchat.models.chat import Chat, ChatSession, SessionSummary
from ragchat.models.file import FileRead, FileRecord
from ragchat.models.message import ChatMessage, Feedback, Message, MessageRole, SourceRef
from ragchat.models.report import Report, ReportReview, ReportStatus

__all__ = [
    "Chat",
    "ChatMessage",
    "ChatSession",
    "Feedback",
    "FileRead",
    "FileRecord",
    "Message",
    "MessageRole",
    "Report",
    "ReportReview",
    "ReportStatus",
    "SessionSummary",
    "SourceRef",
]
