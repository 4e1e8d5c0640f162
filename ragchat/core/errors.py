"""Error taxonomy shared by services, repositories and the HTTP boundary.

Every error carries the HTTP status it maps to and the message that is safe
to show a caller. Upstream failures (extraction engines, model APIs, the
vector index) expose a generic message only; the original exception stays
chained as ``__cause__`` for the log.
"""

from __future__ import annotations

from fastapi import status


class RagChatError(Exception):
    """Base class for all domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        if message and self.status_code < 500:
            self.public_message = message


# ── Caller errors ─────────────────────────────────────────────

class ValidationError(RagChatError):
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Invalid request"


class FileTooLarge(ValidationError):
    status_code = status.HTTP_413_CONTENT_TOO_LARGE
    public_message = "File too large"


class InvalidMessageIndex(ValidationError):
    public_message = "Invalid message index"

    def __init__(self, index: int, length: int) -> None:
        super().__init__(f"Invalid message index {index} (chat has {length} messages)")
        self.index = index
        self.length = length


class InvalidFeedbackTarget(ValidationError):
    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT
    public_message = "Feedback can only be set on assistant messages"


class UnsupportedFileType(ValidationError):
    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT

    def __init__(self, file_type: str, allowed: set[str] | None = None) -> None:
        message = f"Unsupported file type: {file_type or '(none)'}"
        if allowed:
            message += f". Allowed: {', '.join(sorted(allowed))}"
        super().__init__(message)
        self.file_type = file_type


class NotFound(RagChatError):
    status_code = status.HTTP_404_NOT_FOUND
    public_message = "Not found"


class ChatNotFound(NotFound):
    public_message = "Chat not found"

    def __init__(self, chat_id: str) -> None:
        super().__init__(f"Chat not found: {chat_id}")
        self.chat_id = chat_id


class FileNotFound(NotFound):
    public_message = "File not found"

    def __init__(self, file_id: str) -> None:
        super().__init__(f"File not found: {file_id}")
        self.file_id = file_id


class ReportNotFound(NotFound):
    public_message = "Report not found"

    def __init__(self, report_id: str) -> None:
        super().__init__(f"Report not found: {report_id}")
        self.report_id = report_id


# ── Upstream failures ─────────────────────────────────────────

class UpstreamError(RagChatError):
    status_code = status.HTTP_502_BAD_GATEWAY
    public_message = "Upstream service failure"


class ExtractionFailed(UpstreamError):
    public_message = "Error extracting text from file"

    def __init__(self, file_path: str, cause: BaseException | None = None) -> None:
        super().__init__(f"Could not extract text from {file_path}: {cause!r}")
        self.file_path = file_path
        self.cause = cause


class EmbeddingFailed(UpstreamError):
    public_message = "Error generating embeddings"


class GenerationFailed(UpstreamError):
    public_message = "Error generating response"


class UpstreamStoreFailure(UpstreamError):
    public_message = "Vector index unavailable"
