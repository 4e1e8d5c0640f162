"""Report review queue — answers users flagged with negative feedback."""

from fastapi import APIRouter

from ragchat.api.deps import Chats
from ragchat.models.report import Report, ReportReview, ReportStatus

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("", response_model=list[Report])
async def list_reports(chats: Chats, status: ReportStatus | None = None) -> list[Report]:
    return await chats.list_reports(status)


@router.patch("/{report_id}", response_model=Report)
async def review_report(report_id: str, body: ReportReview, chats: Chats) -> Report:
    """Mark a report reviewed, optionally recording the correct answer."""
    return await chats.review_report(report_id, body.correction)
