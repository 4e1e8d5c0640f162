"""V1 API router aggregation."""

from fastapi import APIRouter

from ragchat.api.v1.chat import router as chat_router
from ragchat.api.v1.files import router as files_router
from ragchat.api.v1.reports import router as reports_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(chat_router)
v1_router.include_router(files_router)
v1_router.include_router(reports_router)
