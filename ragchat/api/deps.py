"""FastAPI dependencies resolving the process-wide container."""

from typing import Annotated

from fastapi import Depends, Request

from ragchat.core.container import Container
from ragchat.services.ingestion import IngestionPipeline
from ragchat.services.orchestrator import ChatPipeline


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_chat_pipeline(container: Annotated[Container, Depends(get_container)]) -> ChatPipeline:
    return container.chat_pipeline


def get_ingestion(container: Annotated[Container, Depends(get_container)]) -> IngestionPipeline:
    return container.ingestion


# Typed shorthand for use in route signatures
Chats = Annotated[ChatPipeline, Depends(get_chat_pipeline)]
Ingestion = Annotated[IngestionPipeline, Depends(get_ingestion)]
