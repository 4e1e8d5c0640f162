"""Shared test fixtures — in-memory backends, fake models + test client."""

import string
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from ragchat.core.config import Settings
from ragchat.core.container import Container, build_container
from ragchat.core.database import create_session_factory, init_db
from ragchat.main import app
from ragchat.services.vector_store import InMemoryVectorStore


def fake_embedding(text: str) -> list[float]:
    """Letter-frequency vector; texts sharing words score higher."""
    lowered = text.lower()
    return [float(lowered.count(ch)) for ch in string.ascii_lowercase] + [1.0]


def mock_llm_response(content: str = "This is the assistant's response."):
    """Create a mock LiteLLM acompletion response."""
    message = MagicMock()
    message.content = content

    choice = MagicMock()
    choice.message = message

    response = MagicMock()
    response.choices = [choice]
    return response


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url="",
        qdrant_url="",
        file_storage_path=str(tmp_path / "uploads"),
    )


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def container(settings, vector_store) -> Container:
    return build_container(settings, vector_store=vector_store)


@pytest.fixture
def mock_embed():
    """Replace the embedding API with ``fake_embedding``."""
    mock = AsyncMock(side_effect=fake_embedding)
    with patch("ragchat.services.retrieval.embed_text", mock):
        yield mock


@pytest.fixture
def mock_llm():
    """Replace LiteLLM completion; inspect ``mock_llm.call_args`` for the prompt."""
    mock = AsyncMock(return_value=mock_llm_response())
    with patch("ragchat.services.generation.acompletion", mock):
        yield mock


@pytest.fixture
async def client(container) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client bound to the in-memory container."""
    app.state.container = container

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.container = None


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory bound to the test SQLite engine."""
    return create_session_factory(engine)
