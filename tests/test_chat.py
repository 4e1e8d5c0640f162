"""Chat endpoint tests — full RAG flow with mocked embeddings + LLM."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient

from ragchat.core.errors import ChatNotFound, GenerationFailed
from ragchat.models.base import utcnow
from ragchat.models.chat import ChatSession
from ragchat.models.message import ChatMessage, MessageRole


def _question_of(prompt: str) -> str:
    return prompt.split("**Question:** ", 1)[1].split("\n", 1)[0]


async def _echo_completion(**kwargs):
    """Answer with the question so concurrent turns can be told apart."""
    await asyncio.sleep(0)
    question = _question_of(kwargs["messages"][0]["content"])
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = f"answer to {question}"
    return response


async def _send(client: AsyncClient, user_id: str, message: str, chat_id: str | None = None):
    body = {"user_id": user_id, "message": message}
    if chat_id:
        body["chat_id"] = chat_id
    return await client.post("/v1/chat/message", json=body)


# ── POST /v1/chat/message ─────────────────────────────────────

async def test_first_message_creates_chat(client, mock_embed, mock_llm):
    resp = await _send(client, "u1", "Hello?")

    assert resp.status_code == 200
    data = resp.json()
    assert data["chat_id"]
    assert data["message"] == "This is the assistant's response."
    assert data["sources"] == []

    # No documents: the plain template is used
    prompt = mock_llm.call_args.kwargs["messages"][0]["content"]
    assert prompt.startswith("You are a helpful AI assistant.")

    resp = await client.get(f"/v1/chat/{data['chat_id']}", params={"user_id": "u1"})
    assert resp.status_code == 200
    messages = resp.json()["messages"]
    assert [m["role"] for m in messages] == ["user", "assistant"]
    assert messages[0]["content"] == "Hello?"
    assert messages[1]["content"] == "This is the assistant's response."
    assert messages[1]["feedback"] is None


async def test_answer_is_grounded_on_user_documents(client, container, mock_embed, mock_llm):
    long_text = "Paris is the capital of France. " * 10
    await container.ingestion.ingest_upload("u1", "france.txt", long_text.encode())
    await container.ingestion.ingest_upload("u2", "secret.txt", b"Top secret launch codes.")

    resp = await _send(client, "u1", "What is the capital of France?")

    assert resp.status_code == 200
    sources = resp.json()["sources"]
    assert len(sources) == 1
    assert sources[0]["text"].endswith("...")
    assert len(sources[0]["text"]) == 153

    prompt = mock_llm.call_args.kwargs["messages"][0]["content"]
    assert "**Document 1:**" in prompt
    assert "Paris is the capital of France." in prompt
    assert "launch codes" not in prompt

    chat = await container.chats.get(resp.json()["chat_id"])
    assert chat.messages[1].sources[0].file_id == sources[0]["file_id"]


async def test_continue_existing_chat(client, mock_embed, mock_llm):
    chat_id = (await _send(client, "u1", "First question")).json()["chat_id"]

    resp = await _send(client, "u1", "Second question", chat_id)
    assert resp.status_code == 200
    assert resp.json()["chat_id"] == chat_id

    resp = await client.get(f"/v1/chat/{chat_id}", params={"user_id": "u1"})
    contents = [m["content"] for m in resp.json()["messages"]]
    assert contents[0] == "First question"
    assert contents[2] == "Second question"
    assert len(contents) == 4


async def test_unknown_chat_id(client, mock_embed, mock_llm):
    resp = await _send(client, "u1", "Hello?", "does-not-exist")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Chat not found: does-not-exist"
    mock_llm.assert_not_called()


async def test_other_users_chat_is_not_found(client, mock_embed, mock_llm):
    chat_id = (await _send(client, "u1", "Mine")).json()["chat_id"]

    assert (await _send(client, "u2", "Let me in", chat_id)).status_code == 404
    resp = await client.get(f"/v1/chat/{chat_id}", params={"user_id": "u2"})
    assert resp.status_code == 404


async def test_blank_message_rejected(client, mock_embed, mock_llm):
    assert (await _send(client, "u1", "")).status_code == 422
    resp = await _send(client, "u1", "   ")
    assert resp.status_code == 400
    mock_llm.assert_not_called()


async def test_generation_failure_records_nothing(client, container, mock_embed):
    failing = AsyncMock(side_effect=RuntimeError("model overloaded"))
    with patch("ragchat.services.generation.acompletion", failing):
        resp = await _send(client, "u1", "Hello?")

    assert resp.status_code == 502
    assert resp.json()["detail"] == "Error generating response"
    assert await container.chats.list_for_user("u1") == []


async def test_embedding_failure_is_bad_gateway(client, mock_llm):
    with patch(
        "ragchat.services.embedding.aembedding",
        AsyncMock(side_effect=RuntimeError("quota")),
    ):
        resp = await _send(client, "u1", "Hello?")

    assert resp.status_code == 502
    assert resp.json()["detail"] == "Error generating embeddings"


# ── Pipeline behaviour ────────────────────────────────────────

async def test_failed_turn_leaves_existing_chat_untouched(container, mock_embed, mock_llm):
    pipeline = container.chat_pipeline
    turn = await pipeline.post_message("u1", "Hello?")
    assert turn.created

    with patch(
        "ragchat.services.orchestrator.generate_response",
        AsyncMock(side_effect=GenerationFailed()),
    ):
        with pytest.raises(GenerationFailed):
            await pipeline.post_message("u1", "Again?", turn.chat_id)

    chat = await pipeline.get_chat(turn.chat_id, "u1")
    assert len(chat.messages) == 2


async def test_concurrent_turns_stay_paired(container, mock_embed):
    pipeline = container.chat_pipeline
    with patch("ragchat.services.generation.acompletion", AsyncMock(side_effect=_echo_completion)):
        chat_id = (await pipeline.post_message("u1", "q0")).chat_id
        await asyncio.gather(
            *(pipeline.post_message("u1", f"q{i}", chat_id) for i in range(1, 6))
        )

    chat = await pipeline.get_chat(chat_id, "u1")
    assert len(chat.messages) == 12
    for user_msg, assistant_msg in zip(chat.messages[::2], chat.messages[1::2]):
        assert user_msg.role == MessageRole.USER
        assert assistant_msg.role == MessageRole.ASSISTANT
        assert assistant_msg.content == f"answer to {user_msg.content}"
    assert {m.content for m in chat.messages[::2]} == {f"q{i}" for i in range(6)}


async def test_get_chat_unknown(container):
    with pytest.raises(ChatNotFound):
        await container.chat_pipeline.get_chat("nope", "u1")


# ── GET /v1/chat/history ──────────────────────────────────────

async def test_history_lists_only_own_chats_newest_first(client, mock_embed, mock_llm):
    first = (await _send(client, "u1", "Older chat")).json()["chat_id"]
    second = (await _send(client, "u1", "Newer chat")).json()["chat_id"]
    await _send(client, "u2", "Somebody else")

    resp = await client.get("/v1/chat/history", params={"user_id": "u1"})

    assert resp.status_code == 200
    assert [c["id"] for c in resp.json()["chats"]] == [second, first]

    # Appending bumps the chat to the top
    await _send(client, "u1", "Follow-up", first)
    resp = await client.get("/v1/chat/history", params={"user_id": "u1"})
    assert [c["id"] for c in resp.json()["chats"]] == [first, second]


async def test_history_requires_user_id(client):
    resp = await client.get("/v1/chat/history")
    assert resp.status_code == 422


# ── POST /v1/chat/end-session ─────────────────────────────────

async def test_end_session_summary(client, mock_embed, mock_llm):
    chat_id = (await _send(client, "u1", "What is RAG?")).json()["chat_id"]
    await _send(client, "u1", "How does chunking work?", chat_id)

    resp = await client.post(
        "/v1/chat/end-session", json={"chat_id": chat_id, "user_id": "u1"}
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["chat_id"] == chat_id
    assert data["total_messages"] == 4
    assert data["user_messages"] == 2
    assert data["assistant_messages"] == 2
    assert data["duration_minutes"] == 0

    lines = data["summary"].split("\n")
    assert lines[0] == "Chat session summary"
    assert lines[1] == "Messages: 4 (2 questions, 2 answers)"
    assert lines[2] == "Duration: 0 minutes"
    assert lines[3:] == [
        "Questions asked:",
        "1. What is RAG?",
        "2. How does chunking work?",
    ]

    # The chat stays usable
    assert (await _send(client, "u1", "One more", chat_id)).status_code == 200


async def test_end_session_truncates_questions(container):
    started = utcnow() - timedelta(minutes=1, seconds=30)
    questions = ["x" * 150] + [f"question {i}" for i in range(1, 7)]
    messages = []
    for q in questions:
        messages.append(ChatMessage(role=MessageRole.USER, content=q, timestamp=started))
        messages.append(ChatMessage(role=MessageRole.ASSISTANT, content="ok", timestamp=started))
    chat = await container.chats.create(ChatSession(user_id="u1", messages=messages))

    summary = await container.chat_pipeline.end_session(chat.id, "u1")

    assert summary.duration_minutes == 1
    lines = summary.summary.split("\n")
    assert "Duration: 1 minute" in lines
    assert f"1. {'x' * 100}..." in lines
    assert "5. question 4" in lines
    assert "6. question 5" not in lines
    assert lines[-1] == "...and 2 more"


async def test_end_session_unknown_chat(client):
    resp = await client.post(
        "/v1/chat/end-session", json={"chat_id": "nope", "user_id": "u1"}
    )
    assert resp.status_code == 404
