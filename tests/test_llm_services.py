"""Embedding + generation service tests with LiteLLM mocked out."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ragchat.core.errors import EmbeddingFailed, GenerationFailed
from ragchat.services.embedding import embed_text
from ragchat.services.generation import build_prompt, generate_response
from ragchat.services.retrieval import RetrievedChunk


def _chunk(text: str) -> RetrievedChunk:
    return RetrievedChunk(id="f1_chunk_0", score=0.9, file_id="f1", text=text)


def _empty_completion():
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = ""
    return response


# ── embedding ─────────────────────────────────────────────────

async def test_embed_text_returns_vector():
    response = SimpleNamespace(data=[{"embedding": [0.1, 0.2, 0.3]}])
    with patch("ragchat.services.embedding.aembedding", AsyncMock(return_value=response)) as m:
        vector = await embed_text("hello", model="test/embed")

    assert vector == [0.1, 0.2, 0.3]
    assert m.call_args.kwargs["model"] == "test/embed"
    assert m.call_args.kwargs["input"] == ["hello"]


async def test_embed_text_wraps_api_errors():
    failing = AsyncMock(side_effect=RuntimeError("401 invalid key"))
    with patch("ragchat.services.embedding.aembedding", failing):
        with pytest.raises(EmbeddingFailed) as excinfo:
            await embed_text("hello")

    assert excinfo.value.public_message == "Error generating embeddings"
    assert isinstance(excinfo.value.__cause__, RuntimeError)


async def test_embed_text_rejects_empty_vector():
    response = SimpleNamespace(data=[{"embedding": []}])
    with patch("ragchat.services.embedding.aembedding", AsyncMock(return_value=response)):
        with pytest.raises(EmbeddingFailed):
            await embed_text("hello")


# ── prompt construction ───────────────────────────────────────

def test_build_prompt_with_context_labels_documents():
    prompt = build_prompt("What is X?", [_chunk("X is a letter."), _chunk("X marks the spot.")])

    assert "**Question:** What is X?" in prompt
    assert "**Document 1:**\nX is a letter." in prompt
    assert "**Document 2:**\nX marks the spot." in prompt
    assert prompt.index("**Document 1:**") < prompt.index("**Document 2:**")
    assert "clearly state what information is missing" in prompt
    assert prompt.endswith("**Answer:**")


def test_build_prompt_without_context_uses_plain_template():
    prompt = build_prompt("What is X?", [])

    assert prompt.startswith("You are a helpful AI assistant.")
    assert "**Question:** What is X?" in prompt
    assert "Document" not in prompt


# ── generation ────────────────────────────────────────────────

async def test_generate_response_sends_single_prompt(mock_llm):
    answer = await generate_response("What is X?", [_chunk("X is a letter.")])

    assert answer == "This is the assistant's response."
    assert "X is a letter." in mock_llm.call_args.kwargs["messages"][0]["content"]

    kwargs = mock_llm.call_args.kwargs
    assert kwargs["temperature"] == 0.7
    assert kwargs["top_p"] == 0.8
    assert kwargs["top_k"] == 40
    assert kwargs["max_tokens"] == 8192


async def test_generate_response_empty_completion_fails():
    with patch(
        "ragchat.services.generation.acompletion",
        AsyncMock(return_value=_empty_completion()),
    ):
        with pytest.raises(GenerationFailed):
            await generate_response("What is X?")


async def test_generate_response_wraps_api_errors():
    with patch(
        "ragchat.services.generation.acompletion",
        AsyncMock(side_effect=TimeoutError("deadline exceeded")),
    ):
        with pytest.raises(GenerationFailed) as excinfo:
            await generate_response("What is X?")

    assert excinfo.value.status_code == 502
    assert excinfo.value.public_message == "Error generating response"
