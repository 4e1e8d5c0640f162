"""Embedding service — wraps LiteLLM for provider-agnostic vector generation."""

from __future__ import annotations

from litellm import aembedding

from ragchat.core.config import get_settings
from ragchat.core.errors import EmbeddingFailed


async def embed_text(
    text: str,
    model: str | None = None,
    api_key: str | None = None,
) -> list[float]:
    """Embed a single text via LiteLLM.

    Args:
        text: The text to embed.
        model: Embedding model name (LiteLLM format). Defaults to settings.
        api_key: Optional provider API key. If None, uses settings / env vars.

    Returns:
        The embedding vector.

    Raises:
        EmbeddingFailed: On any transport or API error. Not retried.
    """
    settings = get_settings()
    kwargs: dict = {
        "model": model or settings.embedding_model,
        "input": [text],
    }
    api_key = api_key or settings.llm_api_key
    if api_key:
        kwargs["api_key"] = api_key

    try:
        response = await aembedding(**kwargs)
        vector = response.data[0]["embedding"]
    except Exception as exc:
        raise EmbeddingFailed(f"Embedding call failed: {exc}") from exc

    if not vector:
        raise EmbeddingFailed("Embedding response contained no values")
    return list(vector)
