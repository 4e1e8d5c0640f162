"""Generation service — grounded prompt construction and the LLM call."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from litellm import acompletion

from ragchat.core.config import get_settings
from ragchat.core.errors import GenerationFailed


class HasText(Protocol):
    text: str


_CONTEXT_TEMPLATE = """\
You are an intelligent AI assistant with access to relevant documents. \
Please answer the following question using the provided context.

**Question:** {question}

**Available Context:**
{documents}

**Instructions:**
- Provide a comprehensive and accurate answer based on the context provided
- If the context contains relevant information, use it to support your response
- If the context doesn't fully address the question, clearly state what information is missing
- Be conversational and helpful in your response
- Cite specific information from the documents when relevant

**Answer:**"""

_PLAIN_TEMPLATE = """\
You are a helpful AI assistant. Please provide a comprehensive and accurate \
answer to the following question:

**Question:** {question}

**Answer:**"""


def build_prompt(question: str, context: Sequence[HasText]) -> str:
    """Build the single prompt sent to the model.

    With context every item is labelled ``Document k`` (1-based); without it a
    plain question template is used.
    """
    if not context:
        return _PLAIN_TEMPLATE.format(question=question)

    documents = "\n\n".join(
        f"**Document {i}:**\n{item.text}" for i, item in enumerate(context, 1)
    )
    return _CONTEXT_TEMPLATE.format(question=question, documents=documents)


async def generate_response(
    prompt: str,
    context: Sequence[HasText] = (),
    model: str | None = None,
    api_key: str | None = None,
) -> str:
    """Answer ``prompt`` grounded on ``context`` with one completion call.

    The model only sees the constructed prompt; no chat history is passed.

    Raises:
        GenerationFailed: On any API error or an empty completion.
    """
    settings = get_settings()
    kwargs: dict = {
        "model": model or settings.llm_model,
        "messages": [{"role": "user", "content": build_prompt(prompt, context)}],
        "temperature": settings.llm_temperature,
        "top_p": settings.llm_top_p,
        "top_k": settings.llm_top_k,
        "max_tokens": settings.llm_max_tokens,
    }
    api_key = api_key or settings.llm_api_key
    if api_key:
        kwargs["api_key"] = api_key

    try:
        response = await acompletion(**kwargs)
        content = response.choices[0].message.content
    except Exception as exc:
        raise GenerationFailed(f"Completion call failed: {exc}") from exc

    if not content:
        raise GenerationFailed("Model returned an empty completion")
    return content
