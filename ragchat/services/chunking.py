"""Text normalization and sentence-based chunking service."""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200

_WHITESPACE = re.compile(r"\s+")
# A run of non-terminators closed by terminators, or the unterminated tail
_SENTENCE = re.compile(r"[^.!?]*[.!?]+|[^.!?]+$")


@dataclass
class TextChunk:
    """A chunk of text with its position index."""
    index: int
    content: str
    char_count: int


def normalize_text(text: str) -> str:
    """Collapse every whitespace run to a single space and trim the ends."""
    return _WHITESPACE.sub(" ", text).strip()


def split_sentences(text: str) -> list[str]:
    """Split text into sentence-like units, keeping their leading whitespace.

    Joining the result gives back ``text`` unchanged.
    """
    sentences = _SENTENCE.findall(text)
    return sentences or [text]


def chunk_text(
    text: str,
    max_chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[TextChunk]:
    """Split text into overlapping chunks along sentence boundaries.

    Sentences are accumulated greedily. When the next sentence would push the
    buffer past ``max_chunk_size`` the buffer is closed, and the next one is
    seeded with the closed chunk's last ``overlap`` characters (when the chunk
    is longer than that). Every chunk is trimmed, so a seed that begins with a
    space loses it. A single sentence longer than ``max_chunk_size`` is never
    split, so such a chunk can exceed the limit.

    Args:
        text: The input text to chunk.
        max_chunk_size: Target maximum characters per chunk.
        overlap: Characters carried from the end of one chunk into the next.

    Returns:
        List of TextChunk objects in source order. Text that fits in one
        chunk, including empty text, yields exactly one chunk.
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")
    if overlap < 0:
        raise ValueError("overlap must not be negative")

    text = normalize_text(text)
    if len(text) <= max_chunk_size:
        return [TextChunk(index=0, content=text, char_count=len(text))]

    contents: list[str] = []
    buffer = ""

    for sentence in split_sentences(text):
        if buffer and len(buffer) + len(sentence) > max_chunk_size:
            closed = buffer.strip()
            contents.append(closed)
            if overlap and len(closed) > overlap:
                # Character-accurate tail, not sentence aligned
                buffer = closed[-overlap:] + sentence
            else:
                buffer = sentence.lstrip()
        elif buffer:
            buffer += sentence
        else:
            buffer = sentence.lstrip()

    if buffer.strip():
        contents.append(buffer.strip())

    return [
        TextChunk(index=i, content=content, char_count=len(content))
        for i, content in enumerate(contents)
    ]
