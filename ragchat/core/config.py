"""Application settings loaded from environment / .env file."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ──────────────────────────────────────────
    # Empty -> chats, files and reports live in process memory
    database_url: str = ""

    # ── Qdrant ────────────────────────────────────────────
    # Empty -> in-process cosine matcher
    qdrant_url: str = ""
    qdrant_api_key: str = ""
    qdrant_collection: str = "ragchat_chunks"

    # ── Embeddings ────────────────────────────────────────
    embedding_model: str = "gemini/text-embedding-004"
    embedding_dimensions: int = 768

    # ── LLM ───────────────────────────────────────────────
    llm_model: str = "gemini/gemini-2.0-flash"
    llm_api_key: str = ""  # falls back to provider env vars (GEMINI_API_KEY, ...)
    llm_temperature: float = 0.7
    llm_top_p: float = 0.8
    llm_top_k: int = 40
    llm_max_tokens: int = 8192

    # ── Retrieval ─────────────────────────────────────────
    chunk_size: int = 1000
    chunk_overlap: int = 200
    retrieval_top_k: int = 5

    # ── Uploads ───────────────────────────────────────────
    file_storage_path: str = "./uploads"
    max_file_size: int = 10 * 1024 * 1024  # 10 MB

    # ── HTTP / logging ────────────────────────────────────
    allowed_origins: str = "*"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
