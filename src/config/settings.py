"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads configuration from two sources (in priority order):
#
#   1. **Environment variables** - e.g., CHUNK_SIZE_TOKENS=800
#   2. **.env file** - key=value lines in the project root .env file
#
# Field name `chunk_size_tokens` maps to env var `CHUNK_SIZE_TOKENS`.
# Defaults below are used when neither source sets a value.
#
# Chunk boundaries depend on the tokenizer encoding: changing
# TOKENIZER_ENCODING in an existing deployment requires reprocessing
# every document.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from src.models.chunk import SplitOptions
from src.utils.errors import ConfigurationError


class Settings(BaseSettings):
    """Document ingestion settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Chunking ===
    chunk_size_tokens: int = 1000
    chunk_overlap_tokens: int = 200
    min_chunk_size_tokens: int = 50
    tokenizer_encoding: str = "cl100k_base"  # encoding behind text-embedding-3-small

    # === Embeddings / Vision ===
    # Empty key = "not configured"; the factories in main.py refuse to
    # build an OpenAI-backed service without one.
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_embedding_model: str = "text-embedding-3-small"
    openai_vision_model: str = "gpt-4o-mini"
    embedding_batch_size: int = 100

    # === Storage ===
    storage_base_dir: str = "./data/uploads"
    chunk_db_path: str = "data/chunks.db"
    usage_db_path: str = "data/usage.db"

    # === Job processing ===
    # Mirrors the queue policy: 25 documents at once, 3 attempts,
    # exponential backoff starting at one second.
    worker_concurrency: int = 25
    job_max_attempts: int = 3
    job_backoff_delay_ms: int = 1000

    # === App Config ===
    frontend_url: str = "http://localhost:5173"
    app_env: str = "development"
    log_level: str = "INFO"

    def chunking_options(self) -> SplitOptions:
        """Return the token budget shared by every chunker.

        Raises
        ------
        ConfigurationError
            If the overlap would swallow a whole chunk or the minimum
            exceeds the maximum.
        """
        if self.chunk_size_tokens <= 0:
            raise ConfigurationError(f"CHUNK_SIZE_TOKENS must be positive, got {self.chunk_size_tokens}")
        if not 0 <= self.chunk_overlap_tokens < self.chunk_size_tokens:
            raise ConfigurationError(
                f"CHUNK_OVERLAP_TOKENS ({self.chunk_overlap_tokens}) must be >= 0 "
                f"and below CHUNK_SIZE_TOKENS ({self.chunk_size_tokens})"
            )
        if not 0 <= self.min_chunk_size_tokens <= self.chunk_size_tokens:
            raise ConfigurationError(
                f"MIN_CHUNK_SIZE_TOKENS ({self.min_chunk_size_tokens}) must be between 0 "
                f"and CHUNK_SIZE_TOKENS ({self.chunk_size_tokens})"
            )
        return SplitOptions(
            max_tokens=self.chunk_size_tokens,
            overlap_tokens=self.chunk_overlap_tokens,
            min_tokens=self.min_chunk_size_tokens,
        )
