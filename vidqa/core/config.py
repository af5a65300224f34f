"""
Configuration management using Pydantic Settings.

Loads configuration from environment variables and .env file.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),  # allow model_id
    )

    # Record store
    record_store: str = "sql"  # "sql" or "firestore"
    database_url: str = "sqlite:///./data/vidqa.db"
    collection_name: str = "videos"

    # Firebase (Firestore record store and Storage bucket)
    firebase_admin_key: Optional[str] = None  # base64-encoded service account JSON
    storage_bucket_id: Optional[str] = None

    # Binary storage
    storage_type: str = "local"  # "local" or "firebase"
    media_dir: str = "data/media"

    # Transcription (Whisper)
    transcription_api_key: Optional[str] = None
    transcription_provider: str = "openai"  # "openai" or "groq"
    transcription_model: str = "whisper-1"
    target_language: str = "en"

    # Question answering
    completion_api_key: Optional[str] = None
    model_id: str = "gpt-3.5-turbo"

    # Change feed / workers
    poll_interval: float = 5.0  # seconds between polls of the SQL feed
    resubscribe: bool = True
    resubscribe_delay: float = 10.0

    # Logging
    log_level: str = "INFO"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def has_transcription_capability(self) -> bool:
        """Check if a Whisper API key is configured."""
        return bool(self.transcription_api_key)

    @property
    def has_completion_capability(self) -> bool:
        """Check if the chat completion API is configured."""
        return bool(self.completion_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
