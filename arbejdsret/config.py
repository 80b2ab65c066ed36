"""Global configuration using pydantic settings management.

Values are loaded from environment variables (or an .env file) and exposed
through the cached ``get_settings()`` accessor.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from env or defaults."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=(),
    )

    # --- Gemini ---
    # Optional on purpose: a missing key only fails the individual model calls.
    api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )
    model_generation: str = Field(default="gemini-3-flash-preview", alias="GEMINI_MODEL")

    # --- Session persistence ---
    storage_backend: Literal["file", "memory", "firestore"] = Field(default="file", alias="STORAGE_BACKEND")
    storage_dir: str = Field(default=".arbejdsret", alias="STORAGE_DIR")
    firestore_project: str = Field(default="", alias="FIRESTORE_PROJECT")
    firestore_collection: str = Field(default="local_storage", alias="FIRESTORE_COLLECTION")

    # --- Chat Settings ---
    max_chat_title_length: int = Field(default=30, alias="MAX_CHAT_TITLE_LENGTH")

    # --- Server ---
    cors_origins: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert comma-separated CORS origins to list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
