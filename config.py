# config.py
from __future__ import annotations
from typing import List, Optional, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices, model_validator

_PLACEHOLDER_KEYS = {"", "your-openai-api-key-here", "your-unsplash-access-key-here"}

class Settings(BaseSettings):
    # Read .env; ignore extra env vars to avoid crashes
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_prefix="",
    )

    # --- Runtime env / debugging ---
    APP_ENV: Literal["development", "staging", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENV", "app_env"),
    )
    DEBUG: bool = Field(
        default=False,
        validation_alias=AliasChoices("DEBUG", "debug"),
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "log_level"),
    )
    HOST: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("HOST", "host"),
    )
    PORT: int = Field(
        default=8000,
        validation_alias=AliasChoices("PORT", "port"),
    )

    # --- Generative text backend ---
    OPENAI_API_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("OPENAI_API_KEY", "openai_api_key"),
    )
    OPENAI_MODEL: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("OPENAI_MODEL", "openai_model"),
    )
    OPENAI_TIMEOUT_S: float = Field(
        default=60.0,
        gt=0,
        validation_alias=AliasChoices("OPENAI_TIMEOUT_S", "openai_timeout_s"),
    )
    # Days per model call; long trips are split into windows of this size
    ITINERARY_CHUNK_SIZE: int = Field(
        default=7,
        ge=1,
        validation_alias=AliasChoices("ITINERARY_CHUNK_SIZE", "itinerary_chunk_size"),
    )

    # --- Image search backend ---
    UNSPLASH_ACCESS_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("UNSPLASH_ACCESS_KEY", "unsplash_access_key", "UNSPLASH_KEY"),
    )
    UNSPLASH_TIMEOUT_S: float = Field(
        default=10.0,
        gt=0,
        validation_alias=AliasChoices("UNSPLASH_TIMEOUT_S", "unsplash_timeout_s"),
    )
    IMAGE_PREFETCH_PAUSE_MS: int = Field(
        default=8,
        ge=0,
        validation_alias=AliasChoices("IMAGE_PREFETCH_PAUSE_MS", "image_prefetch_pause_ms"),
    )

    # --- Sessions ---
    SESSION_TTL_S: int = Field(
        default=3600,
        ge=60,
        validation_alias=AliasChoices("SESSION_TTL_S", "session_ttl_s"),
    )

    # --- CORS (env-driven) ---
    CORS_ALLOW_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"],
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS", "cors_allow_origins"),
    )
    # Optional comma-separated alternative that overrides the above
    FRONTEND_ORIGINS: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("FRONTEND_ORIGINS", "frontend_origins"),
    )
    CORS_ALLOW_METHODS: List[str] = Field(
        default_factory=lambda: ["GET", "POST", "DELETE", "OPTIONS"],
        validation_alias=AliasChoices("CORS_ALLOW_METHODS", "cors_allow_methods"),
    )
    CORS_ALLOW_HEADERS: List[str] = Field(
        default_factory=lambda: ["Accept", "Content-Type", "X-Request-Id"],
        validation_alias=AliasChoices("CORS_ALLOW_HEADERS", "cors_allow_headers"),
    )
    CORS_EXPOSE_HEADERS: List[str] = Field(
        default_factory=lambda: ["X-Request-Id"],
        validation_alias=AliasChoices("CORS_EXPOSE_HEADERS", "cors_expose_headers"),
    )
    CORS_MAX_AGE: int = Field(
        default=86400,
        validation_alias=AliasChoices("CORS_MAX_AGE", "cors_max_age"),
    )

    @model_validator(mode="after")
    def _merge_frontend_origins(self) -> "Settings":
        if self.FRONTEND_ORIGINS:
            parts = [p.strip() for p in self.FRONTEND_ORIGINS.split(",") if p.strip()]
            if parts:
                self.CORS_ALLOW_ORIGINS = parts
        return self

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":
        """Fail fast on missing keys when deployed."""
        if self.APP_ENV == "production":
            if self.OPENAI_API_KEY in _PLACEHOLDER_KEYS:
                raise ValueError(
                    "OPENAI_API_KEY must be set to a valid key in production. "
                    "Get your key from https://platform.openai.com/api-keys"
                )
            if self.UNSPLASH_ACCESS_KEY in _PLACEHOLDER_KEYS:
                import logging
                logging.getLogger("config").warning(
                    "UNSPLASH_ACCESS_KEY is not set; stop photos will fall back to placeholder URLs."
                )
        return self

    @property
    def has_openai_key(self) -> bool:
        return self.OPENAI_API_KEY not in _PLACEHOLDER_KEYS

    @property
    def has_unsplash_key(self) -> bool:
        return self.UNSPLASH_ACCESS_KEY not in _PLACEHOLDER_KEYS

    @property
    def prefetch_pause_s(self) -> float:
        return self.IMAGE_PREFETCH_PAUSE_MS / 1000.0

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.DEBUG else self.LOG_LEVEL.upper()

settings = Settings()
