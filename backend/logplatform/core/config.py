# logplatform/core/config.py
"""
Central configuration for the Loggplattform backend.

This module defines a single `settings` object (Pydantic BaseSettings) that reads
configuration from environment variables and a local `.env` file.

Guiding principles:
- DRY: config is declared once, imported everywhere.
- KISS: sensible defaults for local dev.
- Security: secrets (ADMIN_API_KEY) live in env vars; `.env` is never committed.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables and optional `.env`.

    `.env` location:
      - uvicorn is run from `backend/`, so `.env` should live in `backend/.env`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # deployment environments often add extra env vars
        case_sensitive=False,
    )

    # -----------------------
    # Runtime
    # -----------------------
    ENV: str = Field(default="dev", description="Environment: dev|test|prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (e.g., INFO, DEBUG)")

    # -----------------------
    # API / CORS
    # -----------------------
    CORS_ALLOW_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins for the web UI",
    )

    MAX_BODY_MB: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Max request body size in megabytes",
    )

    @property
    def MAX_BODY_BYTES(self) -> int:
        return int(self.MAX_BODY_MB) * 1024 * 1024

    # -----------------------
    # Authentication
    # -----------------------
    # Unset means every admin operation is rejected (fail closed).
    ADMIN_API_KEY: Optional[str] = Field(
        default=None,
        description="Dedicated credential for admin endpoints",
    )

    # -----------------------
    # Hot store
    # -----------------------
    # sqlite+aiosqlite:///... (default) or postgresql+asyncpg://...
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./data/logs.db",
        description="SQLAlchemy async database URL",
    )

    # -----------------------
    # Ingestion / query
    # -----------------------
    MAX_BATCH_SIZE: int = Field(default=100, ge=1, le=10000, description="Max entries per batch request")
    QUERY_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Deadline for a merged hot + archive query",
    )

    # -----------------------
    # Archive
    # -----------------------
    ARCHIVE_DIR: str = Field(default="./data/archives", description="Root directory of JSONL partitions")
    ARCHIVE_RETENTION_DAYS: int = Field(default=30, ge=1, description="Days before a date partition is swept")
    ARCHIVE_BATCH_SIZE: int = Field(default=10000, ge=1, description="Max rows migrated per service per run")
    ARCHIVE_MAX_FILE_MB: int = Field(default=100, ge=1, description="Partition files above this size are not read")
    ARCHIVE_DAYS_OLD: int = Field(default=1, ge=0, description="Age in days before hot rows are archived")

    # -----------------------
    # Scheduler (crontab syntax, UTC)
    # -----------------------
    SCHEDULER_ENABLED: bool = Field(default=True, description="Run archive/cleanup jobs periodically")
    ARCHIVE_SCHEDULE: str = Field(default="0 2 * * *", description="Cron expression for the archive job")
    CLEANUP_SCHEDULE: str = Field(default="0 3 * * *", description="Cron expression for the cleanup job")

    @property
    def ARCHIVE_MAX_FILE_BYTES(self) -> int:
        return int(self.ARCHIVE_MAX_FILE_MB) * 1024 * 1024

    # -----------------------
    # Validators / normalizers
    # -----------------------
    @field_validator("ENV")
    @classmethod
    def _normalize_env(cls, v: str) -> str:
        return (v or "dev").strip().lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @field_validator("CORS_ALLOW_ORIGINS")
    @classmethod
    def _clean_cors_origins(cls, v: List[str]) -> List[str]:
        cleaned = []
        for origin in v or []:
            o = (origin or "").strip()
            if o:
                cleaned.append(o)
        return cleaned

    @field_validator("ADMIN_API_KEY")
    @classmethod
    def _blank_admin_key_is_unset(cls, v: Optional[str]) -> Optional[str]:
        v = (v or "").strip()
        return v or None

    @field_validator("DATABASE_URL", "ARCHIVE_DIR", "ARCHIVE_SCHEDULE", "CLEANUP_SCHEDULE")
    @classmethod
    def _strip_strings(cls, v: str) -> str:
        return (v or "").strip()


# Singleton instance imported across the codebase.
settings = Settings()
