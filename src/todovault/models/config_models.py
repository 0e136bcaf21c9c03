"""Configuration models for TodoVault."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

MIN_PASSPHRASE_LENGTH = 64


class StorageConfig(BaseModel):
    """Where the vault files live."""

    data_dir: str | None = Field(
        default=None, description="Directory for the database and key files"
    )
    db_filename: str = Field(default="encrypted_todo.db")
    prefs_filename: str = Field(default="secret_shared_prefs")

    @field_validator("db_filename", "prefs_filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """File names must be plain names, not paths."""
        if not v or not v.strip():
            raise ValueError("file name cannot be empty")
        if Path(v).name != v:
            raise ValueError(f"expected a file name, got a path: {v}")
        return v


class SecurityConfig(BaseModel):
    """Key management configuration."""

    keyring_service: str = Field(default="todovault")
    passphrase_length: int = Field(default=4096, ge=MIN_PASSPHRASE_LENGTH)


class WatchConfig(BaseModel):
    """Reactive query configuration."""

    # Seconds between data_version checks for writes from other processes.
    # None disables polling.
    poll_interval: float | None = Field(default=1.0, gt=0)


class AppConfig(BaseModel):
    """Main TodoVault configuration"""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
