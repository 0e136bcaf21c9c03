"""Configuration service for TodoVault.

Loads and saves ``config.json`` from the platform config directory and
resolves the on-disk locations of the vault files.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from platformdirs import user_config_dir, user_data_dir

from todovault.models.config_models import AppConfig
from todovault.utils.logger import get_logger


class ConfigService:
    """Service for managing application configuration."""

    def __init__(self):
        """Initialize the config service."""

        self.config_dir = Path(user_config_dir("todovault"))
        self.config_path = self.config_dir / "config.json"
        self.default_data_dir = Path(user_data_dir("todovault"))

        self._config: AppConfig | None = None

    @property
    def config(self) -> AppConfig:
        """Get or load the current configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def load_config(self) -> AppConfig:
        """Load configuration from storage, creating defaults on first run."""
        if self._config is not None:
            return self._config

        try:
            with open(self.config_path, encoding="utf-8") as f:
                self._config = AppConfig.model_validate_json(f.read())
        except FileNotFoundError:
            # First run
            get_logger(__name__).info(
                "no config at %s, writing defaults", self.config_path
            )
            self._config = AppConfig()
            self.save_config()
        except Exception as e:
            raise RuntimeError(f"Failed to load config: {e}") from e

        return self._config

    def save_config(self) -> None:
        """Save the current configuration to storage."""
        if self._config is None:
            raise RuntimeError("No configuration to save")

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(self._config.model_dump_json(indent=4))

            # Set file permissions
            self.config_path.chmod(0o600)
        except Exception as e:
            raise RuntimeError(f"Failed to save config: {e}") from e

    @property
    def data_dir(self) -> Path:
        """Directory holding the database and the encrypted preferences."""
        configured = self.config.storage.data_dir
        return Path(configured).expanduser() if configured else self.default_data_dir

    @property
    def db_path(self) -> Path:
        """Location of the encrypted task database."""
        return self.data_dir / self.config.storage.db_filename

    @property
    def prefs_path(self) -> Path:
        """Location of the encrypted preferences file."""
        return self.data_dir / self.config.storage.prefs_filename

    @property
    def lock_path(self) -> Path:
        """Lock file serializing first-run key and database provisioning."""
        return self.data_dir / "vault.lock"


@lru_cache(maxsize=1)
def get_config_service() -> ConfigService:
    """Get a cached ConfigService instance."""
    config_service = ConfigService()
    config_service.load_config()
    return config_service
