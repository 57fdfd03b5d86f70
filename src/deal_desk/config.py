"""Environment-based configuration, resolved once per process."""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class Settings:
    """Configuration loaded from environment variables."""

    def __init__(self):
        self.db_path = os.getenv(
            "DEAL_DESK_DB_PATH",
            str(Path.home() / ".deal-desk" / "deals.db"),
        )

        self.log_level = os.getenv("DEAL_DESK_LOG_LEVEL", "WARNING").upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            logger.warning(f"Unknown DEAL_DESK_LOG_LEVEL {self.log_level!r}, using WARNING")
            self.log_level = "WARNING"


_settings = None


def _get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings():
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None


class _SettingsProxy:
    """Lazy proxy so settings aren't loaded until first access."""

    def __getattr__(self, name):
        return getattr(_get_settings(), name)


settings = _SettingsProxy()
