"""
Configuration module
====================

Application settings loaded from environment variables and an optional
``.env`` file. Only the logging layer and the command line front-end read
these; the recognition engine itself is tuned through
:class:`offer_engine.excel.config.DetectorConfig`.
"""

from typing import Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """
    Application settings, read from the environment by pydantic.

    Attributes:
        LOG_LEVEL: level for the ``offer_engine`` root logger
        OUTPUT_JSON_NAME: default file name for CLI analysis reports
    """
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    LOG_LEVEL: str = "INFO"
    OUTPUT_JSON_NAME: Optional[str] = None

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Upper-case the level and reject names the logging module does not know."""
        level = (v or "").strip().upper()
        if level not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"LOG_LEVEL must be one of {', '.join(_VALID_LOG_LEVELS)}, got {v!r}"
            )
        return level


# Module-level singleton so the environment is read once
_settings_instance = None


def get_settings() -> Settings:
    """Return the cached :class:`Settings`, creating it on first call."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings (used by tests that patch the environment)."""
    global _settings_instance
    _settings_instance = None
