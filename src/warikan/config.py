"""Configuration management for Warikan."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .models import RoundingRule


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WARIKAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    database_path: Path = Path.home() / ".warikan" / "warikan.db"
    export_dir: Path = Path(".")

    # Defaults for new projects
    default_currency_symbol: str = "¥"
    default_rounding_rule: RoundingRule = RoundingRule.NONE

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your WARIKAN_* environment "
            f"variables or .env file.\n"
            f"Error: {e}"
        ) from e
