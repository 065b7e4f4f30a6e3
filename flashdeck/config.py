"""
Centralized configuration management for flashdeck.
"""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_STORAGE_KEY


def get_default_db_path() -> Path:
    """Returns the default path for the database file (not created here)."""
    return Path.home() / ".flashdeck" / "flashdeck.db"


class Settings(BaseSettings):
    """
    Defines application settings, loaded from FLASHDECK_* environment
    variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLASHDECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Overridden by FLASHDECK_DB_PATH.
    db_path: Path = get_default_db_path()

    # Key the snapshot is stored under inside the database.
    storage_key: str = DEFAULT_STORAGE_KEY

    # YAML seed deck used when no saved cards exist yet. None = built-in deck.
    seed_path: Optional[Path] = None
