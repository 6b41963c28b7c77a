from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the dfox TUI and CLI.

    Values are loaded from environment variables and `.env`.

    Notes:
    - Logs and exports live outside the working directory by default.
    - Connection defaults only pre-fill the connection form.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Logging (diagnostic; file only, the TUI owns the console)
    DFOX_LOG_DIR: Path = Field(default=Path("~/.dfox/logs"))
    DFOX_LOG_LEVEL: str = Field(default="INFO")
    # Timed rotation retention count (days).
    DFOX_LOG_BACKUP_COUNT: int = Field(default=7)
    # Entries kept for the F12 debug overlay.
    DFOX_DEBUG_BUFFER: int = Field(default=500)

    # Drivers
    DFOX_CONNECT_TIMEOUT: int = Field(default=10)

    # Views
    DFOX_PAGE_SIZE: int = Field(default=20)
    DFOX_MAX_VISIBLE_COLUMNS: int = Field(default=8)
    DFOX_PREVIEW_LIMIT: int = Field(default=100)

    # Copy row / copy all target
    DFOX_EXPORT_PATH: Path = Field(default=Path("~/.dfox/export.tsv"))

    # Connection form defaults
    DFOX_DEFAULT_HOST: str = Field(default="localhost")
    DFOX_DEFAULT_USER: str | None = Field(default=None)


def load_settings() -> Settings:
    s = Settings()
    s.DFOX_LOG_DIR = s.DFOX_LOG_DIR.expanduser()
    s.DFOX_EXPORT_PATH = s.DFOX_EXPORT_PATH.expanduser()
    # Ensure dirs exist
    s.DFOX_LOG_DIR.mkdir(parents=True, exist_ok=True)
    s.DFOX_EXPORT_PATH.parent.mkdir(parents=True, exist_ok=True)
    return s
