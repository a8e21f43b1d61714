"""
Configuration for the ambr traffic recorder.

We use pydantic-settings (Pydantic v2) to load settings from:
- environment variables
- a local `.env` file in the working directory
"""

import os
from pathlib import Path
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def default_data_dir() -> Path:
    """Per-user data directory: $XDG_DATA_HOME/ambr or ~/.local/share/ambr."""
    base = os.getenv("XDG_DATA_HOME")
    if base:
        return Path(base) / "ambr"
    return Path.home() / ".local" / "share" / "ambr"


class Settings(BaseSettings):
    """
    Application-wide settings.

    Environment variables (with defaults):

    - DATA_DIR:                   Where the database and log file live
    - DATABASE_URL:               SQLAlchemy URL, default SQLite file in DATA_DIR
    - SAMPLE_INTERVAL_SECONDS:    How often the recorder samples counters (10)
    - RECORD_IDLE_TICKS:          Persist (0, 0) deltas for idle interfaces (true)
    - IGNORED_INTERFACES:         Comma-separated interface names to skip
    - USE_COUNTER_STUB:           "1" or "0" to toggle fake counters (default: 0)
    - LIVE_REFRESH_SECONDS:       Live view refresh while it is focused (1.0)
    - BACKGROUND_REFRESH_SECONDS: Live data refresh on other tabs (2.0)
    - LOG_LEVEL:                  Logging level name (INFO)
    - LOG_FILE:                   Log to this file instead of stderr
    """

    data_dir: Path = Field(default_factory=default_data_dir)

    # Empty means "ambr.db inside data_dir", see `resolved_database_url`.
    database_url: str = ""

    sample_interval_seconds: int = Field(default=10, gt=0)

    record_idle_ticks: bool = True

    # Raw env value is left undecoded so the validator below can split it.
    ignored_interfaces: Annotated[List[str], NoDecode] = Field(default_factory=list)

    use_counter_stub: bool = False

    live_refresh_seconds: float = Field(default=1.0, gt=0)
    background_refresh_seconds: float = Field(default=2.0, gt=0)

    log_level: str = "INFO"
    log_file: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("ignored_interfaces", mode="before")
    @classmethod
    def parse_ignored_interfaces(cls, v):
        """
        Allow IGNORED_INTERFACES to be specified as:

        - "lo"            -> ["lo"]
        - "lo, docker0"   -> ["lo", "docker0"]
        - ["lo"]          -> ["lo"]
        """
        if isinstance(v, (list, tuple)):
            return list(v)
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'ambr.db'}"


# Single global settings object
settings = Settings()
