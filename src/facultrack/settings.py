"""Configuration helpers for FacultyTrack."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_DATA_ROOT = Path.home() / "facultrack-data"


class Settings(BaseModel):
    """Runtime configuration loaded from env vars with sensible defaults."""

    data_dir: Path = Field(default_factory=lambda: DEFAULT_DATA_ROOT)
    db_filename: str = "directory.sqlite3"
    log_level: str = "INFO"
    orcid_base_url: str = "https://pub.orcid.org/v3.0"
    openalex_base_url: str = "https://api.openalex.org"
    openalex_mailto: str = "admin@example.com"
    scopus_api_key: str | None = None
    wos_api_key: str | None = None
    http_timeout: float = 30.0

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_filename

    def ensure_directories(self) -> None:
        """Create data directories if they are missing."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def load(cls) -> "Settings":
        load_dotenv()
        data_dir = Path(os.environ.get("FACULTRACK_DATA_DIR", DEFAULT_DATA_ROOT))
        return cls(
            data_dir=data_dir,
            db_filename=os.environ.get("FACULTRACK_DB_FILENAME", "directory.sqlite3"),
            log_level=os.environ.get("FACULTRACK_LOG_LEVEL", "INFO"),
            orcid_base_url=os.environ.get(
                "FACULTRACK_ORCID_URL", "https://pub.orcid.org/v3.0"
            ),
            openalex_base_url=os.environ.get(
                "FACULTRACK_OPENALEX_URL", "https://api.openalex.org"
            ),
            openalex_mailto=os.environ.get("FACULTRACK_OPENALEX_MAILTO", "admin@example.com"),
            scopus_api_key=os.environ.get("FACULTRACK_SCOPUS_API_KEY") or None,
            wos_api_key=os.environ.get("FACULTRACK_WOS_API_KEY") or None,
            http_timeout=float(os.environ.get("FACULTRACK_HTTP_TIMEOUT", "30")),
        )


def get_settings() -> Settings:
    """Convenience accessor for lazy modules."""
    settings = Settings.load()
    settings.ensure_directories()
    return settings
