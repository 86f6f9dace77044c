"""SQLite persistence layer for FacultyTrack."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel, create_engine

from facultrack.models import utc_now


class ProfileRecord(SQLModel, table=True):
    """One researcher profile; nested collections are stored as JSON."""

    orcid_id: str = Field(primary_key=True)
    name: str = Field(index=True)
    position: str = ""
    department: str = Field(default="", index=True)
    country: str | None = None
    biography: str | None = None
    publications_json: str = Field(default="[]")
    metrics_json: str | None = None
    # SQLite drops the offset on write; readers re-attach UTC.
    last_updated: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


def create_engine_for_path(db_path: Path):
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False},
    )


def init_db(engine) -> None:
    SQLModel.metadata.create_all(engine)
