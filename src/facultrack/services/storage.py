"""Profile repository backed by SQLite."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Protocol

import structlog
from pydantic import TypeAdapter
from sqlmodel import Session, select

from facultrack.db import ProfileRecord, create_engine_for_path, init_db
from facultrack.models import FacultyProfile, MetricsBundle, PublicationRecord
from facultrack.settings import Settings

logger = structlog.get_logger(__name__)

_PUBLICATIONS = TypeAdapter(list[PublicationRecord])


class ProfileRepository(Protocol):
    """High-level contract for storing researcher profiles."""

    async def get(self, orcid_id: str) -> FacultyProfile | None:
        ...

    async def upsert(self, profile: FacultyProfile) -> FacultyProfile:
        ...

    async def delete(self, identifier: str) -> FacultyProfile | None:
        ...

    async def list_all(self) -> list[FacultyProfile]:
        ...


class LocalDirectory(ProfileRepository):
    """SQLite-backed faculty directory."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._lock = asyncio.Lock()
        self._settings.ensure_directories()
        self._engine = create_engine_for_path(self._settings.db_path)
        init_db(self._engine)

    async def get(self, orcid_id: str) -> FacultyProfile | None:
        async with self._lock:
            return await asyncio.to_thread(self._get_sync, orcid_id)

    async def upsert(self, profile: FacultyProfile) -> FacultyProfile:
        async with self._lock:
            await asyncio.to_thread(self._upsert_sync, profile)
        return profile

    async def delete(self, identifier: str) -> FacultyProfile | None:
        """Remove the profile whose ORCID iD or display name matches."""
        async with self._lock:
            return await asyncio.to_thread(self._delete_sync, identifier)

    async def list_all(self) -> list[FacultyProfile]:
        async with self._lock:
            return await asyncio.to_thread(self._list_sync)

    # Internal helpers -----------------------------------------------------

    def _get_sync(self, orcid_id: str) -> FacultyProfile | None:
        with Session(self._engine) as session:
            record = session.get(ProfileRecord, orcid_id)
            return _record_to_profile(record) if record else None

    def _upsert_sync(self, profile: FacultyProfile) -> None:
        with Session(self._engine) as session:
            record = session.get(ProfileRecord, profile.orcid_id)
            if record is None:
                record = ProfileRecord(orcid_id=profile.orcid_id, name=profile.name)
            record.name = profile.name
            record.position = profile.position
            record.department = profile.department
            record.country = profile.country
            record.biography = profile.biography
            record.publications_json = _PUBLICATIONS.dump_json(profile.publications).decode()
            record.metrics_json = profile.metrics.model_dump_json() if profile.metrics else None
            record.last_updated = _as_utc(profile.last_updated)
            session.add(record)
            session.commit()
        logger.info("storage.upsert", orcid=profile.orcid_id, publications=len(profile.publications))

    def _delete_sync(self, identifier: str) -> FacultyProfile | None:
        needle = identifier.strip().lower()
        with Session(self._engine) as session:
            record = session.get(ProfileRecord, identifier.strip())
            if record is None:
                for candidate in session.exec(select(ProfileRecord)).all():
                    if candidate.name.lower() == needle:
                        record = candidate
                        break
            if record is None:
                logger.info("storage.delete_miss", identifier=identifier)
                return None
            profile = _record_to_profile(record)
            session.delete(record)
            session.commit()
        logger.info("storage.delete", orcid=profile.orcid_id)
        return profile

    def _list_sync(self) -> list[FacultyProfile]:
        with Session(self._engine) as session:
            statement = select(ProfileRecord).order_by(ProfileRecord.name)
            records = session.exec(statement).all()
            return [_record_to_profile(record) for record in records]


def _record_to_profile(record: ProfileRecord) -> FacultyProfile:
    metrics = None
    if record.metrics_json:
        metrics = MetricsBundle.model_validate(json.loads(record.metrics_json))
    return FacultyProfile(
        orcid_id=record.orcid_id,
        name=record.name,
        position=record.position,
        department=record.department,
        country=record.country,
        biography=record.biography,
        publications=_PUBLICATIONS.validate_json(record.publications_json or "[]"),
        metrics=metrics,
        last_updated=_as_utc(record.last_updated),
    )


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
