"""Builds a researcher profile from the identity, metrics and indexing registries."""

from __future__ import annotations

from typing import Protocol, Sequence

import structlog

from facultrack.models import FacultyProfile, MetricsBundle
from facultrack.utils import is_valid_orcid
from .indexing import PublicationSource
from .merge import merge_publications
from .orcid import RegistryError
from .storage import ProfileRepository

logger = structlog.get_logger(__name__)


class IdentitySource(Protocol):
    async def fetch_profile(
        self, orcid_id: str, position: str = "", department: str = ""
    ) -> FacultyProfile:
        ...


class MetricsSource(Protocol):
    async def fetch_metrics(self, orcid_id: str) -> MetricsBundle | None:
        ...


class AssemblyError(RuntimeError):
    """Raised when a profile cannot be added."""


class ProfileAssembler:
    """Coordinates registry fetches, publication merging and persistence.

    Registries are awaited one at a time in a fixed order. The profile only
    reaches the repository once every step has finished.
    """

    def __init__(
        self,
        identity: IdentitySource,
        repository: ProfileRepository,
        metrics: MetricsSource | None = None,
        sources: Sequence[PublicationSource] = (),
    ) -> None:
        self._identity = identity
        self._repository = repository
        self._metrics = metrics
        self._sources = list(sources)

    async def add(self, orcid_id: str, position: str = "", department: str = "") -> FacultyProfile:
        orcid_id = orcid_id.strip()
        if not is_valid_orcid(orcid_id):
            raise AssemblyError(
                f"Invalid ORCID iD {orcid_id!r} (expected e.g. 0000-0002-1825-0097)."
            )
        if await self._repository.get(orcid_id) is not None:
            raise AssemblyError(f"Faculty member {orcid_id} already exists.")

        profile = await self.assemble(orcid_id, position, department)
        await self._repository.upsert(profile)
        logger.info(
            "assembler.added",
            orcid=orcid_id,
            publications=len(profile.publications),
            has_metrics=profile.metrics is not None,
        )
        return profile

    async def assemble(
        self, orcid_id: str, position: str = "", department: str = ""
    ) -> FacultyProfile:
        """Run the fetch and merge sequence without touching the repository."""
        try:
            profile = await self._identity.fetch_profile(orcid_id, position, department)
        except RegistryError as exc:
            raise AssemblyError(f"Failed to fetch identity data for {orcid_id}: {exc}") from exc

        if self._metrics is not None:
            metrics = await self._metrics.fetch_metrics(orcid_id)
            if metrics is not None:
                profile.metrics = metrics

        for source in self._sources:
            records = await source.fetch(orcid_id)
            if not records:
                logger.info("assembler.source_empty", orcid=orcid_id, source=source.tag.value)
                continue
            logger.info(
                "assembler.merge", orcid=orcid_id, source=source.tag.value, incoming=len(records)
            )
            profile.publications = merge_publications(profile.publications, records, source.tag)
        return profile
