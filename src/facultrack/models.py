"""Core data models used throughout the FacultyTrack application."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProvenanceTag(str, Enum):
    """Registries that can contribute to a publication record."""

    ORCID = "orcid"
    OPENALEX = "openalex"
    SCOPUS = "scopus"
    WOS = "wos"


class PublicationRecord(BaseModel):
    """One bibliographic item as known from one or more registries."""

    title: str
    year: int = 0  # 0 means unknown
    journal: str | None = None
    work_type: str = "unknown"
    doi: str | None = None
    url: str | None = None
    external_id: str = ""
    sources: set[ProvenanceTag] = Field(default_factory=set)
    citation_count: int | None = Field(default=None, ge=0)
    authors: list[str] = Field(default_factory=list)
    abstract: str | None = None

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: object) -> int:
        if value is None or value == "":
            return 0
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    @property
    def source_labels(self) -> list[str]:
        return sorted(tag.value for tag in self.sources)


class Topic(BaseModel):
    name: str
    score: float = 0.0


class YearlyStat(BaseModel):
    year: int
    citations: int = 0
    works: int = 0


class WorkMetric(BaseModel):
    title: str
    year: int = 0
    citations: int = 0
    is_oa: bool = False
    journal: str = "N/A"
    doi: str = ""


class MetricsBundle(BaseModel):
    """Author-level indicators taken wholesale from the metrics registry."""

    h_index: int = 0
    i10_index: int = 0
    citation_count: int = 0
    works_count: int = 0
    citation_count_2yr: int = 0
    last_updated: datetime = Field(default_factory=utc_now)
    topics: list[Topic] = Field(default_factory=list)
    yearly_stats: list[YearlyStat] = Field(default_factory=list)
    institutions: list[str] = Field(default_factory=list)
    top_works: list[WorkMetric] = Field(default_factory=list)


class FacultyProfile(BaseModel):
    """A researcher's aggregated record."""

    orcid_id: str
    name: str
    position: str = ""
    department: str = ""
    country: str | None = None
    biography: str | None = None
    publications: list[PublicationRecord] = Field(default_factory=list)
    metrics: MetricsBundle | None = None
    last_updated: datetime = Field(default_factory=utc_now)


class ResearcherHit(BaseModel):
    """A person returned by a registry search."""

    orcid_id: str
    name: str
