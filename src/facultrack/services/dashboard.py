"""Aggregate statistics across a set of faculty profiles."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Sequence

from facultrack.models import FacultyProfile, ProvenanceTag, PublicationRecord

H_INDEX_BINS: tuple[tuple[str, int | None], ...] = (
    ("0-2", 2),
    ("3-5", 5),
    ("6-10", 10),
    ("11-20", 20),
    ("20+", None),
)
TOP_TYPES = 4
TOP_AUTHORS = 5


@dataclass(slots=True)
class DashboardFilter:
    department: str | None = None
    orcid_id: str | None = None
    start_year: int | None = None
    end_year: int | None = None
    current_year: int | None = None

    def resolved(self) -> "DashboardFilter":
        current = self.current_year or date.today().year
        return DashboardFilter(
            department=self.department,
            orcid_id=self.orcid_id,
            start_year=self.start_year if self.start_year is not None else current - 4,
            end_year=self.end_year if self.end_year is not None else current,
            current_year=current,
        )


@dataclass(slots=True)
class TrendPoint:
    year: int
    citations: int
    publications: int


@dataclass(slots=True)
class AuthorScore:
    name: str
    value: int


@dataclass(slots=True)
class DashboardSummary:
    total_faculty: int
    total_publications: int
    publications_this_year: int
    total_citations: int
    average_h_index: float
    scopus_publications: int
    wos_publications: int
    h_index_bins: dict[str, int] = field(default_factory=dict)
    trend: list[TrendPoint] = field(default_factory=list)
    work_types: list[tuple[str, int]] = field(default_factory=list)
    top_authors: list[AuthorScore] = field(default_factory=list)
    ranked_by_citations: bool = False


def departments(profiles: Iterable[FacultyProfile]) -> list[str]:
    """Distinct non-empty departments in first-seen order."""
    seen: dict[str, None] = {}
    for profile in profiles:
        if profile.department:
            seen.setdefault(profile.department, None)
    return list(seen)


def filter_profiles(
    profiles: Iterable[FacultyProfile], department: str | None, orcid_id: str | None
) -> list[FacultyProfile]:
    return [
        profile
        for profile in profiles
        if (department is None or profile.department == department)
        and (orcid_id is None or profile.orcid_id == orcid_id)
    ]


def build_dashboard(
    profiles: Sequence[FacultyProfile], filters: DashboardFilter | None = None
) -> DashboardSummary:
    filters = (filters or DashboardFilter()).resolved()
    start, end = filters.start_year, filters.end_year
    selected = filter_profiles(profiles, filters.department, filters.orcid_id)

    def in_range(record: PublicationRecord) -> bool:
        return start <= record.year <= end

    in_range_pubs = [pub for profile in selected for pub in profile.publications if in_range(pub)]
    h_values = [profile.metrics.h_index if profile.metrics else 0 for profile in selected]
    average_h = round(sum(h_values) / len(h_values), 1) if h_values else 0.0

    return DashboardSummary(
        total_faculty=len(selected),
        total_publications=len(in_range_pubs),
        publications_this_year=sum(
            1
            for profile in selected
            for pub in profile.publications
            if pub.year == filters.current_year
        ),
        total_citations=sum(_range_citations(profile, start, end) for profile in selected),
        average_h_index=average_h,
        scopus_publications=sum(1 for pub in in_range_pubs if ProvenanceTag.SCOPUS in pub.sources),
        wos_publications=sum(1 for pub in in_range_pubs if ProvenanceTag.WOS in pub.sources),
        h_index_bins=h_index_histogram(h_values),
        trend=_trend(selected, start, end),
        work_types=_work_types(in_range_pubs),
        top_authors=_top_authors(selected, start, end),
        ranked_by_citations=_has_citations(selected),
    )


def h_index_histogram(values: Iterable[int]) -> dict[str, int]:
    bins = {label: 0 for label, _ in H_INDEX_BINS}
    for value in values:
        for label, upper in H_INDEX_BINS:
            if upper is None or value <= upper:
                bins[label] += 1
                break
    return bins


def _range_citations(profile: FacultyProfile, start: int, end: int) -> int:
    if not profile.metrics:
        return 0
    return sum(stat.citations for stat in profile.metrics.yearly_stats if start <= stat.year <= end)


def _trend(profiles: Sequence[FacultyProfile], start: int, end: int) -> list[TrendPoint]:
    points = {year: TrendPoint(year=year, citations=0, publications=0) for year in range(start, end + 1)}
    for profile in profiles:
        if profile.metrics:
            for stat in profile.metrics.yearly_stats:
                if stat.year in points:
                    points[stat.year].citations += stat.citations
        for pub in profile.publications:
            if pub.year and pub.year in points:
                points[pub.year].publications += 1
    return [points[year] for year in sorted(points)]


def _work_types(publications: Sequence[PublicationRecord]) -> list[tuple[str, int]]:
    counts = Counter(pub.work_type or "other" for pub in publications)
    ranked = counts.most_common()
    result = [(name.replace("-", " ", 1), value) for name, value in ranked[:TOP_TYPES]]
    others = sum(value for _, value in ranked[TOP_TYPES:])
    if others:
        result.append(("others", others))
    return result


def _has_citations(profiles: Sequence[FacultyProfile]) -> bool:
    return any(profile.metrics and profile.metrics.citation_count > 0 for profile in profiles)


def _top_authors(profiles: Sequence[FacultyProfile], start: int, end: int) -> list[AuthorScore]:
    by_citations = _has_citations(profiles)
    scores = []
    for profile in profiles:
        if by_citations:
            value = _range_citations(profile, start, end)
        else:
            value = sum(1 for pub in profile.publications if start <= pub.year <= end)
        scores.append(AuthorScore(name=short_name(profile.name), value=value))
    scores.sort(key=lambda score: score.value, reverse=True)
    return scores[:TOP_AUTHORS]


def short_name(name: str) -> str:
    """Abbreviate "Ada King Lovelace" to "Ada K."."""
    parts = name.split()
    if len(parts) > 1:
        return f"{parts[0]} {parts[1][0]}."
    return name
