"""Fold one registry's publications into a researcher's canonical list."""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from facultrack.models import ProvenanceTag, PublicationRecord
from facultrack.utils import normalize_doi, normalize_title

logger = structlog.get_logger(__name__)

YEAR_TOLERANCE = 1


def merge_publications(
    existing: Sequence[PublicationRecord],
    incoming: Sequence[PublicationRecord],
    source: ProvenanceTag,
) -> list[PublicationRecord]:
    """Merge ``incoming`` records from ``source`` into ``existing``.

    Records are matched first by normalized DOI, then by normalized title with
    a one-year tolerance. Matched records gain the source tag, keep the highest
    citation count and only have DOI, journal and URL filled when missing.
    Unmatched records are appended. The result is a new list, stably sorted
    by year descending; ``existing`` is never mutated.
    """
    merged = [record.model_copy(deep=True) for record in existing]
    matched = 0
    added = 0

    for record in incoming:
        target = find_match(merged, record)
        if target is None:
            merged.append(
                record.model_copy(
                    update={
                        "sources": {source},
                        "citation_count": record.citation_count or 0,
                    },
                    deep=True,
                )
            )
            added += 1
            continue
        _reconcile(target, record, source)
        matched += 1

    logger.debug(
        "merge.complete",
        source=source.value,
        incoming=len(incoming),
        matched=matched,
        added=added,
    )
    return sorted(merged, key=lambda item: item.year, reverse=True)


def find_match(
    candidates: Sequence[PublicationRecord], record: PublicationRecord
) -> PublicationRecord | None:
    """Return the first candidate that refers to the same work as ``record``."""
    doi_key = normalize_doi(record.doi)
    if doi_key is not None:
        for candidate in candidates:
            if normalize_doi(candidate.doi) == doi_key:
                return candidate

    if not record.year:
        return None
    title_key = normalize_title(record.title)
    for candidate in candidates:
        if not candidate.year:
            continue
        if (
            normalize_title(candidate.title) == title_key
            and abs(candidate.year - record.year) <= YEAR_TOLERANCE
        ):
            return candidate
    return None


def _reconcile(
    target: PublicationRecord, record: PublicationRecord, source: ProvenanceTag
) -> None:
    # first writer wins for metadata, max wins for citations
    target.sources.add(source)
    target.citation_count = max(target.citation_count or 0, record.citation_count or 0)
    if not target.doi and record.doi:
        target.doi = record.doi
    if not target.journal and record.journal:
        target.journal = record.journal
    if not target.url and record.url:
        target.url = record.url
