"""Commercial citation indexes (Scopus, Web of Science).

Both require institutional API keys. Without a key each source runs in
simulation mode and returns a fixed set of demonstration records so the
merge behaviour can be exercised end to end.
"""

from __future__ import annotations

from typing import Protocol

import httpx
import structlog

from facultrack.models import ProvenanceTag, PublicationRecord
from facultrack.settings import Settings
from facultrack.utils import PAYLOAD_ERRORS

logger = structlog.get_logger(__name__)

SCOPUS_SEARCH_URL = "https://api.elsevier.com/content/search/scopus"
SCOPUS_PAGE_SIZE = 25
# Upper bound on records pulled per researcher.
SCOPUS_MAX_RESULTS = 200


class PublicationSource(Protocol):
    """A registry that contributes publications for one researcher."""

    tag: ProvenanceTag

    async def fetch(self, orcid_id: str) -> list[PublicationRecord]:
        ...


def _simulated_scopus() -> list[PublicationRecord]:
    return [
        PublicationRecord(
            title="Simulation: Machine Learning in Education",
            year=2023,
            journal="Computers & Education",
            work_type="journal-article",
            doi="10.1016/j.compedu.2023.100",
            external_id="scopus-1",
            sources={ProvenanceTag.SCOPUS},
            citation_count=15,
        ),
        PublicationRecord(
            title="High Performance Computing Trends",
            year=2024,
            journal="IEEE Transactions",
            work_type="conference-paper",
            external_id="scopus-2",
            sources={ProvenanceTag.SCOPUS},
            citation_count=4,
        ),
    ]


def _simulated_wos() -> list[PublicationRecord]:
    return [
        PublicationRecord(
            title="Simulation: AI Ethics in 2024",
            year=2024,
            journal="Ethics and Info Tech",
            work_type="journal-article",
            doi="10.1007/s10676-024-fake",
            external_id="wos-1",
            sources={ProvenanceTag.WOS},
            citation_count=8,
        )
    ]


class ScopusSource:
    """Scopus Search API, queried by ORCID iD one page at a time."""

    tag = ProvenanceTag.SCOPUS

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    async def fetch(self, orcid_id: str) -> list[PublicationRecord]:
        api_key = self._settings.scopus_api_key
        if not api_key:
            logger.info("scopus.simulated", orcid=orcid_id)
            return _simulated_scopus()
        records: list[PublicationRecord] = []
        start = 0
        while start < SCOPUS_MAX_RESULTS:
            try:
                response = await self._client.get(
                    SCOPUS_SEARCH_URL,
                    params={
                        "query": f"ORCID({orcid_id})",
                        "apiKey": api_key,
                        "start": start,
                        "count": min(SCOPUS_PAGE_SIZE, SCOPUS_MAX_RESULTS - start),
                    },
                    headers={"Accept": "application/json"},
                    timeout=self._settings.http_timeout,
                )
                response.raise_for_status()
                results = response.json().get("search-results") or {}
                entries = results.get("entry") or []
                total = int(results.get("opensearch:totalResults") or 0)
                records.extend(parse_scopus_entry(entry) for entry in entries if entry.get("dc:title"))
            except httpx.HTTPError as exc:
                logger.warning("scopus.error", orcid=orcid_id, start=start, error=str(exc))
                return []
            except PAYLOAD_ERRORS as exc:
                logger.warning("scopus.bad_payload", orcid=orcid_id, start=start, error=str(exc))
                return []
            start += len(entries)
            if not entries or start >= total:
                break
        if start >= SCOPUS_MAX_RESULTS and total > start:
            logger.info("scopus.truncated", orcid=orcid_id, limit=SCOPUS_MAX_RESULTS, total=total)
        return records


def parse_scopus_entry(entry: dict) -> PublicationRecord:
    cover_date = entry.get("prism:coverDate") or ""
    return PublicationRecord(
        title=entry["dc:title"],
        year=cover_date[:4] or None,
        journal=entry.get("prism:publicationName"),
        work_type=(entry.get("subtypeDescription") or "unknown").lower(),
        doi=entry.get("prism:doi"),
        external_id=entry.get("eid", ""),
        sources={ProvenanceTag.SCOPUS},
        citation_count=int(entry.get("citedby-count") or 0),
    )


class WosSource:
    tag = ProvenanceTag.WOS

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    async def fetch(self, orcid_id: str) -> list[PublicationRecord]:
        if not self._settings.wos_api_key:
            logger.info("wos.simulated", orcid=orcid_id)
            return _simulated_wos()
        # TODO: map the Web of Science Starter API response once a key is available for testing
        logger.warning("wos.unsupported", orcid=orcid_id)
        return []
