"""OpenAlex client for author-level metrics and topic searches."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from facultrack.models import (
    MetricsBundle,
    ProvenanceTag,
    Topic,
    WorkMetric,
    YearlyStat,
    utc_now,
)
from facultrack.settings import Settings
from facultrack.utils import PAYLOAD_ERRORS

logger = structlog.get_logger(__name__)

DOI_URL_PREFIX = "https://doi.org/"


class OpenAlexClient:
    """Fetches metrics bundles from OpenAlex. Failures yield ``None``."""

    tag = ProvenanceTag.OPENALEX

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    async def fetch_metrics(self, orcid_id: str) -> MetricsBundle | None:
        logger.info("openalex.fetch", orcid=orcid_id)
        try:
            response = await self._get(f"authors/https://orcid.org/{orcid_id}")
            if response.status_code == 404:
                logger.warning("openalex.not_found", orcid=orcid_id)
                return None
            response.raise_for_status()
            metrics = parse_author(response.json())
        except httpx.HTTPError as exc:
            logger.warning("openalex.error", orcid=orcid_id, error=str(exc))
            return None
        except PAYLOAD_ERRORS as exc:
            logger.warning("openalex.bad_payload", orcid=orcid_id, error=str(exc))
            return None
        metrics.top_works = await self._top_works(orcid_id)
        return metrics

    async def search_works(self, query: str, year: int | None = None) -> list[dict[str, Any]]:
        """Return the five most-cited works matching a keyword query."""
        filters = f"default.search:{query}"
        if year:
            filters += f",publication_year:{year}"
        try:
            response = await self._get(
                "works", params={"filter": filters, "sort": "cited_by_count:desc", "per_page": 5}
            )
            response.raise_for_status()
            return [
                {
                    "title": work.get("title"),
                    "year": work.get("publication_year"),
                    "citations": work.get("cited_by_count"),
                    "doi": work.get("doi"),
                    "journal": _source_name(work),
                }
                for work in response.json().get("results") or []
            ]
        except httpx.HTTPError as exc:
            logger.warning("openalex.search_error", query=query, error=str(exc))
        except PAYLOAD_ERRORS as exc:
            logger.warning("openalex.bad_payload", query=query, error=str(exc))
        return []

    async def author_stats(self, orcid_id: str) -> dict[str, Any]:
        """Compact metrics summary suited to tool responses."""
        metrics = await self.fetch_metrics(orcid_id)
        if metrics is None:
            return {"error": "Author not found"}
        return {
            "h_index": metrics.h_index,
            "citations_total": metrics.citation_count,
            "citations_2y": metrics.citation_count_2yr,
            "top_topics": [topic.name for topic in metrics.topics],
            "yearly_trend": [stat.model_dump() for stat in metrics.yearly_stats[-5:]],
        }

    async def _top_works(self, orcid_id: str) -> list[WorkMetric]:
        try:
            response = await self._get(
                "works",
                params={
                    "filter": f"author.orcid:{orcid_id}",
                    "sort": "cited_by_count:desc",
                    "per_page": 5,
                },
            )
            response.raise_for_status()
            return [
                WorkMetric(
                    title=work.get("title") or "Untitled",
                    year=work.get("publication_year") or 0,
                    citations=work.get("cited_by_count") or 0,
                    is_oa=bool((work.get("open_access") or {}).get("is_oa")),
                    journal=_source_name(work) or "N/A",
                    doi=(work.get("doi") or "").replace(DOI_URL_PREFIX, ""),
                )
                for work in response.json().get("results") or []
            ]
        except httpx.HTTPError as exc:
            logger.warning("openalex.works_error", orcid=orcid_id, error=str(exc))
        except PAYLOAD_ERRORS as exc:
            logger.warning("openalex.bad_payload", orcid=orcid_id, error=str(exc))
        return []

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        query = {"mailto": self._settings.openalex_mailto, **(params or {})}
        return await self._client.get(
            f"{self._settings.openalex_base_url}/{path}",
            params=query,
            timeout=self._settings.http_timeout,
        )


def parse_author(author: dict) -> MetricsBundle:
    """Map an OpenAlex author object onto a metrics bundle without top works."""
    stats = author.get("summary_stats") or {}
    concepts = [concept for concept in author.get("x_concepts") or [] if concept.get("level", 0) <= 1]
    concepts.sort(key=lambda concept: concept.get("score", 0), reverse=True)
    yearly = [
        YearlyStat(
            year=entry["year"],
            citations=entry.get("cited_by_count", 0),
            works=entry.get("works_count", 0),
        )
        for entry in author.get("counts_by_year") or []
    ]
    yearly.sort(key=lambda stat: stat.year)
    return MetricsBundle(
        h_index=stats.get("h_index") or 0,
        i10_index=stats.get("i10_index") or 0,
        citation_count=stats.get("cited_by_count") or 0,
        works_count=stats.get("works_count") or 0,
        citation_count_2yr=stats.get("2yr_cited_by_count") or 0,
        last_updated=utc_now(),
        topics=[Topic(name=c["display_name"], score=c.get("score", 0)) for c in concepts[:5]],
        yearly_stats=yearly,
        institutions=[inst["display_name"] for inst in author.get("last_known_institutions") or []],
    )


def _source_name(work: dict) -> str | None:
    return ((work.get("primary_location") or {}).get("source") or {}).get("display_name")
