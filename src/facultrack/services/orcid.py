"""ORCID public API client: identity, biography and the base publication list."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from facultrack.models import FacultyProfile, ProvenanceTag, PublicationRecord, ResearcherHit
from facultrack.settings import Settings
from facultrack.utils import PAYLOAD_ERRORS

logger = structlog.get_logger(__name__)

HEADERS = {"Accept": "application/json"}
SCOPUS_ID_TYPES = {"eid", "scopus"}
WOS_ID_TYPES = {"wosuid", "wos"}


class RegistryError(RuntimeError):
    """Raised when a mandatory registry request fails."""


class OrcidClient:
    """Fetches person and works data from the ORCID public API."""

    tag = ProvenanceTag.ORCID

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    async def fetch_profile(
        self, orcid_id: str, position: str = "", department: str = ""
    ) -> FacultyProfile:
        logger.info("orcid.fetch", orcid=orcid_id)
        try:
            person = await self._get_json(f"{orcid_id}/person")
            works = await self._get_json(f"{orcid_id}/works")
            return build_profile(orcid_id, person, works, position, department)
        except httpx.HTTPError as exc:
            logger.warning("orcid.error", orcid=orcid_id, error=str(exc))
            raise RegistryError(f"ORCID request failed for {orcid_id}: {exc}") from exc
        except PAYLOAD_ERRORS as exc:
            logger.warning("orcid.bad_payload", orcid=orcid_id, error=str(exc))
            raise RegistryError(f"Malformed ORCID response for {orcid_id}: {exc}") from exc

    async def search_by_affiliation(self, affiliation: str, *, rows: int = 20) -> list[ResearcherHit]:
        """Find researchers whose ORCID record lists the affiliation."""
        params = {"q": f'affiliation-org-name:"{affiliation}"', "rows": rows}
        try:
            payload = await self._get_json("search", params=params)
            ids = [item["orcid-identifier"]["path"] for item in payload.get("result") or []]
        except httpx.HTTPError as exc:
            logger.warning("orcid.search_error", affiliation=affiliation, error=str(exc))
            return []
        except PAYLOAD_ERRORS as exc:
            logger.warning("orcid.bad_payload", affiliation=affiliation, error=str(exc))
            return []
        names = await asyncio.gather(*(self._display_name(orcid_id) for orcid_id in ids))
        return [ResearcherHit(orcid_id=orcid_id, name=name) for orcid_id, name in zip(ids, names)]

    async def _display_name(self, orcid_id: str) -> str:
        try:
            person = await self._get_json(f"{orcid_id}/person")
            return _person_name(person) or "Unknown Name"
        except (httpx.HTTPError, *PAYLOAD_ERRORS) as exc:
            logger.debug("orcid.name_error", orcid=orcid_id, error=str(exc))
            return "Unknown"

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict:
        url = f"{self._settings.orcid_base_url}/{path}"
        response = await self._client.get(
            url, params=params, headers=HEADERS, timeout=self._settings.http_timeout
        )
        response.raise_for_status()
        return response.json()


def build_profile(
    orcid_id: str, person: dict, works: dict, position: str = "", department: str = ""
) -> FacultyProfile:
    """Assemble the base profile from the person and works documents."""
    publications = [
        parse_work_summary(group["work-summary"][0])
        for group in works.get("group") or []
        if group.get("work-summary")
    ]
    publications.sort(key=lambda record: record.year, reverse=True)
    addresses = (person.get("addresses") or {}).get("address") or []
    country = _value(addresses[0].get("country")) if addresses else None
    return FacultyProfile(
        orcid_id=orcid_id,
        name=_person_name(person) or "Unknown Name",
        position=position,
        department=department,
        country=country,
        biography=(person.get("biography") or {}).get("content"),
        publications=publications,
    )


def parse_work_summary(summary: dict) -> PublicationRecord:
    """Convert one ORCID work summary into a publication record."""
    doi = None
    url = _value(summary.get("url"))
    sources = {ProvenanceTag.ORCID}
    external_ids = (summary.get("external-ids") or {}).get("external-id") or []
    for entry in external_ids:
        id_type = entry.get("external-id-type")
        if id_type == "doi" and doi is None:
            doi = entry.get("external-id-value")
            if not url:
                url = _value(entry.get("external-id-url"))
        elif id_type in SCOPUS_ID_TYPES:
            sources.add(ProvenanceTag.SCOPUS)
        elif id_type in WOS_ID_TYPES:
            sources.add(ProvenanceTag.WOS)

    year = _value((summary.get("publication-date") or {}).get("year"))
    return PublicationRecord(
        title=_value((summary.get("title") or {}).get("title")) or "Untitled",
        year=year,
        journal=_value(summary.get("journal-title")),
        work_type=(summary.get("type") or "unknown").replace("_", " "),
        doi=doi,
        url=url,
        external_id=str(summary.get("put-code", "")),
        sources=sources,
        citation_count=0,
    )


def _person_name(person: dict) -> str:
    name = person.get("name") or {}
    given = _value(name.get("given-names")) or ""
    family = _value(name.get("family-name")) or ""
    return f"{given} {family}".strip()


def _value(node: Any) -> Any:
    # ORCID wraps most scalars as {"value": ...}
    if isinstance(node, dict):
        return node.get("value")
    return None
