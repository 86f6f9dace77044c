"""Function-calling tools exposed to the research assistant."""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable

import structlog

from facultrack.models import FacultyProfile
from .openalex import OpenAlexClient

logger = structlog.get_logger(__name__)

TOOL_DECLARATIONS: list[dict[str, Any]] = [
    {
        "name": "get_author_metrics",
        "description": (
            "Get detailed OpenAlex metrics (H-index, citations, trends) for a researcher "
            "by ORCID iD. Use this for deep analysis of a person."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "orcid": {
                    "type": "string",
                    "description": "The ORCID iD of the researcher (e.g. 0000-0003-0242-2234)",
                }
            },
            "required": ["orcid"],
        },
    },
    {
        "name": "search_scientific_works",
        "description": (
            "Search OpenAlex for scientific papers by topic or keyword to analyse "
            "global trends or find relevant literature."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Keywords to search for"},
                "year": {
                    "type": "number",
                    "description": "Optional publication year to filter by.",
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": "get_current_date",
        "description": "Get the current date for date-sensitive calculations.",
        "parameters": {"type": "object", "properties": {}},
    },
]


class ToolExecutor:
    """Dispatches tool calls by name.

    Bad arguments and unknown names come back as ``{"error": ...}``. Failures
    inside a tool propagate to the caller.
    """

    def __init__(self, openalex: OpenAlexClient) -> None:
        self._openalex = openalex

    @property
    def names(self) -> list[str]:
        return [declaration["name"] for declaration in TOOL_DECLARATIONS]

    async def execute(self, name: str, args: dict[str, Any] | None = None) -> Any:
        args = args or {}
        logger.info("tools.execute", tool=name, args=args)
        if name == "get_author_metrics":
            try:
                orcid_id = args["orcid"]
            except KeyError as exc:
                return _invalid_arguments(name, exc)
            return await self._openalex.author_stats(orcid_id)
        if name == "search_scientific_works":
            try:
                query = args["query"]
                year = int(args["year"]) if args.get("year") else None
            except (KeyError, TypeError, ValueError) as exc:
                return _invalid_arguments(name, exc)
            return await self._openalex.search_works(query, year)
        if name == "get_current_date":
            return {"date": date.today().isoformat()}
        return {"error": f"Unknown tool: {name}"}


def _invalid_arguments(name: str, exc: Exception) -> dict[str, str]:
    logger.warning("tools.invalid_arguments", tool=name, error=str(exc))
    return {"error": f"Invalid arguments for {name}: {exc}"}


def faculty_directory(profiles: Iterable[FacultyProfile]) -> str:
    """Render the local directory block given to the assistant."""
    return "\n".join(
        f"- {profile.name} (ORCID: {profile.orcid_id}, Dept: {profile.department})"
        for profile in profiles
    )
