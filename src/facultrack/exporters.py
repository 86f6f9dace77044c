"""Citation export helpers for a profile's canonical publication list."""

from __future__ import annotations

import csv
import io
import json
from typing import Sequence

from facultrack.models import PublicationRecord
from facultrack.utils import normalize_doi, slugify

CSV_COLUMNS = ("title", "year", "journal", "type", "doi", "citations", "sources")


def export_bibtex(publications: Sequence[PublicationRecord]) -> str:
    entries = [publication_to_bibtex(record) for record in publications]
    return "\n\n".join(entries)


def publication_to_bibtex(record: PublicationRecord) -> str:
    key = slugify(f"{record.title} {record.year or ''}")
    entry_type = "inproceedings" if "conference" in record.work_type else "article"
    fields = {
        "title": record.title or "Untitled",
        "author": " and ".join(record.authors),
        "journal" if entry_type == "article" else "booktitle": record.journal or "",
        "year": record.year or "",
        "doi": normalize_doi(record.doi) or "",
        "url": record.url or "",
    }
    body = ",\n".join(
        f"  {field} = {{{value}}}" for field, value in fields.items() if value
    )
    return f"@{entry_type}{{{key},\n{body}\n}}"


def export_csl_json(publications: Sequence[PublicationRecord]) -> str:
    payload = [publication_to_csl(record) for record in publications]
    return json.dumps(payload, indent=2)


def publication_to_csl(record: PublicationRecord) -> dict:
    doi = normalize_doi(record.doi)
    return {
        "id": doi or slugify(record.title or "facultrack"),
        "type": "paper-conference" if "conference" in record.work_type else "article-journal",
        "title": record.title,
        "DOI": doi,
        "URL": record.url,
        "container-title": record.journal,
        "author": [{"literal": name} for name in record.authors],
        "issued": {"date-parts": [[record.year]]} if record.year else None,
    }


def export_csv(publications: Sequence[PublicationRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for record in publications:
        writer.writerow(
            [
                record.title,
                record.year or "",
                record.journal or "",
                record.work_type,
                normalize_doi(record.doi) or "",
                record.citation_count or 0,
                ";".join(record.source_labels),
            ]
        )
    return buffer.getvalue()
