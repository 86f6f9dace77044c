"""Utility helpers for identifier normalization and filesystem-safe names."""

from __future__ import annotations

import re
import unicodedata

DOI_RESOLVER_PREFIX = re.compile(r"^https?://(dx\.)?doi\.org/")
TITLE_STRIP_PATTERN = re.compile(r"[^\w\s]")
ORCID_PATTERN = re.compile(r"^\d{4}-\d{4}-\d{4}-\d{3}[\dX]$")
SLUG_PATTERN = re.compile(r"[^a-z0-9]+")

# Non-JSON bodies and payloads of an unexpected shape.
PAYLOAD_ERRORS = (AttributeError, KeyError, TypeError, ValueError)


def normalize_doi(doi: str | None) -> str | None:
    """Return a comparison key for a DOI, dropping case and resolver prefix."""
    if not doi:
        return None
    value = DOI_RESOLVER_PREFIX.sub("", doi.strip().lower()).strip()
    return value or None


def normalize_title(title: str) -> str:
    """Lower-case a title and strip punctuation so surface variants compare equal."""
    return TITLE_STRIP_PATTERN.sub("", title.lower()).strip()


def is_valid_orcid(identifier: str) -> bool:
    return bool(ORCID_PATTERN.match(identifier))


def slugify(value: str, max_length: int = 80) -> str:
    """Create a filesystem-safe slug."""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode()
    value = value.lower()
    value = SLUG_PATTERN.sub("-", value).strip("-")
    if not value:
        value = "item"
    return value[:max_length]
