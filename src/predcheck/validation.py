# SPDX-License-Identifier: MIT
"""Validation and normalization utilities for DOIs and ISSNs."""

import re


DOI_PATTERN = re.compile(r"^10\.\d{4,}/\S+$")
DOI_URL_PREFIXES = (
    "https://doi.org/",
    "http://doi.org/",
    "https://dx.doi.org/",
    "http://dx.doi.org/",
    "doi:",
)


def normalize_doi(doi: str | None) -> str:
    """
    Normalize a DOI to its bare lowercase form.

    Args:
        doi: Raw DOI, optionally carrying a resolver URL or ``doi:`` prefix

    Returns:
        Bare DOI, or an empty string when nothing usable was given

    Examples:
        >>> normalize_doi("https://doi.org/10.1234/ABC")
        '10.1234/abc'
        >>> normalize_doi(None)
        ''
    """
    if not doi:
        return ""

    cleaned = doi.strip()
    lowered = cleaned.lower()
    for prefix in DOI_URL_PREFIXES:
        if lowered.startswith(prefix):
            cleaned = cleaned[len(prefix) :]
            break

    return cleaned.strip().lower()


def validate_doi(doi: str | None) -> bool:
    """
    Validate DOI format.

    Examples:
        >>> validate_doi("10.1234/example")
        True
        >>> validate_doi("invalid")
        False
    """
    if not doi:
        return False

    return bool(DOI_PATTERN.match(normalize_doi(doi)))


def normalize_issn(issn: str | None) -> str | None:
    """
    Normalize ISSN to canonical format (####-####).

    Args:
        issn: Raw ISSN string in various formats

    Returns:
        Normalized ISSN with hyphen, or None if invalid format

    Examples:
        >>> normalize_issn("12345678")
        '1234-5678'
        >>> normalize_issn("1234-567x")
        '1234-567X'
        >>> normalize_issn("invalid")
    """
    if not issn:
        return None

    clean_issn = "".join(c for c in str(issn).upper() if c.isalnum())

    if len(clean_issn) != 8 or not clean_issn[:7].isdigit():
        return None

    if clean_issn[7] not in "0123456789X":
        return None

    return f"{clean_issn[:4]}-{clean_issn[4:]}"
