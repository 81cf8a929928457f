# SPDX-License-Identifier: MIT
"""Enums for the reference credibility checker."""

from enum import Enum


class RiskLevel(str, Enum):
    """Discrete risk bands for a scored reference."""

    MINIMAL = "minimal"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very-high"


class WatchlistCategory(str, Enum):
    """Categories held by the watchlist store."""

    BEALLS_PUBLISHERS = "bealls_publishers"
    STOP_PREDATORY_PUBLISHERS = "stop_predatory_publishers"
    PREDATORY_JOURNALS = "predatory_journals"
    HIJACKED_JOURNALS = "hijacked_journals"
    DISCONTINUED_ISSNS = "discontinued_issns"


class ScoreStatus(str, Enum):
    """How completely a reference was analyzed."""

    SCORED = "scored"
    DEGRADED = "degraded"  # Analysis raised; best-effort result recorded
    UNSCORED = "unscored"  # Deadline hit before the reference was scheduled


class RegistryName(str, Enum):
    """Retraction registries consulted by the resolver."""

    CROSSREF = "crossref"
    PUBMED = "pubmed"
