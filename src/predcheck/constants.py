# SPDX-License-Identifier: MIT
"""Constants used throughout the reference credibility checker.

This module centralizes:

- **Evidence weights**: points contributed by each watchlist family
- **Risk thresholds**: score boundaries for the five risk bands
- **Matching limits**: pre-filter cut-off and matcher confidence threshold
- **Batching**: batch size and inter-batch pacing for third-party rate limits
- **Default service settings**: endpoints, timeouts and polite-pool email
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class EvidenceWeights:
    """Points added to the predatory score per matched evidence family."""

    bealls: int = 40
    stop_predatory: int = 35
    hijacked: int = 20
    scopus_discontinued: int = 15


EVIDENCE_WEIGHTS = EvidenceWeights()

MAX_PREDATORY_SCORE: int = 100


@dataclass(frozen=True)
class RiskThresholds:
    """Lower bounds (inclusive) of each risk band."""

    very_high: int = 80
    high: int = 60
    moderate: int = 40
    low: int = 20


RISK_THRESHOLDS = RiskThresholds()

# A reference counts as high risk for the aggregate at this score
HIGH_RISK_SCORE: int = 60

# Lexical pre-filter
PREFILTER_EXACT_SIMILARITY: int = 100
PREFILTER_SUBSTRING_SIMILARITY: int = 80
PREFILTER_WORD_OVERLAP_SCALE: int = 70
PREFILTER_MIN_SIMILARITY: int = 50  # Exclusive
DEFAULT_PREFILTER_TOP_N: int = 3

# Semantic matcher
DEFAULT_MATCH_THRESHOLD: int = 95
DEFAULT_MATCHER_MODEL: str = "llama-3.3-70b-versatile"
DEFAULT_MATCHER_BASE_URL: str = "https://api.groq.com/openai/v1"
MATCHER_TEMPERATURE: float = 0.1
MATCHER_MAX_TOKENS: int = 200

# Batch orchestration
DEFAULT_BATCH_SIZE: int = 10
DEFAULT_BATCH_DELAY_SECONDS: float = 0.5

# External services
DEFAULT_CONTACT_EMAIL: str = "noreply@predcheck.org"
DEFAULT_SERVICE_TIMEOUT: int = 15
DEFAULT_MATCHER_TIMEOUT: int = 20
DEFAULT_WATCHLIST_TIMEOUT: int = 10
OPENALEX_BASE_URL: str = "https://api.openalex.org"
OPENALEX_BATCH_SIZE: int = 50
OPENALEX_BATCH_DELAY_SECONDS: float = 0.1
OPENALEX_SEARCH_LIMIT: int = 10
CROSSREF_BASE_URL: str = "https://api.crossref.org"
PUBMED_EUTILS_BASE_URL: str = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
PUBMED_ARTICLE_URL: str = "https://pubmed.ncbi.nlm.nih.gov"
DOI_RESOLVER_URL: str = "https://doi.org"

# Default output format
DEFAULT_OUTPUT_FORMAT: str = "text"
