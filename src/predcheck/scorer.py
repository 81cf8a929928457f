# SPDX-License-Identifier: MIT
"""Predatory-publishing scorer combining five watchlist evidence families."""

import asyncio
from dataclasses import dataclass

import aiohttp

from .constants import (
    DEFAULT_MATCH_THRESHOLD,
    DEFAULT_MATCHER_TIMEOUT,
    DEFAULT_PREFILTER_TOP_N,
    DEFAULT_WATCHLIST_TIMEOUT,
    EVIDENCE_WEIGHTS,
    MAX_PREDATORY_SCORE,
)
from .enums import WatchlistCategory
from .exceptions import PredCheckError, WatchlistUnavailableError
from .logging_config import get_detail_logger
from .models import MatchResult, ScoringResult, WatchlistEntry
from .prefilter import prefilter_candidates
from .protocols import NameMatcher, WatchlistStore
from .validation import normalize_issn


detail_logger = get_detail_logger()

PUBLISHER_FIELD = "publisher"
JOURNAL_FIELD = "journal"


@dataclass(frozen=True)
class EvidenceCheck:
    """One name-matched evidence family.

    Points and the tag are added only when the key or tag is not already
    present, so two checks sharing a key share a single budget.
    """

    key: str
    category: WatchlistCategory
    weight: int
    tag: str
    field: str
    headline: str
    matched_label: str
    concerns: tuple[str, ...]
    skip_if_present: tuple[str, ...] = ()
    closing: str | None = None


EVIDENCE_CHECKS: tuple[EvidenceCheck, ...] = (
    EvidenceCheck(
        key="bealls",
        category=WatchlistCategory.BEALLS_PUBLISHERS,
        weight=EVIDENCE_WEIGHTS.bealls,
        tag="bealls",
        field=PUBLISHER_FIELD,
        headline="PUBLISHER FOUND IN BEALL'S LIST",
        matched_label="Matched Publisher",
        concerns=(
            "Beall's List is a curated database of predatory publishers and journals "
            "maintained by library science professionals. Publishers on this list have "
            "been identified as engaging in questionable practices such as:",
            "Lack of proper peer review processes",
            "Deceptive claims about journal metrics or indexing",
            "Aggressive email solicitation for submissions",
            "Charging high fees with minimal editorial oversight",
            "Publishing low-quality or scientifically questionable content",
        ),
    ),
    EvidenceCheck(
        key="stop_predatory",
        category=WatchlistCategory.STOP_PREDATORY_PUBLISHERS,
        weight=EVIDENCE_WEIGHTS.stop_predatory,
        tag="stop-predatory-journals",
        field=PUBLISHER_FIELD,
        headline="PUBLISHER FOUND IN STOP PREDATORY JOURNALS DATABASE",
        matched_label="Matched Publisher",
        concerns=(
            'The "Stop Predatory Journals" database is an independent watchdog resource '
            "that tracks publishers with predatory characteristics. Publishers in this "
            "database have been flagged for:",
            "Inadequate or non-existent peer review",
            "Misleading claims about impact factors or indexing status",
            "Lack of transparency in editorial boards and processes",
            "Exploitative business models focused on author fees",
            "Poor quality control and rapid acceptance rates",
        ),
        skip_if_present=("bealls",),
    ),
    EvidenceCheck(
        key="stop_predatory",
        category=WatchlistCategory.PREDATORY_JOURNALS,
        weight=EVIDENCE_WEIGHTS.stop_predatory,
        tag="stop-predatory-journals",
        field=JOURNAL_FIELD,
        headline="JOURNAL NAME FOUND IN PREDATORY JOURNAL DATABASE",
        matched_label="Matched Journal",
        concerns=(
            "This specific journal name appears in a curated list of predatory "
            "journals. Journals in this database have been flagged for:",
            "Operating with substandard peer review processes",
            "Making false or misleading claims about their reputation",
            "Prioritizing profit over scientific quality",
            "Lack of proper editorial oversight",
            "Accepting most submissions regardless of scientific merit",
        ),
        closing=(
            "Publishing in such journals may harm your academic reputation and the "
            "credibility of your research."
        ),
    ),
    EvidenceCheck(
        key="hijacked",
        category=WatchlistCategory.HIJACKED_JOURNALS,
        weight=EVIDENCE_WEIGHTS.hijacked,
        tag="hijacked",
        field=JOURNAL_FIELD,
        headline="WARNING: POTENTIAL HIJACKED JOURNAL DETECTED",
        matched_label="Legitimate Journal Name",
        concerns=(
            "Journal hijacking is a serious form of academic fraud where criminals "
            "create fake websites that impersonate legitimate, respected journals. "
            "These hijacked sites:",
            "Clone the appearance and branding of real journals",
            "Use similar or identical journal names and ISSNs",
            "Collect submission fees from unsuspecting researchers",
            "Provide fake acceptance letters and publication confirmations",
            "Never actually publish your work in the legitimate journal",
            "May publish your work on a fraudulent site, harming your reputation",
        ),
        closing=(
            "CRITICAL: Always verify you are submitting to the official journal "
            "website. Check the legitimate publisher's site directly."
        ),
    ),
)

DISCONTINUED_CONCERNS: tuple[str, ...] = (
    "Scopus is one of the world's largest abstract and citation databases of "
    "peer-reviewed literature. When Scopus discontinues coverage of a journal, it "
    "typically indicates:",
    "Publication concerns (irregularities, delays, or cessation)",
    "Quality issues that no longer meet Scopus standards",
    "Ethical concerns or policy violations",
    "Changes in editorial practices or ownership",
    "Loss of peer review integrity",
)


class PredatoryScorer:
    """Scores a journal against the predatory-publishing watchlists.

    Name-based families narrow each watchlist with the lexical pre-filter and
    confirm survivors with the semantic matcher, strongest candidate first.
    The discontinued-title family is an exact ISSN lookup.

    Watchlists are loaded on first use and kept for the lifetime of the
    scorer. The scorer holds no per-call state, so one instance may score
    many references concurrently.
    """

    def __init__(
        self,
        watchlist_store: WatchlistStore,
        matcher: NameMatcher,
        match_threshold: int = DEFAULT_MATCH_THRESHOLD,
        top_n: int = DEFAULT_PREFILTER_TOP_N,
        matcher_timeout: float = DEFAULT_MATCHER_TIMEOUT,
        watchlist_timeout: float = DEFAULT_WATCHLIST_TIMEOUT,
    ):
        self.watchlist_store = watchlist_store
        self.matcher = matcher
        self.match_threshold = match_threshold
        self.top_n = top_n
        self.matcher_timeout = matcher_timeout
        self.watchlist_timeout = watchlist_timeout
        self._watchlists: dict[WatchlistCategory, list[WatchlistEntry]] = {}
        self._issn_index: dict[str, WatchlistEntry] | None = None
        self._load_lock = asyncio.Lock()

    async def score(
        self,
        journal_name: str | None,
        issn: str | None = None,
        publisher: str | None = None,
    ) -> ScoringResult:
        """Score one journal; never raises for collaborator outages.

        Args:
            journal_name: Venue name of the reference
            issn: First ISSN of the venue
            publisher: Publisher name of the venue

        Returns:
            ScoringResult with the capped score and an explanation trail
        """
        result = ScoringResult()
        confidences: list[int] = []
        raw_score = 0

        detail_logger.debug(f"Scoring: {journal_name} (publisher: {publisher})")

        for check in EVIDENCE_CHECKS:
            if any(key in result.score_breakdown for key in check.skip_if_present):
                continue

            query = publisher if check.field == PUBLISHER_FIELD else journal_name
            if not query or not query.strip():
                continue

            entries = await self._load(check.category, result)
            if not entries:
                continue

            match = await self._confirm(check, query, entries, result)
            if match is None:
                continue

            entry, verdict = match
            if check.key not in result.score_breakdown:
                result.score_breakdown[check.key] = check.weight
                raw_score += check.weight
            if check.tag not in result.evidence_sources:
                result.evidence_sources.append(check.tag)
            result.details.extend(_match_details(check, entry, verdict))
            confidences.append(verdict.confidence)

        if issn:
            discontinued = await self._find_discontinued(issn, result)
            if discontinued is not None:
                result.score_breakdown["scopus_discontinued"] = (
                    EVIDENCE_WEIGHTS.scopus_discontinued
                )
                raw_score += EVIDENCE_WEIGHTS.scopus_discontinued
                result.evidence_sources.append("scopus-discontinued")
                result.details.extend(_discontinued_details(issn, discontinued))
                confidences.append(100)

        result.predatory_score = min(MAX_PREDATORY_SCORE, raw_score)
        result.match_confidence = (
            round(sum(confidences) / len(confidences)) if confidences else 0
        )

        detail_logger.debug(
            f"Final score for {journal_name}: {result.predatory_score}/100 "
            f"({result.match_confidence}% confidence)"
        )
        return result

    async def _load(
        self, category: WatchlistCategory, result: ScoringResult
    ) -> list[WatchlistEntry]:
        """Return a cached watchlist, recording an outage on the result."""
        cached = self._watchlists.get(category)
        if cached is not None:
            return cached

        async with self._load_lock:
            cached = self._watchlists.get(category)
            if cached is not None:
                return cached
            try:
                entries = await asyncio.wait_for(
                    self.watchlist_store.lookup(category),
                    timeout=self.watchlist_timeout,
                )
            except (WatchlistUnavailableError, asyncio.TimeoutError) as e:
                reason = str(e) or f"timed out after {self.watchlist_timeout}s"
                detail_logger.warning(f"Watchlist {category.value} unavailable: {reason}")
                _note_unavailable(
                    result,
                    category.value,
                    f"Watchlist '{category.value}' could not be consulted; "
                    "this check was skipped.",
                )
                return []

            self._watchlists[category] = entries
            detail_logger.debug(f"Loaded {len(entries)} entries for {category.value}")
            return entries

    async def _confirm(
        self,
        check: EvidenceCheck,
        query: str,
        entries: list[WatchlistEntry],
        result: ScoringResult,
    ) -> tuple[WatchlistEntry, MatchResult] | None:
        """Confirm pre-filtered candidates in order; first match wins."""
        candidates = prefilter_candidates(query, entries, self.top_n)
        detail_logger.debug(
            f"Pre-filtered {len(entries)} {check.category.value} entries "
            f"to {len(candidates)} candidates"
        )

        for candidate in candidates:
            entry = candidate.item
            try:
                verdict = await asyncio.wait_for(
                    self.matcher.match_names(query, entry.name, self.match_threshold),
                    timeout=self.matcher_timeout,
                )
            except asyncio.TimeoutError:
                detail_logger.warning(
                    f"Matcher timed out comparing '{query}' with '{entry.name}'"
                )
                _note_unavailable(
                    result, "matcher", "Name matcher unavailable; a candidate was not verified."
                )
                continue
            except (PredCheckError, aiohttp.ClientError) as e:
                detail_logger.warning(
                    f"Matcher failed comparing '{query}' with '{entry.name}': {e}"
                )
                _note_unavailable(
                    result, "matcher", "Name matcher unavailable; a candidate was not verified."
                )
                continue
            except Exception as e:
                detail_logger.exception(
                    f"Unexpected matcher error comparing '{query}' "
                    f"with '{entry.name}': {e}"
                )
                _note_unavailable(
                    result, "matcher", "Name matcher unavailable; a candidate was not verified."
                )
                continue

            if verdict.is_match:
                return entry, verdict
        return None

    async def _find_discontinued(
        self, issn: str, result: ScoringResult
    ) -> WatchlistEntry | None:
        normalized = normalize_issn(issn)
        if normalized is None:
            return None

        if self._issn_index is None:
            entries = await self._load(WatchlistCategory.DISCONTINUED_ISSNS, result)
            if not entries and WatchlistCategory.DISCONTINUED_ISSNS not in self._watchlists:
                return None
            index: dict[str, WatchlistEntry] = {}
            for entry in entries:
                entry_issn = normalize_issn(entry.issn) if entry.issn else None
                if entry_issn:
                    index.setdefault(entry_issn, entry)
            self._issn_index = index

        return self._issn_index.get(normalized)


def _note_unavailable(result: ScoringResult, source: str, message: str) -> None:
    if source not in result.unavailable_sources:
        result.unavailable_sources.append(source)
        result.details.append(message)


def _bullets(check_concerns: tuple[str, ...]) -> list[str]:
    intro, *points = check_concerns
    return [f"   {intro}"] + [f"   - {point}" for point in points]


def _match_details(
    check: EvidenceCheck, entry: WatchlistEntry, verdict: MatchResult
) -> list[str]:
    lines = [check.headline, f'   {check.matched_label}: "{entry.name}"']
    if check.category == WatchlistCategory.HIJACKED_JOURNALS:
        lines.append(f"   Fake Website: {entry.website or 'Unknown'}")
        lines.append(f"   Legitimate ISSN: {entry.issn or 'Unknown'}")
    lines.append(f"   AI Confidence: {verdict.confidence}%")
    lines.append(
        "   WHY THIS IS EXTREMELY CONCERNING:"
        if check.category == WatchlistCategory.HIJACKED_JOURNALS
        else "   WHY THIS IS CONCERNING:"
    )
    lines.extend(_bullets(check.concerns))
    if check.closing:
        lines.append(f"   {check.closing}")
    lines.append(f"   AI Matching Reasoning: {verdict.reasoning}")
    return lines


def _discontinued_details(issn: str, entry: WatchlistEntry) -> list[str]:
    year = entry.metadata.get("discontinued_year") or "Unknown"
    reason = entry.metadata.get("discontinued_reason") or "Not stated"
    lines = [
        "JOURNAL DISCONTINUED BY SCOPUS",
        f"   ISSN Match: {issn} (Exact Match - 100% Confidence)",
        f"   Discontinued Year: {year}",
        f"   Official Reason: {reason}",
        "   WHY THIS IS CONCERNING:",
    ]
    lines.extend(_bullets(DISCONTINUED_CONCERNS))
    lines.append(
        "   While not all discontinued journals are predatory, this is a significant "
        "red flag that warrants careful investigation before submission or citation."
    )
    return lines
