# SPDX-License-Identifier: MIT
"""Core data models for the reference credibility checker."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import RiskLevel, ScoreStatus, WatchlistCategory
from .validation import normalize_doi


class Reference(BaseModel):
    """One cited work, as returned by the reference provider."""

    model_config = ConfigDict(frozen=True)

    doi: str | None = Field(None, description="Bare DOI of the cited work")
    title: str | None = Field(None, description="Title of the cited work")
    publication_year: int | None = Field(None, description="Publication year")
    venue_name: str | None = Field(None, description="Journal or venue name")
    issns: list[str] = Field(default_factory=list, description="Venue ISSNs")
    publisher: str | None = Field(None, description="Publisher name")
    authors: list[str] = Field(default_factory=list, description="Author names")
    openalex_id: str | None = Field(None, description="OpenAlex work identifier")

    @field_validator("doi", mode="before")
    @classmethod
    def clean_doi(cls, v: str | None) -> str | None:
        """Strip resolver prefixes; empty DOIs become None."""
        return normalize_doi(v) or None

    @property
    def primary_issn(self) -> str | None:
        return self.issns[0] if self.issns else None


class RetractionStatus(BaseModel):
    """Merged retraction verdict for a single DOI.

    ``unavailable_sources`` lists registries that could not be consulted. It
    describes coverage rather than evidence, so it may be set on an
    unretracted status.
    """

    is_retracted: bool = Field(False, description="Whether any registry confirmed")
    retraction_source: list[str] = Field(
        default_factory=list, description="Registries confirming the retraction"
    )
    retraction_date: str | None = Field(None, description="Date of retraction")
    retraction_reason: str | None = Field(None, description="Human-readable reason")
    retraction_notice: str | None = Field(None, description="Notice citation")
    notice_link: str | None = Field(None, description="Link to the notice")
    detailed_explanation: str | None = Field(
        None, description="Synthesized explanation"
    )
    unavailable_sources: list[str] = Field(
        default_factory=list, description="Registries that failed or timed out"
    )

    @model_validator(mode="after")
    def check_retraction_consistency(self) -> "RetractionStatus":
        if not self.is_retracted and (
            self.retraction_source
            or self.retraction_date
            or self.retraction_reason
            or self.retraction_notice
            or self.notice_link
            or self.detailed_explanation
        ):
            raise ValueError("An unretracted status cannot carry retraction details")
        if self.is_retracted and not self.retraction_source:
            raise ValueError("A retracted status must name at least one source")
        return self


class ScoringResult(BaseModel):
    """Predatory-publishing evidence for one reference."""

    predatory_score: int = Field(0, ge=0, le=100, description="Score 0-100")
    score_breakdown: dict[str, int] = Field(
        default_factory=dict, description="Points per triggered evidence family"
    )
    evidence_sources: list[str] = Field(
        default_factory=list, description="Ordered, unique evidence tags"
    )
    match_confidence: int = Field(
        0, ge=0, le=100, description="Mean confidence of matched checks"
    )
    details: list[str] = Field(
        default_factory=list, description="Human-readable explanation lines"
    )
    unavailable_sources: list[str] = Field(
        default_factory=list,
        description="Watchlists or services that could not be consulted",
    )


class RiskAssessment(BaseModel):
    """Presentation-ready risk band."""

    model_config = ConfigDict(frozen=True)

    level: RiskLevel
    label: str
    color: str
    description: str


class ScoredReference(BaseModel):
    """A reference together with its score, risk band and retraction status."""

    model_config = ConfigDict(frozen=True)

    reference: Reference
    score: ScoringResult
    risk: RiskAssessment
    retraction: RetractionStatus | None = None
    status: ScoreStatus = ScoreStatus.SCORED


class RiskSummary(BaseModel):
    """Five-bucket histogram of risk levels."""

    very_high_risk: int = 0
    high_risk: int = 0
    moderate_risk: int = 0
    low_risk: int = 0
    minimal_risk: int = 0

    def add(self, level: RiskLevel) -> None:
        """Increment the bucket for ``level``."""
        match level:
            case RiskLevel.VERY_HIGH:
                self.very_high_risk += 1
            case RiskLevel.HIGH:
                self.high_risk += 1
            case RiskLevel.MODERATE:
                self.moderate_risk += 1
            case RiskLevel.LOW:
                self.low_risk += 1
            case _:
                self.minimal_risk += 1

    @property
    def total(self) -> int:
        return (
            self.very_high_risk
            + self.high_risk
            + self.moderate_risk
            + self.low_risk
            + self.minimal_risk
        )


class AnalysisAggregate(BaseModel):
    """Result of analyzing every reference of one work."""

    analysis_id: str | None = Field(None, description="Identifier once persisted")
    input_id: str = Field(..., description="Work identifier that was analyzed")
    total_references: int = Field(..., ge=0, description="Number of references")
    high_risk_count: int = Field(0, description="References scoring 60 or more")
    retracted_count: int = Field(0, description="Retracted references")
    scored_references: list[ScoredReference] = Field(
        default_factory=list, description="Results in input order"
    )
    summary: RiskSummary = Field(default_factory=RiskSummary)
    unscored_count: int = Field(
        0, description="References skipped because the deadline passed"
    )
    degraded_count: int = Field(
        0, description="References whose analysis failed and fell back"
    )
    is_partial: bool = Field(False, description="Whether the deadline cut the run")
    persisted: bool = Field(False, description="Whether the result sink stored it")
    persistence_error: str | None = Field(None, description="Result sink failure")
    created_at: datetime = Field(default_factory=datetime.now)
    processing_time: float = Field(0.0, description="Total processing time in seconds")

    @model_validator(mode="after")
    def check_summary_total(self) -> "AnalysisAggregate":
        if self.summary.total != self.total_references:
            raise ValueError(
                f"Risk summary counts {self.summary.total} references, "
                f"expected {self.total_references}"
            )
        return self


class MatchResult(BaseModel):
    """Verdict from the semantic name matcher."""

    is_match: bool = False
    confidence: int = Field(0, ge=0, le=100)
    reasoning: str = ""


class WatchlistEntry(BaseModel):
    """One record of a watchlist category.

    ``name`` is the name compared against references: the publisher name, the
    predatory journal title, or, for hijacked journals, the legitimate title
    that is being impersonated.
    """

    model_config = ConfigDict(frozen=True)

    category: WatchlistCategory
    name: str = Field(..., min_length=1)
    source: str = Field(..., description="List the entry came from")
    issn: str | None = None
    website: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class WorkSummary(BaseModel):
    """Search hit describing a citable work."""

    id: str
    doi: str = ""
    title: str = "Unknown title"
    publication_year: int | None = None
    authors: list[str] = Field(default_factory=list)
    journal: str = "Unknown journal"
    citation_count: int = 0
