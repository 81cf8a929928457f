# SPDX-License-Identifier: MIT
"""Batch orchestration of retraction checks and predatory scoring."""

import asyncio
import time
from collections.abc import Sequence

from .constants import DEFAULT_BATCH_DELAY_SECONDS, DEFAULT_BATCH_SIZE, HIGH_RISK_SCORE
from .enums import ScoreStatus
from .exceptions import PersistenceError, ProviderUnavailableError
from .logging_config import get_detail_logger, get_status_logger
from .models import (
    AnalysisAggregate,
    Reference,
    RetractionStatus,
    RiskSummary,
    ScoredReference,
    ScoringResult,
)
from .protocols import ReferenceProvider, ResultSink
from .retraction_resolver import RetractionResolver
from .risk_classifier import classify, retracted_assessment
from .scorer import PredatoryScorer


detail_logger = get_detail_logger()
status_logger = get_status_logger()


class BatchOrchestrator:
    """Drives the per-reference pipeline across a whole reference list.

    References are processed in fixed-size batches. Within a batch every
    reference runs concurrently; batches run one after another with a short
    pause in between to respect third-party rate limits. Results keep the
    order of the input list.

    Examples:
        >>> orchestrator = BatchOrchestrator(resolver, scorer, result_sink=store)
        >>> aggregate = await orchestrator.analyze(references, input_id="10.1234/x")
        >>> aggregate.summary.total == aggregate.total_references
        True
    """

    def __init__(
        self,
        resolver: RetractionResolver,
        scorer: PredatoryScorer,
        result_sink: ResultSink | None = None,
        provider: ReferenceProvider | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY_SECONDS,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.resolver = resolver
        self.scorer = scorer
        self.result_sink = result_sink
        self.provider = provider
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    async def analyze_work(
        self, work_id: str, deadline: float | None = None
    ) -> AnalysisAggregate:
        """Fetch the references of ``work_id`` and analyze them.

        Raises:
            ProviderUnavailableError: If no provider is configured or it yields
                no references
        """
        if self.provider is None:
            raise ProviderUnavailableError("No reference provider configured")

        status_logger.info(f"Fetching references for {work_id}")
        references = await self.provider.fetch_references(work_id)
        return await self.analyze(references, input_id=work_id, deadline=deadline)

    async def analyze(
        self,
        references: Sequence[Reference],
        input_id: str = "",
        deadline: float | None = None,
    ) -> AnalysisAggregate:
        """Analyze every reference and assemble the aggregate.

        Args:
            references: References in citation order
            input_id: Identifier of the citing work
            deadline: Seconds after which no new batch is started; references
                not yet scheduled are recorded as unscored

        Returns:
            AnalysisAggregate, persisted through the result sink when one is set

        Raises:
            ProviderUnavailableError: If ``references`` is empty
        """
        if not references:
            raise ProviderUnavailableError(
                f"No references found for {input_id or 'input'}"
            )

        start_time = time.monotonic()
        deadline_at = start_time + deadline if deadline is not None else None
        total = len(references)
        total_batches = (total + self.batch_size - 1) // self.batch_size

        results: list[ScoredReference | None] = [None] * total
        summary = RiskSummary()
        high_risk_count = 0
        retracted_count = 0
        degraded_count = 0
        unscored_count = 0
        is_partial = False

        status_logger.info(f"Scoring {total} references in {total_batches} batches")

        for batch_number, batch_start in enumerate(range(0, total, self.batch_size), 1):
            if deadline_at is not None and time.monotonic() >= deadline_at:
                is_partial = True
                status_logger.warning(
                    f"Deadline reached; {total - batch_start} references left unscored"
                )
                for index in range(batch_start, total):
                    results[index] = _unscored(references[index])
                break

            batch = references[batch_start : batch_start + self.batch_size]
            status_logger.info(
                f"Processing batch {batch_number}/{total_batches} ({len(batch)} references)"
            )

            batch_results = await asyncio.gather(
                *(
                    self._process_reference(reference, batch_start + offset, total)
                    for offset, reference in enumerate(batch)
                )
            )

            for offset, scored in enumerate(batch_results):
                results[batch_start + offset] = scored
                if scored.score.predatory_score >= HIGH_RISK_SCORE:
                    high_risk_count += 1
                if scored.retraction is not None and scored.retraction.is_retracted:
                    retracted_count += 1
                if scored.status == ScoreStatus.DEGRADED:
                    degraded_count += 1
                summary.add(scored.risk.level)

            if batch_number < total_batches:
                await asyncio.sleep(self.batch_delay)

        scored_references: list[ScoredReference] = []
        for scored in results:
            if scored is None:
                continue
            if scored.status == ScoreStatus.UNSCORED:
                unscored_count += 1
                summary.add(scored.risk.level)
            scored_references.append(scored)

        aggregate = AnalysisAggregate(
            input_id=input_id,
            total_references=total,
            high_risk_count=high_risk_count,
            retracted_count=retracted_count,
            scored_references=scored_references,
            summary=summary,
            unscored_count=unscored_count,
            degraded_count=degraded_count,
            is_partial=is_partial,
            processing_time=time.monotonic() - start_time,
        )

        status_logger.info(
            f"Analysis complete: {total} references, {high_risk_count} high risk, "
            f"{retracted_count} retracted"
        )
        return await self._persist(aggregate)

    async def _process_reference(
        self, reference: Reference, index: int, total: int
    ) -> ScoredReference:
        """Analyze one reference; failures degrade it instead of aborting the run."""
        detail_logger.debug(f"[{index + 1}/{total}] {(reference.title or '')[:50]}")
        try:
            return await self._analyze_reference(reference)
        except Exception as e:
            detail_logger.exception(f"Error analyzing reference {index + 1}: {e}")
            status_logger.warning(f"    Reference {index + 1} degraded: {e}")
            return ScoredReference(
                reference=reference,
                score=ScoringResult(
                    details=[f"Analysis failed for this reference: {e}"],
                ),
                risk=classify(0),
                status=ScoreStatus.DEGRADED,
            )

    async def _analyze_reference(self, reference: Reference) -> ScoredReference:
        retraction: RetractionStatus | None = None
        if reference.doi:
            retraction = await self.resolver.resolve(reference.doi)
            if retraction.is_retracted:
                status_logger.warning(
                    f"    RETRACTED: {reference.doi} "
                    f"({', '.join(retraction.retraction_source)})"
                )
                return ScoredReference(
                    reference=reference,
                    score=_retraction_score(retraction),
                    risk=retracted_assessment(),
                    retraction=retraction,
                )

        score = await self.scorer.score(
            reference.venue_name,
            issn=reference.primary_issn,
            publisher=reference.publisher,
        )
        if retraction is not None and retraction.unavailable_sources:
            score = score.model_copy(
                update={
                    "unavailable_sources": score.unavailable_sources
                    + retraction.unavailable_sources,
                    "details": score.details
                    + [
                        "Retraction check incomplete: "
                        f"{', '.join(retraction.unavailable_sources)} unavailable."
                    ],
                }
            )

        return ScoredReference(
            reference=reference,
            score=score,
            risk=classify(score.predatory_score),
            retraction=retraction,
        )

    async def _persist(self, aggregate: AnalysisAggregate) -> AnalysisAggregate:
        if self.result_sink is None:
            return aggregate

        try:
            analysis_id = await self.result_sink.persist_analysis(aggregate)
        except PersistenceError as e:
            status_logger.warning(f"Analysis could not be saved: {e}")
            detail_logger.exception(f"Persistence failed for {aggregate.input_id}")
            return aggregate.model_copy(
                update={"persisted": False, "persistence_error": str(e)}
            )

        detail_logger.debug(f"Analysis stored as {analysis_id}")
        return aggregate.model_copy(update={"analysis_id": analysis_id, "persisted": True})

    @staticmethod
    def get_exit_code(aggregate: AnalysisAggregate) -> int:
        """Return 1 if high-risk or retracted references were found, else 0."""
        return 1 if (aggregate.high_risk_count > 0 or aggregate.retracted_count > 0) else 0


def _retraction_score(retraction: RetractionStatus) -> ScoringResult:
    """Synthesize the score of a retracted reference; the scorer is not consulted."""
    details = [
        f"RETRACTED via {', '.join(retraction.retraction_source).upper()}",
        retraction.retraction_reason or "No reason provided",
    ]
    if retraction.retraction_notice:
        details.append(f"Notice: {retraction.retraction_notice}")

    return ScoringResult(
        predatory_score=100,
        evidence_sources=[f"retraction-{source}" for source in retraction.retraction_source],
        match_confidence=100,
        details=details,
        unavailable_sources=list(retraction.unavailable_sources),
    )


def _unscored(reference: Reference) -> ScoredReference:
    return ScoredReference(
        reference=reference,
        score=ScoringResult(
            details=["Not analyzed: the analysis deadline passed before this reference."]
        ),
        risk=classify(0),
        status=ScoreStatus.UNSCORED,
    )
