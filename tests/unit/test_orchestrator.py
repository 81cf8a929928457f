# SPDX-License-Identifier: MIT
"""Tests for the batch orchestrator."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from predcheck.enums import RiskLevel, ScoreStatus
from predcheck.exceptions import PersistenceError, ProviderUnavailableError
from predcheck.models import (
    AnalysisAggregate,
    Reference,
    RetractionStatus,
    RiskSummary,
    ScoringResult,
)
from predcheck.orchestrator import BatchOrchestrator
from predcheck.retraction_resolver import RetractionResolver
from predcheck.scorer import PredatoryScorer


RETRACTED = RetractionStatus(
    is_retracted=True,
    retraction_source=["crossref", "pubmed"],
    retraction_reason="Data fabrication",
    retraction_notice="DOI: 10.1234/notice",
)


def _references(count, with_doi=True):
    return [
        Reference(
            doi=f"10.1234/ref.{i}" if with_doi else None,
            title=f"Reference {i}",
            venue_name=f"Venue {i}",
            issns=[f"0000-000{i % 10}"],
            publisher=f"Publisher {i}",
        )
        for i in range(count)
    ]


def _resolver(status=None):
    resolver = Mock()
    resolver.resolve = AsyncMock(return_value=status or RetractionStatus())
    return resolver


def _scorer(scores=None, default=0):
    """Scorer returning a score per venue name."""
    scores = scores or {}
    scorer = Mock()

    async def score(journal_name, issn=None, publisher=None):
        return ScoringResult(predatory_score=scores.get(journal_name, default))

    scorer.score = AsyncMock(side_effect=score)
    return scorer


class TestBatchOrchestrator:
    """Test cases for BatchOrchestrator.analyze."""

    def test_rejects_non_positive_batch_size(self):
        with pytest.raises(ValueError, match="batch_size"):
            BatchOrchestrator(_resolver(), _scorer(), batch_size=0)

    @pytest.mark.asyncio
    async def test_empty_input(self):
        orchestrator = BatchOrchestrator(_resolver(), _scorer(), batch_delay=0)

        with pytest.raises(ProviderUnavailableError, match="No references"):
            await orchestrator.analyze([], input_id="W1")

    @pytest.mark.asyncio
    async def test_retraction_short_circuits_scoring(self):
        scorer = _scorer()
        orchestrator = BatchOrchestrator(_resolver(RETRACTED), scorer, batch_delay=0)

        aggregate = await orchestrator.analyze(_references(1), input_id="W1")

        scorer.score.assert_not_called()
        scored = aggregate.scored_references[0]
        assert scored.score.predatory_score == 100
        assert scored.score.match_confidence == 100
        assert scored.score.score_breakdown == {}
        assert scored.score.evidence_sources == ["retraction-crossref", "retraction-pubmed"]
        assert scored.score.details[0] == "RETRACTED via CROSSREF, PUBMED"
        assert "Notice: DOI: 10.1234/notice" in scored.score.details
        assert scored.risk.label == "RETRACTED"
        assert scored.retraction == RETRACTED
        assert aggregate.retracted_count == 1
        assert aggregate.high_risk_count == 1
        assert aggregate.summary.very_high_risk == 1

    @pytest.mark.asyncio
    async def test_reference_without_doi_skips_resolver(self):
        resolver = _resolver(RETRACTED)
        scorer = _scorer(default=40)
        orchestrator = BatchOrchestrator(resolver, scorer, batch_delay=0)

        aggregate = await orchestrator.analyze(_references(1, with_doi=False))

        resolver.resolve.assert_not_called()
        scorer.score.assert_awaited_once_with(
            "Venue 0", issn="0000-0000", publisher="Publisher 0"
        )
        assert aggregate.scored_references[0].retraction is None
        assert aggregate.scored_references[0].risk.level == RiskLevel.MODERATE

    @pytest.mark.asyncio
    async def test_results_keep_input_order(self):
        """Later references finishing first still land at their own index."""
        references = _references(5)
        scorer = Mock()

        async def slow_first(journal_name, issn=None, publisher=None):
            index = int(journal_name.rsplit(" ", 1)[-1])
            await asyncio.sleep(0.01 * (5 - index))
            return ScoringResult(predatory_score=index * 20)

        scorer.score = AsyncMock(side_effect=slow_first)
        orchestrator = BatchOrchestrator(_resolver(), scorer, batch_delay=0)

        aggregate = await orchestrator.analyze(references)

        assert [s.reference for s in aggregate.scored_references] == references
        assert [s.score.predatory_score for s in aggregate.scored_references] == [
            0,
            20,
            40,
            60,
            80,
        ]

    @pytest.mark.asyncio
    async def test_risk_histogram_and_counts(self):
        scores = {"Venue 0": 0, "Venue 1": 20, "Venue 2": 40, "Venue 3": 60, "Venue 4": 85}
        orchestrator = BatchOrchestrator(
            _resolver(), _scorer(scores), batch_size=2, batch_delay=0
        )

        aggregate = await orchestrator.analyze(_references(5), input_id="W1")

        assert aggregate.summary == RiskSummary(
            very_high_risk=1, high_risk=1, moderate_risk=1, low_risk=1, minimal_risk=1
        )
        assert aggregate.total_references == 5
        assert aggregate.high_risk_count == 2
        assert aggregate.retracted_count == 0
        assert aggregate.is_partial is False
        assert aggregate.processing_time >= 0

    @pytest.mark.asyncio
    async def test_batches_bound_concurrency(self):
        active = 0
        peak = 0
        scorer = Mock()

        async def tracked(journal_name, issn=None, publisher=None):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return ScoringResult()

        scorer.score = AsyncMock(side_effect=tracked)
        orchestrator = BatchOrchestrator(_resolver(), scorer, batch_size=3, batch_delay=0)

        await orchestrator.analyze(_references(7))

        assert peak == 3
        assert scorer.score.await_count == 7

    @pytest.mark.asyncio
    async def test_pause_between_batches(self):
        orchestrator = BatchOrchestrator(
            _resolver(), _scorer(), batch_size=2, batch_delay=0.05
        )

        aggregate = await orchestrator.analyze(_references(5))

        # Three batches, two pauses
        assert aggregate.processing_time >= 0.09

    @pytest.mark.asyncio
    async def test_deadline_leaves_rest_unscored(self):
        scorer = Mock()

        async def slow(journal_name, issn=None, publisher=None):
            await asyncio.sleep(0.05)
            return ScoringResult(predatory_score=60)

        scorer.score = AsyncMock(side_effect=slow)
        orchestrator = BatchOrchestrator(_resolver(), scorer, batch_size=2, batch_delay=0)

        aggregate = await orchestrator.analyze(_references(5), deadline=0.01)

        assert aggregate.is_partial is True
        assert aggregate.unscored_count == 3
        assert aggregate.high_risk_count == 2
        statuses = [s.status for s in aggregate.scored_references]
        assert statuses == [ScoreStatus.SCORED] * 2 + [ScoreStatus.UNSCORED] * 3
        assert aggregate.summary.high_risk == 2
        assert aggregate.summary.minimal_risk == 3
        assert aggregate.summary.total == 5

    @pytest.mark.asyncio
    async def test_failure_degrades_single_reference(self):
        scorer = Mock()

        async def flaky(journal_name, issn=None, publisher=None):
            if journal_name == "Venue 1":
                raise RuntimeError("scorer exploded")
            return ScoringResult(predatory_score=20)

        scorer.score = AsyncMock(side_effect=flaky)
        orchestrator = BatchOrchestrator(_resolver(), scorer, batch_delay=0)

        aggregate = await orchestrator.analyze(_references(3))

        degraded = aggregate.scored_references[1]
        assert degraded.status == ScoreStatus.DEGRADED
        assert degraded.score.predatory_score == 0
        assert "scorer exploded" in degraded.score.details[0]
        assert aggregate.degraded_count == 1
        assert aggregate.summary.low_risk == 2
        assert aggregate.summary.minimal_risk == 1

    @pytest.mark.asyncio
    async def test_registry_outage_is_reported_on_score(self):
        resolver = _resolver(RetractionStatus(unavailable_sources=["pubmed"]))
        scorer = Mock()
        scorer.score = AsyncMock(
            return_value=ScoringResult(unavailable_sources=["matcher"])
        )
        orchestrator = BatchOrchestrator(resolver, scorer, batch_delay=0)

        aggregate = await orchestrator.analyze(_references(1))

        score = aggregate.scored_references[0].score
        assert score.unavailable_sources == ["matcher", "pubmed"]
        assert score.details[-1] == "Retraction check incomplete: pubmed unavailable."

    @pytest.mark.asyncio
    async def test_persists_through_sink(self):
        sink = Mock()
        sink.persist_analysis = AsyncMock(return_value="abc123")
        orchestrator = BatchOrchestrator(
            _resolver(), _scorer(), result_sink=sink, batch_delay=0
        )

        aggregate = await orchestrator.analyze(_references(2), input_id="W1")

        sink.persist_analysis.assert_awaited_once()
        assert aggregate.analysis_id == "abc123"
        assert aggregate.persisted is True

    @pytest.mark.asyncio
    async def test_persistence_failure_keeps_result(self):
        sink = Mock()
        sink.persist_analysis = AsyncMock(side_effect=PersistenceError("disk full"))
        orchestrator = BatchOrchestrator(
            _resolver(), _scorer(default=80), result_sink=sink, batch_delay=0
        )

        aggregate = await orchestrator.analyze(_references(2), input_id="W1")

        assert aggregate.persisted is False
        assert aggregate.persistence_error == "disk full"
        assert aggregate.analysis_id is None
        assert aggregate.high_risk_count == 2

    @pytest.mark.asyncio
    async def test_analyze_work_fetches_references(self):
        provider = Mock()
        provider.fetch_references = AsyncMock(return_value=_references(2))
        orchestrator = BatchOrchestrator(
            _resolver(), _scorer(), provider=provider, batch_delay=0
        )

        aggregate = await orchestrator.analyze_work("10.1234/citing")

        provider.fetch_references.assert_awaited_once_with("10.1234/citing")
        assert aggregate.input_id == "10.1234/citing"
        assert aggregate.total_references == 2

    @pytest.mark.asyncio
    async def test_analyze_work_without_provider(self):
        orchestrator = BatchOrchestrator(_resolver(), _scorer(), batch_delay=0)

        with pytest.raises(ProviderUnavailableError, match="No reference provider"):
            await orchestrator.analyze_work("W1")

    @pytest.mark.asyncio
    async def test_registry_crash_still_scores_reference(
        self, watchlists, store_factory, matcher_factory, registry_factory
    ):
        publisher = "OMICS Publishing Group"
        resolver = RetractionResolver(
            registry_factory("crossref", error=KeyError("message")),
            registry_factory("pubmed"),
        )
        scorer = PredatoryScorer(
            store_factory(watchlists), matcher_factory({(publisher, publisher): 97})
        )
        orchestrator = BatchOrchestrator(resolver, scorer, batch_delay=0)
        reference = Reference(
            doi="10.1234/ref", venue_name="Some Journal", publisher=publisher
        )

        aggregate = await orchestrator.analyze([reference])

        scored = aggregate.scored_references[0]
        assert scored.status == ScoreStatus.SCORED
        assert scored.score.predatory_score == 40
        assert scored.score.score_breakdown == {"bealls": 40}
        assert "crossref" in scored.score.unavailable_sources
        assert aggregate.degraded_count == 0


class TestGetExitCode:
    """Test cases for BatchOrchestrator.get_exit_code."""

    def _aggregate(self, high_risk=0, retracted=0):
        return AnalysisAggregate(
            input_id="W1",
            total_references=1,
            high_risk_count=high_risk,
            retracted_count=retracted,
            summary=RiskSummary(minimal_risk=1),
        )

    def test_clean(self):
        assert BatchOrchestrator.get_exit_code(self._aggregate()) == 0

    def test_high_risk(self):
        assert BatchOrchestrator.get_exit_code(self._aggregate(high_risk=1)) == 1

    def test_retracted(self):
        assert BatchOrchestrator.get_exit_code(self._aggregate(retracted=1)) == 1
