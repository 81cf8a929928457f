# SPDX-License-Identifier: MIT
"""Tests for the SQLite watchlist and analysis stores."""

import sqlite3
from unittest.mock import patch

import pytest

from predcheck.enums import RiskLevel, ScoreStatus, WatchlistCategory
from predcheck.exceptions import PersistenceError, WatchlistUnavailableError
from predcheck.models import (
    AnalysisAggregate,
    Reference,
    RetractionStatus,
    RiskSummary,
    ScoredReference,
    ScoringResult,
)
from predcheck.risk_classifier import classify, retracted_assessment
from predcheck.storage import AnalysisStore, SQLiteWatchlistStore
from predcheck.storage.connection_utils import get_configured_connection
from predcheck.storage.watchlist_store import parse_watchlist_row


@pytest.fixture
def watchlist_store(isolated_test_db):
    return SQLiteWatchlistStore(isolated_test_db)


@pytest.fixture
def analysis_store(isolated_test_db):
    return AnalysisStore(isolated_test_db)


def _aggregate():
    retraction = RetractionStatus(
        is_retracted=True,
        retraction_source=["crossref"],
        retraction_reason="Data fabrication",
    )
    scored = [
        ScoredReference(
            reference=Reference(doi="10.1234/a", title="Retracted paper"),
            score=ScoringResult(
                predatory_score=100,
                evidence_sources=["retraction-crossref"],
                match_confidence=100,
            ),
            risk=retracted_assessment(),
            retraction=retraction,
        ),
        ScoredReference(
            reference=Reference(title="Predatory venue", venue_name="J Adv Res"),
            score=ScoringResult(
                predatory_score=40,
                score_breakdown={"bealls": 40},
                evidence_sources=["bealls"],
                match_confidence=97,
                details=["PUBLISHER FOUND IN BEALL'S LIST"],
            ),
            risk=classify(40),
        ),
        ScoredReference(
            reference=Reference(title="Skipped"),
            score=ScoringResult(),
            risk=classify(0),
            status=ScoreStatus.UNSCORED,
        ),
    ]
    return AnalysisAggregate(
        input_id="10.1234/citing",
        total_references=3,
        high_risk_count=1,
        retracted_count=1,
        scored_references=scored,
        summary=RiskSummary(very_high_risk=1, moderate_risk=1, minimal_risk=1),
        unscored_count=1,
        is_partial=True,
        processing_time=1.5,
    )


class TestStoreBase:
    """Test cases for store initialization."""

    def test_creates_schema(self, isolated_test_db):
        SQLiteWatchlistStore(isolated_test_db)

        with get_configured_connection(isolated_test_db) as conn:
            tables = {
                row[0]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
            }
        assert {"watchlist_entries", "analyses", "scored_references"} <= tables

    def test_db_path_from_config(self, isolated_test_db):
        store = AnalysisStore()
        assert store.db_path == isolated_test_db

    def test_uncreatable_directory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")

        with pytest.raises(RuntimeError, match="Failed to initialize database"):
            AnalysisStore(blocker / "sub" / "db.sqlite")


class TestWatchlistStore:
    """Test cases for SQLiteWatchlistStore."""

    @pytest.mark.asyncio
    async def test_add_and_lookup(self, watchlist_store, entry_factory):
        category = WatchlistCategory.BEALLS_PUBLISHERS
        inserted = watchlist_store.add_entries(
            category,
            [
                entry_factory(category, "OMICS Publishing Group"),
                entry_factory(category, "omics publishing group!"),
                entry_factory(category, "Science Domain International"),
            ],
        )

        entries = await watchlist_store.lookup(category)

        assert inserted == 2
        assert [e.name for e in entries] == [
            "OMICS Publishing Group",
            "Science Domain International",
        ]
        assert await watchlist_store.lookup(WatchlistCategory.HIJACKED_JOURNALS) == []

    def test_add_rejects_other_category(self, watchlist_store, entry_factory):
        with pytest.raises(ValueError, match="belongs to"):
            watchlist_store.add_entries(
                WatchlistCategory.BEALLS_PUBLISHERS,
                [entry_factory(WatchlistCategory.PREDATORY_JOURNALS, "J")],
            )

    @pytest.mark.asyncio
    async def test_import_hijacked_csv(self, watchlist_store, tmp_path):
        csv_path = tmp_path / "hijacked.csv"
        csv_path.write_text(
            "Legitimate_Title,Fake URL,ISSN\n"
            "Journal of Real Science,http://fake.example,12345678\n"
            ",http://orphan.example,\n",
            encoding="utf-8",
        )

        inserted = watchlist_store.import_csv(
            WatchlistCategory.HIJACKED_JOURNALS, csv_path
        )
        entries = await watchlist_store.lookup(WatchlistCategory.HIJACKED_JOURNALS)

        assert inserted == 1
        assert entries[0].name == "Journal of Real Science"
        assert entries[0].website == "http://fake.example"
        assert entries[0].issn == "1234-5678"
        assert entries[0].source == "stop-predatory-journals"

    @pytest.mark.asyncio
    async def test_import_discontinued_csv_with_bom(self, watchlist_store, tmp_path):
        csv_path = tmp_path / "discontinued.csv"
        csv_path.write_text(
            "\ufefftitle,issn,year,reason\n"
            "Old Journal,1234-5678,2019,Publication concerns\n"
            "Broken,not-an-issn,2020,\n",
            encoding="utf-8",
        )

        inserted = watchlist_store.import_csv(
            WatchlistCategory.DISCONTINUED_ISSNS, csv_path, source="scopus-2024"
        )
        entries = await watchlist_store.lookup(WatchlistCategory.DISCONTINUED_ISSNS)

        assert inserted == 1
        assert entries[0].issn == "1234-5678"
        assert entries[0].source == "scopus-2024"
        assert entries[0].metadata == {
            "discontinued_year": "2019",
            "discontinued_reason": "Publication concerns",
        }

    def test_import_missing_file(self, watchlist_store, tmp_path):
        with pytest.raises(ValueError, match="does not exist"):
            watchlist_store.import_csv(
                WatchlistCategory.BEALLS_PUBLISHERS, tmp_path / "missing.csv"
            )

    def test_count_entries(self, watchlist_store, entry_factory):
        watchlist_store.add_entries(
            WatchlistCategory.PREDATORY_JOURNALS,
            [entry_factory(WatchlistCategory.PREDATORY_JOURNALS, "Journal A")],
        )

        counts = watchlist_store.count_entries()

        assert counts["predatory_journals"] == 1
        assert counts["bealls_publishers"] == 0
        assert set(counts) == {c.value for c in WatchlistCategory}

    @pytest.mark.asyncio
    async def test_lookup_failure(self, watchlist_store):
        with patch.object(
            watchlist_store, "_lookup_sync", side_effect=sqlite3.OperationalError("locked")
        ):
            with pytest.raises(WatchlistUnavailableError, match="locked"):
                await watchlist_store.lookup(WatchlistCategory.BEALLS_PUBLISHERS)

    def test_parse_publisher_row(self):
        entry = parse_watchlist_row(
            WatchlistCategory.BEALLS_PUBLISHERS,
            {"name": "OMICS", "url": "http://omics.example", "abbr": "OMICS"},
            "bealls",
        )

        assert entry.name == "OMICS"
        assert entry.website == "http://omics.example"
        assert entry.metadata == {"abbreviation": "OMICS"}

    def test_parse_row_without_name(self):
        assert (
            parse_watchlist_row(
                WatchlistCategory.PREDATORY_JOURNALS, {"url": "http://x"}, "s"
            )
            is None
        )


class TestAnalysisStore:
    """Test cases for AnalysisStore."""

    @pytest.mark.asyncio
    async def test_round_trip(self, analysis_store):
        aggregate = _aggregate()

        analysis_id = await analysis_store.persist_analysis(aggregate)
        loaded = analysis_store.get_analysis(analysis_id)

        assert loaded.analysis_id == analysis_id
        assert loaded.persisted is True
        assert loaded.input_id == "10.1234/citing"
        assert loaded.is_partial is True
        assert loaded.unscored_count == 1
        assert loaded.summary == aggregate.summary
        assert [s.reference.title for s in loaded.scored_references] == [
            "Retracted paper",
            "Predatory venue",
            "Skipped",
        ]
        assert loaded.scored_references[0].risk.label == "RETRACTED"
        assert loaded.scored_references[0].retraction.retraction_reason == "Data fabrication"
        assert loaded.scored_references[1].score.score_breakdown == {"bealls": 40}
        assert loaded.scored_references[1].risk.level == RiskLevel.MODERATE
        assert loaded.scored_references[2].status == ScoreStatus.UNSCORED

    def test_unknown_analysis(self, analysis_store):
        assert analysis_store.get_analysis("missing") is None

    @pytest.mark.asyncio
    async def test_list_analyses(self, analysis_store):
        first = await analysis_store.persist_analysis(_aggregate())

        analyses = analysis_store.list_analyses()

        assert [a["analysis_id"] for a in analyses] == [first]
        assert analyses[0]["total_references"] == 3
        assert analyses[0]["is_partial"] is True
        assert analyses[0]["summary"]["very_high_risk"] == 1

    @pytest.mark.asyncio
    async def test_persist_failure(self, analysis_store):
        with patch.object(
            analysis_store, "_persist_sync", side_effect=sqlite3.OperationalError("disk full")
        ):
            with pytest.raises(PersistenceError, match="disk full"):
                await analysis_store.persist_analysis(_aggregate())
