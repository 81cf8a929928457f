# SPDX-License-Identifier: MIT
"""SQLite storage for finished analyses."""

import asyncio
import json
import sqlite3
import uuid
from datetime import datetime
from typing import Any

from ..exceptions import PersistenceError
from ..logging_config import get_detail_logger
from ..models import (
    AnalysisAggregate,
    Reference,
    RetractionStatus,
    RiskAssessment,
    RiskSummary,
    ScoredReference,
    ScoringResult,
)
from .base import StoreBase
from .connection_utils import get_configured_connection


detail_logger = get_detail_logger()


class AnalysisStore(StoreBase):
    """Result sink that keeps every analysis with its per-reference results.

    Risk assessments are stored as computed and returned unchanged on reload,
    so a stored analysis reads back exactly as it was reported.
    """

    async def persist_analysis(self, aggregate: AnalysisAggregate) -> str:
        """Store ``aggregate`` and return the new analysis identifier.

        Raises:
            PersistenceError: If the database write fails
        """
        analysis_id = uuid.uuid4().hex
        try:
            await asyncio.to_thread(self._persist_sync, analysis_id, aggregate)
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(
                f"Failed to store analysis of {aggregate.input_id}: {e}",
                source_name="analysis_store",
            ) from e

        detail_logger.debug(f"Stored analysis {analysis_id} for {aggregate.input_id}")
        return analysis_id

    def _persist_sync(self, analysis_id: str, aggregate: AnalysisAggregate) -> None:
        with get_configured_connection(self.db_path) as conn:
            with conn:
                conn.execute(
                    """
                    INSERT INTO analyses
                        (id, input_id, total_references, high_risk_count,
                         retracted_count, unscored_count, degraded_count,
                         is_partial, summary, processing_time, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        analysis_id,
                        aggregate.input_id,
                        aggregate.total_references,
                        aggregate.high_risk_count,
                        aggregate.retracted_count,
                        aggregate.unscored_count,
                        aggregate.degraded_count,
                        aggregate.is_partial,
                        aggregate.summary.model_dump_json(),
                        aggregate.processing_time,
                        aggregate.created_at.isoformat(),
                    ),
                )
                conn.executemany(
                    """
                    INSERT INTO scored_references
                        (analysis_id, position, reference, score, risk,
                         risk_level, retraction, status)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            analysis_id,
                            position,
                            scored.reference.model_dump_json(),
                            scored.score.model_dump_json(),
                            scored.risk.model_dump_json(),
                            scored.risk.level.value,
                            scored.retraction.model_dump_json()
                            if scored.retraction is not None
                            else None,
                            scored.status.value,
                        )
                        for position, scored in enumerate(aggregate.scored_references)
                    ],
                )

    def get_analysis(self, analysis_id: str) -> AnalysisAggregate | None:
        """Reload a stored analysis, or None if the identifier is unknown."""
        with get_configured_connection(self.db_path, named_rows=True) as conn:
            row = conn.execute(
                "SELECT * FROM analyses WHERE id = ?", (analysis_id,)
            ).fetchone()
            if row is None:
                return None
            reference_rows = conn.execute(
                """
                SELECT reference, score, risk, retraction, status
                FROM scored_references
                WHERE analysis_id = ?
                ORDER BY position
                """,
                (analysis_id,),
            ).fetchall()

        scored_references = [
            ScoredReference(
                reference=Reference.model_validate_json(ref_row["reference"]),
                score=ScoringResult.model_validate_json(ref_row["score"]),
                risk=RiskAssessment.model_validate_json(ref_row["risk"]),
                retraction=RetractionStatus.model_validate_json(ref_row["retraction"])
                if ref_row["retraction"]
                else None,
                status=ref_row["status"],
            )
            for ref_row in reference_rows
        ]

        return AnalysisAggregate(
            analysis_id=row["id"],
            input_id=row["input_id"],
            total_references=row["total_references"],
            high_risk_count=row["high_risk_count"],
            retracted_count=row["retracted_count"],
            unscored_count=row["unscored_count"],
            degraded_count=row["degraded_count"],
            is_partial=bool(row["is_partial"]),
            summary=RiskSummary.model_validate_json(row["summary"]),
            scored_references=scored_references,
            persisted=True,
            created_at=datetime.fromisoformat(row["created_at"]),
            processing_time=row["processing_time"] or 0.0,
        )

    def list_analyses(self, limit: int = 20) -> list[dict[str, Any]]:
        """Return the most recent analyses, newest first, without their references."""
        with get_configured_connection(self.db_path, named_rows=True) as conn:
            rows = conn.execute(
                """
                SELECT id, input_id, total_references, high_risk_count,
                       retracted_count, is_partial, summary, created_at
                FROM analyses
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()

        return [
            {
                "analysis_id": row["id"],
                "input_id": row["input_id"],
                "total_references": row["total_references"],
                "high_risk_count": row["high_risk_count"],
                "retracted_count": row["retracted_count"],
                "is_partial": bool(row["is_partial"]),
                "summary": json.loads(row["summary"]),
                "created_at": row["created_at"],
            }
            for row in rows
        ]
