# SPDX-License-Identifier: MIT
"""Report formatting for analysis results."""

import json

from .enums import ScoreStatus
from .models import AnalysisAggregate, ScoredReference, WorkSummary


class OutputFormatter:
    """Formats analysis aggregates as text reports or JSON."""

    def format_text_output(self, aggregate: AnalysisAggregate, verbose: bool) -> str:
        """Format an analysis as a text report.

        Args:
            aggregate: Analysis to format
            verbose: Whether to list every reference with its explanation

        Returns:
            Formatted text output string
        """
        lines = []

        lines.append("Reference Credibility Analysis")
        lines.append("=" * 40)
        lines.append(f"Input: {aggregate.input_id}")
        if aggregate.analysis_id:
            lines.append(f"Analysis ID: {aggregate.analysis_id}")
        lines.append(f"Total references: {aggregate.total_references}")
        lines.append(self._format_share("High risk", aggregate.high_risk_count, aggregate))
        lines.append(f"Retracted: {aggregate.retracted_count}")
        lines.append(f"Processing time: {aggregate.processing_time:.2f}s")

        coverage = self._format_coverage(aggregate)
        if coverage:
            lines.append(coverage)

        lines.append(self._format_distribution(aggregate))

        retractions = self._format_retractions(aggregate)
        if retractions:
            lines.append(retractions)

        if verbose:
            lines.append("\nDetailed Results:")
            lines.append("-" * 40)
            for position, scored in enumerate(aggregate.scored_references, 1):
                lines.append(self._format_reference(position, scored))

        lines.append("")
        if aggregate.high_risk_count > 0 or aggregate.retracted_count > 0:
            warnings = []
            if aggregate.high_risk_count > 0:
                warnings.append("High-risk references detected")
            if aggregate.retracted_count > 0:
                warnings.append("Retracted references detected")
            lines.append(f"WARNING: {', '.join(warnings)}!")
        else:
            lines.append("No high-risk or retracted references detected")

        return "\n".join(lines)

    def format_json_output(self, aggregate: AnalysisAggregate) -> str:
        """Serialize an analysis as indented JSON."""
        return json.dumps(aggregate.model_dump(mode="json"), indent=2)

    def format_search_results(self, works: list[WorkSummary]) -> str:
        """Format search hits, one block per work."""
        if not works:
            return "No matching works found."

        lines = []
        for work in works:
            year = work.publication_year or "n.d."
            lines.append(f"{work.title} ({year})")
            if work.authors:
                lines.append(f"  Authors: {', '.join(work.authors)}")
            lines.append(f"  Journal: {work.journal}")
            if work.doi:
                lines.append(f"  DOI: {work.doi}")
            lines.append(f"  OpenAlex: {work.id}")
            lines.append(f"  Citations: {work.citation_count}")
        return "\n".join(lines)

    def _format_share(self, label: str, count: int, aggregate: AnalysisAggregate) -> str:
        percent = round(count / aggregate.total_references * 100) if aggregate.total_references else 0
        return f"{label}: {count} ({percent}%)"

    def _format_coverage(self, aggregate: AnalysisAggregate) -> str | None:
        """Describe incomplete coverage, or None when every reference was scored."""
        notes = []
        if aggregate.is_partial:
            notes.append(
                f"  Partial result: {aggregate.unscored_count} references were not "
                "analyzed before the deadline"
            )
        if aggregate.degraded_count:
            notes.append(
                f"  {aggregate.degraded_count} references could not be fully analyzed"
            )

        unavailable = sorted(
            {
                source
                for scored in aggregate.scored_references
                for source in scored.score.unavailable_sources
            }
        )
        if unavailable:
            notes.append(f"  Sources unavailable during analysis: {', '.join(unavailable)}")

        if not notes:
            return None
        return "\n".join(["\nCoverage:"] + notes)

    def _format_distribution(self, aggregate: AnalysisAggregate) -> str:
        summary = aggregate.summary
        return "\n".join(
            [
                "\nRisk Distribution:",
                f"  Very High: {summary.very_high_risk}",
                f"  High: {summary.high_risk}",
                f"  Moderate: {summary.moderate_risk}",
                f"  Low: {summary.low_risk}",
                f"  Minimal: {summary.minimal_risk}",
            ]
        )

    def _format_retractions(self, aggregate: AnalysisAggregate) -> str | None:
        retracted = [
            scored
            for scored in aggregate.scored_references
            if scored.retraction is not None and scored.retraction.is_retracted
        ]
        if not retracted:
            return None

        lines = ["\nRetracted References:"]
        for scored in retracted:
            retraction = scored.retraction
            assert retraction is not None
            lines.append(
                f"  {scored.reference.title or scored.reference.doi} "
                f"[{', '.join(retraction.retraction_source)}]"
            )
            if retraction.retraction_date:
                lines.append(f"    Date: {retraction.retraction_date}")
            if retraction.retraction_reason:
                lines.append(f"    Reason: {retraction.retraction_reason}")
            if retraction.notice_link:
                lines.append(f"    Notice: {retraction.notice_link}")
        return "\n".join(lines)

    def _format_reference(self, position: int, scored: ScoredReference) -> str:
        reference = scored.reference
        lines = [
            f"[{position}] {reference.title or 'Unknown title'}",
            f"    Journal: {reference.venue_name or 'Unknown'}"
            + (f" ({reference.publication_year})" if reference.publication_year else ""),
        ]
        if reference.doi:
            lines.append(f"    DOI: {reference.doi}")

        status = "" if scored.status == ScoreStatus.SCORED else f" [{scored.status.value}]"
        lines.append(
            f"    Risk: {scored.risk.label} "
            f"(score {scored.score.predatory_score}/100, "
            f"confidence {scored.score.match_confidence}%){status}"
        )
        if scored.score.evidence_sources:
            lines.append(f"    Evidence: {', '.join(scored.score.evidence_sources)}")
        for detail in scored.score.details:
            lines.append(f"    {detail}")
        return "\n".join(lines)


# Global formatter instance
output_formatter = OutputFormatter()
