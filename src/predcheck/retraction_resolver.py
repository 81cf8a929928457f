# SPDX-License-Identifier: MIT
"""Article-level retraction checking that merges two independent registries."""

import asyncio

import aiohttp

from .exceptions import PredCheckError
from .logging_config import get_detail_logger
from .models import RetractionStatus
from .protocols import RetractionRegistry
from .validation import normalize_doi


detail_logger = get_detail_logger()


class RetractionResolver:
    """Checks a DOI against a citation-graph registry and a biomedical registry.

    Both registries are queried concurrently, each under its own timeout. A
    registry that errors or times out contributes no evidence; the verdict
    then rests on whichever registry answered.

    Examples:
        >>> resolver = RetractionResolver(CrossrefRegistry(), PubMedRegistry())
        >>> status = await resolver.resolve("10.1234/example")
        >>> status.is_retracted, status.retraction_source
        (True, ['crossref', 'pubmed'])
    """

    def __init__(
        self,
        citation_registry: RetractionRegistry | None,
        biomedical_registry: RetractionRegistry | None,
    ):
        """
        Args:
            citation_registry: Registry whose scalar fields take precedence
                (Crossref); None when disabled
            biomedical_registry: Secondary registry (PubMed); None when disabled
        """
        self.citation_registry = citation_registry
        self.biomedical_registry = biomedical_registry

    async def resolve(self, doi: str | None) -> RetractionStatus:
        """Return the merged retraction status for ``doi``.

        An empty DOI yields an unretracted status without any registry call.
        """
        normalized_doi = normalize_doi(doi)
        if not normalized_doi:
            return RetractionStatus(is_retracted=False)

        detail_logger.debug(f"Checking retraction status for DOI: {normalized_doi}")

        citation_result, biomedical_result = await asyncio.gather(
            self._check_registry(self.citation_registry, normalized_doi),
            self._check_registry(self.biomedical_registry, normalized_doi),
        )

        unavailable = [
            registry.name
            for registry, result in (
                (self.citation_registry, citation_result),
                (self.biomedical_registry, biomedical_result),
            )
            if registry is not None and result is None
        ]
        merged = merge_retraction_statuses(
            citation_result or RetractionStatus(is_retracted=False),
            biomedical_result or RetractionStatus(is_retracted=False),
            unavailable_sources=unavailable,
        )

        if merged.is_retracted:
            detail_logger.info(
                f"DOI {normalized_doi} RETRACTED via {', '.join(merged.retraction_source)}"
            )
        return merged

    async def _check_registry(
        self, registry: RetractionRegistry | None, doi: str
    ) -> RetractionStatus | None:
        """Query one registry; None means it could not be consulted."""
        if registry is None:
            return RetractionStatus(is_retracted=False)
        try:
            return await asyncio.wait_for(registry.check(doi), timeout=registry.timeout)
        except asyncio.TimeoutError:
            detail_logger.warning(
                f"{registry.name} retraction lookup timed out after "
                f"{registry.timeout}s for {doi}"
            )
        except (PredCheckError, aiohttp.ClientError, ValueError, OSError) as e:
            detail_logger.warning(f"{registry.name} retraction lookup failed for {doi}: {e}")
        except Exception as e:
            # Malformed registry payloads drop only this registry's evidence
            detail_logger.exception(
                f"Unexpected error from {registry.name} retraction lookup for {doi}: {e}"
            )
        return None


def merge_retraction_statuses(
    citation_result: RetractionStatus,
    biomedical_result: RetractionStatus,
    unavailable_sources: list[str] | None = None,
) -> RetractionStatus:
    """Combine two registry verdicts.

    Scalar fields prefer the citation-graph registry; when both registries
    confirm the retraction the explanation is replaced with a narrative that
    names both. ``unavailable_sources`` lists registries that failed and is
    carried over unchanged.
    """
    unavailable = list(unavailable_sources or [])

    is_retracted = citation_result.is_retracted or biomedical_result.is_retracted
    if not is_retracted:
        return RetractionStatus(is_retracted=False, unavailable_sources=unavailable)

    sources: list[str] = []
    for source in citation_result.retraction_source + biomedical_result.retraction_source:
        if source not in sources:
            sources.append(source)

    explanation = (
        citation_result.detailed_explanation or biomedical_result.detailed_explanation
    )
    if citation_result.is_retracted and biomedical_result.is_retracted:
        explanation = " ".join(
            part
            for part in (
                "This paper was found to be retracted in both Crossref and PubMed databases.",
                citation_result.detailed_explanation,
                biomedical_result.detailed_explanation,
            )
            if part
        )

    return RetractionStatus(
        is_retracted=True,
        retraction_source=sources,
        retraction_date=citation_result.retraction_date
        or biomedical_result.retraction_date,
        retraction_reason=citation_result.retraction_reason
        or biomedical_result.retraction_reason,
        retraction_notice=citation_result.retraction_notice
        or biomedical_result.retraction_notice,
        notice_link=citation_result.notice_link or biomedical_result.notice_link,
        detailed_explanation=explanation,
        unavailable_sources=unavailable,
    )
