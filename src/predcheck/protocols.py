# SPDX-License-Identifier: MIT
"""Protocol definitions for the pipeline's external collaborators.

The orchestrator, resolver and scorer receive these collaborators explicitly,
so any object with the right shape (including a test double) can stand in for
the HTTP and SQLite implementations shipped with the package.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:
    from .enums import WatchlistCategory
    from .models import (
        AnalysisAggregate,
        MatchResult,
        Reference,
        RetractionStatus,
        WatchlistEntry,
    )


@runtime_checkable
class ReferenceProvider(Protocol):
    """Supplies the cited works of a paper."""

    async def fetch_references(self, work_id: str) -> list["Reference"]:
        """Return the references cited by ``work_id`` (a DOI or provider ID).

        Raises:
            ProviderUnavailableError: If the work or its references cannot be fetched
        """
        ...


@runtime_checkable
class RetractionRegistry(Protocol):
    """A single retraction registry (e.g. Crossref or PubMed)."""

    @property
    def name(self) -> str:
        """Registry tag used in ``retraction_source``."""
        ...

    @property
    def timeout(self) -> float:
        """Seconds allowed for one lookup."""
        ...

    async def check(self, doi: str) -> "RetractionStatus":
        """Return this registry's verdict for ``doi``.

        Raises:
            RegistryUnavailableError: If the registry could not be queried
        """
        ...


@runtime_checkable
class NameMatcher(Protocol):
    """Judges whether two free-text names denote the same entity."""

    async def match_names(
        self, name_a: str, name_b: str, threshold: int = 95
    ) -> "MatchResult":
        """Compare two names; ``is_match`` requires ``confidence >= threshold``.

        Raises:
            MatcherUnavailableError: If no verdict could be produced
        """
        ...


@runtime_checkable
class WatchlistStore(Protocol):
    """Read-only catalog of predatory-publishing watchlists."""

    async def lookup(self, category: "WatchlistCategory") -> list["WatchlistEntry"]:
        """Return every entry of ``category``.

        Raises:
            WatchlistUnavailableError: If the category cannot be loaded
        """
        ...


@runtime_checkable
class ResultSink(Protocol):
    """Durable storage for finished analyses."""

    async def persist_analysis(self, aggregate: "AnalysisAggregate") -> str:
        """Store ``aggregate`` and return its identifier.

        Raises:
            PersistenceError: If the analysis could not be stored
        """
        ...
