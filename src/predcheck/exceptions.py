# SPDX-License-Identifier: MIT
"""Standard exceptions for the reference credibility pipeline.

Only ProviderUnavailableError ends an analysis. The other errors are raised by
individual collaborators and absorbed by the resolver, scorer or orchestrator,
which record them as reduced coverage.
"""


class PredCheckError(Exception):
    """Base class for all pipeline exceptions."""

    def __init__(self, message: str, source_name: str | None = None) -> None:
        self.source_name = source_name
        super().__init__(message)


class RateLimitError(PredCheckError):
    """Raised when an external API rate limit is hit."""

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        retry_after: int | None = None,
        source_name: str | None = None,
    ) -> None:
        self.retry_after = retry_after
        msg = f"{message}. Retry after {retry_after}s" if retry_after else message
        super().__init__(msg, source_name)


class ProviderUnavailableError(PredCheckError):
    """Raised when the reference provider cannot supply any references."""

    pass


class RegistryUnavailableError(PredCheckError):
    """Raised when a retraction registry lookup fails."""

    pass


class MatcherUnavailableError(PredCheckError):
    """Raised when the semantic name matcher cannot produce a verdict."""

    pass


class WatchlistUnavailableError(PredCheckError):
    """Raised when a watchlist category cannot be loaded."""

    pass


class PersistenceError(PredCheckError):
    """Raised when a finished analysis cannot be stored."""

    pass
