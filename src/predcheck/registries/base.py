# SPDX-License-Identifier: MIT
"""Shared plumbing for HTTP retraction registry clients."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiohttp

from ..constants import DEFAULT_CONTACT_EMAIL, DEFAULT_SERVICE_TIMEOUT
from ..exceptions import RateLimitError, RegistryUnavailableError
from ..models import RetractionStatus


class RegistryClient(ABC):
    """Base class for retraction registries queried over HTTP.

    Subclasses implement ``check``; they raise ``RegistryUnavailableError`` when
    the registry answers with an error and return an unretracted status when it
    simply has no record of the DOI.
    """

    base_url: str = ""

    def __init__(
        self,
        email: str = DEFAULT_CONTACT_EMAIL,
        timeout: float = DEFAULT_SERVICE_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
        base_url: str | None = None,
    ):
        """
        Args:
            email: Contact address for polite-pool access
            timeout: Seconds allowed for one lookup
            session: Optional shared session; one is opened per lookup otherwise
            base_url: API root overriding the class default
        """
        if base_url:
            self.base_url = base_url.rstrip("/")
        self.email = email
        self._timeout = timeout
        self._session = session
        self.headers = {"User-Agent": f"PredCheck/1.0 (mailto:{email})"}

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry tag used in retraction sources."""

    @property
    def timeout(self) -> float:
        return self._timeout

    @abstractmethod
    async def check(self, doi: str) -> RetractionStatus:
        """Return this registry's verdict for a normalized DOI."""

    @asynccontextmanager
    async def _open_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self._session is not None:
            yield self._session
            return

        async with aiohttp.ClientSession(
            headers=self.headers, timeout=aiohttp.ClientTimeout(total=self._timeout)
        ) as session:
            yield session

    def _raise_for_status(self, status: int, what: str) -> None:
        """Translate unusable HTTP statuses into pipeline errors."""
        if status == 429:
            raise RateLimitError(source_name=self.name)
        if status != 200:
            raise RegistryUnavailableError(
                f"{self.name} returned status {status} for {what}",
                source_name=self.name,
            )

    @staticmethod
    def _unretracted() -> RetractionStatus:
        return RetractionStatus(is_retracted=False)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(timeout={self._timeout!r})"
