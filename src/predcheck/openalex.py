# SPDX-License-Identifier: MIT
"""OpenAlex API client for fetching a paper's references and searching works."""

import asyncio
from typing import Any
from urllib.parse import quote

import aiohttp

from .constants import (
    DEFAULT_CONTACT_EMAIL,
    DEFAULT_SERVICE_TIMEOUT,
    OPENALEX_BASE_URL,
    OPENALEX_BATCH_DELAY_SECONDS,
    OPENALEX_BATCH_SIZE,
    OPENALEX_SEARCH_LIMIT,
)
from .exceptions import ProviderUnavailableError, RateLimitError
from .logging_config import get_detail_logger, get_status_logger
from .models import Reference, WorkSummary
from .retry_utils import async_retry_with_backoff
from .validation import normalize_doi, validate_doi


detail_logger = get_detail_logger()
status_logger = get_status_logger()

OPENALEX_ID_PREFIX = "https://openalex.org/"


class OpenAlexClient:
    """Client for the OpenAlex works API.

    Works can be addressed by DOI (with or without resolver prefix) or by
    OpenAlex ID (``W123...`` or its full URL).
    """

    def __init__(
        self,
        email: str = DEFAULT_CONTACT_EMAIL,
        timeout: float = DEFAULT_SERVICE_TIMEOUT,
        base_url: str = OPENALEX_BASE_URL,
        max_concurrent: int = 10,
    ):
        """Initialize OpenAlex client.

        Args:
            email: Email for polite pool access (recommended for higher rate limits)
            timeout: Seconds allowed per request
            base_url: API root
            max_concurrent: Maximum concurrent API requests
        """
        self.email = email
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.headers = {"User-Agent": f"PredCheck/1.0 (mailto:{email})"}
        self.semaphore = asyncio.Semaphore(max_concurrent)
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "OpenAlexClient":
        """Async context manager entry."""
        self._ensure_session()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if not self.session:
            self.session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self.session

    @async_retry_with_backoff(max_retries=2, exceptions=(RateLimitError,))
    async def _get_json(
        self, path: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """GET ``path``; None on 404.

        Raises:
            RateLimitError: On HTTP 429
            ProviderUnavailableError: On any other unusable response
        """
        query = {"mailto": self.email, **(params or {})}
        async with self.semaphore:
            session = self._ensure_session()
            try:
                async with session.get(f"{self.base_url}{path}", params=query) as response:
                    if response.status == 404:
                        return None
                    if response.status == 429:
                        detail_logger.warning(f"OpenAlex rate limit hit for {path}")
                        raise RateLimitError(source_name="openalex")
                    if response.status != 200:
                        raise ProviderUnavailableError(
                            f"OpenAlex API returned status {response.status} for {path}",
                            source_name="openalex",
                        )
                    return dict(await response.json())
            except asyncio.TimeoutError as e:
                raise ProviderUnavailableError(
                    f"OpenAlex API timeout for {path}", source_name="openalex"
                ) from e
            except (aiohttp.ClientError, ValueError) as e:
                raise ProviderUnavailableError(
                    f"Error fetching OpenAlex data for {path}: {e}",
                    source_name="openalex",
                ) from e

    async def fetch_work(self, work_id: str) -> dict[str, Any] | None:
        """Fetch a work record by DOI or OpenAlex ID.

        Returns:
            Raw OpenAlex work record, or None if OpenAlex does not know it
        """
        path = f"/works/{_work_path_id(work_id)}"
        detail_logger.debug(f"Fetching OpenAlex work: {path}")
        return await self._get_json(path)

    async def fetch_works_batch(self, openalex_ids: list[str]) -> list[Reference]:
        """Fetch many works by OpenAlex ID, in chunks with a short pause.

        Chunks that fail are logged and skipped, so the result may be shorter
        than the input.
        """
        references: list[Reference] = []
        chunks = [
            openalex_ids[i : i + OPENALEX_BATCH_SIZE]
            for i in range(0, len(openalex_ids), OPENALEX_BATCH_SIZE)
        ]

        for index, chunk in enumerate(chunks, 1):
            detail_logger.debug(
                f"Fetching OpenAlex batch {index}/{len(chunks)} ({len(chunk)} works)"
            )
            params = {
                "filter": f"openalex_id:{'|'.join(chunk)}",
                "per-page": OPENALEX_BATCH_SIZE,
            }
            try:
                data = await self._get_json("/works", params)
            except (ProviderUnavailableError, RateLimitError) as e:
                detail_logger.warning(f"Skipping OpenAlex batch {index}: {e}")
                data = None

            for work in (data or {}).get("results", []):
                references.append(parse_reference(work))

            if index < len(chunks):
                await asyncio.sleep(OPENALEX_BATCH_DELAY_SECONDS)

        detail_logger.debug(f"Fetched {len(references)} references")
        return references

    async def fetch_references(self, work_id: str) -> list[Reference]:
        """Return the works cited by ``work_id``.

        Raises:
            ProviderUnavailableError: If the work is unknown or cannot be fetched
        """
        try:
            work = await self.fetch_work(work_id)
        except RateLimitError as e:
            raise ProviderUnavailableError(
                f"OpenAlex rate limit persisted for {work_id}", source_name="openalex"
            ) from e
        if work is None:
            raise ProviderUnavailableError(
                f"Work not found in OpenAlex: {work_id}", source_name="openalex"
            )

        referenced = work.get("referenced_works") or []
        status_logger.info(f"Found {len(referenced)} references for {work_id}")
        ids = [url.rsplit("/", 1)[-1] for url in referenced if url]
        return await self.fetch_works_batch(ids)

    async def search_works(self, query: str) -> list[WorkSummary]:
        """Search works by title text, or by DOI when the query looks like one.

        Returns:
            Up to ten matches; empty on failure
        """
        query = query.strip()
        if validate_doi(query):
            params: dict[str, Any] = {"filter": f"doi:{normalize_doi(query)}"}
        else:
            params = {"search": query}
        params["per-page"] = OPENALEX_SEARCH_LIMIT

        try:
            data = await self._get_json("/works", params)
        except (ProviderUnavailableError, RateLimitError) as e:
            detail_logger.warning(f"OpenAlex search failed for '{query}': {e}")
            return []

        works = (data or {}).get("results", [])
        detail_logger.debug(f"Found {len(works)} OpenAlex results for '{query}'")
        return [parse_work_summary(work) for work in works[:OPENALEX_SEARCH_LIMIT]]


def _work_path_id(work_id: str) -> str:
    """Turn a DOI or OpenAlex ID into the path segment the API expects."""
    work_id = work_id.strip()
    if work_id.startswith(OPENALEX_ID_PREFIX):
        return work_id[len(OPENALEX_ID_PREFIX) :]
    if validate_doi(work_id):
        return f"https://doi.org/{quote(normalize_doi(work_id), safe='/')}"
    return work_id


def _source(work: dict[str, Any]) -> dict[str, Any]:
    location = work.get("primary_location") or {}
    return location.get("source") or {}


def parse_reference(work: dict[str, Any]) -> Reference:
    """Build a Reference from an OpenAlex work record."""
    source = _source(work)
    return Reference(
        doi=work.get("doi"),
        title=work.get("title"),
        publication_year=work.get("publication_year"),
        venue_name=source.get("display_name"),
        issns=source.get("issn") or [],
        publisher=source.get("host_organization_name"),
        authors=[
            (authorship.get("author") or {}).get("display_name", "")
            for authorship in work.get("authorships") or []
        ],
        openalex_id=work.get("id"),
    )


def parse_work_summary(work: dict[str, Any]) -> WorkSummary:
    """Build a search hit from an OpenAlex work record."""
    return WorkSummary(
        id=work.get("id", ""),
        doi=normalize_doi(work.get("doi")),
        title=work.get("title") or "Unknown title",
        publication_year=work.get("publication_year"),
        authors=[
            (authorship.get("author") or {}).get("display_name", "")
            for authorship in (work.get("authorships") or [])[:5]
        ],
        journal=_source(work).get("display_name") or "Unknown journal",
        citation_count=work.get("cited_by_count") or 0,
    )
