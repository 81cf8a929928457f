# SPDX-License-Identifier: MIT
"""Crossref retraction lookups (citation-graph registry)."""

from typing import Any
from urllib.parse import quote

from ..constants import CROSSREF_BASE_URL, DOI_RESOLVER_URL
from ..enums import RegistryName
from ..exceptions import RateLimitError
from ..logging_config import get_detail_logger
from ..models import RetractionStatus
from ..retry_utils import async_retry_with_backoff
from .base import RegistryClient


detail_logger = get_detail_logger()


class CrossrefRegistry(RegistryClient):
    """Checks Crossref work metadata for retraction relations and updates.

    Crossref records retractions in two places:
    - ``relation["is-retracted-by"]`` pointing at the retraction notice
    - ``updated-by`` entries whose type or label mentions a retraction

    A retraction notice's own ``update-to`` entries are ignored: the notice
    is not itself retracted.
    """

    base_url = CROSSREF_BASE_URL

    @property
    def name(self) -> str:
        return RegistryName.CROSSREF.value

    async def check(self, doi: str) -> RetractionStatus:
        message = await self._fetch_work(doi)
        if message is None:
            return self._unretracted()
        return parse_crossref_work(message)

    @async_retry_with_backoff(max_retries=2, exceptions=(RateLimitError,))
    async def _fetch_work(self, doi: str) -> dict[str, Any] | None:
        """Fetch the ``message`` block of a Crossref work, or None when unknown."""
        url = f"{self.base_url}/works/{quote(doi, safe='/')}"

        async with self._open_session() as session:
            async with session.get(url) as response:
                if response.status == 404:
                    detail_logger.debug(f"DOI not found in Crossref: {doi}")
                    return None
                self._raise_for_status(response.status, doi)
                data = await response.json()

        message = data.get("message") or {}
        return message if isinstance(message, dict) else {}


def parse_crossref_work(message: dict[str, Any]) -> RetractionStatus:
    """Build a retraction status from a Crossref work ``message`` block."""
    is_retracted = False
    retraction_date: str | None = None
    reason: str | None = None
    notice_doi: str | None = None
    explanation: str | None = None

    relation = message.get("relation") or {}
    retracted_by = relation.get("is-retracted-by") or []
    if retracted_by:
        is_retracted = True
        notice_doi = retracted_by[0].get("id")
        reason = "This paper has been officially retracted according to Crossref metadata."
        explanation = (
            "This paper was found to be retracted in Crossref. A formal retraction "
            "notice has been published and is linked to this paper in the "
            "scholarly record."
        )

    for update in message.get("updated-by") or []:
        update_type = str(update.get("type", "")).lower()
        label = update.get("label") or ""
        if "retract" not in update_type and "retract" not in label.lower():
            continue

        is_retracted = True
        retraction_date = retraction_date or _parse_update_date(update)
        notice_doi = notice_doi or update.get("DOI")
        reason = reason or label or "Retraction notice recorded in Crossref metadata."
        if explanation is None:
            suffix = f" on {retraction_date}" if retraction_date else ""
            explanation = f"This paper was retracted according to Crossref records{suffix}."

    if not is_retracted:
        return RetractionStatus(is_retracted=False)

    return RetractionStatus(
        is_retracted=True,
        retraction_source=[RegistryName.CROSSREF.value],
        retraction_date=retraction_date,
        retraction_reason=reason,
        retraction_notice=f"DOI: {notice_doi}" if notice_doi else None,
        notice_link=f"{DOI_RESOLVER_URL}/{notice_doi}" if notice_doi else None,
        detailed_explanation=explanation,
    )


def _parse_update_date(update: dict[str, Any]) -> str | None:
    """Extract an ISO date from a Crossref update record."""
    updated = update.get("updated")
    if not isinstance(updated, dict):
        return None

    date_time = updated.get("date-time")
    if isinstance(date_time, str) and date_time:
        return date_time[:10]

    date_parts = (updated.get("date-parts") or [[]])[0]
    if len(date_parts) >= 3:
        return f"{date_parts[0]}-{date_parts[1]:02d}-{date_parts[2]:02d}"
    return None
