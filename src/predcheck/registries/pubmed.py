# SPDX-License-Identifier: MIT
"""PubMed retraction lookups (biomedical registry) via NCBI E-utilities."""

from xml.etree.ElementTree import Element, ParseError

from defusedxml import ElementTree as DefusedET
from defusedxml.common import DefusedXmlException

from ..constants import PUBMED_ARTICLE_URL, PUBMED_EUTILS_BASE_URL
from ..enums import RegistryName
from ..exceptions import RateLimitError, RegistryUnavailableError
from ..logging_config import get_detail_logger
from ..models import RetractionStatus
from ..retry_utils import async_retry_with_backoff
from .base import RegistryClient


detail_logger = get_detail_logger()

RETRACTED_PUBLICATION_TYPE = "Retracted Publication"
RETRACTION_IN_REF_TYPE = "RetractionIn"


class PubMedRegistry(RegistryClient):
    """Resolves a DOI to a PMID and inspects the PubMed record for retraction.

    A record is retracted when its publication types include "Retracted
    Publication" or when it carries a ``RetractionIn`` comment pointing at the
    retraction notice.
    """

    base_url = PUBMED_EUTILS_BASE_URL

    @property
    def name(self) -> str:
        return RegistryName.PUBMED.value

    async def check(self, doi: str) -> RetractionStatus:
        pmid = await self._search_pmid(doi)
        if pmid is None:
            # Not indexed in PubMed; absence is not an error
            return self._unretracted()

        xml_text = await self._fetch_record(pmid)
        return parse_pubmed_record(pmid, xml_text)

    @async_retry_with_backoff(max_retries=2, exceptions=(RateLimitError,))
    async def _search_pmid(self, doi: str) -> str | None:
        params = {
            "db": "pubmed",
            "term": f"{doi}[doi]",
            "retmode": "json",
            "tool": "predcheck",
            "email": self.email,
        }
        async with self._open_session() as session:
            async with session.get(f"{self.base_url}/esearch.fcgi", params=params) as response:
                self._raise_for_status(response.status, doi)
                data = await response.json()

        pmids = (data.get("esearchresult") or {}).get("idlist") or []
        if not pmids:
            detail_logger.debug(f"DOI not indexed in PubMed: {doi}")
            return None
        return str(pmids[0])

    @async_retry_with_backoff(max_retries=2, exceptions=(RateLimitError,))
    async def _fetch_record(self, pmid: str) -> str:
        params = {
            "db": "pubmed",
            "id": pmid,
            "retmode": "xml",
            "tool": "predcheck",
            "email": self.email,
        }
        async with self._open_session() as session:
            async with session.get(f"{self.base_url}/efetch.fcgi", params=params) as response:
                self._raise_for_status(response.status, f"PMID {pmid}")
                return str(await response.text())


def parse_pubmed_record(pmid: str, xml_text: str) -> RetractionStatus:
    """Build a retraction status from an efetch XML document.

    Raises:
        RegistryUnavailableError: If the document is not parseable XML
    """
    try:
        root = DefusedET.fromstring(xml_text)
    except (ParseError, DefusedXmlException) as e:
        raise RegistryUnavailableError(
            f"Unparseable PubMed record for PMID {pmid}: {e}",
            source_name=RegistryName.PUBMED.value,
        ) from e

    record_link = f"{PUBMED_ARTICLE_URL}/{pmid}/"
    reason: str | None = None
    explanation: str | None = None
    notice: str | None = None
    link: str | None = None

    publication_types = {
        (element.text or "").strip() for element in root.iter("PublicationType")
    }
    if RETRACTED_PUBLICATION_TYPE in publication_types:
        reason = 'This paper is marked as "Retracted Publication" in the PubMed database.'
        explanation = (
            f"This paper was found to be retracted in PubMed (PMID: {pmid}). PubMed "
            "is the U.S. National Library of Medicine's database and marks papers "
            "that have been officially withdrawn from the scientific literature."
        )
        link = record_link

    retraction_comments = [
        element
        for element in root.iter("CommentsCorrections")
        if element.get("RefType") == RETRACTION_IN_REF_TYPE
    ]
    if retraction_comments:
        notice_pmid = _comment_pmid(retraction_comments[0])
        if notice_pmid:
            notice = f"PMID: {notice_pmid}"
            link = f"{PUBMED_ARTICLE_URL}/{notice_pmid}/"
            reason = reason or (
                f"A formal retraction notice has been published in PubMed "
                f"(PMID: {notice_pmid})."
            )
            explanation = explanation or (
                "This paper was found to be retracted in PubMed. A retraction notice "
                "has been published and can be viewed at the provided link. "
                "Retractions indicate serious concerns about the validity or "
                "integrity of the published work."
            )
        else:
            reason = reason or "Retraction comment found in PubMed record."
            explanation = explanation or (
                f"This paper has retraction information in its PubMed record "
                f"(PMID: {pmid}), indicating it has been officially withdrawn from "
                "the scientific literature."
            )
            link = link or record_link

    if reason is None:
        return RetractionStatus(is_retracted=False)

    detail_logger.debug(f"PubMed marks PMID {pmid} as retracted")
    return RetractionStatus(
        is_retracted=True,
        retraction_source=[RegistryName.PUBMED.value],
        retraction_reason=reason,
        retraction_notice=notice,
        notice_link=link,
        detailed_explanation=explanation,
    )


def _comment_pmid(comment: Element) -> str | None:
    pmid_element = comment.find("PMID")
    if pmid_element is None or not (pmid_element.text or "").strip():
        return None
    return (pmid_element.text or "").strip()
