# SPDX-License-Identifier: MIT
"""Tests for the OpenAlex client."""

from unittest.mock import AsyncMock, Mock, patch

import aiohttp
import pytest

from predcheck.exceptions import ProviderUnavailableError
from predcheck.openalex import (
    OpenAlexClient,
    _work_path_id,
    parse_reference,
    parse_work_summary,
)


WORK = {
    "id": "https://openalex.org/W2001",
    "doi": "https://doi.org/10.1234/Cited",
    "title": "Cited work",
    "publication_year": 2019,
    "cited_by_count": 12,
    "primary_location": {
        "source": {
            "display_name": "Journal of Things",
            "issn": ["1234-5678", "8765-4321"],
            "host_organization_name": "Things Press",
        }
    },
    "authorships": [
        {"author": {"display_name": f"Author {i}"}} for i in range(1, 8)
    ],
}


def _response(status=200, json_data=None):
    response = Mock()
    response.status = status
    response.json = AsyncMock(return_value=json_data or {})
    return response


class TestParsing:
    """Test cases for the record parsers."""

    def test_parse_reference(self):
        reference = parse_reference(WORK)

        assert reference.doi == "10.1234/cited"
        assert reference.venue_name == "Journal of Things"
        assert reference.primary_issn == "1234-5678"
        assert reference.publisher == "Things Press"
        assert len(reference.authors) == 7
        assert reference.openalex_id == "https://openalex.org/W2001"

    def test_parse_reference_without_source(self):
        reference = parse_reference({"id": "W1", "primary_location": None})

        assert reference.venue_name is None
        assert reference.issns == []
        assert reference.doi is None

    def test_parse_work_summary(self):
        summary = parse_work_summary(WORK)

        assert summary.doi == "10.1234/cited"
        assert summary.journal == "Journal of Things"
        assert summary.citation_count == 12
        assert summary.authors == [f"Author {i}" for i in range(1, 6)]

    @pytest.mark.parametrize(
        "work_id,expected",
        [
            ("https://openalex.org/W123", "W123"),
            ("W123", "W123"),
            ("10.1234/abc", "https://doi.org/10.1234/abc"),
            ("https://doi.org/10.1234/ABC", "https://doi.org/10.1234/abc"),
        ],
    )
    def test_work_path_id(self, work_id, expected):
        assert _work_path_id(work_id) == expected


class TestOpenAlexClient:
    """Test cases for OpenAlexClient."""

    @pytest.mark.asyncio
    async def test_fetch_work_adds_mailto(self):
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(json_data=WORK)

            async with OpenAlexClient(email="me@example.org") as client:
                work = await client.fetch_work("W2001")

        assert work["id"] == "https://openalex.org/W2001"
        assert mock_get.call_args[0][0] == "https://api.openalex.org/works/W2001"
        assert mock_get.call_args[1]["params"]["mailto"] == "me@example.org"

    @pytest.mark.asyncio
    async def test_fetch_work_not_found(self):
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(status=404)

            async with OpenAlexClient() as client:
                assert await client.fetch_work("W404") is None

    @pytest.mark.asyncio
    async def test_server_error(self):
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(status=500)

            async with OpenAlexClient() as client:
                with pytest.raises(ProviderUnavailableError, match="status 500"):
                    await client.fetch_work("W1")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        with patch(
            "aiohttp.ClientSession.get", side_effect=aiohttp.ClientError("reset")
        ):
            async with OpenAlexClient() as client:
                with pytest.raises(ProviderUnavailableError, match="reset"):
                    await client.fetch_work("W1")

    @pytest.mark.asyncio
    async def test_fetch_references(self):
        citing = {
            "id": "https://openalex.org/W1",
            "referenced_works": [
                "https://openalex.org/W2001",
                "https://openalex.org/W2002",
            ],
        }
        second = dict(WORK, id="https://openalex.org/W2002", doi=None)
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.side_effect = [
                _response(json_data=citing),
                _response(json_data={"results": [WORK, second]}),
            ]

            async with OpenAlexClient() as client:
                references = await client.fetch_references("10.1234/citing")

        assert [r.openalex_id for r in references] == [
            "https://openalex.org/W2001",
            "https://openalex.org/W2002",
        ]
        batch_params = mock_get.call_args_list[1][1]["params"]
        assert batch_params["filter"] == "openalex_id:W2001|W2002"

    @pytest.mark.asyncio
    async def test_fetch_references_unknown_work(self):
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(status=404)

            async with OpenAlexClient() as client:
                with pytest.raises(ProviderUnavailableError, match="not found"):
                    await client.fetch_references("W404")

    @pytest.mark.asyncio
    async def test_failed_batch_is_skipped(self):
        ids = [f"W{i}" for i in range(60)]
        with patch("aiohttp.ClientSession.get") as mock_get, patch(
            "predcheck.openalex.asyncio.sleep", new_callable=AsyncMock
        ):
            mock_get.return_value.__aenter__.side_effect = [
                _response(status=500),
                _response(json_data={"results": [WORK]}),
            ]

            async with OpenAlexClient() as client:
                references = await client.fetch_works_batch(ids)

        assert len(references) == 1
        assert mock_get.call_count == 2

    @pytest.mark.asyncio
    async def test_search_by_doi(self):
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(
                json_data={"results": [WORK]}
            )

            async with OpenAlexClient() as client:
                works = await client.search_works("https://doi.org/10.1234/Cited")

        assert [w.title for w in works] == ["Cited work"]
        params = mock_get.call_args[1]["params"]
        assert params["filter"] == "doi:10.1234/cited"
        assert params["per-page"] == 10

    @pytest.mark.asyncio
    async def test_search_by_title_failure_returns_empty(self):
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(status=503)

            async with OpenAlexClient() as client:
                works = await client.search_works("predatory journals")

        assert works == []
        assert mock_get.call_args[1]["params"]["search"] == "predatory journals"
