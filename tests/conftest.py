# SPDX-License-Identifier: MIT
"""Pytest configuration and shared fixtures."""

import asyncio

import pytest
import yaml

from predcheck.config import ConfigManager, reset_config_manager, set_config_manager
from predcheck.enums import WatchlistCategory
from predcheck.exceptions import MatcherUnavailableError, WatchlistUnavailableError
from predcheck.models import MatchResult, RetractionStatus, WatchlistEntry


@pytest.fixture(scope="function", autouse=True)
def isolated_test_db(tmp_path):
    """
    Point the global configuration at a temporary database for every test.

    This prevents tests from touching a real .predcheck/predcheck.db file.
    """
    db_path = tmp_path / "test_predcheck.db"
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.dump({"storage": {"db_path": str(db_path)}}), encoding="utf-8"
    )

    set_config_manager(ConfigManager(config_path))
    yield db_path
    reset_config_manager()


def make_entry(category, name, **kwargs):
    """Build a watchlist entry with a default source."""
    return WatchlistEntry(
        category=category, name=name, source=kwargs.pop("source", "test"), **kwargs
    )


class FakeWatchlistStore:
    """In-memory watchlist store recording every lookup."""

    def __init__(self, entries=None, failing=(), delay=0.0):
        self.entries = entries or {}
        self.failing = set(failing)
        self.delay = delay
        self.lookups = []

    async def lookup(self, category):
        self.lookups.append(category)
        if self.delay:
            await asyncio.sleep(self.delay)
        if category in self.failing:
            raise WatchlistUnavailableError(f"{category.value} offline")
        return list(self.entries.get(category, []))


class FakeMatcher:
    """Name matcher answering from a table of (name_a, name_b) -> confidence."""

    def __init__(self, confidences=None, default=0, failing=False, delay=0.0):
        self.confidences = confidences or {}
        self.default = default
        self.failing = failing
        self.delay = delay
        self.calls = []

    async def match_names(self, name_a, name_b, threshold=95):
        self.calls.append((name_a, name_b))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failing:
            raise MatcherUnavailableError("matcher offline", source_name="matcher")
        confidence = self.confidences.get((name_a, name_b), self.default)
        return MatchResult(
            is_match=confidence >= threshold,
            confidence=confidence,
            reasoning=f"confidence {confidence}",
        )


class FakeRegistry:
    """Retraction registry returning a fixed status, optionally slowly or failing."""

    def __init__(self, name, status=None, delay=0.0, error=None, timeout=1.0):
        self._name = name
        self.status = status or RetractionStatus(is_retracted=False)
        self.delay = delay
        self.error = error
        self._timeout = timeout
        self.calls = []

    @property
    def name(self):
        return self._name

    @property
    def timeout(self):
        return self._timeout

    async def check(self, doi):
        self.calls.append(doi)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.status


@pytest.fixture
def watchlists():
    """One entry per watchlist category."""
    return {
        WatchlistCategory.BEALLS_PUBLISHERS: [
            make_entry(WatchlistCategory.BEALLS_PUBLISHERS, "OMICS Publishing Group"),
        ],
        WatchlistCategory.STOP_PREDATORY_PUBLISHERS: [
            make_entry(WatchlistCategory.STOP_PREDATORY_PUBLISHERS, "OMICS Publishing Group"),
        ],
        WatchlistCategory.PREDATORY_JOURNALS: [
            make_entry(
                WatchlistCategory.PREDATORY_JOURNALS,
                "International Journal of Advanced Research",
            ),
        ],
        WatchlistCategory.HIJACKED_JOURNALS: [
            make_entry(
                WatchlistCategory.HIJACKED_JOURNALS,
                "International Journal of Advanced Research",
                website="http://fake-ijar.example",
                issn="1234-5678",
            ),
        ],
        WatchlistCategory.DISCONTINUED_ISSNS: [
            make_entry(
                WatchlistCategory.DISCONTINUED_ISSNS,
                "International Journal of Advanced Research",
                issn="1234-5678",
                metadata={
                    "discontinued_year": "2019",
                    "discontinued_reason": "Publication concerns",
                },
            ),
        ],
    }


@pytest.fixture
def entry_factory():
    """Factory for watchlist entries."""
    return make_entry


@pytest.fixture
def store_factory():
    """Factory for in-memory watchlist stores."""
    return FakeWatchlistStore


@pytest.fixture
def matcher_factory():
    """Factory for table-driven name matchers."""
    return FakeMatcher


@pytest.fixture
def registry_factory():
    """Factory for canned retraction registries."""
    return FakeRegistry
