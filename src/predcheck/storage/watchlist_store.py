# SPDX-License-Identifier: MIT
"""SQLite catalog of predatory-publishing watchlists."""

import asyncio
import csv
import json
import sqlite3
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ..enums import WatchlistCategory
from ..exceptions import WatchlistUnavailableError
from ..logging_config import get_detail_logger, get_status_logger
from ..models import WatchlistEntry
from ..prefilter import normalize_for_prefilter
from ..validation import normalize_issn
from .base import StoreBase
from .connection_utils import get_configured_connection


detail_logger = get_detail_logger()
status_logger = get_status_logger()

# Candidate CSV headers per field, compared after lowercasing and turning
# underscores into spaces. The first non-empty column wins.
NAME_COLUMNS = ("name", "journal name", "publisher", "title")
HIJACKED_NAME_COLUMNS = ("legitimate title", "authentic", "title", "name")
WEBSITE_COLUMNS = ("url", "website", "fake url", "hijackedurl", "althijackedurl")
ISSN_COLUMNS = ("issn", "legitimate issn", "eissn")

DEFAULT_SOURCES: dict[WatchlistCategory, str] = {
    WatchlistCategory.BEALLS_PUBLISHERS: "bealls",
    WatchlistCategory.STOP_PREDATORY_PUBLISHERS: "stop-predatory-journals",
    WatchlistCategory.PREDATORY_JOURNALS: "stop-predatory-journals",
    WatchlistCategory.HIJACKED_JOURNALS: "stop-predatory-journals",
    WatchlistCategory.DISCONTINUED_ISSNS: "scopus",
}


class SQLiteWatchlistStore(StoreBase):
    """Stores watchlist entries and serves them per category.

    Reads run in a worker thread so they can be awaited from the scorer
    without blocking the event loop.
    """

    async def lookup(self, category: WatchlistCategory) -> list[WatchlistEntry]:
        """Return every entry of ``category``.

        Raises:
            WatchlistUnavailableError: If the database cannot be read
        """
        try:
            return await asyncio.to_thread(self._lookup_sync, category)
        except sqlite3.Error as e:
            raise WatchlistUnavailableError(
                f"Failed to read watchlist {category.value}: {e}",
                source_name=category.value,
            ) from e

    def _lookup_sync(self, category: WatchlistCategory) -> list[WatchlistEntry]:
        with get_configured_connection(self.db_path, named_rows=True) as conn:
            rows = conn.execute(
                """
                SELECT name, source, issn, website, metadata
                FROM watchlist_entries
                WHERE category = ?
                ORDER BY id
                """,
                (category.value,),
            ).fetchall()

        return [
            WatchlistEntry(
                category=category,
                name=row["name"],
                source=row["source"],
                issn=row["issn"],
                website=row["website"],
                metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            )
            for row in rows
        ]

    def add_entries(
        self, category: WatchlistCategory, entries: Iterable[WatchlistEntry]
    ) -> int:
        """Insert entries, skipping names already listed by the same source.

        Returns:
            Number of rows inserted
        """
        inserted = 0
        with get_configured_connection(self.db_path) as conn:
            with conn:
                for entry in entries:
                    if entry.category != category:
                        raise ValueError(
                            f"Entry '{entry.name}' belongs to {entry.category.value}, "
                            f"not {category.value}"
                        )
                    cursor = conn.execute(
                        """
                        INSERT OR IGNORE INTO watchlist_entries
                            (category, name, normalized_name, source, issn, website, metadata)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            category.value,
                            entry.name,
                            normalize_for_prefilter(entry.name).strip(),
                            entry.source,
                            entry.issn,
                            entry.website,
                            json.dumps(entry.metadata) if entry.metadata else None,
                        ),
                    )
                    inserted += cursor.rowcount

        detail_logger.debug(f"Inserted {inserted} entries into {category.value}")
        return inserted

    def import_csv(
        self,
        category: WatchlistCategory,
        file_path: str | Path,
        source: str | None = None,
    ) -> int:
        """Load a watchlist CSV into ``category``.

        Supported layouts:
        - publishers and journals: ``name``, ``url``, ``abbr``
        - hijacked journals: ``legitimate title`` (or ``authentic``/``title``),
          ``fake url`` (or ``hijackedurl``), ``issn``
        - discontinued titles: ``title``, ``issn``, ``year``, ``reason``

        Args:
            category: Watchlist category to fill
            file_path: CSV file with a header row
            source: List name recorded on each entry; defaults per category

        Returns:
            Number of rows inserted

        Raises:
            ValueError: If the file does not exist
        """
        path = Path(file_path)
        if not path.exists():
            raise ValueError(f"File does not exist: {path}")

        source_name = source or DEFAULT_SOURCES[category]
        entries = []
        skipped = 0

        with open(path, encoding="utf-8-sig", newline="") as f:
            for row in csv.DictReader(f):
                normalized_row = _normalize_row(row)
                if not any(normalized_row.values()):
                    continue
                entry = parse_watchlist_row(category, normalized_row, source_name)
                if entry is None:
                    skipped += 1
                    continue
                entries.append(entry)

        if skipped:
            detail_logger.debug(f"Skipped {skipped} unusable rows in {path}")

        inserted = self.add_entries(category, entries)
        status_logger.info(
            f"Imported {inserted} of {len(entries)} {category.value} entries from {path.name}"
        )
        return inserted

    def count_entries(self) -> dict[str, int]:
        """Return the number of entries per category (zero for empty ones)."""
        counts = {category.value: 0 for category in WatchlistCategory}
        with get_configured_connection(self.db_path) as conn:
            for category, count in conn.execute(
                "SELECT category, COUNT(*) FROM watchlist_entries GROUP BY category"
            ):
                counts[category] = count
        return counts


def parse_watchlist_row(
    category: WatchlistCategory, row: dict[str, str], source: str
) -> WatchlistEntry | None:
    """Map one normalized CSV row onto a watchlist entry, or None if unusable."""
    if category == WatchlistCategory.DISCONTINUED_ISSNS:
        issn = normalize_issn(_first(row, ISSN_COLUMNS) or "")
        if issn is None:
            return None
        metadata: dict[str, Any] = {}
        year = _first(row, ("year", "discontinued year"))
        if year:
            metadata["discontinued_year"] = year
        reason = _first(row, ("reason", "discontinued reason"))
        if reason:
            metadata["discontinued_reason"] = reason
        return WatchlistEntry(
            category=category,
            name=_first(row, ("title", "name")) or issn,
            source=source,
            issn=issn,
            metadata=metadata,
        )

    if category == WatchlistCategory.HIJACKED_JOURNALS:
        name = _first(row, HIJACKED_NAME_COLUMNS)
        if not name:
            return None
        issn_value = _first(row, ISSN_COLUMNS)
        return WatchlistEntry(
            category=category,
            name=name,
            source=source,
            issn=normalize_issn(issn_value) if issn_value else None,
            website=_first(row, WEBSITE_COLUMNS),
        )

    name = _first(row, NAME_COLUMNS)
    if not name:
        return None
    abbreviation = _first(row, ("abbr", "abbreviation"))
    return WatchlistEntry(
        category=category,
        name=name,
        source=source,
        website=_first(row, WEBSITE_COLUMNS),
        metadata={"abbreviation": abbreviation} if abbreviation else {},
    )


def _normalize_row(row: dict[str | None, Any]) -> dict[str, str]:
    """Lowercase headers and strip values; drops overflow columns."""
    normalized = {}
    for key, value in row.items():
        if key is None or not isinstance(value, str):
            continue
        normalized[key.strip().lower().replace("_", " ")] = value.strip()
    return normalized


def _first(row: dict[str, str], columns: tuple[str, ...]) -> str | None:
    for column in columns:
        value = row.get(column)
        if value:
            return value
    return None
