# SPDX-License-Identifier: MIT
"""Database schema for watchlists and stored analyses."""

import sqlite3
from pathlib import Path

from ..enums import RiskLevel, ScoreStatus, WatchlistCategory


def init_database(db_path: Path) -> None:
    """Create every table and index if missing.

    Args:
        db_path: Path to the SQLite database file
    """
    category_values = ", ".join(f"'{c.value}'" for c in WatchlistCategory)
    risk_values = ", ".join(f"'{r.value}'" for r in RiskLevel)
    status_values = ", ".join(f"'{s.value}'" for s in ScoreStatus)

    with sqlite3.connect(db_path) as conn:
        conn.executescript(
            f"""
            -- Predatory-publishing watchlists, one row per listed name
            CREATE TABLE IF NOT EXISTS watchlist_entries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                category TEXT NOT NULL,
                name TEXT NOT NULL,
                normalized_name TEXT NOT NULL,
                source TEXT NOT NULL,
                issn TEXT,
                website TEXT,
                metadata TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(category, normalized_name, source),
                CHECK (category IN ({category_values}))
            );

            -- Finished analyses
            CREATE TABLE IF NOT EXISTS analyses (
                id TEXT PRIMARY KEY,
                input_id TEXT NOT NULL,
                total_references INTEGER NOT NULL,
                high_risk_count INTEGER NOT NULL,
                retracted_count INTEGER NOT NULL,
                unscored_count INTEGER NOT NULL DEFAULT 0,
                degraded_count INTEGER NOT NULL DEFAULT 0,
                is_partial BOOLEAN NOT NULL DEFAULT FALSE,
                summary TEXT NOT NULL,
                processing_time REAL,
                created_at TIMESTAMP NOT NULL
            );

            -- Per-reference results, in input order
            CREATE TABLE IF NOT EXISTS scored_references (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                analysis_id TEXT NOT NULL,
                position INTEGER NOT NULL,
                reference TEXT NOT NULL,
                score TEXT NOT NULL,
                risk TEXT NOT NULL,
                risk_level TEXT NOT NULL,
                retraction TEXT,
                status TEXT NOT NULL,
                FOREIGN KEY (analysis_id) REFERENCES analyses(id) ON DELETE CASCADE,
                UNIQUE(analysis_id, position),
                CHECK (risk_level IN ({risk_values})),
                CHECK (status IN ({status_values}))
            );

            CREATE INDEX IF NOT EXISTS idx_watchlist_category
                ON watchlist_entries(category);
            CREATE INDEX IF NOT EXISTS idx_watchlist_issn
                ON watchlist_entries(issn);
            CREATE INDEX IF NOT EXISTS idx_analyses_created
                ON analyses(created_at);
            CREATE INDEX IF NOT EXISTS idx_scored_references_analysis
                ON scored_references(analysis_id);
            """
        )
