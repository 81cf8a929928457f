# SPDX-License-Identifier: MIT
"""SQLite persistence for watchlists and finished analyses."""

from .analysis_store import AnalysisStore
from .schema import init_database
from .watchlist_store import SQLiteWatchlistStore


__all__ = ["AnalysisStore", "SQLiteWatchlistStore", "init_database"]
