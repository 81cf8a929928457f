# SPDX-License-Identifier: MIT
"""SQLite connections for the watchlist and analysis stores.

Every store opens its connections through ``get_configured_connection()``.
WAL journaling lets an analysis be written while the CLI or another worker
reads the watchlists from the same file.
"""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..logging_config import get_detail_logger


detail_logger = get_detail_logger()

BUSY_TIMEOUT_SECONDS = 30.0

_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA temp_store = MEMORY",
)


@contextmanager
def get_configured_connection(
    db_path: str | Path,
    named_rows: bool = False,
    timeout: float = BUSY_TIMEOUT_SECONDS,
) -> Iterator[sqlite3.Connection]:
    """Open a connection with the store PRAGMAs applied; closed on exit.

    Nothing is committed automatically. Wrap writes in ``with conn:``.

    Args:
        db_path: SQLite database file
        named_rows: Return ``sqlite3.Row`` objects instead of tuples
        timeout: Seconds to wait on a locked database

    Example:
        ```python
        with get_configured_connection(store.db_path, named_rows=True) as conn:
            row = conn.execute("SELECT * FROM analyses").fetchone()
            row["input_id"]
        ```
    """
    conn = sqlite3.connect(str(db_path), timeout=timeout)
    try:
        for pragma in _PRAGMAS:
            conn.execute(pragma)
        if named_rows:
            conn.row_factory = sqlite3.Row
        yield conn
    finally:
        conn.close()
