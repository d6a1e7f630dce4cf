"""SQLite connection helper shared by the conversation store and migrations."""
from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from config.settings import settings

BUSY_TIMEOUT_S = 5.0


@contextmanager
def get_conn(db_path: Optional[str] = None) -> Iterator[sqlite3.Connection]:
    """Connection to ``db_path`` (default ``settings.DB_PATH``), committed when the block succeeds.

    Rows come back as ``sqlite3.Row`` so callers read columns by name.
    """

    path = db_path or settings.DB_PATH
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    conn = sqlite3.connect(path, timeout=BUSY_TIMEOUT_S)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()
