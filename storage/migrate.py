"""SQLite schema migrations."""
from __future__ import annotations

from typing import Iterable

from .sqlite import get_conn

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS conversations (
  id TEXT PRIMARY KEY,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  current_node_id TEXT NOT NULL,
  user_data TEXT NOT NULL,
  example_attempts TEXT NOT NULL,
  ended INTEGER NOT NULL DEFAULT 0
);
""",
    """
CREATE TABLE IF NOT EXISTS conversation_messages (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  message_id TEXT NOT NULL,
  conversation_id TEXT NOT NULL,
  role TEXT NOT NULL,
  content TEXT NOT NULL,
  timestamp TEXT NOT NULL
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_messages_conversation
  ON conversation_messages (conversation_id, id);
""",
    """
CREATE TABLE IF NOT EXISTS turn_decisions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  conversation_id TEXT NOT NULL,
  node_id TEXT NOT NULL,
  next_node_id TEXT NOT NULL,
  decision TEXT NOT NULL,
  end_conversation INTEGER NOT NULL,
  was_example_prompt INTEGER NOT NULL,
  used_fallback INTEGER NOT NULL,
  metadata TEXT
);
""",
]


def migrate(db_path: str = "data/interviews.db") -> None:
    """Apply schema migrations to the SQLite database."""

    with get_conn(db_path) as conn:
        for stmt in SCHEMA:
            conn.execute(stmt)


if __name__ == "__main__":
    from config.settings import settings

    migrate(settings.DB_PATH)
