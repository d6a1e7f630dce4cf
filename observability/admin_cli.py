"""Lightweight CLI helpers for inspecting stored conversations and routing decisions."""
from __future__ import annotations

import argparse
import sqlite3
from typing import List, Optional

from config.settings import settings


def tail_conversations(limit: int = 20) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT c.updated_at, c.id, c.current_node_id, c.ended,
                   (SELECT COUNT(*) FROM conversation_messages m WHERE m.conversation_id = c.id)
            FROM conversations c
            ORDER BY c.updated_at DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, conversation_id, node_id, ended, count = row
            status = "ended" if ended else "open"
            print(f"[{ts}] {conversation_id} at {node_id} ({status}) messages={count}")
    finally:
        conn.close()


def tail_decisions(limit: int = 20, conversation_id: Optional[str] = None) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        query = """
            SELECT timestamp, conversation_id, node_id, next_node_id, decision, end_conversation, used_fallback
            FROM turn_decisions
        """
        params: List[object] = []
        if conversation_id:
            query += " WHERE conversation_id = ?"
            params.append(conversation_id)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        cursor.execute(query, params)
        for row in cursor.fetchall():
            ts, conv_id, node_id, next_node_id, decision, ended, fallback = row
            flags = []
            if ended:
                flags.append("end")
            if fallback:
                flags.append("fallback")
            suffix = f" [{','.join(flags)}]" if flags else ""
            print(f"[{ts}] {conv_id} {node_id} -> {next_node_id} {decision}{suffix}")
    finally:
        conn.close()


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-conversations", type=int, help="Show the most recently updated conversations")
    parser.add_argument("--tail-decisions", type=int, help="Show the latest turn routing decisions")
    parser.add_argument("--conversation", help="Restrict --tail-decisions to one conversation id")
    args = parser.parse_args(argv)

    if args.tail_conversations:
        tail_conversations(args.tail_conversations)
    if args.tail_decisions:
        tail_decisions(args.tail_decisions, args.conversation)


if __name__ == "__main__":
    main()
