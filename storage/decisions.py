"""Persistence helpers for per-turn routing decisions."""
from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict

from pydantic import BaseModel, Field

from .sqlite import get_conn


class TurnDecisionPayload(BaseModel):
    conversation_id: str
    node_id: str
    next_node_id: str
    decision: str
    end_conversation: bool = False
    was_example_prompt: bool = False
    used_fallback: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)


def insert_turn_decision(**data: Any) -> int:
    """Insert a turn decision row and return its primary key."""

    payload = TurnDecisionPayload(**data)
    timestamp = dt.datetime.now(dt.timezone.utc).isoformat()
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """INSERT INTO turn_decisions
               (timestamp, conversation_id, node_id, next_node_id, decision,
                end_conversation, was_example_prompt, used_fallback, metadata)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                timestamp,
                payload.conversation_id,
                payload.node_id,
                payload.next_node_id,
                payload.decision,
                int(payload.end_conversation),
                int(payload.was_example_prompt),
                int(payload.used_fallback),
                json.dumps(payload.metadata),
            ),
        )
        return int(cur.lastrowid)
