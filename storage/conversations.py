from __future__ import annotations  # Conversation storage helpers

import datetime as dt
import json
from typing import Any, Dict, List, Literal, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, Field

from .sqlite import get_conn

Role = Literal["user", "assistant"]


class Message(BaseModel):  # One stored chat message
    id: str
    role: Role
    content: str
    timestamp: str


class ConversationState(BaseModel):  # Routing snapshot persisted between turns
    current_node_id: str
    user_data: Dict[str, Any] = Field(default_factory=dict)
    example_attempts: Dict[str, int] = Field(default_factory=dict)
    ended: bool = False


class ConversationSummary(BaseModel):  # Listing row for past interviews
    id: str
    created_at: str
    updated_at: str
    current_node_id: str
    ended: bool
    message_count: int
    candidate_name: Optional[str] = None
    last_message: Optional[str] = None


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds")


def create_conversation(start_node_id: str, greeting: str) -> Tuple[str, Message]:
    """Create a conversation at ``start_node_id`` seeded with the greeting message."""

    conversation_id = uuid4().hex
    now = _now()
    with get_conn() as conn:
        conn.execute(
            """
            INSERT INTO conversations (id, created_at, updated_at, current_node_id, user_data, example_attempts, ended)
            VALUES (?, ?, ?, ?, '{}', '{}', 0)
            """,
            (conversation_id, now, now, start_node_id),
        )
    message = append_message(conversation_id, "assistant", greeting)
    return conversation_id, message


def list_conversations() -> List[ConversationSummary]:
    """List conversations, newest first."""

    with get_conn() as conn:
        rows = conn.execute(
            """
            SELECT c.id, c.created_at, c.updated_at, c.current_node_id, c.user_data, c.ended,
                   (SELECT COUNT(*) FROM conversation_messages m WHERE m.conversation_id = c.id) AS message_count,
                   (SELECT content FROM conversation_messages m WHERE m.conversation_id = c.id
                    ORDER BY m.id DESC LIMIT 1) AS last_message
            FROM conversations c
            ORDER BY c.created_at DESC, c.rowid DESC
            """
        ).fetchall()
    return [
        ConversationSummary(
            id=row["id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            current_node_id=row["current_node_id"],
            ended=bool(row["ended"]),
            message_count=int(row["message_count"]),
            candidate_name=json.loads(row["user_data"]).get("name"),
            last_message=row["last_message"],
        )
        for row in rows
    ]


def conversation_exists(conversation_id: str) -> bool:
    with get_conn() as conn:
        row = conn.execute("SELECT 1 FROM conversations WHERE id = ?", (conversation_id,)).fetchone()
    return row is not None


def append_message(conversation_id: str, role: Role, content: str) -> Message:
    """Append one message; ordering follows insertion."""

    message = Message(id=uuid4().hex, role=role, content=content, timestamp=_now())
    with get_conn() as conn:
        conn.execute(
            """
            INSERT INTO conversation_messages (message_id, conversation_id, role, content, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (message.id, conversation_id, message.role, message.content, message.timestamp),
        )
    return message


def get_messages(conversation_id: str) -> List[Message]:
    with get_conn() as conn:
        rows = conn.execute(
            """
            SELECT message_id, role, content, timestamp
            FROM conversation_messages
            WHERE conversation_id = ?
            ORDER BY id ASC
            """,
            (conversation_id,),
        ).fetchall()
    return [
        Message(id=row["message_id"], role=row["role"], content=row["content"], timestamp=row["timestamp"])
        for row in rows
    ]


def message_count(conversation_id: str) -> int:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT COUNT(*) AS n FROM conversation_messages WHERE conversation_id = ?",
            (conversation_id,),
        ).fetchone()
    return int(row["n"])


def get_state(conversation_id: str) -> Optional[ConversationState]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT current_node_id, user_data, example_attempts, ended FROM conversations WHERE id = ?",
            (conversation_id,),
        ).fetchone()
    if row is None:
        return None
    return ConversationState(
        current_node_id=row["current_node_id"],
        user_data=json.loads(row["user_data"]),
        example_attempts=json.loads(row["example_attempts"]),
        ended=bool(row["ended"]),
    )


def save_state(conversation_id: str, state: ConversationState) -> None:
    """Overwrite the stored snapshot (last write wins).

    Raises:
        KeyError: If the conversation does not exist.
    """

    with get_conn() as conn:
        cur = conn.execute(
            """
            UPDATE conversations
            SET current_node_id = ?, user_data = ?, example_attempts = ?, ended = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                state.current_node_id,
                json.dumps(state.user_data),
                json.dumps(state.example_attempts),
                int(state.ended),
                _now(),
                conversation_id,
            ),
        )
        if cur.rowcount == 0:
            raise KeyError(f"Unknown conversation: {conversation_id}")


__all__ = [
    "ConversationState",
    "ConversationSummary",
    "Message",
    "Role",
    "append_message",
    "conversation_exists",
    "create_conversation",
    "get_messages",
    "get_state",
    "list_conversations",
    "message_count",
    "save_state",
]
