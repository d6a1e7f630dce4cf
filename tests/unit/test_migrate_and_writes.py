"""Tests for the SQLite migration and conversation write helpers."""
from __future__ import annotations

import json
import os
import sqlite3

import pytest

from storage.conversations import (
    ConversationState,
    append_message,
    conversation_exists,
    create_conversation,
    get_messages,
    get_state,
    list_conversations,
    message_count,
    save_state,
)
from storage.decisions import insert_turn_decision
from storage.migrate import migrate


def test_migrate_is_idempotent(tmp_db: str):
    migrate(tmp_db)
    migrate(tmp_db)
    assert os.path.exists(tmp_db)
    with sqlite3.connect(tmp_db) as conn:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"conversations", "conversation_messages", "turn_decisions"} <= tables


def test_create_and_append_messages():
    conversation_id, greeting = create_conversation("greeting", "Hello!")
    assert greeting.role == "assistant"
    assert conversation_exists(conversation_id)
    assert not conversation_exists("missing")

    append_message(conversation_id, "user", "Yes")
    append_message(conversation_id, "assistant", "What is your name?")

    messages = get_messages(conversation_id)
    assert [m.content for m in messages] == ["Hello!", "Yes", "What is your name?"]
    assert [m.role for m in messages] == ["assistant", "user", "assistant"]
    assert message_count(conversation_id) == 3
    assert get_messages("missing") == []


def test_state_round_trip():
    conversation_id, _ = create_conversation("greeting", "Hello!")
    initial = get_state(conversation_id)
    assert initial == ConversationState(current_node_id="greeting")

    state = ConversationState(
        current_node_id="salary",
        user_data={"name": "Alice", "pythonRating": 8},
        example_attempts={"salary": 1},
        ended=False,
    )
    save_state(conversation_id, state)
    assert get_state(conversation_id) == state
    assert get_state("missing") is None


def test_save_state_unknown_conversation():
    with pytest.raises(KeyError):
        save_state("missing", ConversationState(current_node_id="greeting"))


def test_list_conversations_summaries():
    first, _ = create_conversation("greeting", "Hello!")
    second, _ = create_conversation("greeting", "Hello again!")
    save_state(second, ConversationState(current_node_id="ending", user_data={"name": "Bo"}, ended=True))
    append_message(second, "assistant", "Bye")

    summaries = {summary.id: summary for summary in list_conversations()}
    assert set(summaries) == {first, second}
    assert summaries[second].ended is True
    assert summaries[second].candidate_name == "Bo"
    assert summaries[second].last_message == "Bye"
    assert summaries[second].message_count == 2
    assert summaries[first].candidate_name is None


def test_insert_turn_decision(tmp_db: str):
    row_id = insert_turn_decision(
        conversation_id="c1",
        node_id="salary",
        next_node_id="negotiate-salary",
        decision="advance",
        metadata={"attempts": 0},
    )
    assert row_id > 0
    with sqlite3.connect(tmp_db) as conn:
        row = conn.execute(
            "SELECT node_id, next_node_id, decision, end_conversation, metadata FROM turn_decisions WHERE id=?",
            (row_id,),
        ).fetchone()
    assert row == ("salary", "negotiate-salary", "advance", 0, json.dumps({"attempts": 0}))


def test_invalid_decision_payload_raises():
    with pytest.raises(Exception):
        insert_turn_decision(conversation_id="c1", node_id="salary", decision="advance")
