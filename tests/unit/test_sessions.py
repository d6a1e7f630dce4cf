import sqlite3

import pytest

from services.sessions import SessionNotFound, load_interview, restart_interview, start_interview, submit_turn
from storage.conversations import get_state, message_count


def _decisions(db_path, conversation_id):
    with sqlite3.connect(db_path) as conn:
        return conn.execute(
            "SELECT node_id, next_node_id, decision FROM turn_decisions WHERE conversation_id=? ORDER BY id",
            (conversation_id,),
        ).fetchall()


def test_start_interview_stores_greeting(script):
    conversation_id, message = start_interview()
    assert message.content == script.start_node.message
    record = load_interview(conversation_id)
    assert record.state.current_node_id == "greeting"
    assert [m.content for m in record.messages] == [message.content]


def test_submit_turn_persists_state_messages_and_decision(tmp_db):
    conversation_id, _ = start_interview()
    result = submit_turn(conversation_id, "Yes")
    assert result.next_node_id == "name"

    state = get_state(conversation_id)
    assert state.current_node_id == "name"
    assert state.example_attempts == {"name": 0}
    assert message_count(conversation_id) == 3
    assert _decisions(tmp_db, conversation_id) == [("greeting", "name", "advance")]

    submit_turn(conversation_id, "I'm Alice")
    assert get_state(conversation_id).user_data == {"name": "Alice"}


def test_ended_interview_ignores_input(tmp_db):
    conversation_id, _ = start_interview()
    submit_turn(conversation_id, "I want to quit")
    state = get_state(conversation_id)
    assert state.ended is True
    count = message_count(conversation_id)

    result = submit_turn(conversation_id, "wait, come back")
    assert result.decision == "terminal_noop"
    assert result.end_conversation is True
    assert message_count(conversation_id) == count
    assert get_state(conversation_id) == state
    assert len(_decisions(tmp_db, conversation_id)) == 1


def test_unknown_interview():
    with pytest.raises(SessionNotFound):
        submit_turn("missing", "hello")
    with pytest.raises(SessionNotFound):
        load_interview("missing")


def test_failed_turn_writes_nothing(tmp_db, monkeypatch):
    conversation_id, _ = start_interview()

    def explode(*_args, **_kwargs):
        raise RuntimeError("engine down")

    monkeypatch.setattr("services.sessions.process_turn", explode)
    with pytest.raises(RuntimeError):
        submit_turn(conversation_id, "Yes")

    assert message_count(conversation_id) == 1
    assert get_state(conversation_id).current_node_id == "greeting"
    assert _decisions(tmp_db, conversation_id) == []


def test_restart_interview_returns_to_start():
    conversation_id, _ = start_interview()
    submit_turn(conversation_id, "Yes")
    assert restart_interview(conversation_id, "Starting over.") == "greeting"
    record = load_interview(conversation_id)
    assert record.state.current_node_id == "greeting"
    assert record.state.user_data == {}
    assert record.messages[-1].content == "Starting over."
