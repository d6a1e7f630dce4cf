"""Conversation lifecycle: start, run one turn, and reload an interview."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from pydantic import BaseModel

from agents.transition_engine import FlowConfig, process_turn
from agents.types import TurnResult, TurnState
from interview_script.loader import get_node_message, load_job_description, load_script
from interview_script.models import InterviewScript, JobDescription
from observability.logger import log_event
from storage import conversations as store
from storage.conversations import ConversationState, Message
from storage.decisions import insert_turn_decision

logger = logging.getLogger(__name__)


class SessionNotFound(LookupError):
    """Raised when a conversation id is unknown to the store."""


class InterviewRecord(BaseModel):
    id: str
    state: ConversationState
    messages: List[Message]


def start_interview(script: Optional[InterviewScript] = None) -> Tuple[str, Message]:
    """Create a conversation at the start node and store the greeting."""

    script = script or load_script()
    greeting = get_node_message(script, script.start_node_id, {})
    conversation_id, message = store.create_conversation(script.start_node_id, greeting)
    log_event("interview_started", conversation_id, node=script.start_node_id)
    return conversation_id, message


def load_interview(conversation_id: str) -> InterviewRecord:
    state = store.get_state(conversation_id)
    if state is None:
        raise SessionNotFound(conversation_id)
    return InterviewRecord(id=conversation_id, state=state, messages=store.get_messages(conversation_id))


def submit_turn(
    conversation_id: str,
    text: str,
    *,
    script: Optional[InterviewScript] = None,
    job: Optional[JobDescription] = None,
    config: Optional[FlowConfig] = None,
) -> TurnResult:
    """Route the candidate message, then persist it along with the reply and new state."""

    state = store.get_state(conversation_id)
    if state is None:
        raise SessionNotFound(conversation_id)
    script = script or load_script()
    job = job or load_job_description()

    turn_state = TurnState(
        current_node_id=state.current_node_id,
        user_data=state.user_data,
        example_attempts=state.example_attempts,
        conversation_ended=state.ended,
    )
    result = process_turn(script, turn_state, text, job=job, config=config, session_id=conversation_id)
    if state.ended:
        # Finished interviews accept no further input; nothing is written.
        return result

    # Nothing is stored until the engine has produced a reply.
    store.append_message(conversation_id, "user", text)

    store.save_state(
        conversation_id,
        ConversationState(
            current_node_id=result.next_node_id,
            user_data=result.user_data,
            example_attempts=result.example_attempts,
            ended=result.end_conversation,
        ),
    )
    store.append_message(conversation_id, "assistant", result.content)
    insert_turn_decision(
        conversation_id=conversation_id,
        node_id=state.current_node_id,
        next_node_id=result.next_node_id,
        decision=result.decision,
        end_conversation=result.end_conversation,
        was_example_prompt=result.was_example_prompt,
        used_fallback=result.used_fallback,
        metadata={"attempts": result.example_attempts.get(state.current_node_id, 0)},
    )
    return result


def restart_interview(conversation_id: str, notice: str, script: Optional[InterviewScript] = None) -> str:
    """Put a conversation back at the start node after a failed turn; returns that node id."""

    script = script or load_script()
    store.save_state(conversation_id, ConversationState(current_node_id=script.start_node_id))
    store.append_message(conversation_id, "assistant", notice)
    log_event("interview_restarted", conversation_id, node=script.start_node_id)
    return script.start_node_id


__all__ = [
    "InterviewRecord",
    "SessionNotFound",
    "load_interview",
    "restart_interview",
    "start_interview",
    "submit_turn",
]
