"""FastAPI routes for the chat turn endpoint and stored interviews."""
from __future__ import annotations

import logging
from typing import Any, List
from uuid import uuid4

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from agents.transition_engine import process_turn
from agents.types import TurnState
from api.schemas import (
    ChatRequest,
    ChatResponse,
    InterviewDetail,
    InterviewSummaryOut,
    MessageOut,
    StartInterviewResponse,
    TurnRequest,
)
from interview_script.loader import get_node_message, load_job_description, load_script
from services.sessions import SessionNotFound, load_interview, restart_interview, start_interview, submit_turn
from storage.conversations import list_conversations

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "I apologize, but I encountered an error processing your message. Let's start over."

router = APIRouter(prefix="/api")


def _message_id() -> str:
    return uuid4().hex


def _greeting() -> ChatResponse:
    script = load_script()
    return ChatResponse(
        id=_message_id(),
        content=get_node_message(script, script.start_node_id, {}),
        next_node_id=script.start_node_id,
    )


def _chat_turn(req: ChatRequest) -> ChatResponse:
    last = req.last_user_message()
    if last is None:
        return _greeting()
    state = TurnState(
        current_node_id=req.current_node_id,
        user_data=req.user_data,
        example_attempts=req.example_attempts,
        conversation_ended=req.conversation_ended,
    )
    result = process_turn(load_script(), state, last.content, job=load_job_description())
    return ChatResponse.from_result(_message_id(), result)


@router.post("/chat", response_model=ChatResponse)
async def chat(request: Request) -> ChatResponse:
    try:
        body: Any = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid request format")
    if not isinstance(body, dict) or not isinstance(body.get("messages"), list):
        raise HTTPException(status_code=400, detail="Messages must be an array")
    try:
        req = ChatRequest.model_validate(body)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid request format")

    try:
        return await run_in_threadpool(_chat_turn, req)
    except Exception:  # noqa: BLE001
        logger.exception("Unhandled error in chat turn")
        return ChatResponse(
            id=_message_id(),
            content=UNEXPECTED_ERROR_MESSAGE,
            next_node_id=load_script().start_node_id,
        )


@router.post("/interviews", response_model=StartInterviewResponse, status_code=201)
def create_interview() -> StartInterviewResponse:
    conversation_id, message = start_interview()
    return StartInterviewResponse(id=conversation_id, message=MessageOut(**message.model_dump()))


@router.get("/interviews", response_model=List[InterviewSummaryOut])
def list_interviews() -> List[InterviewSummaryOut]:
    return [InterviewSummaryOut(**summary.model_dump()) for summary in list_conversations()]


@router.get("/interviews/{conversation_id}", response_model=InterviewDetail)
def get_interview(conversation_id: str) -> InterviewDetail:
    try:
        record = load_interview(conversation_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Interview not found")
    return InterviewDetail(
        id=record.id,
        current_node_id=record.state.current_node_id,
        user_data=record.state.user_data,
        example_attempts=record.state.example_attempts,
        ended=record.state.ended,
        messages=[MessageOut(**message.model_dump()) for message in record.messages],
    )


@router.post("/interviews/{conversation_id}/turns", response_model=ChatResponse)
def post_turn(conversation_id: str, req: TurnRequest) -> ChatResponse:
    if not req.content.strip():
        raise HTTPException(status_code=400, detail="Message content is required")
    try:
        result = submit_turn(conversation_id, req.content)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Interview not found")
    except Exception:  # noqa: BLE001
        logger.exception("Unhandled error in interview turn for %s", conversation_id)
        return ChatResponse(
            id=_message_id(),
            content=UNEXPECTED_ERROR_MESSAGE,
            next_node_id=restart_interview(conversation_id, UNEXPECTED_ERROR_MESSAGE),
        )
    return ChatResponse.from_result(_message_id(), result)
