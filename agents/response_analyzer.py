"""LLM-backed answer analysis with a matcher-only fallback."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from agents.pattern_matchers import is_no_experience
from agents.prompts import (
    ANALYZER_SYSTEM_PROMPT,
    ANSWER_SYSTEM_PROMPT,
    build_analysis_prompt,
    build_question_prompt,
)
from agents.types import StructuredAnalysis
from config.registry import ANALYZER_KEY, ANSWER_KEY, get_model
from interview_script.loader import load_job_description
from interview_script.models import JobDescription, ScriptNode
from llm_gateway import ModelError, strip_code_fences
from observability.logger import log_event
from observability.tracing import span

logger = logging.getLogger(__name__)

QUESTION_FALLBACK = "I don't have specific information about that, but I'd be happy to discuss the role further."

_MODEL_FAILURES = (KeyError, ModelError, TimeoutError)


def _invoke(key: str, system_prompt: str, prompt: str, session_id: Optional[str]) -> Any:
    model = get_model(key)
    messages: List[Dict[str, str]] = [{"role": "user", "content": prompt}]
    with span(key, session_id):
        return model(system_prompt=system_prompt, messages=messages)


def parse_analysis(raw: Any) -> StructuredAnalysis:
    """Validate model output; raises ``ValidationError`` when it is unusable."""

    if isinstance(raw, dict):
        return StructuredAnalysis.model_validate(raw)
    if not isinstance(raw, str):
        raise TypeError(f"Unsupported analysis payload: {type(raw).__name__}")
    cleaned = strip_code_fences(raw)
    try:
        return StructuredAnalysis.model_validate_json(cleaned)
    except ValidationError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise
        # Prose around the object is common; retry on the outermost braces.
        return StructuredAnalysis.model_validate_json(cleaned[start : end + 1])


def analyze_response(
    node: ScriptNode,
    user_text: str,
    node_id: Optional[str] = None,
    attempt_count: int = 0,
    *,
    session_id: Optional[str] = None,
) -> StructuredAnalysis:
    node_id = node_id or node.id
    no_experience = is_no_experience(user_text)
    prompt = build_analysis_prompt(node, user_text, node_id, attempt_count, has_no_experience=no_experience)
    try:
        raw = _invoke(ANALYZER_KEY, ANALYZER_SYSTEM_PROMPT, prompt, session_id)
        analysis = parse_analysis(raw)
    except _MODEL_FAILURES + (TypeError, ValidationError) as exc:
        logger.warning("Analysis fell back for node=%s: %s", node_id, exc)
        log_event("analysis", session_id, node=node_id, fallback=True, reason=type(exc).__name__)
        return StructuredAnalysis.fallback_for(user_text, attempt_count)
    log_event(
        "analysis",
        session_id,
        node=node_id,
        fallback=False,
        relevance=analysis.relevance,
        clarity=analysis.clarity,
    )
    return analysis


def answer_candidate_question(
    question: str,
    job: Optional[JobDescription] = None,
    *,
    session_id: Optional[str] = None,
) -> str:
    job = job or load_job_description()
    prompt = build_question_prompt(question, job)
    try:
        answer = _invoke(ANSWER_KEY, ANSWER_SYSTEM_PROMPT, prompt, session_id)
    except _MODEL_FAILURES as exc:
        logger.warning("Question answering fell back: %s", exc)
        log_event("question_answer", session_id, fallback=True, reason=type(exc).__name__)
        return QUESTION_FALLBACK
    if not isinstance(answer, str) or not answer.strip():
        return QUESTION_FALLBACK
    log_event("question_answer", session_id, fallback=False)
    return answer.strip()


__all__ = ["QUESTION_FALLBACK", "analyze_response", "answer_candidate_question", "parse_analysis"]
