"""Turn-by-turn routing over the interview script graph.

``process_turn`` takes the caller's conversation snapshot and one candidate
message and returns the next snapshot plus the assistant reply. Cheap
phrase checks run first; the model-backed analysis only runs when none of
them settles the turn. Inputs are never mutated.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from agents.pattern_matchers import (
    detect_role,
    extract_name,
    extract_rating,
    extract_salary,
    has_no_react_experience,
    is_disinterested,
    is_no_experience,
    is_question,
    is_role_disinterested,
    is_short_or_vague,
    is_unsure_about_role,
    is_vague_role_response,
    yes_no_polarity,
)
from agents.response_analyzer import analyze_response, answer_candidate_question
from agents.types import DecisionType, StructuredAnalysis, TurnResult, TurnState
from config.settings import settings
from interview_script.loader import find_next_non_category_node, get_node_message
from interview_script.models import Branch, InterviewScript, JobDescription, ScriptNode
from observability.logger import log_event

logger = logging.getLogger(__name__)

FAREWELL_MESSAGE = (
    "I understand you're no longer interested in continuing this interview. "
    "Thank you for your time and best of luck with your job search!"
)
ROLES_FAREWELL_MESSAGE = (
    "I understand you're not interested in these roles. "
    "Thank you for your time and best of luck with your job search!"
)
VAGUE_ROLE_MESSAGE = (
    "Could you please specify which type of developer role you're interested in? "
    "We have Backend Developer (Python/Django), Frontend Developer (React), "
    "or Full Stack Engineer positions available."
)
SCRIPT_ERROR_MESSAGE = "I apologize, but I encountered an error with the interview script. Let's start over."
NO_REACT_PREFIX = "I understand you don't have experience with React. Let's move on to another topic."
FORCED_ADVANCE_PREFIX = "I understand this isn't your area of expertise. Let's move on to the next question."
NO_EXAMPLE_PREFIX = "I understand. Let's move on to the next question."
CATEGORY_SKIP_PREFIX = "I understand. Let's move on to a different topic."
EXAMPLE_OFFER_TEMPLATE = (
    'I understand you might not be sure about this. Let me help with an example: "{example}". '
    "Could you try to share your thoughts on this topic?"
)
RATING_REPROMPT = "Could you please provide a numerical rating from 1 to 10?"
SALARY_REPROMPT_TEMPLATE = (
    "I need to understand your salary expectations. Could you provide a specific number? "
    'For example: "{example}"'
)
DEFAULT_SALARY_EXAMPLE = "$90,000"


class FlowConfig(BaseModel):
    """Node names and lookup tables the router depends on."""

    name_node: str = "name"
    role_preference_node: str = "role-preference"
    suggest_roles_node: str = "suggest-roles"
    salary_node: str = "salary"
    disinterest_node: str = "end-not-interested"
    final_node: str = "ending"
    default_skip_node: str = "debugging-approach"
    protected_nodes: List[str] = Field(
        default_factory=lambda: ["name", "salary", "greeting", "role-preference", "suggest-roles"]
    )
    react_nodes: List[str] = Field(default_factory=lambda: ["react-rating", "react-project"])
    react_category: str = "react"
    react_low_rating: int = 2
    rating_fields: Dict[str, str] = Field(
        default_factory=lambda: {"python-rating": "pythonRating", "react-rating": "reactRating"}
    )
    category_entry_nodes: Dict[str, str] = Field(
        default_factory=lambda: {
            "python": "python-rating",
            "react": "react-rating",
            "debugging": "debugging-approach",
            "quality": "code-quality",
            "salary": "salary",
            "process": "agile-experience",
            "learning": "staying-updated",
            "conclusion": "candidate-questions",
        }
    )
    max_salary: float = Field(default_factory=lambda: settings.DEFAULT_MAX_SALARY)
    low_score_cutoff: float = Field(default_factory=lambda: settings.LOW_SCORE_CUTOFF)
    max_example_attempts: int = Field(default_factory=lambda: settings.MAX_EXAMPLE_ATTEMPTS, ge=1)

    @property
    def role_nodes(self) -> List[str]:
        return [self.role_preference_node, self.suggest_roles_node]


class Successor(BaseModel):
    """Outcome of the per-response-type rules for one answer."""

    next_node_id: str
    end_conversation: bool = False
    follow_up: Optional[str] = None
    dead_end: bool = False


def _with_example(message: str, node: ScriptNode) -> str:
    if node.first_example:
        return f'{message} For example: "{node.first_example}"'
    return message


def short_answer_follow_up(node: ScriptNode) -> str:
    return _with_example("Could you please provide more details?", node)


def low_relevance_follow_up(node: ScriptNode) -> str:
    topic = re.sub(r"[^a-zA-Z0-9 ]", "", node.message.lower()).strip()
    return _with_example(f"I need a bit more information about {topic}.", node)


def salary_branch(node: ScriptNode, amount: float, config: FlowConfig) -> Optional[Branch]:
    rules = node.validation_rules
    ceiling = rules.max if rules is not None and rules.max else config.max_salary
    return node.branch_for("within_range" if amount <= ceiling else "above_range")


def _rating_successor(
    script: InterviewScript, node: ScriptNode, text: str, user_data: Dict[str, Any], config: FlowConfig
) -> Successor:
    rating = extract_rating(text)
    if rating is None:
        return Successor(next_node_id=node.id, follow_up=RATING_REPROMPT)
    user_data[config.rating_fields.get(node.id, node.id)] = rating
    if node.category == config.react_category and rating <= config.react_low_rating:
        return Successor(next_node_id=find_next_non_category_node(script, node.id, config.react_category))
    if node.next_node_id:
        return Successor(next_node_id=node.next_node_id)
    return _dead_end(config)


def _salary_successor(node: ScriptNode, text: str, user_data: Dict[str, Any], config: FlowConfig) -> Successor:
    amount = extract_salary(text)
    if amount is None:
        example = node.first_example or DEFAULT_SALARY_EXAMPLE
        return Successor(next_node_id=node.id, follow_up=SALARY_REPROMPT_TEMPLATE.format(example=example))
    user_data["salary"] = amount
    branch = salary_branch(node, amount, config)
    if branch is not None:
        return Successor(next_node_id=branch.next_node_id, end_conversation=branch.end_conversation)
    if node.next_node_id:
        return Successor(next_node_id=node.next_node_id)
    return _dead_end(config)


def _dead_end(config: FlowConfig) -> Successor:
    return Successor(next_node_id=config.final_node, end_conversation=True, dead_end=True)


def resolve_successor(
    script: InterviewScript,
    node: ScriptNode,
    text: str,
    user_data: Dict[str, Any],
    config: Optional[FlowConfig] = None,
) -> Successor:
    """Per-response-type successor rules; may record ratings/salary into ``user_data``."""

    config = config or FlowConfig()
    if node.is_terminal:
        return _dead_end(config)
    no_experience = is_no_experience(text)

    # process_turn settles these two cases earlier; they serve direct callers.
    if no_experience and node.id in config.react_nodes:
        return Successor(next_node_id=find_next_non_category_node(script, node.id, config.react_category))
    if no_experience and node.id not in config.protected_nodes and node.next_node_id:
        return Successor(next_node_id=node.next_node_id)

    if node.response_type == "rating":
        return _rating_successor(script, node, text, user_data, config)
    if node.response_type == "salary":
        return _salary_successor(node, text, user_data, config)

    follow_up = None
    if (
        node.response_type == "open"
        and node.id not in config.protected_nodes
        and is_short_or_vague(text)
        and not no_experience
    ):
        follow_up = short_answer_follow_up(node)

    if node.next_node_id and not node.branches:
        return Successor(next_node_id=node.next_node_id, follow_up=follow_up)

    if node.response_type == "yes-no":
        branch = node.branch_for(yes_no_polarity(text))
        if branch is not None:
            return Successor(next_node_id=branch.next_node_id, end_conversation=branch.end_conversation)
    elif node.response_type == "open" and node.id in config.role_nodes:
        if is_role_disinterested(text):
            return Successor(next_node_id=config.disinterest_node, end_conversation=True)
        if node.id == config.role_preference_node:
            condition = "unsure" if is_unsure_about_role(text) else "specific_role"
            branch = node.branch_for(condition)
            if branch is not None:
                return Successor(next_node_id=branch.next_node_id, end_conversation=branch.end_conversation)

    if node.next_node_id:
        return Successor(next_node_id=node.next_node_id, follow_up=follow_up)
    return _dead_end(config)


class _Turn:
    """One candidate message evaluated against one node."""

    def __init__(
        self,
        script: InterviewScript,
        state: TurnState,
        node: ScriptNode,
        text: str,
        config: FlowConfig,
        job: Optional[JobDescription],
        session_id: Optional[str],
    ) -> None:
        self.script = script
        self.state = state
        self.node = node
        self.text = text
        self.config = config
        self.job = job
        self.session_id = session_id
        self.user_data: Dict[str, Any] = dict(state.user_data)
        self.attempts = state.attempts_for(node.id)
        self.used_fallback = False

    # ------------------------------------------------------------------
    # Result builders
    # ------------------------------------------------------------------
    def _result(
        self,
        content: str,
        next_node_id: str,
        decision: DecisionType,
        *,
        end: bool = False,
        example_prompt: bool = False,
        follow_up: bool = False,
    ) -> TurnResult:
        attempts = dict(self.state.example_attempts)
        if example_prompt:
            attempts[self.node.id] = attempts.get(self.node.id, 0) + 1
        elif next_node_id != self.node.id:
            attempts[next_node_id] = 0
        return TurnResult(
            content=content,
            next_node_id=next_node_id,
            user_data=self.user_data,
            end_conversation=end or next_node_id == self.config.final_node,
            was_example_prompt=example_prompt,
            needs_follow_up=follow_up,
            example_attempts=attempts,
            decision=decision,
            used_fallback=self.used_fallback,
        )

    def _stay(self, content: str, decision: DecisionType, *, example_prompt: bool = False, follow_up: bool = False) -> TurnResult:
        return self._result(content, self.node.id, decision, example_prompt=example_prompt, follow_up=follow_up)

    def _move(self, target: str, decision: DecisionType, *, prefix: str = "", end: bool = False) -> TurnResult:
        message = get_node_message(self.script, target, self.user_data)
        content = f"{prefix} {message}" if prefix else message
        return self._result(content, target, decision, end=end)

    def _end(self, content: str, decision: DecisionType) -> TurnResult:
        return self._result(content, self.config.disinterest_node, decision, end=True)

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------
    @property
    def _offers_help(self) -> bool:
        return self.node.id not in self.config.protected_nodes and bool(self.node.next_node_id)

    @property
    def _attempts_exhausted(self) -> bool:
        return self.attempts >= self.config.max_example_attempts

    def _no_experience(self, next_node_id: str) -> TurnResult:
        if self._attempts_exhausted:
            return self._move(next_node_id, "forced_advance", prefix=FORCED_ADVANCE_PREFIX)
        if self.node.first_example:
            content = EXAMPLE_OFFER_TEMPLATE.format(example=self.node.first_example)
            return self._stay(content, "example_offer", example_prompt=True)
        return self._move(next_node_id, "no_example_advance", prefix=NO_EXAMPLE_PREFIX)

    def _fast_path(self) -> Optional[TurnResult]:
        node_id, text, config = self.node.id, self.text, self.config
        if is_disinterested(text):
            return self._end(FAREWELL_MESSAGE, "disinterest_end")
        if is_question(text):
            answer = answer_candidate_question(text, self.job, session_id=self.session_id)
            return self._result(answer, node_id, "question_answered")
        if node_id in config.role_nodes:
            if is_role_disinterested(text):
                return self._end(ROLES_FAREWELL_MESSAGE, "role_disinterest_end")
            if is_vague_role_response(text):
                return self._stay(VAGUE_ROLE_MESSAGE, "vague_role")
            if node_id == config.role_preference_node and is_unsure_about_role(text):
                return self._move(config.suggest_roles_node, "role_unsure")
        if node_id in config.react_nodes and has_no_react_experience(text):
            target = find_next_non_category_node(self.script, node_id, config.react_category)
            return self._move(target, "react_skip", prefix=NO_REACT_PREFIX)
        if is_no_experience(text) and self._offers_help and self.node.next_node_id:
            return self._no_experience(self.node.next_node_id)
        return None

    def _record(self, analysis: StructuredAnalysis) -> None:
        info = analysis.extracted_info
        node_id, config = self.node.id, self.config
        if node_id == config.name_node:
            name = info.name or extract_name(self.text)
            if name:
                self.user_data["name"] = name
        if node_id in config.role_nodes:
            position = info.position or detect_role(self.text)
            if position:
                self.user_data["position"] = position
        if node_id == config.salary_node and info.salary:
            self.user_data["salary"] = info.salary

    def _category_target(self, category: str) -> Optional[str]:
        target = self.config.category_entry_nodes.get(category.lower(), self.config.default_skip_node)
        if target not in self.script.nodes:
            target = self.config.default_skip_node
        # A skip that lands on the current node would loop.
        if target == self.node.id or target not in self.script.nodes:
            return None
        return target

    def _analyzed(self, analysis: StructuredAnalysis) -> Optional[TurnResult]:
        info = analysis.extracted_info
        node, config = self.node, self.config
        on_role_node = node.id in config.role_nodes

        if info.is_disinterested:
            if on_role_node:
                return self._end(ROLES_FAREWELL_MESSAGE, "role_disinterest_end")
            return self._end(FAREWELL_MESSAGE, "disinterest_end")
        if info.should_move_on and node.next_node_id:
            return self._move(node.next_node_id, "forced_advance", prefix=FORCED_ADVANCE_PREFIX)
        if on_role_node and info.is_vague:
            return self._stay(VAGUE_ROLE_MESSAGE, "vague_role")

        self._record(analysis)

        if info.should_skip_category and info.skip_to_category:
            target = self._category_target(info.skip_to_category)
            if target is not None:
                return self._move(target, "category_skip", prefix=CATEGORY_SKIP_PREFIX)
        if node.id == config.role_preference_node and info.is_unsure:
            return self._move(config.suggest_roles_node, "role_unsure")
        if node.id == config.salary_node and info.salary:
            branch = salary_branch(node, info.salary, config)
            if branch is not None:
                return self._move(branch.next_node_id, "salary_range", end=branch.end_conversation)
        if info.has_no_experience and self._offers_help and not self._attempts_exhausted and node.next_node_id:
            return self._no_experience(node.next_node_id)

        low_scores = analysis.relevance < config.low_score_cutoff or analysis.clarity < config.low_score_cutoff
        if low_scores and not info.has_no_experience and not self._attempts_exhausted and not node.is_terminal:
            return self._stay(low_relevance_follow_up(node), "follow_up", example_prompt=True, follow_up=True)
        return None

    def _successor(self) -> TurnResult:
        outcome = resolve_successor(self.script, self.node, self.text, self.user_data, self.config)
        if outcome.follow_up is not None:
            reprompt = outcome.next_node_id == self.node.id and self.node.response_type in ("rating", "salary")
            if reprompt:
                return self._stay(outcome.follow_up, "reprompt", example_prompt=True, follow_up=True)
            if not self._attempts_exhausted:
                return self._stay(outcome.follow_up, "follow_up", example_prompt=True, follow_up=True)
        decision: DecisionType = "dead_end" if outcome.dead_end else "advance"
        return self._move(outcome.next_node_id, decision, end=outcome.end_conversation)

    def run(self) -> TurnResult:
        result = self._fast_path()
        if result is not None:
            return result
        analysis = analyze_response(self.node, self.text, self.node.id, self.attempts, session_id=self.session_id)
        self.used_fallback = analysis.fallback
        result = self._analyzed(analysis)
        if result is not None:
            return result
        return self._successor()


def process_turn(
    script: InterviewScript,
    state: TurnState,
    user_text: str,
    *,
    job: Optional[JobDescription] = None,
    config: Optional[FlowConfig] = None,
    session_id: Optional[str] = None,
) -> TurnResult:
    """Decide the reply and next snapshot for one candidate message."""

    config = config or FlowConfig()
    node_id = state.current_node_id or script.start_node_id

    if state.conversation_ended:
        result = TurnResult(
            content=get_node_message(script, node_id, state.user_data),
            next_node_id=node_id,
            user_data=dict(state.user_data),
            end_conversation=True,
            example_attempts=dict(state.example_attempts),
            decision="terminal_noop",
        )
    else:
        node = script.get(node_id)
        if node is None:
            logger.error("Node %s not found in script", node_id)
            result = TurnResult(
                content=SCRIPT_ERROR_MESSAGE,
                next_node_id=script.start_node_id,
                decision="script_reset",
            )
        else:
            result = _Turn(script, state, node, user_text or "", config, job, session_id).run()

    log_event(
        "turn",
        session_id,
        node=node_id,
        next_node=result.next_node_id,
        decision=result.decision,
        end=result.end_conversation,
        fallback=result.used_fallback,
    )
    return result


__all__ = [
    "FlowConfig",
    "Successor",
    "process_turn",
    "resolve_successor",
    "low_relevance_follow_up",
    "short_answer_follow_up",
]
