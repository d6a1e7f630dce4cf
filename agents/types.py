"""Shared type definitions for the interview engine."""
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agents.pattern_matchers import extract_salary, is_no_experience

DecisionType = Literal[
    "terminal_noop",
    "script_reset",
    "disinterest_end",
    "role_disinterest_end",
    "question_answered",
    "vague_role",
    "role_unsure",
    "react_skip",
    "example_offer",
    "forced_advance",
    "no_example_advance",
    "category_skip",
    "salary_range",
    "follow_up",
    "reprompt",
    "advance",
    "dead_end",
]


class _Camel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ExtractedInfo(_Camel):
    name: Optional[str] = None
    position: Optional[str] = None
    salary: Optional[float] = None
    is_yes: bool = Field(default=False, alias="isYes")
    has_no_experience: bool = Field(default=False, alias="hasNoExperience")
    is_disinterested: bool = Field(default=False, alias="isDisinterested")
    is_vague: bool = Field(default=False, alias="isVague")
    is_unsure: bool = Field(default=False, alias="isUnsure")
    should_skip_category: bool = Field(default=False, alias="shouldSkipCategory")
    skip_to_category: Optional[str] = Field(default=None, alias="skipToCategory")
    should_move_on: bool = Field(default=False, alias="shouldMoveOn")
    needs_follow_up: bool = Field(default=False, alias="needsFollowUp")

    @field_validator("name", "position", "skip_to_category", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("salary", mode="before")
    @classmethod
    def _coerce_salary(cls, value: Any) -> Any:  # Models often answer "$95,000" or "95k"
        if isinstance(value, str):
            return extract_salary(value)
        if isinstance(value, bool) or (value is not None and not isinstance(value, (int, float))):
            return None
        return value or None


class StructuredAnalysis(_Camel):
    relevance: float = Field(default=5, ge=0, le=10)
    clarity: float = Field(default=5, ge=0, le=10)
    extracted_info: ExtractedInfo = Field(default_factory=ExtractedInfo, alias="extractedInfo")
    fallback: bool = False

    @field_validator("relevance", "clarity", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return min(max(float(value), 0.0), 10.0)
        return value

    @classmethod
    def fallback_for(cls, user_text: str, attempt_count: int) -> "StructuredAnalysis":
        """Matcher-only analysis used whenever the model cannot be trusted."""

        no_experience = is_no_experience(user_text)
        return cls(
            relevance=5,
            clarity=5,
            extracted_info=ExtractedInfo(
                is_yes="yes" in (user_text or "").lower(),
                has_no_experience=no_experience,
                should_move_on=attempt_count >= 1 and no_experience,
            ),
            fallback=True,
        )


class TurnState(_Camel):
    """Conversation position handed to the engine for one turn."""

    current_node_id: Optional[str] = Field(default=None, alias="currentNodeId")
    user_data: Dict[str, Any] = Field(default_factory=dict, alias="userData")
    example_attempts: Dict[str, int] = Field(default_factory=dict, alias="exampleAttempts")
    conversation_ended: bool = Field(default=False, alias="conversationEnded")

    def attempts_for(self, node_id: str) -> int:
        return int(self.example_attempts.get(node_id, 0))


class TurnResult(_Camel):
    content: str
    next_node_id: str = Field(alias="nextNodeId")
    user_data: Dict[str, Any] = Field(default_factory=dict, alias="userData")
    end_conversation: bool = Field(default=False, alias="endConversation")
    was_example_prompt: bool = Field(default=False, alias="wasExamplePrompt")
    needs_follow_up: bool = Field(default=False, alias="needsFollowUp")
    example_attempts: Dict[str, int] = Field(default_factory=dict, alias="exampleAttempts")
    decision: DecisionType = "advance"
    used_fallback: bool = Field(default=False, alias="usedFallback")

    def as_state(self) -> TurnState:
        return TurnState(
            current_node_id=self.next_node_id,
            user_data=dict(self.user_data),
            example_attempts=dict(self.example_attempts),
            conversation_ended=self.end_conversation,
        )
