"""Pydantic schemas for the chat and interview endpoints."""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agents.types import TurnResult


class _Camel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChatMessage(_Camel):
    role: str
    content: str = ""
    id: Optional[str] = None


class ChatRequest(_Camel):
    messages: List[ChatMessage]
    current_node_id: Optional[str] = Field(default=None, alias="currentNodeId")
    user_data: Dict[str, Any] = Field(default_factory=dict, alias="userData")
    example_attempts: Dict[str, int] = Field(default_factory=dict, alias="exampleAttempts")
    conversation_ended: bool = Field(default=False, alias="conversationEnded")

    def last_user_message(self) -> Optional[ChatMessage]:
        for message in reversed(self.messages):
            if message.role == "user":
                return message
        return None


class ChatResponse(_Camel):
    role: Literal["assistant"] = "assistant"
    id: str
    content: str
    next_node_id: str = Field(alias="nextNodeId")
    user_data: Dict[str, Any] = Field(default_factory=dict, alias="userData")
    end_conversation: bool = Field(default=False, alias="endConversation")
    was_example_prompt: bool = Field(default=False, alias="wasExamplePrompt")
    needs_follow_up: bool = Field(default=False, alias="needsFollowUp")
    example_attempts: Dict[str, int] = Field(default_factory=dict, alias="exampleAttempts")

    @classmethod
    def from_result(cls, message_id: str, result: TurnResult) -> "ChatResponse":
        return cls(
            id=message_id,
            content=result.content,
            next_node_id=result.next_node_id,
            user_data=result.user_data,
            end_conversation=result.end_conversation,
            was_example_prompt=result.was_example_prompt,
            needs_follow_up=result.needs_follow_up,
            example_attempts=result.example_attempts,
        )


class MessageOut(_Camel):
    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: str


class StartInterviewResponse(_Camel):
    id: str
    message: MessageOut


class InterviewSummaryOut(_Camel):
    id: str
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
    current_node_id: str = Field(alias="currentNodeId")
    ended: bool
    message_count: int = Field(alias="messageCount")
    candidate_name: Optional[str] = Field(default=None, alias="candidateName")
    last_message: Optional[str] = Field(default=None, alias="lastMessage")


class InterviewDetail(_Camel):
    id: str
    current_node_id: str = Field(alias="currentNodeId")
    user_data: Dict[str, Any] = Field(default_factory=dict, alias="userData")
    example_attempts: Dict[str, int] = Field(default_factory=dict, alias="exampleAttempts")
    ended: bool = False
    messages: List[MessageOut] = Field(default_factory=list)


class TurnRequest(_Camel):
    content: str
