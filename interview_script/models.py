from __future__ import annotations  # Interview script graph models

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

ResponseType = Literal["open", "yes-no", "rating", "salary", "experience", "education", "skills"]


class _ScriptBase(BaseModel):  # Shared config: camelCase on disk, snake_case in code, frozen once loaded
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Branch(_ScriptBase):  # Conditional transition out of a node
    condition: str
    next_node_id: str = Field(alias="nextNodeId")
    end_conversation: bool = Field(default=False, alias="endConversation")


class ValidationRules(_ScriptBase):  # Optional bounds attached to a node
    min: Optional[float] = None
    max: Optional[float] = None
    currency: Optional[str] = None
    required: Optional[bool] = None
    min_length: Optional[int] = Field(default=None, alias="minLength")
    pattern: Optional[str] = None


class ScriptNode(_ScriptBase):  # One interview step
    id: str
    message: str
    response_type: ResponseType = Field(alias="responseType")
    next_node_id: Optional[str] = Field(default=None, alias="nextNodeId")
    branches: List[Branch] = Field(default_factory=list)
    examples: List[str] = Field(default_factory=list)
    validation_rules: Optional[ValidationRules] = Field(default=None, alias="validationRules")
    category: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.next_node_id is None and not self.branches

    @property
    def first_example(self) -> Optional[str]:
        return self.examples[0] if self.examples else None

    def branch_for(self, condition: str) -> Optional[Branch]:  # First branch carrying ``condition``
        for branch in self.branches:
            if branch.condition == condition:
                return branch
        return None


class InterviewScript(_ScriptBase):  # Static node graph shared by every conversation
    nodes: Dict[str, ScriptNode]
    start_node_id: str = Field(alias="startNodeId")

    @model_validator(mode="after")
    def _check_start(self) -> "InterviewScript":
        if self.start_node_id not in self.nodes:
            raise ValueError(f"start node '{self.start_node_id}' missing from script")
        return self

    @property
    def start_node(self) -> ScriptNode:
        return self.nodes[self.start_node_id]

    def get(self, node_id: Optional[str]) -> Optional[ScriptNode]:
        if node_id is None:
            return None
        return self.nodes.get(node_id)


class JobAbout(_ScriptBase):  # Role summary block of a job description
    type: str = ""
    salary: str = ""
    roles: List[str] = Field(default_factory=list)
    reporting: str = ""


class JobDescription(_ScriptBase):  # Job posting used to answer candidate questions
    company: str
    position: str
    location: str
    about: JobAbout = Field(default_factory=JobAbout)
    requirements: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    about_company: List[str] = Field(default_factory=list)
    faq: Dict[str, str] = Field(default_factory=dict)


__all__ = [
    "Branch",
    "InterviewScript",
    "JobAbout",
    "JobDescription",
    "ResponseType",
    "ScriptNode",
    "ValidationRules",
]
