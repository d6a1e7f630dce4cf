from __future__ import annotations  # Re-export interview_script public API

from .loader import (  # noqa: F401
    find_next_non_category_node,
    get_node_message,
    load_job_description,
    load_script,
    render_message,
    validate_reachability,
)
from .models import Branch, InterviewScript, JobDescription, ScriptNode, ValidationRules  # noqa: F401

__all__ = [
    "Branch",
    "InterviewScript",
    "JobDescription",
    "ScriptNode",
    "ValidationRules",
    "find_next_non_category_node",
    "get_node_message",
    "load_job_description",
    "load_script",
    "render_message",
    "validate_reachability",
]
