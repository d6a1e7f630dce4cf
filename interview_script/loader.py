"""Loading and navigation helpers for the interview script graph."""
from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from pydantic import ValidationError

from config.settings import settings

from .models import InterviewScript, JobDescription, ScriptNode

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
BUNDLED_SCRIPT = DATA_DIR / "software-engineer-script.json"
BUNDLED_JOB = DATA_DIR / "software-engineer.json"

MISSING_NODE_MESSAGE = "Thanks for your time!"
FALLBACK_SKIP_NODE = "debugging-approach"
PLACEHOLDERS = ("name", "position")


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


@lru_cache(maxsize=8)
def _load_script_cached(path: str) -> InterviewScript:
    target = Path(path)
    try:
        script = InterviewScript.model_validate(_read_json(target))
    except (OSError, ValueError, ValidationError) as exc:
        if target == BUNDLED_SCRIPT:
            raise
        logger.warning("Script load failed for %s (%s); using bundled script", target, exc)
        script = InterviewScript.model_validate(_read_json(BUNDLED_SCRIPT))
    dead_ends = validate_reachability(script)
    if dead_ends:
        logger.warning("Script nodes cannot reach a terminal node: %s", ", ".join(dead_ends))
    return script


def load_script(path: Optional[str | Path] = None) -> InterviewScript:
    """Load the interview script, falling back to the bundled copy on any failure."""

    return _load_script_cached(str(path or settings.SCRIPT_PATH))


@lru_cache(maxsize=8)
def _load_job_cached(path: str) -> JobDescription:
    target = Path(path)
    try:
        return JobDescription.model_validate(_read_json(target))
    except (OSError, ValueError, ValidationError) as exc:
        if target == BUNDLED_JOB:
            raise
        logger.warning("Job description load failed for %s (%s); using bundled copy", target, exc)
        return JobDescription.model_validate(_read_json(BUNDLED_JOB))


def load_job_description(path: Optional[str | Path] = None) -> JobDescription:
    """Load the job description used for candidate questions."""

    return _load_job_cached(str(path or settings.JOB_PATH))


def clear_caches() -> None:
    _load_script_cached.cache_clear()
    _load_job_cached.cache_clear()


def render_message(template: str, user_data: Mapping[str, Any]) -> str:
    """Substitute ``{name}``/``{position}``; unknown placeholders stay verbatim."""

    message = template
    for key in PLACEHOLDERS:
        value = user_data.get(key)
        if value:
            message = message.replace("{" + key + "}", str(value))
    return message


def get_node_message(script: InterviewScript, node_id: Optional[str], user_data: Mapping[str, Any]) -> str:
    node = script.get(node_id)
    if node is None:
        return MISSING_NODE_MESSAGE
    return render_message(node.message, user_data)


def find_next_non_category_node(script: InterviewScript, node_id: str, category: str) -> str:
    """Follow default successors from ``node_id`` until the category changes."""

    seen: Set[str] = {node_id}
    node = script.get(node_id)
    while node is not None and node.next_node_id:
        next_id = node.next_node_id
        if next_id in seen:
            break
        seen.add(next_id)
        node = script.get(next_id)
        if node is None:
            break
        if node.category != category:
            return next_id
    return FALLBACK_SKIP_NODE


def successors(node: ScriptNode) -> List[str]:
    targets = [branch.next_node_id for branch in node.branches]
    if node.next_node_id:
        targets.append(node.next_node_id)
    return targets


def _reachable(script: InterviewScript, start: str) -> List[str]:
    order: List[str] = []
    stack = [start]
    seen: Set[str] = set()
    while stack:
        current = stack.pop()
        if current in seen or current not in script.nodes:
            continue
        seen.add(current)
        order.append(current)
        stack.extend(successors(script.nodes[current]))
    return order


def _can_finish(script: InterviewScript, node_ids: Iterable[str]) -> Set[str]:
    finishing: Set[str] = set()
    for node_id in node_ids:
        node = script.nodes[node_id]
        if node.is_terminal or any(branch.end_conversation for branch in node.branches):
            finishing.add(node_id)
    changed = True
    nodes: Dict[str, ScriptNode] = {node_id: script.nodes[node_id] for node_id in node_ids}
    while changed:
        changed = False
        for node_id, node in nodes.items():
            if node_id in finishing:
                continue
            if any(target in finishing for target in successors(node)):
                finishing.add(node_id)
                changed = True
    return finishing


def validate_reachability(script: InterviewScript) -> List[str]:
    """Return reachable node ids that can never reach a terminal node."""

    reachable = _reachable(script, script.start_node_id)
    finishing = _can_finish(script, reachable)
    return sorted(node_id for node_id in reachable if node_id not in finishing)


__all__ = [
    "BUNDLED_JOB",
    "BUNDLED_SCRIPT",
    "FALLBACK_SKIP_NODE",
    "MISSING_NODE_MESSAGE",
    "clear_caches",
    "find_next_non_category_node",
    "get_node_message",
    "load_job_description",
    "load_script",
    "render_message",
    "successors",
    "validate_reachability",
]
