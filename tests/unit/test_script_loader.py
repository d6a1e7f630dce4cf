import json

import pytest
from pydantic import ValidationError

from interview_script.loader import (
    BUNDLED_SCRIPT,
    FALLBACK_SKIP_NODE,
    MISSING_NODE_MESSAGE,
    clear_caches,
    find_next_non_category_node,
    get_node_message,
    load_job_description,
    load_script,
    render_message,
    validate_reachability,
)
from interview_script.models import InterviewScript


def _mini_script(**overrides):
    data = {
        "startNodeId": "a",
        "nodes": {
            "a": {"id": "a", "message": "A?", "responseType": "open", "nextNodeId": "b", "category": "x"},
            "b": {"id": "b", "message": "B?", "responseType": "open", "nextNodeId": "c", "category": "x"},
            "c": {"id": "c", "message": "C?", "responseType": "open", "category": "y"},
        },
    }
    data.update(overrides)
    return InterviewScript.model_validate(data)


def test_bundled_script_loads_with_camel_case_fields(script):
    assert script.start_node_id == "greeting"
    salary = script.nodes["salary"]
    assert salary.response_type == "salary"
    assert salary.validation_rules.max == 100000
    assert salary.branch_for("above_range").next_node_id == "negotiate-salary"
    assert script.nodes["greeting"].branch_for("no").end_conversation is True
    assert script.nodes["ending"].is_terminal
    assert script.nodes["name"].first_example == "John"


def test_bundled_script_has_no_dead_ends(script):
    assert validate_reachability(script) == []


def test_reachability_reports_cycles_without_exit():
    looping = _mini_script(
        nodes={
            "a": {"id": "a", "message": "A?", "responseType": "open", "nextNodeId": "b"},
            "b": {"id": "b", "message": "B?", "responseType": "open", "nextNodeId": "a"},
        }
    )
    assert validate_reachability(looping) == ["a", "b"]


def test_missing_start_node_rejected():
    with pytest.raises(ValidationError):
        _mini_script(startNodeId="nope")


def test_unreadable_override_falls_back_to_bundled(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    clear_caches()
    script = load_script(broken)
    assert script.start_node_id == "greeting"
    assert load_script(tmp_path / "missing.json").nodes.keys() == script.nodes.keys()


def test_override_script_is_used(tmp_path):
    custom = tmp_path / "custom.json"
    custom.write_text(
        json.dumps({"startNodeId": "hi", "nodes": {"hi": {"id": "hi", "message": "Hi!", "responseType": "open"}}}),
        encoding="utf-8",
    )
    clear_caches()
    assert load_script(custom).start_node_id == "hi"


def test_bundled_script_errors_propagate(monkeypatch):
    clear_caches()
    monkeypatch.setattr("interview_script.loader._read_json", lambda _path: {"nodes": {}})
    with pytest.raises(ValidationError):
        load_script(BUNDLED_SCRIPT)
    clear_caches()


def test_job_description_loads(job):
    assert job.company == "TechInnovate Solutions"
    assert job.about.salary.startswith("$80,000")
    assert job.benefits


def test_render_message_substitutes_known_placeholders():
    assert render_message("Hi {name}, {position}?", {"name": "Ana", "position": "Backend Developer"}) == (
        "Hi Ana, Backend Developer?"
    )
    # Missing values leave the placeholder verbatim.
    assert render_message("Hi {name}", {}) == "Hi {name}"
    assert render_message("Hi {team}", {"team": "core"}) == "Hi {team}"


def test_get_node_message(script):
    assert "Alice" in get_node_message(script, "role-preference", {"name": "Alice"})
    assert get_node_message(script, "nowhere", {}) == MISSING_NODE_MESSAGE
    assert get_node_message(script, None, {}) == MISSING_NODE_MESSAGE


def test_find_next_non_category_node(script):
    assert find_next_non_category_node(script, "react-rating", "react") == "debugging-approach"
    assert find_next_non_category_node(script, "python-rating", "python") == "react-rating"


def test_find_next_non_category_node_fallbacks():
    mini = _mini_script()
    assert find_next_non_category_node(mini, "a", "x") == "c"
    assert find_next_non_category_node(mini, "c", "y") == FALLBACK_SKIP_NODE
    assert find_next_non_category_node(mini, "unknown", "x") == FALLBACK_SKIP_NODE


def test_loaded_job_description_is_cached():
    assert load_job_description() is load_job_description()
