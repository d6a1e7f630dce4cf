import os
import sys
import tempfile
from pathlib import Path

import pytest

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storage.migrate import migrate
from config.settings import settings
from config.registry import ANALYZER_KEY, ANSWER_KEY, bind_model, unbind_model
from interview_script.loader import load_job_description, load_script


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


@pytest.fixture(autouse=True)
def unbound_models():
    # Every test starts on the heuristic fallback unless it binds a fake.
    unbind_model(ANALYZER_KEY)
    unbind_model(ANSWER_KEY)
    yield
    unbind_model(ANALYZER_KEY)
    unbind_model(ANSWER_KEY)


@pytest.fixture
def script():
    return load_script()


@pytest.fixture
def job():
    return load_job_description()


@pytest.fixture
def fake_analyzer():
    """Bind the analyzer to a fixed payload; returns the binder for reuse."""

    def _bind(payload):
        bind_model(ANALYZER_KEY, lambda **_: payload)

    return _bind


@pytest.fixture
def fake_models():
    bind_model(
        ANALYZER_KEY,
        lambda **_: {
            "relevance": 8,
            "clarity": 8,
            "extractedInfo": {"isYes": True, "hasNoExperience": False},
        },
    )
    bind_model(ANSWER_KEY, lambda **_: "The role is hybrid with two office days a week.")
    return True
