import json

import pytest

from config.patterns import BUNDLED_PATH, load_phrase_book, phrase_book, reset_phrase_book
from config.registry import ANALYZER_KEY, ANSWER_KEY, bind_model, get_model, unbind_model
from config.routes import load_config, resolve_registry, resolve_route
from config.settings import Settings, settings

from api_server import CONFIG_PATH, configure_models


def test_settings_defaults():
    defaults = Settings(_env_file=None)
    assert defaults.DB_PATH.endswith(".db")
    assert defaults.DEFAULT_MAX_SALARY == 100000
    assert defaults.LOW_SCORE_CUTOFF == 2
    assert defaults.MAX_EXAMPLE_ATTEMPTS == 1
    assert defaults.PATTERNS_PATH is None


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("DEFAULT_MAX_SALARY", "120000")
    monkeypatch.setenv("SCRIPT_PATH", "/tmp/script.json")
    loaded = Settings(_env_file=None)
    assert loaded.DEFAULT_MAX_SALARY == 120000
    assert loaded.SCRIPT_PATH == "/tmp/script.json"


def test_registry_bind_and_retrieve():
    marker = object()
    bind_model(ANALYZER_KEY, lambda **_: marker)
    model = get_model(ANALYZER_KEY)
    assert model() is marker
    unbind_model(ANALYZER_KEY)
    with pytest.raises(KeyError):
        get_model(ANALYZER_KEY)


def test_bundled_llm_config_resolves():
    cfg = load_config(CONFIG_PATH)
    routes = resolve_registry(cfg)
    assert set(routes) == {ANALYZER_KEY, ANSWER_KEY}
    assert routes[ANALYZER_KEY].model == "gpt-4"
    assert routes[ANALYZER_KEY].api_key_env == "OPENAI_API_KEY"


def test_resolve_route_errors(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"llm_routes": {}, "registry": {ANALYZER_KEY: "ghost"}}), encoding="utf-8")
    cfg = load_config(path)
    with pytest.raises(KeyError):
        resolve_route(cfg, ANALYZER_KEY)
    with pytest.raises(KeyError):
        resolve_route(cfg, "models.unknown")


def test_configure_models_tolerates_missing_config(tmp_path):
    assert configure_models(tmp_path / "absent.json") == []
    with pytest.raises(KeyError):
        get_model(ANALYZER_KEY)


def test_configure_models_binds_registry():
    assert configure_models(CONFIG_PATH) == [ANALYZER_KEY, ANSWER_KEY]
    assert callable(get_model(ANSWER_KEY))


def test_phrase_book_loads_bundled_lists():
    book = load_phrase_book()
    assert "quit" in book.global_disinterest
    assert "no" in book.role_disinterest
    assert book.specific_roles["backend"] == "Backend Developer"


def test_phrase_book_override_and_fallback(tmp_path, monkeypatch):
    custom = tmp_path / "phrases.yaml"
    custom.write_text("global_disinterest:\n  - Ciao\n", encoding="utf-8")
    assert load_phrase_book(custom).global_disinterest == ["ciao"]
    assert load_phrase_book(tmp_path / "missing.yaml").global_disinterest == load_phrase_book(BUNDLED_PATH).global_disinterest

    monkeypatch.setattr(settings, "PATTERNS_PATH", str(custom), raising=False)
    reset_phrase_book()
    try:
        assert phrase_book().global_disinterest == ["ciao"]
    finally:
        reset_phrase_book()
