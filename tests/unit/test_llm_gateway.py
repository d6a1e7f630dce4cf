import httpx
import pytest

from config.registry import ANALYZER_KEY, ANSWER_KEY, get_model
from config.routes import AppConfig, LlmRoute
from llm_gateway import ModelError, bind_routes, complete, strip_code_fences


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, *, json, headers, timeout):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def _route(**overrides):
    data = {
        "name": "test",
        "base_url": "https://llm.example",
        "model": "gpt-test",
        "options": {"temperature": 0.7},
    }
    data.update(overrides)
    return LlmRoute(**data)


def _ok(content="hello"):
    return FakeResponse(payload={"choices": [{"message": {"content": content}}]})


def test_complete_posts_chat_payload(monkeypatch):
    monkeypatch.setenv("TEST_LLM_KEY", "sk-test")
    client = FakeClient(_ok())
    route = _route(api_key_env="TEST_LLM_KEY", extra_headers={"X-Team": "hiring"})
    text = complete([{"role": "user", "content": "Hi"}], cfg=route, system_prompt="Be brief.", client=client)

    assert text == "hello"
    call = client.calls[0]
    assert call["url"] == "https://llm.example/v1/chat/completions"
    assert call["json"]["model"] == "gpt-test"
    assert call["json"]["temperature"] == 0.7
    assert call["json"]["messages"][0] == {"role": "system", "content": "Be brief."}
    assert call["headers"]["Authorization"] == "Bearer sk-test"
    assert call["headers"]["X-Team"] == "hiring"
    assert call["timeout"] == 30.0


def test_complete_missing_key_raises(monkeypatch):
    monkeypatch.delenv("TEST_LLM_KEY", raising=False)
    with pytest.raises(ModelError):
        complete([], cfg=_route(api_key_env="TEST_LLM_KEY"), client=FakeClient(_ok()))


@pytest.mark.parametrize(
    "client",
    [
        FakeClient(FakeResponse(status_code=500)),
        FakeClient(FakeResponse(payload=None)),
        FakeClient(FakeResponse(payload={"choices": []})),
        FakeClient(error=httpx.ConnectError("refused")),
    ],
)
def test_complete_failures_raise_model_error(client):
    with pytest.raises(ModelError):
        complete([{"role": "user", "content": "Hi"}], cfg=_route(), client=client)


def test_complete_rejects_malformed_messages():
    with pytest.raises(ValueError):
        complete([{"content": "no role"}], cfg=_route(), client=FakeClient(_ok()))


def test_bind_routes_registers_models():
    client = FakeClient(_ok("bound"))
    cfg = AppConfig(
        llm_routes={"main": _route()},
        registry={ANALYZER_KEY: "main", ANSWER_KEY: "main"},
    )
    assert bind_routes(cfg, client=client) == [ANALYZER_KEY, ANSWER_KEY]
    model = get_model(ANSWER_KEY)
    assert model(system_prompt="s", messages=[{"role": "user", "content": "q"}], max_tokens=5) == "bound"
    assert client.calls[0]["json"]["max_tokens"] == 5


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('text ```json{"a": 1}``` more') == 'text {"a": 1} more'
    assert strip_code_fences("  plain  ") == "plain"


def test_non_ascii_api_key_raises_model_error(monkeypatch):
    monkeypatch.setenv("TEST_LLM_KEY", "sk-…abc")
    route = _route(api_key_env="TEST_LLM_KEY")
    with pytest.raises(ModelError):
        complete([{"role": "user", "content": "Hi"}], cfg=route)


def test_invalid_url_raises_model_error():
    client = FakeClient(error=httpx.InvalidURL("bad host"))
    with pytest.raises(ModelError):
        complete([{"role": "user", "content": "Hi"}], cfg=_route(), client=client)
