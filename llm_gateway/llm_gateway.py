from __future__ import annotations  # LLM request gateway module

import logging
import os
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import httpx

from config.registry import bind_model
from config.routes import AppConfig, LlmRoute, resolve_route


logger = logging.getLogger(__name__)  # Module logger setup

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."

# Request building can fail outside httpx.HTTPError: bad URLs, non-ASCII header values.
TRANSPORT_ERRORS = (httpx.HTTPError, httpx.InvalidURL, UnicodeError)


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class ModelError(RuntimeError):  # Transport, auth, or payload failure of a model call
    pass


def complete(
    messages: Sequence[Dict[str, str]],
    *,
    cfg: LlmRoute,
    system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> str:  # Single chat-completions call returning the first choice text
    base_messages: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]
    base_messages.extend(_normalize_messages(messages))
    payload: Dict[str, Any] = {"model": cfg.model, "messages": base_messages}
    payload.update(cfg.options)
    if options:
        payload.update(options)
    headers = {"Content-Type": "application/json"}
    if cfg.api_key_env:
        api_key = os.getenv(cfg.api_key_env)
        if not api_key:
            raise ModelError(f"{cfg.api_key_env} environment variable is not set")
        headers["Authorization"] = f"Bearer {api_key}"
    headers.update(cfg.extra_headers)

    preview = _preview(base_messages[1:])
    if len(preview) > 120:
        preview = preview[:117] + "..."
    logger.info("LLM request send route=%s model=%s preview=%s", cfg.name, cfg.model, preview)
    try:
        response, close_cb = _post(f"{cfg.base_url}{cfg.endpoint}", payload, headers, cfg.timeout_s, client)
    except TRANSPORT_ERRORS as exc:
        logger.error("LLM transport failure: %s", exc)
        raise ModelError("LLM transport failed") from exc
    try:
        if response.status_code >= 400:
            logger.error("LLM error status: %s", response.status_code)
            raise ModelError(f"LLM returned status {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Invalid JSON payload from LLM: %s", exc)
            raise ModelError("LLM payload was not JSON") from exc
        content = _extract_content(data)
    finally:
        _close_safely(close_cb)
    logger.info("LLM request done route=%s model=%s chars=%d", cfg.name, cfg.model, len(content))
    return content


def model_for(route: LlmRoute, *, client: Optional[HttpClient] = None) -> Callable[..., str]:
    """Adapt a route to the registry calling convention ``model(system_prompt=, messages=)``."""

    def _invoke(*, system_prompt: str = DEFAULT_SYSTEM_PROMPT, messages: Sequence[Dict[str, str]], **options: Any) -> str:
        return complete(messages, cfg=route, system_prompt=system_prompt, client=client, options=options or None)

    return _invoke


def bind_routes(cfg: AppConfig, *, client: Optional[HttpClient] = None) -> List[str]:
    """Bind every registry key in ``cfg`` to its route; returns the bound keys."""

    bound: List[str] = []
    for target in cfg.registry:
        bind_model(target, model_for(resolve_route(cfg, target), client=client))
        bound.append(target)
    return bound


def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Dispatch HTTP request
    if client is not None:
        return client.post(url, json=payload, headers=headers, timeout=timeout), None
    http_client = httpx.Client(timeout=timeout)
    try:
        response = http_client.post(url, json=payload, headers=headers)
    except TRANSPORT_ERRORS:
        http_client.close()
        raise
    return response, http_client.close


def _close_safely(close_cb: Optional[Callable[[], None]]) -> None:  # Close HTTP client callback when provided
    if close_cb is not None:
        close_cb()


def _normalize_messages(messages: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:  # Ensure message payload shape
    normalized: List[Dict[str, str]] = []
    for item in messages:
        if not isinstance(item, dict):
            raise TypeError("Each chat message must be a dict with role/content")
        role = str(item.get("role", "")).strip()
        content = str(item.get("content", ""))
        if not role:
            raise ValueError("Chat message missing role")
        normalized.append({"role": role, "content": content})
    return normalized


def _preview(messages: Sequence[Dict[str, str]]) -> str:  # Build preview string for logging
    for message in messages:
        text = message.get("content", "").strip()
        if text:
            return text.splitlines()[0]
    return ""


def _extract_content(data: Any) -> str:  # Extract message content from LLM response
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
        if isinstance(data.get("content"), str):
            return data["content"]
    raise ModelError("LLM response missing content")


def strip_code_fences(content: str) -> str:  # Remove markdown fences, leading or inline, from LLM output
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        lines = lines[1:]
        while lines and lines[0].strip() == "":
            lines = lines[1:]
        while lines and lines[-1].strip() == "":
            lines = lines[:-1]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text.replace("```json", "").replace("```", "").strip()
