"""LLM route configuration loaded from ``app_config.json``."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, Field


class LlmRoute(BaseModel):
    """Chat-completions endpoint configuration."""

    name: str
    base_url: str
    endpoint: str = "/v1/chat/completions"
    model: str
    timeout_s: float = Field(default=30.0, ge=0.1)
    api_key_env: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    options: Dict[str, Any] = Field(default_factory=dict)


class AppConfig(BaseModel):
    """Application configuration root."""

    llm_routes: Dict[str, LlmRoute]
    registry: Dict[str, str]


def load_config(path: Path) -> AppConfig:
    """Load configuration from disk."""

    data = Path(path).read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def resolve_route(cfg: AppConfig, target: str) -> LlmRoute:
    """Return the route bound to registry key ``target``."""

    if target not in cfg.registry:
        raise KeyError(f"Registry entry missing for '{target}'")
    route_id = cfg.registry[target]
    if route_id not in cfg.llm_routes:
        raise KeyError(f"Route '{route_id}' missing for '{target}'")
    return cfg.llm_routes[route_id]


def resolve_registry(cfg: AppConfig) -> Dict[str, LlmRoute]:
    """Resolve every registry key to its route."""

    return {target: resolve_route(cfg, target) for target in cfg.registry}
