from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import HttpClient, HttpResponse, ModelError, bind_routes, complete, model_for, strip_code_fences

__all__ = ["HttpClient", "HttpResponse", "ModelError", "bind_routes", "complete", "model_for", "strip_code_fences"]
