from __future__ import annotations  # FastAPI server exposing the scripted interview chat

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from api.routes import router
from config import load_config, settings
from llm_gateway import bind_routes
from storage.migrate import migrate

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).resolve().parent / settings.LLM_CONFIG_PATH


def configure_models(path: Path = CONFIG_PATH) -> List[str]:  # Bind registry keys to configured LLM routes
    try:
        cfg = load_config(path)
    except FileNotFoundError:
        logger.warning("LLM config %s not found; answers will use heuristic fallbacks", path)
        return []
    except (ValueError, ValidationError) as exc:
        logger.warning("Failed to load LLM config %s: %s", path, exc)
        return []
    bound = bind_routes(cfg)
    logger.info("Bound LLM routes for %s", ", ".join(bound) or "nothing")
    return bound


@asynccontextmanager
async def lifespan(_: FastAPI):
    migrate(settings.DB_PATH)
    configure_models()
    yield


app = FastAPI(title="Scripted Interview API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api_server:app", host="0.0.0.0", port=8000)
