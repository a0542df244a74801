"""FastAPI application exposing the question-answering engine over HTTP."""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from excerptfinder.config import AppConfig, RetrievalConfig
from excerptfinder.engine import QueryEngine
from excerptfinder.index.storage import IndexLoadError

LOGGER = logging.getLogger(__name__)

MAX_TOP_K = 50

app = FastAPI(title="ExcerptFinder Web", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.default_index = None

_engines: Dict[Path, QueryEngine] = {}
_engines_lock = threading.Lock()


class AskPayload(BaseModel):
    query: str
    index: Path | None = None
    top_k: int = RetrievalConfig().top_k


class ReloadPayload(BaseModel):
    index: Path | None = None


def _resolve_index_path(index: Path | None) -> Path:
    if index is None:
        index = app.state.default_index
    config = AppConfig(index_path=index if index is not None else AppConfig().index_path)
    return config.resolve_index_path(Path.cwd())


def _load_engine(resolved_index: Path) -> QueryEngine:
    if not resolved_index.exists():
        raise HTTPException(
            status_code=404,
            detail=f"Index not found at {resolved_index}. "
            "Build one first with `excerptfinder index`.",
        )
    try:
        return QueryEngine.from_path(resolved_index, RetrievalConfig())
    except IndexLoadError as exc:
        LOGGER.error("Unable to load index %s: %s", resolved_index, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def _get_engine(resolved_index: Path) -> QueryEngine:
    with _engines_lock:
        engine = _engines.get(resolved_index)
        if engine is None:
            engine = _load_engine(resolved_index)
            _engines[resolved_index] = engine
        return engine


def clear_engine_cache() -> None:
    with _engines_lock:
        _engines.clear()


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.post("/ask")
async def ask(payload: AskPayload) -> dict[str, Any]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    top_k = max(1, min(payload.top_k, MAX_TOP_K))
    engine = await asyncio.to_thread(_get_engine, _resolve_index_path(payload.index))
    result = await asyncio.to_thread(engine.answer_query, query, top_k=top_k)
    return result.to_dict()


@app.get("/stats")
async def index_stats(index: Path | None = None) -> dict[str, Any]:
    engine = await asyncio.to_thread(_get_engine, _resolve_index_path(index))
    return engine.stats()


@app.post("/reload")
async def reload_index(payload: ReloadPayload) -> dict[str, Any]:
    resolved_index = _resolve_index_path(payload.index)
    with _engines_lock:
        engine = _engines.get(resolved_index)
    if engine is None:
        engine = await asyncio.to_thread(_get_engine, resolved_index)
        return {"status": "ok", "stats": engine.stats()}

    try:
        await asyncio.to_thread(engine.reload)
    except IndexLoadError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"status": "ok", "stats": engine.stats()}
