"""
FastAPI REST API for the SmartInsights workbench.
"""
from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from fastapi import APIRouter, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from smartinsights.chat import ChatSession
from smartinsights.config import Settings, configure_logging
from smartinsights.controller import WorkbenchController
from smartinsights.ingest import SUPPORTED_EXTENSIONS, ingest_csv, preview_rows
from smartinsights.llm_client import LLMClient, create_llm_client_from_env
from smartinsights.models import AnalysisKind, AnalysisOptions, Suggestion

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["smartinsights-v1"])

_ERROR_STATUS = {
    "configuration_error": 422,
    "malformed_response": 502,
    "schema_validation_error": 502,
    "transport_error": 503,
    "empty_response": 503,
    "circuit_open": 503,
}


class SelectAnalysisRequest(BaseModel):
    analysis_type: AnalysisKind


class RunAnalysisRequest(BaseModel):
    analysis_type: AnalysisKind | None = None
    options: AnalysisOptions | None = None


class ApplyCleanedDataRequest(BaseModel):
    records: list[dict[str, Any]] = Field(default_factory=list)


class ChatRequest(BaseModel):
    message: str


@router.get("/health")
def health_check() -> dict[str, str]:
    return {"status": "ok", "service": "smartinsights", "version": "1.0.0"}


@router.post("/sessions")
def create_session(request: Request) -> dict[str, str]:
    session_id = f"sess_{uuid.uuid4().hex[:8]}"
    client = _llm_client(request)
    settings: Settings = request.app.state.settings
    request.app.state.sessions[session_id] = {
        "session_id": session_id,
        "controller": WorkbenchController(client, settings),
        "chat": ChatSession(client, timeout=settings.llm_timeout_seconds),
    }
    return {"session_id": session_id}


@router.post("/sessions/{session_id}/upload")
async def upload_file(request: Request, session_id: str, file: UploadFile = File(...)) -> dict[str, Any]:
    controller = _assert_session(request, session_id)["controller"]
    filename = file.filename or "dataset.csv"
    if Path(filename).suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Only CSV files are supported.")

    raw = await file.read()
    if len(raw) > request.app.state.settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Uploaded file is too large.")
    try:
        dataset = ingest_csv(filename, raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    controller.load_dataset(dataset)
    return {"status": "uploaded", "session_id": session_id, "dataset": dataset.describe()}


@router.get("/sessions/{session_id}/preview")
def preview_dataset(request: Request, session_id: str, rows: int = 10) -> dict[str, Any]:
    controller = _assert_session_with_data(request, session_id)
    dataset = controller.dataset
    return {
        "session_id": session_id,
        "headers": dataset.headers,
        "rows": preview_rows(dataset, rows),
        "shape": {"rows": dataset.row_count, "columns": len(dataset.headers)},
    }


@router.get("/sessions/{session_id}/state")
async def get_state(request: Request, session_id: str) -> dict[str, Any]:
    controller = _assert_session(request, session_id)["controller"]
    return {"session_id": session_id, **controller.snapshot()}


@router.get("/sessions/{session_id}/suggestions")
async def get_suggestions(request: Request, session_id: str) -> dict[str, Any]:
    controller = _assert_session_with_data(request, session_id)
    task = controller.suggestion_task
    if task is not None and not task.done():
        await task
    return {"session_id": session_id, "suggestions": controller.suggestions.to_dict()["value"] or []}


@router.post("/sessions/{session_id}/select")
async def select_analysis(request: Request, session_id: str, body: SelectAnalysisRequest) -> dict[str, Any]:
    controller = _assert_session(request, session_id)["controller"]
    controller.select_analysis(body.analysis_type)
    return {"session_id": session_id, **controller.snapshot()}


@router.post("/sessions/{session_id}/options")
async def set_options(request: Request, session_id: str, body: AnalysisOptions) -> dict[str, Any]:
    controller = _assert_session(request, session_id)["controller"]
    controller.set_options(body)
    return {"session_id": session_id, **controller.snapshot()}


@router.post("/sessions/{session_id}/suggestions/apply")
async def apply_suggestion(request: Request, session_id: str, body: Suggestion) -> dict[str, Any]:
    controller = _assert_session(request, session_id)["controller"]
    controller.apply_suggestion(body)
    return {"session_id": session_id, **controller.snapshot()}


@router.post("/sessions/{session_id}/analysis")
async def run_analysis(request: Request, session_id: str, body: RunAnalysisRequest | None = None) -> dict[str, Any]:
    controller = _assert_session_with_data(request, session_id)
    if body is not None and body.analysis_type is not None:
        controller.select_analysis(body.analysis_type)
    if body is not None and body.options is not None:
        controller.set_options(body.options)
    if controller.selected_analysis is None:
        raise HTTPException(status_code=400, detail="Select an analysis first.")

    kind = controller.selected_analysis
    outcome = await controller.run_analysis()
    return {
        "session_id": session_id,
        "analysis_type": kind.value,
        "result": _outcome_value(outcome),
    }


@router.post("/sessions/{session_id}/insights")
async def create_insights(request: Request, session_id: str) -> dict[str, Any]:
    controller = _assert_session_with_data(request, session_id)
    outcome = await controller.generate_insights()
    return {"session_id": session_id, "insights": _outcome_value(outcome)}


@router.post("/sessions/{session_id}/cleaned-data/apply")
async def apply_cleaned_data(request: Request, session_id: str, body: ApplyCleanedDataRequest) -> dict[str, Any]:
    controller = _assert_session_with_data(request, session_id)
    try:
        controller.apply_cleaned_data(body.records)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"status": "applied", "session_id": session_id, "dataset": controller.dataset.describe()}


@router.post("/sessions/{session_id}/chat")
async def chat(request: Request, session_id: str, body: ChatRequest) -> dict[str, Any]:
    session: ChatSession = _assert_session(request, session_id)["chat"]
    try:
        reply = await session.send(body.message)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "session_id": session_id,
        "reply": reply,
        "transcript": [{"role": turn.role, "text": turn.text} for turn in session.transcript],
    }


def _llm_client(request: Request) -> LLMClient:
    client = request.app.state.llm_client
    if client is None:
        raise HTTPException(status_code=503, detail="No LLM provider is configured.")
    return client


def _assert_session(request: Request, session_id: str) -> dict[str, Any]:
    sessions = request.app.state.sessions
    if session_id not in sessions:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found.")
    return sessions[session_id]


def _assert_session_with_data(request: Request, session_id: str) -> WorkbenchController:
    controller: WorkbenchController = _assert_session(request, session_id)["controller"]
    if controller.dataset is None:
        raise HTTPException(status_code=400, detail="No data uploaded yet. POST to /upload first.")
    return controller


def _outcome_value(outcome: dict[str, Any] | None) -> Any:
    if outcome is None:
        # superseded by a newer request on the same session
        raise HTTPException(status_code=409, detail="The request was superseded by a newer one.")
    error = outcome["error"]
    if error is not None:
        raise HTTPException(status_code=_ERROR_STATUS.get(error["code"], 500), detail=error["message"])
    return outcome["value"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging(app.state.settings.log_level)
    logger.info("Starting SmartInsights API...")
    if app.state.llm_client is None:
        try:
            app.state.llm_client = create_llm_client_from_env(max_attempts=app.state.settings.llm_max_attempts)
        except RuntimeError as exc:
            logger.warning("LLM client not configured: %s", exc)
    yield
    logger.info("Shutting down SmartInsights API...")


def build_standalone_app(client: LLMClient | None = None, settings: Settings | None = None) -> FastAPI:
    api_app = FastAPI(
        title="SmartInsights Workbench",
        description="AI data analytics workbench: suggestions, analyses, insights, cleaning, chat.",
        version="1.0.0",
        lifespan=lifespan,
    )
    api_app.state.settings = settings or Settings.from_env()
    api_app.state.llm_client = client
    api_app.state.sessions = {}
    api_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    api_app.include_router(router)
    return api_app


app = build_standalone_app()


def main() -> None:
    import uvicorn

    uvicorn.run("smartinsights.api:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
