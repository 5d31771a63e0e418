"""FastAPI shipment check service: hosts the upload/analysis flow over HTTP.

Each session wraps one FlowController. Analysis is delegated to the external
webhook configured by ANALYSIS_WEBHOOK_URL.
Privacy: no image logging, no disk writes. Images are held in memory only
for as long as they are a session's candidate file.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, UploadFile
from fastapi.responses import JSONResponse, Response

from analysis_client import AnalysisClient
from config import settings
from flow import FlowController
from models import CandidateFile, FlowStage, SessionSnapshot
from sessions import SessionRegistry

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_analysis_client: AnalysisClient | None = None
_sessions: SessionRegistry | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the analysis client and session registry for the app's lifetime."""
    global _analysis_client, _sessions

    _analysis_client = AnalysisClient()
    if _analysis_client.configured:
        logger.info("Analysis webhook configured")
    else:
        logger.warning("ANALYSIS_WEBHOOK_URL is empty, every analysis will fail with a configuration error")
    _sessions = SessionRegistry(_analysis_client, settings.MAX_SESSIONS)

    yield

    _sessions.close_all()
    await _analysis_client.close()


app = FastAPI(title="Shipment Check", version="1.0.0", lifespan=lifespan)


def _not_found(session_id: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": f"Unknown session: {session_id}"})


def _busy() -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": "An analysis is already in progress"})


def _unavailable() -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": "Session registry is not initialized"})


def _settled(session_id: str, flow: FlowController) -> SessionSnapshot | JSONResponse:
    """Snapshot a flow after an await; the session may have been closed meanwhile."""
    if _sessions is None or _sessions.get(session_id) is not flow:
        logger.info("Session %s was closed while its analysis was in flight", session_id)
        return _not_found(session_id)
    return SessionSnapshot(session_id=session_id, **flow.snapshot().model_dump())


@app.post("/api/v1/sessions", response_model=SessionSnapshot, status_code=201)
async def create_session():
    """Start a new flow in the collect stage."""
    if _sessions is None:
        return _unavailable()
    session_id = _sessions.create()
    return _sessions.snapshot(session_id)


@app.get("/api/v1/sessions/{session_id}", response_model=SessionSnapshot)
async def get_session(session_id: str):
    if _sessions is None:
        return _unavailable()
    snapshot = _sessions.snapshot(session_id)
    if snapshot is None:
        return _not_found(session_id)
    return snapshot


@app.post("/api/v1/sessions/{session_id}/file", response_model=SessionSnapshot)
async def select_file(session_id: str, file: UploadFile = File(...)):
    """Validate the upload and, if accepted, analyse it before responding."""
    if _sessions is None:
        return _unavailable()
    flow = _sessions.get(session_id)
    if flow is None:
        return _not_found(session_id)
    if flow.stage is FlowStage.ANALYZING:
        return _busy()

    content = await file.read()
    candidate = CandidateFile.from_bytes(
        name=file.filename or "upload",
        content_type=file.content_type or "",
        content=content,
    )

    # Privacy: log byte count only, never image content
    logger.info("Session %s: file selected, size=%d bytes", session_id, candidate.size)

    if not await flow.select_file(candidate):
        return _busy()
    return _settled(session_id, flow)


@app.post("/api/v1/sessions/{session_id}/retry", response_model=SessionSnapshot)
async def retry(session_id: str):
    """Re-run the analysis for the current file after an error."""
    if _sessions is None:
        return _unavailable()
    flow = _sessions.get(session_id)
    if flow is None:
        return _not_found(session_id)
    if flow.stage is FlowStage.ANALYZING:
        return _busy()
    if not await flow.retry():
        return JSONResponse(status_code=409, content={"detail": "Nothing to retry"})
    return _settled(session_id, flow)


@app.post("/api/v1/sessions/{session_id}/reset", response_model=SessionSnapshot)
async def reset(session_id: str):
    if _sessions is None:
        return _unavailable()
    flow = _sessions.get(session_id)
    if flow is None:
        return _not_found(session_id)
    if not flow.reset():
        return _busy()
    return _sessions.snapshot(session_id)


@app.get("/api/v1/sessions/{session_id}/preview")
async def preview(session_id: str):
    """Serve the current candidate image."""
    if _sessions is None:
        return _unavailable()
    flow = _sessions.get(session_id)
    if flow is None:
        return _not_found(session_id)
    candidate = _sessions.previews.get(flow.preview_url) if flow.preview_url else None
    if candidate is None:
        return JSONResponse(status_code=404, content={"detail": "No file selected"})
    return Response(content=candidate.content, media_type=candidate.content_type)


@app.delete("/api/v1/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str):
    if _sessions is None:
        return _unavailable()
    if not _sessions.close(session_id):
        return _not_found(session_id)
    return Response(status_code=204)


@app.get("/health")
async def health():
    """Return service status and whether the analysis webhook is configured."""
    return {
        "status": "healthy",
        "webhook_configured": _analysis_client is not None and _analysis_client.configured,
        "sessions": len(_sessions) if _sessions is not None else 0,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
