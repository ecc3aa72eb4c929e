"""
hookpilot/main.py
FastAPI application: webhook intake, job status, and the live agent stream.
Endpoints: GET /health, POST /webhooks/github, GET /webhooks/github/events,
GET /jobs, GET /jobs/{delivery_id}, GET /skills, WS /ws/stream
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager, suppress
from typing import Any

from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from hookpilot.config import Config
from hookpilot.events.context import SUPPORTED_EVENT_KINDS, parse_event_kind, parse_github_payload
from hookpilot.events.signature import verify_github_signature
from hookpilot.jobs.guard import AdmissionGuard, build_guard_from_config
from hookpilot.pipeline import process_delivery
from hookpilot.skills.registry import build_registry_from_config
from hookpilot.stream import manager

logger = logging.getLogger(__name__)
load_dotenv()

_guard: AdmissionGuard | None = None


def get_guard() -> AdmissionGuard:
    """Return the process-wide admission guard, building it from config on first use."""
    global _guard
    if _guard is None:
        _guard = build_guard_from_config()
    return _guard


async def _sweep_periodically(interval_seconds: int) -> None:
    """Purge expired job records every interval until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(get_guard().sweep)
        except Exception:
            logger.exception("Job sweep failed.")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """FastAPI lifespan hook: build the job guard and run the periodic sweeper."""
    get_guard()
    sweeper = asyncio.create_task(_sweep_periodically(Config.get_job_sweep_interval_seconds()))
    try:
        yield
    finally:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper


app = FastAPI(title="HookPilot", lifespan=lifespan)


@app.get("/health")
def health_check() -> dict[str, str]:
    """Return service health status."""
    return {"status": "ok"}


def _verify_signature(request: Request, body: bytes) -> None:
    """
    Validate X-Hub-Signature-256 when GITHUB_WEBHOOK_SECRET is configured.

    Raises:
        HTTPException 401: Missing or invalid signature.
    """
    secret = Config.get_webhook_secret()
    if not secret:
        logger.warning("GITHUB_WEBHOOK_SECRET not set; accepting unsigned webhook.")
        return
    if not verify_github_signature(body, request.headers.get("X-Hub-Signature-256"), secret):
        raise HTTPException(status_code=401, detail="Invalid webhook signature.")


def _parse_json_object(body: bytes) -> dict[str, Any]:
    """
    Parse the raw body as a JSON object.

    Raises:
        HTTPException 400: Invalid JSON or non-object payload.
    """
    try:
        payload = json.loads(body or b"{}")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid JSON body.") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="JSON body must be an object.")
    return payload


@app.post("/webhooks/github")
async def github_webhook(request: Request, background_tasks: BackgroundTasks) -> JSONResponse:
    """
    Admit a GitHub delivery and hand it to the agent in the background.

    Returns:
        202 `accepted` for admitted deliveries, 200 `duplicate` for skipped ones.
    Raises:
        HTTPException 400: Missing delivery id, unsupported event, or bad JSON.
        HTTPException 401: Invalid signature.
    """
    body = await request.body()
    _verify_signature(request, body)

    delivery_id = request.headers.get("X-GitHub-Delivery", "").strip()
    if not delivery_id:
        raise HTTPException(status_code=400, detail="Missing X-GitHub-Delivery header.")
    try:
        kind = parse_event_kind(request.headers.get("X-GitHub-Event", ""))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    payload = _parse_json_object(body)

    context = parse_github_payload(kind, payload, delivery_id)
    guard = get_guard()
    metadata = {"event": kind.value, "action": context.action, "repository": context.repository.full_name}
    # Store writes may wait on a SQLite lock; keep them off the event loop.
    if await asyncio.to_thread(guard.admit, delivery_id, metadata):
        return JSONResponse(status_code=200, content={"status": "duplicate", "delivery_id": delivery_id})

    background_tasks.add_task(process_delivery, context, guard=guard)
    logger.info("Accepted %s delivery %s for %s.", kind.value, delivery_id, context.repository.full_name)
    return JSONResponse(
        status_code=202,
        content={"status": "accepted", "delivery_id": delivery_id, "event": kind.value, "action": context.action},
    )


@app.get("/webhooks/github/events")
def github_event_kinds() -> dict[str, list[str]]:
    """List event kinds accepted by the GitHub webhook."""
    return {"events": SUPPORTED_EVENT_KINDS}


@app.get("/jobs")
def job_stats() -> dict[str, int]:
    """Return total and per-status job counts."""
    return get_guard().stats()


@app.get("/jobs/{delivery_id}")
def job_status(delivery_id: str) -> dict[str, Any]:
    """
    Return the job record for a delivery.

    Raises:
        HTTPException 404: Unknown delivery id.
    """
    record = get_guard().status_of(delivery_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {delivery_id}")
    return record.to_dict()


@app.get("/skills")
def list_skills() -> dict[str, list[dict[str, Any]]]:
    """List registered skills with name, description, and priority."""
    return {"skills": build_registry_from_config().list_available()}


@app.websocket("/ws/stream")
async def stream_socket(ws: WebSocket) -> None:
    """Register a dashboard client and keep it connected until it leaves."""
    await manager.connect(ws)
    try:
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(ws)
