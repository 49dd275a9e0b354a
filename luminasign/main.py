import os
import asyncio
import logging
from datetime import datetime, timezone
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from luminasign.db import Base, SessionLocal, engine, ensure_sqlite_schema
from luminasign.api import ai, dashboard, media, player, playlist, schedule, screen
from luminasign.api.screen import refresh_screen_status, status_changed_payload
from luminasign.models.screen import Screen
from luminasign.services.playback import HEARTBEAT_TIMEOUT_SEC
from luminasign.services.storage import STORAGE_DIR, ensure_storage
from luminasign.services.realtime import collections_for_mutation, hub


def _env_flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


Base.metadata.create_all(bind=engine)
ensure_sqlite_schema()
ensure_storage()

API_KEY = os.getenv("SIGNAGE_API_KEY", "").strip()
SERVER_PORT = int(os.getenv("SIGNAGE_SERVER_PORT", "8000"))
SCREEN_STATUS_SWEEP_SEC = int(os.getenv("SIGNAGE_SCREEN_STATUS_SWEEP_SEC", "5"))
QUIET_ACCESS_LOG = _env_flag("SIGNAGE_QUIET_ACCESS_LOG")
QUIET_WEBSOCKET_LOG = _env_flag("SIGNAGE_QUIET_WEBSOCKET_LOG")

# Players authenticate by pairing code only.
PUBLIC_PATH_PREFIXES = ("/docs", "/openapi.json", "/redoc", "/storage", "/player", "/healthz")
MUTATING_METHODS = frozenset({"POST", "PUT", "DELETE"})

_screen_status_task: asyncio.Task | None = None

logger = logging.getLogger(__name__)

if QUIET_ACCESS_LOG:
    # Players heartbeat every few seconds, so the access log is mostly heartbeats.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

if QUIET_WEBSOCKET_LOG:
    for noisy in ("websockets", "uvicorn.protocols.websockets"):
        logging.getLogger(noisy).setLevel(logging.CRITICAL)


def sweep_screen_statuses(db, now: datetime) -> list[dict[str, str | None]]:
    """Re-derive every screen's status and return the ones that flipped."""
    changes = []
    for item in db.query(Screen).all():
        change = refresh_screen_status(item, now)
        if change:
            changes.append(change)
    if changes:
        db.commit()
    return changes


async def run_status_sweep() -> list[dict[str, str | None]]:
    changes: list[dict[str, str | None]] = []
    db = SessionLocal()
    try:
        changes = sweep_screen_statuses(db, datetime.utcnow())
    except Exception:
        logger.exception("Screen status sweep failed")
        db.rollback()
    finally:
        db.close()

    if changes:
        await hub.publish("screen_status_changed", status_changed_payload(changes), collection="screens")
    return changes


async def _screen_status_watcher() -> None:
    while True:
        await asyncio.sleep(SCREEN_STATUS_SWEEP_SEC)
        await run_status_sweep()


app = FastAPI(title="LuminaSign")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {
        "ok": True,
        "service": "luminasign-api",
        "time_utc": datetime.now(timezone.utc).isoformat(),
        "docs": "/docs",
    }


@app.get("/healthz")
def healthz():
    return {
        "ok": True,
        "server_port": SERVER_PORT,
        "heartbeat_timeout_sec": HEARTBEAT_TIMEOUT_SEC,
        "realtime_ws": "/ws/updates",
        "revision": hub.revision,
    }


@app.websocket("/ws/updates")
async def ws_updates(websocket: WebSocket):
    await hub.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.debug("Realtime socket closed with error", exc_info=True)
    finally:
        await hub.disconnect(websocket)


@app.on_event("startup")
async def start_status_sweep() -> None:
    global _screen_status_task
    if _screen_status_task is None or _screen_status_task.done():
        _screen_status_task = asyncio.create_task(_screen_status_watcher())


@app.on_event("shutdown")
async def stop_status_sweep() -> None:
    global _screen_status_task
    task, _screen_status_task = _screen_status_task, None
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    if API_KEY and not request.url.path.startswith(PUBLIC_PATH_PREFIXES):
        if request.headers.get("X-API-Key") != API_KEY:
            return JSONResponse({"detail": "Unauthorized"}, status_code=401)
    return await call_next(request)


@app.middleware("http")
async def realtime_mutation_middleware(request: Request, call_next):
    response = await call_next(request)
    path = request.url.path
    method = request.method.upper()
    if response.status_code >= 400 or method not in MUTATING_METHODS:
        return response
    touched = collections_for_mutation(method, path)
    if touched:
        await hub.publish(
            "config_changed",
            {"path": path, "method": method},
            collection=touched[0],
            related=touched[1:],
        )
    return response


for module in (dashboard, screen, media, playlist, schedule, player, ai):
    app.include_router(module.router)

app.mount("/storage", StaticFiles(directory=STORAGE_DIR), name="storage")
