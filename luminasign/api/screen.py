import logging
import re
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from luminasign.api.common import normalize_entity_id, ordered_schedules, resolve_account_id
from luminasign.db import get_db
from luminasign.models.playlist import Playlist
from luminasign.models.schedule import Schedule
from luminasign.models.screen import Screen
from luminasign.schemas.screen import ScreenAssignIn, ScreenOut, ScreenPairIn
from luminasign.services.playback import (
    HEARTBEAT_TIMEOUT_SEC,
    derive_screen_status,
    find_active_schedule,
    resolve_active_playlist_id,
    schedule_now,
)
from luminasign.services.realtime import hub

router = APIRouter(prefix="/screens", tags=["screens"])
logger = logging.getLogger(__name__)

PAIRING_CODE_RE = re.compile(r"^\d{6}$")


def normalize_pairing_code(value: str | None) -> str:
    code = (value or "").strip()
    if not PAIRING_CODE_RE.fullmatch(code):
        raise HTTPException(status_code=400, detail="Pairing code must be exactly 6 digits.")
    return code


def status_change(screen: Screen) -> dict:
    return {
        "screen_id": str(screen.id),
        "status": screen.status,
        "last_heartbeat": screen.last_heartbeat.isoformat() if screen.last_heartbeat else None,
    }


def refresh_screen_status(screen: Screen, now: datetime | None = None) -> dict | None:
    """Re-derive the status from heartbeat age; return the change when it flipped."""
    next_status = derive_screen_status(screen.last_heartbeat, now or datetime.utcnow())
    if screen.status == next_status:
        return None
    screen.status = next_status
    return status_change(screen)


def status_changed_payload(changes: list[dict]) -> dict:
    return {"changes": changes, "heartbeat_timeout_sec": HEARTBEAT_TIMEOUT_SEC}


def announce_status_changes(background_tasks: BackgroundTasks, changes: list[dict]) -> None:
    # Runs after the response, on the event loop that owns the realtime hub.
    if changes:
        background_tasks.add_task(
            hub.publish, "screen_status_changed", status_changed_payload(changes), collection="screens"
        )


def _enforce_screen_owner(screen: Screen, account_id: str | None) -> None:
    if not screen.user_id or not account_id:
        return
    if screen.user_id != account_id:
        raise HTTPException(
            status_code=403,
            detail="Screen is already paired to another account.",
        )


def _get_screen_or_404(db: Session, screen_id: str) -> Screen:
    screen = db.query(Screen).get(normalize_entity_id(screen_id, "screen_id"))
    if not screen:
        raise HTTPException(status_code=404, detail="Screen not found")
    return screen


def screen_payload(screen: Screen) -> dict:
    return {
        "id": str(screen.id),
        "name": screen.name,
        "pairing_code": screen.pairing_code,
        "status": screen.status,
        "current_playlist_id": str(screen.current_playlist_id) if screen.current_playlist_id else None,
        "last_heartbeat": screen.last_heartbeat.isoformat() if screen.last_heartbeat else None,
        "user_id": screen.user_id,
    }


@router.post("", response_model=ScreenOut)
def pair_screen(
    request: Request,
    payload: ScreenPairIn = Body(...),
    db: Session = Depends(get_db),
):
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Screen name cannot be empty")
    code = normalize_pairing_code(payload.pairing_code)
    account_id = resolve_account_id(request)

    existing = db.query(Screen).filter(Screen.pairing_code == code).first()
    if existing is not None:
        _enforce_screen_owner(existing, account_id)
        existing.name = name
        existing.user_id = account_id
        existing.status = "online"
        db.commit()
        db.refresh(existing)
        logger.info("Re-paired screen %s with code %s", existing.id, code)
        return screen_payload(existing)

    screen = Screen(
        name=name,
        pairing_code=code,
        status="online",
        current_playlist_id=None,
        last_heartbeat=datetime.utcnow(),
        user_id=account_id,
    )
    db.add(screen)
    db.commit()
    db.refresh(screen)
    logger.info("Paired new screen %s with code %s", screen.id, code)
    return screen_payload(screen)


@router.get("", response_model=list[ScreenOut])
def list_screens(
    request: Request,
    background_tasks: BackgroundTasks,
    account_id: str | None = None,
    db: Session = Depends(get_db),
):
    screens = db.query(Screen).order_by(Screen.created_at.asc(), Screen.id.asc()).all()
    now = datetime.utcnow()
    changes = []
    for screen in screens:
        change = refresh_screen_status(screen, now)
        if change:
            changes.append(change)
    if changes:
        db.commit()
        for screen in screens:
            db.refresh(screen)
        announce_status_changes(background_tasks, changes)
    resolved_account = resolve_account_id(request, account_id)
    if resolved_account:
        screens = [s for s in screens if not s.user_id or s.user_id == resolved_account]
    return [screen_payload(s) for s in screens]


@router.get("/{screen_id}", response_model=ScreenOut)
def get_screen(screen_id: str, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    screen = _get_screen_or_404(db, screen_id)
    change = refresh_screen_status(screen)
    if change:
        db.commit()
        db.refresh(screen)
        announce_status_changes(background_tasks, [change])
    return screen_payload(screen)


@router.put("/{screen_id}", response_model=ScreenOut)
def update_screen(screen_id: str, name: str | None = None, db: Session = Depends(get_db)):
    screen = _get_screen_or_404(db, screen_id)
    if name is not None:
        cleaned = name.strip()
        if not cleaned:
            raise HTTPException(status_code=400, detail="Screen name cannot be empty")
        screen.name = cleaned
    db.commit()
    db.refresh(screen)
    return screen_payload(screen)


@router.put("/{screen_id}/playlist", response_model=ScreenOut)
def assign_playlist(
    screen_id: str,
    payload: ScreenAssignIn = Body(...),
    db: Session = Depends(get_db),
):
    screen = _get_screen_or_404(db, screen_id)
    playlist_id = (payload.playlist_id or "").strip() or None
    if playlist_id is not None and db.query(Playlist).get(playlist_id) is None:
        raise HTTPException(status_code=404, detail="Playlist not found")
    screen.current_playlist_id = playlist_id
    db.commit()
    db.refresh(screen)
    return screen_payload(screen)


@router.get("/{screen_id}/now-playing")
def now_playing(screen_id: str, db: Session = Depends(get_db)):
    screen = _get_screen_or_404(db, screen_id)
    schedules = ordered_schedules(db, str(screen.id))
    now = schedule_now()
    active_schedule = find_active_schedule(str(screen.id), schedules, now)
    playlist_id = resolve_active_playlist_id(screen, schedules, now)
    playlist = db.query(Playlist).get(playlist_id) if playlist_id else None
    return {
        "screen_id": str(screen.id),
        "playlist_id": playlist_id,
        "playlist_name": playlist.name if playlist else None,
        "schedule_id": str(active_schedule.id) if active_schedule else None,
        "override_active": playlist_id != (screen.current_playlist_id or None),
        "evaluated_at": now.isoformat(),
    }


@router.delete("/{screen_id}")
def delete_screen(screen_id: str, db: Session = Depends(get_db)):
    screen = _get_screen_or_404(db, screen_id)
    db.query(Schedule).filter(Schedule.screen_id == screen.id).delete(synchronize_session=False)
    db.delete(screen)
    db.commit()
    return {"ok": True}
