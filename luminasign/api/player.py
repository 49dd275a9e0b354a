import random
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session
from luminasign.api.common import ordered_schedules
from luminasign.api.screen import announce_status_changes, normalize_pairing_code, screen_payload, status_change
from luminasign.db import get_db
from luminasign.models.media import Media
from luminasign.models.playlist import Playlist, PlaylistItem
from luminasign.models.screen import Screen
from luminasign.services.playback import (
    HEARTBEAT_INTERVAL_SEC,
    HEARTBEAT_TIMEOUT_SEC,
    item_duration_sec,
    resolve_active_playlist_id,
    schedule_now,
)

router = APIRouter(prefix="/player", tags=["player"])

PAIRING_CODE_ATTEMPTS = 50


def generate_pairing_code() -> str:
    return str(random.randint(100000, 999999))


def _find_screen_by_code(db: Session, code: str) -> Screen | None:
    return db.query(Screen).filter(Screen.pairing_code == code).first()


def _playlist_snapshot(db: Session, playlist: Playlist) -> dict:
    items = (
        db.query(PlaylistItem)
        .filter(PlaylistItem.playlist_id == playlist.id)
        .order_by(PlaylistItem.order.asc(), PlaylistItem.id.asc())
        .all()
    )
    media_ids = {str(it.media_id) for it in items}
    media_by_id = {}
    if media_ids:
        media_by_id = {str(m.id): m for m in db.query(Media).filter(Media.id.in_(list(media_ids))).all()}
    output = []
    for it in items:
        media = media_by_id.get(str(it.media_id))
        output.append(
            {
                "id": str(it.id),
                "media_id": str(it.media_id),
                "duration_sec": item_duration_sec(it.duration_sec),
                "media": (
                    {
                        "id": str(media.id),
                        "name": media.name,
                        "type": media.type,
                        "url": media.url,
                    }
                    if media
                    else None
                ),
            }
        )
    return {"id": str(playlist.id), "name": playlist.name, "items": output}


@router.post("/pairing-code")
def new_pairing_code(db: Session = Depends(get_db)):
    for _ in range(PAIRING_CODE_ATTEMPTS):
        code = generate_pairing_code()
        if _find_screen_by_code(db, code) is None:
            return {"pairing_code": code}
    raise HTTPException(status_code=503, detail="Could not allocate a free pairing code, try again.")


@router.post("/{pairing_code}/heartbeat")
def heartbeat(pairing_code: str, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    code = normalize_pairing_code(pairing_code)
    screen = _find_screen_by_code(db, code)
    if screen:
        came_online = screen.status != "online"
        screen.last_heartbeat = datetime.utcnow()
        screen.status = "online"
        db.commit()
        if came_online:
            announce_status_changes(background_tasks, [status_change(screen)])
    return {
        "ok": True,
        "paired": bool(screen and screen.user_id),
        "heartbeat_interval_sec": HEARTBEAT_INTERVAL_SEC,
    }


@router.get("/{pairing_code}/state")
def player_state(pairing_code: str, db: Session = Depends(get_db)):
    code = normalize_pairing_code(pairing_code)
    screen = _find_screen_by_code(db, code)
    now = schedule_now()
    base = {
        "pairing_code": code,
        "heartbeat_interval_sec": HEARTBEAT_INTERVAL_SEC,
        "heartbeat_timeout_sec": HEARTBEAT_TIMEOUT_SEC,
        "evaluated_at": now.isoformat(),
    }
    if screen is None or not screen.user_id:
        return {**base, "paired": False, "screen": None, "playlist": None, "override_active": False}

    playlist_id = resolve_active_playlist_id(screen, ordered_schedules(db, str(screen.id)), now)
    playlist = db.query(Playlist).get(playlist_id) if playlist_id else None
    return {
        **base,
        "paired": True,
        "screen": screen_payload(screen),
        "playlist": _playlist_snapshot(db, playlist) if playlist else None,
        "override_active": playlist_id != (screen.current_playlist_id or None),
    }
