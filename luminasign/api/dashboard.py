from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session
from luminasign.api.screen import announce_status_changes, refresh_screen_status
from luminasign.db import get_db
from luminasign.models.media import Media
from luminasign.models.playlist import Playlist
from luminasign.models.screen import Screen

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

RECENT_SCREENS_LIMIT = 10


@router.get("")
def dashboard(background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    screens = db.query(Screen).order_by(Screen.created_at.desc(), Screen.id.asc()).all()
    now = datetime.utcnow()
    changes = [change for change in (refresh_screen_status(s, now) for s in screens) if change]
    if changes:
        db.commit()
        announce_status_changes(background_tasks, changes)
    playlist_names = {str(pl.id): pl.name for pl in db.query(Playlist).all()}
    return {
        "total_screens": len(screens),
        "online_screens": sum(1 for s in screens if s.status == "online"),
        "media_count": db.query(Media).count(),
        "playlist_count": len(playlist_names),
        "recent_screens": [
            {
                "id": str(s.id),
                "name": s.name,
                "status": s.status,
                "playlist_name": playlist_names.get(str(s.current_playlist_id)) if s.current_playlist_id else None,
                "last_heartbeat": s.last_heartbeat.isoformat() if s.last_heartbeat else None,
            }
            for s in screens[:RECENT_SCREENS_LIMIT]
        ],
    }
