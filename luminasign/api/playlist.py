from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from luminasign.api.common import normalize_entity_id, resolve_account_id
from luminasign.db import get_db
from luminasign.models.playlist import Playlist, PlaylistItem
from luminasign.models.media import Media
from luminasign.models.schedule import Schedule
from luminasign.models.screen import Screen
from luminasign.schemas.playlist import PlaylistCreateIn, PlaylistItemOut, PlaylistOut

router = APIRouter(prefix="/playlists", tags=["playlists"])


def _normalize_duration(value: int | None) -> int | None:
    if value is None:
        return None
    if value <= 0:
        raise HTTPException(status_code=400, detail="duration_sec must be positive")
    return value


def _get_playlist_or_404(db: Session, playlist_id: str) -> Playlist:
    playlist = db.query(Playlist).get(normalize_entity_id(playlist_id, "playlist_id"))
    if not playlist:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return playlist


def _ordered_items(db: Session, playlist_id: str) -> list[PlaylistItem]:
    return (
        db.query(PlaylistItem)
        .filter(PlaylistItem.playlist_id == playlist_id)
        .order_by(PlaylistItem.order.asc(), PlaylistItem.id.asc())
        .all()
    )


def item_payload(item: PlaylistItem) -> dict:
    return {
        "id": str(item.id),
        "playlist_id": str(item.playlist_id),
        "media_id": str(item.media_id),
        "order": item.order,
        "duration_sec": item.duration_sec,
    }


def playlist_payload(db: Session, playlist: Playlist) -> dict:
    return {
        "id": str(playlist.id),
        "name": playlist.name,
        "user_id": playlist.user_id,
        "items": [item_payload(item) for item in _ordered_items(db, str(playlist.id))],
    }


@router.post("", response_model=PlaylistOut)
def create_playlist(
    request: Request,
    payload: PlaylistCreateIn = Body(...),
    db: Session = Depends(get_db),
):
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Playlist name cannot be empty")
    if not payload.items:
        raise HTTPException(status_code=400, detail="Playlist needs at least one item")

    media_ids = {normalize_entity_id(row.media_id, "media_id") for row in payload.items}
    media_by_id = {
        str(row.id): row
        for row in db.query(Media).filter(Media.id.in_(list(media_ids))).all()
    }
    missing = sorted(media_ids - set(media_by_id))
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown media_id: {', '.join(missing)}")

    playlist = Playlist(name=name, user_id=resolve_account_id(request))
    db.add(playlist)
    db.flush()
    for index, row in enumerate(payload.items, start=1):
        media = media_by_id[normalize_entity_id(row.media_id, "media_id")]
        duration = _normalize_duration(row.duration_sec)
        db.add(
            PlaylistItem(
                playlist_id=playlist.id,
                media_id=media.id,
                order=index,
                duration_sec=duration if duration is not None else media.duration_sec,
            )
        )
    db.commit()
    db.refresh(playlist)
    return playlist_payload(db, playlist)

@router.get("", response_model=list[PlaylistOut])
def list_playlists(db: Session = Depends(get_db)):
    playlists = db.query(Playlist).order_by(Playlist.created_at.asc(), Playlist.id.asc()).all()
    return [playlist_payload(db, pl) for pl in playlists]

@router.get("/{playlist_id}", response_model=PlaylistOut)
def get_playlist(playlist_id: str, db: Session = Depends(get_db)):
    return playlist_payload(db, _get_playlist_or_404(db, playlist_id))

@router.put("/{playlist_id}", response_model=PlaylistOut)
def update_playlist(
    playlist_id: str,
    name: str | None = None,
    db: Session = Depends(get_db),
):
    playlist = _get_playlist_or_404(db, playlist_id)
    if name is not None:
        cleaned = name.strip()
        if not cleaned:
            raise HTTPException(status_code=400, detail="Playlist name cannot be empty")
        playlist.name = cleaned
    db.commit()
    db.refresh(playlist)
    return playlist_payload(db, playlist)

@router.delete("/{playlist_id}")
def delete_playlist(playlist_id: str, db: Session = Depends(get_db)):
    playlist = _get_playlist_or_404(db, playlist_id)
    playlist_id = str(playlist.id)
    db.query(PlaylistItem).filter(PlaylistItem.playlist_id == playlist_id).delete(synchronize_session=False)
    removed_schedules = (
        db.query(Schedule).filter(Schedule.playlist_id == playlist_id).delete(synchronize_session=False)
    )
    db.query(Screen).filter(Screen.current_playlist_id == playlist_id).update(
        {"current_playlist_id": None},
        synchronize_session=False,
    )
    db.delete(playlist)
    db.commit()
    return {"ok": True, "removed_schedules": removed_schedules}

@router.post("/{playlist_id}/items", response_model=PlaylistItemOut)
def add_item(
    playlist_id: str,
    media_id: str,
    order: int | None = None,
    duration_sec: int | None = None,
    db: Session = Depends(get_db),
):
    playlist = _get_playlist_or_404(db, playlist_id)
    media = db.query(Media).get(normalize_entity_id(media_id, "media_id"))
    if not media:
        raise HTTPException(status_code=404, detail="Media not found")
    if order is None:
        max_order = (
            db.query(PlaylistItem.order)
            .filter(PlaylistItem.playlist_id == playlist.id)
            .order_by(PlaylistItem.order.desc())
            .first()
        )
        order = (max_order[0] + 1) if max_order else 1
    duration = _normalize_duration(duration_sec)
    item = PlaylistItem(
        playlist_id=playlist.id,
        media_id=media.id,
        order=order,
        duration_sec=duration if duration is not None else media.duration_sec,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item_payload(item)

@router.get("/{playlist_id}/items", response_model=list[PlaylistItemOut])
def list_items(playlist_id: str, db: Session = Depends(get_db)):
    playlist = _get_playlist_or_404(db, playlist_id)
    return [item_payload(item) for item in _ordered_items(db, str(playlist.id))]

@router.put("/items/{item_id}", response_model=PlaylistItemOut)
def update_item(item_id: str, order: int | None = None, duration_sec: int | None = None, db: Session = Depends(get_db)):
    item_id = normalize_entity_id(item_id, "item_id")
    item = db.query(PlaylistItem).get(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Playlist item not found")
    if order is not None:
        item.order = order
    if duration_sec is not None:
        item.duration_sec = _normalize_duration(duration_sec)
    db.commit()
    db.refresh(item)
    return item_payload(item)

@router.delete("/items/{item_id}")
def delete_item(item_id: str, db: Session = Depends(get_db)):
    item_id = normalize_entity_id(item_id, "item_id")
    item = db.query(PlaylistItem).get(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Playlist item not found")
    db.delete(item)
    db.commit()
    return {"ok": True}
