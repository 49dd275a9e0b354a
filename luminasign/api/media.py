import logging
import os

from fastapi import APIRouter, Body, UploadFile, File, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import func
from luminasign.db import get_db
from luminasign.models.media import Media
from luminasign.models.playlist import PlaylistItem
from luminasign.schemas.media import MediaLinkIn, MediaOut
from luminasign.services import image_host
from luminasign.services.storage import normalized_media_type, read_upload, remove_local, save_local

router = APIRouter(prefix="/media", tags=["media"])
logger = logging.getLogger(__name__)

MEDIA_BACKEND = (os.getenv("SIGNAGE_MEDIA_BACKEND", "local") or "local").strip().lower()


def _resolved_media_name(name: str | None, file: UploadFile) -> str:
    candidate = (name or "").strip()
    if candidate and candidate.lower() != "unnamed":
        return candidate
    fallback = (file.filename or "").strip()
    if fallback:
        return fallback
    return "media-file"


def _store_upload(file: UploadFile, media_type: str) -> tuple[str, str | None, str | None, int]:
    """Persist an upload with the configured backend.

    Returns ``(url, storage_path, external_delete_url, size)``.
    """
    filename, content = read_upload(file, media_type)
    if MEDIA_BACKEND == "imgbb":
        if media_type != "image":
            raise ValueError("The image host only supports image uploads.")
        url, delete_url = image_host.upload_image(filename, content)
        return url, None, delete_url, len(content)
    url, storage_path = save_local(filename, content)
    return url, storage_path, None, len(content)


@router.post("/upload", response_model=MediaOut)
def upload_media(
    file: UploadFile = File(...),
    name: str | None = None,
    type: str | None = None,
    duration_sec: int = 10,
    db: Session = Depends(get_db)
):
    if duration_sec <= 0:
        raise HTTPException(status_code=400, detail="duration_sec must be positive")
    try:
        media_type = normalized_media_type(type, file.content_type)
        url, storage_path, delete_url, size = _store_upload(file, media_type)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except image_host.ImageHostError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    media = Media(
        name=_resolved_media_name(name, file),
        type=media_type,
        url=url,
        duration_sec=duration_sec,
        storage_path=storage_path,
        external_delete_url=delete_url,
        size=size,
    )
    db.add(media)
    db.commit()
    db.refresh(media)
    logger.info("Stored %s media %s at %s", media_type, media.id, url)
    return media


@router.post("", response_model=MediaOut)
def add_media_link(payload: MediaLinkIn = Body(...), db: Session = Depends(get_db)):
    try:
        media_type = normalized_media_type(payload.type)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    url = payload.url.strip()
    if not url.lower().startswith(("http://", "https://", "/")):
        raise HTTPException(status_code=400, detail="url must be an absolute http(s) URL or a /storage path")
    media = Media(
        name=payload.name.strip() or os.path.basename(url) or "media-file",
        type=media_type,
        url=url,
        duration_sec=payload.duration_sec,
        size=0,
    )
    db.add(media)
    db.commit()
    db.refresh(media)
    return media


def _search(db: Session, q: str | None, media_type: str | None = None, match_url: bool = False):
    query = db.query(Media)
    kind = (media_type or "").strip().lower()
    if kind in {"image", "video"}:
        query = query.filter(func.lower(Media.type) == kind)
    keyword = (q or "").strip().lower()
    if keyword:
        pattern = f"%{keyword}%"
        condition = func.lower(Media.name).like(pattern)
        if match_url:
            condition = condition | func.lower(Media.url).like(pattern)
        query = query.filter(condition)
    return query.order_by(Media.created_at.desc(), Media.id.desc())


@router.get("", response_model=list[MediaOut])
def list_media(q: str | None = None, db: Session = Depends(get_db)):
    return _search(db, q).all()


@router.get("/page")
def list_media_page(
    offset: int = 0,
    limit: int = 100,
    q: str | None = None,
    type: str | None = None,
    db: Session = Depends(get_db),
):
    offset = max(0, offset)
    limit = max(1, min(limit, 500))
    query = _search(db, q, type, match_url=True)
    return {
        "items": [MediaOut.model_validate(item) for item in query.offset(offset).limit(limit).all()],
        "total": query.count(),
        "offset": offset,
        "limit": limit,
    }

@router.get("/{media_id}", response_model=MediaOut)
def get_media(media_id: str, db: Session = Depends(get_db)):
    media = db.query(Media).get(media_id)
    if not media:
        raise HTTPException(status_code=404, detail="Media not found")
    return media

@router.delete("/{media_id}")
def delete_media(media_id: str, db: Session = Depends(get_db)):
    media = db.query(Media).get(media_id)
    if not media:
        raise HTTPException(status_code=404, detail="Media not found")
    removed_items = (
        db.query(PlaylistItem)
        .filter(PlaylistItem.media_id == media_id)
        .delete(synchronize_session=False)
    )
    storage_path = media.storage_path
    external_delete_url = media.external_delete_url
    db.delete(media)
    db.commit()
    if storage_path:
        remove_local(storage_path)
    if external_delete_url:
        logger.info("Media %s deleted; hosted copy remains at %s", media_id, external_delete_url)
    return {"ok": True, "removed_playlist_items": removed_items}
