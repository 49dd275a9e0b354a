import os

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from luminasign.models.schedule import Schedule

DEFAULT_ACCOUNT = (os.getenv("SIGNAGE_DEFAULT_ACCOUNT", "user1") or "").strip() or None


def resolve_account_id(request: Request, explicit: str | None = None) -> str | None:
    candidate = (explicit or "").strip()
    if candidate:
        return candidate
    header_account = (request.headers.get("X-Account-ID") or "").strip()
    if header_account:
        return header_account
    return DEFAULT_ACCOUNT


def normalize_entity_id(value: str | None, field_name: str) -> str:
    normalized = (value or "").strip()
    if normalized.startswith("{") and normalized.endswith("}"):
        normalized = normalized[1:-1].strip()
    if not normalized:
        raise HTTPException(status_code=400, detail=f"{field_name} is required")
    return normalized


def ordered_schedules(db: Session, screen_id: str | None = None) -> list[Schedule]:
    """Schedules in resolution order: the earliest created entry wins."""
    query = db.query(Schedule)
    if screen_id is not None:
        query = query.filter(Schedule.screen_id == screen_id)
    return query.order_by(Schedule.position.asc(), Schedule.created_at.asc(), Schedule.id.asc()).all()
