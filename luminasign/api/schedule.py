from datetime import datetime, time

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session
from luminasign.api.common import normalize_entity_id, ordered_schedules
from luminasign.db import get_db
from luminasign.models.playlist import Playlist
from luminasign.models.schedule import Schedule
from luminasign.models.screen import Screen
from luminasign.schemas.schedule import ScheduleIn, ScheduleOut, ScheduleUpdateIn
from luminasign.services.playback import (
    format_days,
    format_hhmm,
    parse_days,
    parse_hhmm,
    schedule_is_active,
    schedule_now,
)

router = APIRouter(prefix="/schedules", tags=["schedules"])


def _parse_time(value: str) -> time:
    try:
        return parse_hhmm(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _parse_days(values: list[int]) -> str:
    try:
        days = parse_days(values)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not days:
        raise HTTPException(status_code=400, detail="Select at least one day.")
    return format_days(days)


def _validate_window(start_time: time, end_time: time) -> None:
    if start_time > end_time:
        raise HTTPException(status_code=400, detail="start_time must not be after end_time.")


def _require_playlist(db: Session, playlist_id: str) -> str:
    playlist_id = normalize_entity_id(playlist_id, "playlist_id")
    if db.query(Playlist).get(playlist_id) is None:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return playlist_id


def schedule_payload(schedule: Schedule, now: datetime) -> dict:
    return {
        "id": str(schedule.id),
        "screen_id": str(schedule.screen_id),
        "playlist_id": str(schedule.playlist_id),
        "start_time": format_hhmm(schedule.start_time),
        "end_time": format_hhmm(schedule.end_time),
        "days": sorted(parse_days(schedule.days)),
        "active": schedule_is_active(schedule, now),
    }


@router.post("", response_model=ScheduleOut)
def create_schedule(payload: ScheduleIn = Body(...), db: Session = Depends(get_db)):
    screen_id = normalize_entity_id(payload.screen_id, "screen_id")
    if db.query(Screen).get(screen_id) is None:
        raise HTTPException(status_code=404, detail="Screen not found")
    playlist_id = _require_playlist(db, payload.playlist_id)
    start = _parse_time(payload.start_time)
    end = _parse_time(payload.end_time)
    _validate_window(start, end)
    schedule = Schedule(
        screen_id=screen_id,
        playlist_id=playlist_id,
        start_time=start,
        end_time=end,
        days=_parse_days(payload.days),
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    return schedule_payload(schedule, schedule_now())

@router.get("", response_model=list[ScheduleOut])
def list_schedules(screen_id: str | None = None, db: Session = Depends(get_db)):
    if screen_id is not None:
        screen_id = normalize_entity_id(screen_id, "screen_id")
    now = schedule_now()
    return [schedule_payload(sc, now) for sc in ordered_schedules(db, screen_id)]

@router.put("/{schedule_id}", response_model=ScheduleOut)
def update_schedule(
    schedule_id: str,
    payload: ScheduleUpdateIn = Body(...),
    db: Session = Depends(get_db),
):
    schedule = db.query(Schedule).get(schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")

    new_start = _parse_time(payload.start_time) if payload.start_time is not None else schedule.start_time
    new_end = _parse_time(payload.end_time) if payload.end_time is not None else schedule.end_time
    _validate_window(new_start, new_end)

    schedule.start_time = new_start
    schedule.end_time = new_end
    if payload.days is not None:
        schedule.days = _parse_days(payload.days)
    if payload.playlist_id is not None:
        schedule.playlist_id = _require_playlist(db, payload.playlist_id)
    db.commit()
    db.refresh(schedule)
    return schedule_payload(schedule, schedule_now())

@router.delete("/{schedule_id}")
def delete_schedule(schedule_id: str, db: Session = Depends(get_db)):
    schedule = db.query(Schedule).get(schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")
    db.delete(schedule)
    db.commit()
    return {"ok": True}
