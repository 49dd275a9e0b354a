"""Active-content resolution and heartbeat liveness rules.

These helpers are shared by the admin API, the player API and the headless
player. They work on anything shaped like the ORM rows (``screen_id``,
``playlist_id``, ``start_time``, ``end_time``, ``days``) so they can be used
on detached snapshots as well.
"""
import os
from datetime import datetime, time
from typing import Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

HEARTBEAT_INTERVAL_SEC = int(os.getenv("SIGNAGE_HEARTBEAT_INTERVAL_SEC", "5"))
HEARTBEAT_TIMEOUT_SEC = int(os.getenv("SIGNAGE_HEARTBEAT_TIMEOUT_SEC", "30"))
DEFAULT_ITEM_DURATION_SEC = 10
SCHEDULE_TIMEZONE = (os.getenv("SIGNAGE_SCHEDULE_TIMEZONE", "") or "").strip()
try:
    _SCHEDULE_TZ = ZoneInfo(SCHEDULE_TIMEZONE) if SCHEDULE_TIMEZONE else None
except (ZoneInfoNotFoundError, ValueError):
    _SCHEDULE_TZ = None

ALL_DAYS = frozenset(range(7))


def schedule_now() -> datetime:
    if _SCHEDULE_TZ is None:
        return datetime.now()
    # Naive wall clock, schedule windows are stored without a zone.
    return datetime.now(_SCHEDULE_TZ).replace(tzinfo=None)


def now_slot(now: datetime) -> tuple[int, int]:
    """Return ``(weekday, minute_of_day)`` with Sunday as day 0."""
    return now.isoweekday() % 7, now.hour * 60 + now.minute


def parse_hhmm(value: str) -> time:
    raw = (value or "").strip()
    parts = raw.split(":")
    if len(parts) not in (2, 3) or not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid time '{value}'. Use HH:MM or HH:MM:SS.")
    hour = int(parts[0])
    minute = int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    if hour > 23 or minute > 59 or second > 59:
        raise ValueError(f"Invalid time '{value}'. Use HH:MM or HH:MM:SS.")
    return time(hour, minute, second)


def format_hhmm(value: time | None) -> str | None:
    if value is None:
        return None
    return value.strftime("%H:%M")


def parse_days(value: str | Iterable[int] | None) -> set[int]:
    if value is None:
        return set()
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",")]
    else:
        items = list(value)
    days: set[int] = set()
    for item in items:
        if item == "" or item is None:
            continue
        try:
            day = int(item)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid weekday '{item}'. Use 0 (Sunday) to 6 (Saturday).") from exc
        if day not in ALL_DAYS:
            raise ValueError(f"Invalid weekday '{item}'. Use 0 (Sunday) to 6 (Saturday).")
        days.add(day)
    return days


def format_days(days: Iterable[int]) -> str:
    return ",".join(str(day) for day in sorted(set(days)))


def _minute_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def schedule_is_active(schedule, now: datetime) -> bool:
    weekday, minute = now_slot(now)
    try:
        days = parse_days(schedule.days)
    except ValueError:
        return False
    if weekday not in days:
        return False
    if schedule.start_time is None or schedule.end_time is None:
        return False
    return _minute_of_day(schedule.start_time) <= minute <= _minute_of_day(schedule.end_time)


def find_active_schedule(screen_id: str, schedules: Iterable, now: datetime):
    for schedule in schedules:
        if str(schedule.screen_id) != str(screen_id):
            continue
        if schedule_is_active(schedule, now):
            return schedule
    return None


def resolve_active_playlist_id(screen, schedules: Iterable, now: datetime) -> str | None:
    """First matching schedule wins, otherwise the screen's own assignment."""
    active = find_active_schedule(screen.id, schedules, now)
    if active is not None:
        return str(active.playlist_id)
    if screen.current_playlist_id:
        return str(screen.current_playlist_id)
    return None


def is_screen_online(last_heartbeat: datetime | None, now: datetime) -> bool:
    if last_heartbeat is None:
        return False
    return (now - last_heartbeat).total_seconds() < HEARTBEAT_TIMEOUT_SEC


def derive_screen_status(last_heartbeat: datetime | None, now: datetime) -> str:
    if last_heartbeat is None:
        return "pending"
    return "online" if is_screen_online(last_heartbeat, now) else "offline"


def item_duration_sec(duration: int | None) -> int:
    if duration is None or duration <= 0:
        return DEFAULT_ITEM_DURATION_SEC
    return int(duration)
