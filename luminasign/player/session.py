"""Client-side rotation state for a paired display.

The session is driven by an injected monotonic clock so the runner (and the
tests) decide when time passes. Server snapshots come from
``GET /player/{code}/state``.
"""
import logging
from typing import Any

from luminasign.services.playback import item_duration_sec

logger = logging.getLogger(__name__)


class PlayerSession:
    def __init__(self, pairing_code: str) -> None:
        self.pairing_code = pairing_code
        self.paired = False
        self.screen_name: str | None = None
        self.override_active = False
        self.playlist_id: str | None = None
        self.playlist_name: str | None = None
        self.items: list[dict[str, Any]] = []
        self.index = 0
        self._advance_at: float | None = None

    @property
    def state(self) -> str:
        if not self.paired:
            return "pairing"
        if not self.items:
            return "idle"
        return "playing"

    def current_item(self) -> dict[str, Any] | None:
        if not self.items:
            return None
        return self.items[self.index]

    def current_media(self) -> dict[str, Any] | None:
        item = self.current_item()
        if item is None:
            return None
        return item.get("media")

    def seconds_until_advance(self, now: float) -> float | None:
        if self._advance_at is None:
            return None
        return max(0.0, self._advance_at - now)

    def _restart_timer(self, now: float) -> None:
        item = self.current_item()
        if item is None:
            self._advance_at = None
            return
        self._advance_at = now + item_duration_sec(item.get("duration_sec"))

    def sync(self, snapshot: dict[str, Any], now: float) -> bool:
        """Apply a server snapshot; return True when the resolved playlist changed."""
        self.paired = bool(snapshot.get("paired"))
        screen = snapshot.get("screen") or {}
        self.screen_name = screen.get("name")
        self.override_active = bool(snapshot.get("override_active"))

        playlist = snapshot.get("playlist") if self.paired else None
        target_id = str(playlist["id"]) if playlist else None
        items = list(playlist.get("items") or []) if playlist else []

        if target_id != self.playlist_id:
            logger.info("Resolved playlist changed: %s -> %s", self.playlist_id, target_id)
            self.playlist_id = target_id
            self.playlist_name = playlist.get("name") if playlist else None
            self.items = items
            self.index = 0
            self._restart_timer(now)
            return True

        self.playlist_name = playlist.get("name") if playlist else None
        self.items = items
        if self.index >= len(items):
            self.index = 0
            self._restart_timer(now)
        elif self._advance_at is None and items:
            self._restart_timer(now)
        return False

    def tick(self, now: float) -> bool:
        """Advance past every elapsed item; return True if the index moved."""
        if not self.items or self._advance_at is None:
            return False
        advanced = False
        while now >= self._advance_at:
            self.index = (self.index + 1) % len(self.items)
            # Chain from the previous deadline so late ticks do not drift.
            self._advance_at += item_duration_sec(self.items[self.index].get("duration_sec"))
            advanced = True
        return advanced

    def describe(self) -> str:
        if self.state == "pairing":
            return f"Waiting for pairing, code {self.pairing_code}"
        if self.state == "idle":
            return f"{self.screen_name or 'Screen'}: no content assigned"
        media = self.current_media()
        label = media.get("name") if media else "media missing"
        suffix = " (scheduled override)" if self.override_active else ""
        return (
            f"{self.screen_name or 'Screen'}: {self.playlist_name} "
            f"[{self.index + 1}/{len(self.items)}] {label}{suffix}"
        )
