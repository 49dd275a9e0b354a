import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket

COLLECTIONS = ("screens", "media", "playlists", "schedules")

logger = logging.getLogger(__name__)


# Deletes that also remove or rewrite rows of other collections.
CASCADES = (
    ("DELETE", re.compile(r"^/media/[^/]+$"), ("playlists",)),
    ("DELETE", re.compile(r"^/playlists/[^/]+$"), ("schedules", "screens")),
    ("DELETE", re.compile(r"^/screens/[^/]+$"), ("schedules",)),
)


def collection_for_path(path: str) -> str | None:
    segment = path.strip("/").split("/", 1)[0]
    return segment if segment in COLLECTIONS else None


def collections_for_mutation(method: str, path: str) -> tuple[str, ...]:
    """Every collection a successful mutation can change, its own first."""
    primary = collection_for_path(path)
    if primary is None:
        return ()
    touched = [primary]
    normalized = "/" + path.strip("/")
    for cascade_method, pattern, related in CASCADES:
        if method == cascade_method and pattern.match(normalized):
            touched.extend(name for name in related if name not in touched)
    return tuple(touched)


def _frame(event_type: str, **fields: Any) -> str:
    return json.dumps({"type": event_type, **fields, "ts": datetime.now(timezone.utc).isoformat()})


class RealtimeHub:
    """Fan-out of change notifications to connected admin and player sockets.

    Each collection keeps its own revision counter so a client that missed a
    frame can tell which snapshot it has to refetch.
    """

    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._revision = 0
        self._collection_revisions: dict[str, int] = dict.fromkeys(COLLECTIONS, 0)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._clients.add(websocket)
        hello = _frame("hello", revision=self._revision, collections=dict(self._collection_revisions))
        await websocket.send_text(hello)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(websocket)

    async def _broadcast(self, message: str) -> None:
        async with self._lock:
            targets = list(self._clients)
        dead = []
        for websocket in targets:
            try:
                await websocket.send_text(message)
            except Exception:
                dead.append(websocket)
        if dead:
            logger.debug("Dropping %d stale realtime clients", len(dead))
            async with self._lock:
                self._clients.difference_update(dead)

    async def publish(
        self,
        event_type: str,
        payload: dict[str, Any] | None = None,
        collection: str | None = None,
        related: tuple[str, ...] = (),
    ) -> int:
        self._revision += 1
        bumped: dict[str, int] = {}
        for name in (collection, *related):
            if name in self._collection_revisions and name not in bumped:
                self._collection_revisions[name] += 1
                bumped[name] = self._collection_revisions[name]
        collection_revision = bumped.get(collection)
        await self._broadcast(
            _frame(
                event_type,
                revision=self._revision,
                collection=collection,
                collection_revision=collection_revision,
                collections=bumped,
                payload=payload or {},
            )
        )
        return self._revision

    @property
    def revision(self) -> int:
        return self._revision

    def collection_revision(self, collection: str) -> int:
        return self._collection_revisions.get(collection, 0)


hub = RealtimeHub()
