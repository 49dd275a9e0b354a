import base64
from datetime import datetime, time
from sqlalchemy.orm import Session
from luminasign.db import SessionLocal, Base, engine
from luminasign.models.screen import Screen
from luminasign.models.playlist import Playlist, PlaylistItem
from luminasign.models.schedule import Schedule
from luminasign.models.media import Media
from luminasign.services.playback import format_days
from luminasign.services.storage import save_local

PLACEHOLDER_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR4nGNgYAAAAAMAASsJTYQAAAAASUVORK5CYII="
)


def seed(db: Session | None = None, account_id: str = "user1") -> dict:
    """Create a demo screen with a default loop and a weekday lunch override."""
    owns_session = db is None
    if owns_session:
        Base.metadata.create_all(bind=engine)
        db = SessionLocal()
    try:
        media_entries = []
        for filename, label in [("welcome.png", "Welcome Slide"), ("lunch_menu.png", "Lunch Menu")]:
            url, storage_path = save_local(filename, PLACEHOLDER_PNG)
            media = Media(
                name=label,
                type="image",
                url=url,
                storage_path=storage_path,
                duration_sec=10,
                size=len(PLACEHOLDER_PNG),
            )
            db.add(media)
            media_entries.append(media)
        db.flush()

        default_loop = Playlist(name="Lobby Default Loop", user_id=account_id)
        lunch_loop = Playlist(name="Lunch Specials", user_id=account_id)
        db.add(default_loop)
        db.add(lunch_loop)
        db.flush()

        db.add(PlaylistItem(playlist_id=default_loop.id, media_id=media_entries[0].id, order=1, duration_sec=10))
        db.add(PlaylistItem(playlist_id=default_loop.id, media_id=media_entries[1].id, order=2, duration_sec=5))
        db.add(PlaylistItem(playlist_id=lunch_loop.id, media_id=media_entries[1].id, order=1, duration_sec=15))

        screen = Screen(
            name="Lobby Entrance TV",
            pairing_code="123456",
            status="online",
            current_playlist_id=default_loop.id,
            last_heartbeat=datetime.utcnow(),
            user_id=account_id,
        )
        db.add(screen)
        db.flush()

        db.add(
            Schedule(
                screen_id=screen.id,
                playlist_id=lunch_loop.id,
                start_time=time(11, 30),
                end_time=time(14, 0),
                days=format_days([1, 2, 3, 4, 5]),
            )
        )
        db.commit()
        return {
            "screen_id": str(screen.id),
            "pairing_code": screen.pairing_code,
            "default_playlist_id": str(default_loop.id),
            "scheduled_playlist_id": str(lunch_loop.id),
        }
    finally:
        if owns_session:
            db.close()


if __name__ == "__main__":
    print(seed())
