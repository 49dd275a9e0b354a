from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy import text
import os

DATABASE_URL = os.getenv("SIGNAGE_DATABASE_URL", "sqlite:///./signage.db")

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


_PATCH_COLUMNS = {
    "screen": {"user_id": "VARCHAR", "created_at": "DATETIME"},
    "media": {"external_delete_url": "VARCHAR", "storage_path": "VARCHAR"},
    "schedule": {"created_at": "DATETIME", "position": "INTEGER"},
    "playlist": {"created_at": "DATETIME"},
}


def _table_columns(conn, table: str) -> set[str]:
    # PRAGMA rows are (cid, name, type, notnull, dflt_value, pk)
    return {row[1] for row in conn.execute(text(f"PRAGMA table_info({table})")).fetchall()}


def _fill_media_names(conn) -> None:
    rows = conn.execute(
        text(
            "SELECT id, url FROM media "
            "WHERE name IS NULL OR trim(name)='' OR lower(trim(name))='unnamed'"
        )
    ).fetchall()
    for media_id, media_url in rows:
        name = os.path.basename((media_url or "").replace("\\", "/")).strip() or f"media-{media_id}"
        conn.execute(text("UPDATE media SET name=:name WHERE id=:id"), {"name": name, "id": media_id})


def ensure_sqlite_schema():
    """
    Lightweight runtime schema patching for SQLite.

    `Base.metadata.create_all()` won't add new columns to existing tables.
    This keeps local/dev installs working without requiring Alembic.
    """
    if not DATABASE_URL.startswith("sqlite"):
        return

    with engine.begin() as conn:
        existing = {table: _table_columns(conn, table) for table in _PATCH_COLUMNS}
        for table, columns in _PATCH_COLUMNS.items():
            if not existing[table]:
                continue
            for column, ddl in columns.items():
                if column not in existing[table]:
                    conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}"))

        if existing["screen"]:
            conn.execute(text("UPDATE screen SET status='pending' WHERE status IS NULL OR trim(status)=''"))
        if existing["media"]:
            _fill_media_names(conn)
            conn.execute(text("UPDATE media SET duration_sec=10 WHERE duration_sec IS NULL OR duration_sec <= 0"))
        if existing["schedule"]:
            # rowid follows insertion order for rows created before positions existed.
            conn.execute(text("UPDATE schedule SET position=rowid WHERE position IS NULL"))
