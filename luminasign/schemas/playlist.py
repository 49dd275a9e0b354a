from pydantic import BaseModel, Field

class PlaylistItemIn(BaseModel):
    media_id: str = Field(..., min_length=1)
    duration_sec: int | None = None

class PlaylistCreateIn(BaseModel):
    name: str
    items: list[PlaylistItemIn] = []

class PlaylistItemOut(BaseModel):
    id: str
    playlist_id: str
    media_id: str
    order: int
    duration_sec: int | None = None

    class Config:
        from_attributes = True

class PlaylistOut(BaseModel):
    id: str
    name: str
    user_id: str | None = None
    items: list[PlaylistItemOut] = []
