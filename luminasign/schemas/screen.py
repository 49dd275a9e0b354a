from pydantic import BaseModel, Field
from datetime import datetime

class ScreenPairIn(BaseModel):
    name: str = Field(..., min_length=1)
    pairing_code: str = Field(..., min_length=1)

class ScreenAssignIn(BaseModel):
    playlist_id: str | None = None

class ScreenOut(BaseModel):
    id: str
    name: str
    pairing_code: str
    status: str
    current_playlist_id: str | None = None
    last_heartbeat: datetime | None = None
    user_id: str | None = None

    class Config:
        from_attributes = True
