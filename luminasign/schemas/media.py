from pydantic import BaseModel, Field
from datetime import datetime

class MediaLinkIn(BaseModel):
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    type: str = "image"
    duration_sec: int = Field(10, ge=1)

class MediaOut(BaseModel):
    id: str
    name: str
    type: str
    url: str
    duration_sec: int
    size: int
    external_delete_url: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True
