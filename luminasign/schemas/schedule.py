from pydantic import BaseModel, Field

class ScheduleIn(BaseModel):
    screen_id: str = Field(..., min_length=1)
    playlist_id: str = Field(..., min_length=1)
    start_time: str = "09:00"
    end_time: str = "17:00"
    days: list[int] = [1, 2, 3, 4, 5]

class ScheduleUpdateIn(BaseModel):
    playlist_id: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    days: list[int] | None = None

class ScheduleOut(BaseModel):
    id: str
    screen_id: str
    playlist_id: str
    start_time: str
    end_time: str
    days: list[int]
    active: bool
