from pydantic import BaseModel, Field


class SlideRequestIn(BaseModel):
    topic: str = Field(..., min_length=1)
    business_type: str = Field(..., min_length=1)
    style: str = "modern"


class SlideLayoutOut(BaseModel):
    title: str
    subtitle: str | None = None
    main_message: str
    cta: str | None = None
    background_color: str
    text_color: str
    accent_color: str | None = None


class ScheduleSuggestionIn(BaseModel):
    business_type: str = Field(..., min_length=1)


class ScheduleSuggestionOut(BaseModel):
    time_block: str
    suggestion: str
    reasoning: str | None = None
