from fastapi import APIRouter, Body, HTTPException
from luminasign.schemas.ai import ScheduleSuggestionIn, ScheduleSuggestionOut, SlideLayoutOut, SlideRequestIn
from luminasign.services import ai

router = APIRouter(prefix="/ai", tags=["ai"])


def _raise_for(exc: ai.AIServiceError) -> None:
    if isinstance(exc, ai.AIUnavailableError):
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.post("/slide", response_model=SlideLayoutOut)
def generate_slide(payload: SlideRequestIn = Body(...)):
    try:
        return ai.generate_slide_content(payload.topic, payload.business_type, payload.style)
    except ai.AIServiceError as exc:
        _raise_for(exc)


@router.post("/schedule-suggestions", response_model=list[ScheduleSuggestionOut])
def schedule_suggestions(payload: ScheduleSuggestionIn = Body(...)):
    try:
        return ai.suggest_schedule(payload.business_type)
    except ai.AIServiceError as exc:
        _raise_for(exc)
