"""Generative content suggestions for slides and day-part schedules."""
import json
import logging
import os
import re

import anthropic
from pydantic import ValidationError

from luminasign.schemas.ai import ScheduleSuggestionOut, SlideLayoutOut

AI_API_KEY = (os.getenv("SIGNAGE_AI_API_KEY", "") or os.getenv("ANTHROPIC_API_KEY", "") or "").strip()
AI_MODEL = (os.getenv("SIGNAGE_AI_MODEL", "claude-sonnet-4-20250514") or "").strip()
AI_MAX_TOKENS = int(os.getenv("SIGNAGE_AI_MAX_TOKENS", "1024"))

logger = logging.getLogger(__name__)

SYSTEM_MSG = (
    "You design content for digital signage displays in shops, lobbies and restaurants. "
    "You answer with a single JSON value and nothing else: no prose, no markdown fences."
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class AIServiceError(Exception):
    pass


class AIUnavailableError(AIServiceError):
    pass


def _client() -> anthropic.Anthropic:
    if not AI_API_KEY:
        raise AIUnavailableError("AI suggestions are not configured (SIGNAGE_AI_API_KEY).")
    return anthropic.Anthropic(api_key=AI_API_KEY)


def _ask_json(prompt: str):
    client = _client()
    try:
        message = client.messages.create(
            model=AI_MODEL,
            max_tokens=AI_MAX_TOKENS,
            system=SYSTEM_MSG,
            messages=[{"role": "user", "content": prompt}],
        )
    except anthropic.APIError as exc:
        logger.warning("AI request failed: %s", exc)
        raise AIServiceError(f"AI request failed: {exc}") from exc

    raw = "".join(getattr(block, "text", "") for block in message.content).strip()
    return parse_json_reply(raw)


def parse_json_reply(raw: str):
    cleaned = _FENCE_RE.sub("", (raw or "").strip()).strip()
    if not cleaned:
        raise AIServiceError("AI returned an empty response")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise AIServiceError(f"AI returned invalid JSON: {exc.msg}") from exc


def generate_slide_content(topic: str, business_type: str, style: str) -> SlideLayoutOut:
    prompt = f"""Generate a slide layout for a digital signage screen.
Topic: {topic}
Business Type: {business_type}
Style: {style}

Return a JSON object with these keys:
  "title" (required), "subtitle", "main_message" (required), "cta",
  "background_color" (required, hex), "text_color" (required, hex), "accent_color" (hex)."""

    data = _ask_json(prompt)
    if not isinstance(data, dict):
        raise AIServiceError("AI slide layout must be a JSON object")
    try:
        return SlideLayoutOut(**data)
    except ValidationError as exc:
        raise AIServiceError(f"AI slide layout is incomplete: {exc.errors()[0]['loc']}") from exc


def suggest_schedule(business_type: str) -> list[ScheduleSuggestionOut]:
    prompt = f"""Suggest a morning (8AM-12PM), afternoon (12PM-5PM), and evening (5PM-10PM) content strategy
for a digital signage display at a {business_type}. Return short titles and descriptions for each block.

Return a JSON array of objects with keys "time_block" (required), "suggestion" (required) and "reasoning"."""

    data = _ask_json(prompt)
    if not isinstance(data, list):
        raise AIServiceError("AI schedule suggestions must be a JSON array")
    output: list[ScheduleSuggestionOut] = []
    for row in data:
        if not isinstance(row, dict):
            continue
        try:
            output.append(ScheduleSuggestionOut(**row))
        except ValidationError:
            logger.debug("Skipping incomplete AI schedule suggestion: %r", row)
    if not output:
        raise AIServiceError("AI returned no usable schedule suggestions")
    return output
