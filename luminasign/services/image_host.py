"""ImgBB client used when media is hosted off-box."""
import logging
import os

import requests

IMGBB_API_KEY = (os.getenv("SIGNAGE_IMGBB_API_KEY", "") or "").strip()
IMGBB_UPLOAD_URL = os.getenv("SIGNAGE_IMGBB_UPLOAD_URL", "https://api.imgbb.com/1/upload")
IMGBB_TIMEOUT_SEC = int(os.getenv("SIGNAGE_IMGBB_TIMEOUT_SEC", "60"))

logger = logging.getLogger(__name__)


class ImageHostError(Exception):
    pass


def upload_image(filename: str, content: bytes, api_key: str | None = None) -> tuple[str, str | None]:
    """Upload an image and return ``(url, delete_url)``."""
    key = (api_key or IMGBB_API_KEY).strip()
    if not key:
        raise ImageHostError("Image host is not configured (SIGNAGE_IMGBB_API_KEY).")
    try:
        response = requests.post(
            IMGBB_UPLOAD_URL,
            params={"key": key},
            files={"image": (filename, content)},
            timeout=IMGBB_TIMEOUT_SEC,
        )
    except requests.exceptions.RequestException as exc:
        logger.warning("ImgBB upload of %s failed: %s", filename, exc)
        raise ImageHostError(f"Upload to image host failed: {exc}") from exc

    try:
        body = response.json()
    except ValueError:
        body = {}
    if not response.ok:
        message = (body.get("error") or {}).get("message") if isinstance(body, dict) else None
        raise ImageHostError(message or "Upload to image host failed")

    data = body.get("data") or {}
    url = data.get("url")
    if not url:
        raise ImageHostError("Image host response did not include a URL")
    logger.info("Uploaded %s to image host", filename)
    return url, data.get("delete_url")
