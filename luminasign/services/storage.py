import os
import hashlib
import time
from fastapi import UploadFile

STORAGE_DIR = os.getenv("SIGNAGE_STORAGE_DIR", "storage")
MEDIA_DIR = os.path.join(STORAGE_DIR, "media")
MAX_IMAGE_BYTES = int(os.getenv("SIGNAGE_MAX_IMAGE_BYTES", str(15 * 1024 * 1024)))
MAX_VIDEO_BYTES = int(os.getenv("SIGNAGE_MAX_VIDEO_BYTES", str(250 * 1024 * 1024)))
ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}
ALLOWED_VIDEO_EXTENSIONS = {".mp4", ".webm", ".mkv", ".mov"}


def ensure_storage() -> None:
    os.makedirs(MEDIA_DIR, exist_ok=True)


def normalized_media_type(raw: str | None, content_type: str | None = None) -> str:
    media_type = (raw or "").strip().lower()
    if not media_type and content_type:
        media_type = content_type.split("/", 1)[0].strip().lower()
    if media_type not in {"image", "video"}:
        raise ValueError("Unsupported media type. Use image or video.")
    return media_type


def _validate_extension(media_type: str, filename: str) -> str:
    _, ext = os.path.splitext(filename.lower())
    if media_type == "image" and ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValueError("Unsupported image format. Use JPG/JPEG/PNG/WEBP/GIF.")
    if media_type == "video" and ext not in ALLOWED_VIDEO_EXTENSIONS:
        raise ValueError("Unsupported video format. Use MP4/WEBM/MKV/MOV.")
    return ext


def read_upload(file: UploadFile, media_type: str) -> tuple[str, bytes]:
    """Read and validate an upload, returning ``(filename, content)``."""
    content = file.file.read()
    if not content:
        raise ValueError("Empty files cannot be uploaded.")
    filename = os.path.basename((file.filename or "upload.bin").strip()) or "upload.bin"
    _validate_extension(media_type, filename)
    size = len(content)
    if media_type == "image" and size > MAX_IMAGE_BYTES:
        raise ValueError(f"Image exceeds the {MAX_IMAGE_BYTES // (1024 * 1024)} MB limit.")
    if media_type == "video" and size > MAX_VIDEO_BYTES:
        raise ValueError(f"Video exceeds the {MAX_VIDEO_BYTES // (1024 * 1024)} MB limit.")
    return filename, content


def save_local(filename: str, content: bytes) -> tuple[str, str]:
    """Write content under the media dir and return ``(public_url, storage_path)``."""
    ensure_storage()
    safe_name, ext = os.path.splitext(filename)
    safe_name = "".join(ch for ch in safe_name if ch.isalnum() or ch in {"-", "_", " "}).strip() or "media"
    digest = hashlib.sha256(content).hexdigest()[:8]
    stamped_filename = f"{safe_name}-{int(time.time() * 1000)}-{digest}{ext.lower()}"
    path = os.path.join(MEDIA_DIR, stamped_filename)
    with open(path, "wb") as f:
        f.write(content)
    return f"/storage/media/{stamped_filename}", path.replace("\\", "/")


def remove_local(storage_path: str | None) -> bool:
    if not storage_path:
        return False
    try:
        os.remove(storage_path)
    except FileNotFoundError:
        return False
    return True
