"""
Image storage for the visualizer.

Stores to Cloudflare R2 if configured, otherwise the local uploads/ directory.
Images arrive as base64 (data URLs from the browser, raw base64 from Gemini).
"""

import base64
import binascii
import logging
import re
import uuid
from io import BytesIO
from pathlib import Path

from .config import settings

logger = logging.getLogger("renoquote.storage")

ALLOWED_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic"}
MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10MB

_DATA_URL_RE = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)

UPLOAD_ROOT = Path("uploads")


class InvalidImageError(ValueError):
    """Not a usable base64 image."""


def parse_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a data:<mime>;base64,<data> URL into (mime_type, raw bytes)."""
    match = _DATA_URL_RE.match(data_url or "")
    if not match:
        raise InvalidImageError("Image must be a base64 data URL")

    mime_type = match.group(1).lower()
    if mime_type not in ALLOWED_MIME_TYPES:
        raise InvalidImageError(f"Unsupported image type: {mime_type}")

    try:
        raw = base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError):
        raise InvalidImageError("Image data is not valid base64")

    if not raw:
        raise InvalidImageError("Image is empty")
    if len(raw) > MAX_IMAGE_BYTES:
        raise InvalidImageError("Image exceeds 10MB limit")
    return mime_type, raw


def _extension(mime_type: str) -> str:
    ext = mime_type.split("/")[-1] if "/" in mime_type else "png"
    return "jpg" if ext == "jpeg" else ext


def _r2_configured() -> bool:
    """Check if Cloudflare R2 credentials are set."""
    return bool(
        settings.CLOUDFLARE_R2_ACCOUNT_ID
        and settings.CLOUDFLARE_R2_ACCESS_KEY_ID
        and settings.CLOUDFLARE_R2_SECRET_ACCESS_KEY
    )


def _upload_to_r2(file_bytes: bytes, key: str, content_type: str) -> str:
    """Upload to Cloudflare R2 and return the public URL."""
    import boto3

    s3 = boto3.client(
        "s3",
        endpoint_url=f"https://{settings.CLOUDFLARE_R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=settings.CLOUDFLARE_R2_ACCESS_KEY_ID,
        aws_secret_access_key=settings.CLOUDFLARE_R2_SECRET_ACCESS_KEY,
    )
    s3.upload_fileobj(
        BytesIO(file_bytes),
        settings.CLOUDFLARE_R2_BUCKET,
        key,
        ExtraArgs={"ContentType": content_type},
    )
    return f"https://{settings.CLOUDFLARE_R2_BUCKET}.{settings.CLOUDFLARE_R2_ACCOUNT_ID}.r2.dev/{key}"


def _save_locally(file_bytes: bytes, key: str) -> str:
    """Save under uploads/ and return the served path."""
    file_path = UPLOAD_ROOT / key
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "wb") as f:
        f.write(file_bytes)
    return f"/uploads/{key}"


def store_image(file_bytes: bytes, mime_type: str, folder: str) -> str:
    """Store image bytes under visualizations/<folder>/ and return a URL."""
    key = f"visualizations/{folder}/{uuid.uuid4().hex}.{_extension(mime_type)}"

    if _r2_configured():
        try:
            return _upload_to_r2(file_bytes, key, mime_type)
        except Exception:
            logger.exception("R2 upload failed for %s, saving locally", key)

    return _save_locally(file_bytes, key)


def store_original_photo(data_url: str) -> str:
    mime_type, raw = parse_data_url(data_url)
    return store_image(raw, mime_type, "original")


def store_generated_image(image_base64: str, mime_type: str) -> str:
    try:
        raw = base64.b64decode(image_base64)
    except (binascii.Error, ValueError):
        raise InvalidImageError("Generated image is not valid base64")
    return store_image(raw, mime_type, "generated")
