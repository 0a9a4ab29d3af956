"""Media storage for analysed images.

Only image uploads are kept: they are shown next to the report and on the
certificate. Video bytes are analysed and dropped.
"""

from __future__ import annotations

import io
import logging
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..core.config import settings
from ..models.exceptions import MediaValidationException
from . import storage_local

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
VIDEO_MIME_TYPES = ("video/mp4", "video/quicktime", "video/webm", "video/mpeg", "video/x-msvideo")

# Pillow format name -> canonical mime type
_PIL_FORMATS = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp", "GIF": "image/gif"}


def _backend():
    # Local filesystem is the only backend
    return storage_local


def put_object(key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
    return _backend().put_object(key, data, content_type)


def get_object(key: str) -> Optional[bytes]:
    return _backend().get_object(key)


def delete_object(key: str) -> None:
    return _backend().delete_object(key)


def signed_public_url(key: str, expires_seconds: int = 900) -> str:
    return _backend().signed_public_url(key, expires_seconds)


def validate_image(data: bytes, declared_mime: Optional[str]) -> str:
    """Check size and decodability of an image upload. Returns the real mime type."""
    if not data:
        raise MediaValidationException("Image file is empty")
    if len(data) > settings.max_image_bytes:
        raise MediaValidationException(
            f"Image exceeds {settings.max_image_bytes // (1024 * 1024)}MB limit",
            too_large=True,
            details={"size_bytes": len(data), "max_bytes": settings.max_image_bytes},
        )
    if declared_mime and declared_mime not in IMAGE_MIME_TYPES:
        raise MediaValidationException(f"Unsupported image type: {declared_mime}")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            fmt = img.format
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise MediaValidationException("Uploaded file is not a readable image", details={"reason": str(e)})
    mime = _PIL_FORMATS.get(fmt or "")
    if mime is None:
        raise MediaValidationException(f"Unsupported image format: {fmt}")
    return mime


def validate_video(data: bytes, declared_mime: Optional[str]) -> str:
    if not data:
        raise MediaValidationException("Video file is empty")
    if len(data) > settings.max_video_bytes:
        raise MediaValidationException(
            f"Video exceeds {settings.max_video_bytes // (1024 * 1024)}MB limit",
            too_large=True,
            details={"size_bytes": len(data), "max_bytes": settings.max_video_bytes},
        )
    if not declared_mime or not declared_mime.startswith("video/"):
        raise MediaValidationException(f"Unsupported video type: {declared_mime}")
    return declared_mime


def store_report_image(workspace_id: str, report_id: str, data: bytes, mime_type: str) -> Tuple[str, str]:
    """Persist an analysed image. Returns (key, mime_type)."""
    key = f"media/{workspace_id}/{report_id}.{IMAGE_MIME_TYPES[mime_type]}"
    put_object(key, data, mime_type)
    logger.info("Stored report image", extra={"key": key, "size_bytes": len(data)})
    return key, mime_type


def share_report_image(media_key: str, owner_id: str) -> Optional[str]:
    """Copy a report image to a key owned by a certificate or revision request.

    The copy sits next to the original (`media/<workspace>/<owner_id>.<ext>`),
    so deleting the report leaves shared links intact. Returns None when the
    source image is already gone.
    """
    data = get_object(media_key)
    if data is None:
        logger.warning("Report image missing, shared copy skipped", extra={"key": media_key})
        return None
    folder, _, name = media_key.rpartition("/")
    ext = name.rpartition(".")[2]
    key = f"{folder}/{owner_id}.{ext}"
    put_object(key, data)
    return key


def delete_workspace_media(workspace_id: str) -> None:
    _backend().delete_prefix(f"media/{workspace_id}")
