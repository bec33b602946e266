"""Image uploads to Cloudinary.

Uploads are buffered to a temporary file under UPLOAD_TMP_DIR, pushed to
Cloudinary, and the temporary file is removed whether or not the upload
succeeded.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path

import cloudinary
import cloudinary.uploader
from fastapi import UploadFile

from ..settings import UPLOAD_SIZE_LIMIT_BYTES, UPLOAD_TMP_DIR

logger = logging.getLogger(__name__)

BLOG_IMAGE_FOLDER = "blog-images"
AVATAR_FOLDER = "avatars"

# Allowed image MIME types
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

_TRANSFORMATIONS = {
    BLOG_IMAGE_FOLDER: [
        {"width": 1200, "height": 800, "crop": "limit"},
        {"quality": "auto"},
        {"fetch_format": "auto"},
    ],
    AVATAR_FOLDER: [
        {"width": 400, "height": 400, "crop": "fill", "gravity": "face"},
        {"quality": "auto"},
        {"fetch_format": "auto"},
    ],
}

cloudinary.config(
    cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
    api_key=os.getenv("CLOUDINARY_API_KEY"),
    api_secret=os.getenv("CLOUDINARY_API_SECRET"),
    secure=True,
)


class UploadError(Exception):
    """The image could not be accepted or stored."""


def has_file(upload: UploadFile | None) -> bool:
    return upload is not None and bool(upload.filename)


def validate_image(upload: UploadFile, content: bytes) -> str:
    """
    Check the MIME type and size of an uploaded image.

    Returns:
        The file extension to use for the temporary file

    Raises:
        UploadError: If the MIME type is not allowed or the file is too large
    """
    mime_type = (upload.content_type or "").lower()
    if mime_type not in ALLOWED_MIME_TYPES:
        raise UploadError("Only image files are allowed")

    if len(content) > UPLOAD_SIZE_LIMIT_BYTES:
        raise UploadError(
            f"Image exceeds maximum size of {UPLOAD_SIZE_LIMIT_BYTES // (1024 * 1024)} MB"
        )

    if not content:
        raise UploadError("Uploaded file is empty")

    return ALLOWED_MIME_TYPES[mime_type]


def _temp_path(extension: str) -> Path:
    tmp_dir = Path(UPLOAD_TMP_DIR)
    tmp_dir.mkdir(parents=True, exist_ok=True)
    return tmp_dir / f"{uuid.uuid4().hex}{extension}"


def _remove_temp_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove temporary upload {path}: {e}")


def upload_image(upload: UploadFile, folder: str = BLOG_IMAGE_FOLDER) -> str:
    """
    Upload an image to Cloudinary and return its secure URL.

    Raises:
        UploadError: If validation fails or Cloudinary rejects the upload
    """
    content = upload.file.read()
    extension = validate_image(upload, content)

    path = _temp_path(extension)
    try:
        path.write_bytes(content)
        result = cloudinary.uploader.upload(
            str(path),
            folder=folder,
            resource_type="image",
            transformation=_TRANSFORMATIONS.get(folder, []),
        )
    except Exception as e:
        logger.error(f"Cloudinary upload to {folder} failed: {e}", exc_info=True)
        raise UploadError("Error uploading image") from e
    finally:
        _remove_temp_file(path)

    url = result.get("secure_url")
    if not url:
        raise UploadError("Image host returned no URL")
    logger.info(f"Uploaded image to {folder}: {result.get('public_id')}")
    return url
