"""
Image uploads for menu items and the restaurant logo.

Files land in UPLOAD_DIR under a random name and are served by the
static mount at ``/uploads``.
"""

import logging
import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, File, UploadFile

from app.core.config import get_settings
from app.core.exceptions import NotFoundError, ValidationError
from app.dependencies import require_roles
from app.models import Role, User
from app.schemas import MessageResponse, UploadResponse

router = APIRouter(prefix="/api/upload", tags=["Upload"])
logger = logging.getLogger(__name__)

admin_only = require_roles(Role.ADMIN)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

UPLOAD_CHUNK_SIZE = 64 * 1024


def upload_dir() -> Path:
    directory = Path(get_settings().upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


async def save_image(file: UploadFile, prefix: str) -> str:
    """Validate and store an uploaded image; returns the stored filename."""
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Only image files are allowed (jpeg, png, gif, webp)")

    max_bytes = get_settings().max_upload_bytes
    contents = bytearray()
    while True:
        chunk = await file.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        contents.extend(chunk)
        if len(contents) > max_bytes:
            raise ValidationError(f"File too large. Max size: {max_bytes // (1024 * 1024)}MB")

    if not contents:
        raise ValidationError("No file uploaded")

    ext = Path(file.filename or "").suffix.lower()
    if ext not in ALLOWED_IMAGE_TYPES.values() and ext != ".jpeg":
        ext = ALLOWED_IMAGE_TYPES[file.content_type]
    filename = f"{prefix}-{uuid.uuid4().hex}{ext}"

    (upload_dir() / filename).write_bytes(contents)
    logger.info(f"Stored upload {filename} ({len(contents)} bytes)")
    return filename


@router.post("/menu-image", response_model=UploadResponse)
async def upload_menu_image(
    image: UploadFile = File(...),
    admin: User = Depends(admin_only),
) -> UploadResponse:
    filename = await save_image(image, "menu")
    return UploadResponse(message="Image uploaded successfully", url=f"/uploads/{filename}", filename=filename)


@router.post("/logo", response_model=UploadResponse)
async def upload_logo(
    logo: UploadFile = File(...),
    admin: User = Depends(admin_only),
) -> UploadResponse:
    filename = await save_image(logo, "logo")
    return UploadResponse(message="Logo uploaded successfully", url=f"/uploads/{filename}", filename=filename)


@router.delete("/menu-image/{filename}", response_model=MessageResponse)
async def delete_menu_image(
    filename: str,
    admin: User = Depends(admin_only),
) -> MessageResponse:
    directory = upload_dir().resolve()
    path = (directory / filename).resolve()
    if path.parent != directory:
        raise ValidationError("Invalid filename")
    if not path.is_file():
        raise NotFoundError("Image not found")

    path.unlink()
    logger.info(f"Deleted upload {filename}")
    return MessageResponse(message="Image deleted successfully")
