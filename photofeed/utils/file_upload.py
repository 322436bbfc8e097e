"""
File upload utility functions
"""
import logging
import secrets
import time
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from photofeed.config import settings

logger = logging.getLogger(__name__)


def validate_image_upload(content_type: Optional[str], size: int) -> Optional[str]:
    """
    Check an uploaded image against the storage rules

    Returns:
        An error message, or None when the upload is acceptable
    """
    if not content_type or not content_type.startswith(settings.ALLOWED_CONTENT_TYPE_PREFIX):
        return "Only image files can be uploaded."

    if size > settings.MAX_UPLOAD_SIZE:
        limit_mb = settings.MAX_UPLOAD_SIZE // (1024 * 1024)
        return f"Files must be {limit_mb}MB or smaller."

    return None


def generate_file_name(original_name: Optional[str]) -> str:
    """Unique object name: <millis>-<random>.<original extension>"""
    extension = Path(original_name).suffix.lower() if original_name else ""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{extension}"


async def save_file(file_path: Path, content: bytes) -> None:
    """Write bytes to disk, refusing to overwrite an existing object"""
    file_path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(file_path, 'xb') as out_file:
        await out_file.write(content)


async def delete_file(file_path: Path) -> bool:
    """Delete file from disk"""
    if not await aiofiles.os.path.exists(file_path):
        return False
    await aiofiles.os.remove(file_path)
    return True
