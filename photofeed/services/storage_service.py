from pathlib import Path
from typing import Optional
import logging

from photofeed.config import settings
from photofeed.services.exceptions import StorageError
from photofeed.utils.file_upload import generate_file_name, save_file, delete_file

logger = logging.getLogger(__name__)

class StorageService:
    """Object storage for post images, laid out as <bucket>/<owner>/posts/<name>"""

    def __init__(
        self,
        root: Optional[str] = None,
        bucket: Optional[str] = None,
        public_url: Optional[str] = None
    ):
        self.root = Path(root or settings.UPLOAD_DIR)
        self.bucket = bucket or settings.STORAGE_BUCKET
        self.public_url = (public_url or settings.STORAGE_PUBLIC_URL).rstrip("/")

    def object_path(self, owner: str, original_name: Optional[str]) -> str:
        """Storage key for a new post image; the first folder is always the owner"""
        return f"{owner}/posts/{generate_file_name(original_name)}"

    def get_public_url(self, object_path: str) -> str:
        return f"{self.public_url}/{self.bucket}/{object_path}"

    def _full_path(self, object_path: str) -> Path:
        full_path = (self.root / self.bucket / object_path).resolve()
        if not full_path.is_relative_to((self.root / self.bucket).resolve()):
            raise StorageError(f"Invalid object path: {object_path}")
        return full_path

    async def upload(self, object_path: str, content: bytes) -> str:
        """Store the object and return its public URL"""
        try:
            await save_file(self._full_path(object_path), content)
        except FileExistsError as e:
            raise StorageError(f"Object already exists: {object_path}") from e
        except OSError as e:
            raise StorageError(f"Upload failed for {object_path}: {e}") from e

        logger.info(f"Uploaded {object_path} ({len(content)} bytes)")
        return self.get_public_url(object_path)

    async def remove(self, object_path: str) -> bool:
        """Remove an object; returns False when it was already gone"""
        try:
            removed = await delete_file(self._full_path(object_path))
        except OSError as e:
            raise StorageError(f"Delete failed for {object_path}: {e}") from e

        if removed:
            logger.info(f"Removed {object_path}")
        return removed
