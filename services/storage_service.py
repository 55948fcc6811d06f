"""
Storage service - saves validated uploads under UPLOAD_DIR and serves them from /uploads
"""
import time
import uuid
import logging
from pathlib import Path
from typing import Optional

import aiofiles
from fastapi import HTTPException, UploadFile

from config.settings import settings, UPLOAD_DIR
from utils.security_utils import validate_uploaded_file, sanitize_folder, get_file_extension

logger = logging.getLogger(__name__)


def build_key(folder: str, filename: str) -> str:
    """Storage key {folder}/{ms}-{uuid}{ext}"""
    return f"{folder}/{int(time.time() * 1000)}-{uuid.uuid4().hex}{get_file_extension(filename)}"


def public_url(key: str) -> str:
    return f"{settings.server_domain.rstrip('/')}/uploads/{key}"


class StorageService:

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir or UPLOAD_DIR)

    def _resolve(self, key: str) -> Path:
        """Map a key to a path, refusing anything outside base_dir"""
        base = self.base_dir.resolve()
        path = (base / key).resolve()
        if base not in path.parents:
            raise HTTPException(status_code=400, detail="无效的文件路径")
        return path

    async def upload(
        self,
        file: UploadFile,
        folder: Optional[str] = None,
        user_id: Optional[int] = None,
        size_limits: Optional[dict] = None,
    ) -> dict:
        folder = sanitize_folder(folder)
        sanitized_filename, content = await validate_uploaded_file(file, size_limits)
        result = await self.save(folder, sanitized_filename, content)
        logger.info(f"File uploaded: {sanitized_filename} -> {result['key']} ({len(content)} bytes) by user {user_id}")
        return result

    async def save(self, folder: str, filename: str, content: bytes) -> dict:
        """Write already validated content under folder; returns {url, key}"""
        key = build_key(folder, filename)
        path = self._resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(path, "wb") as f:
            await f.write(content)
        return {"url": public_url(key), "key": key}

    async def delete(self, key: str) -> dict:
        path = self._resolve(key)
        if not path.is_file():
            raise HTTPException(status_code=404, detail="文件不存在")
        path.unlink()
        logger.info(f"File deleted: {key}")
        return {"success": True}
