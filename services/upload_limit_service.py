"""
Upload limit service - per-module image/video size caps editable by admins
"""
import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from database_models import UploadLimit
from models.schemas import UploadLimitUpdate
from utils.security_utils import ALLOWED_FOLDERS

logger = logging.getLogger(__name__)

# (image MB, video MB) for modules nobody has configured yet
DEFAULT_LIMITS = {
    "notes": (5, 50),
    "posts": (10, 100),
    "screenings": (10, 500),
}


def _limits(module: str, image_mb: int, video_mb: int) -> dict:
    return {"module": module, "image": image_mb, "video": video_mb}


class UploadLimitService:

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _check_module(module: str) -> str:
        if module not in ALLOWED_FOLDERS:
            raise HTTPException(status_code=400, detail=f"不支持的上传目录 '{module}'")
        return module

    async def _stored(self) -> dict[str, UploadLimit]:
        result = await self.db.execute(select(UploadLimit))
        return {row.module: row for row in result.scalars().all()}

    def _resolve(self, module: str, stored: dict) -> dict:
        row = stored.get(module)
        if row is not None:
            return _limits(module, row.image_max_size_mb, row.video_max_size_mb)
        image_mb, video_mb = DEFAULT_LIMITS.get(module, (settings.max_upload_size_mb, settings.max_upload_size_mb))
        return _limits(module, image_mb, video_mb)

    async def get_limits(self, module: str) -> dict:
        """{module, image, video} in MB for one upload folder"""
        self._check_module(module)
        return self._resolve(module, await self._stored())

    async def list_limits(self) -> list[dict]:
        stored = await self._stored()
        return [self._resolve(module, stored) for module in ALLOWED_FOLDERS]

    async def update_limits(self, module: str, payload: UploadLimitUpdate) -> dict:
        self._check_module(module)
        result = await self.db.execute(select(UploadLimit).where(UploadLimit.module == module))
        row = result.scalar_one_or_none()
        if row is None:
            row = UploadLimit(module=module)
            self.db.add(row)
        row.image_max_size_mb = payload.image_max_size_mb
        row.video_max_size_mb = payload.video_max_size_mb
        await self.db.flush()
        logger.info(
            f"Upload limits for {module} set to image {payload.image_max_size_mb}MB / video {payload.video_max_size_mb}MB"
        )
        return _limits(module, row.image_max_size_mb, row.video_max_size_mb)
