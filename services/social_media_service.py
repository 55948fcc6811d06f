"""
Social media service - footer links with a platform logo and a follow QR code
"""
import logging
from typing import Optional

from fastapi import HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import SocialMedia
from models.schemas import SocialMediaSortItem
from services.storage_service import StorageService
from utils.security_utils import file_kind, validate_uploaded_file

logger = logging.getLogger(__name__)

STORAGE_FOLDER = "social-media"


def serialize_social_media(item: SocialMedia) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "logoUrl": item.logo_url,
        "qrCodeUrl": item.qr_code_url,
        "sortOrder": item.sort_order,
        "isActive": item.is_active,
        "createdAt": item.created_at.isoformat() if item.created_at else None,
        "updatedAt": item.updated_at.isoformat() if item.updated_at else None,
    }


class SocialMediaService:

    def __init__(self, db: AsyncSession, storage: Optional[StorageService] = None):
        self.db = db
        self.storage = storage or StorageService()

    async def _get_or_404(self, item_id: int) -> SocialMedia:
        item = await self.db.get(SocialMedia, item_id)
        if item is None:
            raise HTTPException(status_code=404, detail=f"社交媒体 ID {item_id} 不存在")
        return item

    async def _store_image(self, file: UploadFile) -> str:
        filename, content = await validate_uploaded_file(file)
        if file_kind(filename) != "image":
            raise HTTPException(status_code=400, detail="只能上传图片文件")
        return (await self.storage.save(STORAGE_FOLDER, filename, content))["url"]

    async def list_all(self) -> list[dict]:
        result = await self.db.execute(
            select(SocialMedia).order_by(SocialMedia.sort_order.asc(), SocialMedia.created_at.asc(), SocialMedia.id.asc())
        )
        return [serialize_social_media(item) for item in result.scalars().all()]

    async def list_active(self) -> list[dict]:
        result = await self.db.execute(
            select(SocialMedia)
            .where(SocialMedia.is_active.is_(True))
            .order_by(SocialMedia.sort_order.asc(), SocialMedia.created_at.asc(), SocialMedia.id.asc())
        )
        return [serialize_social_media(item) for item in result.scalars().all()]

    async def get(self, item_id: int) -> dict:
        return serialize_social_media(await self._get_or_404(item_id))

    async def create(
        self,
        name: str,
        logo: Optional[UploadFile],
        qr_code: Optional[UploadFile],
        sort_order: int = 0,
        is_active: bool = True,
    ) -> dict:
        if logo is None or qr_code is None:
            raise HTTPException(status_code=400, detail="必须上传logo和二维码图片")
        name = name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="名称不能为空")

        item = SocialMedia(
            name=name,
            logo_url=await self._store_image(logo),
            qr_code_url=await self._store_image(qr_code),
            sort_order=sort_order,
            is_active=is_active,
        )
        self.db.add(item)
        await self.db.flush()
        await self.db.refresh(item)
        logger.info(f"Created social media link {item.id} ({item.name})")
        return serialize_social_media(item)

    async def update(
        self,
        item_id: int,
        updates: dict,
        logo: Optional[UploadFile] = None,
        qr_code: Optional[UploadFile] = None,
    ) -> dict:
        """Apply form fields that were sent; replace images only when new files arrive"""
        item = await self._get_or_404(item_id)
        if "name" in updates:
            updates["name"] = updates["name"].strip()
            if not updates["name"]:
                raise HTTPException(status_code=400, detail="名称不能为空")
        for key, value in updates.items():
            setattr(item, key, value)
        if logo is not None:
            item.logo_url = await self._store_image(logo)
        if qr_code is not None:
            item.qr_code_url = await self._store_image(qr_code)
        await self.db.flush()
        await self.db.refresh(item)
        return serialize_social_media(item)

    async def delete(self, item_id: int) -> dict:
        item = await self._get_or_404(item_id)
        await self.db.delete(item)
        await self.db.flush()
        logger.info(f"Deleted social media link {item_id}")
        return {"success": True}

    async def reorder(self, items: list[SocialMediaSortItem]) -> dict:
        for entry in items:
            item = await self._get_or_404(entry.id)
            item.sort_order = entry.sort_order
        await self.db.flush()
        return {"message": "排序更新成功"}
