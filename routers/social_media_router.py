"""
Social media router - active links for the site footer and admin management
"""
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from database_models import User
from auth import require_admin
from models.schemas import SocialMediaSortItem
from services.social_media_service import SocialMediaService
from utils.shared_utils import log_endpoint_event

social_media_router = APIRouter(prefix="/api/social-media", tags=["social-media"])
admin_social_media_router = APIRouter(
    prefix="/api/admin/social-media",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@social_media_router.get("/active")
async def list_active_social_media(db: AsyncSession = Depends(get_db)):
    return await SocialMediaService(db).list_active()


@admin_social_media_router.get("")
async def list_social_media(db: AsyncSession = Depends(get_db)):
    return await SocialMediaService(db).list_all()


@admin_social_media_router.post("/sort")
async def sort_social_media(items: list[SocialMediaSortItem], db: AsyncSession = Depends(get_db)):
    return await SocialMediaService(db).reorder(items)


@admin_social_media_router.get("/{item_id}")
async def get_social_media(item_id: int, db: AsyncSession = Depends(get_db)):
    return await SocialMediaService(db).get(item_id)


@admin_social_media_router.post("")
async def create_social_media(
    name: str = Form(...),
    sort_order: int = Form(0, alias="sortOrder"),
    is_active: bool = Form(True, alias="isActive"),
    logo: Optional[UploadFile] = File(None),
    qr_code: Optional[UploadFile] = File(None, alias="qrCode"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await SocialMediaService(db).create(name, logo, qr_code, sort_order, is_active)
    log_endpoint_event("/admin/social-media", admin.id, "created", {"id": item["id"]})
    return item


@admin_social_media_router.patch("/{item_id}")
async def update_social_media(
    item_id: int,
    name: Optional[str] = Form(None),
    sort_order: Optional[int] = Form(None, alias="sortOrder"),
    is_active: Optional[bool] = Form(None, alias="isActive"),
    logo: Optional[UploadFile] = File(None),
    qr_code: Optional[UploadFile] = File(None, alias="qrCode"),
    db: AsyncSession = Depends(get_db),
):
    fields = {"name": name, "sort_order": sort_order, "is_active": is_active}
    updates = {key: value for key, value in fields.items() if value is not None}
    return await SocialMediaService(db).update(item_id, updates, logo, qr_code)


@admin_social_media_router.delete("/{item_id}")
async def delete_social_media(item_id: int, db: AsyncSession = Depends(get_db)):
    return await SocialMediaService(db).delete(item_id)
