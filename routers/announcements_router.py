"""
Announcements Router - public notices and admin management
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from database_models import User
from auth import get_current_user, get_optional_user, require_admin
from models.schemas import AnnouncementCreate, AnnouncementUpdate
from services.announcement_service import AnnouncementService

announcements_router = APIRouter(prefix="/api/announcements", tags=["announcements"])
admin_announcements_router = APIRouter(
    prefix="/api/admin/announcements",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@announcements_router.get("/active")
async def get_active_announcements(
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await AnnouncementService(db).get_active(current_user.id if current_user else None)


@announcements_router.post("/{announcement_id}/view")
async def mark_announcement_viewed(
    announcement_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AnnouncementService(db).mark_viewed(announcement_id, current_user.id)


@announcements_router.get("/{announcement_id}")
async def get_announcement(announcement_id: int, db: AsyncSession = Depends(get_db)):
    return await AnnouncementService(db).get_announcement(announcement_id)


@admin_announcements_router.get("")
async def list_announcements(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await AnnouncementService(db).list_announcements(page, limit)


@admin_announcements_router.post("")
async def create_announcement(request: AnnouncementCreate, db: AsyncSession = Depends(get_db)):
    return await AnnouncementService(db).create_announcement(request.model_dump())


@admin_announcements_router.put("/{announcement_id}")
async def update_announcement(announcement_id: int, request: AnnouncementUpdate, db: AsyncSession = Depends(get_db)):
    return await AnnouncementService(db).update_announcement(announcement_id, request.model_dump(exclude_unset=True))


@admin_announcements_router.delete("/{announcement_id}")
async def delete_announcement(announcement_id: int, db: AsyncSession = Depends(get_db)):
    return await AnnouncementService(db).delete_announcement(announcement_id)
