"""
Announcement service - site-wide notices shown once per day to each user
"""
import logging
from datetime import datetime, date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import Announcement, AnnouncementView
from services.membership_service import paginated
from utils.shared_utils import get_cached, invalidate_cached, reject_null_updates, to_naive_utc

logger = logging.getLogger(__name__)

ACTIVE_CACHE_KEY = "announcements:active"
ACTIVE_CACHE_TTL = 60
MAX_ACTIVE = 3


def serialize_announcement(a: Announcement) -> dict:
    return {
        "id": a.id,
        "title": a.title,
        "content": a.content,
        "priority": a.priority,
        "isActive": a.is_active,
        "startDate": a.start_date.isoformat() if a.start_date else None,
        "endDate": a.end_date.isoformat() if a.end_date else None,
        "createdAt": a.created_at.isoformat() if a.created_at else None,
    }


class AnnouncementService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_or_404(self, announcement_id: int) -> Announcement:
        announcement = await self.db.get(Announcement, announcement_id)
        if announcement is None:
            raise HTTPException(status_code=404, detail="公告不存在")
        return announcement

    async def _fetch_active(self) -> list[dict]:
        now = datetime.utcnow()
        result = await self.db.execute(
            select(Announcement)
            .where(
                Announcement.is_active.is_(True),
                Announcement.start_date <= now,
                Announcement.end_date >= now,
            )
            .order_by(Announcement.priority.desc(), Announcement.created_at.desc(), Announcement.id.desc())
        )
        return [serialize_announcement(a) for a in result.scalars().all()]

    async def get_active(self, user_id: Optional[int] = None, today: Optional[date] = None) -> list[dict]:
        """
        Active announcements in display order, at most three.

        For a logged-in user, announcements already viewed today are skipped.
        """
        announcements = await get_cached(ACTIVE_CACHE_KEY, self._fetch_active, ACTIVE_CACHE_TTL)
        if user_id is not None:
            viewed = await self.db.execute(
                select(AnnouncementView.announcement_id).where(
                    AnnouncementView.user_id == user_id,
                    AnnouncementView.view_date == (today or date.today()),
                )
            )
            viewed_ids = {row[0] for row in viewed.all()}
            announcements = [a for a in announcements if a["id"] not in viewed_ids]
        return announcements[:MAX_ACTIVE]

    async def mark_viewed(self, announcement_id: int, user_id: int, today: Optional[date] = None) -> dict:
        await self._get_or_404(announcement_id)
        today = today or date.today()
        existing = await self.db.execute(
            select(AnnouncementView.id).where(
                AnnouncementView.user_id == user_id,
                AnnouncementView.announcement_id == announcement_id,
                AnnouncementView.view_date == today,
            )
        )
        if existing.first() is None:
            self.db.add(AnnouncementView(user_id=user_id, announcement_id=announcement_id, view_date=today))
            await self.db.flush()
        return {"success": True}

    async def get_announcement(self, announcement_id: int) -> dict:
        return serialize_announcement(await self._get_or_404(announcement_id))

    # Admin

    async def list_announcements(self, page: int = 1, limit: int = 10) -> dict:
        total = await self.db.scalar(select(func.count(Announcement.id)))
        result = await self.db.execute(
            select(Announcement)
            .order_by(Announcement.created_at.desc(), Announcement.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        items = [serialize_announcement(a) for a in result.scalars().all()]
        return paginated(items, total or 0, page, limit)

    async def create_announcement(self, data: dict) -> dict:
        data["start_date"] = to_naive_utc(data["start_date"])
        data["end_date"] = to_naive_utc(data["end_date"])
        if data["end_date"] < data["start_date"]:
            raise HTTPException(status_code=400, detail="结束时间不能早于开始时间")
        announcement = Announcement(**data)
        self.db.add(announcement)
        await self.db.flush()
        invalidate_cached(ACTIVE_CACHE_KEY)
        logger.info(f"Announcement {announcement.id} created")
        return serialize_announcement(announcement)

    async def update_announcement(self, announcement_id: int, updates: dict) -> dict:
        announcement = await self._get_or_404(announcement_id)
        reject_null_updates(Announcement, updates)
        for key, value in updates.items():
            if key in ("start_date", "end_date"):
                value = to_naive_utc(value)
            setattr(announcement, key, value)
        if announcement.end_date < announcement.start_date:
            raise HTTPException(status_code=400, detail="结束时间不能早于开始时间")
        await self.db.flush()
        invalidate_cached(ACTIVE_CACHE_KEY)
        return serialize_announcement(announcement)

    async def delete_announcement(self, announcement_id: int) -> dict:
        announcement = await self._get_or_404(announcement_id)
        await self.db.execute(
            AnnouncementView.__table__.delete().where(AnnouncementView.announcement_id == announcement_id)
        )
        await self.db.delete(announcement)
        await self.db.flush()
        invalidate_cached(ACTIVE_CACHE_KEY)
        return {"success": True}
