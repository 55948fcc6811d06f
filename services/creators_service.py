"""
Creator leaderboard - scores users by their published content and activity
"""
import logging
from typing import Optional
from fastapi import HTTPException
from sqlalchemy import select, func, union
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import Creator, Note, Post, SpiritPost, User, UserDailyLogin
from models.enums import ContentStatus, PostType

logger = logging.getLogger(__name__)

# Scoring weights
POST_BASE_SCORE = {PostType.IMAGE: 10, PostType.VIDEO: 20}
POST_LIKE_SCORE = 1
POST_FAVORITE_SCORE = 2
NOTE_BASE_SCORE = 100
NOTE_LIKE_SCORE = 2
NOTE_FAVORITE_SCORE = 5
DAILY_LOGIN_SCORE = 20
SPIRIT_POST_SCORE = 15


def serialize_creator(creator: Creator) -> dict:
    return {
        "id": creator.id,
        "userId": creator.user_id,
        "nickname": creator.nickname,
        "avatarUrl": creator.avatar_url,
        "score": creator.score,
    }


class CreatorsService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def calculate_score(self, user_id: int) -> int:
        total = 0

        posts = await self.db.execute(
            select(Post.type, Post.likes_count, Post.favorites_count)
            .where(Post.user_id == user_id, Post.status == ContentStatus.VISIBLE)
        )
        for post_type, likes, favorites in posts.all():
            total += POST_BASE_SCORE.get(post_type, 0)
            total += likes * POST_LIKE_SCORE + favorites * POST_FAVORITE_SCORE

        notes = await self.db.execute(
            select(Note.likes_count, Note.favorites_count)
            .where(Note.user_id == user_id, Note.status == ContentStatus.VISIBLE)
        )
        for likes, favorites in notes.all():
            total += NOTE_BASE_SCORE + likes * NOTE_LIKE_SCORE + favorites * NOTE_FAVORITE_SCORE

        logins = await self.db.scalar(
            select(func.count(UserDailyLogin.id)).where(UserDailyLogin.user_id == user_id)
        )
        total += (logins or 0) * DAILY_LOGIN_SCORE

        spirit_posts = await self.db.scalar(
            select(func.count(SpiritPost.id))
            .where(SpiritPost.user_id == user_id, SpiritPost.status == ContentStatus.VISIBLE)
        )
        total += (spirit_posts or 0) * SPIRIT_POST_SCORE

        return total

    async def refresh_score(self, user_id: int) -> Optional[Creator]:
        """Recalculate and store the score, creating the creator row on first use"""
        score = await self.calculate_score(user_id)

        result = await self.db.execute(select(Creator).where(Creator.user_id == user_id))
        creator = result.scalar_one_or_none()
        if creator is None:
            user = await self.db.get(User, user_id)
            if user is None:
                return None
            creator = Creator(
                user_id=user_id,
                nickname=user.nickname or f"创作者_{user.id}",
                avatar_url=user.avatar_url,
                score=score,
            )
            self.db.add(creator)
        else:
            creator.score = score
        await self.db.flush()
        return creator

    async def refresh_all(self) -> int:
        """Recalculate every user that has published content; returns how many were updated"""
        authors = union(
            select(Note.user_id).distinct(),
            select(Post.user_id).distinct(),
            select(SpiritPost.user_id).distinct(),
        )
        result = await self.db.execute(authors)
        user_ids = [row[0] for row in result.all()]
        for user_id in user_ids:
            await self.refresh_score(user_id)
        logger.info(f"Recalculated scores for {len(user_ids)} creators")
        return len(user_ids)

    async def list_creators(self) -> list[dict]:
        result = await self.db.execute(select(Creator).order_by(Creator.score.desc(), Creator.id))
        return [serialize_creator(c) for c in result.scalars().all()]

    async def get_creator(self, creator_id: int) -> dict:
        creator = await self.db.get(Creator, creator_id)
        if creator is None:
            raise HTTPException(status_code=404, detail="创作者不存在")
        return serialize_creator(creator)
