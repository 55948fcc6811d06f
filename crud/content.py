"""
ContentRepository - generic persistence for user-owned content records
(notes, posts, resources, requests, screenings, spirit-posts) and the
like/favorite tables shared between them.
"""

from datetime import datetime, timedelta
from typing import Optional, Sequence, Type
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update, delete, case
from sqlalchemy.orm.attributes import set_committed_value

from database_models import Like, Favorite
from models.enums import ContentStatus, EntityType

# orderBy query values -> column name
ORDERINGS = {
    "latest": ("created_at", True),
    "oldest": ("created_at", False),
    "popular": ("likes_count", True),
    "views": ("views_count", True),
    "favorites": ("favorites_count", True),
}

TIME_RANGES = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}


def time_range_start(time_range: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    now = now or datetime.utcnow()
    if time_range == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    delta = TIME_RANGES.get(time_range or "")
    return now - delta if delta else None


class ContentRepository:
    """
    Repository for one content model. The model must use ContentMixin.
    """

    def __init__(self, db: AsyncSession, model: Type, entity_type: EntityType):
        self.db = db
        self.model = model
        self.entity_type = entity_type

    async def get(self, item_id: int):
        result = await self.db.execute(select(self.model).where(self.model.id == item_id))
        return result.scalar_one_or_none()

    async def create(self, user_id: int, data: dict):
        item = self.model(user_id=user_id, **data)
        self.db.add(item)
        await self.db.flush()
        await self.db.refresh(item)
        # Load the author relationship for serialization
        await self.db.refresh(item, ["user"])
        return item

    async def update(self, item, updates: dict):
        for key, value in updates.items():
            if hasattr(item, key):
                setattr(item, key, value)
        await self.db.flush()
        return await self.get(item.id)

    async def list_page(
        self,
        page: int = 1,
        limit: int = 10,
        statuses: Sequence[ContentStatus] = (ContentStatus.VISIBLE,),
        user_id: Optional[int] = None,
        search: Optional[str] = None,
        order_by: str = "latest",
        time_range: Optional[str] = None,
        ids: Optional[Sequence[int]] = None,
        category_id: Optional[int] = None,
    ) -> tuple[list, int]:
        model = self.model
        conditions = [model.status.in_(list(statuses))]
        if user_id:
            conditions.append(model.user_id == user_id)
        if search:
            conditions.append(model.title.like(f"%{search}%"))
        if ids is not None:
            conditions.append(model.id.in_(list(ids)))
        if category_id and hasattr(model, "category_id"):
            conditions.append(model.category_id == category_id)
        start = time_range_start(time_range)
        if start:
            conditions.append(model.created_at >= start)

        column_name, descending = ORDERINGS.get(order_by, ORDERINGS["latest"])
        column = getattr(model, column_name)
        if descending:
            ordering = [column.desc(), model.id.desc()]
        else:
            ordering = [column.asc(), model.id.asc()]

        total = await self.db.scalar(select(func.count(model.id)).where(*conditions))
        result = await self.db.execute(
            select(model).where(*conditions).order_by(*ordering).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def increment_views(self, item) -> None:
        await self.db.execute(
            update(self.model)
            .where(self.model.id == item.id)
            .values(views_count=self.model.views_count + 1)
            .execution_options(synchronize_session=False)
        )
        set_committed_value(item, "views_count", (item.views_count or 0) + 1)

    async def _adjust_counter(self, item, column: str, delta: int) -> None:
        await self.db.execute(
            update(self.model)
            .where(self.model.id == item.id)
            .values({column: case((getattr(self.model, column) + delta < 0, 0), else_=getattr(self.model, column) + delta)})
            .execution_options(synchronize_session=False)
        )
        set_committed_value(item, column, max((getattr(item, column) or 0) + delta, 0))

    async def _toggle(self, table, item, user_id: int, counter: str) -> bool:
        """Insert or delete the (user, entity) row; returns True when now present"""
        existing = await self.db.execute(
            select(table.id).where(
                table.user_id == user_id,
                table.entity_type == self.entity_type,
                table.entity_id == item.id,
            )
        )
        row = existing.first()
        if row is not None:
            await self.db.execute(delete(table).where(table.id == row.id))
            await self._adjust_counter(item, counter, -1)
            return False
        self.db.add(table(user_id=user_id, entity_type=self.entity_type, entity_id=item.id))
        await self.db.flush()
        await self._adjust_counter(item, counter, 1)
        return True

    async def toggle_like(self, item, user_id: int) -> bool:
        return await self._toggle(Like, item, user_id, "likes_count")

    async def toggle_favorite(self, item, user_id: int) -> bool:
        return await self._toggle(Favorite, item, user_id, "favorites_count")

    async def interaction_state(self, item_id: int, user_id: int) -> tuple[bool, bool]:
        liked = await self.db.scalar(
            select(func.count(Like.id)).where(
                Like.user_id == user_id, Like.entity_type == self.entity_type, Like.entity_id == item_id
            )
        )
        favorited = await self.db.scalar(
            select(func.count(Favorite.id)).where(
                Favorite.user_id == user_id, Favorite.entity_type == self.entity_type, Favorite.entity_id == item_id
            )
        )
        return bool(liked), bool(favorited)

    async def entity_ids_for_user(self, table, user_id: int) -> list[int]:
        result = await self.db.execute(
            select(table.entity_id).where(table.user_id == user_id, table.entity_type == self.entity_type)
        )
        return [row[0] for row in result.all()]
