"""
Content service - shared business logic for notes, posts, resources,
requests, screenings and spirit-posts.

Each content type is registered in CONTENT_TYPES; routers and the admin
moderation endpoints look the type up by its URL slug.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional, Type

from fastapi import HTTPException
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from crud.content import ContentRepository
from crud.user import serialize_user
from database_models import Note, Post, Resource, Request, Screening, SpiritPost, Like, Favorite, User
from models.enums import CategoryKind, ContentStatus, EntityType, Role, UserStatus
from models import schemas
from services.category_service import CategoryService
from services.creators_service import CreatorsService
from services.sensitive_words_service import SensitiveWordsService
from utils.shared_utils import page_meta, reject_null_updates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentType:
    slug: str
    model: Type
    entity_type: EntityType
    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]
    # Fields screened for sensitive words on create/update
    text_fields: tuple
    admin_only_create: bool = False
    # Kind of Category rows category_id may point at; None when not categorized
    category_kind: Optional[CategoryKind] = None


CONTENT_TYPES = {
    "notes": ContentType(
        "notes", Note, EntityType.NOTE, schemas.NoteCreate, schemas.NoteUpdate, ("title", "content"),
        category_kind=CategoryKind.NOTE,
    ),
    "posts": ContentType(
        "posts", Post, EntityType.POST, schemas.PostCreate, schemas.PostUpdate, ("title", "description", "prompt"),
    ),
    "resources": ContentType(
        "resources", Resource, EntityType.RESOURCE, schemas.ResourceCreate, schemas.ResourceUpdate, ("title", "content"),
        category_kind=CategoryKind.RESOURCE,
    ),
    "requests": ContentType(
        "requests", Request, EntityType.REQUEST, schemas.RequestCreate, schemas.RequestUpdate, ("title", "content"),
        category_kind=CategoryKind.REQUEST,
    ),
    "screenings": ContentType(
        "screenings", Screening, EntityType.SCREENING, schemas.ScreeningCreate, schemas.ScreeningUpdate,
        ("title", "description"), admin_only_create=True,
    ),
    "spirit-posts": ContentType(
        "spirit-posts", SpiritPost, EntityType.SPIRIT_POST, schemas.SpiritPostCreate, schemas.SpiritPostUpdate,
        ("title", "content"),
    ),
}


def get_content_type(slug: str) -> ContentType:
    content_type = CONTENT_TYPES.get(slug)
    if content_type is None:
        raise HTTPException(status_code=404, detail="内容类型不存在")
    return content_type


def _json_value(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    return value


def serialize_content(item) -> dict:
    """Column values in camelCase plus the public author profile"""
    data = {to_camel(column.name): _json_value(getattr(item, column.name)) for column in item.__table__.columns}
    data["author"] = serialize_user(item.user, include_private=False) if item.user else None
    return data


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == Role.ADMIN


class ContentService:

    def __init__(self, db: AsyncSession, content_type: ContentType):
        self.db = db
        self.content_type = content_type
        self.repo = ContentRepository(db, content_type.model, content_type.entity_type)

    async def _refresh_author_score(self, user_id: int) -> None:
        await CreatorsService(self.db).refresh_score(user_id)

    async def _check_text(self, data: dict) -> None:
        texts = [data.get(field) for field in self.content_type.text_fields]
        await SensitiveWordsService(self.db).ensure_clean(texts)

    async def _check_category(self, data: dict) -> None:
        kind = self.content_type.category_kind
        if kind is not None and data.get("category_id") is not None:
            await CategoryService(self.db, kind).ensure_exists(data["category_id"])

    async def _get_visible_or_404(self, item_id: int, user: Optional[User] = None):
        item = await self.repo.get(item_id)
        if item is None or item.status == ContentStatus.ADMIN_DELETED:
            raise HTTPException(status_code=404, detail="内容不存在")
        if item.status == ContentStatus.HIDDEN:
            if user is None or (user.id != item.user_id and not is_admin(user)):
                raise HTTPException(status_code=404, detail="内容不存在")
        return item

    async def list_items(
        self,
        page: int = 1,
        limit: int = 10,
        user_id: Optional[int] = None,
        search: Optional[str] = None,
        order_by: str = "latest",
        time_range: Optional[str] = None,
        statuses=(ContentStatus.VISIBLE,),
        category_id: Optional[int] = None,
    ) -> dict:
        items, total = await self.repo.list_page(
            page=page, limit=limit, statuses=statuses, user_id=user_id,
            search=search, order_by=order_by, time_range=time_range, category_id=category_id,
        )
        return {"items": [serialize_content(i) for i in items], "meta": page_meta(total, page, limit)}

    async def get_item(self, item_id: int, user: Optional[User] = None, increment_view: bool = True) -> dict:
        item = await self._get_visible_or_404(item_id, user)
        if increment_view:
            await self.repo.increment_views(item)
        data = serialize_content(item)
        if user is not None:
            data["isLiked"], data["isFavorited"] = await self.repo.interaction_state(item.id, user.id)
        else:
            data["isLiked"], data["isFavorited"] = False, False
        return data

    async def create_item(self, user: User, payload: BaseModel) -> dict:
        if self.content_type.admin_only_create and not is_admin(user):
            raise HTTPException(status_code=403, detail="需要管理员权限")
        if user.status == UserStatus.MUTED:
            raise HTTPException(status_code=403, detail="您已被禁言，无法发布内容")
        if user.status == UserStatus.BANNED:
            raise HTTPException(status_code=403, detail="账号已被封禁")

        data = payload.model_dump()
        await self._check_text(data)
        await self._check_category(data)
        item = await self.repo.create(user.id, data)
        await self._refresh_author_score(user.id)
        logger.info(f"{self.content_type.slug}: user {user.id} created item {item.id}")
        return serialize_content(item)

    async def update_item(self, item_id: int, user: User, payload: BaseModel) -> dict:
        item = await self._get_visible_or_404(item_id, user)
        if item.user_id != user.id and not is_admin(user):
            raise HTTPException(status_code=403, detail="无权修改此内容")

        updates = payload.model_dump(exclude_unset=True)
        reject_null_updates(self.content_type.model, updates)
        await self._check_text(updates)
        await self._check_category(updates)
        item = await self.repo.update(item, updates)
        return serialize_content(item)

    async def delete_item(self, item_id: int, user: User) -> dict:
        """Owners hide their content; admins mark it ADMIN_DELETED"""
        item = await self._get_visible_or_404(item_id, user)
        if is_admin(user):
            status = ContentStatus.ADMIN_DELETED
        elif item.user_id == user.id:
            status = ContentStatus.HIDDEN
        else:
            raise HTTPException(status_code=403, detail="无权删除此内容")

        await self.repo.update(item, {"status": status})
        await self._refresh_author_score(item.user_id)
        logger.info(f"{self.content_type.slug}: item {item_id} set to {status.value} by user {user.id}")
        return {"success": True}

    async def toggle_like(self, item_id: int, user: User) -> dict:
        item = await self._get_visible_or_404(item_id, user)
        liked = await self.repo.toggle_like(item, user.id)
        await self._refresh_author_score(item.user_id)
        return {"liked": liked, "likesCount": item.likes_count}

    async def toggle_favorite(self, item_id: int, user: User) -> dict:
        item = await self._get_visible_or_404(item_id, user)
        favorited = await self.repo.toggle_favorite(item, user.id)
        await self._refresh_author_score(item.user_id)
        return {"favorited": favorited, "favoritesCount": item.favorites_count}

    async def list_user_interactions(self, user_id: int, kind: str, page: int = 1, limit: int = 10) -> dict:
        """Visible items the user liked (kind="likes") or favorited (kind="favorites")"""
        table = Like if kind == "likes" else Favorite
        ids = await self.repo.entity_ids_for_user(table, user_id)
        items, total = await self.repo.list_page(page=page, limit=limit, ids=ids)
        return {"items": [serialize_content(i) for i in items], "meta": page_meta(total, page, limit)}

    async def set_status(self, item_id: int, status: ContentStatus) -> dict:
        """Admin moderation; works on content in any state"""
        item = await self.repo.get(item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="内容不存在")
        item = await self.repo.update(item, {"status": status})
        await self._refresh_author_score(item.user_id)
        return serialize_content(item)
