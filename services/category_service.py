"""
Category service - admin-managed categories for notes, resources and requests
"""
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import Category, Note, Resource, Request
from models.enums import CategoryKind

logger = logging.getLogger(__name__)

# URL slug -> kind
CATEGORY_SLUGS = {
    "note-categories": CategoryKind.NOTE,
    "resource-categories": CategoryKind.RESOURCE,
    "request-categories": CategoryKind.REQUEST,
}

# Content table whose rows point at categories of each kind
CATEGORIZED_MODELS = {
    CategoryKind.NOTE: Note,
    CategoryKind.RESOURCE: Resource,
    CategoryKind.REQUEST: Request,
}


def serialize_category(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "kind": category.kind.value,
        "createdAt": category.created_at.isoformat() if category.created_at else None,
    }


class CategoryService:

    def __init__(self, db: AsyncSession, kind: CategoryKind):
        self.db = db
        self.kind = kind

    async def _get(self, category_id: int) -> Optional[Category]:
        result = await self.db.execute(
            select(Category).where(Category.id == category_id, Category.kind == self.kind)
        )
        return result.scalar_one_or_none()

    async def _get_or_404(self, category_id: int) -> Category:
        category = await self._get(category_id)
        if category is None:
            raise HTTPException(status_code=404, detail="分类不存在")
        return category

    async def _ensure_name_free(self, name: str, exclude_id: Optional[int] = None) -> str:
        name = name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="分类名称不能为空")
        query = select(Category.id).where(Category.kind == self.kind, Category.name == name)
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        if (await self.db.execute(query)).first() is not None:
            raise HTTPException(status_code=409, detail="分类名称已存在")
        return name

    async def ensure_exists(self, category_id: Optional[int]) -> None:
        """Content create/update guard; None means uncategorized"""
        if category_id is not None and await self._get(category_id) is None:
            raise HTTPException(status_code=400, detail=f"ID为{category_id}的分类不存在")

    async def list_categories(self) -> list[dict]:
        result = await self.db.execute(
            select(Category).where(Category.kind == self.kind).order_by(Category.id.asc())
        )
        return [serialize_category(c) for c in result.scalars().all()]

    async def get_category(self, category_id: int) -> dict:
        return serialize_category(await self._get_or_404(category_id))

    async def create_category(self, name: str) -> dict:
        name = await self._ensure_name_free(name)
        category = Category(kind=self.kind, name=name)
        self.db.add(category)
        await self.db.flush()
        await self.db.refresh(category)
        logger.info(f"Created {self.kind.value} category {category.id} ({name})")
        return serialize_category(category)

    async def update_category(self, category_id: int, name: str) -> dict:
        category = await self._get_or_404(category_id)
        category.name = await self._ensure_name_free(name, exclude_id=category_id)
        await self.db.flush()
        return serialize_category(category)

    async def delete_category(self, category_id: int) -> dict:
        category = await self._get_or_404(category_id)
        model = CATEGORIZED_MODELS[self.kind]
        in_use = await self.db.scalar(select(func.count(model.id)).where(model.category_id == category_id))
        if in_use:
            raise HTTPException(status_code=409, detail=f"无法删除分类，还有 {in_use} 条内容正在使用此分类")
        await self.db.delete(category)
        await self.db.flush()
        return {"success": True}
