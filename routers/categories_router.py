"""
Category routers - public listing and admin management per category kind
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from database_models import User
from auth import require_admin
from models.enums import CategoryKind
from models.schemas import CategoryCreate, CategoryUpdate
from services.category_service import CATEGORY_SLUGS, CategoryService
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)


def build_category_routers(slug: str, kind: CategoryKind) -> tuple[APIRouter, APIRouter]:
    public = APIRouter(prefix=f"/api/{slug}", tags=["categories"])
    admin = APIRouter(prefix=f"/api/admin/{slug}", tags=["admin"], dependencies=[Depends(require_admin)])

    @public.get("")
    async def list_categories(db: AsyncSession = Depends(get_db)):
        return await CategoryService(db, kind).list_categories()

    @public.get("/{category_id}")
    async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
        return await CategoryService(db, kind).get_category(category_id)

    @admin.get("")
    async def admin_list_categories(db: AsyncSession = Depends(get_db)):
        return await CategoryService(db, kind).list_categories()

    @admin.post("")
    async def create_category(
        request: CategoryCreate,
        current_user: User = Depends(require_admin),
        db: AsyncSession = Depends(get_db),
    ):
        category = await CategoryService(db, kind).create_category(request.name)
        log_endpoint_event(f"/admin/{slug}", current_user.id, "created", {"id": category["id"]})
        return category

    @admin.put("/{category_id}")
    async def update_category(category_id: int, request: CategoryUpdate, db: AsyncSession = Depends(get_db)):
        return await CategoryService(db, kind).update_category(category_id, request.name)

    @admin.delete("/{category_id}")
    async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)):
        return await CategoryService(db, kind).delete_category(category_id)

    return public, admin


category_routers = [router for slug, kind in CATEGORY_SLUGS.items() for router in build_category_routers(slug, kind)]
