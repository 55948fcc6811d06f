"""
Content Routers - one router per content type built from CONTENT_TYPES,
plus the admin moderation endpoints shared by every type
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from database_models import User
from auth import get_current_user, get_optional_user, require_admin
from models.enums import ContentStatus
from models.schemas import UpdateContentStatusRequest
from services.content_service import CONTENT_TYPES, ContentService, ContentType, get_content_type
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)


def build_content_router(content_type: ContentType) -> APIRouter:
    router = APIRouter(prefix=f"/api/{content_type.slug}", tags=[content_type.slug])
    create_schema = content_type.create_schema
    update_schema = content_type.update_schema
    endpoint = f"/{content_type.slug}"

    @router.get("")
    async def list_items(
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        userId: Optional[int] = None,
        search: Optional[str] = None,
        orderBy: str = "latest",
        timeRange: Optional[str] = None,
        categoryId: Optional[int] = None,
        db: AsyncSession = Depends(get_db),
    ):
        return await ContentService(db, content_type).list_items(
            page=page, limit=limit, user_id=userId, search=search, order_by=orderBy, time_range=timeRange,
            category_id=categoryId,
        )

    @router.get("/{item_id}")
    async def get_item(
        item_id: int,
        incrementView: bool = True,
        current_user: Optional[User] = Depends(get_optional_user),
        db: AsyncSession = Depends(get_db),
    ):
        return await ContentService(db, content_type).get_item(item_id, current_user, incrementView)

    @router.post("")
    async def create_item(
        payload: create_schema,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ):
        item = await ContentService(db, content_type).create_item(current_user, payload)
        log_endpoint_event(endpoint, current_user.id, "created", {"id": item["id"]})
        return item

    @router.put("/{item_id}")
    async def update_item(
        item_id: int,
        payload: update_schema,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ):
        return await ContentService(db, content_type).update_item(item_id, current_user, payload)

    @router.delete("/{item_id}")
    async def delete_item(
        item_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ):
        return await ContentService(db, content_type).delete_item(item_id, current_user)

    @router.post("/{item_id}/like")
    async def toggle_like(
        item_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ):
        return await ContentService(db, content_type).toggle_like(item_id, current_user)

    @router.post("/{item_id}/favorite")
    async def toggle_favorite(
        item_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ):
        return await ContentService(db, content_type).toggle_favorite(item_id, current_user)

    return router


content_routers = [build_content_router(ct) for ct in CONTENT_TYPES.values()]


# Admin moderation
admin_content_router = APIRouter(
    prefix="/api/admin/content",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@admin_content_router.get("/{type_slug}")
async def admin_list_content(
    type_slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[ContentStatus] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """Every item of the type regardless of status, or only the given status"""
    statuses = [status] if status else list(ContentStatus)
    return await ContentService(db, get_content_type(type_slug)).list_items(
        page=page, limit=limit, search=search, statuses=statuses,
    )


@admin_content_router.put("/{type_slug}/{item_id}/status")
async def admin_update_status(
    type_slug: str,
    item_id: int,
    request: UpdateContentStatusRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await ContentService(db, get_content_type(type_slug)).set_status(item_id, request.status)
    logger.info(f"Admin {admin.id} set {type_slug} {item_id} to {request.status.value}")
    return item
