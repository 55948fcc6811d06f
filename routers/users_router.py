"""
Users Router - profile management for the logged-in user, public profiles and admin user management
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from database_models import User
from auth import get_current_user, require_admin, validate_email
from auth_utils import hash_password, verify_password, validate_password_strength
from crud.user import UserRepository, serialize_user
from models.enums import Role
from models.schemas import (
    UpdateProfileRequest,
    ChangePasswordRequest,
    UpdateUserStatusRequest,
    UpdateUserRoleRequest,
)
from services.content_service import ContentService, get_content_type
from services.creators_service import CreatorsService
from services.membership_service import paginated
from utils.shared_utils import log_endpoint_event, to_naive_utc

logger = logging.getLogger(__name__)

users_router = APIRouter(prefix="/api/users", tags=["users"])
admin_users_router = APIRouter(
    prefix="/api/admin/users",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@users_router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return serialize_user(current_user)


@users_router.put("/me")
async def update_me(
    request: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    repo = UserRepository(db)
    updates = request.model_dump(exclude_unset=True)

    if "email" in updates:
        email = (updates["email"] or "").strip().lower()
        if not validate_email(email):
            raise HTTPException(status_code=400, detail="邮箱格式不正确")
        if await repo.email_taken_by_other(email, current_user.id):
            raise HTTPException(status_code=400, detail="该邮箱已被注册")
        updates["email"] = email

    user = await repo.update_user(current_user, updates)
    if {"nickname", "avatar_url"} & updates.keys():
        # Keep the leaderboard entry in sync with the profile
        await CreatorsService(db).refresh_score(user.id)
    log_endpoint_event("/users/me", user.id, "success", {"fields": sorted(updates)})
    return serialize_user(user)


@users_router.post("/me/change-password")
async def change_password(
    request: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not verify_password(request.current_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="当前密码错误")
    try:
        validate_password_strength(request.new_password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await UserRepository(db).update_user(current_user, {"hashed_password": hash_password(request.new_password.strip())})
    logger.info(f"User {current_user.id} changed password")
    return {"success": True, "message": "密码修改成功"}


@users_router.get("/me/likes")
async def my_likes(
    type: str = Query("posts"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ContentService(db, get_content_type(type))
    return await service.list_user_interactions(current_user.id, "likes", page, limit)


@users_router.get("/me/favorites")
async def my_favorites(
    type: str = Query("posts"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ContentService(db, get_content_type(type))
    return await service.list_user_interactions(current_user.id, "favorites", page, limit)


@users_router.get("/{user_id}")
async def get_public_profile(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await UserRepository(db).get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="用户不存在")
    return serialize_user(user, include_private=False)


# ----------------------------------------------------------------------------
# Admin
# ----------------------------------------------------------------------------

@admin_users_router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[Role] = None,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    users, total = await UserRepository(db).list_users(
        page, limit, search, roles=[role] if role else None, status=status
    )
    return paginated([serialize_user(u) for u in users], total, page, limit)


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await UserRepository(db).get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="用户不存在")
    return user


@admin_users_router.put("/{user_id}/status")
async def update_user_status(
    user_id: int,
    request: UpdateUserStatusRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await _get_user_or_404(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="不能修改自己的状态")
    user = await UserRepository(db).update_user(user, {"status": request.status})
    logger.info(f"Admin {admin.id} set user {user.id} status to {request.status.value}")
    return serialize_user(user)


@admin_users_router.put("/{user_id}/role")
async def update_user_role(
    user_id: int,
    request: UpdateUserRoleRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await _get_user_or_404(db, user_id)
    updates = {"role": request.role}
    if request.role == Role.PREMIUM:
        updates["premium_expiry_date"] = to_naive_utc(request.premium_expiry_date)
    else:
        updates["premium_expiry_date"] = None
    user = await UserRepository(db).update_user(user, updates)
    logger.info(f"Admin {admin.id} set user {user.id} role to {request.role.value}")
    return serialize_user(user)
