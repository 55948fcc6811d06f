"""
Authentication routes and dependencies
"""

import re
import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Header, Depends, Cookie
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from database_models import User
from crud.user import UserRepository, serialize_user
from auth_utils import hash_password, verify_password, create_jwt, decode_jwt, validate_password_strength
from models.enums import Role, UserStatus
from services.creators_service import CreatorsService
from config import settings

logger = logging.getLogger(__name__)

# Create auth router
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])

AUTH_COOKIE = "auth_token"


# Request models
class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str
    password: str
    nickname: Optional[str] = Field(default=None, max_length=50)


class LoginRequest(BaseModel):
    login: str
    password: str


def validate_email(email: str) -> bool:
    """Validate email format"""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None


def _auth_response(user: User) -> JSONResponse:
    """Return {user, token} and set the httpOnly cookie (same lifetime as the JWT)"""
    token = create_jwt(str(user.id), user.role)
    response = JSONResponse(
        content={
            "user": serialize_user(user),
            "token": token,
        }
    )
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        httponly=True,
        secure=True,
        samesite="Lax",
        max_age=settings.jwt_expire_days * 86400
    )
    return response


@auth_router.post("/register")
async def register(request: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create a new user account"""
    if not validate_email(request.email):
        raise HTTPException(status_code=400, detail="邮箱格式不正确")

    try:
        validate_password_strength(request.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    user_repo = UserRepository(db)

    if await user_repo.get_user_by_email(request.email):
        raise HTTPException(status_code=400, detail="该邮箱已被注册")

    if await user_repo.get_user_by_username(request.username):
        raise HTTPException(status_code=400, detail="该用户名已被使用")

    user = await user_repo.create_user({
        "username": request.username,
        "email": request.email,
        "nickname": request.nickname,
        "hashed_password": hash_password(request.password.strip()),
    })
    logger.info(f"Registered user {user.id} ({user.username})")

    return _auth_response(user)


@auth_router.post("/login")
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Login with username or email and get a JWT token"""
    user_repo = UserRepository(db)

    user = await user_repo.get_user_by_login(request.login.strip())
    if not user or not verify_password(request.password.strip(), user.hashed_password):
        logger.warning(f"Failed login attempt for {request.login}")
        raise HTTPException(status_code=401, detail="用户名或密码错误")

    if user.status == UserStatus.BANNED:
        raise HTTPException(status_code=403, detail="账号已被封禁")

    if await user_repo.record_daily_login(user.id):
        await CreatorsService(db).refresh_score(user.id)

    logger.info(f"User {user.id} logged in")
    return _auth_response(user)


@auth_router.post("/logout")
async def logout():
    """Logout and clear auth token cookie"""
    response = JSONResponse(
        content={
            "success": True,
            "message": "已退出登录"
        }
    )
    # Clear the auth_token cookie by setting max_age=0
    response.set_cookie(
        key=AUTH_COOKIE,
        value="",
        httponly=True,
        secure=True,
        samesite="Lax",
        max_age=0
    )
    return response


def _extract_token(auth_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
    # Cookie first (browser clients), then Bearer header (API consumers)
    if auth_token:
        return auth_token
    if authorization and authorization.startswith("Bearer "):
        return authorization.replace("Bearer ", "").strip()
    return None


async def _resolve_user(token: str, db: AsyncSession) -> User:
    payload = decode_jwt(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    # JWT stores the id as a string
    try:
        user_id = int(user_id_str)
    except (ValueError, TypeError):
        raise HTTPException(status_code=401, detail="Invalid user ID in token")

    user = await UserRepository(db).get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if user.status == UserStatus.BANNED:
        raise HTTPException(status_code=403, detail="账号已被封禁")
    return user


# Dependency for protected routes
async def get_current_user(
    auth_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency function to get current authenticated user.

    Authentication priority:
    1. Check auth_token cookie first (httpOnly cookie set by login/register)
    2. Fallback to Authorization header (Bearer token) for API consumers
    3. Raise 401 if neither is found
    """
    token = _extract_token(auth_token, authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing authentication token")
    return await _resolve_user(token, db)


async def get_optional_user(
    auth_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Same as get_current_user but anonymous visitors get None instead of 401"""
    token = _extract_token(auth_token, authorization)
    if not token:
        return None
    try:
        return await _resolve_user(token, db)
    except HTTPException:
        return None


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != Role.ADMIN:
        raise HTTPException(status_code=403, detail="需要管理员权限")
    return current_user


@auth_router.get("/profile")
async def get_profile(current_user: User = Depends(get_current_user)):
    """Get current user information from JWT token"""
    return serialize_user(current_user)
