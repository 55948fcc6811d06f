"""
Request responses - offers of help posted under a user's request.

Responses are private to the responder and the request owner unless the
responder marks them public. Accepting a response moves the request into
IN_PROGRESS.
"""
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select, func, update, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from crud.user import serialize_user
from database_models import Request, RequestResponse, User
from models.enums import ContentStatus, RequestProgress, ResponseStatus, Role, UserStatus
from models.schemas import RequestResponseCreate
from services.sensitive_words_service import SensitiveWordsService
from utils.shared_utils import page_meta

logger = logging.getLogger(__name__)


def serialize_response(response: RequestResponse, include_request: bool = False) -> dict:
    data = {
        "id": response.id,
        "requestId": response.request_id,
        "content": response.content,
        "price": float(response.price) if response.price is not None else None,
        "isPublic": response.is_public,
        "status": response.status.value,
        "createdAt": response.created_at.isoformat() if response.created_at else None,
        "user": serialize_user(response.user, include_private=False) if response.user else None,
    }
    if include_request and response.request is not None:
        request = response.request
        data["request"] = {
            "id": request.id,
            "title": request.title,
            "progress": request.progress.value,
            "author": serialize_user(request.user, include_private=False) if request.user else None,
        }
    return data


class RequestResponsesService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_request(self, request_id: int) -> Request:
        result = await self.db.execute(select(Request).where(Request.id == request_id))
        request = result.scalar_one_or_none()
        if request is None or request.status != ContentStatus.VISIBLE:
            raise HTTPException(status_code=404, detail="需求不存在")
        return request

    async def _get_response(self, response_id: int) -> RequestResponse:
        result = await self.db.execute(select(RequestResponse).where(RequestResponse.id == response_id))
        response = result.scalar_one_or_none()
        if response is None:
            raise HTTPException(status_code=404, detail="响应不存在")
        return response

    async def create_response(self, user: User, request_id: int, payload: RequestResponseCreate) -> dict:
        if user.status == UserStatus.MUTED:
            raise HTTPException(status_code=403, detail="您已被禁言，无法发布内容")
        if user.status == UserStatus.BANNED:
            raise HTTPException(status_code=403, detail="账号已被封禁")
        request = await self._get_request(request_id)
        if request.user_id == user.id:
            raise HTTPException(status_code=400, detail="不能回复自己的需求")
        await SensitiveWordsService(self.db).ensure_clean([payload.content])

        response = RequestResponse(
            request_id=request.id,
            user_id=user.id,
            content=payload.content,
            price=payload.price,
            is_public=payload.is_public,
        )
        self.db.add(response)
        await self.db.flush()
        await self.db.execute(
            update(Request)
            .where(Request.id == request.id)
            .values(response_count=Request.response_count + 1)
            .execution_options(synchronize_session=False)
        )
        set_committed_value(request, "response_count", (request.response_count or 0) + 1)
        await self.db.refresh(response)
        await self.db.refresh(response, ["user", "request"])
        logger.info(f"User {user.id} responded to request {request.id} (response {response.id})")
        return serialize_response(response)

    async def list_for_request(self, request_id: int, user: Optional[User] = None) -> list[dict]:
        """Owner and admins see every response; others see public ones and their own"""
        request = await self._get_request(request_id)
        query = select(RequestResponse).where(RequestResponse.request_id == request.id)
        if user is None:
            query = query.where(RequestResponse.is_public.is_(True))
        elif user.id != request.user_id and user.role != Role.ADMIN:
            query = query.where(or_(RequestResponse.is_public.is_(True), RequestResponse.user_id == user.id))
        result = await self.db.execute(query.order_by(RequestResponse.created_at.asc(), RequestResponse.id.asc()))
        return [serialize_response(r) for r in result.scalars().all()]

    async def get_response(self, response_id: int, user: User) -> dict:
        response = await self._get_response(response_id)
        allowed = (
            response.is_public
            or response.user_id == user.id
            or response.request.user_id == user.id
            or user.role == Role.ADMIN
        )
        if not allowed:
            raise HTTPException(status_code=403, detail="没有权限查看此响应")
        return serialize_response(response, include_request=True)

    async def update_status(self, response_id: int, user: User, status: ResponseStatus) -> dict:
        """Only the request owner decides on responses"""
        response = await self._get_response(response_id)
        if response.request.user_id != user.id:
            raise HTTPException(status_code=403, detail="没有权限更新此响应状态")

        response.status = status
        if status == ResponseStatus.ACCEPTED:
            response.request.progress = RequestProgress.IN_PROGRESS
        await self.db.flush()
        logger.info(f"Response {response_id} set to {status.value} by request owner {user.id}")
        return serialize_response(response, include_request=True)

    async def list_user_responses(self, user_id: int, page: int = 1, limit: int = 10) -> dict:
        total = await self.db.scalar(
            select(func.count(RequestResponse.id)).where(RequestResponse.user_id == user_id)
        )
        result = await self.db.execute(
            select(RequestResponse)
            .where(RequestResponse.user_id == user_id)
            .order_by(RequestResponse.created_at.desc(), RequestResponse.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return {
            "responses": [serialize_response(r, include_request=True) for r in result.scalars().all()],
            "meta": page_meta(total or 0, page, limit),
        }
