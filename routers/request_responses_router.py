"""
Request responses router - replies to requests and the owner's accept/reject decision
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from database_models import User
from auth import get_current_user, get_optional_user
from models.schemas import RequestResponseCreate, UpdateResponseStatusRequest
from services.request_responses_service import RequestResponsesService
from utils.shared_utils import log_endpoint_event

request_responses_router = APIRouter(prefix="/api/requests", tags=["requests"])


@request_responses_router.get("/user/my-responses")
async def list_my_responses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await RequestResponsesService(db).list_user_responses(current_user.id, page, limit)


@request_responses_router.get("/responses/{response_id}")
async def get_response(
    response_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await RequestResponsesService(db).get_response(response_id, current_user)


@request_responses_router.patch("/responses/{response_id}/status")
async def update_response_status(
    response_id: int,
    request: UpdateResponseStatusRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await RequestResponsesService(db).update_status(response_id, current_user, request.status)
    log_endpoint_event("/requests/responses/status", current_user.id, "success", {"id": response_id, "status": request.status.value})
    return result


@request_responses_router.post("/{request_id}/responses")
async def create_response(
    request_id: int,
    payload: RequestResponseCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    response = await RequestResponsesService(db).create_response(current_user, request_id, payload)
    log_endpoint_event("/requests/responses", current_user.id, "created", {"id": response["id"], "requestId": request_id})
    return response


@request_responses_router.get("/{request_id}/responses")
async def list_request_responses(
    request_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await RequestResponsesService(db).list_for_request(request_id, current_user)
