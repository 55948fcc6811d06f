"""
User messages router - private messages between logged-in users
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from database_models import User
from auth import get_current_user
from models.schemas import UserMessageCreate
from services.user_messages_service import UserMessagesService
from utils.shared_utils import log_endpoint_event

user_messages_router = APIRouter(prefix="/api/users/messages", tags=["messages"])


@user_messages_router.post("")
async def send_message(
    request: UserMessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message = await UserMessagesService(db).send(current_user, request)
    log_endpoint_event("/users/messages", current_user.id, "sent", {"receiverId": request.receiver_id})
    return message


@user_messages_router.get("/contacts")
async def list_contacts(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await UserMessagesService(db).contacts(current_user.id)


@user_messages_router.get("/unread-count")
async def unread_count(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await UserMessagesService(db).unread_count(current_user.id)


@user_messages_router.get("/with/{user_id}")
async def conversation(
    user_id: int,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await UserMessagesService(db).conversation(current_user.id, user_id, limit, offset)


@user_messages_router.patch("/read/{user_id}")
async def mark_read(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await UserMessagesService(db).mark_read(current_user.id, user_id)
