"""
Direct messages between users: sending, conversation threads, contacts and unread counts
"""
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select, func, update, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from crud.user import UserRepository
from database_models import User, UserMessage
from models.schemas import UserMessageCreate
from services.sensitive_words_service import SensitiveWordsService

logger = logging.getLogger(__name__)


def _brief_user(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "nickname": user.nickname, "avatarUrl": user.avatar_url}


def serialize_message(message: UserMessage) -> dict:
    return {
        "id": message.id,
        "senderId": message.sender_id,
        "receiverId": message.receiver_id,
        "content": message.content,
        "read": message.read,
        "createdAt": message.created_at.isoformat() if message.created_at else None,
        "sender": _brief_user(message.sender),
        "receiver": _brief_user(message.receiver),
    }


def _between(user_id: int, other_id: int):
    return or_(
        and_(UserMessage.sender_id == user_id, UserMessage.receiver_id == other_id),
        and_(UserMessage.sender_id == other_id, UserMessage.receiver_id == user_id),
    )


class UserMessagesService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def send(self, sender: User, payload: UserMessageCreate) -> dict:
        receiver = await UserRepository(self.db).get_user_by_id(payload.receiver_id)
        if receiver is None:
            raise HTTPException(status_code=404, detail="接收者不存在")
        if receiver.id == sender.id:
            raise HTTPException(status_code=400, detail="不能给自己发送消息")

        matched = await SensitiveWordsService(self.db).find_matches([payload.content])
        if matched:
            raise HTTPException(status_code=400, detail=f"消息包含敏感词：{', '.join(matched)}")

        message = UserMessage(sender_id=sender.id, receiver_id=receiver.id, content=payload.content)
        self.db.add(message)
        await self.db.flush()
        await self.db.refresh(message)
        await self.db.refresh(message, ["sender", "receiver"])
        logger.info(f"User {sender.id} sent message {message.id} to user {receiver.id}")
        return serialize_message(message)

    async def contacts(self, user_id: int) -> list[dict]:
        """Everyone the user has exchanged messages with, most recent conversation first"""
        sent = await self.db.execute(
            select(UserMessage.receiver_id).where(UserMessage.sender_id == user_id).distinct()
        )
        received = await self.db.execute(
            select(UserMessage.sender_id).where(UserMessage.receiver_id == user_id).distinct()
        )
        contact_ids = {row[0] for row in sent.all()} | {row[0] for row in received.all()}

        repo = UserRepository(self.db)
        contacts = []
        for contact_id in contact_ids:
            user = await repo.get_user_by_id(contact_id)
            if user is None:
                continue
            last = (await self.db.execute(
                select(UserMessage)
                .where(_between(user_id, contact_id))
                .order_by(UserMessage.created_at.desc(), UserMessage.id.desc())
                .limit(1)
            )).scalar_one_or_none()
            unread = await self.db.scalar(
                select(func.count(UserMessage.id)).where(
                    UserMessage.sender_id == contact_id,
                    UserMessage.receiver_id == user_id,
                    UserMessage.read.is_(False),
                )
            )
            contact = _brief_user(user)
            contact["lastMessage"] = {
                "content": last.content,
                "createdAt": last.created_at.isoformat(),
                "isFromMe": last.sender_id == user_id,
            } if last else None
            contact["unreadCount"] = unread or 0
            contacts.append(contact)

        contacts.sort(key=lambda c: c["lastMessage"]["createdAt"] if c["lastMessage"] else "", reverse=True)
        return contacts

    async def unread_count(self, user_id: int) -> dict:
        count = await self.db.scalar(
            select(func.count(UserMessage.id)).where(
                UserMessage.receiver_id == user_id, UserMessage.read.is_(False)
            )
        )
        return {"count": count or 0}

    async def conversation(self, user_id: int, other_id: int, limit: int = 20, offset: int = 0) -> list[dict]:
        """
        One page of the thread with `other_id`, oldest first.

        Paging counts back from the newest message. Messages received from
        the other user are marked read.
        """
        if await UserRepository(self.db).get_user_by_id(other_id) is None:
            raise HTTPException(status_code=404, detail="用户不存在")

        result = await self.db.execute(
            select(UserMessage)
            .where(_between(user_id, other_id))
            .order_by(UserMessage.created_at.desc(), UserMessage.id.desc())
            .offset(offset)
            .limit(limit)
        )
        messages = [serialize_message(m) for m in result.scalars().all()]
        await self.mark_read(user_id, other_id)
        messages.reverse()
        return messages

    async def mark_read(self, user_id: int, other_id: int) -> dict:
        await self.db.execute(
            update(UserMessage)
            .where(
                UserMessage.sender_id == other_id,
                UserMessage.receiver_id == user_id,
                UserMessage.read.is_(False),
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        return {"success": True}
