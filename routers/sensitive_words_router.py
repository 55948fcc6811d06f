"""
Sensitive Words Router - admin management of the moderation word list
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from auth import require_admin
from models.schemas import SensitiveWordCreate
from services.sensitive_words_service import SensitiveWordsService

sensitive_words_router = APIRouter(
    prefix="/api/admin/sensitive-words",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@sensitive_words_router.get("")
async def list_words(db: AsyncSession = Depends(get_db)):
    return await SensitiveWordsService(db).list_words()


@sensitive_words_router.post("")
async def add_word(request: SensitiveWordCreate, db: AsyncSession = Depends(get_db)):
    return await SensitiveWordsService(db).add_word(request.word)


@sensitive_words_router.delete("/{word_id}")
async def remove_word(word_id: int, db: AsyncSession = Depends(get_db)):
    return await SensitiveWordsService(db).remove_word(word_id)
