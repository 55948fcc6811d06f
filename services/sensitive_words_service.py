"""
Sensitive word screening for user-submitted text
"""
import time
import logging
from typing import Iterable, Optional
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import SensitiveWord

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 3600

# Process-wide word list shared by every request
_words_cache: list[str] = []
_cache_loaded_at: float = 0.0


def reset_cache() -> None:
    """Force the next check to reload the word list"""
    global _words_cache, _cache_loaded_at
    _words_cache = []
    _cache_loaded_at = 0.0


class SensitiveWordsService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load_words(self) -> list[str]:
        global _words_cache, _cache_loaded_at
        if _cache_loaded_at and time.monotonic() - _cache_loaded_at < CACHE_TTL_SECONDS:
            return _words_cache
        result = await self.db.execute(select(SensitiveWord.word))
        _words_cache = [row[0] for row in result.all() if row[0] and row[0].strip()]
        _cache_loaded_at = time.monotonic()
        return _words_cache

    async def find_matches(self, texts: Iterable[Optional[str]]) -> list[str]:
        """Distinct sensitive words found in any of the texts, in word-list order"""
        words = await self._load_words()
        matched = []
        for text in texts:
            if not text:
                continue
            for word in words:
                if word in text and word not in matched:
                    matched.append(word)
        return matched

    async def ensure_clean(self, texts: Iterable[Optional[str]]) -> None:
        """
        Raises:
            HTTPException 400 listing the matched words
        """
        matched = await self.find_matches(texts)
        if matched:
            logger.info(f"Rejected content containing sensitive words: {matched}")
            raise HTTPException(status_code=400, detail=f"内容包含敏感词：{', '.join(matched)}")

    # Admin management

    async def list_words(self) -> list[dict]:
        result = await self.db.execute(select(SensitiveWord).order_by(SensitiveWord.id.desc()))
        return [
            {"id": w.id, "word": w.word, "createdAt": w.created_at.isoformat() if w.created_at else None}
            for w in result.scalars().all()
        ]

    async def add_word(self, word: str) -> dict:
        word = word.strip()
        if not word:
            raise HTTPException(status_code=400, detail="敏感词不能为空")
        existing = await self.db.execute(select(SensitiveWord).where(SensitiveWord.word == word))
        if existing.scalar_one_or_none():
            raise HTTPException(status_code=400, detail="该敏感词已存在")
        row = SensitiveWord(word=word)
        self.db.add(row)
        await self.db.flush()
        reset_cache()
        return {"id": row.id, "word": row.word}

    async def remove_word(self, word_id: int) -> dict:
        result = await self.db.execute(select(SensitiveWord).where(SensitiveWord.id == word_id))
        row = result.scalar_one_or_none()
        if not row:
            raise HTTPException(status_code=404, detail="敏感词不存在")
        await self.db.delete(row)
        await self.db.flush()
        reset_cache()
        return {"success": True}
