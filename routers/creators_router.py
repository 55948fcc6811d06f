"""
Creators Router - leaderboard endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from auth import require_admin
from services.creators_service import CreatorsService

creators_router = APIRouter(prefix="/api/creators", tags=["creators"])
admin_creators_router = APIRouter(
    prefix="/api/admin/creators",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@creators_router.get("")
async def list_creators(db: AsyncSession = Depends(get_db)):
    """Creators ordered by score, highest first"""
    return await CreatorsService(db).list_creators()


@creators_router.get("/{creator_id}")
async def get_creator(creator_id: int, db: AsyncSession = Depends(get_db)):
    return await CreatorsService(db).get_creator(creator_id)


@admin_creators_router.post("/recalculate")
async def recalculate_scores(db: AsyncSession = Depends(get_db)):
    updated = await CreatorsService(db).refresh_all()
    return {"success": True, "updated": updated}
