"""
Repositories for membership products, redemption codes and payment settings
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from database_models import MembershipProduct, RedemptionCode, PaymentSettings


class ProductRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_product(self, product_id: int) -> Optional[MembershipProduct]:
        result = await self.db.execute(
            select(MembershipProduct).where(MembershipProduct.id == product_id)
        )
        return result.scalar_one_or_none()

    async def list_products(self, active_only: bool = False) -> list[MembershipProduct]:
        query = select(MembershipProduct)
        if active_only:
            query = query.where(MembershipProduct.is_active.is_(True))
        result = await self.db.execute(
            query.order_by(MembershipProduct.created_at.desc(), MembershipProduct.id.desc())
        )
        return list(result.scalars().all())

    async def create_product(self, data: dict) -> MembershipProduct:
        product = MembershipProduct(**data)
        self.db.add(product)
        await self.db.flush()
        await self.db.refresh(product)
        return product

    async def update_product(self, product: MembershipProduct, updates: dict) -> MembershipProduct:
        for key, value in updates.items():
            if hasattr(product, key):
                setattr(product, key, value)
        await self.db.flush()
        await self.db.refresh(product)
        return product

    async def delete_product(self, product: MembershipProduct) -> None:
        await self.db.delete(product)
        await self.db.flush()


class RedemptionCodeRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_code(self, code: str) -> Optional[RedemptionCode]:
        result = await self.db.execute(
            select(RedemptionCode).where(RedemptionCode.code == code)
        )
        return result.scalar_one_or_none()

    async def create_code(self, code: str, duration_days: int) -> RedemptionCode:
        redemption = RedemptionCode(code=code, duration_days=duration_days)
        self.db.add(redemption)
        await self.db.flush()
        await self.db.refresh(redemption)
        return redemption

    async def list_codes(
        self, page: int = 1, limit: int = 10, search: Optional[str] = None
    ) -> tuple[list[RedemptionCode], int]:
        conditions = []
        if search:
            conditions.append(RedemptionCode.code.like(f"%{search}%"))
        total = await self.db.scalar(select(func.count(RedemptionCode.id)).where(*conditions))
        result = await self.db.execute(
            select(RedemptionCode)
            .where(*conditions)
            .order_by(RedemptionCode.created_at.desc(), RedemptionCode.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0


class PaymentSettingsRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self) -> Optional[PaymentSettings]:
        result = await self.db.execute(select(PaymentSettings).order_by(PaymentSettings.id).limit(1))
        return result.scalar_one_or_none()

    async def upsert(self, updates: dict) -> PaymentSettings:
        row = await self.get()
        if row is None:
            row = PaymentSettings(**updates)
            self.db.add(row)
        else:
            for key, value in updates.items():
                setattr(row, key, value)
        await self.db.flush()
        await self.db.refresh(row)
        return row


def serialize_product(product: MembershipProduct) -> dict:
    return {
        "id": product.id,
        "title": product.title,
        "description": product.description,
        "price": float(product.price),
        "durationDays": product.duration_days,
        "type": product.type,
        "isActive": product.is_active,
        "createdAt": product.created_at.isoformat() if product.created_at else None,
    }


def serialize_redemption_code(code: RedemptionCode) -> dict:
    data = {
        "id": code.id,
        "code": code.code,
        "durationDays": code.duration_days,
        "isUsed": code.is_used,
        "usedAt": code.used_at.isoformat() if code.used_at else None,
        "createdAt": code.created_at.isoformat() if code.created_at else None,
        "usedByUser": None,
    }
    if code.used_by_user is not None:
        data["usedByUser"] = {
            "id": code.used_by_user.id,
            "username": code.used_by_user.username,
            "nickname": code.used_by_user.nickname,
        }
    return data
