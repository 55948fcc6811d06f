"""
Membership Service - products, redemption codes, member listing and payment settings
"""

import math
import secrets
import string
import logging
from datetime import datetime, timedelta
from typing import Optional
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from crud.membership import (
    ProductRepository, RedemptionCodeRepository, PaymentSettingsRepository,
    serialize_product, serialize_redemption_code,
)
from crud.order import OrderRepository, serialize_order
from crud.user import UserRepository, serialize_user
from database_models import MembershipProduct, PaymentSettings, User
from models.enums import Role, ProductType
from utils.shared_utils import get_cached, invalidate_cached, reject_null_updates

logger = logging.getLogger(__name__)

PRODUCTS_CACHE_KEY = "membership:products"
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 16


def generate_redemption_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def paginated(items: list, total: int, page: int, limit: int) -> dict:
    return {
        "data": items,
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def grant_membership(
    user: User,
    product_type: ProductType,
    duration_days: int,
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    Apply a purchased or redeemed membership to `user` in place.

    Time is added on top of an unexpired membership. Lifetime members and
    admins keep their role; a lifetime grant or a zero-day product clears the
    expiry date. Returns the resulting expiry date.
    """
    now = now or datetime.utcnow()

    if user.role == Role.ADMIN:
        return user.premium_expiry_date

    if product_type == ProductType.LIFETIME:
        user.role = Role.LIFETIME
        user.premium_expiry_date = None
        return None

    if user.role == Role.LIFETIME:
        return None

    user.role = Role.PREMIUM
    if duration_days <= 0:
        user.premium_expiry_date = None
        return None

    current = user.premium_expiry_date
    base = current if current and current > now else now
    user.premium_expiry_date = base + timedelta(days=duration_days)
    return user.premium_expiry_date


class MembershipService:
    """
    Service class for membership products, redemption and the admin membership panel.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.products = ProductRepository(db)
        self.codes = RedemptionCodeRepository(db)
        self.payment_settings = PaymentSettingsRepository(db)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    async def get_public_products(self) -> list[dict]:
        async def fetch_products():
            return [serialize_product(p) for p in await self.products.list_products(active_only=True)]

        return await get_cached(PRODUCTS_CACHE_KEY, fetch_products, ttl_seconds=300)

    async def get_all_products(self) -> list[dict]:
        return [serialize_product(p) for p in await self.products.list_products()]

    async def get_product(self, product_id: int) -> dict:
        product = await self.products.get_product(product_id)
        if not product:
            raise HTTPException(status_code=404, detail="会员产品不存在")
        return serialize_product(product)

    async def create_product(self, data: dict) -> dict:
        product = await self.products.create_product(data)
        invalidate_cached(PRODUCTS_CACHE_KEY)
        logger.info(f"Created membership product {product.id} ({product.title})")
        return serialize_product(product)

    async def update_product(self, product_id: int, updates: dict) -> dict:
        product = await self.products.get_product(product_id)
        if not product:
            raise HTTPException(status_code=404, detail="会员产品不存在")
        reject_null_updates(MembershipProduct, updates)
        product = await self.products.update_product(product, updates)
        invalidate_cached(PRODUCTS_CACHE_KEY)
        return serialize_product(product)

    async def delete_product(self, product_id: int) -> dict:
        product = await self.products.get_product(product_id)
        if not product:
            raise HTTPException(status_code=404, detail="会员产品不存在")
        data = serialize_product(product)
        await self.products.delete_product(product)
        invalidate_cached(PRODUCTS_CACHE_KEY)
        return data

    # ------------------------------------------------------------------
    # Redemption codes
    # ------------------------------------------------------------------

    async def create_redemption_code(self, duration_days: int) -> dict:
        code = generate_redemption_code()
        while await self.codes.get_by_code(code):
            code = generate_redemption_code()
        redemption = await self.codes.create_code(code, duration_days)
        return serialize_redemption_code(redemption)

    async def list_redemption_codes(self, page: int, limit: int, search: Optional[str]) -> dict:
        codes, total = await self.codes.list_codes(page, limit, search)
        return paginated([serialize_redemption_code(c) for c in codes], total, page, limit)

    async def redeem_code(self, user: User, code: str) -> dict:
        redemption = await self.codes.get_by_code(code.strip().upper())
        if not redemption:
            raise HTTPException(status_code=400, detail="兑换码不存在")
        if redemption.is_used:
            raise HTTPException(status_code=400, detail="兑换码已被使用")

        now = datetime.utcnow()
        expiry = grant_membership(user, ProductType.PREMIUM, redemption.duration_days, now)

        redemption.is_used = True
        redemption.used_by_user_id = user.id
        redemption.used_at = now
        await self.db.flush()

        logger.info(f"User {user.id} redeemed code {redemption.code}, expiry {expiry}")
        return {
            "success": True,
            "message": "兑换成功",
            "expiryDate": expiry.isoformat() if expiry else None,
        }

    # ------------------------------------------------------------------
    # Members / orders
    # ------------------------------------------------------------------

    async def list_members(
        self, page: int, limit: int, search: Optional[str], role: Optional[str]
    ) -> dict:
        roles = [Role.PREMIUM, Role.LIFETIME]
        if role in (Role.PREMIUM.value, Role.LIFETIME.value):
            roles = [Role(role)]
        users, total = await UserRepository(self.db).list_users(page, limit, search, roles=roles)
        return paginated([serialize_user(u) for u in users], total, page, limit)

    async def list_orders(
        self, page: int, limit: int, search: Optional[str], status: Optional[str] = None
    ) -> dict:
        orders, total = await OrderRepository(self.db).list_orders(page, limit, search, status)
        return paginated([serialize_order(o) for o in orders], total, page, limit)

    # ------------------------------------------------------------------
    # Payment settings
    # ------------------------------------------------------------------

    async def get_payment_settings(self) -> dict:
        row = await self.payment_settings.get()
        if row is None:
            return {
                "alipayAppId": "",
                "alipayPrivateKey": "",
                "alipayPublicKey": "",
                "alipayGatewayUrl": "https://openapi.alipay.com/gateway.do",
                "isSandbox": True,
            }
        return {
            "id": row.id,
            "alipayAppId": row.alipay_app_id,
            "alipayPrivateKey": row.alipay_private_key,
            "alipayPublicKey": row.alipay_public_key,
            "alipayGatewayUrl": row.alipay_gateway_url,
            "isSandbox": row.is_sandbox,
        }

    async def update_payment_settings(self, updates: dict) -> dict:
        reject_null_updates(PaymentSettings, updates)
        await self.payment_settings.upsert(updates)
        return await self.get_payment_settings()

    async def test_payment_settings(self) -> dict:
        current = await self.get_payment_settings()
        if not current["alipayAppId"] or not current["alipayPrivateKey"]:
            return {"success": False, "message": "支付配置不完整"}
        return {"success": True, "message": "支付配置测试成功"}
