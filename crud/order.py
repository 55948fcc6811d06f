"""
OrderRepository for PaymentOrder persistence
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from database_models import PaymentOrder, User
from models.enums import OrderStatus


class OrderRepository:
    """
    Repository class for payment orders.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_order(self, user_id: int, product_id: int, amount: Decimal) -> PaymentOrder:
        order = PaymentOrder(
            user_id=user_id,
            product_id=product_id,
            amount=amount,
            status=OrderStatus.PENDING,
        )
        self.db.add(order)
        await self.db.flush()
        await self.db.refresh(order)
        # Load buyer and product for serialization
        await self.db.refresh(order, ["user", "product"])
        return order

    async def get_order(self, order_id: int) -> Optional[PaymentOrder]:
        result = await self.db.execute(
            select(PaymentOrder).where(PaymentOrder.id == order_id)
        )
        return result.scalar_one_or_none()

    async def get_order_for_update(self, order_id: int) -> Optional[PaymentOrder]:
        """
        Load an order with a row lock where the backend supports it
        (SQLite ignores FOR UPDATE and serializes writers instead).
        """
        result = await self.db.execute(
            select(PaymentOrder).where(PaymentOrder.id == order_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def mark_status(
        self,
        order: PaymentOrder,
        status: OrderStatus,
        alipay_trade_no: Optional[str] = None,
    ) -> PaymentOrder:
        order.status = status
        if alipay_trade_no:
            order.alipay_trade_no = alipay_trade_no
        if status == OrderStatus.SUCCESS:
            order.paid_at = datetime.utcnow()
        await self.db.flush()
        return order

    async def list_orders(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
    ) -> tuple[list[PaymentOrder], int]:
        """Admin listing; search matches buyer username/nickname or Alipay trade number"""
        query = select(PaymentOrder).join(User, PaymentOrder.user_id == User.id)
        count_query = select(func.count(PaymentOrder.id)).join(User, PaymentOrder.user_id == User.id)

        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                User.username.like(pattern),
                User.nickname.like(pattern),
                PaymentOrder.alipay_trade_no.like(pattern),
            ))
        if status:
            conditions.append(PaymentOrder.status == status)

        total = await self.db.scalar(count_query.where(*conditions))
        result = await self.db.execute(
            query.where(*conditions)
            .order_by(PaymentOrder.created_at.desc(), PaymentOrder.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0


def serialize_order(order: PaymentOrder) -> dict:
    data = {
        "id": order.id,
        "userId": order.user_id,
        "productId": order.product_id,
        "amount": float(order.amount),
        "status": order.status,
        "alipayTradeNo": order.alipay_trade_no,
        "paidAt": order.paid_at.isoformat() if order.paid_at else None,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
    }
    if order.user is not None:
        data["user"] = {
            "id": order.user.id,
            "username": order.user.username,
            "nickname": order.user.nickname,
            "email": order.user.email,
        }
    if order.product is not None:
        data["product"] = {
            "id": order.product.id,
            "title": order.product.title,
            "price": float(order.product.price),
        }
    return data
