"""
Payments Service - Alipay page-pay orders, notification handling and membership expiry
"""

import re
import time
import logging
from datetime import datetime
from typing import Any, Optional
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings, IS_PRODUCTION
from crud.membership import ProductRepository
from crud.order import OrderRepository
from crud.user import UserRepository
from database_models import PaymentOrder
from models.enums import OrderStatus, TRADE_SUCCESS, TRADE_FINISHED, TRADE_CLOSED
from services.alipay_client import get_alipay_client, page_pay_url, verify_notification
from services.membership_service import grant_membership

logger = logging.getLogger(__name__)

OUT_TRADE_NO_PREFIX = "ORDER_"
_OUT_TRADE_NO_RE = re.compile(r"^ORDER_(\d+)$")

_UNSET = object()


def parse_out_trade_no(out_trade_no: Optional[str]) -> Optional[int]:
    """ORDER_<id> -> id, or None for anything else"""
    match = _OUT_TRADE_NO_RE.match(out_trade_no or "")
    return int(match.group(1)) if match else None


class PaymentsService:
    """
    Service class for the Alipay payment flow.

    Outside production, when no Alipay credentials are configured, the service
    runs in test mode: orders get a local mock-pay URL and notifications are
    accepted without a gateway.
    """

    def __init__(self, db: AsyncSession, alipay_client: Any = _UNSET, test_mode: Optional[bool] = None):
        """
        Args:
            db: AsyncSession instance for database operations
            alipay_client: AliPay SDK client; defaults to the one built from settings
            test_mode: Overrides the environment-derived test mode flag
        """
        self.db = db
        self.alipay = get_alipay_client() if alipay_client is _UNSET else alipay_client
        self.test_mode = (not IS_PRODUCTION) if test_mode is None else test_mode
        self.orders = OrderRepository(db)
        self.products = ProductRepository(db)
        self.users = UserRepository(db)

    @property
    def mock_mode(self) -> bool:
        return self.test_mode and self.alipay is None

    async def create_order(self, user_id: int, product_id: int) -> dict:
        """
        Persist a PENDING order for the product and return the URL the payer is redirected to.

        Returns:
            {"orderId": int, "paymentUrl": str}

        Raises:
            HTTPException 404 if the product does not exist, 400 if the gateway is
            unavailable or rejects the request (the order is then marked FAILED)
        """
        logger.info(f"Creating order: user_id={user_id}, product_id={product_id}")

        product = await self.products.get_product(product_id)
        if not product or not product.is_active:
            raise HTTPException(status_code=404, detail="会员产品不存在")

        order = await self.orders.create_order(user_id, product.id, product.price)

        if self.mock_mode:
            logger.info(f"Test mode: order {order.id} will use the mock payment page")
            return {
                "orderId": order.id,
                "paymentUrl": f"{settings.server_domain}/api/payments/mock-pay?orderId={order.id}",
            }

        if self.alipay is None:
            await self.orders.mark_status(order, OrderStatus.FAILED)
            await self.db.commit()
            raise HTTPException(status_code=400, detail="支付宝服务未配置，无法创建订单")

        try:
            payment_url = page_pay_url(
                self.alipay,
                out_trade_no=f"{OUT_TRADE_NO_PREFIX}{order.id}",
                total_amount=f"{order.amount:.2f}",
                subject=f"AI灵感社 - {product.title}",
                body=product.description or "会员购买",
                return_url=f"{settings.return_url}?orderId={order.id}",
                notify_url=settings.notify_url,
            )
        except Exception as e:
            logger.error(f"Failed to create Alipay payment for order {order.id}: {e}", exc_info=True)
            await self.orders.mark_status(order, OrderStatus.FAILED)
            # Keep the FAILED order even though the request ends in an error
            await self.db.commit()
            raise HTTPException(status_code=400, detail=f"创建支付失败: {e}")

        return {
            "orderId": order.id,
            "paymentUrl": payment_url,
        }

    async def handle_alipay_notification(self, notify_data: dict) -> dict:
        """
        Verify and apply an Alipay asynchronous notification.

        Never raises; the result body tells the caller whether the notification
        was accepted. Replays of an already-successful order are acknowledged
        without granting the membership again.
        """
        if self.mock_mode:
            logger.info("Test mode: accepting Alipay notification without verification")
            return {"success": True, "message": "测试模式"}

        if self.alipay is None:
            logger.error("Alipay is not configured; cannot process notification")
            return {"success": False, "message": "支付宝服务未配置"}

        if not verify_notification(self.alipay, notify_data):
            logger.warning("Alipay notification signature verification failed")
            return {"success": False, "message": "签名验证失败"}

        out_trade_no = notify_data.get("out_trade_no")
        trade_status = notify_data.get("trade_status")
        alipay_trade_no = notify_data.get("trade_no")

        order_id = parse_out_trade_no(out_trade_no)
        if order_id is None:
            logger.warning(f"Invalid out_trade_no in notification: {out_trade_no}")
            return {"success": False, "message": "无效的订单号"}

        logger.info(f"Alipay notification: order_id={order_id}, trade_status={trade_status}")

        order = await self.orders.get_order_for_update(order_id)
        if not order:
            logger.warning(f"Notification for unknown order {order_id}")
            return {"success": False, "message": "订单不存在"}

        if trade_status in (TRADE_SUCCESS, TRADE_FINISHED):
            if order.status == OrderStatus.SUCCESS:
                return {"success": True, "message": "订单已处理"}
            await self._complete_order(order, alipay_trade_no)
            return {"success": True, "message": "订单处理成功"}

        if trade_status == TRADE_CLOSED:
            if order.status != OrderStatus.SUCCESS:
                await self.orders.mark_status(order, OrderStatus.FAILED, alipay_trade_no)
                logger.info(f"Order {order.id} closed by Alipay")
            return {"success": True, "message": "订单已关闭"}

        return {"success": True, "message": "订单状态已记录"}

    async def mock_payment_success(self, order_id: int) -> dict:
        """Simulate a successful payment (test mode only)"""
        if not self.test_mode:
            raise HTTPException(status_code=400, detail="此功能仅在测试模式下可用")

        order = await self.orders.get_order_for_update(order_id)
        if not order:
            raise HTTPException(status_code=404, detail="订单不存在")

        if order.status == OrderStatus.SUCCESS:
            return {"success": True, "message": "订单已处理"}

        await self._complete_order(order, f"MOCK_{int(time.time() * 1000)}")
        return {"success": True, "message": "测试支付成功"}

    async def _complete_order(self, order: PaymentOrder, alipay_trade_no: Optional[str]) -> None:
        await self.orders.mark_status(order, OrderStatus.SUCCESS, alipay_trade_no)

        user = await self.users.get_user_by_id(order.user_id)
        product = await self.products.get_product(order.product_id)
        if user is None or product is None:
            logger.error(f"Order {order.id} paid but user or product is missing")
            return

        expiry = grant_membership(user, product.type, product.duration_days)
        await self.db.flush()
        logger.info(f"User {user.id} upgraded to {user.role}, expiry {expiry} (order {order.id})")

    async def get_order_status(self, order_id: int, user_id: int) -> dict:
        """
        Raises:
            HTTPException 404 if the order does not exist, 401 if it belongs to another user
        """
        order = await self.orders.get_order(order_id)
        if not order:
            raise HTTPException(status_code=404, detail="订单不存在")

        if order.user_id != user_id:
            raise HTTPException(status_code=401, detail="无权访问此订单")

        return {
            "orderId": order.id,
            "status": order.status,
            "amount": float(order.amount),
            "product": {
                "id": order.product.id,
                "title": order.product.title,
                "price": float(order.product.price),
            },
            "createdAt": order.created_at.isoformat() if order.created_at else None,
        }

    async def check_expired_memberships(self, now: Optional[datetime] = None) -> int:
        """Downgrade PREMIUM users whose membership expired; returns how many were downgraded"""
        now = now or datetime.utcnow()
        logger.info("Checking expired memberships...")
        expired_count = await self.users.downgrade_expired_premium(now)
        if expired_count:
            logger.info(f"Downgraded {expired_count} expired members to NORMAL")
        else:
            logger.info("No expired memberships found")
        return expired_count
