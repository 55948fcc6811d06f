"""
Payments Router - Alipay order creation, asynchronous notifications and the test-mode mock page
Notification endpoints are defined FIRST; Alipay posts to them without a session
"""

import html
import logging
from fastapi import APIRouter, Request, Depends, Query, HTTPException
from fastapi.responses import JSONResponse, HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from database_models import User
from auth import get_current_user
from config import IS_PRODUCTION
from models.schemas import CreateOrderRequest
from services.payments_service import PaymentsService
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

payments_router = APIRouter(prefix="/api/payments", tags=["payments"])


async def _read_notification(request: Request) -> dict:
    """Alipay posts form-encoded fields; JSON bodies are accepted for manual replays"""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        body = await request.json()
        return dict(body) if isinstance(body, dict) else {}
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


# NOTIFICATION ENDPOINTS
@payments_router.post("/alipay-notify")
@payments_router.post("/alipay/notify")
async def alipay_notify(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Handle Alipay asynchronous payment notifications.

    Always answers 200 with {success, message}; the body reports whether the
    notification was verified and applied.
    """
    try:
        notify_data = await _read_notification(request)
        result = await PaymentsService(db).handle_alipay_notification(notify_data)
        log_endpoint_event("/payments/alipay-notify", None, "success" if result["success"] else "rejected", {
            "out_trade_no": notify_data.get("out_trade_no"),
            "trade_status": notify_data.get("trade_status"),
            "message": result["message"],
        })
        return JSONResponse(status_code=200, content=result)
    except Exception as e:
        logger.error(f"Alipay notification error: {e}", exc_info=True)
        # Persisted changes from a half-applied notification are rolled back
        await db.rollback()
        return JSONResponse(status_code=200, content={"success": False, "message": f"处理失败: {e}"})


@payments_router.post("/create-order")
async def create_order(
    request: CreateOrderRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a membership order and return {orderId, paymentUrl}"""
    result = await PaymentsService(db).create_order(current_user.id, request.product_id)
    log_endpoint_event("/payments/create-order", current_user.id, "success", {"orderId": result["orderId"]})
    return result


@payments_router.get("/order-status/{order_id}")
async def get_order_status(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentsService(db).get_order_status(order_id, current_user.id)


@payments_router.get("/mock-pay", response_class=HTMLResponse)
async def mock_pay_page(orderId: int = Query(...)):
    """Local stand-in for the Alipay checkout page (test mode only)"""
    if IS_PRODUCTION:
        raise HTTPException(status_code=403, detail="生产环境不可用")

    order_id = html.escape(str(orderId))
    return HTMLResponse(content=f"""<!DOCTYPE html>
<html lang="zh-CN">
<head><meta charset="utf-8"><title>模拟支付</title></head>
<body>
  <h2>模拟支付</h2>
  <p>订单号: {order_id}</p>
  <button id="pay">确认支付</button>
  <p id="result"></p>
  <script>
    document.getElementById("pay").onclick = async function () {{
      const res = await fetch("/api/payments/mock-success?orderId={order_id}", {{method: "POST"}});
      const data = await res.json();
      document.getElementById("result").textContent = data.message || data.detail;
    }};
  </script>
</body>
</html>""")


@payments_router.post("/mock-success")
async def mock_payment_success(orderId: int = Query(...), db: AsyncSession = Depends(get_db)):
    """Mark an order paid without the gateway (test mode only)"""
    if IS_PRODUCTION:
        raise HTTPException(status_code=403, detail="生产环境不可用")
    return await PaymentsService(db).mock_payment_success(orderId)
