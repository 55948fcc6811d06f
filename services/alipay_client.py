"""
Alipay SDK wiring - builds the client from settings and wraps the two calls
the payment flow needs (page-pay URL and notification signature check).
"""

import logging
import textwrap
from typing import Optional

from alipay import AliPay

from config.settings import settings

logger = logging.getLogger(__name__)

_client: Optional[AliPay] = None
_client_built = False


def _to_pem(key: str, label: str) -> str:
    """Alipay's console hands out bare base64 keys; the SDK wants PEM"""
    key = key.strip()
    if key.startswith("-----BEGIN"):
        return key
    body = "\n".join(textwrap.wrap(key, 64))
    return f"-----BEGIN {label}-----\n{body}\n-----END {label}-----"


def build_alipay_client() -> Optional[AliPay]:
    """Create an AliPay client, or None when the credentials are incomplete"""
    if not (settings.alipay_app_id and settings.alipay_private_key and settings.alipay_public_key):
        logger.warning("Alipay configuration is incomplete. Payment gateway will be unavailable.")
        return None

    client = AliPay(
        appid=settings.alipay_app_id,
        app_notify_url=settings.notify_url,
        app_private_key_string=_to_pem(settings.alipay_private_key, "RSA PRIVATE KEY"),
        alipay_public_key_string=_to_pem(settings.alipay_public_key, "PUBLIC KEY"),
        sign_type="RSA2",
        debug="alipaydev" in settings.alipay_gateway,
    )
    logger.info("Alipay SDK initialized")
    return client


def get_alipay_client() -> Optional[AliPay]:
    """Process-wide client, built on first use"""
    global _client, _client_built
    if not _client_built:
        _client = build_alipay_client()
        _client_built = True
    return _client


def page_pay_url(
    client: AliPay,
    out_trade_no: str,
    total_amount: str,
    subject: str,
    body: str,
    return_url: str,
    notify_url: str,
) -> str:
    """Sign an alipay.trade.page.pay request and return the gateway redirect URL"""
    order_string = client.api_alipay_trade_page_pay(
        out_trade_no=out_trade_no,
        total_amount=total_amount,
        subject=subject,
        body=body,
        product_code="FAST_INSTANT_TRADE_PAY",
        return_url=return_url,
        notify_url=notify_url,
    )
    return f"{settings.alipay_gateway}?{order_string}"


def verify_notification(client: AliPay, notify_data: dict) -> bool:
    """Check the RSA2 signature of an asynchronous notification"""
    data = dict(notify_data)
    signature = data.pop("sign", None)
    if not signature:
        return False
    try:
        return bool(client.verify(data, signature))
    except Exception as e:
        logger.warning(f"Alipay signature verification raised: {e}")
        return False
