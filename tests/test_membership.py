"""
Tests for membership grants, redemption codes and the admin membership console
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi import HTTPException

from database_models import MembershipProduct, RedemptionCode
from models.enums import ProductType, Role
from services.membership_service import MembershipService, grant_membership, generate_redemption_code
from tests.conftest import insert_user, auth_headers


NOW = datetime(2024, 6, 1, 12, 0, 0)


class _Member:
    """Plain stand-in carrying the two fields grant_membership touches"""

    def __init__(self, role=Role.NORMAL, premium_expiry_date=None):
        self.role = role
        self.premium_expiry_date = premium_expiry_date


def test_grant_membership_from_normal():
    member = _Member()
    expiry = grant_membership(member, ProductType.PREMIUM, 30, NOW)
    assert member.role == Role.PREMIUM
    assert expiry == NOW + timedelta(days=30)


def test_grant_membership_extends_unexpired_membership():
    member = _Member(Role.PREMIUM, NOW + timedelta(days=10))
    expiry = grant_membership(member, ProductType.PREMIUM, 30, NOW)
    assert expiry == NOW + timedelta(days=40)


def test_grant_membership_restarts_lapsed_membership():
    member = _Member(Role.PREMIUM, NOW - timedelta(days=3))
    assert grant_membership(member, ProductType.PREMIUM, 30, NOW) == NOW + timedelta(days=30)


def test_grant_membership_lifetime_and_admin():
    member = _Member(Role.PREMIUM, NOW + timedelta(days=10))
    assert grant_membership(member, ProductType.LIFETIME, 0, NOW) is None
    assert member.role == Role.LIFETIME

    # Lifetime members stay lifetime when they buy time
    assert grant_membership(member, ProductType.PREMIUM, 30, NOW) is None
    assert member.role == Role.LIFETIME

    admin = _Member(Role.ADMIN)
    grant_membership(admin, ProductType.PREMIUM, 30, NOW)
    assert admin.role == Role.ADMIN


def test_zero_day_premium_has_no_expiry():
    member = _Member()
    assert grant_membership(member, ProductType.PREMIUM, 0, NOW) is None
    assert member.role == Role.PREMIUM


def test_generate_redemption_code_format():
    code = generate_redemption_code()
    assert len(code) == 16
    assert code.isalnum() and code.upper() == code


@pytest.mark.asyncio
async def test_redeem_code_extends_membership(test_db):
    expiry = datetime.utcnow() + timedelta(days=10)
    user = await insert_user(test_db, "member", role=Role.PREMIUM, premium_expiry_date=expiry)
    test_db.add(RedemptionCode(code="ABCDEF1234567890", duration_days=30))
    await test_db.flush()

    result = await MembershipService(test_db).redeem_code(user, "abcdef1234567890")

    assert result["success"] is True
    assert result["message"] == "兑换成功"
    assert user.premium_expiry_date == expiry + timedelta(days=30)
    assert result["expiryDate"] == user.premium_expiry_date.isoformat()


@pytest.mark.asyncio
async def test_redeem_code_errors(test_db):
    first = await insert_user(test_db, "first")
    second = await insert_user(test_db, "second")
    test_db.add(RedemptionCode(code="USEDONCE00000000", duration_days=7))
    await test_db.flush()
    service = MembershipService(test_db)

    with pytest.raises(HTTPException) as exc_info:
        await service.redeem_code(first, "DOESNOTEXIST0000")
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "兑换码不存在"

    await service.redeem_code(first, "USEDONCE00000000")
    assert first.role == Role.PREMIUM

    with pytest.raises(HTTPException) as exc_info:
        await service.redeem_code(second, "USEDONCE00000000")
    assert exc_info.value.detail == "兑换码已被使用"
    assert second.role == Role.NORMAL


@pytest.mark.asyncio
async def test_payment_settings_test(test_db):
    service = MembershipService(test_db)
    assert await service.test_payment_settings() == {"success": False, "message": "支付配置不完整"}

    await service.update_payment_settings({"alipay_app_id": "2021000", "alipay_private_key": "key"})
    assert (await service.test_payment_settings())["success"] is True
    assert (await service.get_payment_settings())["alipayAppId"] == "2021000"


# ----------------------------------------------------------------------------
# HTTP API
# ----------------------------------------------------------------------------

def test_public_products_only_active(client, run_db):
    async def _insert(session):
        session.add(MembershipProduct(title="月度会员", price=Decimal("19.90"), duration_days=30))
        session.add(MembershipProduct(title="已下架", price=Decimal("9.90"), duration_days=7, is_active=False))
    run_db(_insert)

    response = client.get("/api/membership/products")
    assert response.status_code == 200
    assert [p["title"] for p in response.json()] == ["月度会员"]


def test_admin_product_and_code_management(client, create_user):
    admin_id = create_user("admin", role=Role.ADMIN)
    headers = auth_headers(admin_id, Role.ADMIN)

    created = client.post(
        "/api/admin/membership/products",
        json={"title": "年度会员", "price": "199.00", "durationDays": 365},
        headers=headers,
    )
    assert created.status_code == 200
    product_id = created.json()["id"]

    updated = client.put(f"/api/admin/membership/products/{product_id}", json={"isActive": False}, headers=headers)
    assert updated.json()["isActive"] is False

    code = client.post("/api/admin/membership/redemption-codes", json={"durationDays": 30}, headers=headers).json()
    assert len(code["code"]) == 16

    listing = client.get("/api/admin/membership/redemption-codes", headers=headers).json()
    assert listing["total"] == 1
    assert listing["totalPages"] == 1

    assert client.delete(f"/api/admin/membership/products/{product_id}", headers=headers).status_code == 200
    assert client.get("/api/admin/membership/products", headers=headers).json() == []


def test_redeem_endpoint_and_member_listing(client, create_user, run_db):
    admin_id = create_user("admin", role=Role.ADMIN)
    user_id = create_user("redeemer")

    async def _insert(session):
        session.add(RedemptionCode(code="HTTPCODE00000000", duration_days=30))
    run_db(_insert)

    response = client.post("/api/membership/redeem", json={"code": "HTTPCODE00000000"}, headers=auth_headers(user_id))
    assert response.status_code == 200
    assert response.json()["expiryDate"] is not None

    again = client.post("/api/membership/redeem", json={"code": "HTTPCODE00000000"}, headers=auth_headers(user_id))
    assert again.status_code == 400

    members = client.get("/api/admin/membership/members", headers=auth_headers(admin_id, Role.ADMIN)).json()
    assert [m["username"] for m in members["data"]] == ["redeemer"]
