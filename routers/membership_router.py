"""
Membership Router - public product listing, code redemption and the admin membership console
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from database_models import User
from auth import get_current_user, require_admin
from crud.user import serialize_user
from models.schemas import (
    RedeemCodeRequest,
    CreateProductRequest,
    UpdateProductRequest,
    CreateRedemptionCodeRequest,
    UpdatePaymentSettingsRequest,
)
from services.membership_service import MembershipService
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

membership_router = APIRouter(prefix="/api/membership", tags=["membership"])
admin_membership_router = APIRouter(
    prefix="/api/admin/membership",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@membership_router.get("/products")
async def list_products(db: AsyncSession = Depends(get_db)):
    """Active membership products, newest first"""
    return await MembershipService(db).get_public_products()


@membership_router.post("/redeem")
async def redeem_code(
    request: RedeemCodeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await MembershipService(db).redeem_code(current_user, request.code)
    log_endpoint_event("/membership/redeem", current_user.id, "success", {"expiryDate": result["expiryDate"]})
    return result


@membership_router.get("/status")
async def membership_status(current_user: User = Depends(get_current_user)):
    user = serialize_user(current_user)
    return {"role": user["role"], "premiumExpiryDate": user["premiumExpiryDate"]}


# ----------------------------------------------------------------------------
# Admin
# ----------------------------------------------------------------------------

@admin_membership_router.get("/members")
async def list_members(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    return await MembershipService(db).list_members(page, limit, search, role)


@admin_membership_router.get("/products")
async def admin_list_products(db: AsyncSession = Depends(get_db)):
    return await MembershipService(db).get_all_products()


@admin_membership_router.post("/products")
async def create_product(request: CreateProductRequest, db: AsyncSession = Depends(get_db)):
    return await MembershipService(db).create_product(request.model_dump())


@admin_membership_router.put("/products/{product_id}")
async def update_product(product_id: int, request: UpdateProductRequest, db: AsyncSession = Depends(get_db)):
    return await MembershipService(db).update_product(product_id, request.model_dump(exclude_unset=True))


@admin_membership_router.delete("/products/{product_id}")
async def delete_product(product_id: int, db: AsyncSession = Depends(get_db)):
    return await MembershipService(db).delete_product(product_id)


@admin_membership_router.post("/redemption-codes")
async def create_redemption_code(request: CreateRedemptionCodeRequest, db: AsyncSession = Depends(get_db)):
    return await MembershipService(db).create_redemption_code(request.duration_days)


@admin_membership_router.get("/redemption-codes")
async def list_redemption_codes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    return await MembershipService(db).list_redemption_codes(page, limit, search)


@admin_membership_router.get("/orders")
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    return await MembershipService(db).list_orders(page, limit, search, status)


@admin_membership_router.get("/payment-settings")
async def get_payment_settings(db: AsyncSession = Depends(get_db)):
    return await MembershipService(db).get_payment_settings()


@admin_membership_router.put("/payment-settings")
async def update_payment_settings(request: UpdatePaymentSettingsRequest, db: AsyncSession = Depends(get_db)):
    return await MembershipService(db).update_payment_settings(request.model_dump(exclude_unset=True))


@admin_membership_router.post("/payment-settings/test")
async def test_payment_settings(db: AsyncSession = Depends(get_db)):
    return await MembershipService(db).test_payment_settings()
