"""
Request models for the REST API.

The frontend sends camelCase keys; every model also accepts snake_case.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.enums import (
    Role, UserStatus, ProductType, ContentStatus, PostType, RequestPriority, RequestProgress, ResponseStatus,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----------------------------------------------------------------------------
# Payments / membership
# ----------------------------------------------------------------------------

class CreateOrderRequest(CamelModel):
    product_id: int = Field(..., gt=0, description="会员产品ID")


class RedeemCodeRequest(CamelModel):
    code: str = Field(..., min_length=1, max_length=32)


class CreateProductRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., gt=0)
    duration_days: int = Field(default=30, ge=0)
    type: ProductType = ProductType.PREMIUM
    is_active: bool = True


class UpdateProductRequest(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, gt=0)
    duration_days: Optional[int] = Field(default=None, ge=0)
    type: Optional[ProductType] = None
    is_active: Optional[bool] = None


class CreateRedemptionCodeRequest(CamelModel):
    duration_days: int = Field(..., gt=0)


class UpdatePaymentSettingsRequest(CamelModel):
    alipay_app_id: Optional[str] = None
    alipay_private_key: Optional[str] = None
    alipay_public_key: Optional[str] = None
    alipay_gateway_url: Optional[str] = None
    is_sandbox: Optional[bool] = None


# ----------------------------------------------------------------------------
# Users
# ----------------------------------------------------------------------------

class UpdateProfileRequest(CamelModel):
    nickname: Optional[str] = Field(default=None, max_length=50)
    avatar_url: Optional[str] = None
    email: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str


class UpdateUserStatusRequest(CamelModel):
    status: UserStatus


class UpdateUserRoleRequest(CamelModel):
    role: Role
    premium_expiry_date: Optional[datetime] = None


# ----------------------------------------------------------------------------
# Content
# ----------------------------------------------------------------------------

class NoteCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: Optional[str] = None
    cover_image_url: Optional[str] = None
    category_id: Optional[int] = Field(default=None, gt=0)


class NoteUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = None
    cover_image_url: Optional[str] = None
    category_id: Optional[int] = Field(default=None, gt=0)


class PostCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    type: PostType = PostType.IMAGE
    media_url: str
    prompt: Optional[str] = None


class PostUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    prompt: Optional[str] = None


class ResourceCreate(NoteCreate):
    pass


class ResourceUpdate(NoteUpdate):
    pass


class RequestCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: Optional[str] = None
    priority: RequestPriority = RequestPriority.NORMAL
    budget: Optional[Decimal] = Field(default=None, ge=0)
    category_id: Optional[int] = Field(default=None, gt=0)


class RequestUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = None
    priority: Optional[RequestPriority] = None
    progress: Optional[RequestProgress] = None
    budget: Optional[Decimal] = Field(default=None, ge=0)
    category_id: Optional[int] = Field(default=None, gt=0)


class ScreeningCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    video_url: str
    thumbnail_url: Optional[str] = None


class ScreeningUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None


class SpiritPostCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: Optional[str] = None


class SpiritPostUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = None
    is_claimed: Optional[bool] = None


class UpdateContentStatusRequest(CamelModel):
    status: ContentStatus


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)


class CategoryUpdate(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)


class RequestResponseCreate(CamelModel):
    content: str = Field(..., min_length=1, max_length=2000)
    price: Optional[Decimal] = Field(default=None, ge=0)
    is_public: bool = False


class UpdateResponseStatusRequest(CamelModel):
    status: ResponseStatus


# ----------------------------------------------------------------------------
# Messages / site settings
# ----------------------------------------------------------------------------

class UserMessageCreate(CamelModel):
    receiver_id: int = Field(..., gt=0)
    content: str = Field(..., min_length=1, max_length=2000)


class SocialMediaSortItem(CamelModel):
    id: int
    sort_order: int = Field(..., ge=0)


class UploadLimitUpdate(CamelModel):
    image_max_size_mb: int = Field(..., ge=1, le=2048)
    video_max_size_mb: int = Field(..., ge=1, le=2048)


# ----------------------------------------------------------------------------
# Announcements / moderation
# ----------------------------------------------------------------------------

class AnnouncementCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str
    priority: int = 0
    is_active: bool = True
    start_date: datetime
    end_date: datetime


class AnnouncementUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class SensitiveWordCreate(CamelModel):
    word: str = Field(..., min_length=1, max_length=100)
