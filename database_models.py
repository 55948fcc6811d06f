from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Date, Numeric, ForeignKey,
    Enum as SAEnum, UniqueConstraint,
)
from sqlalchemy.orm import declared_attr, relationship
from datetime import datetime
from database import Base
from models.enums import (
    Role, UserStatus, OrderStatus, ProductType, ContentStatus, EntityType,
    PostType, RequestPriority, RequestProgress, ResponseStatus, CategoryKind,
)


def _enum(enum_cls):
    return SAEnum(enum_cls, native_enum=False, length=20)


class User(Base):
    """
    Platform account. Membership is carried by role + premium_expiry_date.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    nickname = Column(String(50), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    avatar_url = Column(String, nullable=True)
    role = Column(_enum(Role), default=Role.NORMAL, nullable=False)
    status = Column(_enum(UserStatus), default=UserStatus.ACTIVE, nullable=False)
    premium_expiry_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class UserDailyLogin(Base):
    __tablename__ = "user_daily_logins"
    __table_args__ = (UniqueConstraint("user_id", "login_date"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    login_date = Column(Date, nullable=False)


class MembershipProduct(Base):
    __tablename__ = "membership_products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    # 0 means the membership never expires
    duration_days = Column(Integer, default=30, nullable=False)
    type = Column(_enum(ProductType), default=ProductType.PREMIUM, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PaymentOrder(Base):
    __tablename__ = "payment_orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("membership_products.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(_enum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)
    alipay_trade_no = Column(String(64), nullable=True, index=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", lazy="selectin")
    product = relationship("MembershipProduct", lazy="selectin")


class RedemptionCode(Base):
    __tablename__ = "redemption_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(32), unique=True, nullable=False, index=True)
    duration_days = Column(Integer, nullable=False)
    is_used = Column(Boolean, default=False, nullable=False)
    used_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    used_by_user = relationship("User", lazy="selectin")


class PaymentSettings(Base):
    """Single-row table edited from the admin panel"""
    __tablename__ = "payment_settings"

    id = Column(Integer, primary_key=True)
    alipay_app_id = Column(String, default="", nullable=False)
    alipay_private_key = Column(Text, default="", nullable=False)
    alipay_public_key = Column(Text, default="", nullable=False)
    alipay_gateway_url = Column(String, default="https://openapi.alipay.com/gateway.do", nullable=False)
    is_sandbox = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AnnouncementView(Base):
    __tablename__ = "announcement_views"
    __table_args__ = (UniqueConstraint("user_id", "announcement_id", "view_date"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    announcement_id = Column(Integer, ForeignKey("announcements.id"), nullable=False)
    view_date = Column(Date, nullable=False)


class ContentMixin:
    """
    Columns shared by every user-owned content record.
    """
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    status = Column(_enum(ContentStatus), default=ContentStatus.VISIBLE, nullable=False, index=True)
    likes_count = Column(Integer, default=0, nullable=False)
    favorites_count = Column(Integer, default=0, nullable=False)
    views_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @declared_attr
    def user_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    @declared_attr
    def user(cls):
        return relationship("User", lazy="selectin")


class Note(ContentMixin, Base):
    __tablename__ = "notes"

    content = Column(Text, nullable=True)
    cover_image_url = Column(String, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)


class Post(ContentMixin, Base):
    """Inspiration gallery entry (image or video)"""
    __tablename__ = "posts"

    description = Column(Text, nullable=True)
    type = Column(_enum(PostType), default=PostType.IMAGE, nullable=False)
    media_url = Column(String, nullable=False)
    prompt = Column(Text, nullable=True)


class Resource(ContentMixin, Base):
    __tablename__ = "resources"

    content = Column(Text, nullable=True)
    cover_image_url = Column(String, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)


class Request(ContentMixin, Base):
    """Demand posted by a user looking for help"""
    __tablename__ = "requests"

    content = Column(Text, nullable=True)
    priority = Column(_enum(RequestPriority), default=RequestPriority.NORMAL, nullable=False)
    progress = Column(_enum(RequestProgress), default=RequestProgress.OPEN, nullable=False)
    budget = Column(Numeric(10, 2), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    response_count = Column(Integer, default=0, nullable=False)


class Screening(ContentMixin, Base):
    __tablename__ = "screenings"

    description = Column(Text, nullable=True)
    video_url = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=True)


class SpiritPost(ContentMixin, Base):
    __tablename__ = "spirit_posts"

    content = Column(Text, nullable=True)
    is_claimed = Column(Boolean, default=False, nullable=False)


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (UniqueConstraint("user_id", "entity_type", "entity_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    entity_type = Column(_enum(EntityType), nullable=False)
    entity_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Favorite(Base):
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "entity_type", "entity_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    entity_type = Column(_enum(EntityType), nullable=False)
    entity_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class SensitiveWord(Base):
    __tablename__ = "sensitive_words"

    id = Column(Integer, primary_key=True)
    word = Column(String(100), unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Creator(Base):
    __tablename__ = "creators"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    nickname = Column(String(50), nullable=False)
    avatar_url = Column(String, nullable=True)
    score = Column(Integer, default=0, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Category(Base):
    """Admin-managed category for notes, resources or requests"""
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("kind", "name"),)

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(_enum(CategoryKind), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class RequestResponse(Base):
    """Offer of help posted under someone else's request"""
    __tablename__ = "request_responses"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(Integer, ForeignKey("requests.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=True)
    is_public = Column(Boolean, default=False, nullable=False)
    status = Column(_enum(ResponseStatus), default=ResponseStatus.PENDING, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", lazy="selectin")
    request = relationship("Request", lazy="selectin")


class UserMessage(Base):
    __tablename__ = "user_messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    sender = relationship("User", foreign_keys=[sender_id], lazy="selectin")
    receiver = relationship("User", foreign_keys=[receiver_id], lazy="selectin")


class SocialMedia(Base):
    """Footer link: platform name, logo and follow QR code"""
    __tablename__ = "social_media"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    logo_url = Column(String, nullable=False)
    qr_code_url = Column(String, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class UploadLimit(Base):
    """Per-module size caps in MB; modules without a row use built-in defaults"""
    __tablename__ = "upload_limits"

    id = Column(Integer, primary_key=True)
    module = Column(String(30), unique=True, nullable=False)
    image_max_size_mb = Column(Integer, nullable=False)
    video_max_size_mb = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
