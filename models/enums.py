"""
Enumerations shared by the ORM models, services and request schemas
"""
from enum import Enum


class Role(str, Enum):
    NORMAL = "NORMAL"
    PREMIUM = "PREMIUM"
    LIFETIME = "LIFETIME"
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    MUTED = "MUTED"
    BANNED = "BANNED"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class ProductType(str, Enum):
    PREMIUM = "PREMIUM"
    LIFETIME = "LIFETIME"


class ContentStatus(str, Enum):
    VISIBLE = "VISIBLE"
    HIDDEN = "HIDDEN"
    ADMIN_DELETED = "ADMIN_DELETED"


class EntityType(str, Enum):
    NOTE = "NOTE"
    POST = "POST"
    RESOURCE = "RESOURCE"
    REQUEST = "REQUEST"
    SCREENING = "SCREENING"
    SPIRIT_POST = "SPIRIT_POST"


class PostType(str, Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class RequestPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class RequestProgress(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    SOLVED = "SOLVED"
    CLOSED = "CLOSED"


class ResponseStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class CategoryKind(str, Enum):
    NOTE = "NOTE"
    RESOURCE = "RESOURCE"
    REQUEST = "REQUEST"


# Alipay trade states delivered through the asynchronous notification
TRADE_SUCCESS = "TRADE_SUCCESS"
TRADE_FINISHED = "TRADE_FINISHED"
TRADE_CLOSED = "TRADE_CLOSED"
