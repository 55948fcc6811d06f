"""
UserRepository for database operations on User model
"""

from datetime import date, datetime
from typing import Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, update

from database_models import User, UserDailyLogin
from models.enums import Role


class UserRepository:
    """
    Repository class for User database operations.
    Encapsulates all database logic for the User model.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Retrieve a user by email address.

        Args:
            email: User's email address (case-insensitive search)

        Returns:
            User object if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_user_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.username == username)
        )
        return result.scalar_one_or_none()

    async def get_user_by_login(self, login: str) -> Optional[User]:
        """Look a user up by username or email, whichever matches"""
        result = await self.db.execute(
            select(User).where(or_(User.username == login, User.email == login.lower()))
        )
        return result.scalars().first()

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """
        Retrieve a user by ID.

        Args:
            user_id: User's ID

        Returns:
            User object if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_user(self, user_data: dict) -> User:
        """
        Create a new user in the database.

        Args:
            user_data: Dictionary containing user data. Must include:
                - username: str
                - email: str
                - hashed_password: str
                Optional:
                - nickname: str (defaults to username)
                - role: Role (defaults to NORMAL)

        Returns:
            Created User object
        """
        user = User(
            username=user_data["username"],
            email=user_data["email"].lower(),
            hashed_password=user_data["hashed_password"],
            nickname=user_data.get("nickname") or user_data["username"],
            avatar_url=user_data.get("avatar_url"),
            role=user_data.get("role", Role.NORMAL),
        )
        self.db.add(user)
        await self.db.flush()  # Flush to get the ID without committing
        await self.db.refresh(user)  # Refresh to get the generated ID
        return user

    async def update_user(self, user: User, updates: dict) -> User:
        """
        Update user fields.

        Args:
            user: User object to update
            updates: Dictionary of fields to update (e.g., {"role": Role.PREMIUM})

        Returns:
            Updated User object
        """
        for key, value in updates.items():
            if hasattr(user, key):
                setattr(user, key, value)

        await self.db.flush()
        await self.db.refresh(user)
        return user

    async def email_taken_by_other(self, email: str, user_id: int) -> bool:
        result = await self.db.execute(
            select(User.id).where(User.email == email.lower(), User.id != user_id)
        )
        return result.first() is not None

    async def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        roles: Optional[Sequence[Role]] = None,
        status: Optional[str] = None,
    ) -> tuple[list[User], int]:
        """Paginated user listing, newest first"""
        conditions = []
        if roles:
            conditions.append(User.role.in_(list(roles)))
        if status:
            conditions.append(User.status == status)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                User.username.like(pattern),
                User.nickname.like(pattern),
                User.email.like(pattern),
            ))

        total = await self.db.scalar(select(func.count(User.id)).where(*conditions))
        result = await self.db.execute(
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def downgrade_expired_premium(self, now: datetime) -> int:
        """Reset PREMIUM users whose membership lapsed before `now`; returns the count"""
        result = await self.db.execute(
            update(User)
            .where(User.role == Role.PREMIUM, User.premium_expiry_date < now)
            .values(role=Role.NORMAL, premium_expiry_date=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()
        return result.rowcount or 0

    async def record_daily_login(self, user_id: int, day: Optional[date] = None) -> bool:
        """Store one login per user per day; returns False when already recorded"""
        day = day or date.today()
        existing = await self.db.execute(
            select(UserDailyLogin.id).where(
                UserDailyLogin.user_id == user_id,
                UserDailyLogin.login_date == day,
            )
        )
        if existing.first() is not None:
            return False
        self.db.add(UserDailyLogin(user_id=user_id, login_date=day))
        await self.db.flush()
        return True

    async def count_daily_logins(self, user_id: int) -> int:
        return await self.db.scalar(
            select(func.count(UserDailyLogin.id)).where(UserDailyLogin.user_id == user_id)
        ) or 0


def serialize_user(user: User, include_private: bool = True) -> dict:
    """Convert a User row to the camelCase JSON shape the frontend expects"""
    data = {
        "id": user.id,
        "username": user.username,
        "nickname": user.nickname,
        "avatarUrl": user.avatar_url,
        "role": user.role,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    }
    if include_private:
        data.update({
            "email": user.email,
            "status": user.status,
            "premiumExpiryDate": user.premium_expiry_date.isoformat() if user.premium_expiry_date else None,
        })
    return data
