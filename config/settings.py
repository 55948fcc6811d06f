"""
Configuration settings for the application
"""
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,  # Allow both field name and alias
        extra="ignore",
    )

    # Core authentication and security
    jwt_secret_key: Optional[str] = Field(default=None, alias="JWT_SECRET_KEY")
    jwt_expire_days: int = Field(default=7, alias="JWT_EXPIRE_DAYS")

    # Alipay configuration
    alipay_app_id: Optional[str] = Field(default=None, alias="ALIPAY_APP_ID")
    alipay_private_key: Optional[str] = Field(default=None, alias="ALIPAY_PRIVATE_KEY")
    alipay_public_key: Optional[str] = Field(default=None, alias="ALIPAY_PUBLIC_KEY")
    alipay_gateway: str = Field(default="https://openapi.alipay.com/gateway.do", alias="ALIPAY_GATEWAY")
    alipay_return_url: Optional[str] = Field(default=None, alias="ALIPAY_RETURN_URL")
    alipay_notify_url: Optional[str] = Field(default=None, alias="ALIPAY_NOTIFY_URL")

    # Infrastructure configuration
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")
    database_url: Optional[str] = Field(default="sqlite+aiosqlite:///./aifans.db", alias="DATABASE_URL")

    # Public URLs
    frontend_url: Optional[str] = Field(default="http://localhost:3000", alias="FRONTEND_URL")
    server_domain: Optional[str] = Field(default="http://localhost:8000", alias="SERVER_DOMAIN")

    # File storage
    upload_dir: str = Field(default="./uploads", alias="UPLOAD_DIR")
    max_upload_size_mb: int = Field(default=100, alias="MAX_UPLOAD_SIZE_MB")

    # Request throttling
    rate_limit_per_minute: int = Field(default=120, alias="RATE_LIMIT_PER_MINUTE")

    # Hour of day (server local time) for the membership expiry sweep
    membership_check_hour: int = Field(default=1, alias="MEMBERSHIP_CHECK_HOUR")

    # Environment configuration
    env: Optional[str] = Field(default=None, alias="ENV")

    @property
    def return_url(self) -> str:
        """Where Alipay sends the payer after checkout"""
        return self.alipay_return_url or f"{self.frontend_url}/membership/payment-result"

    @property
    def notify_url(self) -> str:
        """Server endpoint that receives Alipay asynchronous notifications"""
        return self.alipay_notify_url or f"{self.server_domain}/api/payments/alipay/notify"


# Instantiate settings object
settings = Settings()

UPLOAD_DIR = Path(settings.upload_dir)

# Determine if we're in production mode
IS_PRODUCTION = bool(settings.env and settings.env.lower() == "production")
