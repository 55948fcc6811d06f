"""
AIfans Backend - AI creator community
Membership payments (Alipay), user accounts, community content, announcements and uploads
"""

from pathlib import Path
import logging
import traceback

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.staticfiles import StaticFiles

# Import routers
from auth import auth_router
from routers.payments_router import payments_router
from routers.membership_router import membership_router, admin_membership_router
from routers.users_router import users_router, admin_users_router
from routers.content_router import content_routers, admin_content_router
from routers.creators_router import creators_router, admin_creators_router
from routers.announcements_router import announcements_router, admin_announcements_router
from routers.sensitive_words_router import sensitive_words_router
from routers.storage_router import storage_router, upload_limits_router, admin_upload_limits_router
from routers.categories_router import category_routers
from routers.request_responses_router import request_responses_router
from routers.user_messages_router import user_messages_router
from routers.social_media_router import social_media_router, admin_social_media_router
from utils.rate_limit import RateLimiterMiddleware
from jobs.membership_expiry_job import start_membership_expiry_job, stop_membership_expiry_job
from database import init_db
from config.settings import settings, UPLOAD_DIR, IS_PRODUCTION

# ============================================================================
# SHARED UTILITIES
# ============================================================================

# Logging setup - write ALL events to /logs/app.log
LOGS_DIR = Path("./logs")
LOGS_DIR.mkdir(exist_ok=True)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOGS_DIR / "app.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

from backend.utils.responses import error_response

# ============================================================================
# FASTAPI APP SETUP
# ============================================================================

app = FastAPI(title="AIfans API")


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Uncaught exception on {request.method} {request.url.path}: {e}\n{traceback.format_exc()}")
            return error_response("INTERNAL_SERVER_ERROR", status=500, message="服务器内部错误")


# Security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses: CSP, HSTS, X-Frame-Options, X-Content-Type-Options"""
    async def dispatch(self, request, call_next):
        response = await call_next(request)

        # The mock payment page runs an inline script
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data: blob:; "
            "media-src 'self' blob:; "
            "object-src 'none'; "
            "base-uri 'self'; "
            "form-action 'self' https://openapi.alipay.com https://openapi-sandbox.dl.alipaydev.com;"
        )

        # HTTPS is only guaranteed in production
        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"

        return response


app.add_middleware(UncaughtExceptionMiddleware)
app.add_middleware(RateLimiterMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Directory setup
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)

# Serve uploaded files
app.mount("/uploads", StaticFiles(directory=str(UPLOAD_DIR)), name="uploads")


# ============================================================================
# STARTUP / SHUTDOWN
# ============================================================================
@app.on_event("startup")
async def check_env_keys_on_startup():
    """Report missing configuration on startup (non-fatal warning)"""
    missing = []
    key_checks = {
        "JWT_SECRET_KEY": settings.jwt_secret_key,
        "ALIPAY_APP_ID": settings.alipay_app_id,
        "ALIPAY_PRIVATE_KEY": settings.alipay_private_key,
        "ALIPAY_PUBLIC_KEY": settings.alipay_public_key,
    }
    for env_key, value in key_checks.items():
        if not value:
            missing.append(env_key)
    if missing:
        mode = "production" if IS_PRODUCTION else "test mode"
        logger.warning(f"Startup check ({mode}): missing environment variables: {', '.join(missing)}")
    else:
        logger.info("Startup check: all critical environment variables are set")


# Initialize database on startup
@app.on_event("startup")
async def initialize_database():
    """Create all tables."""
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


@app.on_event("startup")
async def start_background_jobs():
    start_membership_expiry_job()
    logger.info("Membership expiry job scheduled")


@app.on_event("shutdown")
async def stop_background_jobs():
    await stop_membership_expiry_job()


@app.get("/api/health")
async def health():
    return {"status": "ok"}


# ============================================================================
# INCLUDE ROUTERS
# ============================================================================
app.include_router(auth_router)
app.include_router(payments_router)
app.include_router(membership_router)
app.include_router(admin_membership_router)
app.include_router(user_messages_router)
app.include_router(users_router)
app.include_router(admin_users_router)
app.include_router(request_responses_router)
for router in content_routers:
    app.include_router(router)
for router in category_routers:
    app.include_router(router)
app.include_router(admin_content_router)
app.include_router(creators_router)
app.include_router(admin_creators_router)
app.include_router(announcements_router)
app.include_router(admin_announcements_router)
app.include_router(sensitive_words_router)
app.include_router(storage_router)
app.include_router(upload_limits_router)
app.include_router(admin_upload_limits_router)
app.include_router(social_media_router)
app.include_router(admin_social_media_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
