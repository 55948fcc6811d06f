from config.settings import settings, IS_PRODUCTION, UPLOAD_DIR  # noqa: F401
