"""
Storage router for image and video uploads, plus the per-module upload limits
"""
import logging
from typing import Optional
from fastapi import APIRouter, File, UploadFile, Form, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from database_models import User
from auth import get_current_user, require_admin
from models.schemas import UploadLimitUpdate
from services.storage_service import StorageService
from services.upload_limit_service import UploadLimitService
from utils.security_utils import sanitize_folder
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

storage_router = APIRouter(prefix="/api/storage", tags=["storage"])
upload_limits_router = APIRouter(prefix="/api/public/settings/upload-limits", tags=["settings"])
admin_upload_limits_router = APIRouter(
    prefix="/api/admin/settings/upload-limits",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@storage_router.post("/upload")
async def upload_file(
    file: UploadFile = File(...),
    folder: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Upload an image or video and return {url, key}.

    Security validations:
    - Filename sanitization (prevents path traversal)
    - File extension whitelist
    - File size limit (the folder's upload limit, MAX_UPLOAD_SIZE_MB by default)
    - Content signature must match the extension family
    """
    folder = sanitize_folder(folder)
    size_limits = await UploadLimitService(db).get_limits(folder)
    result = await StorageService().upload(file, folder, current_user.id, size_limits)
    log_endpoint_event("/storage/upload", current_user.id, "success", {"key": result["key"]})
    return result


@storage_router.delete("/{key:path}")
async def delete_file(key: str, admin: User = Depends(require_admin)):
    result = await StorageService().delete(key)
    log_endpoint_event("/storage/delete", admin.id, "success", {"key": key})
    return result


@upload_limits_router.get("")
async def list_upload_limits(db: AsyncSession = Depends(get_db)):
    return await UploadLimitService(db).list_limits()


@upload_limits_router.get("/{module}")
async def get_upload_limits(module: str, db: AsyncSession = Depends(get_db)):
    return await UploadLimitService(db).get_limits(module)


@admin_upload_limits_router.get("")
async def admin_list_upload_limits(db: AsyncSession = Depends(get_db)):
    return await UploadLimitService(db).list_limits()


@admin_upload_limits_router.put("/{module}")
async def update_upload_limits(
    module: str,
    request: UploadLimitUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await UploadLimitService(db).update_limits(module, request)
    log_endpoint_event("/admin/settings/upload-limits", admin.id, "updated", result)
    return result
