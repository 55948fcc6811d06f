"""
Security utilities for file upload validation and sanitization
"""
import re
from pathlib import Path
from typing import Optional
from fastapi import HTTPException, UploadFile

from config.settings import settings


# Security constants
IMAGE_EXTENSIONS = [".jpg", ".jpeg", ".png", ".gif", ".webp"]
VIDEO_EXTENSIONS = [".mp4", ".webm", ".mov"]
ALLOWED_EXTENSIONS = IMAGE_EXTENSIONS + VIDEO_EXTENSIONS

ALLOWED_MIME_TYPES = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "video/mp4",
    "video/webm",
    "video/quicktime",
]

# Upload folders accepted from clients
ALLOWED_FOLDERS = ["uploads", "avatars", "covers", "posts", "notes", "resources", "screenings"]


def max_file_size(limit_mb: Optional[int] = None) -> int:
    """Byte cap for an upload; MAX_UPLOAD_SIZE_MB unless a module limit is given"""
    return (limit_mb or settings.max_upload_size_mb) * 1024 * 1024


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent path traversal attacks.

    Removes:
    - Directory separators (/ and \\)
    - Path traversal sequences (..)
    - Null bytes (\\x00)
    - Any other potentially dangerous characters

    Args:
        filename: Original filename

    Returns:
        Sanitized filename safe for use in file paths
    """
    if not filename:
        raise ValueError("文件名不能为空")

    # Remove null bytes
    filename = filename.replace("\x00", "")

    # Remove directory separators
    filename = filename.replace("/", "").replace("\\", "")

    # Remove path traversal sequences
    while ".." in filename:
        filename = filename.replace("..", "")

    # Keep letters, numbers, dots, hyphens, underscores and spaces
    filename = re.sub(r'[^a-zA-Z0-9._\-\s]', '', filename)

    # Remove leading/trailing dots and spaces (Windows doesn't allow these)
    filename = filename.strip('. ')

    if not filename:
        raise ValueError("文件名无效")

    if len(filename) > 200:
        ext = Path(filename).suffix
        name_without_ext = Path(filename).stem[:200 - len(ext)]
        filename = name_without_ext + ext

    return filename


def get_file_extension(filename: str) -> str:
    """
    Extract file extension from filename (lowercase).

    Returns:
        File extension with leading dot (e.g., ".png") or empty string
    """
    return Path(filename).suffix.lower()


def validate_file_extension(filename: str) -> None:
    """
    Raises:
        HTTPException: If extension is not in the image/video whitelist
    """
    ext = get_file_extension(filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"不支持的文件类型 '{ext}'，允许的类型: {', '.join(ALLOWED_EXTENSIONS)}"
        )


def sanitize_folder(folder: Optional[str]) -> str:
    folder = (folder or "uploads").strip().strip("/")
    if folder not in ALLOWED_FOLDERS:
        raise HTTPException(status_code=400, detail=f"不支持的上传目录 '{folder}'")
    return folder


def detect_mime_type_from_content(content: bytes) -> Optional[str]:
    """
    Detect MIME type from file content using magic bytes.

    Returns:
        Detected MIME type or None if unknown
    """
    if not content:
        return None

    if content[:3] == b'\xff\xd8\xff':
        return "image/jpeg"
    if content[:8] == b'\x89PNG\r\n\x1a\n':
        return "image/png"
    if content[:6] in (b'GIF87a', b'GIF89a'):
        return "image/gif"
    if content[:4] == b'RIFF' and len(content) > 12 and content[8:12] == b'WEBP':
        return "image/webp"
    if content[:4] == b'\x1a\x45\xdf\xa3':
        return "video/webm"
    # ISO base media: ....ftyp
    if len(content) > 12 and content[4:8] == b'ftyp':
        if content[8:10] == b'qt':
            return "video/quicktime"
        return "video/mp4"

    return None


def file_kind(filename: str) -> str:
    """"image" or "video" from the extension"""
    return "image" if get_file_extension(filename) in IMAGE_EXTENSIONS else "video"


def validate_file_content(content: bytes, filename: str, limit_mb: Optional[int] = None) -> None:
    """
    Validate file content (size and MIME type).

    Args:
        limit_mb: Size cap for this upload; MAX_UPLOAD_SIZE_MB when omitted

    Raises:
        HTTPException: If validation fails
    """
    limit_mb = limit_mb or settings.max_upload_size_mb
    if len(content) > max_file_size(limit_mb):
        size_mb = len(content) / (1024 * 1024)
        raise HTTPException(
            status_code=400,
            detail=f"文件大小 ({size_mb:.2f}MB) 超过限制 ({limit_mb}MB)"
        )

    if len(content) == 0:
        raise HTTPException(status_code=400, detail="文件为空")

    # Only signatures of the whitelisted formats are accepted
    detected_mime = detect_mime_type_from_content(content)
    if detected_mime is None:
        raise HTTPException(status_code=400, detail="无法识别的文件内容")
    if detected_mime not in ALLOWED_MIME_TYPES:
        raise HTTPException(status_code=400, detail=f"不支持的文件格式 '{detected_mime}'")

    # Content must not contradict the extension family
    if not detected_mime.startswith(file_kind(filename) + "/"):
        raise HTTPException(status_code=400, detail="文件内容与扩展名不匹配")


async def validate_uploaded_file(file: UploadFile, size_limits: Optional[dict] = None) -> tuple[str, bytes]:
    """
    Comprehensive validation of uploaded file.

    This function:
    1. Sanitizes the filename
    2. Validates file extension
    3. Reads and validates file content (size and MIME type)

    Args:
        size_limits: Optional {"image": MB, "video": MB} caps for the target module

    Returns:
        Tuple of (sanitized_filename, file_content)

    Raises:
        HTTPException: If any validation fails
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="缺少文件名")

    try:
        sanitized_filename = sanitize_filename(file.filename)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    validate_file_extension(sanitized_filename)

    limit_mb = (size_limits or {}).get(file_kind(sanitized_filename))
    content = await file.read()
    validate_file_content(content, sanitized_filename, limit_mb)

    await file.seek(0)

    return sanitized_filename, content
