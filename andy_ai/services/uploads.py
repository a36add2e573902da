import os
import re
import time
import secrets
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from fastapi import UploadFile

from andy_ai.config import settings
from andy_ai.exceptions import AppException

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass
class StoredFile:
    name: str
    stored_name: str
    path: Path
    mime_type: str
    size: int

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lstrip(".").lower()

    def to_dict(self):
        return {
            "name": self.name,
            "type": self.extension,
            "url": f"/uploads/{self.stored_name}",
            "size": self.size,
            "mimetype": self.mime_type
        }


def init_upload_dir(upload_dir: Optional[str] = None) -> Path:
    path = Path(upload_dir or settings.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def allowed_types_description(allowed: Dict[str, List[str]]) -> str:
    return ", ".join(ext for exts in allowed.values() for ext in exts)


def validate_upload(filename: Optional[str], mime_type: Optional[str],
                    allowed: Optional[Dict[str, List[str]]] = None) -> str:
    """Both the MIME type and the extension must be on the allowlist"""
    allowed = allowed or settings.ALLOWED_UPLOAD_TYPES
    if not filename:
        raise AppException(400, "Every uploaded file needs a name")

    ext = os.path.splitext(filename)[1].lower()
    mime_type = (mime_type or "").lower()
    if mime_type not in allowed or ext not in allowed[mime_type]:
        raise AppException(
            400,
            f"File type not allowed for {filename}. Allowed types: {allowed_types_description(allowed)}"
        )
    return mime_type


def sanitize_filename(filename: str) -> str:
    """Safe, unique on-disk name that keeps the original extension"""
    base_name, ext = os.path.splitext(os.path.basename(filename))
    base_name = re.sub(r"[^a-zA-Z0-9]", "-", base_name)
    base_name = re.sub(r"-+", "-", base_name).strip("-")[:200] or "file"
    ext = re.sub(r"[^a-zA-Z0-9.]", "", ext.lower())
    unique_suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}"
    return f"{base_name}-{unique_suffix}{ext}"


async def save_upload(upload: UploadFile, upload_dir: Path,
                      max_size: Optional[int] = None) -> StoredFile:
    """Stream an upload to disk, enforcing the size limit as it goes"""
    max_size = max_size or settings.MAX_UPLOAD_SIZE
    stored_name = sanitize_filename(upload.filename)
    path = upload_dir / stored_name
    size = 0

    try:
        with open(path, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_size:
                    raise AppException(
                        400,
                        f"File too large: {upload.filename}. Maximum {max_size // (1024 * 1024)}MB allowed."
                    )
                out.write(chunk)
    except Exception:
        cleanup_files([path])
        raise

    if size == 0:
        cleanup_files([path])
        raise AppException(400, f"File {upload.filename} is empty")

    return StoredFile(
        name=upload.filename,
        stored_name=stored_name,
        path=path,
        mime_type=(upload.content_type or "").lower(),
        size=size
    )


def cleanup_files(paths: Iterable[Path]):
    """Best-effort removal of files saved by a failed request"""
    for path in paths:
        try:
            Path(path).unlink(missing_ok=True)
            logger.info(f"Removed file: {path}")
        except OSError as e:
            logger.error(f"Error removing file {path}: {e}")
