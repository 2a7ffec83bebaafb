"""
Ukládání nahraných souborů do PUBLIC_DIR.

Vrací veřejnou cestu (např. /images/comments/comment-...jpg), pod kterou
soubor servíruje StaticFiles mount v main.py.
"""

import logging
import os
import random
import time
from pathlib import Path
from typing import Iterable, Optional, Tuple

from fastapi import HTTPException, UploadFile
from sqlalchemy.orm import Session

import config

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpeg", ".jpg", ".png", ".webp"}
IMAGE_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024

MAX_MANUAL_BYTES = 50 * 1024 * 1024


def _unique_name(prefix: str, ext: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext}"


def _read_limited(upload: UploadFile, limit: int) -> bytes:
    data = upload.file.read(limit + 1)
    if len(data) > limit:
        raise HTTPException(
            status_code=400,
            detail=f"File is too large (max {limit // (1024 * 1024)}MB)",
        )
    return data


def save_image_upload(upload: UploadFile, target_dir: Path, prefix: str) -> str:
    ext = os.path.splitext(upload.filename or "")[1].lower()
    if ext not in IMAGE_EXTENSIONS or (upload.content_type or "").lower() not in IMAGE_MIME_TYPES:
        raise HTTPException(status_code=400, detail="Only jpeg, jpg, png, and webp files are allowed")

    data = _read_limited(upload, MAX_IMAGE_BYTES)
    filename = _unique_name(prefix, ext)
    (target_dir / filename).write_bytes(data)
    logger.info("Stored image %s (%d bytes)", filename, len(data))
    return public_path(target_dir / filename)


def save_manual_upload(upload: UploadFile, prefix: str) -> Tuple[str, int]:
    ext = os.path.splitext(upload.filename or "")[1].lower()
    if ext != ".pdf":
        raise HTTPException(status_code=400, detail="Only PDF manuals are allowed")

    data = _read_limited(upload, MAX_MANUAL_BYTES)
    if not data.startswith(b"%PDF"):
        raise HTTPException(status_code=400, detail="Uploaded file is not a valid PDF")

    filename = _unique_name(prefix, ext)
    (config.MANUALS_DIR / filename).write_bytes(data)
    logger.info("Stored manual %s (%d bytes)", filename, len(data))
    return public_path(config.MANUALS_DIR / filename), len(data)


def public_path(path: Path) -> str:
    return "/" + path.resolve().relative_to(config.PUBLIC_DIR.resolve()).as_posix()


def local_path(public_url: Optional[str]) -> Optional[Path]:
    """Veřejná cesta -> soubor v PUBLIC_DIR; None pro cizí URL nebo únik mimo adresář."""
    if not public_url or not public_url.startswith(("/images/", "/manuals/")):
        return None
    root = config.PUBLIC_DIR.resolve()
    candidate = (root / public_url.lstrip("/")).resolve()
    if root not in candidate.parents:
        return None
    return candidate


def delete_public_file(public_url: Optional[str]) -> bool:
    path = local_path(public_url)
    if path is None or not path.is_file():
        return False
    try:
        path.unlink()
    except OSError as exc:
        logger.warning("Could not delete %s: %s", path, exc)
        return False
    return True


def delete_public_files(public_urls: Iterable[Optional[str]]) -> None:
    for url in public_urls:
        delete_public_file(url)


def commit_or_discard(db: Session, new_files: Iterable[Optional[str]]) -> None:
    """Commit; když selže, smaže právě uložené soubory a výjimku pustí dál."""
    try:
        db.commit()
    except Exception:
        db.rollback()
        delete_public_files(new_files)
        raise
