"""
Image uploads to Cloudinary.

Incoming multipart files are spooled to a local temp file, pushed to Cloudinary and
the temp file is removed afterwards.
"""

import logging
import os
import uuid
from typing import List

import cloudinary
import cloudinary.uploader
from fastapi import UploadFile

import config

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
CHUNK_SIZE = 1024 * 1024

cloudinary.config(
    cloud_name=config.CLOUDINARY_CLOUD_NAME,
    api_key=config.CLOUDINARY_API_KEY,
    api_secret=config.CLOUDINARY_API_SECRET,
    secure=True,
)


class UploadError(Exception):
    """Upload rejected before reaching the image host; reported to the client as a 400."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _size_message() -> str:
    return f"One or more images exceed the {config.MAX_FILE_SIZE // (1024 * 1024)}MB size limit."


def check_files(files: List[UploadFile], max_count: int = config.MAX_FILES) -> List[UploadFile]:
    files = [f for f in files or [] if f is not None and f.filename]
    if not files:
        raise UploadError("No file uploaded")
    if len(files) > max_count:
        raise UploadError(f"You can upload up to {max_count} images at once.")
    for f in files:
        ext = os.path.splitext(f.filename)[1].lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise UploadError("Only image files are allowed!")
    return files


def spool_to_tmp(file: UploadFile) -> str:
    os.makedirs(config.UPLOAD_TMP_DIR, exist_ok=True)
    ext = os.path.splitext(file.filename)[1].lower()
    dest_path = os.path.join(config.UPLOAD_TMP_DIR, f"{uuid.uuid4().hex}{ext}")
    written = 0
    with open(dest_path, "wb") as out:
        while True:
            chunk = file.file.read(CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > config.MAX_FILE_SIZE:
                break
            out.write(chunk)
    if written > config.MAX_FILE_SIZE:
        os.remove(dest_path)
        raise UploadError(_size_message())
    return dest_path


def upload_local_file(path: str) -> dict:
    try:
        result = cloudinary.uploader.upload(path, resource_type="auto", folder=config.CLOUDINARY_FOLDER)
        logger.info(f"Uploaded {os.path.basename(path)} -> {result.get('public_id')}")
        return result
    finally:
        if os.path.exists(path):
            os.remove(path)


def upload_image(file: UploadFile) -> str:
    """Upload one image and return its secure URL."""
    path = spool_to_tmp(check_files([file], 1)[0])
    return upload_local_file(path)["secure_url"]


def upload_images(files: List[UploadFile], max_count: int = config.MAX_FILES) -> List[str]:
    # spool everything first so size violations reject the whole batch
    paths = []
    try:
        for f in check_files(files, max_count):
            paths.append(spool_to_tmp(f))
    except UploadError:
        for p in paths:
            if os.path.exists(p):
                os.remove(p)
        raise
    return [upload_local_file(p)["secure_url"] for p in paths]

