# vehicle_monitor/storage.py

import base64
import binascii
import logging
import re
import time
from pathlib import Path

from . import config
from .exceptions import ValidationError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


def ensure_upload_dir() -> Path:
    upload_dir = Path(config.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def _write(filename: str, content: bytes) -> str:
    """Writes into the uploads area and returns the public relative URL"""
    filepath = ensure_upload_dir() / filename
    with open(filepath, "wb") as f:
        f.write(content)
    logger.info(f"Saved upload {filepath} ({len(content)} bytes)")
    return f"{config.UPLOAD_URL_PREFIX}/{filename}"


def save_upload(filename: str, content: bytes) -> str:
    """
    Stores an uploaded file as <epoch-millis>-<original-name>.
    Only the final path component of the client filename is kept.
    """
    name = Path((filename or "").replace("\\", "/")).name or "upload"
    return _write(f"{_epoch_millis()}-{name}", content)


def decode_base64_image(data: str) -> bytes:
    payload = DATA_URL_PREFIX.sub("", data.strip())
    try:
        return base64.b64decode(payload)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid image data")


def save_base64_image(data: str) -> str:
    """Stores a base64 image (data URL prefix optional) as <epoch-millis>.jpg"""
    content = decode_base64_image(data)
    return _write(f"{_epoch_millis()}.jpg", content)
