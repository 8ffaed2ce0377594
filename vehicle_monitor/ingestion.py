# vehicle_monitor/ingestion.py

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import ValidationError
from .models import Detection, DetectionSource
from .storage import save_base64_image, save_upload

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


@dataclass
class DetectionSubmission:
    """A detection report decoded from either a JSON or a multipart body"""
    plate_number: Optional[str]
    image_filename: Optional[str] = None
    image_content: Optional[bytes] = None
    image_base64: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def coerce_metadata(value: Any, parse_strings: bool = False) -> Dict[str, Any]:
    """
    Metadata is kept only when it is a JSON object; anything else becomes {}.
    Form fields carry it as a JSON string, which is parsed when parse_strings
    is set; malformed JSON becomes {}.
    """
    if parse_strings and isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError:
            logger.info("Ignoring malformed detection metadata")
            return {}
    if isinstance(value, dict):
        return value
    return {}


async def parse_submission(request: Request) -> DetectionSubmission:
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith(FORM_CONTENT_TYPES):
        try:
            form = await request.form()
        except (StarletteHTTPException, KeyError, ValueError):
            raise ValidationError("Invalid form body")
        plate_number = form.get("plateNumber")
        submission = DetectionSubmission(
            plate_number=plate_number if isinstance(plate_number, str) else None,
            metadata=coerce_metadata(form.get("metadata") or {}, parse_strings=True),
        )
        image = form.get("image")
        if isinstance(image, UploadFile):
            content = await image.read()
            if content:
                submission.image_filename = image.filename
                submission.image_content = content
        return submission

    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON body")
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON body")

    plate_number = body.get("plateNumber")
    image = body.get("image")
    return DetectionSubmission(
        plate_number=plate_number if isinstance(plate_number, str) else None,
        image_base64=image if isinstance(image, str) and image else None,
        metadata=coerce_metadata(body.get("metadata") or {}),
    )


def validate_submission(submission: DetectionSubmission) -> str:
    plate_number = (submission.plate_number or "").strip()
    if not plate_number:
        raise ValidationError("Plate number is required")
    return plate_number


def create_detection(db: Session, submission: DetectionSubmission) -> Detection:
    """Validates, stores the image if any, and persists one camera detection"""
    plate_number = validate_submission(submission)

    image_url = None
    if submission.image_content is not None:
        image_url = save_upload(submission.image_filename, submission.image_content)
    elif submission.image_base64:
        image_url = save_base64_image(submission.image_base64)

    detection = Detection(
        plate_number=plate_number,
        image_url=image_url,
        source=DetectionSource.CAMERA,
        metadata_=submission.metadata,
    )
    db.add(detection)
    db.commit()
    db.refresh(detection)
    logger.info(f"Detection {detection.id} saved for plate {plate_number}")
    return detection
