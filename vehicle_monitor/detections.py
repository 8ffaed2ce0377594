# vehicle_monitor/detections.py

import logging
import time

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from .auth import require_auth
from .config import DEFAULT_PAGE_SIZE
from .database import get_db
from .exceptions import APIException, InternalError
from .ingestion import create_detection, parse_submission
from .queries import all_detections, build_filter, export_rows, generate_csv, list_detections, total_pages
from .schemas import Pagination, TokenPayload

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/detections", tags=["detections"])


@router.post("", status_code=201, summary="Record a plate detection")
async def create_detection_api(
    request: Request,
    db: Session = Depends(get_db),
    auth: TokenPayload = Depends(require_auth),
):
    """
    Accepts application/json ({plateNumber, image: base64, metadata})
    or multipart/form-data (plateNumber, image file, metadata JSON string).
    """
    try:
        submission = await parse_submission(request)
        detection = create_detection(db, submission)
        return {
            "message": "Detection saved successfully",
            "detection": detection.to_dict(),
        }
    except APIException:
        raise
    except Exception as e:
        logger.exception(f"Detection POST failed: {e}")
        raise InternalError()


@router.get("", summary="List detections with filters and pagination")
def list_detections_api(
    plateNumber: str = Query(None),
    startDate: str = Query(None),
    endDate: str = Query(None),
    page: int = Query(1, ge=1),
    # no upper bound on purpose, see DESIGN.md
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
    auth: TokenPayload = Depends(require_auth),
):
    try:
        filters = build_filter(plateNumber, startDate, endDate)
        detections, total = list_detections(db, filters, page, limit)
        return {
            "detections": [d.to_dict() for d in detections],
            "pagination": Pagination(
                page=page, limit=limit, total=total, totalPages=total_pages(total, limit)
            ).model_dump(),
        }
    except APIException:
        raise
    except Exception as e:
        logger.exception(f"Detection GET failed: {e}")
        raise InternalError()


@router.get("/export", summary="Export matching detections as CSV")
def export_detections_api(
    plateNumber: str = Query(None),
    startDate: str = Query(None),
    endDate: str = Query(None),
    db: Session = Depends(get_db),
    auth: TokenPayload = Depends(require_auth),
):
    try:
        filters = build_filter(plateNumber, startDate, endDate)
        detections = all_detections(db, filters)
        csv_text = generate_csv(export_rows(detections))
        filename = f"detections-{int(time.time() * 1000)}.csv"
        logger.info(f"Exported {len(detections)} detections for {auth.username}")
        return Response(
            content=csv_text,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except APIException:
        raise
    except Exception as e:
        logger.exception(f"Export failed: {e}")
        raise InternalError()
