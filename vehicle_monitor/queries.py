# vehicle_monitor/queries.py

import csv
import io
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from .config import EXPORT_COLUMNS
from .exceptions import ValidationError
from .models import Detection


@dataclass
class DetectionFilter:
    plate_number: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


def parse_date(value: Optional[str], field: str) -> Optional[datetime]:
    """
    Parses an ISO-8601 date or datetime into naive UTC.
    Date-only values mean midnight UTC.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid {field}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def build_filter(plate_number: Optional[str], start_date: Optional[str], end_date: Optional[str]) -> DetectionFilter:
    return DetectionFilter(
        plate_number=plate_number or None,
        start_date=parse_date(start_date, "startDate"),
        end_date=parse_date(end_date, "endDate"),
    )


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def filtered_query(db: Session, filters: DetectionFilter):
    query = db.query(Detection)
    if filters.plate_number:
        query = query.filter(
            Detection.plate_number.ilike(f"%{_escape_like(filters.plate_number)}%", escape="\\")
        )
    if filters.start_date is not None:
        query = query.filter(Detection.detected_at >= filters.start_date)
    if filters.end_date is not None:
        query = query.filter(Detection.detected_at <= filters.end_date)
    return query


def newest_first(query):
    return query.order_by(Detection.detected_at.desc(), Detection.id.desc())


def list_detections(db: Session, filters: DetectionFilter, page: int, limit: int) -> Tuple[List[Detection], int]:
    """One page of matching detections, newest first, plus the total match count"""
    query = filtered_query(db, filters)
    total = query.count()
    offset = (page - 1) * limit
    if offset >= total:
        return [], total
    # page and limit are unbounded; keep the SQL values within the row count
    rows = newest_first(query).offset(offset).limit(min(limit, total - offset)).all()
    return rows, total


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit)


def all_detections(db: Session, filters: DetectionFilter) -> List[Detection]:
    return newest_first(filtered_query(db, filters)).all()


def format_date(value: datetime) -> str:
    """e.g. 'Oct 19, 2026, 02:30 PM'"""
    return f"{value:%b} {value.day}, {value:%Y, %I:%M %p}"


def export_rows(detections: List[Detection]) -> List[dict]:
    return [
        {
            "sn": index,
            "plateNumber": d.plate_number,
            "detectedAt": format_date(d.detected_at),
            "source": d.to_dict()["source"],
            "imageUrl": d.image_url or "N/A",
        }
        for index, d in enumerate(detections, start=1)
    ]


def generate_csv(rows: List[dict], columns=EXPORT_COLUMNS) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([label for _, label in columns])
    for row in rows:
        writer.writerow(["" if row.get(key) is None else row.get(key) for key, _ in columns])
    return buffer.getvalue()
