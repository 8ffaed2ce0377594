# vehicle_monitor/models.py

import enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Enum, JSON
from .database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the form detected_at is stored in"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DetectionSource(str, enum.Enum):
    CAMERA = "camera"
    MANUAL = "manual"


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(150), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow)


class Detection(Base):
    __tablename__ = "vehicle_detections"
    id = Column(Integer, primary_key=True, index=True)
    plate_number = Column(String(64), index=True, nullable=False)
    image_url = Column(String(512), nullable=True)
    source = Column(
        Enum(DetectionSource, values_callable=lambda e: [m.value for m in e], name="detection_source"),
        default=DetectionSource.CAMERA,
        nullable=False,
    )
    detected_at = Column(DateTime, default=utcnow, index=True, nullable=False)
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, default=dict, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plateNumber": self.plate_number,
            "imageUrl": self.image_url,
            "source": self.source.value if isinstance(self.source, DetectionSource) else self.source,
            "detectedAt": self.detected_at.isoformat() if self.detected_at else None,
            "metadata": self.metadata_ if self.metadata_ is not None else {},
        }
