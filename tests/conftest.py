from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Must run before vehicle_monitor is imported: config is read at import time
_TMP = Path(tempfile.mkdtemp(prefix="vehicle-monitor-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_TMP / "uploads")
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.pop("ADMIN_USERNAME", None)
os.environ.pop("ADMIN_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient

from vehicle_monitor import config
from vehicle_monitor.auth import issue_token
from vehicle_monitor.database import Base, SessionLocal, engine
from vehicle_monitor.main import app
from vehicle_monitor.models import Detection
from vehicle_monitor.seed import ensure_admin_user


@pytest.fixture(autouse=True)
def clean_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def admin(db):
    return ensure_admin_user(db, "admin", "admin123")


@pytest.fixture
def auth_headers(admin) -> dict:
    return {"Authorization": f"Bearer {issue_token(admin.id, admin.username)}"}


@pytest.fixture
def upload_dir() -> Path:
    return Path(config.UPLOAD_DIR)


@pytest.fixture
def add_detection(db):
    def _add(plate_number, detected_at, image_url=None, metadata=None):
        detection = Detection(
            plate_number=plate_number,
            image_url=image_url,
            detected_at=detected_at,
            metadata_=metadata or {},
        )
        db.add(detection)
        db.commit()
        db.refresh(detection)
        return detection
    return _add
