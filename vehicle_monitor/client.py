# vehicle_monitor/client.py
"""
Client for the Vehicle Monitor API, used by camera/recognition processes
and scripts. The bearer token lives on an explicit ApiSession that is
passed to every call.

    session = login("http://localhost:8000", "admin", "secret")
    submit_detection(session, "BA-2-CHA-1234", image_path="frame.jpg",
                     metadata={"frame": 123, "confidence": 0.98})
"""

import base64
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    """Non-2xx response; message is the server's {"message"} when present"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


@dataclass
class ApiSession:
    base_url: str
    token: Optional[str] = None
    # anything with the requests call shape (requests.Session, a test client)
    http: Any = field(default_factory=requests.Session)

    def url(self, endpoint: str) -> str:
        return f"{self.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    def headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}


def _check(response):
    if 200 <= response.status_code < 300:
        return response
    try:
        message = response.json().get("message") or "Request failed"
    except (ValueError, AttributeError):
        message = "Request failed"
    raise ApiClientError(message, response.status_code)


def _filters(plate_number=None, start_date=None, end_date=None) -> Dict[str, str]:
    params = {}
    if plate_number:
        params["plateNumber"] = plate_number
    if start_date:
        params["startDate"] = start_date
    if end_date:
        params["endDate"] = end_date
    return params


def login(base_url: str, username: str, password: str, http=None) -> ApiSession:
    """Logs in and returns a session carrying the issued token"""
    session = ApiSession(base_url) if http is None else ApiSession(base_url, http=http)
    response = _check(session.http.post(
        session.url("/auth/login"),
        json={"username": username, "password": password},
    ))
    session.token = response.json()["token"]
    logger.info(f"Logged in to {base_url} as {username}")
    return session


def register_user(session: ApiSession, username: str, password: str) -> Dict[str, Any]:
    response = _check(session.http.post(
        session.url("/auth/register"),
        json={"username": username, "password": password},
        headers=session.headers(),
    ))
    return response.json()


def submit_detection(
    session: ApiSession,
    plate_number: str,
    image_path: Optional[str] = None,
    image_bytes: Optional[bytes] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Posts one detection. A file on disk is sent as multipart/form-data;
    raw bytes are sent base64-encoded in a JSON body.
    Returns the created detection.
    """
    if image_path is not None:
        with open(image_path, "rb") as f:
            files = {"image": (os.path.basename(image_path), f.read(), "application/octet-stream")}
        data = {"plateNumber": plate_number}
        if metadata is not None:
            data["metadata"] = json.dumps(metadata)
        response = session.http.post(
            session.url("/detections"), data=data, files=files, headers=session.headers()
        )
    else:
        body: Dict[str, Any] = {"plateNumber": plate_number}
        if image_bytes is not None:
            body["image"] = base64.b64encode(image_bytes).decode("ascii")
        if metadata is not None:
            body["metadata"] = metadata
        response = session.http.post(
            session.url("/detections"), json=body, headers=session.headers()
        )
    return _check(response).json()["detection"]


def fetch_detections(
    session: ApiSession,
    plate_number: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Dict[str, Any]:
    """Returns {"detections": [...], "pagination": {...}}"""
    params = _filters(plate_number, start_date, end_date)
    params.update({"page": str(page), "limit": str(limit)})
    response = session.http.get(session.url("/detections"), params=params, headers=session.headers())
    return _check(response).json()


def export_detections(
    session: ApiSession,
    plate_number: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> bytes:
    """Returns the CSV export body"""
    response = session.http.get(
        session.url("/detections/export"),
        params=_filters(plate_number, start_date, end_date),
        headers=session.headers(),
    )
    return _check(response).content
