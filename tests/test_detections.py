from __future__ import annotations

import base64
import json
import math
from datetime import datetime, timedelta

import pytest

from vehicle_monitor.auth import issue_token
from vehicle_monitor.models import Detection

BASE_TIME = datetime(2026, 10, 1, 12, 0, 0)


@pytest.fixture
def seeded(add_detection):
    plates = ["BA-1234", "XY-999", "ba-1 cha", "KA-5555", "BA-2-CHA-1", "ZZ-1", "MH-12"]
    return [add_detection(p, BASE_TIME + timedelta(hours=i)) for i, p in enumerate(plates)]


# --- ingestion ---

def test_create_detection_json(client, auth_headers, db) -> None:
    resp = client.post(
        "/detections",
        json={"plateNumber": "BA-2-CHA-1234", "metadata": {"frame": 123, "confidence": 0.98}},
        headers=auth_headers,
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Detection saved successfully"
    detection = body["detection"]
    assert detection["plateNumber"] == "BA-2-CHA-1234"
    assert detection["source"] == "camera"
    assert detection["imageUrl"] is None
    assert detection["metadata"] == {"frame": 123, "confidence": 0.98}
    assert db.query(Detection).count() == 1


def test_create_detection_json_base64_image(client, auth_headers, upload_dir) -> None:
    image = b"\xff\xd8\xff\xe0fake-jpeg"
    data_url = "data:image/jpeg;base64," + base64.b64encode(image).decode()
    resp = client.post("/detections", json={"plateNumber": "BA-1", "image": data_url}, headers=auth_headers)
    assert resp.status_code == 201
    image_url = resp.json()["detection"]["imageUrl"]
    assert image_url.startswith("/uploads/") and image_url.endswith(".jpg")
    assert (upload_dir / image_url.rsplit("/", 1)[1]).read_bytes() == image


def test_create_detection_base64_without_prefix(client, auth_headers, upload_dir) -> None:
    resp = client.post(
        "/detections",
        json={"plateNumber": "BA-1", "image": base64.b64encode(b"raw").decode()},
        headers=auth_headers,
    )
    assert resp.status_code == 201
    name = resp.json()["detection"]["imageUrl"].rsplit("/", 1)[1]
    assert (upload_dir / name).read_bytes() == b"raw"


def test_create_detection_multipart_with_file(client, auth_headers, upload_dir) -> None:
    resp = client.post(
        "/detections",
        data={"plateNumber": "KA-01", "metadata": json.dumps({"frame": 9})},
        files={"image": ("plate.png", b"png-bytes", "image/png")},
        headers=auth_headers,
    )
    assert resp.status_code == 201
    detection = resp.json()["detection"]
    assert detection["metadata"] == {"frame": 9}
    name = detection["imageUrl"].rsplit("/", 1)[1]
    millis, original = name.split("-", 1)
    assert millis.isdigit() and original == "plate.png"
    assert (upload_dir / name).read_bytes() == b"png-bytes"

    served = client.get(detection["imageUrl"])
    assert served.status_code == 200
    assert served.content == b"png-bytes"


def test_multipart_malformed_metadata_becomes_empty(client, auth_headers) -> None:
    resp = client.post(
        "/detections",
        data={"plateNumber": "KA-01", "metadata": "{not json"},
        files={"image": ("plate.jpg", b"", "image/jpeg")},
        headers=auth_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["detection"]["metadata"] == {}
    assert resp.json()["detection"]["imageUrl"] is None


def test_missing_plate_number_is_rejected_without_writing(client, auth_headers, db, upload_dir) -> None:
    before = set(upload_dir.iterdir())
    resp = client.post(
        "/detections",
        json={"image": base64.b64encode(b"x").decode(), "metadata": {}},
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert resp.json() == {"message": "Plate number is required"}
    assert db.query(Detection).count() == 0
    assert set(upload_dir.iterdir()) == before


def test_blank_plate_number_is_rejected(client, auth_headers) -> None:
    resp = client.post("/detections", data={"plateNumber": "   "}, headers=auth_headers)
    assert resp.status_code == 400


def test_invalid_json_body_is_rejected(client, auth_headers) -> None:
    resp = client.post(
        "/detections",
        content=b"{broken",
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert resp.status_code == 400


@pytest.mark.parametrize("body", [b"plateNumber=BA-1", b"--x\r\ngarbage"])
def test_multipart_without_boundary_is_rejected(client, auth_headers, db, body: bytes) -> None:
    resp = client.post(
        "/detections",
        content=body,
        headers={**auth_headers, "Content-Type": "multipart/form-data"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid form body"}
    assert db.query(Detection).count() == 0


@pytest.mark.parametrize("metadata", ["{\"a\": 1}", [1, 2], 42, None])
def test_json_metadata_that_is_not_an_object_is_stored_empty(client, auth_headers, metadata) -> None:
    resp = client.post("/detections", json={"plateNumber": "BA-1", "metadata": metadata}, headers=auth_headers)
    assert resp.status_code == 201
    assert resp.json()["detection"]["metadata"] == {}


def test_undecodable_base64_is_rejected(client, auth_headers, db) -> None:
    resp = client.post("/detections", json={"plateNumber": "BA-1", "image": "abc"}, headers=auth_headers)
    assert resp.status_code == 400
    assert db.query(Detection).count() == 0


# --- auth on protected endpoints ---

@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Bearer garbled.token.value"},
        {"Authorization": "Token abc"},
        {"Authorization": f"Bearer {issue_token(1, 'admin', expires_in=timedelta(seconds=-1))}"},
    ],
)
def test_protected_endpoints_reject_bad_credentials(client, db, upload_dir, headers: dict) -> None:
    before = set(upload_dir.iterdir())
    resp = client.post(
        "/detections",
        json={"plateNumber": "BA-1", "image": base64.b64encode(b"x").decode()},
        headers=headers,
    )
    assert resp.status_code == 401
    assert resp.json() == {"message": "Unauthorized"}
    assert db.query(Detection).count() == 0
    assert set(upload_dir.iterdir()) == before

    assert client.get("/detections", headers=headers).status_code == 401
    assert client.get("/detections/export", headers=headers).status_code == 401


# --- query ---

def test_list_without_filters_is_newest_first(client, auth_headers, seeded) -> None:
    resp = client.get("/detections", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    stamps = [d["detectedAt"] for d in body["detections"]]
    assert stamps == sorted(stamps, reverse=True)
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 7, "totalPages": 1}


@pytest.mark.parametrize("page,limit", [(1, 1), (2, 3), (3, 3), (4, 3), (1, 7), (2, 5), (1, 100)])
def test_pagination_window(client, auth_headers, seeded, page: int, limit: int) -> None:
    ordered = [d.id for d in sorted(seeded, key=lambda d: d.detected_at, reverse=True)]
    resp = client.get("/detections", params={"page": page, "limit": limit}, headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert [d["id"] for d in body["detections"]] == ordered[(page - 1) * limit: page * limit]
    assert body["pagination"]["total"] == len(seeded)
    assert body["pagination"]["totalPages"] == math.ceil(len(seeded) / limit)


def test_plate_filter_is_case_insensitive_substring(client, auth_headers, seeded) -> None:
    resp = client.get("/detections", params={"plateNumber": "ba-1"}, headers=auth_headers)
    plates = {d["plateNumber"] for d in resp.json()["detections"]}
    assert plates == {"BA-1234", "ba-1 cha"}
    assert "XY-999" not in plates


def test_plate_filter_treats_wildcards_literally(client, auth_headers, seeded) -> None:
    resp = client.get("/detections", params={"plateNumber": "%"}, headers=auth_headers)
    assert resp.json()["pagination"]["total"] == 0


def test_date_range_is_inclusive(client, auth_headers, seeded) -> None:
    start = (BASE_TIME + timedelta(hours=2)).isoformat()
    end = (BASE_TIME + timedelta(hours=4)).isoformat() + "Z"
    resp = client.get("/detections", params={"startDate": start, "endDate": end}, headers=auth_headers)
    plates = [d["plateNumber"] for d in resp.json()["detections"]]
    assert plates == ["BA-2-CHA-1", "KA-5555", "ba-1 cha"]


def test_date_only_start_bound(client, auth_headers, seeded, add_detection) -> None:
    add_detection("OLD-1", datetime(2026, 9, 30, 23, 59))
    resp = client.get("/detections", params={"startDate": "2026-10-01"}, headers=auth_headers)
    assert resp.json()["pagination"]["total"] == len(seeded)


@pytest.mark.parametrize(
    "params",
    [{"page": "0"}, {"limit": "0"}, {"page": "abc"}, {"startDate": "yesterday"}, {"endDate": "2026-13-01"}],
)
def test_invalid_query_parameters(client, auth_headers, params: dict) -> None:
    resp = client.get("/detections", params=params, headers=auth_headers)
    assert resp.status_code == 400
    assert "message" in resp.json()


def test_metadata_round_trips_verbatim(client, auth_headers) -> None:
    metadata = {"frame": 123, "confidence": 0.98, "camera": {"id": "gate-1", "lane": 2}, "tags": ["a", "b"]}
    client.post("/detections", json={"plateNumber": "BA-9", "metadata": metadata}, headers=auth_headers)
    resp = client.get("/detections", headers=auth_headers)
    assert resp.json()["detections"][0]["metadata"] == metadata


def test_page_past_the_end_is_empty(client, auth_headers, seeded) -> None:
    resp = client.get("/detections", params={"page": 10**20, "limit": 5}, headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["detections"] == []
    assert body["pagination"] == {"page": 10**20, "limit": 5, "total": 7, "totalPages": 2}


def test_huge_limit_returns_every_row(client, auth_headers, seeded) -> None:
    resp = client.get("/detections", params={"limit": 10**20}, headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["detections"]) == len(seeded)
    assert body["pagination"]["totalPages"] == 1
