from __future__ import annotations

import pytest

from src.shift_tool.config import settings
from src.shift_tool.models import Organization
from src.shift_tool.models.user import UserRole

CSV_TEXT = (
    "date,start_time,end_time,role,location,email\n"
    "2024-03-15,09:00,17:00,Nurse,Downtown Clinic,nurse1@example.com\n"
    "2024-03-15,17:00,09:00,Nurse,Downtown Clinic,nurse2@example.com\n"
)


def auth(user) -> dict:
    return {"X-User-Id": str(user.id)}


def bulk_row(email: str, **overrides) -> dict:
    row = {
        "email": email,
        "date": "2024-03-15",
        "startTime": "09:00",
        "endTime": "17:00",
        "role": "Nurse",
        "department": "Downtown Clinic",
    }
    row.update(overrides)
    return row


def test_bulk_import_reports_created_total_and_row_errors(client, manager, staff_users):
    payload = {"shifts": [
        bulk_row("nurse1@example.com"),
        bulk_row("ghost@example.com"),
        bulk_row("nurse2@example.com", startTime="17:00", endTime="09:00"),
    ]}

    response = client.post("/shifts/bulk-import", json=payload, headers=auth(manager))

    assert response.status_code == 200
    body = response.json()
    assert body["created"] == 1
    assert body["total"] == 3
    assert [e["row"] for e in body["errors"]] == [2, 3]
    assert body["errors"][0] == {
        "row": 2,
        "email": "ghost@example.com",
        "reason": "User not found: ghost@example.com",
    }
    assert "End time must be after start time" in body["errors"][1]["reason"]


def test_bulk_import_empty_list(client, manager):
    response = client.post("/shifts/bulk-import", json={"shifts": []}, headers=auth(manager))

    assert response.status_code == 200
    assert response.json() == {"created": 0, "total": 0, "errors": []}


def test_staff_cannot_import(client, staff_users):
    response = client.post(
        "/shifts/bulk-import",
        json={"shifts": [bulk_row("nurse1@example.com")]},
        headers=auth(staff_users[0]),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Only managers and admins can import shifts"


def test_admin_can_import(client, make_user, staff_users):
    admin = make_user("admin@example.com", UserRole.ADMIN)

    response = client.post(
        "/shifts/bulk-import",
        json={"shifts": [bulk_row("nurse1@example.com")]},
        headers=auth(admin),
    )

    assert response.status_code == 200
    assert response.json()["created"] == 1


@pytest.mark.parametrize("headers", [{}, {"X-User-Id": "9999"}])
def test_unknown_actor_is_rejected(client, headers):
    response = client.post("/shifts/bulk-import", json={"shifts": []}, headers=headers)

    assert response.status_code in (401, 422)


def test_malformed_body_is_400_class(client, manager):
    response = client.post("/shifts/bulk-import", json={"rows": []}, headers=auth(manager))

    assert response.status_code == 422


def test_csv_preview_then_confirm(client, manager, staff_users):
    files = {"file": ("schedule.csv", CSV_TEXT.encode("utf-8"), "text/csv")}
    preview = client.post("/shifts/import/preview", files=files, headers=auth(manager))

    assert preview.status_code == 200
    data = preview.json()
    assert data["needs_mapping"] is False
    assert data["will_create"] == 1
    assert data["will_skip"] == 1
    location = next(c for c in data["mapping"]["columns"] if c["original"] == "location")
    assert location["mapped_to"] == "department"

    confirm = client.post(
        "/shifts/import/confirm",
        json={"session_id": data["session_id"]},
        headers=auth(manager),
    )

    assert confirm.status_code == 200
    result = confirm.json()
    assert result["created"] == 1
    assert result["total"] == 2
    assert result["errors"][0]["row"] == 2
    assert result["error_csv_available"] is True

    download = client.get(f"/shifts/import/errors/{data['session_id']}", headers=auth(manager))
    assert download.status_code == 200
    assert "nurse2@example.com" in download.text


def test_confirm_with_mapping_corrections(client, manager, staff_users):
    content = "who,when,start,end,role,dept\nnurse1@example.com,3/15/2024,9:00 AM,5:00 PM,Nurse,ICU\n"
    files = {"file": ("legacy.csv", content.encode("utf-8"), "text/csv")}
    data = client.post("/shifts/import/preview", files=files, headers=auth(manager)).json()

    assert data["needs_mapping"] is True
    assert data["mapping"]["missing_required"] == ["email", "date"]

    incomplete = client.post(
        "/shifts/import/confirm",
        json={"session_id": data["session_id"], "column_mappings": [{"original": "who", "mapped_to": "email"}]},
        headers=auth(manager),
    )
    assert incomplete.status_code == 400
    assert incomplete.json()["detail"]["missing_required"] == ["date"]

    confirm = client.post(
        "/shifts/import/confirm",
        json={"session_id": data["session_id"], "column_mappings": [
            {"original": "who", "mapped_to": "email"},
            {"original": "when", "mapped_to": "date"},
        ]},
        headers=auth(manager),
    )
    assert confirm.status_code == 200
    assert confirm.json()["created"] == 1


def test_confirm_unknown_session(client, manager):
    response = client.post("/shifts/import/confirm", json={"session_id": "nope"}, headers=auth(manager))

    assert response.status_code == 400


def test_preview_rejects_non_csv_and_oversized_uploads(client, manager, monkeypatch):
    files = {"file": ("schedule.xlsx", b"whatever", "application/octet-stream")}
    response = client.post("/shifts/import/preview", files=files, headers=auth(manager))
    assert response.status_code == 400

    monkeypatch.setattr(settings, "CSV_MAX_UPLOAD_MB", 1)
    big = ("x" * (1024 * 1024 + 1)).encode("utf-8")
    files = {"file": ("big.csv", big, "text/csv")}
    response = client.post("/shifts/import/preview", files=files, headers=auth(manager))
    assert response.status_code == 400
    assert "too large" in response.json()["detail"]


def test_error_csv_missing_is_404(client, manager):
    response = client.get("/shifts/import/errors/deadbeef-0000", headers=auth(manager))

    assert response.status_code == 404


def test_error_csv_is_scoped_to_the_importing_organization(client, db, manager, make_user, staff_users):
    files = {"file": ("schedule.csv", CSV_TEXT.encode("utf-8"), "text/csv")}
    session_id = client.post("/shifts/import/preview", files=files, headers=auth(manager)).json()["session_id"]
    confirm = client.post("/shifts/import/confirm", json={"session_id": session_id}, headers=auth(manager))
    assert confirm.json()["error_csv_available"] is True

    other_org = Organization(name="Elsewhere")
    db.add(other_org)
    db.commit()
    outsider = make_user("manager@elsewhere.com", UserRole.MANAGER, organization=other_org)

    assert client.get(f"/shifts/import/errors/{session_id}", headers=auth(outsider)).status_code == 404
    assert client.get(f"/shifts/import/errors/{session_id[:8]}", headers=auth(manager)).status_code == 404
    assert client.get(f"/shifts/import/errors/{session_id}", headers=auth(manager)).status_code == 200


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"] == "connected"
