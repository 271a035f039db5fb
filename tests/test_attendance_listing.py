import uuid
from datetime import timedelta

import pytest

BASE = "/api/v1/student-attendance"


@pytest.fixture
def three_days(client, school, today):
    """Three consecutive days marked, twelve records in total"""
    for offset in (2, 1, 0):
        day = today - timedelta(days=offset)
        response = client.post(
            f"{BASE}/class/{school.section_id}",
            json={"date": day.isoformat(), "records": school.records("present", "absent", "late", "present")},
            headers=school.header("teacher"),
        )
        assert response.status_code == 200
    return [today - timedelta(days=offset) for offset in (2, 1, 0)]


def test_cursor_pagination_walks_all_records(client, school, three_days):
    headers = school.header("teacher")
    seen = []
    page_sizes = []
    cursor = None

    while True:
        params = {"limit": 5}
        if cursor:
            params["cursor"] = cursor
        page = client.get(BASE, params=params, headers=headers).json()
        assert page["total"] == 12
        page_sizes.append(len(page["attendance"]))
        seen.extend(row["id"] for row in page["attendance"])
        if not page["has_more"]:
            assert page["next_cursor"] is None
            break
        cursor = page["next_cursor"]

    assert page_sizes == [5, 5, 2]
    assert len(set(seen)) == 12


def test_listing_is_newest_first(client, school, three_days):
    rows = client.get(BASE, headers=school.header("teacher")).json()["attendance"]

    dates = [row["attendance_date"] for row in rows]
    assert dates == sorted(dates, reverse=True)
    assert dates[0] == three_days[-1].isoformat()
    assert rows[0]["marked_by_name"] == "Grace Wanjiru"
    assert rows[0]["section_name"] == "A"


def test_listing_filters(client, school, three_days):
    headers = school.header("teacher")

    absent = client.get(BASE, params={"status": "absent"}, headers=headers).json()
    assert absent["total"] == 3
    assert {row["student_name"] for row in absent["attendance"]} == {"Brian Barasa"}

    one_day = client.get(
        BASE,
        params={"date_from": three_days[1].isoformat(), "date_to": three_days[1].isoformat()},
        headers=headers,
    ).json()
    assert one_day["total"] == 4

    by_student = client.get(BASE, params={"student_id": str(school.student_ids[2])}, headers=headers).json()
    assert by_student["total"] == 3
    assert all(row["status_label"] == "Late" for row in by_student["attendance"])

    by_section = client.get(BASE, params={"section_id": str(school.section_id)}, headers=headers).json()
    assert by_section["total"] == 12


def test_listing_rejects_bad_parameters(client, school, three_days):
    headers = school.header("teacher")

    response = client.get(BASE, params={"cursor": "abc"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid cursor"

    response = client.get(BASE, params={"cursor": str(uuid.uuid4())}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid cursor"

    assert client.get(BASE, params={"limit": 101}, headers=headers).status_code == 422
    assert client.get(BASE, params={"limit": 0}, headers=headers).status_code == 422
    assert client.get(BASE, params={"status": "excused"}, headers=headers).status_code == 400

    response = client.get(BASE, params={"date_from": "17/10/2026"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid date_from format. Use YYYY-MM-DD"


def test_listing_is_scoped_to_tenant(client, school, other_school, three_days):
    assert client.get(BASE, headers=other_school.header("owner")).json()["total"] == 0


def test_get_single_record(client, school, three_days):
    headers = school.header("teacher")
    first = client.get(BASE, params={"limit": 1}, headers=headers).json()["attendance"][0]

    response = client.get(f"{BASE}/{first['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json() == first

    assert client.get(f"{BASE}/{uuid.uuid4()}", headers=headers).status_code == 404
    response = client.get(f"{BASE}/nope", headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid attendance ID format"


# Settings

def test_settings_default_when_not_stored(client, school):
    response = client.get(
        f"{BASE}/settings", params={"branch_id": str(school.branch_id)}, headers=school.header("teacher")
    )

    assert response.status_code == 200
    body = response.json()
    assert body["is_default"] is True
    assert body["id"] is None
    assert body["branch_name"] == "Main Campus"
    assert body["edit_window_minutes"] == 120
    assert body["late_threshold_minutes"] == 15
    assert body["period_attendance_enabled"] is False


def test_settings_update_requires_admin(client, school):
    payload = {"branch_id": str(school.branch_id), "edit_window_minutes": 45}

    assert client.put(f"{BASE}/settings", json=payload, headers=school.header("teacher")).status_code == 403

    response = client.put(f"{BASE}/settings", json=payload, headers=school.header("owner"))
    assert response.status_code == 200
    assert response.json()["is_default"] is False
    assert response.json()["edit_window_minutes"] == 45

    payload = {"branch_id": str(school.branch_id), "period_attendance_enabled": True}
    body = client.put(f"{BASE}/settings", json=payload, headers=school.header("owner")).json()
    # Omitted fields keep their stored values
    assert body["edit_window_minutes"] == 45
    assert body["period_attendance_enabled"] is True

    stored = client.get(
        f"{BASE}/settings", params={"branch_id": str(school.branch_id)}, headers=school.header("teacher")
    ).json()
    assert stored["edit_window_minutes"] == 45


def test_settings_validation(client, school):
    headers = school.header("owner")

    response = client.put(
        f"{BASE}/settings", json={"branch_id": str(school.branch_id), "edit_window_minutes": 2000}, headers=headers
    )
    assert response.status_code == 422

    response = client.put(
        f"{BASE}/settings", json={"branch_id": str(uuid.uuid4()), "edit_window_minutes": 30}, headers=headers
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Branch not found"

    assert client.get(f"{BASE}/settings", headers=headers).status_code == 422
