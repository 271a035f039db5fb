import uuid
from datetime import time

import pytest

from schoolhub.models import Branch, PeriodSlot

BASE = "/api/v1/timetables"


@pytest.fixture
def draft(client, school):
    response = client.post(
        BASE,
        json={"section_id": str(school.section_id), "name": "Term 3", "effective_from": "2026-09-01"},
        headers=school.header("owner"),
    )
    assert response.status_code == 201
    return response.json()


def put_entry(client, school, timetable_id, who="owner", **entry):
    return client.post(f"{BASE}/{timetable_id}/entries", json=entry, headers=school.header(who))


def lesson(school, day, period, subject, teacher="teacher", **extra):
    return {
        "day_of_week": day,
        "period_slot_id": str(school.period_ids[period]),
        "subject": subject,
        "teacher_id": str(school.users[teacher]),
        **extra,
    }


def test_create_timetable_as_draft(client, school, draft):
    assert draft["status"] == "draft"
    assert draft["branch_id"] == str(school.branch_id)
    assert draft["section_id"] == str(school.section_id)
    assert draft["created_by"] == str(school.users["owner"])
    assert draft["published_at"] is None

    listing = client.get(BASE, params={"section_id": str(school.section_id)}, headers=school.header("teacher")).json()
    assert [t["id"] for t in listing] == [draft["id"]]
    assert client.get(BASE, params={"status": "published"}, headers=school.header("teacher")).json() == []
    assert client.get(BASE, params={"status": "final"}, headers=school.header("teacher")).status_code == 400


def test_create_validation(client, school):
    payload = {"section_id": str(school.section_id), "name": "Term 3"}

    assert client.post(BASE, json=payload, headers=school.header("teacher")).status_code == 403

    response = client.post(BASE, json={**payload, "section_id": str(uuid.uuid4())}, headers=school.header("owner"))
    assert response.status_code == 404
    assert response.json()["detail"] == "Section not found"

    response = client.post(
        BASE,
        json={**payload, "effective_from": "2026-09-01", "effective_to": "2026-08-01"},
        headers=school.header("owner"),
    )
    assert response.status_code == 400

    assert client.post(BASE, json={**payload, "name": "  "}, headers=school.header("owner")).status_code == 422


def test_entries_are_upserted_per_day_and_slot(client, school, draft):
    first = put_entry(client, school, draft["id"], **lesson(school, 1, 0, "Mathematics", room_number="R4"))
    assert first.status_code == 200
    entry = first.json()
    assert entry["day_name"] == "Monday"
    assert entry["period_name"] == "Period 1"
    assert entry["start_time"] == "08:00:00"
    assert entry["teacher_name"] == "Grace Wanjiru"
    assert entry["room_number"] == "R4"

    replaced = put_entry(client, school, draft["id"], **lesson(school, 1, 0, "Science", teacher="teacher2")).json()
    assert replaced["id"] == entry["id"]
    assert replaced["subject"] == "Science"
    assert replaced["teacher_name"] == "Peter Odhiambo"
    assert replaced["room_number"] is None

    put_entry(client, school, draft["id"], **lesson(school, 1, 1, "English"))
    put_entry(client, school, draft["id"], **lesson(school, 0, 1, "Music"))

    entries = client.get(f"{BASE}/{draft['id']}/entries", headers=school.header("teacher")).json()
    assert [(e["day_of_week"], e["subject"]) for e in entries] == [(0, "Music"), (1, "Science"), (1, "English")]

    detail = client.get(f"{BASE}/{draft['id']}", headers=school.header("teacher")).json()
    assert detail["name"] == "Term 3"
    assert len(detail["entries"]) == 3


def test_free_period_has_no_subject_or_teacher(client, school, draft):
    entry = put_entry(client, school, draft["id"], **lesson(school, 2, 0, "Art", is_free_period=True)).json()

    assert entry["is_free_period"] is True
    assert entry["subject"] is None
    assert entry["teacher_id"] is None


def test_entry_validation(client, school, other_school, draft, session_factory):
    timetable_id = draft["id"]

    assert put_entry(client, school, timetable_id, **lesson(school, 7, 0, "Maths")).status_code == 422
    assert put_entry(client, school, timetable_id, who="teacher", **lesson(school, 1, 0, "Maths")).status_code == 403

    response = put_entry(client, school, timetable_id, **{**lesson(school, 1, 0, "Maths"), "period_slot_id": str(uuid.uuid4())})
    assert response.status_code == 404
    assert response.json()["detail"] == "Period slot not found"

    response = put_entry(client, school, timetable_id, **{**lesson(school, 1, 0, "Maths"), "teacher_id": str(other_school.users["teacher"])})
    assert response.status_code == 404
    assert response.json()["detail"] == "Teacher is not a member of this tenant"

    with session_factory() as session:
        north = Branch(tenant_id=school.tenant_id, name="North Campus", code="NORTH")
        session.add(north)
        session.flush()
        period = PeriodSlot(tenant_id=school.tenant_id, branch_id=north.id, name="North 1", start_time=time(8, 0), end_time=time(8, 40))
        session.add(period)
        session.commit()
        north_period = period.id

    response = put_entry(client, school, timetable_id, **{**lesson(school, 1, 0, "Maths"), "period_slot_id": str(north_period)})
    assert response.status_code == 400
    assert response.json()["detail"] == "Period slot does not belong to this timetable's branch"

    response = put_entry(client, school, uuid.uuid4(), **lesson(school, 1, 0, "Maths"))
    assert response.status_code == 404
    assert response.json()["detail"] == "Timetable not found"


def test_bulk_entries_are_all_or_nothing(client, school, draft):
    url = f"{BASE}/{draft['id']}/entries/bulk"
    headers = school.header("owner")

    duplicate = [lesson(school, 3, 0, "Maths"), lesson(school, 3, 0, "Science")]
    response = client.post(url, json={"entries": duplicate}, headers=headers)
    assert response.status_code == 400
    assert "Duplicate entry for Wednesday" in response.json()["detail"]

    broken = [lesson(school, 3, 0, "Maths"), {**lesson(school, 3, 1, "Science"), "period_slot_id": str(uuid.uuid4())}]
    assert client.post(url, json={"entries": broken}, headers=headers).status_code == 404
    assert client.get(f"{BASE}/{draft['id']}/entries", headers=headers).json() == []

    assert client.post(url, json={"entries": []}, headers=headers).status_code == 400

    week = [lesson(school, day, period, f"Subject {day}{period}") for day in range(1, 6) for period in range(2)]
    response = client.post(url, json={"entries": week}, headers=headers)
    assert response.status_code == 200
    assert len(response.json()) == 10


def test_delete_entry(client, school, draft):
    entry = put_entry(client, school, draft["id"], **lesson(school, 1, 0, "Maths")).json()
    url = f"{BASE}/{draft['id']}/entries/{entry['id']}"

    assert client.delete(url, headers=school.header("owner")).status_code == 204
    assert client.delete(url, headers=school.header("owner")).status_code == 404
    assert client.get(f"{BASE}/{draft['id']}/entries", headers=school.header("owner")).json() == []


def test_update_and_delete_draft(client, school, draft):
    url = f"{BASE}/{draft['id']}"
    headers = school.header("owner")

    response = client.put(url, json={"name": "Term 3 (revised)", "description": "After sports week"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Term 3 (revised)"
    assert response.json()["effective_from"] == "2026-09-01"

    assert client.put(url, json={"effective_to": "2026-08-31"}, headers=headers).status_code == 400

    put_entry(client, school, draft["id"], **lesson(school, 1, 0, "Maths"))
    assert client.delete(url, headers=headers).status_code == 204
    assert client.get(url, headers=headers).status_code == 404


def test_published_timetable_is_read_only(client, school, draft):
    put_entry(client, school, draft["id"], **lesson(school, 1, 0, "Maths"))
    url = f"{BASE}/{draft['id']}"
    headers = school.header("owner")

    assert client.post(f"{url}/publish", headers=school.header("teacher")).status_code == 403

    response = client.post(f"{url}/publish", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "published"
    assert response.json()["published_by"] == str(school.users["owner"])
    assert response.json()["published_at"] is not None

    response = client.post(f"{url}/publish", headers=headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "Timetable is already published"

    response = put_entry(client, school, draft["id"], **lesson(school, 2, 0, "Maths"))
    assert response.status_code == 409
    assert response.json()["detail"] == "Only draft timetables can be updated"
    assert client.post(f"{url}/entries/bulk", json={"entries": [lesson(school, 2, 0, "Maths")]}, headers=headers).status_code == 409
    assert client.put(url, json={"name": "Changed"}, headers=headers).status_code == 409
    assert client.delete(url, headers=headers).status_code == 409


def test_publishing_archives_the_previous_timetable(client, school, draft):
    headers = school.header("owner")
    client.post(f"{BASE}/{draft['id']}/publish", headers=headers)

    second = client.post(BASE, json={"section_id": str(school.section_id), "name": "Term 3 v2"}, headers=headers).json()
    client.post(f"{BASE}/{second['id']}/publish", headers=headers)

    statuses = {t["name"]: t["status"] for t in client.get(BASE, headers=headers).json()}
    assert statuses == {"Term 3": "archived", "Term 3 v2": "published"}

    response = client.post(f"{BASE}/{draft['id']}/publish", headers=headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "Only draft timetables can be published"


def test_archive(client, school, draft):
    url = f"{BASE}/{draft['id']}/archive"
    headers = school.header("owner")

    assert client.post(url, headers=headers).json()["status"] == "archived"
    response = client.post(url, headers=headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "Timetable is already archived"


def test_teacher_schedule_lists_published_periods(client, school, draft):
    headers = school.header("owner")
    put_entry(client, school, draft["id"], **lesson(school, 2, 1, "English"))
    put_entry(client, school, draft["id"], **lesson(school, 1, 0, "Maths"))
    put_entry(client, school, draft["id"], **lesson(school, 1, 1, "Science", teacher="teacher2"))

    assert client.get(f"{BASE}/teacher/me", headers=school.header("teacher")).json()["entries"] == []

    client.post(f"{BASE}/{draft['id']}/publish", headers=headers)

    schedule = client.get(f"{BASE}/teacher/me", headers=school.header("teacher")).json()
    assert schedule["teacher_id"] == str(school.users["teacher"])
    assert schedule["total_periods"] == 2
    assert [(e["day_name"], e["subject"]) for e in schedule["entries"]] == [("Monday", "Maths"), ("Tuesday", "English")]
    assert schedule["entries"][0]["section_name"] == "A"
    assert schedule["entries"][0]["class_name"] == "Grade 4"
    assert schedule["entries"][0]["timetable_name"] == "Term 3"

    other = client.get(f"{BASE}/teacher/{school.users['teacher2']}", headers=school.header("teacher")).json()
    assert [e["subject"] for e in other["entries"]] == ["Science"]

    assert client.get(f"{BASE}/teacher/{uuid.uuid4()}", headers=headers).status_code == 404
    assert client.get(f"{BASE}/teacher/not-a-uuid", headers=headers).status_code == 400


def test_timetables_of_other_tenants_are_invisible(client, school, other_school, draft):
    headers = other_school.header("owner")

    assert client.get(f"{BASE}/{draft['id']}", headers=headers).status_code == 404
    assert client.get(BASE, headers=headers).json() == []
    assert client.post(f"{BASE}/{draft['id']}/publish", headers=headers).status_code == 404
