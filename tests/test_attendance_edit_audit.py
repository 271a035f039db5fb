import uuid

import pytest

BASE = "/api/v1/student-attendance"


@pytest.fixture
def marked(client, school, today):
    """Today's attendance marked by the teacher; returns Alice's record id"""
    response = client.post(
        f"{BASE}/class/{school.section_id}",
        json={"date": today.isoformat(), "records": school.records("present", "present", "absent", "late")},
        headers=school.header("teacher"),
    )
    assert response.status_code == 200
    listing = client.get(BASE, params={"student_id": str(school.student_ids[0])}, headers=school.header("teacher"))
    return listing.json()["attendance"][0]["id"]


def edit(client, school, who, attendance_id, **body):
    return client.put(f"{BASE}/{attendance_id}", json=body, headers=school.header(who))


def test_edit_window_for_original_marker(client, school, marked):
    response = client.get(f"{BASE}/{marked}/edit-window", headers=school.header("teacher"))

    assert response.status_code == 200
    window = response.json()
    assert window["attendance_id"] == marked
    assert window["window_minutes"] == 120
    assert window["is_within_window"] is True
    assert window["is_original_marker"] is True
    assert window["can_edit"] is True
    assert window["requires_admin_edit"] is False
    assert 118 <= window["remaining_minutes"] <= 120


def test_edit_window_for_other_users(client, school, marked):
    other = client.get(f"{BASE}/{marked}/edit-window", headers=school.header("teacher2")).json()
    assert other["can_edit"] is False
    assert other["is_original_marker"] is False
    assert other["edit_denied_reason"]

    school.age_attendance(180)
    admin = client.get(f"{BASE}/{marked}/edit-window", headers=school.header("owner")).json()
    assert admin["can_edit"] is True
    assert admin["is_within_window"] is False
    assert admin["requires_admin_edit"] is True
    assert admin["remaining_minutes"] == 0


def test_edit_writes_audit_snapshot(client, school, marked):
    response = edit(client, school, "teacher", marked, status="absent", reason="Left before assembly")

    assert response.status_code == 200
    body = response.json()
    assert body["attendance_id"] == marked
    assert body["student_id"] == str(school.student_ids[0])
    assert body["status"] == "absent"
    assert body["edited_by"] == str(school.users["teacher"])
    assert body["message"] == "Attendance updated successfully"

    record = client.get(f"{BASE}/{marked}", headers=school.header("teacher")).json()
    assert record["status"] == "absent"
    assert record["status_label"] == "Absent"

    audit = client.get(f"{BASE}/{marked}/audit", headers=school.header("teacher")).json()
    assert audit["student_name"] == "Alice Achieng"
    assert audit["total_changes"] == 2
    entry = audit["audit_entries"][-1]
    assert entry["change_type"] == "edit"
    assert entry["previous_status"] == "present"
    assert entry["new_status"] == "absent"
    assert entry["change_reason"] == "Left before assembly"
    assert entry["changed_by_id"] == str(school.users["teacher"])


def test_partial_edits_keep_other_fields(client, school, marked):
    assert edit(client, school, "teacher", marked, remarks="Brought a note", reason="Note received").status_code == 200
    response = edit(client, school, "teacher", marked, status="late", late_arrival_time="08:25:00", reason="Arrived late")
    assert response.status_code == 200

    record = client.get(f"{BASE}/{marked}", headers=school.header("teacher")).json()
    assert record["status"] == "late"
    assert record["remarks"] == "Brought a note"
    assert record["late_arrival_time"] == "08:25:00"

    entries = client.get(f"{BASE}/{marked}/audit", headers=school.header("teacher")).json()["audit_entries"]
    assert [e["change_type"] for e in entries] == ["create", "edit", "edit"]
    assert entries[1]["previous_remarks"] is None
    assert entries[1]["new_remarks"] == "Brought a note"
    assert entries[1]["new_status"] == "present"
    assert entries[2]["previous_late_arrival_time"] is None
    assert entries[2]["new_late_arrival_time"] == "08:25:00"
    assert entries[2]["previous_remarks"] == "Brought a note"


def test_empty_remarks_clear_the_field(client, school, marked):
    assert edit(client, school, "teacher", marked, remarks="Brought a note", reason="Note received").status_code == 200

    response = edit(client, school, "teacher", marked, remarks="", reason="Note withdrawn")
    assert response.status_code == 200

    assert client.get(f"{BASE}/{marked}", headers=school.header("teacher")).json()["remarks"] is None
    entry = client.get(f"{BASE}/{marked}/audit", headers=school.header("teacher")).json()["audit_entries"][-1]
    assert entry["previous_remarks"] == "Brought a note"
    assert entry["new_remarks"] is None

    # Clearing again is not a change
    assert edit(client, school, "teacher", marked, remarks="", reason="Again").status_code == 400


def test_reason_is_required(client, school, marked):
    response = edit(client, school, "teacher", marked, status="absent")
    assert response.status_code == 400
    assert response.json()["detail"] == "A reason is required to edit attendance"

    assert edit(client, school, "teacher", marked, status="absent", reason="   ").status_code == 400
    assert edit(client, school, "teacher", marked, status="absent", reason="x" * 501).status_code == 400
    assert edit(client, school, "teacher", marked, status="absent", reason="x" * 500).status_code == 200


def test_edit_without_changes_is_rejected(client, school, marked):
    response = edit(client, school, "teacher", marked, status="present", reason="Double check")
    assert response.status_code == 400
    assert response.json()["detail"].startswith("No changes")

    assert edit(client, school, "teacher", marked, reason="Nothing to change").status_code == 400

    audit = client.get(f"{BASE}/{marked}/audit", headers=school.header("teacher")).json()
    assert audit["total_changes"] == 1


def test_invalid_status_on_edit(client, school, marked):
    response = edit(client, school, "teacher", marked, status="on_leave", reason="Typo")
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid attendance status")


def test_other_teacher_cannot_edit(client, school, marked):
    response = edit(client, school, "teacher2", marked, status="absent", reason="Wrong student")
    assert response.status_code == 403
    assert "Only the teacher who marked" in response.json()["detail"]


def test_expired_window_needs_admin(client, school, marked):
    school.age_attendance(121)

    response = edit(client, school, "teacher", marked, status="absent", reason="Late correction")
    assert response.status_code == 403
    assert "edit window has expired" in response.json()["detail"]

    response = edit(client, school, "owner", marked, status="absent", reason="Late correction")
    assert response.status_code == 200

    entry = client.get(f"{BASE}/{marked}/audit", headers=school.header("owner")).json()["audit_entries"][-1]
    assert entry["changed_by_id"] == str(school.users["owner"])
    assert entry["changed_by_name"] == "Greenfield Owner"


def test_platform_admin_member_can_edit(client, school, marked):
    from schoolhub.models import User

    with school.session_factory() as session:
        session.get(User, school.users["teacher2"]).set_roles(["SUPER_ADMIN"])
        session.commit()
    school.age_attendance(121)

    response = edit(client, school, "teacher2", marked, status="absent", reason="Office correction")
    assert response.status_code == 200


def test_zero_minute_window(client, school, marked):
    school.set_settings(edit_window_minutes=0)

    assert edit(client, school, "teacher", marked, status="absent", reason="Correction").status_code == 403
    assert edit(client, school, "owner", marked, status="absent", reason="Correction").status_code == 200


def test_check_order_record_before_reason(client, school, marked):
    response = edit(client, school, "teacher", uuid.uuid4())
    assert response.status_code == 404
    assert response.json()["detail"] == "Attendance record not found"

    # The reason is validated before the window
    school.age_attendance(500)
    response = edit(client, school, "teacher2", marked, status="absent")
    assert response.status_code == 400


def test_records_of_other_tenants_are_not_found(client, school, other_school, marked):
    headers = other_school.header("owner")

    assert client.get(f"{BASE}/{marked}", headers=headers).status_code == 404
    assert client.get(f"{BASE}/{marked}/audit", headers=headers).status_code == 404
    assert client.get(f"{BASE}/{marked}/edit-window", headers=headers).status_code == 404
    assert edit(client, other_school, "owner", marked, status="absent", reason="Nope").status_code == 404
