import uuid
from datetime import timedelta

from schoolhub.models import Section

BASE = "/api/v1/student-attendance"


def mark(client, school, who, day, *statuses, section_id=None):
    return client.post(
        f"{BASE}/class/{section_id or school.section_id}",
        json={"date": day.isoformat(), "records": school.records(*statuses)},
        headers=school.header(who),
    )


def class_view(client, school, who, day):
    return client.get(
        f"{BASE}/class/{school.section_id}",
        params={"date": day.isoformat()},
        headers=school.header(who),
    )


def test_my_classes_reports_marking_state(client, school, today):
    with school.session_factory() as session:
        session.add(Section(tenant_id=school.tenant_id, class_id=school.class_id, name="B", code="G4B"))
        session.commit()

    response = client.get(f"{BASE}/my-classes", params={"date": today.isoformat()}, headers=school.header("teacher"))
    assert response.status_code == 200
    sections = response.json()
    # The empty section B is left out
    assert [s["section_code"] for s in sections] == ["G4A"]
    assert sections[0]["student_count"] == 4
    assert sections[0]["is_marked_today"] is False

    mark(client, school, "teacher", today, "present", "present", "absent", "late")

    sections = client.get(f"{BASE}/my-classes", params={"date": today.isoformat()}, headers=school.header("teacher")).json()
    assert sections[0]["is_marked_today"] is True
    assert sections[0]["marked_count"] == 4


def test_unmarked_class_view(client, school, today):
    response = class_view(client, school, "teacher", today)

    assert response.status_code == 200
    body = response.json()
    assert body["is_marked"] is False
    assert body["can_edit"] is True
    assert body["marked_by_name"] is None
    assert [s["first_name"] for s in body["students"]] == ["Alice", "Brian", "Cynthia", "David"]
    assert all(s["status"] is None for s in body["students"])
    assert body["summary"] == {"total": 4, "present": 0, "absent": 0, "late": 0, "half_day": 0}


def test_mark_class_attendance(client, school, today):
    response = mark(client, school, "teacher", today, "present", "present", "absent", "late")

    assert response.status_code == 200
    body = response.json()
    assert body["created"] == 4
    assert body["updated"] == 0
    assert body["summary"] == {"total": 4, "present": 2, "absent": 1, "late": 1, "half_day": 0}
    assert body["message"] == "Attendance marked: 2 present, 1 absent, 1 late, 0 half-day"

    view = class_view(client, school, "teacher", today).json()
    assert view["is_marked"] is True
    assert view["can_edit"] is True
    assert view["marked_by"] == str(school.users["teacher"])
    assert view["marked_by_name"] == "Grace Wanjiru"
    assert [s["status"] for s in view["students"]] == ["present", "present", "absent", "late"]
    assert view["students"][2]["last_5_days"] == ["A"]


def test_class_view_can_edit_depends_on_caller(client, school, today):
    mark(client, school, "teacher", today, "present", "present", "present", "present")

    assert class_view(client, school, "teacher2", today).json()["can_edit"] is False
    assert class_view(client, school, "owner", today).json()["can_edit"] is True


def test_history_uses_short_labels_newest_first(client, school, today):
    mark(client, school, "teacher", today - timedelta(days=2), "absent", "present", "present", "present")
    mark(client, school, "teacher", today - timedelta(days=1), "half_day", "present", "present", "present")
    mark(client, school, "teacher", today, "late", "present", "present", "present")

    view = class_view(client, school, "teacher", today).json()
    assert view["students"][0]["last_5_days"] == ["L", "H", "A"]


def test_initial_marking_writes_create_audit(client, school, today):
    mark(client, school, "teacher", today, "present", "present", "absent", "late")
    listing = client.get(BASE, params={"student_id": str(school.student_ids[0])}, headers=school.header("teacher")).json()
    attendance_id = listing["attendance"][0]["id"]

    audit = client.get(f"{BASE}/{attendance_id}/audit", headers=school.header("teacher")).json()
    assert audit["total_changes"] == 1
    entry = audit["audit_entries"][0]
    assert entry["change_type"] == "create"
    assert entry["previous_status"] is None
    assert entry["new_status"] == "present"
    assert entry["change_reason"] == "Initial marking"
    assert entry["changed_by_name"] == "Grace Wanjiru"


def test_remark_inside_window_audits_only_changed_rows(client, school, today):
    mark(client, school, "teacher", today, "present", "present", "absent", "late")

    response = mark(client, school, "teacher", today, "absent", "present", "absent", "late")
    assert response.status_code == 200
    assert response.json()["created"] == 0
    assert response.json()["updated"] == 1

    listing = client.get(BASE, params={"date_from": today.isoformat()}, headers=school.header("teacher")).json()
    assert listing["total"] == 4
    changes = {
        row["student_id"]: client.get(f"{BASE}/{row['id']}/audit", headers=school.header("teacher")).json()
        for row in listing["attendance"]
    }

    alice = changes[str(school.student_ids[0])]
    assert alice["total_changes"] == 2
    assert [e["change_type"] for e in alice["audit_entries"]] == ["create", "edit"]
    assert alice["audit_entries"][1]["previous_status"] == "present"
    assert alice["audit_entries"][1]["new_status"] == "absent"
    assert alice["audit_entries"][1]["change_reason"] == "Re-marked class attendance"
    assert changes[str(school.student_ids[1])]["total_changes"] == 1


def test_remark_keeps_original_marker(client, school, today):
    mark(client, school, "teacher", today, "present", "present", "present", "present")
    mark(client, school, "owner", today, "absent", "present", "present", "present")

    view = class_view(client, school, "teacher", today).json()
    assert view["marked_by_name"] == "Grace Wanjiru"
    assert view["students"][0]["status"] == "absent"


def test_remark_by_other_teacher_is_forbidden(client, school, today):
    mark(client, school, "teacher", today, "present", "present", "present", "present")

    response = mark(client, school, "teacher2", today, "absent", "present", "present", "present")
    assert response.status_code == 403
    assert "Only the teacher who marked" in response.json()["detail"]


def test_remark_after_window_requires_admin(client, school, today):
    mark(client, school, "teacher", today, "present", "present", "present", "present")
    school.age_attendance(121)

    response = mark(client, school, "teacher", today, "absent", "present", "present", "present")
    assert response.status_code == 403
    assert "edit window has expired" in response.json()["detail"]

    response = mark(client, school, "owner", today, "absent", "present", "present", "present")
    assert response.status_code == 200
    assert response.json()["updated"] == 1


def test_moved_student_keeps_edit_window_of_original_marking(client, school, today):
    mark(client, school, "teacher", today, "present", "present", "present", "present")
    school.age_attendance(180)

    owner = school.header("owner")
    section_b = client.post(
        "/api/v1/sections",
        json={"class_id": str(school.class_id), "name": "B", "code": "G4B", "class_teacher_id": str(school.users["teacher2"])},
        headers=owner,
    ).json()
    alice = school.student_ids[0]
    assert client.put(f"/api/v1/students/{alice}", json={"section_id": section_b["id"]}, headers=owner).status_code == 200

    payload = {"date": today.isoformat(), "records": [{"student_id": str(alice), "status": "absent"}]}
    response = client.post(f"{BASE}/class/{section_b['id']}", json=payload, headers=school.header("teacher2"))
    assert response.status_code == 403

    record = client.get(BASE, params={"student_id": str(alice)}, headers=owner).json()["attendance"][0]
    assert record["status"] == "present"
    assert record["section_id"] == str(school.section_id)

    response = client.post(f"{BASE}/class/{section_b['id']}", json=payload, headers=owner)
    assert response.status_code == 200
    assert response.json()["updated"] == 1

    record = client.get(BASE, params={"student_id": str(alice)}, headers=owner).json()["attendance"][0]
    assert record["status"] == "absent"
    assert record["section_id"] == section_b["id"]


def test_branch_edit_window_setting_applies(client, school, today):
    school.set_settings(edit_window_minutes=30)
    mark(client, school, "teacher", today, "present", "present", "present", "present")
    school.age_attendance(31)

    response = mark(client, school, "teacher", today, "absent", "present", "present", "present")
    assert response.status_code == 403
    assert "30-minute" in response.json()["detail"]


def test_future_date_is_rejected(client, school, today):
    tomorrow = today + timedelta(days=1)

    response = mark(client, school, "teacher", tomorrow, "present")
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot mark attendance for a future date"

    assert class_view(client, school, "teacher", tomorrow).status_code == 400


def test_marking_validation_errors(client, school, today):
    url = f"{BASE}/class/{school.section_id}"
    headers = school.header("teacher")

    response = client.post(url, json={"date": today.isoformat(), "records": []}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "No attendance records provided"

    response = client.post(url, json={"records": school.records("present")}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Attendance date is required"

    response = client.post(
        url,
        json={"date": today.isoformat(), "records": school.records("excused")},
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid attendance status 'excused'")

    stranger = {"student_id": str(uuid.uuid4()), "status": "present"}
    response = client.post(url, json={"date": today.isoformat(), "records": [stranger]}, headers=headers)
    assert response.status_code == 400
    assert "does not belong to this section" in response.json()["detail"]

    duplicate = school.records("present") * 2
    response = client.post(url, json={"date": today.isoformat(), "records": duplicate}, headers=headers)
    assert response.status_code == 400
    assert "Duplicate attendance record" in response.json()["detail"]

    # Nothing was written by the rejected requests
    assert client.get(BASE, headers=headers).json()["total"] == 0


def test_status_is_case_insensitive(client, school, today):
    response = mark(client, school, "teacher", today, "PRESENT", " Absent ", "Late", "half_day")
    assert response.status_code == 200
    assert response.json()["summary"]["half_day"] == 1


def test_section_lookup_errors(client, school, today):
    headers = school.header("teacher")

    response = client.get(f"{BASE}/class/not-a-uuid", headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid section ID format"

    response = client.get(f"{BASE}/class/{uuid.uuid4()}", headers=headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Section not found"

    with school.session_factory() as session:
        empty = Section(tenant_id=school.tenant_id, class_id=school.class_id, name="C", code="G4C")
        session.add(empty)
        session.commit()
        empty_id = empty.id

    response = client.get(f"{BASE}/class/{empty_id}", params={"date": today.isoformat()}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "No students found in this section"


def test_inactive_students_are_not_listed(client, school, today):
    school.set_student_status(school.student_ids[3], "TRANSFERRED")

    view = class_view(client, school, "teacher", today).json()
    assert [s["first_name"] for s in view["students"]] == ["Alice", "Brian", "Cynthia"]

    response = client.post(
        f"{BASE}/class/{school.section_id}",
        json={"date": today.isoformat(), "records": [{"student_id": str(school.student_ids[3]), "status": "present"}]},
        headers=school.header("teacher"),
    )
    assert response.status_code == 400


def test_sections_of_other_tenants_are_invisible(client, school, other_school, today):
    response = client.get(
        f"{BASE}/class/{other_school.section_id}",
        params={"date": today.isoformat()},
        headers=school.header("teacher"),
    )
    assert response.status_code == 404

    response = client.post(
        f"{BASE}/class/{school.section_id}",
        json={"date": today.isoformat(), "records": other_school.records("present")},
        headers=school.header("teacher"),
    )
    assert response.status_code == 400


def test_errors_are_problem_documents(client, school):
    response = client.get(f"{BASE}/class/{uuid.uuid4()}", headers=school.header("teacher"))

    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["status"] == 404
    assert body["title"] == "Not Found"
    assert body["instance"].startswith(f"{BASE}/class/")
