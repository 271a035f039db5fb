import uuid
from datetime import date, timedelta

from schoolhub.models import Section

BASE = "/api/v1/student-attendance"
REPORTS = f"{BASE}/reports"


def mark(client, school, day, *statuses, who="teacher"):
    response = client.post(
        f"{BASE}/class/{school.section_id}",
        json={"date": day.isoformat(), "records": school.records(*statuses)},
        headers=school.header(who),
    )
    assert response.status_code == 200
    return response


def test_class_report_shows_unmarked_students(client, school, today):
    response = client.get(
        f"{REPORTS}/class/{school.section_id}", params={"date": today.isoformat()}, headers=school.header("teacher")
    )

    assert response.status_code == 200
    body = response.json()
    assert [s["status_label"] for s in body["students"]] == ["Not Marked"] * 4
    assert body["attendance_rate"] == 0.0
    assert body["summary"]["total"] == 4


def test_class_report_after_marking(client, school, today):
    mark(client, school, today, "present", "absent", "half_day")

    body = client.get(
        f"{REPORTS}/class/{school.section_id}", params={"date": today.isoformat()}, headers=school.header("teacher")
    ).json()

    assert [s["status_label"] for s in body["students"]] == ["Present", "Absent", "Half Day", "Not Marked"]
    assert body["summary"] == {"total": 4, "present": 1, "absent": 1, "late": 0, "half_day": 1}
    assert body["attendance_rate"] == 50.0


def test_class_report_rejects_future_and_unknown(client, school, today):
    headers = school.header("teacher")

    response = client.get(
        f"{REPORTS}/class/{school.section_id}",
        params={"date": (today + timedelta(days=1)).isoformat()},
        headers=headers,
    )
    assert response.status_code == 400

    assert client.get(f"{REPORTS}/class/{uuid.uuid4()}", headers=headers).status_code == 404


def test_unmarked_report(client, school, today):
    with school.session_factory() as session:
        session.add(Section(tenant_id=school.tenant_id, class_id=school.class_id, name="B", code="G4B"))
        session.commit()

    body = client.get(f"{REPORTS}/unmarked", params={"date": today.isoformat()}, headers=school.header("owner")).json()
    # Sections without students are not counted
    assert body["total_classes"] == 1
    assert body["marked_classes"] == 0
    assert body["unmarked_classes"][0]["teacher_name"] == "Grace Wanjiru"
    assert body["unmarked_classes"][0]["teacher_id"] == str(school.users["teacher"])
    assert body["unmarked_classes"][0]["student_count"] == 4

    mark(client, school, today, "present", "present", "present", "present")

    body = client.get(f"{REPORTS}/unmarked", params={"date": today.isoformat()}, headers=school.header("owner")).json()
    assert body["unmarked_classes"] == []
    assert body["marked_classes"] == 1


def test_low_attendance_flags_students_below_threshold(client, school):
    mark(client, school, date(2025, 9, 1), "present", "present", "present", "absent")
    mark(client, school, date(2025, 9, 2), "absent", "present", "present", "absent")
    mark(client, school, date(2025, 9, 3), "present", "present", "late", "absent")

    params = {"date_from": "2025-09-01", "date_to": "2025-09-30"}
    body = client.get(f"{REPORTS}/low-attendance", params=params, headers=school.header("owner")).json()

    assert body["threshold"] == 75.0
    assert body["critical_threshold"] == 60.0
    assert body["total_students"] == 4
    assert body["below_threshold"] == 2
    assert body["chronic_absentees"] == 1

    david, alice = body["students"]
    assert david["full_name"] == "David Dida"
    assert david["attendance_rate"] == 0.0
    assert david["is_critical"] is True
    assert david["consecutive_absent"] == 3
    assert david["last_present"] is None
    assert alice["full_name"] == "Alice Achieng"
    assert alice["attendance_rate"] == 66.67
    assert alice["is_critical"] is False
    assert alice["last_present"] == "2025-09-03"
    assert alice["days_absent"] == 1

    breakdown = body["class_breakdown"][0]
    assert breakdown["class_name"] == "Grade 4"
    assert breakdown["total_students"] == 4
    assert breakdown["below_threshold"] == 2


def test_low_attendance_custom_threshold(client, school):
    mark(client, school, date(2025, 9, 1), "present", "present", "present", "absent")
    mark(client, school, date(2025, 9, 2), "absent", "present", "present", "absent")
    headers = school.header("owner")
    params = {"date_from": "2025-09-01", "date_to": "2025-09-30"}

    body = client.get(f"{REPORTS}/low-attendance", params={**params, "threshold": 20}, headers=headers).json()
    assert [s["full_name"] for s in body["students"]] == ["David Dida"]
    assert body["critical_threshold"] == 20.0

    response = client.get(f"{REPORTS}/low-attendance", params={**params, "threshold": 150}, headers=headers)
    assert response.status_code == 400

    response = client.get(
        f"{REPORTS}/low-attendance",
        params={"date_from": "2025-09-30", "date_to": "2025-09-01"},
        headers=headers,
    )
    assert response.status_code == 400


def test_student_calendar(client, school):
    mark(client, school, date(2025, 9, 1), "present", "present", "present", "present")
    mark(client, school, date(2025, 9, 2), "absent", "present", "present", "present")

    response = client.get(
        f"{REPORTS}/student/{school.student_ids[0]}/calendar",
        params={"year": 2025, "month": 9},
        headers=school.header("teacher"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["student_name"] == "Alice Achieng"
    assert body["month_name"] == "September"
    assert len(body["days"]) == 30

    first, second = body["days"][0], body["days"][1]
    assert first["date"] == "2025-09-01"
    assert first["day_of_week"] == 1  # Monday
    assert first["status"] == "present"
    assert second["status"] == "absent"
    assert body["days"][5]["is_weekend"] is True  # Saturday 6th
    assert body["days"][2]["status"] is None

    summary = body["summary"]
    assert summary["working_days"] == 22
    assert summary["present"] == 1
    assert summary["absent"] == 1
    assert summary["percentage"] == 50.0
    assert body["class_average"] == 87.5
    assert body["trend"] == "stable"


def test_student_calendar_trend(client, school):
    mark(client, school, date(2025, 8, 1), "absent", "present", "present", "present")
    mark(client, school, date(2025, 9, 1), "present", "present", "present", "present")

    body = client.get(
        f"{REPORTS}/student/{school.student_ids[0]}/calendar",
        params={"year": 2025, "month": 9},
        headers=school.header("teacher"),
    ).json()
    assert body["trend"] == "improving"


def test_student_calendar_errors(client, school):
    headers = school.header("teacher")

    response = client.get(
        f"{REPORTS}/student/{uuid.uuid4()}/calendar", params={"year": 2025, "month": 9}, headers=headers
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Student not found"

    response = client.get(
        f"{REPORTS}/student/{school.student_ids[0]}/calendar", params={"year": 2025, "month": 13}, headers=headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Month must be between 1 and 12"


def test_monthly_class_report(client, school):
    mark(client, school, date(2025, 9, 1), "present", "absent", "late", "present")
    mark(client, school, date(2025, 9, 2), "present", "present", "absent", "present")

    response = client.get(
        f"{REPORTS}/class/{school.section_id}/monthly",
        params={"year": 2025, "month": 9},
        headers=school.header("teacher"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["working_days"] == 22
    assert body["dates"][0] == "2025-09-01"
    assert "2025-09-06" not in body["dates"]

    rows = {row["full_name"]: row for row in body["students"]}
    assert rows["Brian Barasa"]["daily_status"] == {"2025-09-01": "absent", "2025-09-02": "present"}
    assert rows["Brian Barasa"]["percentage"] == 50.0
    assert rows["David Dida"]["percentage"] == 100.0
    assert body["summary"]["total_students"] == 4
    assert body["summary"]["average_attendance"] == 75.0

    response = client.get(
        f"{REPORTS}/class/{school.section_id}/monthly",
        params={"year": 2025, "month": 0},
        headers=school.header("teacher"),
    )
    assert response.status_code == 400
