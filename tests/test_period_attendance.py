from datetime import time

from schoolhub.models import Branch, PeriodSlot

BASE = "/api/v1/student-attendance"


def mark_period(client, school, who, period_id, day, *statuses):
    return client.post(
        f"{BASE}/period/{period_id}",
        json={"section_id": str(school.section_id), "date": day.isoformat(), "records": school.records(*statuses)},
        headers=school.header(who),
    )


def test_periods_listing_reports_disabled_flag(client, school, today):
    response = client.get(
        f"{BASE}/periods",
        params={"section_id": str(school.section_id), "date": today.isoformat()},
        headers=school.header("teacher"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["period_attendance_enabled"] is False
    assert [p["period_name"] for p in body["periods"]] == ["Period 1", "Period 2"]
    assert body["day_of_week"] == today.isoweekday() % 7


def test_period_marking_requires_setting(client, school, today):
    response = mark_period(client, school, "teacher", school.period_ids[0], today, "present")
    assert response.status_code == 400
    assert response.json()["detail"] == "Period-wise attendance is not enabled for this branch"

    response = client.get(
        f"{BASE}/period/{school.period_ids[0]}",
        params={"section_id": str(school.section_id), "date": today.isoformat()},
        headers=school.header("teacher"),
    )
    assert response.status_code == 400


def test_mark_periods_and_daily_summary(client, school, today):
    school.set_settings(period_attendance_enabled=True)
    first, second = school.period_ids

    response = mark_period(client, school, "teacher", first, today, "present", "present", "late", "absent")
    assert response.status_code == 200
    assert response.json()["period_id"] == str(first)
    assert response.json()["created"] == 4

    assert mark_period(client, school, "teacher", second, today, "absent", "present", "half_day", "absent").status_code == 200

    periods = client.get(
        f"{BASE}/periods",
        params={"section_id": str(school.section_id), "date": today.isoformat()},
        headers=school.header("teacher"),
    ).json()
    assert [(p["is_marked"], p["marked_count"], p["total_students"]) for p in periods["periods"]] == [
        (True, 4, 4),
        (True, 4, 4),
    ]

    view = client.get(
        f"{BASE}/period/{first}",
        params={"section_id": str(school.section_id), "date": today.isoformat()},
        headers=school.header("teacher"),
    ).json()
    assert view["period_name"] == "Period 1"
    assert view["is_marked"] is True
    assert [s["status"] for s in view["students"]] == ["present", "present", "late", "absent"]

    summary = client.get(
        f"{BASE}/daily-summary",
        params={"section_id": str(school.section_id), "date": today.isoformat()},
        headers=school.header("teacher"),
    ).json()
    rows = {row["full_name"]: row for row in summary["students"]}

    # One of two periods attended is not more than half
    assert rows["Alice Achieng"]["overall_status"] == "absent"
    assert rows["Alice Achieng"]["attendance_percentage"] == 50.0
    assert rows["Brian Barasa"]["overall_status"] == "present"
    assert rows["Brian Barasa"]["periods_present"] == 2
    assert rows["Cynthia Chebet"]["overall_status"] == "present"
    assert rows["Cynthia Chebet"]["periods_late"] == 1
    assert rows["Cynthia Chebet"]["periods_half_day"] == 1
    assert rows["David Dida"]["overall_status"] == "absent"
    assert rows["David Dida"]["attendance_percentage"] == 0.0

    totals = summary["summary"]
    assert totals["total_students"] == 4
    assert totals["total_periods"] == 2
    assert totals["full_present_count"] == 1
    assert totals["absent_count"] == 2
    assert totals["average_attendance"] == 62.5


def test_period_and_daily_records_are_independent(client, school, today):
    school.set_settings(period_attendance_enabled=True)

    daily = client.post(
        f"{BASE}/class/{school.section_id}",
        json={"date": today.isoformat(), "records": school.records("present", "present", "present", "present")},
        headers=school.header("teacher"),
    )
    assert daily.status_code == 200

    response = mark_period(client, school, "teacher2", school.period_ids[0], today, "absent", "present", "present", "present")
    assert response.status_code == 200
    assert response.json()["created"] == 4

    # A period marked by someone else cannot be re-marked by the daily marker
    response = mark_period(client, school, "teacher", school.period_ids[0], today, "present", "present", "present", "present")
    assert response.status_code == 403


def test_period_from_another_branch_is_rejected(client, school, today):
    school.set_settings(period_attendance_enabled=True)
    with school.session_factory() as session:
        branch = Branch(tenant_id=school.tenant_id, name="East Campus", code="EAST")
        session.add(branch)
        session.flush()
        period = PeriodSlot(
            tenant_id=school.tenant_id, branch_id=branch.id, name="East 1",
            start_time=time(8, 0), end_time=time(8, 40),
        )
        session.add(period)
        session.commit()
        period_id = period.id

    response = mark_period(client, school, "teacher", period_id, today, "present")
    assert response.status_code == 400
    assert "branch" in response.json()["detail"]


def test_unknown_period_is_not_found(client, school, today):
    school.set_settings(period_attendance_enabled=True)
    response = mark_period(client, school, "teacher", school.section_id, today, "present")
    assert response.status_code == 404
    assert response.json()["detail"] == "Period slot not found"
