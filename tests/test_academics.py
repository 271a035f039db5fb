import uuid

from conftest import API


def post(client, school, path, payload, who="owner"):
    return client.post(f"{API}{path}", json=payload, headers=school.header(who))


# Classes

def test_create_and_list_classes(client, school):
    response = post(client, school, "/classes", {"branch_id": str(school.branch_id), "name": "Grade 5", "code": "G5", "display_order": 5})

    assert response.status_code == 201
    assert response.json()["code"] == "G5"

    classes = client.get(f"{API}/classes", headers=school.header("teacher")).json()
    assert [c["code"] for c in classes] == ["G4", "G5"]

    filtered = client.get(
        f"{API}/classes", params={"branch_id": str(uuid.uuid4())}, headers=school.header("teacher")
    ).json()
    assert filtered == []


def test_class_validation(client, school):
    payload = {"branch_id": str(school.branch_id), "name": "Grade 4 again", "code": "G4"}
    assert post(client, school, "/classes", payload).status_code == 409
    assert post(client, school, "/classes", {**payload, "code": "G9"}, who="teacher").status_code == 403
    assert post(client, school, "/classes", {**payload, "branch_id": str(uuid.uuid4()), "code": "G9"}).status_code == 404
    assert post(client, school, "/classes", {**payload, "name": "  ", "code": "G9"}).status_code == 422


def test_get_class_and_its_sections(client, school):
    headers = school.header("teacher")

    response = client.get(f"{API}/classes/{school.class_id}", headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Grade 4"

    sections = client.get(f"{API}/classes/{school.class_id}/sections", headers=headers).json()
    assert [(s["code"], s["student_count"]) for s in sections] == [("G4A", 4)]

    assert client.get(f"{API}/classes/{uuid.uuid4()}", headers=headers).status_code == 404
    assert client.get(f"{API}/classes/{uuid.uuid4()}/sections", headers=headers).status_code == 404


# Sections

def test_create_section(client, school):
    response = post(client, school, "/sections", {
        "class_id": str(school.class_id),
        "name": "B",
        "code": "G4B",
        "class_teacher_id": str(school.users["teacher2"]),
    })

    assert response.status_code == 201
    section = response.json()
    assert section["class_name"] == "Grade 4"
    assert section["branch_id"] == str(school.branch_id)
    assert section["student_count"] == 0

    assert post(client, school, "/sections", {"class_id": str(school.class_id), "name": "B", "code": "G4B"}).status_code == 409


def test_section_class_teacher_must_be_member(client, school, other_school):
    response = post(client, school, "/sections", {
        "class_id": str(school.class_id),
        "name": "C",
        "code": "G4C",
        "class_teacher_id": str(other_school.users["teacher"]),
    })
    assert response.status_code == 404
    assert response.json()["detail"] == "Class teacher is not a member of this tenant"

    response = post(client, school, "/sections", {"class_id": str(uuid.uuid4()), "name": "C", "code": "G4C"})
    assert response.status_code == 404
    assert response.json()["detail"] == "Class not found"


def test_update_section(client, school):
    headers = school.header("owner")
    url = f"{API}/sections/{school.section_id}"

    response = client.put(url, json={"class_teacher_id": str(school.users["teacher2"])}, headers=headers)
    assert response.status_code == 200
    assert response.json()["class_teacher_id"] == str(school.users["teacher2"])

    response = client.get(url, headers=school.header("teacher"))
    assert response.json()["student_count"] == 4

    assert client.put(url, json={"is_active": False}, headers=headers).status_code == 200
    assert client.get(f"{API}/sections", headers=headers).json() == []
    assert len(client.get(f"{API}/sections", params={"include_inactive": True}, headers=headers).json()) == 1

    assert client.put(url, json={"name": "Z"}, headers=school.header("teacher")).status_code == 403


# Students

def test_create_student(client, school):
    response = post(client, school, "/students", {
        "admission_number": " ADM-010 ",
        "first_name": "Esther",
        "last_name": "Ekai",
        "section_id": str(school.section_id),
        "roll_number": 5,
    })

    assert response.status_code == 201
    student = response.json()
    assert student["admission_number"] == "ADM-010"
    assert student["full_name"] == "Esther Ekai"
    assert student["status"] == "ACTIVE"

    duplicate = post(client, school, "/students", {"admission_number": "ADM-010", "first_name": "X", "last_name": "Y"})
    assert duplicate.status_code == 409

    unknown_section = post(client, school, "/students", {
        "admission_number": "ADM-011", "first_name": "X", "last_name": "Y", "section_id": str(uuid.uuid4()),
    })
    assert unknown_section.status_code == 404


def test_list_students_filters(client, school):
    headers = school.header("teacher")

    listing = client.get(f"{API}/students", params={"section_id": str(school.section_id)}, headers=headers).json()
    assert listing["total"] == 4

    found = client.get(f"{API}/students", params={"search": "chebet"}, headers=headers).json()
    assert [s["first_name"] for s in found["students"]] == ["Cynthia"]

    found = client.get(f"{API}/students", params={"search": "adm-002"}, headers=headers).json()
    assert [s["first_name"] for s in found["students"]] == ["Brian"]

    assert client.get(f"{API}/students", params={"status": "expelled"}, headers=headers).status_code == 400


def test_update_student_status(client, school):
    url = f"{API}/students/{school.student_ids[3]}"

    response = client.put(url, json={"status": "transferred"}, headers=school.header("owner"))
    assert response.status_code == 200
    assert response.json()["status"] == "TRANSFERRED"

    active = client.get(f"{API}/students", params={"status": "active"}, headers=school.header("teacher")).json()
    assert active["total"] == 3

    assert client.put(url, json={"status": "missing"}, headers=school.header("owner")).status_code == 400
    assert client.get(f"{API}/students/{uuid.uuid4()}", headers=school.header("teacher")).status_code == 404


def test_students_are_tenant_scoped(client, school, other_school):
    response = client.get(f"{API}/students/{other_school.student_ids[0]}", headers=school.header("teacher"))
    assert response.status_code == 404

    listing = client.get(f"{API}/students", headers=other_school.header("teacher")).json()
    assert listing["total"] == 4


# Period slots

def test_period_slots(client, school):
    payload = {"branch_id": str(school.branch_id), "name": "Period 3", "period_number": 3, "start_time": "09:20", "end_time": "10:00"}

    response = post(client, school, "/period-slots", payload)
    assert response.status_code == 201
    period_id = response.json()["id"]

    slots = client.get(f"{API}/period-slots", headers=school.header("teacher")).json()
    assert [s["name"] for s in slots] == ["Period 1", "Period 2", "Period 3"]

    response = client.delete(f"{API}/period-slots/{period_id}", headers=school.header("owner"))
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    slots = client.get(f"{API}/period-slots", headers=school.header("teacher")).json()
    assert len(slots) == 2


def test_period_slot_validation(client, school):
    payload = {"branch_id": str(school.branch_id), "name": "Backwards", "start_time": "10:00", "end_time": "09:00"}

    response = post(client, school, "/period-slots", payload)
    assert response.status_code == 400
    assert response.json()["detail"] == "Period end time must be after its start time"

    assert post(client, school, "/period-slots", {**payload, "end_time": "11:00"}, who="teacher").status_code == 403
    assert client.delete(f"{API}/period-slots/{uuid.uuid4()}", headers=school.header("owner")).status_code == 404
