from fastapi.testclient import TestClient
from sqlmodel import Session, select

from clearance.models.StudentRequirement import StudentRequirement
from conftest import add_student


def course_requirement(**extra) -> dict:
    payload = {
        "scope": "course",
        "course_code": "CS101",
        "course_name": "Intro to Programming",
        "department": "CCS",
        "semester": "1st",
        "year_level": "1",
        "requirements": ["Final project", "Lab manual"],
    }
    payload.update(extra)
    return payload


def test_create_fans_out_to_matching_students(client: TestClient, session: Session, dean_headers, sms_client):
    add_student(session, "S-001", department="CCS", year_level="1", course_codes=["CS101"], phone_number="09170000001")
    add_student(session, "S-002", department="CCS", year_level="1")
    add_student(session, "S-003", department="CCS", year_level="2")
    add_student(session, "S-004", department="CBA", year_level="1")
    add_student(session, "S-005", department="CCS", year_level="1", course_codes=["CS999"])

    resp = client.post("/api/requirements/", json=course_requirement(), headers=dean_headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["students_assigned"] == 2
    assert body["students_failed"] == 0
    assert body["owner_role"] == "dean"

    records = session.exec(select(StudentRequirement).order_by(StudentRequirement.student_id)).all()
    assert [r.student_id for r in records] == ["S-001", "S-002"]
    assert all(r.status == "incomplete" and r.signed_by == "dean" and r.co_id == "dean-1" for r in records)
    assert [phone for phone, _ in sms_client.sent] == ["09170000001"]


def test_institutional_requirement_covers_everyone(client: TestClient, session: Session, library_headers):
    add_student(session, "S-001", department="CCS")
    add_student(session, "S-002", department="CBA")

    resp = client.post(
        "/api/requirements/",
        json={"scope": "institutional", "institutional_name": "Library", "semester": "1st", "requirements": ["Books"]},
        headers=library_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["students_assigned"] == 2


def test_requirement_list_must_not_be_empty(client: TestClient, dean_headers):
    resp = client.post("/api/requirements/", json=course_requirement(requirements=[]), headers=dean_headers)
    assert resp.status_code == 422


def test_course_scope_needs_course_code(client: TestClient, dean_headers):
    resp = client.post("/api/requirements/", json=course_requirement(course_code=None), headers=dean_headers)
    assert resp.status_code == 400


def test_students_cannot_create_requirements(client: TestClient, student_headers):
    resp = client.post("/api/requirements/", json=course_requirement(), headers=student_headers)
    assert resp.status_code == 403


def test_only_owner_can_update(client: TestClient, dean_headers, library_headers):
    created = client.post("/api/requirements/", json=course_requirement(), headers=dean_headers).json()

    resp = client.put(f"/api/requirements/{created['id']}", json={"description": "x"}, headers=library_headers)
    assert resp.status_code == 403

    resp = client.put(
        f"/api/requirements/{created['id']}",
        json={"description": "Bring printed copy", "requirements": ["Final project"]},
        headers=dean_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["requirements"] == ["Final project"]
    assert resp.json()["description"] == "Bring printed copy"


def test_list_and_get(client: TestClient, dean_headers, library_headers):
    created = client.post("/api/requirements/", json=course_requirement(), headers=dean_headers).json()

    assert [r["id"] for r in client.get("/api/requirements/", headers=library_headers).json()] == [created["id"]]
    assert client.get("/api/requirements/?mine=true", headers=library_headers).json() == []
    assert client.get(f"/api/requirements/{created['id']}", headers=library_headers).json()["course_code"] == "CS101"
    assert client.get("/api/requirements/999", headers=library_headers).status_code == 404


def test_delete_cascades_student_records(client: TestClient, session: Session, dean_headers):
    add_student(session, "S-001", department="CCS", year_level="1")
    created = client.post("/api/requirements/", json=course_requirement(), headers=dean_headers).json()

    resp = client.delete(f"/api/requirements/{created['id']}", headers=dean_headers)
    assert resp.status_code == 200
    assert resp.json()["student_records_removed"] == 1
    assert session.exec(select(StudentRequirement)).all() == []
