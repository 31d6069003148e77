from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql

from campustrack.core.exceptions import ConflictError, ResourceNotFoundError, UnauthorizedError
from campustrack.models import FacultySubject, TimetableEntry
from campustrack.schemas.timetable import TimetableEntryCreate, TimetableEntryUpdate
from campustrack.services import faculty_assignments
from campustrack.services import timetable as timetable_service


@pytest.fixture()
def setup(campus):
    department = campus.department("CSE")
    return {
        "admin": campus.admin(),
        "department": department,
        "semester": campus.semesters[3],
        "subject": campus.subject(department, 3, "CSE201"),
        "other_subject": campus.subject(department, 3, "CSE202"),
        "faculty": campus.faculty(department, "Faculty Y"),
        "other_faculty": campus.faculty(department, "Faculty Z"),
    }


def entry_payload(setup, *, day=1, period=2, subject=None, faculty=None) -> dict:
    semester = setup["semester"]
    return {
        "day_of_week": day,
        "period": period,
        "subject_id": (subject or setup["subject"]).id,
        "faculty_id": (faculty or setup["faculty"]).id,
        "room": " A-101 ",
        "department_id": setup["department"].id,
        "semester_id": semester.id,
        "academic_year_id": semester.academic_year_id,
    }


def create_entry(db, setup, **kwargs) -> TimetableEntry:
    return timetable_service.create_timetable_entry(
        db,
        current_user=setup["admin"],
        payload=TimetableEntryCreate(**entry_payload(setup, **kwargs)),
    )


def grant_exists(db, faculty, subject) -> bool:
    return faculty_assignments.is_assigned(db, faculty_id=faculty.id, subject_id=subject.id)


def test_create_entry_over_http_grants_subject(client, db, setup, headers):
    response = client.post("/api/timetable/entries", json=entry_payload(setup), headers=headers(setup["admin"]))

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["room"] == "A-101"
    assert body["data"]["subject"]["code"] == "CSE201"
    assert body["data"]["faculty"]["name"] == "Faculty Y"
    assert grant_exists(db, setup["faculty"], setup["subject"])


def test_second_entry_for_occupied_slot_is_a_conflict(client, db, setup, headers):
    first = client.post("/api/timetable/entries", json=entry_payload(setup), headers=headers(setup["admin"]))
    assert first.status_code == 201

    second = client.post(
        "/api/timetable/entries",
        json=entry_payload(setup, subject=setup["other_subject"], faculty=setup["other_faculty"]),
        headers=headers(setup["admin"]),
    )

    assert second.status_code == 409
    assert second.json() == {
        "success": False,
        "error": "Slot already occupied. Please delete the existing entry first.",
        "code": "CONFLICT",
    }
    assert db.execute(select(func.count(TimetableEntry.id))).scalar_one() == 1
    assert not grant_exists(db, setup["other_faculty"], setup["other_subject"])


def test_grant_exists_exactly_while_an_entry_references_the_pair(db, setup):
    first = create_entry(db, setup, day=1, period=2)
    assert grant_exists(db, setup["faculty"], setup["subject"])

    timetable_service.delete_timetable_entry(db, current_user=setup["admin"], entry_id=first.id)
    assert not grant_exists(db, setup["faculty"], setup["subject"])

    first = create_entry(db, setup, day=1, period=2)
    second = create_entry(db, setup, day=3, period=4)
    rows = db.execute(select(func.count(FacultySubject.id))).scalar_one()
    assert rows == 1

    timetable_service.delete_timetable_entry(db, current_user=setup["admin"], entry_id=first.id)
    assert grant_exists(db, setup["faculty"], setup["subject"])

    timetable_service.delete_timetable_entry(db, current_user=setup["admin"], entry_id=second.id)
    assert not grant_exists(db, setup["faculty"], setup["subject"])


def test_update_moves_grant_to_the_new_faculty(db, setup):
    entry = create_entry(db, setup)

    updated = timetable_service.update_timetable_entry(
        db,
        current_user=setup["admin"],
        entry_id=entry.id,
        payload=TimetableEntryUpdate(faculty_id=setup["other_faculty"].id),
    )

    assert updated.faculty_id == setup["other_faculty"].id
    assert grant_exists(db, setup["other_faculty"], setup["subject"])
    assert not grant_exists(db, setup["faculty"], setup["subject"])


def test_update_keeps_grant_still_used_by_another_entry(db, setup):
    entry = create_entry(db, setup, day=1, period=1)
    create_entry(db, setup, day=2, period=1)

    timetable_service.update_timetable_entry(
        db,
        current_user=setup["admin"],
        entry_id=entry.id,
        payload=TimetableEntryUpdate(subject_id=setup["other_subject"].id),
    )

    assert grant_exists(db, setup["faculty"], setup["subject"])
    assert grant_exists(db, setup["faculty"], setup["other_subject"])


def test_update_into_occupied_slot_changes_nothing(db, setup):
    create_entry(db, setup, day=1, period=1)
    movable = create_entry(db, setup, day=1, period=2, subject=setup["other_subject"], faculty=setup["other_faculty"])

    with pytest.raises(ConflictError):
        timetable_service.update_timetable_entry(
            db,
            current_user=setup["admin"],
            entry_id=movable.id,
            payload=TimetableEntryUpdate(period=1),
        )

    db.expire_all()
    assert db.get(TimetableEntry, movable.id).period == 2


def test_subject_outside_department_semester_is_rejected(db, campus, setup):
    foreign = campus.subject(setup["department"], 5, "CSE301")

    with pytest.raises(ResourceNotFoundError, match="Subject not found in this department/semester"):
        create_entry(db, setup, subject=foreign)

    assert db.execute(select(func.count(TimetableEntry.id))).scalar_one() == 0
    assert db.execute(select(func.count(FacultySubject.id))).scalar_one() == 0


def test_faculty_from_another_department_is_rejected(db, campus, setup):
    outsider = campus.faculty(campus.department("ECE"), "Faculty Outside")

    with pytest.raises(ResourceNotFoundError, match="Faculty not found in this department"):
        create_entry(db, setup, faculty=outsider)


def test_release_locks_the_grant_before_counting_references(db, setup, monkeypatch):
    entry = create_entry(db, setup)
    statements = []
    execute = db.execute

    def recording_execute(statement, *args, **kwargs):
        statements.append(str(statement.compile(dialect=postgresql.dialect())))
        return execute(statement, *args, **kwargs)

    monkeypatch.setattr(db, "execute", recording_execute)
    timetable_service.delete_timetable_entry(db, current_user=setup["admin"], entry_id=entry.id)
    monkeypatch.undo()

    locked = next(
        index for index, sql in enumerate(statements) if "FROM faculty_subjects" in sql and "FOR UPDATE" in sql
    )
    counted = next(index for index, sql in enumerate(statements) if "count(timetables.id)" in sql)
    assert locked < counted
    assert not grant_exists(db, setup["faculty"], setup["subject"])


def test_release_without_a_grant_is_a_no_op(db, setup):
    released = faculty_assignments.release_if_unreferenced(
        db,
        faculty_id=setup["faculty"].id,
        subject_id=setup["subject"].id,
    )

    assert released is False


def test_unknown_academic_year_is_not_found(client, db, setup, headers):
    payload = entry_payload(setup)
    payload["academic_year_id"] = "no-such-year"

    response = client.post("/api/timetable/entries", json=payload, headers=headers(setup["admin"]))

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Academic year not found", "code": "NOT_FOUND"}
    assert db.execute(select(func.count(TimetableEntry.id))).scalar_one() == 0

    entry = create_entry(db, setup)
    with pytest.raises(ResourceNotFoundError, match="Academic year not found"):
        timetable_service.update_timetable_entry(
            db,
            current_user=setup["admin"],
            entry_id=entry.id,
            payload=TimetableEntryUpdate(academic_year_id="no-such-year"),
        )
    db.expire_all()
    assert db.get(TimetableEntry, entry.id).academic_year_id == setup["semester"].academic_year_id


def test_only_admin_can_edit_timetable(client, campus, setup, headers):
    student = campus.student(setup["department"], 3, "Student One", "2024CSE001")
    faculty_user = setup["faculty"].user

    for user in (student.user, faculty_user):
        response = client.post("/api/timetable/entries", json=entry_payload(setup), headers=headers(user))
        assert response.status_code == 403
        assert response.json()["code"] == "UNAUTHORIZED"
        assert response.json()["error"] == "Unauthorized: Admin access required"


def test_service_rejects_non_admin_caller(db, setup):
    with pytest.raises(UnauthorizedError):
        timetable_service.create_timetable_entry(
            db,
            current_user=setup["faculty"].user,
            payload=TimetableEntryCreate(**entry_payload(setup)),
        )


def test_missing_entry_reports_not_found(client, setup, headers):
    response = client.delete("/api/timetable/entries/missing", headers=headers(setup["admin"]))

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_grid_colours_are_stable_per_subject(client, db, setup, headers):
    create_entry(db, setup, day=1, period=1)
    create_entry(db, setup, day=1, period=2, subject=setup["other_subject"])
    url = f"/api/timetable/departments/{setup['department'].id}/semesters/{setup['semester'].id}"

    first = client.get(url, headers=headers(setup["admin"])).json()["data"]
    second = client.get(url, headers=headers(setup["admin"])).json()["data"]

    colours = {item["subject_id"]: item["subject_color"] for item in first}
    assert colours == {setup["subject"].id: "blue", setup["other_subject"].id: "purple"}
    assert {item["subject_id"]: item["subject_color"] for item in second} == colours


def test_faculty_and_student_see_their_own_grids(client, db, campus, setup, headers):
    create_entry(db, setup, day=1, period=1)
    create_entry(db, setup, day=2, period=3, subject=setup["other_subject"], faculty=setup["other_faculty"])
    student = campus.student(setup["department"], 3, "Student One", "2024CSE001")
    other_semester_student = campus.student(setup["department"], 5, "Student Five", "2022CSE001")

    faculty_grid = client.get("/api/timetable/faculty/me", headers=headers(setup["faculty"].user)).json()["data"]
    assert [(item["day_of_week"], item["period"]) for item in faculty_grid] == [(1, 1)]

    student_grid = client.get("/api/timetable/student/me", headers=headers(student.user)).json()["data"]
    assert [(item["day_of_week"], item["period"]) for item in student_grid] == [(1, 1), (2, 3)]

    empty_grid = client.get("/api/timetable/student/me", headers=headers(other_semester_student.user)).json()["data"]
    assert empty_grid == []


def test_department_lookups_for_the_editor(client, campus, setup, headers):
    campus.subject(setup["department"], 5, "CSE301")
    url = f"/api/timetable/departments/{setup['department'].id}"

    subjects = client.get(
        f"{url}/subjects",
        params={"semester_id": setup["semester"].id},
        headers=headers(setup["admin"]),
    ).json()["data"]
    assert [item["code"] for item in subjects] == ["CSE201", "CSE202"]

    faculty = client.get(f"{url}/faculty", headers=headers(setup["admin"])).json()["data"]
    assert [item["name"] for item in faculty] == ["Faculty Y", "Faculty Z"]


def test_subjects_for_date_group_periods_per_subject(client, db, setup, headers):
    create_entry(db, setup, day=1, period=4)
    create_entry(db, setup, day=1, period=2)
    create_entry(db, setup, day=1, period=3, subject=setup["other_subject"])
    create_entry(db, setup, day=2, period=1)
    faculty_headers = headers(setup["faculty"].user)

    monday = client.get("/api/timetable/faculty/me/subjects", params={"date": "2024-09-02"}, headers=faculty_headers)

    assert monday.status_code == 200
    subjects = monday.json()["data"]
    assert [(item["code"], item["periods"]) for item in subjects] == [("CSE201", [2, 4]), ("CSE202", [3])]
    assert subjects[0]["room"] == "A-101"
    assert subjects[0]["semester"]["number"] == 3

    sunday = client.get("/api/timetable/faculty/me/subjects", params={"date": "2024-09-08"}, headers=faculty_headers)
    assert sunday.json()["data"] == []

    admin = client.get(
        "/api/timetable/faculty/me/subjects",
        params={"date": "2024-09-02"},
        headers=headers(setup["admin"]),
    )
    assert admin.status_code == 403


def test_today_classes_follow_the_weekday(db, setup):
    create_entry(db, setup, day=1, period=1)
    create_entry(db, setup, day=2, period=3)
    faculty_user = setup["faculty"].user

    tuesday = timetable_service.get_today_classes(db, current_user=faculty_user, today=date(2024, 9, 3))
    sunday = timetable_service.get_today_classes(db, current_user=faculty_user, today=date(2024, 9, 8))

    assert [(item.day_of_week, item.period) for item in tuesday] == [(2, 3)]
    assert sunday == []


def test_admin_sees_one_faculty_members_timetable(client, db, campus, setup, headers):
    create_entry(db, setup, day=1, period=1)
    create_entry(db, setup, day=3, period=2, subject=setup["other_subject"])
    create_entry(db, setup, day=4, period=5, faculty=setup["other_faculty"])
    url = f"/api/timetable/departments/{setup['department'].id}/faculty/{setup['faculty'].id}"
    admin_headers = headers(setup["admin"])

    unified = client.get(url, headers=admin_headers)
    assert unified.status_code == 200
    data = unified.json()["data"]
    assert data["faculty"]["name"] == "Faculty Y"
    assert [(item["day_of_week"], item["period"]) for item in data["timetable"]] == [(1, 1), (3, 2)]
    assert [item["subject_color"] for item in data["timetable"]] == ["blue", "purple"]

    stats = client.get(f"{url}/stats", headers=admin_headers).json()["data"]
    assert stats == {"total_periods": 2, "total_subjects": 2, "total_semesters": 1}

    elsewhere = campus.department("ECE")
    missing = client.get(
        f"/api/timetable/departments/{elsewhere.id}/faculty/{setup['faculty'].id}",
        headers=admin_headers,
    )
    assert missing.status_code == 404
    assert missing.json()["error"] == "Faculty not found in this department"

    denied = client.get(url, headers=headers(setup["faculty"].user))
    assert denied.status_code == 403


def test_timetable_changes_are_logged_for_the_department(client, db, campus, setup, headers):
    entry = create_entry(db, setup)
    entry_id = entry.id
    timetable_service.delete_timetable_entry(db, current_user=setup["admin"], entry_id=entry_id)
    admin_headers = headers(setup["admin"])

    response = client.get(f"/api/timetable/departments/{setup['department'].id}/activity", headers=admin_headers)

    assert response.status_code == 200
    items = response.json()["data"]
    assert sorted(item["action"] for item in items) == ["timetable.entry.create", "timetable.entry.delete"]
    assert {item["actor_role"] for item in items} == {"ADMIN"}
    assert {item["actor_id"] for item in items} == {setup["admin"].id}
    assert {item["entity_id"] for item in items} == {entry_id}

    elsewhere = campus.department("ECE")
    other = client.get(f"/api/timetable/departments/{elsewhere.id}/activity", headers=admin_headers)
    assert other.json()["data"] == []
