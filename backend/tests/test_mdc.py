import pytest
from sqlalchemy import func, select

from campustrack.core.exceptions import UnauthorizedError
from campustrack.models import MDCAttendanceRecord, MDCCourse
from campustrack.services import mdc as mdc_service

MONDAY = "2024-09-02"


@pytest.fixture()
def mdc(campus):
    home = campus.department("CSE")
    host = campus.department("ECE")
    return {
        "admin": campus.admin(),
        "home": home,
        "host": host,
        "faculty": campus.faculty(host, "Faculty One"),
        "other_faculty": campus.faculty(host, "Faculty Two"),
        "s1": campus.student(home, 3, "Asha Nair", "2023CSE001"),
        "s2": campus.student(home, 3, "Bala Kumar", "2023CSE002"),
        "outsider": campus.student(home, 3, "Chitra Das", "2023CSE003"),
    }


def course_payload(mdc, **overrides) -> dict:
    payload = {
        "home_department_id": mdc["home"].id,
        "mdc_department_id": mdc["host"].id,
        "year": 2,
        "semester": 1,
        "course_name": "Sensors and Instrumentation",
        "student_ids": [mdc["s1"].id, mdc["s2"].id],
        "faculty_id": mdc["faculty"].id,
    }
    payload.update(overrides)
    return payload


def create_course(client, headers, mdc, **overrides) -> str:
    response = client.post("/api/mdc/courses", json=course_payload(mdc, **overrides), headers=headers(mdc["admin"]))
    assert response.status_code == 200
    return response.json()["data"]["id"]


def submit(client, headers, user, course_id, records, *, on_date=MONDAY, period=3):
    return client.post(
        "/api/mdc/attendance",
        json={"mdc_course_id": course_id, "date": on_date, "period": period, "records": records},
        headers=headers(user),
    )


def test_hosted_lookup_returns_faculty_only_for_the_hosting_department(client, mdc, headers):
    create_course(client, headers, mdc)
    admin_headers = headers(mdc["admin"])

    hosted = client.get(f"/api/mdc/hosted/{mdc['host'].id}/semesters/1", headers=admin_headers).json()["data"]
    assert hosted == {
        "course_name": "Sensors and Instrumentation",
        "subject_id": None,
        "faculty_id": mdc["faculty"].id,
        "faculty_name": "Faculty One",
    }

    home = client.get(f"/api/mdc/hosted/{mdc['home'].id}/semesters/1", headers=admin_headers).json()
    assert home["success"] is True
    assert home["data"] is None


def test_hosted_lookup_prefers_the_hosting_mdc_subject(client, campus, mdc, headers):
    subject = campus.subject(mdc["host"], 1, "ECE190", is_mdc=True)
    create_course(client, headers, mdc)

    hosted = client.get(f"/api/mdc/hosted/{mdc['host'].id}/semesters/1", headers=headers(mdc["admin"])).json()
    assert hosted["data"]["subject_id"] == subject.id
    assert hosted["data"]["course_name"] == "Subject ECE190"
    assert hosted["data"]["faculty_name"] == "Faculty One"


def test_home_listing_only_shows_courses_taken_by_that_department(client, mdc, headers):
    course_id = create_course(client, headers, mdc)
    admin_headers = headers(mdc["admin"])

    home = client.get(f"/api/mdc/home/{mdc['home'].id}", headers=admin_headers).json()["data"]
    assert [item["id"] for item in home] == [course_id]

    host = client.get(f"/api/mdc/home/{mdc['host'].id}", headers=admin_headers).json()["data"]
    assert host == []


def test_upsert_updates_the_existing_cohort_course(client, db, mdc, headers):
    first_id = create_course(client, headers, mdc)
    second_id = create_course(client, headers, mdc, course_name="  Embedded Systems ", student_ids=[mdc["s1"].id])

    assert first_id == second_id
    course = db.get(MDCCourse, first_id)
    assert course.course_name == "Embedded Systems"
    assert course.student_ids == [mdc["s1"].id]
    assert db.execute(select(func.count(MDCCourse.id))).scalar_one() == 1


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"year": 5}, "Year must be between 1 and 4"),
        ({"semester": 3}, "Semester must be between 1 and 2"),
        ({"course_name": "   "}, "Course name is required"),
        ({"student_ids": []}, "At least one student must be selected"),
    ],
)
def test_invalid_course_payloads(client, mdc, headers, overrides, message):
    response = client.post("/api/mdc/courses", json=course_payload(mdc, **overrides), headers=headers(mdc["admin"]))

    assert response.status_code == 422
    assert response.json() == {"success": False, "error": message, "code": "VALIDATION_ERROR"}


def test_unknown_roster_students_are_rejected(client, db, mdc, headers):
    response = client.post(
        "/api/mdc/courses",
        json=course_payload(mdc, student_ids=[mdc["s1"].id, "missing-student"]),
        headers=headers(mdc["admin"]),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_STUDENTS"
    assert db.execute(select(func.count(MDCCourse.id))).scalar_one() == 0


def test_assigned_faculty_submits_attendance(client, db, mdc, headers):
    course_id = create_course(client, headers, mdc)
    records = [
        {"student_id": mdc["s1"].id, "status": "PRESENT"},
        {"student_id": mdc["s2"].id, "status": "ABSENT"},
    ]

    response = submit(client, headers, mdc["faculty"].user, course_id, records)
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": None, "message": "Attendance submitted for 2 students"}

    correction = [{"student_id": mdc["s2"].id, "status": "PRESENT"}]
    resubmit = submit(client, headers, mdc["faculty"].user, course_id, correction)
    assert resubmit.status_code == 200
    assert db.execute(select(func.count(MDCAttendanceRecord.id))).scalar_one() == 2

    existing = client.get(
        f"/api/mdc/courses/{course_id}/attendance",
        params={"date": MONDAY, "period": 3},
        headers=headers(mdc["faculty"].user),
    ).json()["data"]
    assert existing == {mdc["s1"].id: {"status": "PRESENT"}, mdc["s2"].id: {"status": "PRESENT"}}


def test_other_faculty_cannot_submit(client, db, mdc, headers):
    course_id = create_course(client, headers, mdc)

    response = submit(
        client,
        headers,
        mdc["other_faculty"].user,
        course_id,
        [{"student_id": mdc["s1"].id, "status": "PRESENT"}],
    )

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"
    assert db.execute(select(func.count(MDCAttendanceRecord.id))).scalar_one() == 0


def test_submission_rules(client, db, mdc, headers):
    course_id = create_course(client, headers, mdc)
    faculty_user = mdc["faculty"].user

    sunday = submit(
        client,
        headers,
        faculty_user,
        course_id,
        [{"student_id": mdc["s1"].id, "status": "PRESENT"}],
        on_date="2024-09-08",
    )
    assert sunday.status_code == 422
    assert sunday.json()["code"] == "INVALID_DAY"

    off_roster = submit(
        client,
        headers,
        faculty_user,
        course_id,
        [
            {"student_id": mdc["s1"].id, "status": "PRESENT"},
            {"student_id": mdc["outsider"].id, "status": "PRESENT"},
        ],
    )
    assert off_roster.status_code == 422
    assert off_roster.json()["code"] == "INVALID_STUDENTS"
    assert db.execute(select(func.count(MDCAttendanceRecord.id))).scalar_one() == 0


def test_faculty_views_of_assigned_courses(client, mdc, headers):
    course_id = create_course(client, headers, mdc)
    faculty_user = mdc["faculty"].user

    courses = client.get("/api/mdc/faculty/courses", headers=headers(faculty_user)).json()["data"]
    assert len(courses) == 1
    assert courses[0]["student_count"] == 2
    assert courses[0]["home_department"]["code"] == "CSE"
    assert courses[0]["mdc_department"]["code"] == "ECE"

    students = client.get(f"/api/mdc/courses/{course_id}/students", headers=headers(faculty_user)).json()["data"]
    assert [item["name"] for item in students] == ["Asha Nair", "Bala Kumar"]

    other = client.get("/api/mdc/faculty/courses", headers=headers(mdc["other_faculty"].user)).json()["data"]
    assert other == []


def test_reassigning_hosted_faculty(client, mdc, headers):
    course_id = create_course(client, headers, mdc)

    response = client.put(
        f"/api/mdc/hosted/{mdc['host'].id}/semesters/1/faculty",
        json={"faculty_id": mdc["other_faculty"].id},
        headers=headers(mdc["admin"]),
    )
    assert response.status_code == 200
    assert response.json()["data"]["id"] == course_id
    assert response.json()["data"]["faculty_id"] == mdc["other_faculty"].id

    missing = client.put(
        f"/api/mdc/hosted/{mdc['home'].id}/semesters/1/faculty",
        json={"faculty_id": mdc["other_faculty"].id},
        headers=headers(mdc["admin"]),
    )
    assert missing.status_code == 404
    assert missing.json()["error"] == "No MDC course found for this department and semester"


def test_deleting_a_course_removes_its_attendance(client, db, mdc, headers):
    course_id = create_course(client, headers, mdc)
    submit(client, headers, mdc["faculty"].user, course_id, [{"student_id": mdc["s1"].id, "status": "PRESENT"}])

    response = client.delete(f"/api/mdc/courses/{course_id}", headers=headers(mdc["admin"]))

    assert response.status_code == 200
    assert response.json()["data"] == {"id": course_id}
    assert db.execute(select(func.count(MDCCourse.id))).scalar_one() == 0
    assert db.execute(select(func.count(MDCAttendanceRecord.id))).scalar_one() == 0


def test_course_admin_requires_admin_role(db, mdc):
    with pytest.raises(UnauthorizedError):
        mdc_service.list_home_mdc_courses(db, current_user=mdc["faculty"].user, department_id=mdc["home"].id)
