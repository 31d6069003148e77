from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from campustrack.core.exceptions import ConflictError, ErrorCode, OperationFailedError
from campustrack.core.security import create_access_token
from campustrack.models import Department
from campustrack.services import timetable as timetable_service
from campustrack.services.transactions import transaction


def test_missing_token_is_unauthorized(client):
    response = client.get("/api/attendance/subjects")

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Not authenticated", "code": "UNAUTHORIZED"}


def test_expired_or_garbled_tokens_are_rejected(client, campus):
    user = campus.admin()
    expired = create_access_token(user.id, expires_delta=timedelta(minutes=-5))

    for token in (expired, "not-a-token"):
        response = client.get("/api/progression/stats", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"] == "Could not validate credentials"


def test_inactive_user_is_turned_away(client, campus, headers):
    department = campus.department("CSE")
    student = campus.student(department, 3, "Inactive Student", "2024CSE009", is_active=False)

    response = client.get("/api/students/me/attendance", headers=headers(student.user))

    assert response.status_code == 403
    assert response.json()["error"] == "User account is inactive"


def test_malformed_payload_uses_the_failure_envelope(client, campus, headers):
    response = client.post(
        "/api/timetable/entries",
        json={"day_of_week": 7, "period": 1},
        headers=headers(campus.admin()),
    )

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "VALIDATION_ERROR"
    assert body["error"]


def test_storage_errors_are_not_leaked(client, campus, headers, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT secret_table", {}, Exception("connection refused"))

    monkeypatch.setattr(timetable_service, "list_department_faculty", broken)
    admin = campus.admin()

    response = client.get("/api/timetable/departments/any/faculty", headers=headers(admin))

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "An unexpected error occurred. Please try again.",
        "code": "INTERNAL_ERROR",
    }


def test_transaction_reports_integrity_conflicts(db):
    db.add(Department(code="CSE", name="Computer Science"))
    db.commit()

    with pytest.raises(ConflictError):
        with transaction(
            db,
            failure_message="Failed to save department",
            failure_code=ErrorCode.INTERNAL_ERROR,
            conflict_message="Department already exists",
        ):
            db.add(Department(code="CSE", name="Duplicate"))
            db.flush()

    assert db.execute(select(func.count(Department.id))).scalar_one() == 1


def test_transaction_rolls_back_everything_on_storage_failure(db):
    with pytest.raises(OperationFailedError) as failure:
        with transaction(db, failure_message="Failed to save departments", failure_code=ErrorCode.TIMETABLE_FAILED):
            db.add(Department(code="ECE", name="Electronics"))
            db.flush()
            db.add(Department(code="ECE", name="Electronics Again"))
            db.flush()

    assert failure.value.code == "TIMETABLE_FAILED"
    assert failure.value.message == "Failed to save departments"
    assert db.execute(select(func.count(Department.id))).scalar_one() == 0


def test_transaction_only_maps_named_constraints_to_conflicts(db):
    db.add(Department(code="CSE", name="Computer Science"))
    db.commit()

    with pytest.raises(OperationFailedError) as failure:
        with transaction(
            db,
            failure_message="Failed to save department",
            failure_code=ErrorCode.TIMETABLE_FAILED,
            conflict_message="Slot already occupied",
            conflict_markers=("uq_timetables_slot",),
        ):
            db.add(Department(code="CSE", name="Duplicate"))
            db.flush()

    assert failure.value.code == "TIMETABLE_FAILED"
    assert db.execute(select(func.count(Department.id))).scalar_one() == 1
