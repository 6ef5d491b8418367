"""HTTP tests for enrollment routes with a mocked EnrollmentService."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.courses.dependencies import set_course_service_getter
from src.enrollments.dependencies import set_enrollment_service_getter
from src.enrollments.models import Enrollment, EnrollmentStatus
from src.enrollments.service import (
    AlreadyEnrolledError,
    ConcurrentModificationError,
    EnrollmentAccessError,
    EnrollmentNotFoundError,
    InvalidEnrollmentStateError,
)


@pytest.fixture
def enrollment_service():
    return MagicMock()


@pytest.fixture
def course_service():
    service = MagicMock()
    service.get_course = AsyncMock(return_value=None)
    return service


@pytest.fixture
def api(client: TestClient, enrollment_service, course_service) -> TestClient:
    set_enrollment_service_getter(lambda: enrollment_service)
    set_course_service_getter(lambda: course_service)
    return client


class TestEnroll:
    def test_requires_token(self, api: TestClient) -> None:
        response = api.post("/api/enrollments", json={"course_id": str(uuid4())})
        assert response.status_code == 401

    def test_instructor_cannot_enroll(self, api, instructor, auth_headers) -> None:
        response = api.post(
            "/api/enrollments",
            json={"course_id": str(uuid4())},
            headers=auth_headers(instructor),
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Access denied"

    def test_enroll(self, api, enrollment_service, student, auth_headers) -> None:
        course_id = uuid4()
        enrollment_service.enroll = AsyncMock(
            return_value=Enrollment(user_id=student.id, course_id=course_id)
        )

        response = api.post(
            "/api/enrollments",
            json={"course_id": str(course_id), "notes": "Weekends only"},
            headers=auth_headers(student),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["progress"] == 0
        assert data["course_id"] == str(course_id)
        called_user, called_course, notes = enrollment_service.enroll.call_args.args
        assert called_user.id == student.id
        assert called_course == course_id
        assert notes == "Weekends only"

    def test_duplicate(self, api, enrollment_service, student, auth_headers) -> None:
        enrollment_service.enroll = AsyncMock(side_effect=AlreadyEnrolledError())

        response = api.post(
            "/api/enrollments",
            json={"course_id": str(uuid4())},
            headers=auth_headers(student),
        )

        assert response.status_code == 409
        assert response.json()["message"] == "You are already enrolled in this course"

    def test_validation_errors(self, api, student, auth_headers) -> None:
        response = api.post(
            "/api/enrollments",
            json={"course_id": "not-a-uuid", "notes": "x" * 501},
            headers=auth_headers(student),
        )

        assert response.status_code == 400
        data = response.json()
        assert data["message"] == "Validation failed"
        fields = {error["field"] for error in data["errors"]}
        assert fields == {"body.course_id", "body.notes"}
        assert all(error["message"] for error in data["errors"])


class TestModeration:
    def test_student_cannot_approve(self, api, student, auth_headers) -> None:
        response = api.put(
            f"/api/enrollments/{uuid4()}/approve", headers=auth_headers(student)
        )
        assert response.status_code == 403

    def test_approve(self, api, enrollment_service, admin, student, auth_headers) -> None:
        enrollment = Enrollment(user_id=student.id, course_id=uuid4())
        enrollment.approve()
        enrollment_service.approve = AsyncMock(return_value=enrollment)

        response = api.put(
            f"/api/enrollments/{enrollment.id}/approve", headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert response.json()["status"] == "approved"

    def test_approve_non_pending(
        self, api, enrollment_service, admin, auth_headers
    ) -> None:
        enrollment_service.approve = AsyncMock(
            side_effect=InvalidEnrollmentStateError(
                "Only pending enrollments can be approved"
            )
        )

        response = api.put(
            f"/api/enrollments/{uuid4()}/approve", headers=auth_headers(admin)
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Only pending enrollments can be approved"

    def test_reject_with_reason(
        self, api, enrollment_service, admin, student, auth_headers
    ) -> None:
        enrollment = Enrollment(user_id=student.id, course_id=uuid4())
        enrollment.reject("Course is full")
        enrollment_service.reject = AsyncMock(return_value=enrollment)

        response = api.put(
            f"/api/enrollments/{enrollment.id}/reject",
            json={"reason": "Course is full"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        assert enrollment_service.reject.call_args.args[2] == "Course is full"

    def test_list_is_paginated(
        self, api, enrollment_service, admin, auth_headers
    ) -> None:
        enrollment_service.list_enrollments = AsyncMock(
            return_value=[
                Enrollment(user_id=uuid4(), course_id=uuid4()) for _ in range(25)
            ]
        )

        response = api.get(
            "/api/enrollments?page=3&limit=10", headers=auth_headers(admin)
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["items"]) == 5
        assert data["total"] == 25
        assert data["total_pages"] == 3
        assert data["current_page"] == 3
        assert data["has_next_page"] is False
        assert data["has_prev_page"] is True

    def test_limit_out_of_range(self, api, admin, auth_headers) -> None:
        response = api.get("/api/enrollments?limit=0", headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "query.limit"


class TestLearning:
    def _lesson(self) -> dict[str, str]:
        return {"module_id": str(uuid4()), "lesson_id": str(uuid4())}

    def test_complete_lesson(
        self, api, enrollment_service, student, auth_headers
    ) -> None:
        enrollment = Enrollment(user_id=student.id, course_id=uuid4())
        enrollment.approve()
        for _ in range(8):
            enrollment.complete_lesson(uuid4(), uuid4(), total_lessons=10)
        enrollment_service.complete_lesson = AsyncMock(return_value=enrollment)

        response = api.post(
            f"/api/enrollments/{enrollment.id}/complete-lesson",
            json=self._lesson(),
            headers=auth_headers(student),
        )

        assert response.status_code == 200
        assert response.json() == {
            "message": "Lesson marked as completed",
            "progress": 80,
            "completed_lessons": 8,
            "status": "approved",
        }

    def test_not_owner_is_forbidden(
        self, api, enrollment_service, student, auth_headers
    ) -> None:
        enrollment_service.complete_lesson = AsyncMock(
            side_effect=EnrollmentAccessError()
        )

        response = api.post(
            f"/api/enrollments/{uuid4()}/complete-lesson",
            json=self._lesson(),
            headers=auth_headers(student),
        )

        assert response.status_code == 403

    def test_not_approved_is_bad_request(
        self, api, enrollment_service, student, auth_headers
    ) -> None:
        enrollment_service.complete_lesson = AsyncMock(
            side_effect=InvalidEnrollmentStateError(
                "Enrollment must be approved to complete lessons"
            )
        )

        response = api.post(
            f"/api/enrollments/{uuid4()}/complete-lesson",
            json=self._lesson(),
            headers=auth_headers(student),
        )

        assert response.status_code == 400

    def test_unknown_enrollment(
        self, api, enrollment_service, student, auth_headers
    ) -> None:
        enrollment_service.complete_lesson = AsyncMock(
            side_effect=EnrollmentNotFoundError()
        )

        response = api.post(
            f"/api/enrollments/{uuid4()}/complete-lesson",
            json=self._lesson(),
            headers=auth_headers(student),
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Enrollment not found"

    def test_concurrent_update_is_conflict(
        self, api, enrollment_service, student, auth_headers
    ) -> None:
        enrollment_service.complete_lesson = AsyncMock(
            side_effect=ConcurrentModificationError()
        )

        response = api.post(
            f"/api/enrollments/{uuid4()}/complete-lesson",
            json=self._lesson(),
            headers=auth_headers(student),
        )

        assert response.status_code == 409

    def test_negative_time_spent(self, api, student, auth_headers) -> None:
        response = api.post(
            f"/api/enrollments/{uuid4()}/complete-lesson",
            json={**self._lesson(), "time_spent": -5},
            headers=auth_headers(student),
        )
        assert response.status_code == 400

    def test_submit_quiz_reports_best_score(
        self, api, enrollment_service, student, auth_headers
    ) -> None:
        module_id, lesson_id = uuid4(), uuid4()
        enrollment = Enrollment(user_id=student.id, course_id=uuid4())
        enrollment.approve()
        enrollment.record_quiz_attempt(
            module_id, lesson_id, [1, 1], [1, 1], passing_score=70, time_spent=3
        )
        latest = enrollment.record_quiz_attempt(
            module_id, lesson_id, [1, 1], [0, 1], passing_score=70, time_spent=3
        )
        enrollment_service.submit_quiz = AsyncMock(
            return_value=(enrollment, latest, 70)
        )

        response = api.post(
            f"/api/enrollments/{enrollment.id}/submit-quiz",
            json={
                "module_id": str(module_id),
                "lesson_id": str(lesson_id),
                "answers": [0, 1],
                "time_spent": 3,
            },
            headers=auth_headers(student),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["result"]["score"] == 50
        assert data["result"]["attempt"] == 2
        assert data["result"]["passed"] is False
        assert data["best_score"] == 100
        assert data["passing_score"] == 70
        assert data["message"].startswith("Quiz completed")

    def test_empty_assignment_is_rejected(self, api, student, auth_headers) -> None:
        response = api.post(
            f"/api/enrollments/{uuid4()}/submit-assignment",
            json={**self._lesson(), "submission_text": "   "},
            headers=auth_headers(student),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    def test_certificate(self, api, enrollment_service, student, auth_headers) -> None:
        enrollment = Enrollment(
            user_id=student.id,
            course_id=uuid4(),
            status=EnrollmentStatus.COMPLETED.value,
        )
        enrollment.generate_certificate()
        enrollment_service.generate_certificate = AsyncMock(return_value=enrollment)

        response = api.post(
            f"/api/enrollments/{enrollment.id}/certificate",
            headers=auth_headers(student),
        )

        assert response.status_code == 200
        assert response.json()["certificate_url"] == enrollment.certificate_url


class TestViewing:
    def test_my_enrollments(self, api, enrollment_service, student, auth_headers) -> None:
        enrollment = Enrollment(user_id=student.id, course_id=uuid4())
        enrollment.approve()
        enrollment.complete_lesson(uuid4(), uuid4(), total_lessons=2, time_spent=90)
        enrollment_service.list_for_user = AsyncMock(return_value=[enrollment])

        response = api.get(
            "/api/enrollments/my?status=approved", headers=auth_headers(student)
        )

        assert response.status_code == 200
        item = response.json()["items"][0]
        assert item["progress"] == 50
        assert item["time_spent_hours"] == 1.5
        enrollment_service.list_for_user.assert_awaited_once_with(
            student.id, EnrollmentStatus.APPROVED
        )

    def test_get_other_users_enrollment(
        self, api, enrollment_service, student, mock_user_factory, auth_headers
    ) -> None:
        enrollment = Enrollment(user_id=mock_user_factory().id, course_id=uuid4())
        enrollment_service.require_enrollment = AsyncMock(return_value=enrollment)
        enrollment_service.ensure_can_view = MagicMock(
            side_effect=EnrollmentAccessError()
        )

        response = api.get(
            f"/api/enrollments/{enrollment.id}", headers=auth_headers(student)
        )

        assert response.status_code == 403

    def test_course_enrollments_for_other_instructor(
        self, api, course_service, instructor, auth_headers
    ) -> None:
        from src.courses.models import Course

        course_service.get_course = AsyncMock(
            return_value=Course(title="Design Basics", instructor_id=uuid4())
        )

        response = api.get(
            f"/api/enrollments/course/{uuid4()}", headers=auth_headers(instructor)
        )

        assert response.status_code == 403

    def test_stats_require_admin(self, api, instructor, auth_headers) -> None:
        response = api.get(
            "/api/enrollments/stats/overview", headers=auth_headers(instructor)
        )
        assert response.status_code == 403
