"""Tests for enrollment use-cases in Registrar."""

from unittest.mock import patch

import pytest

from coursereg.rules import (
    CapacityError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StateError,
    ValidationError,
)
from coursereg.store import (
    CourseStatus,
    RecordState,
    Role,
    SeatUnavailableError,
)


@pytest.mark.unit
class TestEnroll:
    """Tests for enroll."""

    def test_student_enrolls_self(
        self, registrar, store, student_principal, instructor, make_course
    ):
        course = make_course(instructor, max_students=2)

        view = registrar.enroll(student_principal, course.id)

        assert view.student_id == student_principal.id
        assert view.status == "enrolled"
        assert view.attendance.percentage == 0
        assert view.course.code == course.code
        assert store.get_course(course.id).seats_taken == 1

    def test_course_view_reflects_enrollment(
        self, registrar, student, student_principal, instructor, make_course
    ):
        course = make_course(instructor, max_students=1)
        registrar.enroll(student_principal, course.id)

        view = registrar.get_course(None, course.id)

        assert view.enrollment_count == 1
        assert view.available_spots == 0
        assert view.is_full
        assert [s.id for s in view.enrolled_students] == [student.id]

    def test_capacity_enforced(self, registrar, make_user, principal_of, instructor, make_course):
        course = make_course(instructor, max_students=2)
        registrar.enroll(principal_of(make_user()), course.id)
        registrar.enroll(principal_of(make_user()), course.id)

        with pytest.raises(CapacityError, match="Course is full"):
            registrar.enroll(principal_of(make_user()), course.id)

    def test_duplicate_rejected(self, registrar, student_principal, instructor, make_course):
        course = make_course(instructor)
        registrar.enroll(student_principal, course.id)

        with pytest.raises(ConflictError, match="Already enrolled in this course"):
            registrar.enroll(student_principal, course.id)

    def test_closed_course(self, registrar, student_principal, instructor, make_course):
        course = make_course(instructor, status=CourseStatus.CLOSED)

        with pytest.raises(StateError, match="Course is not open for enrollment"):
            registrar.enroll(student_principal, course.id)

    def test_missing_course(self, registrar, student_principal):
        with pytest.raises(NotFoundError, match="Course not found"):
            registrar.enroll(student_principal, "missing")

    def test_instructor_forbidden(self, registrar, instructor_principal, instructor, make_course):
        course = make_course(instructor)

        with pytest.raises(ForbiddenError):
            registrar.enroll(instructor_principal, course.id)

    def test_student_cannot_enroll_others(
        self, registrar, student_principal, make_user, instructor, make_course
    ):
        course = make_course(instructor)
        other = make_user()

        with pytest.raises(ForbiddenError, match="Students can only enroll themselves"):
            registrar.enroll(student_principal, course.id, student_id=other.id)

    def test_admin_enrolls_named_student(
        self, registrar, admin_principal, student, instructor, make_course
    ):
        course = make_course(instructor)

        view = registrar.enroll(admin_principal, course.id, student_id=student.id)

        assert view.student_id == student.id

    def test_admin_must_name_student(self, registrar, admin_principal, instructor, make_course):
        course = make_course(instructor)

        with pytest.raises(ValidationError) as exc_info:
            registrar.enroll(admin_principal, course.id)

        assert exc_info.value.details[0].field == "studentId"

    def test_admin_cannot_enroll_instructor(
        self, registrar, admin_principal, instructor, make_course
    ):
        course = make_course(instructor)

        with pytest.raises(NotFoundError, match="Student not found"):
            registrar.enroll(admin_principal, course.id, student_id=instructor.id)

    def test_lost_seat_race_reports_full(
        self, registrar, store, student_principal, make_user, instructor, make_course
    ):
        course = make_course(instructor, max_students=1)
        real_enroll = store.enroll

        def take_last_seat(student_id, course_id):
            real_enroll(make_user().id, course_id)
            raise SeatUnavailableError("raced")

        with (
            patch.object(store, "enroll", side_effect=take_last_seat),
            pytest.raises(CapacityError, match="Course is full"),
        ):
            registrar.enroll(student_principal, course.id)


@pytest.mark.unit
class TestDrop:
    def test_drop_releases_seat(self, registrar, store, student_principal, instructor, make_course):
        course = make_course(instructor, max_students=1)
        enrollment = registrar.enroll(student_principal, course.id)

        view = registrar.drop(student_principal, enrollment.id)

        assert view.status == "dropped"
        assert not view.is_active
        assert store.get_course(course.id).seats_taken == 0
        assert registrar.get_course(None, course.id).enrollment_count == 0

    def test_drop_twice(self, registrar, student_principal, instructor, make_course):
        course = make_course(instructor)
        enrollment = registrar.enroll(student_principal, course.id)
        registrar.drop(student_principal, enrollment.id)

        with pytest.raises(StateError, match="Enrollment is not active"):
            registrar.drop(student_principal, enrollment.id)

    def test_other_student_cannot_drop(
        self, registrar, student_principal, make_user, principal_of, instructor, make_course
    ):
        course = make_course(instructor)
        enrollment = registrar.enroll(student_principal, course.id)

        with pytest.raises(ForbiddenError):
            registrar.drop(principal_of(make_user()), enrollment.id)

    def test_admin_drops(
        self, registrar, student_principal, admin_principal, instructor, make_course
    ):
        course = make_course(instructor)
        enrollment = registrar.enroll(student_principal, course.id)

        assert registrar.drop(admin_principal, enrollment.id).status == "dropped"

    def test_reenroll_after_drop(self, registrar, student_principal, instructor, make_course):
        course = make_course(instructor, max_students=1)
        first = registrar.enroll(student_principal, course.id)
        registrar.drop(student_principal, first.id)

        second = registrar.enroll(student_principal, course.id)

        assert second.id != first.id

    def test_missing_enrollment(self, registrar, student_principal):
        with pytest.raises(NotFoundError, match="Enrollment not found"):
            registrar.drop(student_principal, "missing")


@pytest.mark.unit
class TestEnrollmentQueries:
    """Tests for viewing enrollments."""

    def test_student_views_own(self, registrar, student_principal, instructor, make_course):
        course = make_course(instructor)
        enrollment = registrar.enroll(student_principal, course.id)

        view = registrar.get_enrollment(student_principal, enrollment.id)

        assert view.student.student_id == "S1000"
        assert view.course.instructor.id == instructor.id

    def test_owning_instructor_views(
        self, registrar, student_principal, instructor_principal, instructor, make_course
    ):
        course = make_course(instructor)
        enrollment = registrar.enroll(student_principal, course.id)

        assert registrar.get_enrollment(instructor_principal, enrollment.id).id == enrollment.id

    def test_other_student_cannot_view(
        self, registrar, student_principal, make_user, principal_of, instructor, make_course
    ):
        course = make_course(instructor)
        enrollment = registrar.enroll(student_principal, course.id)

        with pytest.raises(ForbiddenError, match="Not authorized to view this enrollment"):
            registrar.get_enrollment(principal_of(make_user()), enrollment.id)

    def test_student_lists_own_active(
        self, registrar, student, student_principal, instructor, make_course
    ):
        kept = make_course(instructor)
        dropped = make_course(instructor)
        registrar.enroll(student_principal, kept.id)
        registrar.drop(student_principal, registrar.enroll(student_principal, dropped.id).id)

        views = registrar.list_student_enrollments(student_principal, student.id)

        assert [v.course_id for v in views] == [kept.id]

    def test_student_cannot_list_others(self, registrar, student_principal, make_user):
        with pytest.raises(ForbiddenError):
            registrar.list_student_enrollments(student_principal, make_user().id)

    def test_course_enrollments_for_owner(
        self, registrar, student, student_principal, instructor_principal, instructor, make_course
    ):
        course = make_course(instructor)
        registrar.enroll(student_principal, course.id)

        views = registrar.list_course_enrollments(instructor_principal, course.id)

        assert [v.student.id for v in views] == [student.id]

    def test_course_enrollments_other_instructor(
        self, registrar, make_user, principal_of, instructor, make_course
    ):
        course = make_course(instructor)

        with pytest.raises(ForbiddenError):
            registrar.list_course_enrollments(principal_of(make_user(Role.INSTRUCTOR)), course.id)


@pytest.fixture
def enrollment(registrar, student_principal, instructor, make_course):
    course = make_course(instructor)
    return registrar.enroll(student_principal, course.id)


@pytest.mark.unit
class TestAcademicRecords:
    """Tests for grades, attendance and status."""

    def test_set_grade(self, registrar, instructor_principal, enrollment):
        assert registrar.set_grade(instructor_principal, enrollment.id, "B+").grade == "B+"

    def test_invalid_grade(self, registrar, instructor_principal, enrollment):
        with pytest.raises(ValidationError):
            registrar.set_grade(instructor_principal, enrollment.id, "Z")

    def test_student_cannot_grade(self, registrar, student_principal, enrollment):
        with pytest.raises(ForbiddenError, match="Not authorized to update grades"):
            registrar.set_grade(student_principal, enrollment.id, "A")

    def test_other_instructor_cannot_grade(
        self, registrar, make_user, principal_of, enrollment
    ):
        other = principal_of(make_user(Role.INSTRUCTOR))

        with pytest.raises(ForbiddenError, match="manage enrollments for this course"):
            registrar.set_grade(other, enrollment.id, "A")

    def test_set_attendance(self, registrar, instructor_principal, enrollment):
        view = registrar.set_attendance(instructor_principal, enrollment.id, 10, 8)

        assert view.attendance.total_classes == 10
        assert view.attendance.attended_classes == 8
        assert view.attendance.percentage == 80

    def test_attendance_recomputed_on_each_update(
        self, registrar, instructor_principal, enrollment
    ):
        registrar.set_attendance(instructor_principal, enrollment.id, 10, 8)

        view = registrar.set_attendance(instructor_principal, enrollment.id, 0, 0)

        assert view.attendance.percentage == 0

    def test_attendance_exceeding_total(self, registrar, instructor_principal, enrollment):
        with pytest.raises(ValidationError, match="cannot exceed"):
            registrar.set_attendance(instructor_principal, enrollment.id, 10, 11)

    def test_mark_completed_keeps_seat(
        self, registrar, store, instructor_principal, enrollment
    ):
        view = registrar.set_status(instructor_principal, enrollment.id, "completed", "Well done")

        assert view.status == "completed"
        assert view.notes == "Well done"
        assert view.is_active
        assert store.get_course(enrollment.course_id).seats_taken == 1

    def test_completed_cannot_be_dropped(
        self, registrar, student_principal, instructor_principal, enrollment
    ):
        registrar.set_status(instructor_principal, enrollment.id, "completed")

        with pytest.raises(StateError):
            registrar.drop(student_principal, enrollment.id)

    def test_status_cannot_be_dropped_value(self, registrar, instructor_principal, enrollment):
        with pytest.raises(ValidationError):
            registrar.set_status(instructor_principal, enrollment.id, "dropped")

    def test_final_status_cannot_change(self, registrar, instructor_principal, enrollment):
        registrar.set_status(instructor_principal, enrollment.id, "failed")

        with pytest.raises(StateError, match="Cannot change status of a failed enrollment"):
            registrar.set_status(instructor_principal, enrollment.id, "completed")

    def test_grade_after_course_deleted(
        self, registrar, store, instructor_principal, enrollment
    ):
        store.update_course(enrollment.course_id, {"record_state": RecordState.INACTIVE.value})

        assert registrar.set_grade(instructor_principal, enrollment.id, "A").grade == "A"
