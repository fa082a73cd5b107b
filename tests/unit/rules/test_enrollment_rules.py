"""Tests for the enrollment state machine and academic record rules."""

import pytest

from coursereg.rules import (
    CapacityError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    Principal,
    StateError,
    ValidationError,
    assert_can_drop,
    assert_can_enroll,
    assert_can_grade,
    assert_can_transition,
    attendance_percentage,
    can_manage,
    validate_attendance,
    validate_grade,
)
from coursereg.store import (
    Course,
    CourseStatus,
    Enrollment,
    EnrollmentStatus,
    Grade,
    RecordState,
    Role,
)


def build_course(max_students=2, status=CourseStatus.OPEN, record_state=RecordState.ACTIVE):
    return Course(
        code="CS101",
        title="Intro",
        description="Learn to program.",
        credits=3,
        department="Computer Science",
        instructor_id="i1",
        max_students=max_students,
        schedule_days=["Monday"],
        schedule_start="09:00",
        schedule_end="10:00",
        semester="Fall",
        year=2025,
        status=status.value,
        record_state=record_state.value,
    )


def build_enrollment(status=EnrollmentStatus.ENROLLED, record_state=RecordState.ACTIVE):
    return Enrollment(
        student_id="s1",
        course_id="c1",
        status=status.value,
        record_state=record_state.value,
    )


@pytest.mark.unit
class TestAssertCanEnroll:
    """Checks run in order: existence, status, capacity, duplicate."""

    def test_open_course_with_space(self):
        course = build_course()

        assert assert_can_enroll(course, seats_taken=1, has_active=False) is course

    def test_missing_course(self):
        with pytest.raises(NotFoundError, match="Course not found"):
            assert_can_enroll(None, seats_taken=0, has_active=False)

    def test_soft_deleted_course(self):
        with pytest.raises(NotFoundError):
            assert_can_enroll(build_course(record_state=RecordState.INACTIVE), 0, False)

    @pytest.mark.parametrize("status", [CourseStatus.CLOSED, CourseStatus.CANCELLED])
    def test_course_not_open(self, status):
        with pytest.raises(StateError, match="Course is not open for enrollment"):
            assert_can_enroll(build_course(status=status), 0, False)

    def test_full_course(self):
        with pytest.raises(CapacityError, match="Course is full"):
            assert_can_enroll(build_course(max_students=2), 2, False)

    def test_already_enrolled(self):
        with pytest.raises(ConflictError, match="Already enrolled in this course"):
            assert_can_enroll(build_course(), 0, True)

    def test_full_checked_before_duplicate(self):
        with pytest.raises(CapacityError):
            assert_can_enroll(build_course(max_students=1), 1, True)


@pytest.mark.unit
class TestAssertCanDrop:
    def test_student_drops_own(self):
        assert_can_drop(Principal(id="s1", role=Role.STUDENT), build_enrollment())

    def test_admin_drops_any(self):
        assert_can_drop(Principal(id="a1", role=Role.ADMIN), build_enrollment())

    def test_other_student_forbidden(self):
        with pytest.raises(ForbiddenError, match="Not authorized to drop this enrollment"):
            assert_can_drop(Principal(id="s2", role=Role.STUDENT), build_enrollment())

    @pytest.mark.parametrize(
        "enrollment",
        [
            build_enrollment(EnrollmentStatus.DROPPED, RecordState.INACTIVE),
            build_enrollment(EnrollmentStatus.COMPLETED),
            build_enrollment(EnrollmentStatus.FAILED),
        ],
    )
    def test_not_enrolled_rejected(self, enrollment):
        with pytest.raises(StateError, match="Enrollment is not active"):
            assert_can_drop(Principal(id="s1", role=Role.STUDENT), enrollment)


@pytest.mark.unit
class TestManage:
    def test_owner_instructor_and_admin(self):
        course = build_course()

        assert can_manage(Principal(id="i1", role=Role.INSTRUCTOR), course)
        assert can_manage(Principal(id="a1", role=Role.ADMIN), course)

    def test_other_instructor_forbidden(self):
        with pytest.raises(ForbiddenError, match="manage enrollments for this course"):
            assert_can_grade(Principal(id="i2", role=Role.INSTRUCTOR), build_course())


@pytest.mark.unit
class TestGrades:
    @pytest.mark.parametrize("grade", ["A+", "B-", "F", "P", "NP"])
    def test_valid_grades(self, grade):
        assert validate_grade(grade) == Grade(grade)

    @pytest.mark.parametrize("grade", ["E", "a", "A++", ""])
    def test_invalid_grades(self, grade):
        with pytest.raises(ValidationError) as exc_info:
            validate_grade(grade)

        assert exc_info.value.details[0].field == "grade"
        assert exc_info.value.message.startswith("Grade must be one of: A+, A, A-")


@pytest.mark.unit
class TestAttendance:
    """Tests for attendance validation and percentage."""

    def test_valid_counts(self):
        assert validate_attendance(10, 8) == (10, 8)
        assert validate_attendance(0, 0) == (0, 0)

    def test_attended_exceeds_total(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_attendance(10, 11)

        assert exc_info.value.message == "Attended classes cannot exceed total classes"
        assert exc_info.value.details[0].field == "attendedClasses"

    def test_negative_counts_list_each_field(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_attendance(-1, -2)

        assert exc_info.value.message == "Validation failed"
        assert [d.field for d in exc_info.value.details] == ["totalClasses", "attendedClasses"]

    def test_bool_is_not_a_count(self):
        with pytest.raises(ValidationError):
            validate_attendance(True, 0)

    @pytest.mark.parametrize(
        ("total", "attended", "expected"),
        [(10, 8, 80), (0, 0, 0), (3, 2, 67), (3, 1, 33), (8, 1, 13), (200, 1, 1), (7, 7, 100)],
    )
    def test_percentage_rounds_half_up(self, total, attended, expected):
        assert attendance_percentage(total, attended) == expected


@pytest.mark.unit
class TestTransition:
    @pytest.mark.parametrize("status", ["completed", "failed"])
    def test_enrolled_to_final(self, status):
        assert assert_can_transition(build_enrollment(), status) == EnrollmentStatus(status)

    @pytest.mark.parametrize("status", ["dropped", "enrolled", "passed"])
    def test_other_targets_rejected(self, status):
        with pytest.raises(ValidationError, match="Status must be one of: completed, failed"):
            assert_can_transition(build_enrollment(), status)

    def test_final_enrollment_cannot_move(self):
        with pytest.raises(StateError, match="Cannot change status of a completed enrollment"):
            assert_can_transition(build_enrollment(EnrollmentStatus.COMPLETED), "failed")
