"""Enrollment rules: the enroll/drop/complete state machine and academic records.

State per (student, course) record::

    enrolled -> dropped | completed | failed

The three targets are terminal. A dropped record releases its seat and becomes
inactive; completed and failed records keep it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field

from coursereg.rules.exceptions import (
    CapacityError,
    ConflictError,
    FieldError,
    ForbiddenError,
    NotFoundError,
    StateError,
    ValidationError,
)
from coursereg.rules.validation import InputModel
from coursereg.store.models import CourseStatus, EnrollmentStatus, Grade, Role

if TYPE_CHECKING:
    from coursereg.rules.permissions import Principal
    from coursereg.store import Course, Enrollment

FINAL_STATUSES = frozenset({EnrollmentStatus.COMPLETED, EnrollmentStatus.FAILED})


class EnrollInput(InputModel):
    course_id: str = Field(..., min_length=1)
    student_id: str | None = None


class GradeInput(InputModel):
    grade: str


class AttendanceInput(InputModel):
    total_classes: int
    attended_classes: int


class StatusInput(InputModel):
    status: str
    notes: str | None = Field(default=None, max_length=500)


def assert_can_enroll(course: Course | None, seats_taken: int, has_active: bool) -> Course:
    """Check that a student may take a seat in ``course``.

    Checks run in a fixed order so the first failing condition decides the
    error.

    Returns:
        The course, once it is known to exist.

    Raises:
        NotFoundError: Course missing or soft-deleted.
        StateError: Course is closed or cancelled.
        CapacityError: No seats left.
        ConflictError: The student already holds an active enrollment.
    """
    if course is None or not course.is_active:
        raise NotFoundError("Course not found")
    if course.status != CourseStatus.OPEN.value:
        raise StateError("Course is not open for enrollment")
    if seats_taken >= course.max_students:
        raise CapacityError("Course is full")
    if has_active:
        raise ConflictError("Already enrolled in this course")
    return course


def is_enrolled(enrollment: Enrollment) -> bool:
    """Whether the record is active and still in the ENROLLED state."""
    return enrollment.is_active and enrollment.status == EnrollmentStatus.ENROLLED.value


def assert_can_drop(principal: Principal, enrollment: Enrollment) -> None:
    """Only the enrolled student or an admin may drop, and only while enrolled."""
    if not principal.is_admin and principal.id != enrollment.student_id:
        raise ForbiddenError("Not authorized to drop this enrollment")
    if not is_enrolled(enrollment):
        raise StateError("Enrollment is not active")


def can_manage(principal: Principal, course: Course) -> bool:
    """Admins, and the instructor who owns the course."""
    if principal.is_admin:
        return True
    return principal.role == Role.INSTRUCTOR and principal.id == course.instructor_id


def assert_can_grade(principal: Principal, course: Course) -> None:
    """Raise ForbiddenError unless the principal manages ``course``."""
    if not can_manage(principal, course):
        raise ForbiddenError("Not authorized to manage enrollments for this course")


def validate_grade(grade: str) -> Grade:
    """Parse a grade string.

    Raises:
        ValidationError: If it is not one of the accepted grades.
    """
    try:
        return Grade(grade)
    except ValueError:
        allowed = ", ".join(g.value for g in Grade)
        raise ValidationError.for_field("grade", f"Grade must be one of: {allowed}") from None


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def validate_attendance(total: int, attended: int) -> tuple[int, int]:
    """Check attendance counts.

    Returns:
        The validated ``(total, attended)`` pair.

    Raises:
        ValidationError: Listing each failing field.
    """
    errors = []
    if not _is_count(total):
        errors.append(("totalClasses", "Total classes must be a non-negative integer"))
    if not _is_count(attended):
        errors.append(("attendedClasses", "Attended classes must be a non-negative integer"))
    if not errors and attended > total:
        errors.append(("attendedClasses", "Attended classes cannot exceed total classes"))
    if errors:
        first = errors[0][1]
        raise ValidationError(
            first if len(errors) == 1 else "Validation failed",
            [FieldError(field=field, message=message) for field, message in errors],
        )
    return total, attended


def attendance_percentage(total: int, attended: int) -> int:
    """Attended share of total classes as a whole percentage, rounded half up."""
    if total == 0:
        return 0
    return (200 * attended + total) // (2 * total)


def assert_can_transition(enrollment: Enrollment, new_status: str) -> EnrollmentStatus:
    """Validate a status change requested through the status endpoint.

    Only an active ENROLLED record may move, and only to COMPLETED or FAILED.

    Returns:
        The parsed target status.

    Raises:
        ValidationError: Target is not completed or failed.
        StateError: The enrollment is no longer enrolled.
    """
    try:
        target = EnrollmentStatus(new_status)
    except ValueError:
        target = None
    if target not in FINAL_STATUSES:
        raise ValidationError.for_field("status", "Status must be one of: completed, failed")
    if not is_enrolled(enrollment):
        raise StateError(f"Cannot change status of a {enrollment.status} enrollment")
    return target
