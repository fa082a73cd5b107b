"""Course entity rules: input validation, uniqueness, ownership, derived state."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import Field, field_validator

from coursereg.rules.exceptions import ConflictError, FieldError, ForbiddenError, ValidationError
from coursereg.rules.permissions import Principal
from coursereg.rules.validation import InputModel, validate_payload
from coursereg.store.models import CourseStatus, Role, Semester, Weekday

if TYPE_CHECKING:
    from coursereg.store import Course, Store

CODE_PATTERN = r"^[A-Z]{2,4}[0-9]{3,4}$"
TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"
MIN_YEAR = 2020


def _normalize_code(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


def _unique_days(days: list[Weekday]) -> list[Weekday]:
    return list(dict.fromkeys(days))


class ScheduleTime(InputModel):
    start: str = Field(..., pattern=TIME_PATTERN)
    end: str = Field(..., pattern=TIME_PATTERN)


class Schedule(InputModel):
    """Weekly meeting pattern."""

    days: list[Weekday] = Field(..., min_length=1)
    time: ScheduleTime
    room: str | None = Field(default=None, max_length=100)

    dedupe_days = field_validator("days")(_unique_days)


class CourseInput(InputModel):
    """Payload for creating a course."""

    title: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., pattern=CODE_PATTERN)
    description: str = Field(..., min_length=10, max_length=1000)
    credits: int = Field(..., ge=1, le=6)
    department: str = Field(..., min_length=1, max_length=255)
    max_students: int = Field(..., ge=1, le=200)
    prerequisites: list[str] = Field(default_factory=list)
    schedule: Schedule
    semester: Semester
    year: int = Field(..., ge=MIN_YEAR)
    status: CourseStatus = CourseStatus.OPEN
    instructor: str | None = None

    normalize_code = field_validator("code", mode="before")(_normalize_code)


class CourseUpdate(InputModel):
    """Partial course update. Unset or null fields are left unchanged."""

    title: str | None = Field(default=None, min_length=1, max_length=100)
    code: str | None = Field(default=None, pattern=CODE_PATTERN)
    description: str | None = Field(default=None, min_length=10, max_length=1000)
    credits: int | None = Field(default=None, ge=1, le=6)
    department: str | None = Field(default=None, min_length=1, max_length=255)
    max_students: int | None = Field(default=None, ge=1, le=200)
    prerequisites: list[str] | None = None
    schedule: Schedule | None = None
    semester: Semester | None = None
    year: int | None = Field(default=None, ge=MIN_YEAR)
    status: CourseStatus | None = None

    normalize_code = field_validator("code", mode="before")(_normalize_code)


@dataclass(frozen=True)
class CourseStats:
    """Derived, never-stored enrollment figures for a course."""

    enrollment_count: int
    available_spots: int
    is_full: bool


def validate_course_input(
    payload: CourseInput | CourseUpdate | Mapping[str, Any], partial: bool = False
) -> CourseInput | CourseUpdate:
    """Validate a course payload.

    Args:
        payload: Raw mapping (camelCase or snake_case keys) or a model.
        partial: Validate as a partial update instead of a creation.

    Returns:
        The validated CourseInput (or CourseUpdate when partial).

    Raises:
        ValidationError: Listing every violated field.
    """
    if partial:
        return validate_payload(CourseUpdate, payload)  # type: ignore[arg-type]
    return validate_payload(CourseInput, payload)  # type: ignore[arg-type]


def to_store_fields(data: CourseInput | CourseUpdate) -> dict[str, Any]:
    """Map validated input onto Course column names.

    Only fields that were provided appear in the result, so the same mapping
    serves creation and partial updates.
    """
    provided = data.provided()
    fields: dict[str, Any] = {}
    for name in ("title", "code", "description", "credits", "department", "max_students", "year"):
        if name in provided:
            fields[name] = provided[name]
    if "semester" in provided:
        fields["semester"] = provided["semester"].value
    if "status" in provided:
        fields["status"] = provided["status"].value
    if "prerequisites" in provided:
        fields["prerequisite_ids"] = list(dict.fromkeys(provided["prerequisites"]))
    if "schedule" in provided:
        schedule: Schedule = provided["schedule"]
        fields["schedule_days"] = [day.value for day in schedule.days]
        fields["schedule_start"] = schedule.time.start
        fields["schedule_end"] = schedule.time.end
        fields["schedule_room"] = schedule.room
    return fields


def assert_unique_code(store: Store, code: str, excluding_course_id: str | None = None) -> None:
    """Fail if another course already uses ``code``.

    This is the friendly pre-check; the unique index on courses.code is the
    authority and its rejection is mapped to the same error.

    Raises:
        ConflictError: If the code is taken by a different course.
    """
    existing = store.find_course_by_code(code)
    if existing is not None and existing.id != excluding_course_id:
        raise ConflictError("Course with this code already exists")


def can_modify(principal: Principal, course: Course) -> bool:
    """Admins may modify any course; instructors only their own."""
    if principal.role == Role.ADMIN:
        return True
    return principal.role == Role.INSTRUCTOR and principal.id == course.instructor_id


def assert_can_modify(principal: Principal, course: Course, action: str = "update") -> None:
    """Raise ForbiddenError unless ``can_modify``."""
    if not can_modify(principal, course):
        raise ForbiddenError(f"Not authorized to {action} this course")


def compute_derived(course: Course, enrolled_count: int) -> CourseStats:
    """Compute enrollment count, available spots and fullness."""
    return CourseStats(
        enrollment_count=enrolled_count,
        available_spots=course.max_students - enrolled_count,
        is_full=enrolled_count >= course.max_students,
    )


def resolve_instructor(principal: Principal, requested: str | None) -> str:
    """Pick the owning instructor for a new course.

    Instructors always own what they create; an admin may assign the course
    to someone else, otherwise owns it themself.
    """
    if principal.role == Role.ADMIN and requested:
        return requested
    return principal.id


def assert_capacity_change(
    course: Course, new_max: int, enrollment_count: int | None = None
) -> None:
    """Reject lowering capacity below the current number of enrolled students.

    The count defaults to the course seat counter.
    """
    if enrollment_count is None:
        enrollment_count = course.seats_taken
    if new_max < enrollment_count:
        message = f"Max students cannot be lower than current enrollment ({enrollment_count})"
        raise ValidationError(message, [FieldError(field="maxStudents", message=message)])
