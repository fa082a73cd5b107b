"""Pydantic models for the REST API.

Responses are camelCase on the wire and built from registrar views with
``from_attributes``.
"""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from coursereg.rules import FieldError

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class FieldErrorResponse(CamelModel):
    field: str
    message: str


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    data: T | None = None
    error: str | None = None
    details: list[FieldErrorResponse] | None = None


def error_response(message: str, details: list[FieldError] | None = None) -> dict[str, Any]:
    """Serialized envelope for an error."""
    envelope = APIResponse[None](
        data=None,
        error=message,
        details=[FieldErrorResponse(field=d.field, message=d.message) for d in details]
        if details
        else None,
    )
    return envelope.model_dump(by_alias=True)


# User models


class UserSummaryResponse(CamelModel):
    id: str
    first_name: str
    last_name: str
    email: str
    department: str | None = None
    student_id: str | None = None
    year: str | None = None


class CourseSummaryResponse(CamelModel):
    id: str
    code: str
    title: str
    credits: int
    department: str
    semester: str
    year: int
    instructor: UserSummaryResponse | None = None


class UserResponse(CamelModel):
    """Full user record. Never includes the password hash."""

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    student_id: str | None
    department: str | None
    year: str | None
    is_active: bool
    enrolled_courses: list[CourseSummaryResponse]
    created_at: datetime
    updated_at: datetime


class LoginResponse(CamelModel):
    token: str
    user: UserResponse


class PaginationResponse(CamelModel):
    current: int
    pages: int
    total: int
    limit: int


class UserListResponse(CamelModel):
    users: list[UserResponse]
    pagination: PaginationResponse


class DepartmentCount(CamelModel):
    department: str
    count: int


class YearCount(CamelModel):
    year: str
    count: int


class UserStatsResponse(CamelModel):
    total_users: int
    total_students: int
    total_instructors: int
    total_admins: int
    students_by_department: list[DepartmentCount]
    students_by_year: list[YearCount]


def stats_to_response(stats: Any) -> UserStatsResponse:
    """Convert store UserStats to UserStatsResponse."""
    return UserStatsResponse(
        total_users=stats.total_users,
        total_students=stats.total_students,
        total_instructors=stats.total_instructors,
        total_admins=stats.total_admins,
        students_by_department=[
            DepartmentCount(department=g.value, count=g.count) for g in stats.students_by_department
        ],
        students_by_year=[YearCount(year=g.value, count=g.count) for g in stats.students_by_year],
    )


# Course models


class TimeSlotResponse(CamelModel):
    start: str
    end: str


class ScheduleResponse(CamelModel):
    days: list[str]
    time: TimeSlotResponse
    room: str | None = None


class CourseResponse(CamelModel):
    """Course with expanded references and derived enrollment figures."""

    id: str
    code: str
    title: str
    description: str
    credits: int
    department: str
    max_students: int
    schedule: ScheduleResponse
    semester: str
    year: int
    status: str
    is_active: bool
    instructor: UserSummaryResponse | None
    prerequisites: list[CourseSummaryResponse]
    enrolled_students: list[UserSummaryResponse]
    enrollment_count: int
    available_spots: int
    is_full: bool
    created_at: datetime
    updated_at: datetime


class CourseListResponse(CamelModel):
    courses: list[CourseResponse]
    pagination: PaginationResponse


# Enrollment models


class AttendanceResponse(CamelModel):
    total_classes: int
    attended_classes: int
    percentage: int


class EnrollmentResponse(CamelModel):
    id: str
    student_id: str
    course_id: str
    status: str
    grade: str | None
    attendance: AttendanceResponse
    notes: str | None
    is_active: bool
    enrollment_date: datetime
    updated_at: datetime
    student: UserSummaryResponse | None = None
    course: CourseSummaryResponse | None = None


# Advisor models


class AdviceRequest(CamelModel):
    prompt: str | None = None


class AdviceResponse(CamelModel):
    response: str


def to_response(model: type[BaseModel], view: Any) -> Any:
    """Convert a registrar view (or list of views) to a response model."""
    if isinstance(view, list):
        return [model.model_validate(v) for v in view]
    return model.model_validate(view)
