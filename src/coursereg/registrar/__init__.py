"""Registrar - Use-cases over courses, enrollments and accounts."""

from coursereg.registrar.models import (
    AttendanceView,
    CoursePage,
    CourseSummary,
    CourseView,
    EnrollmentView,
    LoginResult,
    Pagination,
    ScheduleView,
    TimeSlotView,
    UserPage,
    UserSummary,
    UserView,
)
from coursereg.registrar.registrar import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Registrar

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "AttendanceView",
    "CoursePage",
    "CourseSummary",
    "CourseView",
    "EnrollmentView",
    "LoginResult",
    "Pagination",
    "Registrar",
    "ScheduleView",
    "TimeSlotView",
    "UserPage",
    "UserSummary",
    "UserView",
]
