"""Read views returned by the Registrar.

Views are assembled from store records at read time. They never carry the
password hash, and the course/user back-references are derived from active
enrollments.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003 - dataclass field types


@dataclass
class Pagination:
    """Page metadata. ``pages`` is ceil(total / limit)."""

    current: int
    pages: int
    total: int
    limit: int


@dataclass
class UserSummary:
    """Public subset of a user record."""

    id: str
    first_name: str
    last_name: str
    email: str
    department: str | None = None
    student_id: str | None = None
    year: str | None = None


@dataclass
class CourseSummary:
    id: str
    code: str
    title: str
    credits: int
    department: str
    semester: str
    year: int
    instructor: UserSummary | None = None


@dataclass
class TimeSlotView:
    start: str
    end: str


@dataclass
class ScheduleView:
    days: list[str]
    time: TimeSlotView
    room: str | None = None


@dataclass
class CourseView:
    """A course with its references expanded and derived enrollment figures.

    Attributes:
        instructor: Owning instructor, None if the account no longer exists.
        prerequisites: Existing prerequisite courses.
        enrolled_students: Students holding an active enrollment.
        enrollment_count: len(enrolled_students).
        available_spots: max_students - enrollment_count.
        is_full: enrollment_count >= max_students.
    """

    id: str
    code: str
    title: str
    description: str
    credits: int
    department: str
    max_students: int
    schedule: ScheduleView
    semester: str
    year: int
    status: str
    is_active: bool
    instructor: UserSummary | None
    prerequisites: list[CourseSummary]
    enrolled_students: list[UserSummary]
    enrollment_count: int
    available_spots: int
    is_full: bool
    created_at: datetime
    updated_at: datetime


@dataclass
class AttendanceView:
    total_classes: int
    attended_classes: int
    percentage: int


@dataclass
class EnrollmentView:
    id: str
    student_id: str
    course_id: str
    status: str
    grade: str | None
    attendance: AttendanceView
    notes: str | None
    is_active: bool
    enrollment_date: datetime
    updated_at: datetime
    student: UserSummary | None = None
    course: CourseSummary | None = None


@dataclass
class UserView:
    """Full user record, visible to the account holder and admins."""

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    student_id: str | None = None
    department: str | None = None
    year: str | None = None
    enrolled_courses: list[CourseSummary] = field(default_factory=list)


@dataclass
class LoginResult:
    token: str
    user: UserView


@dataclass
class CoursePage:
    courses: list[CourseView]
    pagination: Pagination


@dataclass
class UserPage:
    users: list[UserView]
    pagination: Pagination
