"""SQLAlchemy models for the course registration store."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime  # noqa: TC003 - used at runtime for SQLAlchemy
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
)


class Role(StrEnum):
    """Account role."""

    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class AcademicYear(StrEnum):
    """Year of study for student accounts."""

    FIRST = "1st"
    SECOND = "2nd"
    THIRD = "3rd"
    FOURTH = "4th"
    GRADUATE = "Graduate"


class RecordState(StrEnum):
    """Lifecycle of a stored record. Inactive records are soft-deleted."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class CourseStatus(StrEnum):
    """Enrollment status of a course."""

    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class Semester(StrEnum):
    """Semester a course runs in."""

    FALL = "Fall"
    SPRING = "Spring"
    SUMMER = "Summer"


class Weekday(StrEnum):
    """Days a course can be scheduled on."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class EnrollmentStatus(StrEnum):
    """Enrollment state. DROPPED, COMPLETED and FAILED are terminal."""

    ENROLLED = "enrolled"
    DROPPED = "dropped"
    COMPLETED = "completed"
    FAILED = "failed"


class Grade(StrEnum):
    """Letter and pass/no-pass grades."""

    A_PLUS = "A+"
    A = "A"
    A_MINUS = "A-"
    B_PLUS = "B+"
    B = "B"
    B_MINUS = "B-"
    C_PLUS = "C+"
    C = "C"
    C_MINUS = "C-"
    D_PLUS = "D+"
    D = "D"
    F = "F"
    P = "P"
    NP = "NP"


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class User(Base):
    """User account. Email is stored lower-cased."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    student_id: Mapped[str | None] = mapped_column(String(50), nullable=True, unique=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    year: Mapped[str | None] = mapped_column(String(20), nullable=True)
    record_state: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __init__(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: str = Role.STUDENT.value,
        id: str | None = None,
        student_id: str | None = None,
        department: str | None = None,
        year: str | None = None,
        record_state: str = RecordState.ACTIVE.value,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.email = email
        self.password_hash = password_hash
        self.first_name = first_name
        self.last_name = last_name
        self.role = role
        self.student_id = student_id
        self.department = department
        self.year = year
        self.record_state = record_state

    @property
    def is_active(self) -> bool:
        """Whether the account has not been deactivated."""
        return self.record_state == RecordState.ACTIVE.value

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, email={self.email!r}, role={self.role!r})>"


class Course(Base):
    """Course record.

    ``seats_taken`` mirrors the number of active enrollments and is only
    changed by the store's enroll/drop transactions.
    """

    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False)
    department: Mapped[str] = mapped_column(String(255), nullable=False)
    instructor_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    prerequisite_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False)
    seats_taken: Mapped[int] = mapped_column(Integer, nullable=False)
    schedule_days: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    schedule_start: Mapped[str] = mapped_column(String(5), nullable=False)
    schedule_end: Mapped[str] = mapped_column(String(5), nullable=False)
    schedule_room: Mapped[str | None] = mapped_column(String(100), nullable=True)
    semester: Mapped[str] = mapped_column(String(10), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    record_state: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_courses_department", "department"),
        Index("ix_courses_instructor", "instructor_id"),
        Index("ix_courses_term", "semester", "year"),
    )

    def __init__(
        self,
        code: str,
        title: str,
        description: str,
        credits: int,
        department: str,
        instructor_id: str,
        max_students: int,
        schedule_days: list[str],
        schedule_start: str,
        schedule_end: str,
        semester: str,
        year: int,
        id: str | None = None,
        prerequisite_ids: list[str] | None = None,
        schedule_room: str | None = None,
        status: str = CourseStatus.OPEN.value,
        record_state: str = RecordState.ACTIVE.value,
        seats_taken: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.code = code
        self.title = title
        self.description = description
        self.credits = credits
        self.department = department
        self.instructor_id = instructor_id
        self.prerequisite_ids = list(prerequisite_ids or [])
        self.max_students = max_students
        self.seats_taken = seats_taken
        self.schedule_days = list(schedule_days)
        self.schedule_start = schedule_start
        self.schedule_end = schedule_end
        self.schedule_room = schedule_room
        self.semester = semester
        self.year = year
        self.status = status
        self.record_state = record_state

    @property
    def is_active(self) -> bool:
        """Whether the course has not been soft-deleted."""
        return self.record_state == RecordState.ACTIVE.value

    @property
    def course_status(self) -> CourseStatus:
        """Get status as CourseStatus enum."""
        return CourseStatus(self.status)

    def __repr__(self) -> str:
        return f"<Course(id={self.id!r}, code={self.code!r}, status={self.status!r})>"


class Enrollment(Base):
    """Student-course join record.

    At most one active enrollment may exist per (student, course); the
    partial unique index enforces this in the database.
    """

    __tablename__ = "enrollments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    student_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    course_id: Mapped[str] = mapped_column(String(36), ForeignKey("courses.id"), nullable=False)
    enrollment_date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    grade: Mapped[str | None] = mapped_column(String(5), nullable=True)
    total_classes: Mapped[int] = mapped_column(Integer, nullable=False)
    attended_classes: Mapped[int] = mapped_column(Integer, nullable=False)
    attendance_percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    record_state: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index(
            "uq_enrollments_active_pair",
            "student_id",
            "course_id",
            unique=True,
            sqlite_where=text("record_state = 'active'"),
            postgresql_where=text("record_state = 'active'"),
        ),
        Index("ix_enrollments_course", "course_id"),
        Index("ix_enrollments_status", "status"),
    )

    def __init__(
        self,
        student_id: str,
        course_id: str,
        id: str | None = None,
        status: str = EnrollmentStatus.ENROLLED.value,
        grade: str | None = None,
        total_classes: int = 0,
        attended_classes: int = 0,
        attendance_percentage: int = 0,
        notes: str | None = None,
        record_state: str = RecordState.ACTIVE.value,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.student_id = student_id
        self.course_id = course_id
        self.status = status
        self.grade = grade
        self.total_classes = total_classes
        self.attended_classes = attended_classes
        self.attendance_percentage = attendance_percentage
        self.notes = notes
        self.record_state = record_state

    @property
    def is_active(self) -> bool:
        """Whether the enrollment still holds a seat."""
        return self.record_state == RecordState.ACTIVE.value

    @property
    def enrollment_status(self) -> EnrollmentStatus:
        """Get status as EnrollmentStatus enum."""
        return EnrollmentStatus(self.status)

    def __repr__(self) -> str:
        return (
            f"<Enrollment(id={self.id!r}, student_id={self.student_id!r}, "
            f"course_id={self.course_id!r}, status={self.status!r})>"
        )


@dataclass
class GroupCount:
    """Number of records sharing one value of a grouped column."""

    value: str
    count: int


@dataclass
class UserStats:
    """Aggregated account statistics over active users."""

    total_users: int
    total_students: int
    total_instructors: int
    total_admins: int
    students_by_department: list[GroupCount]
    students_by_year: list[GroupCount]
