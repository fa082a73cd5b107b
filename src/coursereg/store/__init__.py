"""Store - Persistent storage for users, courses and enrollments."""

from coursereg.store.exceptions import (
    ActiveEnrollmentExistsError,
    CapacityBelowEnrollmentError,
    CourseCodeExistsError,
    CourseNotFoundError,
    DuplicateRecordError,
    EmailExistsError,
    EnrollmentNotActiveError,
    EnrollmentNotFoundError,
    RecordNotFoundError,
    SeatUnavailableError,
    StoreError,
    StudentIdExistsError,
    UserNotFoundError,
)
from coursereg.store.models import (
    AcademicYear,
    Course,
    CourseStatus,
    Enrollment,
    EnrollmentStatus,
    Grade,
    GroupCount,
    RecordState,
    Role,
    Semester,
    User,
    UserStats,
    Weekday,
)
from coursereg.store.store import Store

__all__ = [
    "AcademicYear",
    "ActiveEnrollmentExistsError",
    "CapacityBelowEnrollmentError",
    "Course",
    "CourseCodeExistsError",
    "CourseNotFoundError",
    "CourseStatus",
    "DuplicateRecordError",
    "EmailExistsError",
    "Enrollment",
    "EnrollmentNotActiveError",
    "EnrollmentNotFoundError",
    "EnrollmentStatus",
    "Grade",
    "GroupCount",
    "RecordNotFoundError",
    "RecordState",
    "Role",
    "SeatUnavailableError",
    "Semester",
    "Store",
    "StoreError",
    "StudentIdExistsError",
    "User",
    "UserNotFoundError",
    "UserStats",
    "Weekday",
]
