"""Custom exceptions for the store."""


class StoreError(Exception):
    """Base exception for store errors."""


class RecordNotFoundError(StoreError):
    """Record with given ID does not exist."""


class UserNotFoundError(RecordNotFoundError):
    """User with given ID does not exist."""


class CourseNotFoundError(RecordNotFoundError):
    """Course with given ID does not exist."""


class EnrollmentNotFoundError(RecordNotFoundError):
    """Enrollment with given ID does not exist."""


class DuplicateRecordError(StoreError):
    """A unique index rejected the write."""


class EmailExistsError(DuplicateRecordError):
    """User with given email already exists."""


class StudentIdExistsError(DuplicateRecordError):
    """User with given student ID already exists."""


class CourseCodeExistsError(DuplicateRecordError):
    """Course with given code already exists."""


class ActiveEnrollmentExistsError(DuplicateRecordError):
    """Student already has an active enrollment in the course."""


class SeatUnavailableError(StoreError):
    """Conditional seat reservation matched no course row.

    The course is inactive, not open, or full at the moment of the write.
    """


class EnrollmentNotActiveError(StoreError):
    """Enrollment is no longer in the enrolled state."""


class CapacityBelowEnrollmentError(StoreError):
    """Conditional capacity change matched no row: seats taken exceed the new maximum."""
