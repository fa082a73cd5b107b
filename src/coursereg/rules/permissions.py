"""Principal and the declarative capability table.

Every core operation takes the acting ``Principal`` explicitly. ``require``
is called before any store access; ownership checks that need a loaded
record live in the entity rule modules.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from coursereg.rules.exceptions import AuthenticationError, ForbiddenError
from coursereg.store.models import Role


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to a request."""

    id: str
    role: Role
    active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class Operation(StrEnum):
    """Guarded operations. Values read as "Not authorized to <value>"."""

    CREATE_COURSE = "create courses"
    UPDATE_COURSE = "update courses"
    DELETE_COURSE = "delete courses"
    ENROLL = "enroll in courses"
    DROP = "drop enrollments"
    VIEW_ENROLLMENT = "view enrollments"
    LIST_STUDENT_ENROLLMENTS = "view student enrollments"
    LIST_COURSE_ENROLLMENTS = "view course enrollments"
    SET_GRADE = "update grades"
    SET_ATTENDANCE = "update attendance"
    SET_ENROLLMENT_STATUS = "update enrollment status"
    LIST_USERS = "list users"
    VIEW_USER = "view user profiles"
    UPDATE_USER = "update users"
    UPDATE_PROFILE = "update your profile"
    DEACTIVATE_USER = "delete users"
    CREATE_INSTRUCTOR = "create instructors"
    VIEW_USER_STATS = "view user statistics"
    LIST_ENROLLED_STUDENTS = "view enrolled students"


_ALL = frozenset(Role)
_STAFF = frozenset({Role.INSTRUCTOR, Role.ADMIN})
_ADMIN = frozenset({Role.ADMIN})

CAPABILITIES: dict[Operation, frozenset[Role]] = {
    Operation.CREATE_COURSE: _STAFF,
    Operation.UPDATE_COURSE: _STAFF,
    Operation.DELETE_COURSE: _ADMIN,
    Operation.ENROLL: frozenset({Role.STUDENT, Role.ADMIN}),
    Operation.DROP: frozenset({Role.STUDENT, Role.ADMIN}),
    Operation.VIEW_ENROLLMENT: _ALL,
    Operation.LIST_STUDENT_ENROLLMENTS: _ALL,
    Operation.LIST_COURSE_ENROLLMENTS: _STAFF,
    Operation.SET_GRADE: _STAFF,
    Operation.SET_ATTENDANCE: _STAFF,
    Operation.SET_ENROLLMENT_STATUS: _STAFF,
    Operation.LIST_USERS: _ADMIN,
    Operation.VIEW_USER: _ALL,
    Operation.UPDATE_USER: _ADMIN,
    Operation.UPDATE_PROFILE: _ALL,
    Operation.DEACTIVATE_USER: _ADMIN,
    Operation.CREATE_INSTRUCTOR: _ADMIN,
    Operation.VIEW_USER_STATS: _ADMIN,
    Operation.LIST_ENROLLED_STUDENTS: _STAFF,
}


def is_allowed(role: Role, operation: Operation) -> bool:
    """Whether the capability table grants ``operation`` to ``role``."""
    return role in CAPABILITIES[operation]


def require(principal: Principal | None, operation: Operation) -> Principal:
    """Check the capability table for a principal.

    Args:
        principal: The acting principal, or None for anonymous requests.
        operation: The operation being attempted.

    Returns:
        The principal, for chaining.

    Raises:
        AuthenticationError: If there is no principal or it is deactivated.
        ForbiddenError: If the principal's role may not perform the operation.
    """
    if principal is None:
        raise AuthenticationError("Authentication required")
    if not principal.active:
        raise AuthenticationError("Account is deactivated")
    if not is_allowed(principal.role, operation):
        raise ForbiddenError(f"Not authorized to {operation.value}")
    return principal
