"""Rules - Authorization, validation and entity invariants."""

from coursereg.rules.courses import (
    CourseInput,
    CourseStats,
    CourseUpdate,
    Schedule,
    ScheduleTime,
    assert_can_modify,
    assert_capacity_change,
    assert_unique_code,
    can_modify,
    compute_derived,
    resolve_instructor,
    to_store_fields,
    validate_course_input,
)
from coursereg.rules.enrollments import (
    AttendanceInput,
    EnrollInput,
    GradeInput,
    StatusInput,
    assert_can_drop,
    assert_can_enroll,
    assert_can_grade,
    assert_can_transition,
    attendance_percentage,
    can_manage,
    is_enrolled,
    validate_attendance,
    validate_grade,
)
from coursereg.rules.exceptions import (
    AuthenticationError,
    CapacityError,
    ConflictError,
    FieldError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    RegistrarError,
    StateError,
    ValidationError,
    field_errors,
)
from coursereg.rules.permissions import CAPABILITIES, Operation, Principal, is_allowed, require
from coursereg.rules.users import (
    PUBLIC_FIELDS,
    InstructorInput,
    LoginInput,
    ProfileUpdate,
    RegistrationInput,
    UserUpdate,
    Visibility,
    assert_not_self,
    assert_unique_email,
    assert_unique_student_id,
    normalize_email,
    validate_instructor,
    validate_profile_update,
    validate_registration,
    validate_user_update,
    visible_fields,
)
from coursereg.rules.validation import InputModel, validate_payload

__all__ = [
    "CAPABILITIES",
    "PUBLIC_FIELDS",
    "AttendanceInput",
    "AuthenticationError",
    "CapacityError",
    "ConflictError",
    "CourseInput",
    "CourseStats",
    "CourseUpdate",
    "EnrollInput",
    "FieldError",
    "ForbiddenError",
    "GradeInput",
    "InputModel",
    "InstructorInput",
    "InternalError",
    "LoginInput",
    "NotFoundError",
    "Operation",
    "Principal",
    "ProfileUpdate",
    "RegistrarError",
    "RegistrationInput",
    "Schedule",
    "ScheduleTime",
    "StateError",
    "StatusInput",
    "UserUpdate",
    "ValidationError",
    "Visibility",
    "assert_can_drop",
    "assert_can_enroll",
    "assert_can_grade",
    "assert_can_modify",
    "assert_can_transition",
    "assert_capacity_change",
    "assert_not_self",
    "assert_unique_code",
    "assert_unique_email",
    "assert_unique_student_id",
    "attendance_percentage",
    "can_manage",
    "can_modify",
    "compute_derived",
    "field_errors",
    "is_allowed",
    "is_enrolled",
    "normalize_email",
    "require",
    "resolve_instructor",
    "to_store_fields",
    "validate_attendance",
    "validate_course_input",
    "validate_grade",
    "validate_instructor",
    "validate_payload",
    "validate_profile_update",
    "validate_registration",
    "validate_user_update",
    "visible_fields",
]
