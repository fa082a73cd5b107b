"""User account rules."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import ConfigDict, Field, field_validator

from coursereg.rules.exceptions import ConflictError, StateError
from coursereg.rules.validation import EMAIL_PATTERN, InputModel, validate_payload
from coursereg.store.models import AcademicYear

if TYPE_CHECKING:
    from coursereg.rules.permissions import Principal
    from coursereg.store import Store, User

MIN_PASSWORD_LENGTH = 6

PUBLIC_FIELDS = ("id", "first_name", "last_name", "email", "department")


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookup."""
    return email.strip().lower()


class _EmailMixin(InputModel):
    @field_validator("email", mode="after", check_fields=False)
    @classmethod
    def _lower_email(cls, value: str | None) -> str | None:
        return normalize_email(value) if value is not None else None


class RegistrationInput(_EmailMixin):
    """Student self-registration."""

    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    student_id: str | None = Field(default=None, min_length=1, max_length=50)
    department: str | None = Field(default=None, max_length=255)
    year: AcademicYear | None = None


class InstructorInput(_EmailMixin):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    department: str | None = Field(default=None, max_length=255)


class LoginInput(_EmailMixin):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ProfileUpdate(InputModel):
    """Fields a user may change on their own record."""

    model_config = ConfigDict(extra="forbid")

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    department: str | None = Field(default=None, max_length=255)
    year: AcademicYear | None = None


class UserUpdate(_EmailMixin):
    """Admin update of another account. Roles cannot be changed."""

    model_config = ConfigDict(extra="forbid")

    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    student_id: str | None = Field(default=None, min_length=1, max_length=50)
    department: str | None = Field(default=None, max_length=255)
    year: AcademicYear | None = None
    is_active: bool | None = None


class Visibility(StrEnum):
    FULL = "full"
    PUBLIC = "public"


def validate_registration(payload: RegistrationInput | Mapping[str, Any]) -> RegistrationInput:
    return validate_payload(RegistrationInput, payload)


def validate_instructor(payload: InstructorInput | Mapping[str, Any]) -> InstructorInput:
    return validate_payload(InstructorInput, payload)


def validate_profile_update(payload: ProfileUpdate | Mapping[str, Any]) -> ProfileUpdate:
    return validate_payload(ProfileUpdate, payload)


def validate_user_update(payload: UserUpdate | Mapping[str, Any]) -> UserUpdate:
    return validate_payload(UserUpdate, payload)


def assert_unique_email(store: Store, email: str, excluding_id: str | None = None) -> None:
    """Raise ConflictError if another account already uses ``email``."""
    existing = store.find_user_by_email(normalize_email(email))
    if existing is not None and existing.id != excluding_id:
        raise ConflictError("User with this email already exists")


def assert_unique_student_id(
    store: Store, student_id: str | None, excluding_id: str | None = None
) -> None:
    """Raise ConflictError if another account already uses ``student_id``."""
    if not student_id:
        return
    existing = store.find_user_by_student_id(student_id)
    if existing is not None and existing.id != excluding_id:
        raise ConflictError("Student ID already exists")


def visible_fields(principal: Principal | None, target: User) -> Visibility:
    """How much of ``target`` the principal may see.

    Admins and the account holder see the full record; everyone else the
    public subset in PUBLIC_FIELDS. The password hash is never visible.
    """
    if principal is not None and (principal.is_admin or principal.id == target.id):
        return Visibility.FULL
    return Visibility.PUBLIC


def assert_not_self(principal: Principal, target_id: str) -> None:
    """Admins cannot deactivate their own account."""
    if principal.id == target_id:
        raise StateError("Cannot delete your own account")
