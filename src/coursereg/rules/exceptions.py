"""Error taxonomy shared by the rules, the registrar and the API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable


@dataclass(frozen=True)
class FieldError:
    """One failing input field."""

    field: str
    message: str


class RegistrarError(Exception):
    """Base exception for expected request failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(RegistrarError):
    """Malformed or out-of-range input. Lists every failing field."""

    def __init__(
        self, message: str = "Validation failed", details: Iterable[FieldError] = ()
    ) -> None:
        super().__init__(message)
        self.details = list(details)

    @classmethod
    def for_field(cls, field: str, message: str) -> ValidationError:
        """Build an error for a single field, using its message as the summary."""
        return cls(message, [FieldError(field=field, message=message)])


class ConflictError(RegistrarError):
    """Uniqueness violation (course code, email, student ID, active enrollment)."""


class AuthenticationError(RegistrarError):
    """Missing, invalid or expired credential, or a deactivated account."""


class ForbiddenError(RegistrarError):
    """Authenticated but not permitted."""


class NotFoundError(RegistrarError):
    """Referenced entity absent or inactive."""


class StateError(RegistrarError):
    """Entity is not in a state that permits the operation."""


class CapacityError(RegistrarError):
    """Course has no available seats."""


class InternalError(RegistrarError):
    """Unexpected store or collaborator failure. The message is client-safe."""


def field_errors(
    errors: Iterable[dict[str, Any]], sources: Collection[str] = ()
) -> list[FieldError]:
    """Convert pydantic-style error dicts into FieldErrors.

    Args:
        errors: Items from ``ValidationError.errors()`` or
            ``RequestValidationError.errors()``.
        sources: Leading location parts to drop when present, such as
            ``{"body", "query"}`` for request validation errors.

    Returns:
        One FieldError per error, with a dotted field path.
    """
    result = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in sources:
            loc = loc[1:]
        message = str(error.get("msg", "Invalid value"))
        # pydantic prefixes custom validator messages with "Value error, "
        message = message.removeprefix("Value error, ")
        result.append(FieldError(field=".".join(loc) or "body", message=message))
    return result
