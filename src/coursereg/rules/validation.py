"""Input model base class and payload validation."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from coursereg.rules.exceptions import ValidationError, field_errors

M = TypeVar("M", bound=BaseModel)

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class InputModel(BaseModel):
    """Base for request payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def provided(self) -> dict[str, Any]:
        """Fields the caller set explicitly to a non-null value."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }


def validate_payload(model: type[M], payload: M | Mapping[str, Any]) -> M:
    """Validate a raw mapping against an input model.

    Already-validated model instances pass through unchanged.

    Raises:
        ValidationError: Listing every failing field.
    """
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError("Validation failed", field_errors(e.errors())) from e
