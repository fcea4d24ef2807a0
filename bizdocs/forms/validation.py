"""Validation of raw form data against the form schemas."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import FormValidationError

FormT = TypeVar("FormT", bound=BaseModel)


@dataclass
class FormValidationResult(Generic[FormT]):
    """Outcome of validating one form submission.

    Attributes:
        form: Parsed form, None when validation failed
        field_errors: Mapping of dotted field path (e.g. "lineItems.0.qty") -> messages
    """

    form: Optional[FormT] = None
    field_errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.form is not None and not self.field_errors

    def raise_for_errors(self) -> FormT:
        """Return the parsed form or raise FormValidationError."""
        if not self.is_valid:
            raise FormValidationError(self.field_errors)
        return self.form


def _field_path(loc) -> str:
    return ".".join(str(part) for part in loc) or "__root__"


def validate_form(schema: Type[FormT], data: Mapping[str, Any]) -> FormValidationResult[FormT]:
    """Validate raw form data and collect errors per field.

    Nothing is raised for invalid data; check ``is_valid`` or call
    ``raise_for_errors()``.
    """
    try:
        form = schema.model_validate(dict(data))
    except ValidationError as e:
        errors: Dict[str, List[str]] = {}
        for error in e.errors():
            errors.setdefault(_field_path(error["loc"]), []).append(error["msg"])
        return FormValidationResult(field_errors=errors)
    return FormValidationResult(form=form)
