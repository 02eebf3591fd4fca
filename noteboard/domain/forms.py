"""
Form schemas for the account workflow.

Each schema turns the raw key/value strings of one form post into a typed
record. parse_form() never raises: it hands back either the record or a
field -> messages mapping, so callers can abort before any side effect.
"""
from __future__ import annotations

import re
from typing import Annotated, Any, Mapping, Optional, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    PositiveInt,
    StringConstraints,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from noteboard.core.config import get_settings

NonEmpty = Annotated[str, StringConstraints(min_length=1)]
TrimmedName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
MFASecret = Annotated[str, StringConstraints(min_length=1, max_length=64)]

FieldErrors = dict[str, list[str]]
FormT = TypeVar("FormT", bound=BaseModel)

_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"[0-9]")
_email = TypeAdapter(EmailStr)


def normalize_email(value: str) -> str:
    """Validate an address and return it in the canonical form stored in the database.

    Raises pydantic.ValidationError when the address is not valid.
    """
    return _email.validate_python((value or "").strip())


def password_policy_errors(password: str) -> list[str]:
    """List every complexity rule `password` breaks (empty when it is acceptable)."""
    min_length = get_settings().password_min_length
    problems = []
    if len(password) < min_length:
        problems.append(f"Be at least {min_length} characters long.")
    if not _LETTER.search(password):
        problems.append("Contain at least one letter.")
    if not _DIGIT.search(password):
        problems.append("Contain at least one number.")
    return problems


class _Form(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ProfileForm(_Form):
    id: PositiveInt
    name: TrimmedName
    email: EmailStr


class PasswordForm(_Form):
    id: PositiveInt
    current: NonEmpty
    password: str
    # equality with `password` is checked by the workflow, not here
    confirm: NonEmpty

    @field_validator("password")
    @classmethod
    def _check_policy(cls, value: str) -> str:
        problems = password_policy_errors(value)
        if problems:
            raise ValueError(" ".join(problems))
        return value


class UpdateMFAForm(_Form):
    id: PositiveInt
    secret: MFASecret
    password: NonEmpty


class DeleteMFAForm(_Form):
    id: PositiveInt
    password: NonEmpty


class DeleteAccountForm(_Form):
    user_id: PositiveInt = Field(alias="userId")
    password: NonEmpty


class BackupForm(_Form):
    user_id: PositiveInt = Field(alias="userId")


def _message(error: dict) -> str:
    if error.get("type") == "value_error":
        ctx = error.get("ctx") or {}
        if ctx.get("error") is not None:
            return str(ctx["error"])
    return error.get("msg", "Invalid value.")


def flatten_errors(exc: ValidationError) -> FieldErrors:
    errors: FieldErrors = {}
    for error in exc.errors():
        loc = error.get("loc") or ("__all__",)
        errors.setdefault(str(loc[0]), []).append(_message(error))
    return errors


def parse_form(schema: Type[FormT], raw: Mapping[str, Any]) -> tuple[Optional[FormT], Optional[FieldErrors]]:
    data = {key: value for key, value in dict(raw).items() if value is not None}
    try:
        return schema.model_validate(data), None
    except ValidationError as exc:
        return None, flatten_errors(exc)
