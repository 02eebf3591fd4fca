"""Outcome types shared by the account workflow operations."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional


class AccountError(Exception):
    """Base class for account workflow failures."""


class UserNotFoundError(AccountError):
    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found.")
        self.user_id = user_id


class MFANotEnabledError(AccountError):
    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} has no MFA secret.")
        self.user_id = user_id


@dataclass
class ActionResult:
    """
    Form-facing outcome of an operation.

    Fields left as None are omitted from the serialized form, which is how a
    failure without an explicit `success` flag is reported.
    """

    success: Optional[bool] = None
    message: Optional[str] = None
    errors: Optional[dict[str, list[str]]] = None
    data: Any = None

    def to_dict(self) -> dict:
        payload = {
            "success": self.success,
            "message": self.message,
            "errors": self.errors,
            "data": self.data,
        }
        return {key: value for key, value in payload.items() if value is not None}


@dataclass(frozen=True)
class Redirect:
    """Navigation the caller must perform instead of rendering a result."""

    location: str
    permanent: bool = False
    clear_session: bool = False


def echo_fields(form: Mapping[str, Any], *keys: str) -> dict:
    """Copy the submitted `keys` back for form redisplay."""
    return {key: form.get(key) for key in keys if form.get(key) is not None}
