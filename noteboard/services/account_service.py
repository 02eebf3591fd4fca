"""
Account management use cases: profile, password, data export and deletion.

Every operation validates its form first, then verifies, then mutates. Any
failure after validation is logged and turned into a generic message; no
exception leaves these methods.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from noteboard.core.config import get_settings
from noteboard.core.security import hash_password, verify_password
from noteboard.db.models import User
from noteboard.domain.accounts import can_manage
from noteboard.domain.forms import (
    BackupForm,
    DeleteAccountForm,
    PasswordForm,
    ProfileForm,
    parse_form,
)
from noteboard.repositories.account_repository import AccountRepository
from noteboard.services.results import ActionResult, Redirect, UserNotFoundError, echo_fields
from noteboard.services.session_service import CurrentUser, validate_session_token

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"


def profile_path(user_id: int) -> str:
    return f"/profile/{user_id}"


@dataclass
class AccountService:
    """Handles profile edits, password changes, backups and account removal."""

    repository: AccountRepository = field(default_factory=AccountRepository)

    def __post_init__(self):
        self.settings = get_settings()

    # -------------------------------------- profile --------------------------------------
    def update_profile(
        self,
        form: Mapping[str, Any],
        *,
        caller: Optional[CurrentUser] = None,
        session_token: Optional[str] = None,
    ) -> ActionResult | Redirect:
        record, errors = parse_form(ProfileForm, form)
        if errors:
            return ActionResult(errors=errors, data=echo_fields(form, "id", "name", "email"), success=False)

        data = {"id": record.id, "name": record.name, "email": record.email}
        try:
            if self.repository.email_taken_by_other(record.email, record.id):
                return ActionResult(message="Email already exists.", success=False)
            if not self.repository.update_profile(record.id, record.name, record.email):
                raise UserNotFoundError(record.id)
            if caller is None or caller.id != record.id:
                # someone else's profile (admin edit): their sessions are left as they are
                logger.info("Profile of user %s updated by user %s", record.id, caller.id if caller else None)
                return ActionResult(data=data, success=True)
            if session_token:
                validate_session_token(session_token)
        except Exception:
            logger.exception("Failed to update profile of user %s", record.id)
            return ActionResult(data=data, message="An error occurred while updating your account.")

        logger.info("User %s updated their profile", record.id)
        return Redirect(profile_path(record.id))

    def get_profile(self, caller: Optional[CurrentUser], user_id: int) -> User | Redirect | None:
        """Return the user when `caller` may see it, None otherwise (a failed lookup included)."""
        if caller is None:
            return Redirect(LOGIN_PATH)
        try:
            record = self.repository.get_user(user_id)
        except Exception:
            logger.exception("Failed to load profile of user %s", user_id)
            return None
        if record and can_manage(caller, record.id):
            return record
        return None

    # -------------------------------------- password --------------------------------------
    def update_password(self, form: Mapping[str, Any]) -> ActionResult:
        record, errors = parse_form(PasswordForm, form)
        if errors:
            return ActionResult(errors=errors, data=echo_fields(form, "id", "password"), success=False)

        attempted = {"password": record.password}
        try:
            user = self.repository.get_user(record.id)
            if not user:
                raise UserNotFoundError(record.id)
            if record.password != record.confirm:
                return ActionResult(message="Passwords do not match.", data=attempted, success=False)
            if not verify_password(record.current, user.password_hash):
                return ActionResult(message="Current password is incorrect.", data=attempted, success=False)
            if not self.repository.update_password(record.id, hash_password(record.password)):
                raise UserNotFoundError(record.id)
        except Exception:
            logger.exception("Failed to update password of user %s", record.id)
            return ActionResult(data=attempted, message="An error occurred while updating your password.")

        logger.info("User %s changed their password", record.id)
        return ActionResult(success=True, message="Password updated successfully.")

    # -------------------------------------- backup --------------------------------------
    def backup_data(self, form: Mapping[str, Any]) -> ActionResult:
        record, errors = parse_form(BackupForm, form)
        if errors:
            return ActionResult(message="Invalid user ID.", success=False)

        try:
            tree = self.repository.export_user_tree(record.user_id)
            if tree is None:
                return ActionResult(message="User not found.", success=False)
            payload = json.dumps(tree, ensure_ascii=False)
        except Exception:
            logger.exception("Failed to export data of user %s", record.user_id)
            return ActionResult(data={"userId": record.user_id}, message="An error occurred while backing up data.")

        logger.info("Exported %d boards for user %s", len(tree["boards"]), record.user_id)
        return ActionResult(success=True, data=payload)

    # -------------------------------------- deletion --------------------------------------
    def _find_for_deletion(self, user_id: int, password: str) -> Optional[User]:
        if self.settings.delete_account_verify_hash:
            user = self.repository.get_user(user_id)
            if user and verify_password(password, user.password_hash):
                return user
            return None
        # compares against the stored column as-is (see DESIGN.md)
        return self.repository.find_user_by_credentials(user_id, password)

    def delete_account(self, form: Mapping[str, Any]) -> ActionResult | Redirect:
        record, errors = parse_form(DeleteAccountForm, form)
        if errors:
            return ActionResult(errors=errors, success=False)

        try:
            user = self._find_for_deletion(record.user_id, record.password)
            if not user:
                return ActionResult(message="You are not allowed to perform this action.", success=False)
            if not self.repository.delete_user_by_email(user.email):
                raise UserNotFoundError(record.user_id)
        except Exception:
            logger.exception("Failed to delete account of user %s", record.user_id)
            return ActionResult(data={"userId": record.user_id}, message="An error occurred while deleting your account.")

        logger.info("Deleted account of user %s", record.user_id)
        return Redirect(LOGIN_PATH, permanent=True, clear_session=True)
