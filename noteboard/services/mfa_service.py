"""Enrollment and removal of the TOTP second factor."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from noteboard.core.totp import generate_secret, provisioning_uri, qr_code_data_url, validate_totp
from noteboard.domain.forms import DeleteMFAForm, UpdateMFAForm, parse_form
from noteboard.repositories.account_repository import AccountRepository
from noteboard.services.results import ActionResult, MFANotEnabledError, UserNotFoundError, echo_fields

logger = logging.getLogger(__name__)

OTP_INVALID = "OTP is not valid."


@dataclass
class MFAEnrollment:
    secret: str
    otpauth_uri: str
    qr_code: str


@dataclass
class MFAService:
    repository: AccountRepository = field(default_factory=AccountRepository)

    def start_enrollment(self, account_name: str) -> MFAEnrollment:
        """Propose a fresh secret; nothing is stored until update_mfa() confirms it."""
        secret = generate_secret()
        uri = provisioning_uri(secret, account_name)
        return MFAEnrollment(secret=secret, otpauth_uri=uri, qr_code=qr_code_data_url(uri))

    def update_mfa(self, form: Mapping[str, Any]) -> ActionResult:
        """Enroll (or replace) the MFA device once the submitted OTP matches the secret."""
        record, errors = parse_form(UpdateMFAForm, form)
        if errors:
            return ActionResult(errors=errors, data=echo_fields(form, "id", "secret", "password"), success=False)

        attempted = {"secret": record.secret, "password": record.password}
        if not validate_totp(record.secret, record.password):
            return ActionResult(data=attempted, message=OTP_INVALID)

        try:
            user = self.repository.get_user(record.id)
            if not user:
                raise UserNotFoundError(record.id)
            self.repository.set_mfa(record.id, record.secret)
        except Exception:
            logger.exception("Failed to enable MFA for user %s", record.id)
            return ActionResult(data=attempted, message="An error occurred while updating your MFA.")

        logger.info("MFA enabled for user %s", record.id)
        return ActionResult(
            success=True,
            message="MFA device has been updated successfully you can refresh this page.",
        )

    def delete_mfa(self, form: Mapping[str, Any]) -> ActionResult:
        record, errors = parse_form(DeleteMFAForm, form)
        if errors:
            return ActionResult(errors=errors, data=echo_fields(form, "id", "password"), success=False)

        attempted = {"password": record.password}
        try:
            user = self.repository.get_user(record.id)
            if not user:
                raise UserNotFoundError(record.id)
            if not user.secret:
                raise MFANotEnabledError(record.id)
            if not validate_totp(user.secret, record.password):
                return ActionResult(data=attempted, message=OTP_INVALID)
            self.repository.clear_mfa(record.id)
        except MFANotEnabledError:
            logger.warning("User %s tried to remove MFA without an enrolled device", record.id)
            return ActionResult(
                data=attempted,
                message="No MFA device is registered for this account.",
                success=False,
            )
        except Exception:
            logger.exception("Failed to disable MFA for user %s", record.id)
            return ActionResult(data=attempted, message="An error occurred while deleting your MFA.")

        logger.info("MFA disabled for user %s", record.id)
        return ActionResult(success=True, message="Your device has been deleted you can refresh this page.")
