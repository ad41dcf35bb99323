# twofa/core/errors.py
from __future__ import annotations


class TwoFactorError(Exception):
    """Base error of the 2FA engine. Rendered to callers as {kind, message, retryable}."""

    kind: str = "TwoFactorError"
    status_code: int = 400
    retryable: bool = False
    default_message: str = "Two-factor request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "retryable": self.retryable}


class Unauthenticated(TwoFactorError):
    kind = "Unauthenticated"
    status_code = 401
    default_message = "Missing or invalid credentials"


class MalformedInput(TwoFactorError):
    kind = "MalformedInput"
    status_code = 422
    default_message = "A verification code is required"


class NotSetUp(TwoFactorError):
    kind = "NotSetUp"
    status_code = 400
    default_message = "2FA not set up. Call setup first."


class AlreadyEnabled(TwoFactorError):
    kind = "AlreadyEnabled"
    status_code = 409
    default_message = "2FA is already enabled"


class NotEnabled(TwoFactorError):
    kind = "NotEnabled"
    status_code = 400
    default_message = "2FA is not enabled"


class InvalidCode(TwoFactorError):
    kind = "InvalidCode"
    status_code = 401
    default_message = "Invalid code"


class PersistenceConflict(TwoFactorError):
    kind = "PersistenceConflict"
    status_code = 409
    retryable = True
    default_message = "The 2FA record changed concurrently, try again"


class PersistenceUnavailable(TwoFactorError):
    kind = "PersistenceUnavailable"
    status_code = 503
    retryable = True
    default_message = "2FA storage is temporarily unavailable, try again"
