# twofa/schemas/two_factor.py
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TwoFactorAction(str, Enum):
    setup = "setup"
    verify_setup = "verify-setup"
    verify = "verify"
    disable = "disable"
    status = "status"
    regenerate_backup = "regenerate-backup"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- request ----------
class TwoFactorIn(CamelModel):
    action: TwoFactorAction
    code: str | None = Field(None, max_length=64)
    protected_action: str | None = Field(None, max_length=64)   # e.g. "balance_adjustment"


# ---------- responses ----------
class SetupOut(CamelModel):
    secret: str
    qr_url: str
    otpauth_url: str
    reused_secret: bool


class BackupCodesOut(CamelModel):
    success: bool = True
    backup_codes: list[str]
    message: str | None = None


class VerifyOut(CamelModel):
    success: bool = True
    used_backup_code: bool
    remaining_backup_codes: int | None = None   # only when a backup code was spent


class DisableOut(CamelModel):
    success: bool = True
    message: str = "2FA disabled"


class StatusOut(CamelModel):
    enabled: bool
    verified_at: datetime | None = None
    last_used_at: datetime | None = None
    backup_codes_used: int = 0


class ErrorBody(BaseModel):
    kind: str
    message: str
    retryable: bool = False


class ErrorOut(BaseModel):
    error: ErrorBody
