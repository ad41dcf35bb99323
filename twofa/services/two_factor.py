# twofa/services/two_factor.py
"""
Per-user 2FA lifecycle:

    absent -> provisioning -> enabled -> disabled -> provisioning (same secret) -> ...

Every operation is read / decide / conditional write. A write that loses a
race (PersistenceConflict) is retried once from a fresh read; a second
conflict goes back to the caller as retryable. Each attempt, failed or not,
ends up as one audit entry.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

from twofa.core import backup_codes, base32, otp, provisioning
from twofa.core.errors import (
    AlreadyEnabled,
    InvalidCode,
    MalformedInput,
    NotEnabled,
    NotSetUp,
    PersistenceConflict,
    PersistenceUnavailable,
    TwoFactorError,
)
from twofa.services.audit import AuditAction, AuditLogger, TwoFactorLogEntry
from twofa.services.store import TwoFactorRecord, TwoFactorStore

if TYPE_CHECKING:
    from twofa.core.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class EngineConfig:
    issuer: str = "Pay2X"
    qr_service_url: str = "https://api.qrserver.com/v1/create-qr-code/"
    storage_timeout: float = 5.0
    audit_timeout: float = 2.0
    totp_window: int = 1

    @classmethod
    def from_settings(cls, settings: Settings) -> EngineConfig:
        return cls(
            issuer=settings.TWOFA_ISSUER,
            qr_service_url=settings.QR_SERVICE_URL,
            storage_timeout=settings.STORAGE_TIMEOUT_SECONDS,
            audit_timeout=settings.AUDIT_TIMEOUT_SECONDS,
        )


@dataclass(frozen=True)
class RequestContext:
    """Who is calling and from where. `timeout` bounds each storage call."""
    user_id: str
    account_label: str | None = None
    protected_action: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    timeout: float | None = None


@dataclass(frozen=True)
class SetupResult:
    secret: str
    otpauth_url: str
    qr_url: str
    reused_secret: bool


@dataclass(frozen=True)
class BackupCodesResult:
    backup_codes: list[str]


@dataclass(frozen=True)
class VerifyResult:
    used_backup_code: bool
    remaining_backup_codes: int | None = None


@dataclass(frozen=True)
class StatusResult:
    enabled: bool
    verified_at: datetime | None
    last_used_at: datetime | None
    backup_codes_used: int


class TwoFactorService:
    def __init__(
        self,
        store: TwoFactorStore,
        audit: AuditLogger,
        config: EngineConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.audit = audit
        self.config = config or EngineConfig()
        self.clock = clock

    # ---------- operations ----------
    async def setup(self, ctx: RequestContext) -> SetupResult:
        """
        Provision (or re-provision) the caller's secret.

        No code is checked here, and on an enabled record this turns 2FA off
        and drops the backup codes. Callers exposing it to an enabled user
        must require a successful `verify` first, otherwise a bare session
        gets around the TOTP check that `disable` enforces.
        """
        async def attempt() -> tuple[SetupResult, AuditAction]:
            record = await self._load(ctx)
            reused = record is not None
            if record is None:
                fresh = TwoFactorRecord(user_id=ctx.user_id, secret=otp.random_secret())
                record = await self._storage(ctx, self.store.create(fresh))
                logger.info("2FA secret provisioned for user %s", ctx.user_id)
            elif record.is_enabled:
                # back to provisioning with the same secret; old backup codes die here
                record = await self._write(ctx, record, is_enabled=False, backup_code_hashes=())
                logger.info("2FA reset to provisioning for user %s", ctx.user_id)
            return self._provisioning(ctx, record.secret, reused), AuditAction.setup

        return await self._run(ctx, AuditAction.setup, attempt)

    async def verify_setup(self, ctx: RequestContext, code: str | None) -> BackupCodesResult:
        submitted = self._require_code(code)

        async def attempt() -> tuple[BackupCodesResult, AuditAction]:
            record = await self._load(ctx)
            if record is None:
                raise NotSetUp()
            if record.is_enabled:
                raise AlreadyEnabled()
            if not self._totp_matches(record, submitted):
                raise InvalidCode()
            codes = backup_codes.generate()
            await self._write(
                ctx, record,
                is_enabled=True,
                backup_code_hashes=backup_codes.hash_batch(codes),
                verified_at=self._now(),
            )
            logger.info("2FA enabled for user %s", ctx.user_id)
            return BackupCodesResult(backup_codes=codes), AuditAction.verify_setup

        return await self._run(ctx, AuditAction.verify_setup, attempt)

    async def verify(self, ctx: RequestContext, code: str | None) -> VerifyResult:
        submitted = self._require_code(code)

        async def attempt() -> tuple[VerifyResult, AuditAction]:
            record = await self._require_enabled(ctx)
            now = self._now()
            if self._totp_matches(record, submitted):
                await self._write(ctx, record, last_used_at=now)
                return VerifyResult(used_backup_code=False), AuditAction.verify

            ok, consumed = backup_codes.consume(record, submitted)
            if not ok:
                raise InvalidCode()
            # version check makes lookup-and-remove atomic against the store
            stored = await self._storage(
                ctx, self.store.update(dataclasses.replace(consumed, last_used_at=now), record.version)
            )
            remaining = len(stored.backup_code_hashes)
            logger.info("2FA backup code used by user %s, %d left", ctx.user_id, remaining)
            return VerifyResult(used_backup_code=True, remaining_backup_codes=remaining), AuditAction.backup_used

        return await self._run(ctx, AuditAction.verify, attempt)

    async def disable(self, ctx: RequestContext, code: str | None) -> None:
        submitted = self._require_code(code)

        async def attempt() -> tuple[None, AuditAction]:
            record = await self._require_enabled(ctx)
            # TOTP only: a recovery code must not be burnt on a destructive action
            if not self._totp_matches(record, submitted):
                raise InvalidCode()
            await self._write(ctx, record, is_enabled=False, backup_code_hashes=())
            logger.info("2FA disabled for user %s", ctx.user_id)
            return None, AuditAction.disable

        await self._run(ctx, AuditAction.disable, attempt)

    async def regenerate_backup(self, ctx: RequestContext, code: str | None) -> BackupCodesResult:
        submitted = self._require_code(code)

        async def attempt() -> tuple[BackupCodesResult, AuditAction]:
            record = await self._require_enabled(ctx)
            if not self._totp_matches(record, submitted):
                raise InvalidCode()
            codes = backup_codes.generate()
            await self._write(ctx, record, backup_code_hashes=backup_codes.hash_batch(codes), backup_codes_used=0)
            logger.info("2FA backup codes regenerated for user %s", ctx.user_id)
            return BackupCodesResult(backup_codes=codes), AuditAction.regenerate_backup

        return await self._run(ctx, AuditAction.regenerate_backup, attempt)

    async def status(self, ctx: RequestContext) -> StatusResult:
        record = await self._load(ctx)
        if record is None:
            return StatusResult(enabled=False, verified_at=None, last_used_at=None, backup_codes_used=0)
        return StatusResult(
            enabled=record.is_enabled,
            verified_at=record.verified_at,
            last_used_at=record.last_used_at,
            backup_codes_used=record.backup_codes_used,
        )

    # ---------- helpers ----------
    async def _run(
        self,
        ctx: RequestContext,
        action: AuditAction,
        attempt: Callable[[], Awaitable[tuple[T, AuditAction]]],
    ) -> T:
        try:
            try:
                result, audit_action = await attempt()
            except PersistenceConflict:
                logger.info("2FA %s for user %s lost a write race, retrying", action.value, ctx.user_id)
                result, audit_action = await attempt()
        except TwoFactorError as exc:
            await self._audit(ctx, action, False, error=exc.kind)
            raise
        await self._audit(ctx, audit_action, True)
        return result

    async def _audit(self, ctx: RequestContext, action: AuditAction, success: bool, error: str | None = None) -> None:
        metadata: dict[str, Any] = {}
        if ctx.protected_action:
            metadata["protectedAction"] = ctx.protected_action
        if error:
            metadata["error"] = error
        await self.audit.record(TwoFactorLogEntry(
            user_id=ctx.user_id,
            action=action,
            success=success,
            protected_action=ctx.protected_action,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
            metadata=metadata,
            created_at=self._now(),
        ))

    async def _storage(self, ctx: RequestContext, call: Awaitable[T]) -> T:
        timeout = ctx.timeout if ctx.timeout is not None else self.config.storage_timeout
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except TwoFactorError:
            raise
        except asyncio.TimeoutError as exc:
            logger.warning("2FA storage call timed out after %.1fs for user %s", timeout, ctx.user_id)
            raise PersistenceUnavailable("2FA storage timed out, try again") from exc
        except Exception as exc:
            logger.exception("2FA storage call failed for user %s", ctx.user_id)
            raise PersistenceUnavailable() from exc

    async def _load(self, ctx: RequestContext) -> TwoFactorRecord | None:
        return await self._storage(ctx, self.store.get(ctx.user_id))

    async def _require_enabled(self, ctx: RequestContext) -> TwoFactorRecord:
        record = await self._load(ctx)
        if record is None or not record.is_enabled:
            raise NotEnabled()
        return record

    async def _write(self, ctx: RequestContext, record: TwoFactorRecord, **changes: Any) -> TwoFactorRecord:
        return await self._storage(
            ctx, self.store.update(dataclasses.replace(record, **changes), record.version)
        )

    def _totp_matches(self, record: TwoFactorRecord, code: str) -> bool:
        try:
            key = base32.decode(record.secret)
        except ValueError:
            logger.error("2FA secret for user %s is not valid base32", record.user_id)
            return False
        return otp.verify_totp(key, code, window=self.config.totp_window, at=self.clock())

    def _provisioning(self, ctx: RequestContext, secret: str, reused: bool) -> SetupResult:
        uri = provisioning.otpauth_uri(secret, ctx.account_label or ctx.user_id, self.config.issuer)
        return SetupResult(
            secret=secret,
            otpauth_url=uri,
            qr_url=provisioning.qr_render_url(uri, self.config.qr_service_url),
            reused_secret=reused,
        )

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc)

    @staticmethod
    def _require_code(code: str | None) -> str:
        submitted = otp.normalize_code(code or "")
        if not submitted:
            raise MalformedInput()
        return submitted
