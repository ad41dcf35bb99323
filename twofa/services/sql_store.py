# twofa/services/sql_store.py
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from twofa.core.errors import PersistenceConflict, PersistenceUnavailable
from twofa.models.two_factor import TwoFactorAuth, TwoFactorLog
from twofa.services.audit import TwoFactorLogEntry
from twofa.services.store import TwoFactorRecord, utcnow

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    # some drivers (sqlite, mysql) hand back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: TwoFactorAuth) -> TwoFactorRecord:
    return TwoFactorRecord(
        user_id=row.user_id,
        secret=row.secret,
        is_enabled=bool(row.is_enabled),
        backup_code_hashes=tuple(row.backup_codes or ()),
        backup_codes_used=row.backup_codes_used or 0,
        verified_at=_aware(row.verified_at),
        last_used_at=_aware(row.last_used_at),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        version=row.version,
    )


class SqlAlchemyTwoFactorStore:
    """Stores records in `two_factor_auth`; one short transaction per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, user_id: str) -> TwoFactorRecord | None:
        try:
            async with self._session_factory() as db:
                res = await db.execute(select(TwoFactorAuth).where(TwoFactorAuth.user_id == user_id))
                row = res.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("2FA record read failed for user %s: %s", user_id, exc)
            raise PersistenceUnavailable() from exc
        return _to_record(row) if row else None

    async def create(self, record: TwoFactorRecord) -> TwoFactorRecord:
        row = TwoFactorAuth(
            user_id=record.user_id,
            secret=record.secret,
            is_enabled=record.is_enabled,
            backup_codes=list(record.backup_code_hashes),
            backup_codes_used=record.backup_codes_used,
            verified_at=record.verified_at,
            last_used_at=record.last_used_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
            version=1,
        )
        try:
            async with self._session_factory() as db:
                db.add(row)
                await db.commit()
        except IntegrityError as exc:
            # another request inserted the same user_id first
            raise PersistenceConflict() from exc
        except SQLAlchemyError as exc:
            logger.error("2FA record insert failed for user %s: %s", record.user_id, exc)
            raise PersistenceUnavailable() from exc
        return dataclasses.replace(record, version=1)

    async def update(self, record: TwoFactorRecord, expected_version: int) -> TwoFactorRecord:
        now = utcnow()
        stmt = (
            update(TwoFactorAuth)
            .where(TwoFactorAuth.user_id == record.user_id, TwoFactorAuth.version == expected_version)
            .values(
                secret=record.secret,
                is_enabled=record.is_enabled,
                backup_codes=list(record.backup_code_hashes),
                backup_codes_used=record.backup_codes_used,
                verified_at=record.verified_at,
                last_used_at=record.last_used_at,
                updated_at=now,
                version=expected_version + 1,
            )
        )
        try:
            async with self._session_factory() as db:
                res = await db.execute(stmt)
                if res.rowcount != 1:
                    await db.rollback()
                    raise PersistenceConflict()
                await db.commit()
        except SQLAlchemyError as exc:
            logger.error("2FA record update failed for user %s: %s", record.user_id, exc)
            raise PersistenceUnavailable() from exc
        return dataclasses.replace(record, updated_at=now, version=expected_version + 1)


class SqlAlchemyAuditSink:
    """Appends to `two_factor_logs`. Errors propagate; AuditLogger decides what to do with them."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def append(self, entry: TwoFactorLogEntry) -> None:
        async with self._session_factory() as db:
            db.add(TwoFactorLog(
                user_id=entry.user_id,
                action=entry.action.value,
                success=entry.success,
                protected_action=entry.protected_action,
                ip_address=entry.ip_address,
                user_agent=entry.user_agent[:512] if entry.user_agent else None,
                details=entry.metadata,
                created_at=entry.created_at,
            ))
            await db.commit()
