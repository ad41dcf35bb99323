# twofa/services/store.py
"""
Persistence interface for the per-user 2FA record.

Writes are conditional: `create` only succeeds when no record exists and
`update` only when the stored version still equals the one that was read.
Both raise PersistenceConflict otherwise, which is what keeps a backup code
from being spent twice by concurrent requests.
"""
from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from twofa.core.errors import PersistenceConflict


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class TwoFactorRecord:
    user_id: str
    secret: str
    is_enabled: bool = False
    backup_code_hashes: tuple[str, ...] = ()
    backup_codes_used: int = 0
    verified_at: datetime | None = None
    last_used_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    version: int = 1


class TwoFactorStore(Protocol):
    async def get(self, user_id: str) -> TwoFactorRecord | None: ...

    async def create(self, record: TwoFactorRecord) -> TwoFactorRecord: ...

    async def update(self, record: TwoFactorRecord, expected_version: int) -> TwoFactorRecord: ...


class InMemoryTwoFactorStore:
    """Dict-backed store for tests and local runs. The lock makes each write a compare-and-swap."""

    def __init__(self) -> None:
        self._records: dict[str, TwoFactorRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, user_id: str) -> TwoFactorRecord | None:
        return self._records.get(user_id)

    async def create(self, record: TwoFactorRecord) -> TwoFactorRecord:
        async with self._lock:
            if record.user_id in self._records:
                raise PersistenceConflict()
            stored = dataclasses.replace(record, version=1)
            self._records[record.user_id] = stored
            return stored

    async def update(self, record: TwoFactorRecord, expected_version: int) -> TwoFactorRecord:
        async with self._lock:
            current = self._records.get(record.user_id)
            if current is None or current.version != expected_version:
                raise PersistenceConflict()
            stored = dataclasses.replace(record, version=expected_version + 1, updated_at=utcnow())
            self._records[record.user_id] = stored
            return stored
