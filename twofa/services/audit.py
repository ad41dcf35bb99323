# twofa/services/audit.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from twofa.services.store import utcnow

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    setup = "setup"
    verify_setup = "verify-setup"
    verify = "verify"
    disable = "disable"
    backup_used = "backup_used"
    regenerate_backup = "regenerate-backup"


@dataclass(frozen=True)
class TwoFactorLogEntry:
    user_id: str
    action: AuditAction
    success: bool
    protected_action: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)


class AuditSink(Protocol):
    async def append(self, entry: TwoFactorLogEntry) -> None: ...


class InMemoryAuditSink:
    def __init__(self) -> None:
        self.entries: list[TwoFactorLogEntry] = []

    async def append(self, entry: TwoFactorLogEntry) -> None:
        self.entries.append(entry)


class AuditLogger:
    """
    Appends one entry per attempt. A broken or slow sink never fails the
    operation being audited: errors and timeouts are logged and dropped.
    """

    def __init__(self, sink: AuditSink, timeout: float = 2.0):
        self.sink = sink
        self.timeout = timeout

    async def record(self, entry: TwoFactorLogEntry) -> bool:
        try:
            await asyncio.wait_for(self.sink.append(entry), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("2FA audit append timed out (user=%s action=%s)", entry.user_id, entry.action.value)
            return False
        except Exception:
            logger.exception("2FA audit append failed (user=%s action=%s)", entry.user_id, entry.action.value)
            return False
        return True
