"""Shared fixtures: in-memory store/audit sink and a controllable clock."""

from __future__ import annotations

import os

# must be set before twofa.core.config is imported anywhere
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest

from twofa.core import base32, otp
from twofa.services.audit import AuditLogger, InMemoryAuditSink
from twofa.services.store import InMemoryTwoFactorStore
from twofa.services.two_factor import EngineConfig, RequestContext, TwoFactorService

T0 = 1_700_000_015.0


class FakeClock:
    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def code_for(secret: str, at: float) -> str:
    return otp.totp(base32.decode(secret), at)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryTwoFactorStore()


@pytest.fixture
def sink():
    return InMemoryAuditSink()


@pytest.fixture
def service(store, sink, clock):
    return TwoFactorService(
        store=store,
        audit=AuditLogger(sink, timeout=0.5),
        config=EngineConfig(issuer="Pay2X"),
        clock=clock,
    )


@pytest.fixture
def ctx():
    return RequestContext(
        user_id="user-1",
        account_label="alice@example.com",
        ip_address="203.0.113.7",
        user_agent="pytest",
    )


@pytest.fixture
async def enabled(service, ctx, clock):
    """A user who finished enrollment; yields (secret, backup_codes)."""
    setup = await service.setup(ctx)
    result = await service.verify_setup(ctx, code_for(setup.secret, clock.now))
    return setup.secret, result.backup_codes
