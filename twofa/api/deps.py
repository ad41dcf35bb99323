from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from twofa.core.config import settings
from twofa.core.errors import Unauthenticated
from twofa.services.audit import AuditLogger
from twofa.services.two_factor import EngineConfig, RequestContext, TwoFactorService


bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Caller:
    user_id: str
    email: str | None = None


async def get_caller(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Caller:
    # token validation lives in the auth service; here we only need `sub`
    if creds is None:
        raise Unauthenticated()
    try:
        payload = jwt.decode(creds.credentials, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise Unauthenticated("Invalid or expired token")

    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        raise Unauthenticated("Invalid token payload")
    email = payload.get("email")
    return Caller(user_id=sub, email=email if isinstance(email, str) else None)


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else None)


def request_context(request: Request, caller: Caller, protected_action: str | None = None) -> RequestContext:
    return RequestContext(
        user_id=caller.user_id,
        account_label=caller.email,
        protected_action=protected_action,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        timeout=settings.STORAGE_TIMEOUT_SECONDS,
    )


@lru_cache
def get_two_factor_service() -> TwoFactorService:
    # DB engine is created on first use only
    from twofa.core.db import SessionLocal
    from twofa.services.sql_store import SqlAlchemyAuditSink, SqlAlchemyTwoFactorStore

    config = EngineConfig.from_settings(settings)
    return TwoFactorService(
        store=SqlAlchemyTwoFactorStore(SessionLocal),
        audit=AuditLogger(SqlAlchemyAuditSink(SessionLocal), timeout=config.audit_timeout),
        config=config,
    )
