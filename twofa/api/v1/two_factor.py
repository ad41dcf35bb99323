from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from twofa.api.deps import Caller, get_caller, get_two_factor_service, request_context
from twofa.schemas.two_factor import (
    BackupCodesOut, DisableOut, ErrorOut, SetupOut, StatusOut, TwoFactorAction, TwoFactorIn, VerifyOut,
)
from twofa.services.two_factor import StatusResult, TwoFactorService

router = APIRouter(prefix="/two-factor", tags=["two-factor"])

_ERRORS = {code: {"model": ErrorOut} for code in (401, 409, 422, 503)}


def _status_out(result: StatusResult) -> StatusOut:
    return StatusOut(
        enabled=result.enabled,
        verified_at=result.verified_at,
        last_used_at=result.last_used_at,
        backup_codes_used=result.backup_codes_used,
    )


def _json(model, exclude_none: bool = False) -> JSONResponse:
    return JSONResponse(model.model_dump(mode="json", by_alias=True, exclude_none=exclude_none))


# ---------- single action-dispatch endpoint ----------
@router.post("", responses=_ERRORS)
async def two_factor(
    body: TwoFactorIn,
    request: Request,
    caller: Caller = Depends(get_caller),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    ctx = request_context(request, caller, body.protected_action)

    if body.action == TwoFactorAction.setup:
        r = await service.setup(ctx)
        return _json(SetupOut(
            secret=r.secret, qr_url=r.qr_url, otpauth_url=r.otpauth_url, reused_secret=r.reused_secret,
        ))

    if body.action == TwoFactorAction.verify_setup:
        r = await service.verify_setup(ctx, body.code)
        return _json(BackupCodesOut(
            backup_codes=r.backup_codes, message="2FA enabled successfully. Save your backup codes!",
        ))

    if body.action == TwoFactorAction.verify:
        r = await service.verify(ctx, body.code)
        return _json(VerifyOut(
            used_backup_code=r.used_backup_code, remaining_backup_codes=r.remaining_backup_codes,
        ), exclude_none=True)

    if body.action == TwoFactorAction.disable:
        await service.disable(ctx, body.code)
        return _json(DisableOut())

    if body.action == TwoFactorAction.regenerate_backup:
        r = await service.regenerate_backup(ctx, body.code)
        return _json(BackupCodesOut(backup_codes=r.backup_codes), exclude_none=True)

    return _json(_status_out(await service.status(ctx)))


@router.get("/status", response_model=StatusOut, response_model_by_alias=True)
async def two_factor_status(
    request: Request,
    caller: Caller = Depends(get_caller),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    return _status_out(await service.status(request_context(request, caller)))
