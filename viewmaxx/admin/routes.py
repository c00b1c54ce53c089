"""Admin moderation endpoints: ban, suspend, verify and their reversals."""

import logging

from fastapi import APIRouter, Depends

from viewmaxx.admin.schemas import BanRequest, SuspendRequest
from viewmaxx.auth.dependencies import AuthContext, require_role
from viewmaxx.auth.errors import BadRequest, NotFound
from viewmaxx.db.models import ROLE_ADMIN, ROLE_MODERATOR
from viewmaxx.services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])

staff = require_role(ROLE_ADMIN, ROLE_MODERATOR)

RESTRICTIONS = {"is_banned": "banned", "is_suspended": "suspended"}


async def _set_flag(
    services: Services,
    ctx: AuthContext,
    user_id: str,
    flag: str,
    value: bool,
    reason: str | None = None,
    duration: int | None = None,
) -> dict:
    restricting = value and flag in RESTRICTIONS
    if restricting and user_id == ctx.user_id:
        raise BadRequest("You cannot restrict your own account")

    user = await services.users.update(user_id, {flag: value})
    if user is None:
        raise NotFound("User not found")

    logger.warning(
        "Security event: admin_user_%s actor=%s target=%s value=%s reason=%r duration=%s",
        flag, ctx.user_id, user_id, value, reason, duration,
    )

    if restricting:
        # Live sessions learn about the restriction; refresh stops working at once
        await services.tokens.revoke(user_id)
        payload = {"restriction": RESTRICTIONS[flag], "reason": reason}
        if duration is not None:
            payload["duration"] = duration
        await services.hub.emit_to_user(user_id, "account_restricted", payload)

    return {"success": True, "data": {"user": user.projection().to_dict()}}


@router.post("/users/{user_id}/ban", summary="Ban a user")
async def ban_user(
    user_id: str,
    body: BanRequest | None = None,
    ctx: AuthContext = Depends(staff),
    services: Services = Depends(get_services),
):
    body = body or BanRequest()
    return await _set_flag(services, ctx, user_id, "is_banned", True, reason=body.reason)


@router.post("/users/{user_id}/unban", summary="Unban a user")
async def unban_user(user_id: str, ctx: AuthContext = Depends(staff), services: Services = Depends(get_services)):
    return await _set_flag(services, ctx, user_id, "is_banned", False)


@router.post(
    "/users/{user_id}/suspend",
    summary="Suspend a user",
    description="Optional body: `reason` and `duration` in days.",
)
async def suspend_user(
    user_id: str,
    body: SuspendRequest | None = None,
    ctx: AuthContext = Depends(staff),
    services: Services = Depends(get_services),
):
    body = body or SuspendRequest()
    return await _set_flag(
        services, ctx, user_id, "is_suspended", True, reason=body.reason, duration=body.duration
    )


@router.post("/users/{user_id}/unsuspend", summary="Lift a suspension")
async def unsuspend_user(user_id: str, ctx: AuthContext = Depends(staff), services: Services = Depends(get_services)):
    return await _set_flag(services, ctx, user_id, "is_suspended", False)


@router.post("/users/{user_id}/verify", summary="Mark a user as verified")
async def verify_user(user_id: str, ctx: AuthContext = Depends(staff), services: Services = Depends(get_services)):
    return await _set_flag(services, ctx, user_id, "is_verified", True)


@router.post("/users/{user_id}/unverify", summary="Remove a user's verified mark")
async def unverify_user(user_id: str, ctx: AuthContext = Depends(staff), services: Services = Depends(get_services)):
    return await _set_flag(services, ctx, user_id, "is_verified", False)
