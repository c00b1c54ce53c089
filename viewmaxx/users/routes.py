"""User profile endpoints."""

from fastapi import APIRouter, Depends

from viewmaxx.auth.dependencies import AuthContext, optional_auth, require_auth
from viewmaxx.auth.errors import NotFound
from viewmaxx.services import Services, get_services

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/profile", summary="Own profile")
async def get_profile(ctx: AuthContext = Depends(require_auth)):
    return {"success": True, "data": {"user": ctx.user.to_dict()}}


@router.get("/{user_id}", summary="Public profile", description="Anyone may view; the owner also sees private fields.")
async def get_user(
    user_id: str,
    ctx: AuthContext | None = Depends(optional_auth),
    services: Services = Depends(get_services),
):
    user = await services.users.find_by_id(user_id)
    if user is None or user.is_banned:
        raise NotFound("User not found")

    projection = user.projection()
    is_self = ctx is not None and ctx.user_id == user.id
    data = projection.to_dict() if is_self else projection.to_public_dict()
    return {"success": True, "data": {"user": data, "isOwner": is_self}}
