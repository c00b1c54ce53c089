"""Auth dependencies for FastAPI route injection.

``require_auth`` and ``optional_auth`` share ``authenticate_token``; they only
differ in what happens on failure. The realtime gateway uses the same function
at socket handshake.
"""

import logging
from dataclasses import dataclass, field

from fastapi import Depends, Request

from viewmaxx.auth.errors import (
    AccountRestricted,
    Forbidden,
    InvalidToken,
    TokenExpired,
    Unauthenticated,
    UserNotFound,
)
from viewmaxx.services import Services, get_services
from viewmaxx.users.models import UserProjection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    user: UserProjection
    claims: dict = field(default_factory=dict)

    @property
    def user_id(self) -> str:
        return self.user.id


def extract_bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        return token or None
    return None


async def authenticate_token(services: Services, token: str) -> AuthContext:
    """Verify an access token and re-read its user from the credential store.

    The user record is loaded fresh on every call so bans, suspensions and role
    changes apply to tokens that are still cryptographically valid.
    """
    try:
        claims = services.tokens.verify_access(token)
    except TokenExpired as exc:
        raise TokenExpired("Your token has expired! Please log in again.") from exc
    except InvalidToken as exc:
        raise InvalidToken("Invalid token. Please log in again!") from exc

    user = await services.users.find_by_id(claims["sub"])
    if user is None:
        raise UserNotFound("The user belonging to this token does no longer exist.")
    if user.is_banned:
        raise AccountRestricted("Your account has been banned.", reason="banned")
    if user.is_suspended:
        raise AccountRestricted("Your account has been suspended.", reason="suspended")

    return AuthContext(user=user.projection(), claims=claims)


async def require_auth(request: Request, services: Services = Depends(get_services)) -> AuthContext:
    token = extract_bearer_token(request.headers.get("Authorization"))
    if not token:
        raise Unauthenticated("You are not logged in! Please log in to get access.")
    ctx = await authenticate_token(services, token)
    request.state.user_id = ctx.user_id
    return ctx


async def optional_auth(request: Request, services: Services = Depends(get_services)) -> AuthContext | None:
    """Never blocks: any failure yields an anonymous request."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    if not token:
        return None
    try:
        ctx = await authenticate_token(services, token)
    except Exception as exc:
        logger.debug("Optional auth failed, continuing anonymously: %s", exc)
        return None
    request.state.user_id = ctx.user_id
    return ctx


def require_role(*roles: str):
    allowed = set(roles)

    async def dependency(ctx: AuthContext = Depends(require_auth)) -> AuthContext:
        if ctx.user.role not in allowed:
            raise Forbidden("You do not have permission to perform this action")
        return ctx

    return dependency
