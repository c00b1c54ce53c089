"""Auth endpoints: register, login, refresh, logout, me."""

import logging
from datetime import datetime, timezone

import bcrypt as _bcrypt
from fastapi import APIRouter, Depends

from viewmaxx.auth.dependencies import AuthContext, require_auth
from viewmaxx.auth.errors import AccountRestricted, BadRequest, Conflict, Unauthenticated
from viewmaxx.auth.schemas import LoginRequest, RefreshRequest, RegisterRequest
from viewmaxx.services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


# --- Helpers ---

def _hash_password(password: str) -> str:
    return _bcrypt.hashpw(password.encode(), _bcrypt.gensalt()).decode()


def _check_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    return _bcrypt.checkpw(password.encode(), password_hash.encode())


# --- Endpoints ---

@router.post("/register", status_code=201, summary="Register a new user", description="Create a new account and return a token pair.")
async def register(body: RegisterRequest, services: Services = Depends(get_services)):
    email = body.email.lower()
    if await services.users.find_by_email(email):
        raise Conflict("Email already registered")
    if await services.users.find_by_username(body.username):
        raise Conflict("Username already taken")

    user = await services.users.create({
        "email": email,
        "username": body.username,
        "display_name": body.display_name or body.username,
        "password_hash": _hash_password(body.password),
    })
    tokens = await services.tokens.issue_tokens(user)
    logger.info("Event: register user_id=%s", user.id)

    return {"success": True, "data": {"user": user.projection().to_dict(), **tokens.to_dict()}}


@router.post("/login", summary="Login", description="Authenticate with email and password, returns an access and refresh token.")
async def login(body: LoginRequest, services: Services = Depends(get_services)):
    user = await services.users.find_by_email(body.email)
    if user is None or not _check_password(body.password, user.password_hash):
        raise Unauthenticated("Invalid email or password")
    if user.is_banned:
        raise AccountRestricted("Your account has been banned.", reason="banned")
    if user.is_suspended:
        raise AccountRestricted("Your account has been suspended.", reason="suspended")

    user = await services.users.update(user.id, {"last_login": datetime.now(timezone.utc).isoformat()}) or user
    tokens = await services.tokens.issue_tokens(user)
    logger.info("Event: login user_id=%s", user.id)

    return {"success": True, "data": {"user": user.projection().to_dict(), **tokens.to_dict()}}


@router.post("/refresh", summary="Refresh tokens", description="Exchange a refresh token for a new pair. The presented refresh token stops working.")
async def refresh(body: RefreshRequest, services: Services = Depends(get_services)):
    if not body.refresh_token:
        raise BadRequest("Refresh token is required")

    tokens, user = await services.tokens.verify_and_rotate_refresh(body.refresh_token)
    return {"success": True, "data": {**tokens.to_dict(), "user": user.to_session_dict()}}


@router.post("/logout", summary="Logout", description="Revoke the caller's refresh token. Requires a valid access token.")
async def logout(ctx: AuthContext = Depends(require_auth), services: Services = Depends(get_services)):
    await services.tokens.revoke(ctx.user_id)
    logger.info("Event: logout user_id=%s", ctx.user_id)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me", summary="Current user", description="Return the authenticated user's profile.")
async def me(ctx: AuthContext = Depends(require_auth)):
    return {"success": True, "data": {"user": ctx.user.to_dict()}}
