"""Token service: mints, verifies, rotates and revokes access/refresh token pairs.

Refresh tokens are written to two places: the ephemeral token store (the
source of truth for validity) and the user's database record. Writes go
store first, then database. A failed database write deletes the store entry
again, so a half-issued token can never be redeemed. A failed store write
leaves the database untouched.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from viewmaxx.auth.errors import InvalidRefreshToken, InvalidToken, TokenExpired
from viewmaxx.auth.jwt import ACCESS, REFRESH, create_access_token, create_refresh_token, verify_token
from viewmaxx.auth.store import TokenStore
from viewmaxx.config.settings import Settings
from viewmaxx.db.models import refresh_token_key
from viewmaxx.users.models import User, UserProjection
from viewmaxx.users.repository import UserRepository

logger = logging.getLogger(__name__)


class TokenSubject(Protocol):
    id: str
    email: str
    role: str


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str

    def to_dict(self) -> dict[str, str]:
        return {"accessToken": self.access_token, "refreshToken": self.refresh_token}


class TokenService:
    def __init__(self, settings: Settings, users: UserRepository, store: TokenStore):
        self._settings = settings
        self._users = users
        self._store = store

    def _mint(self, user: TokenSubject) -> TokenPair:
        s = self._settings
        return TokenPair(
            access_token=create_access_token(
                user.id, user.email, user.role, s.JWT_SECRET, s.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
            ),
            refresh_token=create_refresh_token(user.id, s.JWT_REFRESH_SECRET, s.JWT_REFRESH_TOKEN_EXPIRE_DAYS),
        )

    async def _persist_refresh(self, user_id: str, refresh_token: str) -> None:
        try:
            await self._users.update(user_id, {"refresh_token": refresh_token})
        except Exception:
            logger.error("Refresh token DB write failed for user %s; rolling back store entry", user_id)
            try:
                await self._store.delete(refresh_token_key(user_id))
            except Exception:
                logger.exception("Store rollback failed for user %s", user_id)
            raise

    async def issue_tokens(self, user: TokenSubject) -> TokenPair:
        """Mint a fresh pair and make its refresh token the user's only valid one."""
        pair = self._mint(user)
        await self._store.set(
            refresh_token_key(user.id), pair.refresh_token, self._settings.refresh_token_ttl_seconds
        )
        await self._persist_refresh(user.id, pair.refresh_token)
        return pair

    def verify_access(self, token: str) -> dict:
        """Return access-token claims. Raises InvalidToken or TokenExpired."""
        return verify_token(token, self._settings.JWT_SECRET, ACCESS)

    async def verify_and_rotate_refresh(self, token: str) -> tuple[TokenPair, UserProjection]:
        try:
            claims = verify_token(token, self._settings.JWT_REFRESH_SECRET, REFRESH)
        except (InvalidToken, TokenExpired) as exc:
            raise InvalidRefreshToken("Invalid or expired refresh token") from exc

        user_id = claims["sub"]
        key = refresh_token_key(user_id)

        stored = await self._store.get(key)
        if stored is None or stored != token:
            raise InvalidRefreshToken("Invalid refresh token")

        user: User | None = await self._users.find_by_id(user_id)
        if user is None or user.is_restricted:
            raise InvalidRefreshToken("User not found or account restricted")

        pair = self._mint(user)
        # Another rotation of the same token may have landed since the get above
        swapped = await self._store.compare_and_set(
            key, token, pair.refresh_token, self._settings.refresh_token_ttl_seconds
        )
        if not swapped:
            logger.warning("Refresh token for user %s was rotated concurrently", user_id)
            raise InvalidRefreshToken("Invalid refresh token")

        await self._persist_refresh(user_id, pair.refresh_token)
        return pair, user.projection()

    async def revoke(self, user_id: str) -> None:
        """Best-effort revocation. Never raises."""
        try:
            await self._store.delete(refresh_token_key(user_id))
            await self._users.update(user_id, {"refresh_token": None})
            logger.info("Tokens revoked for user: %s", user_id)
        except Exception:
            logger.exception("Error revoking tokens for user %s", user_id)
