"""User record and its client-facing projections."""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any

from viewmaxx.db.models import ROLE_USER


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class User:
    id: str
    email: str
    username: str
    display_name: str | None = None
    password_hash: str | None = None
    avatar: str | None = None
    bio: str | None = None
    role: str = ROLE_USER
    is_verified: bool = False
    is_banned: bool = False
    is_suspended: bool = False
    refresh_token: str | None = None
    subscribers_count: int = 0
    subscribing_count: int = 0
    total_views: int = 0
    total_videos: int = 0
    created_at: str = field(default_factory=_now)
    last_login: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "User":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in row.items() if k in known})

    def to_row(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def is_restricted(self) -> bool:
        return self.is_banned or self.is_suspended

    def projection(self) -> "UserProjection":
        return UserProjection(
            id=self.id,
            email=self.email,
            username=self.username,
            display_name=self.display_name,
            avatar=self.avatar,
            bio=self.bio,
            role=self.role,
            is_verified=self.is_verified,
            is_banned=self.is_banned,
            is_suspended=self.is_suspended,
            subscribers_count=self.subscribers_count,
            subscribing_count=self.subscribing_count,
            total_views=self.total_views,
            total_videos=self.total_videos,
            created_at=self.created_at,
            last_login=self.last_login,
        )


@dataclass(frozen=True)
class UserProjection:
    """What the guard attaches to a request and the gateway binds to a socket.

    Never carries the password hash or the stored refresh token.
    """

    id: str
    email: str
    username: str
    display_name: str | None
    avatar: str | None
    bio: str | None
    role: str
    is_verified: bool
    is_banned: bool
    is_suspended: bool
    subscribers_count: int = 0
    subscribing_count: int = 0
    total_views: int = 0
    total_videos: int = 0
    created_at: str | None = None
    last_login: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "displayName": self.display_name,
            "avatar": self.avatar,
            "bio": self.bio,
            "role": self.role,
            "isVerified": self.is_verified,
            "isBanned": self.is_banned,
            "isSuspended": self.is_suspended,
            "subscribersCount": self.subscribers_count,
            "subscribingCount": self.subscribing_count,
            "totalViews": self.total_views,
            "totalVideos": self.total_videos,
            "createdAt": self.created_at,
            "lastLogin": self.last_login,
        }

    def to_session_dict(self) -> dict[str, Any]:
        """Compact snapshot returned by refresh and sent on socket connect."""
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "displayName": self.display_name,
            "avatar": self.avatar,
            "role": self.role,
            "isVerified": self.is_verified,
        }

    def to_public_dict(self) -> dict[str, Any]:
        data = self.to_dict()
        for private in ("email", "isBanned", "isSuspended", "lastLogin"):
            data.pop(private)
        return data
