"""Process-wide collaborators, built once by create_app and injected per request."""

from dataclasses import dataclass, field

from fastapi import Request

from viewmaxx.auth.service import TokenService
from viewmaxx.auth.store import MemoryTokenStore, RedisTokenStore, TokenStore
from viewmaxx.config.settings import Settings
from viewmaxx.realtime.hub import RoomHub
from viewmaxx.users.repository import MemoryUserRepository, SupabaseUserRepository, UserRepository


@dataclass
class Services:
    settings: Settings
    users: UserRepository
    token_store: TokenStore
    tokens: TokenService
    hub: RoomHub = field(default_factory=RoomHub)


def build_services(
    settings: Settings,
    users: UserRepository | None = None,
    token_store: TokenStore | None = None,
) -> Services:
    if users is None:
        if settings.STORAGE_BACKEND == "memory":
            users = MemoryUserRepository()
        else:
            from viewmaxx.db.client import create_supabase

            users = SupabaseUserRepository(create_supabase(settings))

    if token_store is None:
        if settings.TOKEN_STORE_BACKEND == "memory":
            token_store = MemoryTokenStore()
        else:
            token_store = RedisTokenStore(settings.REDIS_URL, password=settings.REDIS_PASSWORD)

    return Services(
        settings=settings,
        users=users,
        token_store=token_store,
        tokens=TokenService(settings, users, token_store),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
