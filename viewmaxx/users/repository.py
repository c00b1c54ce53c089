"""Data access layer for users (the credential store)."""

import asyncio
import uuid
from typing import Any, Protocol

from supabase import Client

from viewmaxx.db.models import USERS
from viewmaxx.users.models import User


class UserRepository(Protocol):
    async def find_by_id(self, user_id: str) -> User | None:
        ...

    async def find_by_email(self, email: str) -> User | None:
        ...

    async def find_by_username(self, username: str) -> User | None:
        ...

    async def create(self, data: dict[str, Any]) -> User:
        ...

    async def update(self, user_id: str, data: dict[str, Any]) -> User | None:
        ...


class SupabaseUserRepository:
    """Users table over the (synchronous) supabase client, run off the event loop."""

    def __init__(self, client: Client):
        self._db = client

    async def _first(self, column: str, value: str) -> User | None:
        def query():
            return self._db.table(USERS).select("*").eq(column, value).execute()

        result = await asyncio.to_thread(query)
        return User.from_row(result.data[0]) if result.data else None

    async def find_by_id(self, user_id: str) -> User | None:
        return await self._first("id", user_id)

    async def find_by_email(self, email: str) -> User | None:
        return await self._first("email", email.lower())

    async def find_by_username(self, username: str) -> User | None:
        return await self._first("username", username)

    async def create(self, data: dict[str, Any]) -> User:
        result = await asyncio.to_thread(lambda: self._db.table(USERS).insert(data).execute())
        if not result.data:
            raise RuntimeError("Failed to create user")
        return User.from_row(result.data[0])

    async def update(self, user_id: str, data: dict[str, Any]) -> User | None:
        result = await asyncio.to_thread(
            lambda: self._db.table(USERS).update(data).eq("id", user_id).execute()
        )
        return User.from_row(result.data[0]) if result.data else None


class MemoryUserRepository:
    """Dict-backed repository for local development and tests."""

    def __init__(self):
        self._users: dict[str, User] = {}

    async def find_by_id(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def find_by_email(self, email: str) -> User | None:
        email = email.lower()
        return next((u for u in self._users.values() if u.email == email), None)

    async def find_by_username(self, username: str) -> User | None:
        return next((u for u in self._users.values() if u.username == username), None)

    async def create(self, data: dict[str, Any]) -> User:
        row = {"id": str(uuid.uuid4()), **data}
        user = User.from_row(row)
        self._users[user.id] = user
        return user

    async def update(self, user_id: str, data: dict[str, Any]) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        for key, value in data.items():
            setattr(user, key, value)
        return user

    async def delete(self, user_id: str) -> None:
        self._users.pop(user_id, None)
