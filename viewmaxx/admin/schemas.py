"""Request bodies for moderation endpoints."""

from pydantic import BaseModel, Field


class BanRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class SuspendRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)
    duration: int | None = Field(default=None, ge=1, description="Suspension duration in days")
