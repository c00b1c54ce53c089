"""Database table name constants and role references."""

# Table names — single source of truth for Supabase queries
USERS = "users"

# Role constants
ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"
ROLE_MODERATOR = "MODERATOR"
VALID_ROLES = {ROLE_USER, ROLE_ADMIN, ROLE_MODERATOR}

# Ephemeral store key for a user's active refresh token
REFRESH_TOKEN_KEY = "refresh_token:{user_id}"


def refresh_token_key(user_id: str) -> str:
    return REFRESH_TOKEN_KEY.format(user_id=user_id)
