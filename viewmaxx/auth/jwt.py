"""JWT token creation and verification."""

import uuid
from datetime import datetime, timedelta, timezone

import jwt

from viewmaxx.auth.errors import InvalidToken, TokenExpired

ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"


def create_access_token(user_id: str, email: str, role: str, secret: str, expires_minutes: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "type": ACCESS,
        "jti": uuid.uuid4().hex,
        "exp": now + timedelta(minutes=expires_minutes),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def create_refresh_token(user_id: str, secret: str, expires_days: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": REFRESH,
        "jti": uuid.uuid4().hex,
        "exp": now + timedelta(days=expires_days),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_token(token: str, secret: str, token_type: str) -> dict:
    """Decode and validate a JWT of the given type.

    Raises TokenExpired when only the expiry is at fault, InvalidToken for
    everything else (bad signature, malformed, missing subject, wrong type).
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM], options={"require": ["exp", "sub"]})
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpired("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidToken("Invalid token") from exc

    if payload.get("type") != token_type:
        raise InvalidToken("Invalid token type")
    return payload
