"""Owner bearer-token handling.

Owner identity is issued elsewhere; this service only verifies the signed
access token and extracts the owner id from its ``sub`` claim.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, cast

from fastapi import HTTPException
from jose import JWTError, jwt

from sharepod.config import settings


def _jwt_secret() -> str:
    secret = settings.jwt_secret
    if not secret:
        raise HTTPException(status_code=500, detail="JWT secret not configured")
    return secret


def issue_access_token(owner_id: str, ttl_minutes: int = 15) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": owner_id,
        "typ": "access",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl_minutes)).timestamp()),
    }
    return cast(str, jwt.encode(payload, _jwt_secret(), algorithm=settings.jwt_algorithm))


def decode_access_token(token: str) -> dict:
    try:
        payload = cast(
            dict[Any, Any],
            jwt.decode(token, _jwt_secret(), algorithms=[settings.jwt_algorithm]),
        )
    except JWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc
    if payload.get("typ") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type")
    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")
    return payload


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1].strip()
    return None
