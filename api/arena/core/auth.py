"""JWT access-token handling.

Tokens are minted by the identity service. The claims this API relies on:

    sub          user id
    type         "access"
    admin_type   "root_admin" | "organization_admin" | "club_admin" (absent for players)
    managed_ids  organization ids (organization_admin) or club ids (club_admin)
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from arena.core.config import settings


def create_access_token(subject: str, extra: dict | None = None) -> str:
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {"sub": subject, "exp": expire, "type": "access"}
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_admin_token(user_id: int, admin_type: str, managed_ids: list[int] | None = None) -> str:
    """Convenience for tooling and tests: an access token carrying admin claims."""
    return create_access_token(
        str(user_id),
        extra={"admin_type": admin_type, "managed_ids": list(managed_ids or [])},
    )


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Raises JWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


__all__ = ["JWTError", "create_access_token", "create_admin_token", "decode_token"]
