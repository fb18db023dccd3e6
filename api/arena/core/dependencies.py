"""FastAPI dependencies for injection into route handlers."""

import enum
from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arena.core.auth import JWTError, decode_token
from arena.models.organization import Club

bearer_scheme = HTTPBearer(auto_error=False)


class AdminType(enum.StrEnum):
    ROOT_ADMIN = "root_admin"
    ORGANIZATION_ADMIN = "organization_admin"
    CLUB_ADMIN = "club_admin"


@dataclass
class AdminContext:
    """The authenticated admin and the ids they manage."""

    user_id: int
    admin_type: AdminType
    managed_ids: list[int] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.admin_type == AdminType.ROOT_ADMIN

    @property
    def is_club_admin(self) -> bool:
        return self.admin_type == AdminType.CLUB_ADMIN

    @property
    def is_organization_admin(self) -> bool:
        return self.admin_type == AdminType.ORGANIZATION_ADMIN


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AdminContext:
    """Extract the admin context from the JWT bearer token.

    Any of the three admin types is accepted; players (no admin_type claim) get 403.
    """
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        payload = decode_token(credentials.credentials)
        if payload.get("type") != "access":
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")
        user_id = int(payload["sub"])
    except (JWTError, KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from None

    try:
        admin_type = AdminType(payload.get("admin_type"))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required") from None

    managed_ids = [int(i) for i in payload.get("managed_ids") or []]
    return AdminContext(user_id=user_id, admin_type=admin_type, managed_ids=managed_ids)


async def require_root_admin(admin: AdminContext = Depends(get_current_admin)) -> AdminContext:
    """Require the platform-level root admin."""
    if not admin.is_root:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Root admin access required")
    return admin


# ---------------------------------------------------------------------------
# Club scoping
# ---------------------------------------------------------------------------


async def ensure_club_access(db: AsyncSession, admin: AdminContext, club_id: int, action: str = "manage") -> Club:
    """Return the club if the admin may act on it, else raise 404/403.

    Root admins reach every club, organization admins the clubs of their
    organizations, club admins only the clubs they manage.
    """
    result = await db.execute(select(Club).where(Club.id == club_id))
    club = result.scalar_one_or_none()
    if club is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Club not found")

    if admin.is_club_admin and club.id not in admin.managed_ids:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You do not have permission to {action} this club",
        )
    if admin.is_organization_admin and club.organization_id not in admin.managed_ids:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You do not have permission to {action} this club",
        )
    return club


def ensure_organization_access(admin: AdminContext, organization_id: int) -> None:
    """Organization-level views are for root admins and that organization's admins."""
    if admin.is_root:
        return
    if admin.is_organization_admin and organization_id in admin.managed_ids:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You do not have permission to access this organization",
    )


async def get_visible_club_ids(db: AsyncSession, admin: AdminContext) -> list[int] | None:
    """Club ids the admin may read. None means unrestricted (root)."""
    if admin.is_root:
        return None
    if admin.is_club_admin:
        return list(admin.managed_ids)
    result = await db.execute(select(Club.id).where(Club.organization_id.in_(admin.managed_ids)))
    return list(result.scalars().all())
