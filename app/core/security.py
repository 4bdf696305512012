"""
Identity & Authorization Gate

Resolves the caller from the request's session token and exposes the three
procedure tiers as guard functions:

    public     -> no guard
    protected  -> require_identity(identity)
    owner      -> require_owner(identity)

Guards are plain functions over an explicit ``Optional[Identity]``. Every
service method calls its guard first, so the services can be called (and
tested) without a request; routes only resolve the identity via
get_identity() and hand it through.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import ProcedureError
from app.database import get_db
from app.models import Session, User, UserRole, utcnow

logger = logging.getLogger(__name__)

OWNER_ROLE = UserRole.OWNER.value


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as reported by the session provider."""
    id: str
    name: str
    email: str
    role: str = UserRole.CUSTOMER.value

    @property
    def is_owner(self) -> bool:
        return self.role == OWNER_ROLE

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(id=user.id, name=user.name, email=user.email, role=user.role.value)


def require_identity(identity: Optional[Identity]) -> Identity:
    """Protected tier: any authenticated caller."""
    if identity is None:
        raise ProcedureError.unauthorized("You must be logged in to access this resource")
    return identity


def require_owner(identity: Optional[Identity]) -> Identity:
    """Owner tier: authenticated caller whose role is OWNER."""
    identity = require_identity(identity)
    if not identity.is_owner:
        logger.warning(f"Owner-only procedure denied for user {identity.id}")
        raise ProcedureError.forbidden("You must be a restaurant owner to access this resource")
    return identity


def extract_session_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, falling back to the session cookie."""
    authorization = request.headers.get("authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()

    return request.cookies.get(get_settings().session_cookie_name) or None


async def resolve_identity(db: AsyncSession, token: Optional[str]) -> Optional[Identity]:
    """Look up an unexpired session and return its user, or None."""
    if not token:
        return None

    result = await db.execute(
        select(User)
        .join(Session, Session.user_id == User.id)
        .where(Session.token == token, Session.expires_at > utcnow())
    )
    user = result.scalar_one_or_none()

    if user is None:
        logger.debug("Session token did not resolve to a user")
        return None

    return Identity.from_user(user)


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================

async def get_identity(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[Identity]:
    """Caller for the current request, or None when anonymous."""
    return await resolve_identity(db, extract_session_token(request))
