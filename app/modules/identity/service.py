"""Identity business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import RoleEnum
from app.core.security import decode_token, oauth2_scheme
from app.modules.identity.models import User
from app.modules.identity.repository import IdentityRepository


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


class IdentityService:
    """Resolves users and roles for the scheduling core."""

    def __init__(self, repository: IdentityRepository) -> None:
        self.repository = repository

    async def get_user(self, user_id: UUID) -> User | None:
        """Return user by id, or None."""
        return await self.repository.get_user_by_id(user_id)

    async def get_user_from_access_token(self, token: str) -> User:
        """Resolve user from access token."""
        payload = decode_token(token)
        if payload.get("type") != "access":
            raise _unauthorized("Invalid access token")

        subject = payload.get("sub")
        if not subject:
            raise _unauthorized("Token subject is missing")
        try:
            user_id = UUID(str(subject))
        except ValueError as exc:
            raise _unauthorized("Token subject is malformed") from exc

        user = await self.repository.get_user_by_id(user_id)
        if user is None:
            raise _unauthorized("User not found")
        if not user.is_active:
            raise _unauthorized("User is inactive")

        return user


async def get_identity_service(session: AsyncSession = Depends(get_db_session)) -> IdentityService:
    """Dependency to provide identity service."""
    return IdentityService(IdentityRepository(session))


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    service: IdentityService = Depends(get_identity_service),
) -> User:
    """Resolve currently authenticated user from bearer token."""
    return await service.get_user_from_access_token(token)


def require_roles(*roles: RoleEnum):
    """Dependency factory for role-based access."""

    async def _checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operation not permitted for your role",
            )
        return current_user

    return _checker
