"""
FastAPI dependency injection utilities.

Provides reusable dependencies for database sessions, authentication and the
external collaborators (geocoder, attachment storage) so that tests can
override each of them through ``app.dependency_overrides``.
"""

from collections.abc import AsyncGenerator
from typing import Annotated, Any

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from proposals_admin.core.db import get_async_sessionmaker
from proposals_admin.core.security import get_current_user as _get_current_user
from proposals_admin.services.attachment_storage import (
    AttachmentStorage,
    get_attachment_storage,
)
from proposals_admin.services.geocoding import Geocoder, get_geocoder

# ============================================================================
# Database Dependencies
# ============================================================================


async def get_async_db_session() -> AsyncGenerator[AsyncSession]:
    """
    Async database session dependency for FastAPI endpoints.

    Usage:
        @router.get("/")
        async def index(db: AsyncDbSession):
            result = await db.execute(select(Proposal))
            return result.scalars().all()

    Yields:
        Async SQLAlchemy database session
    """
    session_maker = get_async_sessionmaker()
    async with session_maker() as session:
        yield session


AsyncDbSession = Annotated[AsyncSession, Depends(get_async_db_session)]


# ============================================================================
# Authentication Dependencies
# ============================================================================


def get_current_user(user: dict[str, Any] = Depends(_get_current_user)) -> dict[str, Any]:
    """
    Re-export of get_current_user from security module.

    Use this dependency for endpoints that require authentication
    but no specific permission. For permission checks use
    ``require_permission()``.

    Returns:
        Decoded JWT payload containing user information
    """
    return user


CurrentUser = Annotated[dict[str, Any], Depends(get_current_user)]


# ============================================================================
# Collaborators
# ============================================================================

GeocoderDep = Annotated[Geocoder, Depends(get_geocoder)]
AttachmentStorageDep = Annotated[AttachmentStorage, Depends(get_attachment_storage)]
