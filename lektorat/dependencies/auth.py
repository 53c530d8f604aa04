"""
Authentication dependencies for FastAPI routes.

Extracts user identity from the X-User-Id header (set by the upstream
gateway) and exposes the per-user credential store.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lektorat.database import get_db
from lektorat.models.database_models import User
from lektorat.services.ai_router import ProviderCredentials
from lektorat.services.credential_store import (
    CredentialStore,
    DatabaseCredentialStore,
    EnvironmentCredentialStore,
)

logger = logging.getLogger(__name__)


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """Extract the authenticated user ID from the request header. Raises 401 if missing."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header.",
        )
    return x_user_id


async def get_or_create_user(
    user_id: str = Depends(get_current_user_id),
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Ensure the user exists in the local users table. Creates if needed."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(
            id=user_id,
            email=x_user_email or f"{user_id}@lektorat.local",
            name=x_user_name,
        )
        db.add(user)
        await db.flush()
        logger.info("Created new user: id=%s email=%s", user_id, user.email)

    return user


async def get_credential_store(db: AsyncSession = Depends(get_db)) -> CredentialStore:
    """Per-user keys from the database, falling back to the global environment keys."""
    return EnvironmentCredentialStore(inner=DatabaseCredentialStore(db))


async def get_user_credentials(
    user: User = Depends(get_or_create_user),
    store: CredentialStore = Depends(get_credential_store),
) -> ProviderCredentials:
    """Resolve the provider keys for the current request."""
    return await store.load(user.id)
