"""
Credential storage for provider API keys.

Keys are looked up per request and passed explicitly down to the router;
nothing below the HTTP layer caches them.

Implementations
---------------
InMemoryCredentialStore     — process-local dict, for tests and scripts
DatabaseCredentialStore     — ``api_credentials`` table via SQLAlchemy
EnvironmentCredentialStore  — wraps another store and fills missing keys
                              from OPENAI_API_KEY / CLAUDE_API_KEY
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from lektorat.config import settings
from lektorat.exceptions import InvalidCredentialError
from lektorat.models.database_models import ApiCredential
from lektorat.services.ai_router import ProviderCredentials, has_credential

logger = logging.getLogger(__name__)

OPENAI_KEY_PREFIX = "sk-"


class CredentialStore(Protocol):
    async def load(self, user_id: str) -> ProviderCredentials:
        ...

    async def save(
        self,
        user_id: str,
        openai_api_key: Optional[str] = None,
        claude_api_key: Optional[str] = None,
    ) -> ProviderCredentials:
        ...

    async def delete(self, user_id: str) -> None:
        ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def validate_key_formats(
    openai_api_key: Optional[str] = None,
    claude_api_key: Optional[str] = None,
) -> None:
    """Basic format checks applied before a key is stored."""
    if has_credential(openai_api_key) and not openai_api_key.strip().startswith(OPENAI_KEY_PREFIX):
        raise InvalidCredentialError("Invalid OpenAI API key format")
    for key in (openai_api_key, claude_api_key):
        if has_credential(key) and any(c.isspace() for c in key.strip()):
            raise InvalidCredentialError("API keys must not contain whitespace")


def mask_key(key: Optional[str]) -> Optional[str]:
    """``sk-...wxyz`` style preview; never returns the full key."""
    if not has_credential(key):
        return None
    key = key.strip()
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:3]}...{key[-4:]}"


def _merge(current: Optional[str], update: Optional[str]) -> Optional[str]:
    """None keeps the stored value, an empty string clears it."""
    if update is None:
        return current
    return update.strip() or None


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------

class InMemoryCredentialStore:
    def __init__(self, initial: Optional[Dict[str, ProviderCredentials]] = None) -> None:
        self._data: Dict[str, ProviderCredentials] = dict(initial or {})

    async def load(self, user_id: str) -> ProviderCredentials:
        return self._data.get(user_id, ProviderCredentials())

    async def save(
        self,
        user_id: str,
        openai_api_key: Optional[str] = None,
        claude_api_key: Optional[str] = None,
    ) -> ProviderCredentials:
        validate_key_formats(openai_api_key, claude_api_key)
        current = self._data.get(user_id, ProviderCredentials())
        updated = ProviderCredentials(
            openai=_merge(current.openai, openai_api_key),
            claude=_merge(current.claude, claude_api_key),
        )
        self._data[user_id] = updated
        return updated

    async def delete(self, user_id: str) -> None:
        self._data.pop(user_id, None)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

class DatabaseCredentialStore:
    """Reads and upserts the user's ``api_credentials`` row in *db*."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _row(self, user_id: str) -> Optional[ApiCredential]:
        result = await self.db.execute(
            select(ApiCredential).where(ApiCredential.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def load(self, user_id: str) -> ProviderCredentials:
        row = await self._row(user_id)
        if row is None:
            return ProviderCredentials()
        return ProviderCredentials(openai=row.openai_api_key, claude=row.claude_api_key)

    async def save(
        self,
        user_id: str,
        openai_api_key: Optional[str] = None,
        claude_api_key: Optional[str] = None,
    ) -> ProviderCredentials:
        validate_key_formats(openai_api_key, claude_api_key)

        row = await self._row(user_id)
        if row is None:
            row = ApiCredential(user_id=user_id)
            self.db.add(row)

        row.openai_api_key = _merge(row.openai_api_key, openai_api_key)
        row.claude_api_key = _merge(row.claude_api_key, claude_api_key)
        await self.db.flush()

        logger.info("Stored API keys for user %s", user_id)
        return ProviderCredentials(openai=row.openai_api_key, claude=row.claude_api_key)

    async def delete(self, user_id: str) -> None:
        await self.db.execute(delete(ApiCredential).where(ApiCredential.user_id == user_id))
        await self.db.flush()
        logger.info("Deleted API keys for user %s", user_id)


# ---------------------------------------------------------------------------
# Environment defaults
# ---------------------------------------------------------------------------

class EnvironmentCredentialStore:
    """
    Global keys from the environment as a fallback for users who have not
    stored their own.  Writes go to the wrapped store.
    """

    def __init__(
        self,
        inner: Optional[CredentialStore] = None,
        openai_api_key: Optional[str] = None,
        claude_api_key: Optional[str] = None,
    ) -> None:
        self.inner = inner
        self.openai_api_key = openai_api_key if openai_api_key is not None else settings.OPENAI_API_KEY
        self.claude_api_key = claude_api_key if claude_api_key is not None else settings.CLAUDE_API_KEY

    async def load(self, user_id: str) -> ProviderCredentials:
        own = await self.inner.load(user_id) if self.inner else ProviderCredentials()
        return ProviderCredentials(
            openai=own.openai if has_credential(own.openai) else self.openai_api_key,
            claude=own.claude if has_credential(own.claude) else self.claude_api_key,
        )

    async def save(
        self,
        user_id: str,
        openai_api_key: Optional[str] = None,
        claude_api_key: Optional[str] = None,
    ) -> ProviderCredentials:
        if self.inner is None:
            raise InvalidCredentialError("Global API keys cannot be changed at runtime")
        return await self.inner.save(user_id, openai_api_key, claude_api_key)

    async def delete(self, user_id: str) -> None:
        if self.inner is not None:
            await self.inner.delete(user_id)
