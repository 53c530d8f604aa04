"""
API key management endpoints.

GET    /  — which provider keys are configured (masked).
PUT    /  — store / replace / clear the current user's keys.
DELETE /  — remove the current user's stored keys.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from lektorat.dependencies.auth import get_credential_store, get_or_create_user
from lektorat.exceptions import LektoratError
from lektorat.models.database_models import User
from lektorat.models.schemas import CredentialStatusResponse, CredentialUpdateRequest
from lektorat.routers.errors import http_error
from lektorat.services.ai_router import ProviderCredentials, has_credential
from lektorat.services.credential_store import CredentialStore, mask_key

logger = logging.getLogger(__name__)

router = APIRouter()


def _status_response(credentials: ProviderCredentials) -> CredentialStatusResponse:
    return CredentialStatusResponse(
        openai_configured=has_credential(credentials.openai),
        claude_configured=has_credential(credentials.claude),
        openai_api_key=mask_key(credentials.openai),
        claude_api_key=mask_key(credentials.claude),
        available_providers=credentials.available_providers(),
    )


@router.get("/", response_model=CredentialStatusResponse)
async def get_credentials(
    user: User = Depends(get_or_create_user),
    store: CredentialStore = Depends(get_credential_store),
) -> CredentialStatusResponse:
    """Key status for the current user, including global fallback keys."""
    return _status_response(await store.load(user.id))


@router.put("/", response_model=CredentialStatusResponse)
async def update_credentials(
    payload: CredentialUpdateRequest,
    user: User = Depends(get_or_create_user),
    store: CredentialStore = Depends(get_credential_store),
) -> CredentialStatusResponse:
    """
    Store API keys.  OpenAI keys must start with ``sk-``.
    A field left out keeps the stored key; an empty string clears it.
    """
    try:
        await store.save(user.id, payload.openai_api_key, payload.claude_api_key)
    except LektoratError as exc:
        raise http_error(exc) from exc

    logger.info("Updated API keys for user %s", user.id)
    return _status_response(await store.load(user.id))


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
async def delete_credentials(
    user: User = Depends(get_or_create_user),
    store: CredentialStore = Depends(get_credential_store),
) -> None:
    """Remove every key stored for the current user."""
    await store.delete(user.id)
