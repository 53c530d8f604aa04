"""
Translation endpoint.

POST / — translate a text synchronously; long texts are chunked transparently.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from lektorat.dependencies.auth import get_user_credentials
from lektorat.dependencies.services import get_orchestrator
from lektorat.exceptions import LektoratError
from lektorat.models.schemas import ChangeItemSchema, TranslationRequest, TranslationResponse
from lektorat.routers.errors import http_error
from lektorat.services.ai_router import ProviderCredentials
from lektorat.services.glossary import GlossaryEntry
from lektorat.services.orchestrator import ChunkOrchestrator, TranslationTask

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=TranslationResponse)
async def translate_text(
    payload: TranslationRequest,
    credentials: ProviderCredentials = Depends(get_user_credentials),
    orchestrator: ChunkOrchestrator = Depends(get_orchestrator),
) -> TranslationResponse:
    """Translate ``text`` into ``target_language`` and return the notes list."""
    glossary = [GlossaryEntry(term=g.term, explanation=g.explanation) for g in payload.glossary]
    task = TranslationTask(
        style=payload.style,
        source_language=payload.source_language,
        target_language=payload.target_language,
    )

    try:
        result = await orchestrator.process_text(
            payload.text,
            credentials,
            task,
            payload.model,
            system_message=payload.system_message,
            glossary=glossary,
        )
    except LektoratError as exc:
        raise http_error(exc) from exc

    return TranslationResponse(
        text=result.merged_text,
        notes=[ChangeItemSchema(text=i.text, is_category=i.is_category) for i in result.items],
        chunk_count=len(result.processed_chunks),
        model=payload.model,
        source_language=payload.source_language,
        target_language=payload.target_language,
    )
