"""
Editing ("Lektorat") endpoint.

POST / — edit a text synchronously; long texts are chunked transparently.
For long documents prefer POST /api/jobs/editing, which reports progress.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from lektorat.dependencies.auth import get_user_credentials
from lektorat.dependencies.services import get_orchestrator
from lektorat.exceptions import LektoratError
from lektorat.models.schemas import ChangeItemSchema, EditingRequest, EditingResponse
from lektorat.routers.errors import http_error
from lektorat.services.ai_router import ProviderCredentials
from lektorat.services.glossary import GlossaryEntry
from lektorat.services.orchestrator import ChunkOrchestrator, EditingTask

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=EditingResponse)
async def edit_text(
    payload: EditingRequest,
    credentials: ProviderCredentials = Depends(get_user_credentials),
    orchestrator: ChunkOrchestrator = Depends(get_orchestrator),
) -> EditingResponse:
    """
    Run one editing job and return the edited text with its change list.

    - ``mode``: standard | correction_only | cookbook
    - ``glossary``: optional terms the model must use consistently
    """
    glossary = [GlossaryEntry(term=g.term, explanation=g.explanation) for g in payload.glossary]

    try:
        result = await orchestrator.process_text(
            payload.text,
            credentials,
            EditingTask(mode=payload.mode),
            payload.model,
            system_message=payload.system_message,
            glossary=glossary,
        )
    except LektoratError as exc:
        raise http_error(exc) from exc

    return EditingResponse(
        text=result.merged_text,
        changes=[ChangeItemSchema(text=i.text, is_category=i.is_category) for i in result.items],
        chunk_count=len(result.processed_chunks),
        model=payload.model,
    )
