"""
Background job endpoints.

POST /editing       — start an editing job, returns immediately with a job id.
POST /translation   — start a translation job.
GET  /{job_id}      — poll phase, chunk progress and (when done) the result.
POST /{job_id}/cancel — stop the job at its next chunk boundary.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from lektorat.dependencies.auth import get_current_user_id, get_user_credentials
from lektorat.dependencies.services import get_orchestrator
from lektorat.exceptions import LektoratError
from lektorat.models.schemas import EditingRequest, JobStatusResponse, TranslationRequest
from lektorat.routers.errors import http_error
from lektorat.services.ai_router import ProviderCredentials
from lektorat.services.glossary import GlossaryEntry
from lektorat.services.job_manager import JobStatus, job_manager
from lektorat.services.orchestrator import (
    ChunkOrchestrator,
    ChunkTask,
    EditingTask,
    TranslationTask,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _job_response(job: JobStatus) -> JobStatusResponse:
    return JobStatusResponse(
        job_id=job.job_id,
        kind=job.kind,
        phase=job.phase,
        completed_chunks=job.completed_chunks,
        total_chunks=job.total_chunks,
        error=job.error,
        result=job.result,
        elapsed_seconds=job.elapsed_seconds,
    )


def _get_owned_job(job_id: str, user_id: str) -> JobStatus:
    job = job_manager.get_status(job_id)
    if job is None or job.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found.",
        )
    return job


async def _run(
    job: JobStatus,
    orchestrator: ChunkOrchestrator,
    text: str,
    credentials: ProviderCredentials,
    task: ChunkTask,
    model: str,
    system_message,
    glossary: List[GlossaryEntry],
    items_key: str,
) -> Dict[str, Any]:
    result = await orchestrator.process_text(
        text,
        credentials,
        task,
        model,
        system_message=system_message,
        glossary=glossary,
        on_progress=job.update_progress,
        cancel_event=job.cancel_event,
    )
    return {
        "text": result.merged_text,
        items_key: [dataclasses.asdict(item) for item in result.items],
        "chunk_count": len(result.processed_chunks),
        "model": model,
    }


def _start(
    user_id: str,
    orchestrator: ChunkOrchestrator,
    credentials: ProviderCredentials,
    task: ChunkTask,
    payload,
    items_key: str,
) -> JobStatusResponse:
    # Configuration problems are reported now rather than as a failed job
    try:
        orchestrator.check_ready(credentials, payload.model)
    except LektoratError as exc:
        raise http_error(exc) from exc

    glossary = [GlossaryEntry(term=g.term, explanation=g.explanation) for g in payload.glossary]
    job = job_manager.create(
        task.kind,
        total_chunks=orchestrator.chunk_count(payload.text),
        user_id=user_id,
    )
    job_manager.start(
        job,
        _run(
            job,
            orchestrator,
            payload.text,
            credentials,
            task,
            payload.model,
            payload.system_message,
            glossary,
            items_key,
        ),
    )
    return _job_response(job)


@router.post(
    "/editing",
    response_model=JobStatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_editing_job(
    payload: EditingRequest,
    user_id: str = Depends(get_current_user_id),
    credentials: ProviderCredentials = Depends(get_user_credentials),
    orchestrator: ChunkOrchestrator = Depends(get_orchestrator),
) -> JobStatusResponse:
    """Queue an editing job; poll GET /api/jobs/{job_id} for progress."""
    return _start(
        user_id, orchestrator, credentials, EditingTask(mode=payload.mode), payload, "changes"
    )


@router.post(
    "/translation",
    response_model=JobStatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_translation_job(
    payload: TranslationRequest,
    user_id: str = Depends(get_current_user_id),
    credentials: ProviderCredentials = Depends(get_user_credentials),
    orchestrator: ChunkOrchestrator = Depends(get_orchestrator),
) -> JobStatusResponse:
    """Queue a translation job; poll GET /api/jobs/{job_id} for progress."""
    task = TranslationTask(
        style=payload.style,
        source_language=payload.source_language,
        target_language=payload.target_language,
    )
    return _start(user_id, orchestrator, credentials, task, payload, "notes")


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
) -> JobStatusResponse:
    """Current phase and chunk progress of a job."""
    return _job_response(_get_owned_job(job_id, user_id))


@router.post("/{job_id}/cancel", response_model=JobStatusResponse)
async def cancel_job(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
) -> JobStatusResponse:
    """
    Request cancellation.  The job ends in ``cancelled`` without a result;
    cancelling a finished job is a no-op.
    """
    _get_owned_job(job_id, user_id)
    job = job_manager.cancel(job_id)
    return _job_response(job)
