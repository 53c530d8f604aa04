"""
Document endpoints.

POST /extract              — upload a .docx, return its text and length stats.
POST /stats                — length stats for already extracted text.
POST /generate             — build the edited .docx (optionally with changes).
POST /generate-translation — build the translated .docx.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, File, HTTPException, Response, UploadFile, status
from starlette.concurrency import run_in_threadpool

from lektorat.config import settings
from lektorat.exceptions import DocumentError
from lektorat.models.schemas import (
    DocumentExtractResponse,
    DocumentStatsRequest,
    DocumentStatsResponse,
    GenerateEditedDocumentRequest,
    GenerateTranslationDocumentRequest,
)
from lektorat.routers.errors import http_error
from lektorat.routers.uploads import check_extension, read_limited
from lektorat.services.chunking import ChunkingService
from lektorat.services.document_io import (
    extract_text_from_docx,
    generate_edited_document,
    generate_translation_document,
)
from lektorat.services.document_stats import calculate_document_stats
from lektorat.services.response_parser import ChangeItem
from lektorat.utils.helpers import safe_filename

logger = logging.getLogger(__name__)

router = APIRouter()

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _stats_response(text: str) -> DocumentStatsResponse:
    stats = calculate_document_stats(text)
    return DocumentStatsResponse(
        char_count=stats.char_count,
        word_count=stats.word_count,
        status=stats.status,
        status_text=stats.status_text,
    )


def _docx_response(data: bytes, filename: str) -> Response:
    return Response(
        content=data,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{safe_filename(filename)}"'},
    )


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

@router.post("/extract", response_model=DocumentExtractResponse)
async def extract_document(file: UploadFile = File(...)) -> DocumentExtractResponse:
    """
    Upload a Word document and return its plain text.

    - Only .docx is accepted (configurable via SUPPORTED_FILE_TYPES)
    - Max file size: MAX_FILE_SIZE
    - Unreadable documents return 422 with an error ``code``
    """
    check_extension(file, settings.SUPPORTED_FILE_TYPES)
    data = await read_limited(file, settings.MAX_FILE_SIZE)

    try:
        text = await run_in_threadpool(extract_text_from_docx, data)
    except DocumentError as exc:
        raise http_error(exc) from exc

    logger.info("Extracted %r: %d chars", file.filename, len(text))
    return DocumentExtractResponse(
        filename=file.filename,
        text=text,
        stats=_stats_response(text),
        needs_chunking=ChunkingService().needs_chunking(text),
    )


@router.post("/stats", response_model=DocumentStatsResponse)
async def document_stats(payload: DocumentStatsRequest) -> DocumentStatsResponse:
    """Character / word counts and the length classification for *text*."""
    return _stats_response(payload.text)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

@router.post("/generate", response_class=Response)
async def generate_document(payload: GenerateEditedDocumentRequest) -> Response:
    """Return the edited text as a .docx download."""
    if not payload.text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Nothing to export: the text is empty.",
        )

    items = [ChangeItem(text=c.text, is_category=c.is_category) for c in payload.changes]
    data = await run_in_threadpool(
        generate_edited_document, payload.text, items, payload.include_changes
    )
    return _docx_response(data, payload.filename)


@router.post("/generate-translation", response_class=Response)
async def generate_translation(payload: GenerateTranslationDocumentRequest) -> Response:
    """Return the translation (optionally side by side with the original) as .docx."""
    if not payload.translated_text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Nothing to export: the translation is empty.",
        )

    notes = [ChangeItem(text=n.text, is_category=n.is_category) for n in payload.notes]
    data = await run_in_threadpool(
        generate_translation_document,
        payload.original_text,
        payload.translated_text,
        notes,
        payload.source_language,
        payload.target_language,
        payload.include_original,
    )
    return _docx_response(data, payload.filename)
