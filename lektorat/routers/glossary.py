"""
Glossary endpoints.

POST /parse — upload a text file of ``term: explanation`` lines.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from lektorat.config import settings
from lektorat.models.schemas import GlossaryEntrySchema, GlossaryParseResponse
from lektorat.routers.uploads import check_extension, read_limited
from lektorat.services.glossary import parse_glossary

logger = logging.getLogger(__name__)

router = APIRouter()

GLOSSARY_FILE_TYPES = [".txt", ".csv", ".md"]


@router.post("/parse", response_model=GlossaryParseResponse)
async def parse_glossary_upload(file: UploadFile = File(...)) -> GlossaryParseResponse:
    """
    Parse a glossary upload.

    Malformed lines are reported by 1-based line number; valid entries are
    returned regardless so the client can decide whether to proceed.
    """
    check_extension(file, GLOSSARY_FILE_TYPES)
    data = await read_limited(file, settings.MAX_GLOSSARY_SIZE)

    try:
        content = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Glossary file must be UTF-8 encoded text.",
        )

    result = parse_glossary(content)
    return GlossaryParseResponse(
        entries=[
            GlossaryEntrySchema(term=e.term, explanation=e.explanation) for e in result.entries
        ],
        invalid_lines=result.invalid_lines,
        error=result.error_message,
    )
