"""
Upload helpers shared by the document and glossary endpoints.
"""
from __future__ import annotations

from pathlib import Path
from typing import Sequence

from fastapi import HTTPException, UploadFile, status

_READ_SLICE = 1024 * 1024  # 1 MB


def check_extension(file: UploadFile, allowed: Sequence[str]) -> str:
    """Return the lower-cased extension or raise 400."""
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Upload must include a filename.",
        )

    file_ext = Path(file.filename).suffix.lower()
    if file_ext not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type '{file_ext}'. Accepted: {', '.join(allowed)}",
        )
    return file_ext


async def read_limited(file: UploadFile, max_size: int) -> bytes:
    """Read the upload in slices, raising 413 once *max_size* is exceeded."""
    data = bytearray()
    while True:
        chunk = await file.read(_READ_SLICE)
        if not chunk:
            break
        data.extend(chunk)
        if len(data) > max_size:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File exceeds the {max_size // (1024 * 1024) or 1} MB size limit.",
            )
    return bytes(data)
