"""
Document length statistics.

The status is derived purely from the character count against two fixed
thresholds (WARNING_LIMIT, CRITICAL_LIMIT).  Long documents still work but
are split into several chunks, so the UI warns the user up front.
"""
from __future__ import annotations

import dataclasses
import enum

from lektorat.config import settings


class LengthStatus(str, enum.Enum):
    ACCEPTABLE = "acceptable"
    WARNING = "warning"
    CRITICAL = "critical"


_STATUS_TEXT = {
    LengthStatus.ACCEPTABLE: "Acceptable length",
    LengthStatus.WARNING: "Potentially problematic",
    LengthStatus.CRITICAL: "Very long!",
}


@dataclasses.dataclass(frozen=True)
class DocumentStats:
    char_count: int
    word_count: int
    status: LengthStatus
    status_text: str


def calculate_document_stats(text: str) -> DocumentStats:
    """Count characters and words and classify the document length."""
    characters = len(text)
    words = len(text.split())

    if characters >= settings.CRITICAL_LIMIT:
        status = LengthStatus.CRITICAL
    elif characters >= settings.WARNING_LIMIT:
        status = LengthStatus.WARNING
    else:
        status = LengthStatus.ACCEPTABLE

    return DocumentStats(
        char_count=characters,
        word_count=words,
        status=status,
        status_text=_STATUS_TEXT[status],
    )
