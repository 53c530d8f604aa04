"""
Word document adapters built on python-docx.

extract_text_from_docx(data)              -> str
generate_edited_document(...)             -> bytes (.docx)
generate_translation_document(...)        -> bytes (.docx)

Extraction returns paragraphs separated by blank lines, which is the
paragraph boundary the chunker splits on.  Failures are reported as
DocumentError with one of the FILE_READ_ERROR / DOCUMENT_FORMAT_ERROR /
PROCESSING_ERROR codes.
"""
from __future__ import annotations

import io
import logging
import zipfile
from typing import List, Optional, Sequence

from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError
from docx.shared import Pt

from lektorat.exceptions import DocumentError
from lektorat.services.prompts import get_language_name
from lektorat.services.response_parser import ChangeItem, NoteItem, remove_markdown

logger = logging.getLogger(__name__)

EDITED_CHANGES_HEADING = "Changes made"
TRANSLATION_HEADING = "Translation"
TRANSLATION_NOTES_HEADING = "Translation notes"


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def extract_text_from_docx(data: Optional[bytes]) -> str:
    """Return the plain text of a .docx file given as raw bytes."""
    if not data:
        raise DocumentError("The file could not be read", DocumentError.FILE_READ_ERROR)

    try:
        doc = DocxDocument(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        logger.warning("extract_text_from_docx: cannot open document: %s", exc)
        raise DocumentError(
            "The document may contain unsupported elements or is not a valid .docx file",
            DocumentError.DOCUMENT_FORMAT_ERROR,
            details=str(exc),
        ) from exc

    try:
        parts: List[str] = [p.text.strip() for p in doc.paragraphs]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                non_empty = [c for c in cells if c]
                if non_empty:
                    parts.append(" | ".join(non_empty))
    except Exception as exc:
        logger.error("extract_text_from_docx: processing failed: %s", exc, exc_info=True)
        raise DocumentError(
            "Error while processing the document",
            DocumentError.PROCESSING_ERROR,
            details=str(exc),
        ) from exc

    text = "\n\n".join(p for p in parts if p)
    if not text.strip():
        raise DocumentError(
            "The document contains no extractable text",
            DocumentError.DOCUMENT_FORMAT_ERROR,
            details="Extracted text is empty",
        )

    logger.info("extract_text_from_docx: %d paragraphs, %d chars", len(parts), len(text))
    return text


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def _add_text_paragraph(doc, paragraph: str, space_after: int = 0):
    """Add *paragraph*, keeping single line breaks as Word line breaks."""
    p = doc.add_paragraph()
    lines = paragraph.split("\n")
    for i, line in enumerate(lines):
        run = p.add_run(line)
        if i < len(lines) - 1:
            run.add_break()
    if space_after:
        p.paragraph_format.space_after = Pt(space_after)
    return p


def _add_heading(doc, text: str, level: int, space_after: int = 10):
    h = doc.add_heading(text, level=level)
    h.paragraph_format.space_after = Pt(space_after)
    return h


def _add_item_list(doc, items: Sequence[ChangeItem]) -> None:
    for item in items:
        if item.is_category:
            _add_heading(doc, item.text, level=2)
        else:
            p = doc.add_paragraph(f"• {item.text}")
            p.paragraph_format.space_after = Pt(6)


def _to_bytes(doc) -> bytes:
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def generate_edited_document(
    text: str,
    change_items: Sequence[ChangeItem],
    include_changes: bool = False,
) -> bytes:
    """
    Build the edited-text document.

    Markdown left in the model text is stripped and paragraphs are split
    on blank lines.  With *include_changes* and a non-empty item list a
    "Changes made" section follows, categories as level-2 headings and
    details as bullet lines.
    """
    doc = DocxDocument()

    for paragraph in remove_markdown(text).split("\n\n"):
        _add_text_paragraph(doc, paragraph)

    if include_changes and change_items:
        doc.add_paragraph()
        _add_heading(doc, EDITED_CHANGES_HEADING, level=1)
        _add_item_list(doc, change_items)

    return _to_bytes(doc)


def generate_translation_document(
    original_text: str,
    translated_text: str,
    notes: Sequence[NoteItem],
    source_language: str,
    target_language: str,
    include_original: bool = False,
) -> bytes:
    """
    Build the translation document.

    With *include_original* every paragraph pair is written as
    "Original:" / "Translation:" blocks, followed by the translation notes.
    Otherwise the document holds the translated paragraphs only.
    """
    doc = DocxDocument()
    translated_paragraphs = remove_markdown(translated_text).split("\n\n")

    if include_original:
        original_paragraphs = original_text.split("\n\n")

        _add_heading(doc, TRANSLATION_HEADING, level=1)
        header = doc.add_paragraph()
        header.add_run(
            f"Original: {get_language_name(source_language)} → "
            f"Translation: {get_language_name(target_language)}"
        ).bold = True
        header.paragraph_format.space_after = Pt(20)

        for i in range(max(len(original_paragraphs), len(translated_paragraphs))):
            original = original_paragraphs[i] if i < len(original_paragraphs) else ""
            translated = translated_paragraphs[i] if i < len(translated_paragraphs) else ""

            _add_heading(doc, "Original:", level=3, space_after=6)
            _add_text_paragraph(doc, original, space_after=12)
            _add_heading(doc, "Translation:", level=3, space_after=6)
            _add_text_paragraph(doc, translated, space_after=20)

        if notes:
            _add_heading(doc, TRANSLATION_NOTES_HEADING, level=1)
            _add_item_list(doc, notes)
    else:
        for paragraph in translated_paragraphs:
            _add_text_paragraph(doc, paragraph, space_after=10)

    return _to_bytes(doc)
