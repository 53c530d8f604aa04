"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

from lektorat.config import settings
from lektorat.services.document_stats import LengthStatus
from lektorat.services.job_manager import JobPhase
from lektorat.services.prompts import EditingMode, TranslationStyle


# Shared item schemas
class ChangeItemSchema(BaseModel):
    """One line of the flattened category / detail list."""

    text: str
    is_category: bool = False


class GlossaryEntrySchema(BaseModel):
    """Single glossary term."""

    term: str = Field(..., min_length=1)
    explanation: str = Field(..., min_length=1)


# Document Schemas
class DocumentStatsRequest(BaseModel):
    """Schema for computing stats of already extracted text."""

    text: str


class DocumentStatsResponse(BaseModel):
    """Character / word counts with the length classification."""

    char_count: int
    word_count: int
    status: LengthStatus
    status_text: str


class DocumentExtractResponse(BaseModel):
    """Schema for the result of a .docx upload."""

    filename: str
    text: str
    stats: DocumentStatsResponse
    needs_chunking: bool


class GenerateEditedDocumentRequest(BaseModel):
    """Schema for building the edited .docx."""

    text: str
    changes: List[ChangeItemSchema] = Field(default_factory=list)
    include_changes: bool = False
    filename: str = "edited-text"


class GenerateTranslationDocumentRequest(BaseModel):
    """Schema for building the translated .docx."""

    original_text: str = ""
    translated_text: str
    notes: List[ChangeItemSchema] = Field(default_factory=list)
    source_language: str = "auto"
    target_language: str = "en"
    include_original: bool = False
    filename: str = "translation"


# Glossary Schemas
class GlossaryParseResponse(BaseModel):
    """Parsed glossary upload."""

    entries: List[GlossaryEntrySchema]
    invalid_lines: List[int]
    error: Optional[str] = None


# Credential Schemas
class CredentialUpdateRequest(BaseModel):
    """
    Schema for storing API keys.

    A missing field keeps the stored key; an empty string removes it.
    """

    openai_api_key: Optional[str] = None
    claude_api_key: Optional[str] = None


class CredentialStatusResponse(BaseModel):
    """Which keys are configured; keys are only ever returned masked."""

    openai_configured: bool
    claude_configured: bool
    openai_api_key: Optional[str] = None
    claude_api_key: Optional[str] = None
    available_providers: List[str] = Field(default_factory=list)


# Editing / Translation Schemas
class EditingRequest(BaseModel):
    """Schema for an editing (Lektorat) run."""

    text: str = Field(..., min_length=1)
    mode: EditingMode = EditingMode.STANDARD
    model: str = Field(default_factory=lambda: settings.DEFAULT_MODEL)
    glossary: List[GlossaryEntrySchema] = Field(default_factory=list)
    system_message: Optional[str] = None


class TranslationRequest(BaseModel):
    """Schema for a translation run."""

    text: str = Field(..., min_length=1)
    style: TranslationStyle = TranslationStyle.STANDARD
    source_language: str = "auto"
    target_language: str = "en"
    model: str = Field(default_factory=lambda: settings.DEFAULT_MODEL)
    glossary: List[GlossaryEntrySchema] = Field(default_factory=list)
    system_message: Optional[str] = None


class EditingResponse(BaseModel):
    """Edited text plus the flattened change list."""

    text: str
    changes: List[ChangeItemSchema]
    chunk_count: int
    model: str


class TranslationResponse(BaseModel):
    """Translated text plus the flattened note list."""

    text: str
    notes: List[ChangeItemSchema]
    chunk_count: int
    model: str
    source_language: str
    target_language: str


# Job Schemas
class JobStatusResponse(BaseModel):
    """Polling view of a background job."""

    job_id: str
    kind: str
    phase: JobPhase
    completed_chunks: int = 0
    total_chunks: int = 0
    error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    elapsed_seconds: float = 0.0


class HealthCheckResponse(BaseModel):
    """Schema for health check endpoint."""

    status: str
    database: str
    proxy: str
    global_keys: List[str] = Field(default_factory=list)
    default_model: str
    timestamp: datetime
    version: str = "0.1.0"
