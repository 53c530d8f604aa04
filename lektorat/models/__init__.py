"""Database and schema models for Lektorat."""
from lektorat.models.database_models import (
    User,
    ApiCredential,
)
from lektorat.models.schemas import (
    ChangeItemSchema,
    GlossaryEntrySchema,
    DocumentStatsResponse,
    DocumentExtractResponse,
    EditingRequest,
    EditingResponse,
    TranslationRequest,
    TranslationResponse,
    JobStatusResponse,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "User",
    "ApiCredential",
    # Schemas
    "ChangeItemSchema",
    "GlossaryEntrySchema",
    "DocumentStatsResponse",
    "DocumentExtractResponse",
    "EditingRequest",
    "EditingResponse",
    "TranslationRequest",
    "TranslationResponse",
    "JobStatusResponse",
    "HealthCheckResponse",
]
