"""
Health check endpoint.
"""
import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lektorat.config import settings
from lektorat.database import check_database, get_db
from lektorat.models.schemas import HealthCheckResponse
from lektorat.services.ai_router import ProviderCredentials

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthCheckResponse:
    """
    Report database reachability and how provider calls are configured.

    ``proxy`` is "configured" when calls go through PROXY_BASE_URL and
    "direct" otherwise; ``global_keys`` lists the providers that have a
    server-wide fallback key.  Per-user keys are not inspected here.
    """
    database_ok = await check_database(db)
    global_keys = ProviderCredentials(
        openai=settings.OPENAI_API_KEY, claude=settings.CLAUDE_API_KEY
    ).available_providers()

    return HealthCheckResponse(
        status="healthy" if database_ok else "degraded",
        database="ok" if database_ok else "error",
        proxy="configured" if settings.PROXY_BASE_URL else "direct",
        global_keys=global_keys,
        default_model=settings.DEFAULT_MODEL,
        timestamp=datetime.utcnow(),
    )
