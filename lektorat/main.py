"""
Main FastAPI application for the Lektorat backend.
Handles CORS, request logging middleware, lifespan events, and router registration.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lektorat.config import settings
from lektorat.database import close_db, init_db
from lektorat.exceptions import LektoratError
from lektorat.routers import credentials, documents, editing, glossary, health, jobs, translation
from lektorat.routers.errors import status_code_for
from lektorat.services.job_manager import job_manager

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting Lektorat backend …")
    logger.info("=" * 60)

    # Database (required; raises on failure)
    try:
        await init_db()
        logger.info("✓ Database connection OK")
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise

    if settings.PROXY_BASE_URL:
        logger.info("✓ Provider calls go through proxy %s", settings.PROXY_BASE_URL)
    else:
        logger.info("✓ Provider calls go directly to the vendor APIs")
    if not (settings.OPENAI_API_KEY or settings.CLAUDE_API_KEY):
        logger.info("  No global API keys configured; users must store their own")

    logger.info("=" * 60)
    logger.info("  Lektorat backend ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield

    logger.info("Shutting down Lektorat backend …")
    job_manager.reset()
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Lektorat API",
    description=(
        "**Lektorat** — AI-assisted copy editing and translation of Word documents.\n\n"
        "Key endpoints:\n"
        "- `POST /api/documents/extract` — upload a .docx and get its text\n"
        "- `POST /api/editing/` — edit a text (chunked automatically)\n"
        "- `POST /api/translation/` — translate a text\n"
        "- `POST /api/jobs/editing` — background editing job with progress\n"
        "- `POST /api/documents/generate` — download the result as .docx\n"
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip job polling and health checks
    path = request.url.path
    if not (path.startswith("/api/health") or (request.method == "GET" and path.startswith("/api/jobs/"))):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

@app.exception_handler(LektoratError)
async def domain_exception_handler(request: Request, exc: LektoratError):
    """Domain errors that escaped a router still get their proper status code."""
    logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code_for(exc),
        content={
            "detail": str(exc),
            "error": type(exc).__name__,
            "path": str(request.url.path),
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "path": str(request.url.path),
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,       prefix="/api/health",      tags=["Health"])
app.include_router(documents.router,    prefix="/api/documents",   tags=["Documents"])
app.include_router(glossary.router,     prefix="/api/glossary",    tags=["Glossary"])
app.include_router(credentials.router,  prefix="/api/credentials", tags=["Credentials"])
app.include_router(editing.router,      prefix="/api/editing",     tags=["Editing"])
app.include_router(translation.router,  prefix="/api/translation", tags=["Translation"])
app.include_router(jobs.router,         prefix="/api/jobs",        tags=["Jobs"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root — returns basic service info."""
    return {
        "name": "Lektorat API",
        "version": "0.1.0",
        "description": "AI-assisted copy editing and translation backend",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "documents": "/api/documents",
            "glossary": "/api/glossary",
            "credentials": "/api/credentials",
            "editing": "/api/editing",
            "translation": "/api/translation",
            "jobs": "/api/jobs",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lektorat.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
