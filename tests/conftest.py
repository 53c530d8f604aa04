"""
Shared fixtures for Lektorat backend tests.

Uses a throwaway SQLite database (aiosqlite) so the suite runs without a
PostgreSQL server; set TEST_DATABASE_URL to run against Postgres instead.
Provider traffic never leaves the process: ``MockLLM`` answers the OpenAI
and Anthropic endpoints through ``httpx.MockTransport``.
"""
from __future__ import annotations

import io
import json
import os
import tempfile
from typing import Any, AsyncGenerator, Dict, List, Optional, Union

import httpx
import pytest
import pytest_asyncio
from docx import Document
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Override settings *before* any app module is imported, so that
# settings and the global engine point at the test configuration.
_TMP_DIR = tempfile.mkdtemp(prefix="lektorat-tests-")
TEST_DATABASE_URL = os.environ.setdefault(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'lektorat_test.db')}",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["CHUNK_DELAY_SECONDS"] = "0"
os.environ["OPENAI_API_KEY"] = ""
os.environ["CLAUDE_API_KEY"] = ""
os.environ["PROXY_BASE_URL"] = ""

from lektorat.database import Base, get_db  # noqa: E402
from lektorat.dependencies.services import get_ai_router  # noqa: E402
from lektorat.main import app  # noqa: E402
from lektorat.services.ai_router import AIRouter  # noqa: E402
from lektorat.services.job_manager import job_manager  # noqa: E402
from lektorat.services.providers import ClaudeProvider, OpenAIProvider  # noqa: E402

OPENAI_HOST = "api.openai.com"
CLAUDE_HOST = "api.anthropic.com"

Reply = Union[str, httpx.Response]


# ---------------------------------------------------------------------------
# Scripted provider endpoints
# ---------------------------------------------------------------------------

class MockLLM:
    """
    Fake OpenAI / Anthropic endpoints.

    Queue replies per vendor with ``openai_replies`` / ``claude_replies``:
    a string is wrapped in the vendor's success envelope, an
    ``httpx.Response`` is returned as-is.  When a queue is empty the
    ``default_reply`` is used.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.openai_replies: List[Reply] = []
        self.claude_replies: List[Reply] = []
        self.default_reply = (
            "EDITED TEXT:\nEdited text.\n\nCHANGES:\nCATEGORY: Style\n- Smoothed a sentence"
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == OPENAI_HOST:
            reply = self.openai_replies.pop(0) if self.openai_replies else self.default_reply
            if isinstance(reply, httpx.Response):
                return reply
            return httpx.Response(
                200, json={"choices": [{"message": {"role": "assistant", "content": reply}}]}
            )
        if request.url.host == CLAUDE_HOST:
            reply = self.claude_replies.pop(0) if self.claude_replies else self.default_reply
            if isinstance(reply, httpx.Response):
                return reply
            return httpx.Response(200, json={"content": [{"type": "text", "text": reply}]})
        return httpx.Response(404, json={"error": f"unexpected host {request.url.host}"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def openai_provider(self) -> OpenAIProvider:
        return OpenAIProvider(proxy_url="", transport=self.transport)

    def claude_provider(self) -> ClaudeProvider:
        return ClaudeProvider(proxy_url="", transport=self.transport)

    def router(self) -> AIRouter:
        return AIRouter(self.openai_provider(), self.claude_provider())

    # Inspection helpers

    def calls(self, host: Optional[str] = None) -> List[httpx.Request]:
        return [r for r in self.requests if host is None or r.url.host == host]

    def payloads(self, host: Optional[str] = None) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.calls(host)]


def error_response(status_code: int, message: str = "boom") -> httpx.Response:
    return httpx.Response(status_code, json={"error": {"message": message}})


@pytest.fixture
def mock_llm() -> MockLLM:
    return MockLLM()


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test. Tables are created before and
    dropped after the test so each test starts with a clean slate.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, mock_llm: MockLLM) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB session and the
    AI router overridden.
    """

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_ai_router] = mock_llm.router

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    job_manager.reset()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

AUTH_HEADERS = {
    "X-User-Id": "test-user-1",
    "X-User-Email": "test1@example.com",
    "X-User-Name": "Test User 1",
}

AUTH_HEADERS_USER2 = {
    "X-User-Id": "test-user-2",
    "X-User-Email": "test2@example.com",
    "X-User-Name": "Test User 2",
}

OPENAI_TEST_KEY = "sk-test-0123456789abcdef"
CLAUDE_TEST_KEY = "sk-ant-test-0123456789"


def make_docx(*paragraphs: str, table_rows: Optional[List[List[str]]] = None) -> bytes:
    """Build a small .docx in memory."""
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    if table_rows:
        table = doc.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()
