"""Tests for the credential, editing, translation and job endpoints."""
import asyncio

import httpx
import pytest
from httpx import AsyncClient

from lektorat.dependencies.services import get_ai_router
from lektorat.main import app
from lektorat.services.ai_router import AIRouter
from lektorat.services.providers import ClaudeProvider, OpenAIProvider
from tests.conftest import (
    AUTH_HEADERS,
    AUTH_HEADERS_USER2,
    CLAUDE_HOST,
    CLAUDE_TEST_KEY,
    OPENAI_HOST,
    OPENAI_TEST_KEY,
    error_response,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _store_keys(client: AsyncClient, headers=None, **keys):
    keys = keys or {"openai_api_key": OPENAI_TEST_KEY}
    resp = await client.put("/api/credentials/", json=keys, headers=headers or AUTH_HEADERS)
    assert resp.status_code == 200, resp.text
    return resp.json()


async def _poll_job(client: AsyncClient, job_id: str, headers=None, timeout: float = 3.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        resp = await client.get(f"/api/jobs/{job_id}", headers=headers or AUTH_HEADERS)
        assert resp.status_code == 200
        body = resp.json()
        if body["phase"] in ("completed", "failed", "cancelled"):
            return body
        assert loop.time() < deadline, f"job stuck in {body['phase']}"
        await asyncio.sleep(0.02)


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_credentials_initially_unconfigured(client: AsyncClient):
    resp = await client.get("/api/credentials/", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    body = resp.json()
    assert body["openai_configured"] is False
    assert body["claude_configured"] is False
    assert body["available_providers"] == []


@pytest.mark.asyncio
async def test_store_keys_returns_masked_values(client: AsyncClient):
    body = await _store_keys(
        client, openai_api_key=OPENAI_TEST_KEY, claude_api_key=CLAUDE_TEST_KEY
    )
    assert body["openai_api_key"] == "sk-...cdef"
    assert OPENAI_TEST_KEY not in str(body)
    assert body["available_providers"] == ["openai", "claude"]


@pytest.mark.asyncio
async def test_partial_update_and_clear(client: AsyncClient):
    await _store_keys(client, openai_api_key=OPENAI_TEST_KEY, claude_api_key=CLAUDE_TEST_KEY)

    body = await _store_keys(client, claude_api_key="")
    assert body["openai_configured"] is True
    assert body["claude_configured"] is False


@pytest.mark.asyncio
async def test_invalid_openai_key_format_rejected(client: AsyncClient):
    resp = await client.put(
        "/api/credentials/", json={"openai_api_key": "pk-wrong"}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 400
    assert "format" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_delete_credentials(client: AsyncClient):
    await _store_keys(client)
    resp = await client.delete("/api/credentials/", headers=AUTH_HEADERS)
    assert resp.status_code == 204

    resp = await client.get("/api/credentials/", headers=AUTH_HEADERS)
    assert resp.json()["openai_configured"] is False


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_edit_text(client: AsyncClient, mock_llm):
    await _store_keys(client)
    resp = await client.post(
        "/api/editing/",
        json={"text": "Das ist ein Tekst.", "mode": "correction_only", "model": "gpt-4o"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["text"] == "Edited text."
    assert body["changes"] == [
        {"text": "Style", "is_category": True},
        {"text": "Smoothed a sentence", "is_category": False},
    ]
    assert body["chunk_count"] == 1
    assert body["model"] == "gpt-4o"

    prompt = mock_llm.payloads(OPENAI_HOST)[0]["messages"][1]["content"]
    assert "spelling and grammar correction" in prompt
    assert prompt.endswith("Das ist ein Tekst.")


@pytest.mark.asyncio
async def test_edit_without_key_is_400_and_makes_no_call(client: AsyncClient, mock_llm):
    resp = await client.post(
        "/api/editing/",
        json={"text": "Hallo.", "model": "claude-sonnet-4-5"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 400
    assert "Claude" in resp.json()["detail"]
    assert mock_llm.requests == []


@pytest.mark.asyncio
async def test_edit_unknown_model_is_400(client: AsyncClient):
    await _store_keys(client)
    resp = await client.post(
        "/api/editing/", json={"text": "Hallo.", "model": "llama-3"}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 400
    assert "Unknown model" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_edit_provider_failure_is_502(client: AsyncClient, mock_llm):
    await _store_keys(client)
    mock_llm.openai_replies.append(error_response(500, "upstream broke"))
    resp = await client.post(
        "/api/editing/", json={"text": "Hallo.", "model": "gpt-4o"}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 502
    assert "upstream broke" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_edit_empty_text_is_validation_error(client: AsyncClient):
    resp = await client.post("/api/editing/", json={"text": ""}, headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_gpt5_fallback_through_api(client: AsyncClient, mock_llm):
    await _store_keys(client, openai_api_key=OPENAI_TEST_KEY, claude_api_key=CLAUDE_TEST_KEY)
    mock_llm.openai_replies.append(error_response(503))
    mock_llm.claude_replies.append("EDITED TEXT:\nVia Claude.\n\nCHANGES:\n- Fallback")

    resp = await client.post(
        "/api/editing/", json={"text": "Hallo.", "model": "gpt-5-preview"}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 200
    assert resp.json()["text"] == "Via Claude."
    assert len(mock_llm.calls(CLAUDE_HOST)) == 1


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_translate_text_with_glossary(client: AsyncClient, mock_llm):
    await _store_keys(client)
    mock_llm.openai_replies.append(
        "TRANSLATED TEXT:\nThe copy edit is done.\n\nNOTES:\nCATEGORY: Translation decisions\n- Kept the term"
    )
    resp = await client.post(
        "/api/translation/",
        json={
            "text": "Das Lektorat ist fertig.",
            "source_language": "de",
            "target_language": "en",
            "style": "literary",
            "model": "gpt-4o",
            "glossary": [{"term": "Lektorat", "explanation": "copy edit"}],
        },
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["text"] == "The copy edit is done."
    assert body["notes"][0] == {"text": "Translation decisions", "is_category": True}
    assert body["source_language"] == "de"

    payload = mock_llm.payloads(OPENAI_HOST)[0]
    assert "- Lektorat: copy edit" in payload["messages"][0]["content"]
    assert "Translate from German into English." in payload["messages"][1]["content"]


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_editing_job_completes(client: AsyncClient):
    await _store_keys(client)
    resp = await client.post(
        "/api/jobs/editing", json={"text": "Hallo Welt.", "model": "gpt-4o"}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 202
    job = resp.json()
    assert job["kind"] == "editing"
    assert job["total_chunks"] == 1

    final = await _poll_job(client, job["job_id"])
    assert final["phase"] == "completed"
    assert final["completed_chunks"] == 1
    assert final["result"]["text"] == "Edited text."
    assert final["result"]["changes"][0] == {"text": "Style", "is_category": True}
    assert final["result"]["chunk_count"] == 1


@pytest.mark.asyncio
async def test_translation_job_failure_is_reported(client: AsyncClient, mock_llm):
    await _store_keys(client)
    mock_llm.openai_replies.append(error_response(500, "model unavailable"))
    resp = await client.post(
        "/api/jobs/translation",
        json={"text": "Hallo.", "model": "gpt-4o", "target_language": "fr"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 202

    final = await _poll_job(client, resp.json()["job_id"])
    assert final["phase"] == "failed"
    assert "model unavailable" in final["error"]
    assert final["result"] is None


@pytest.mark.asyncio
async def test_job_without_key_is_rejected_up_front(client: AsyncClient):
    resp = await client.post(
        "/api/jobs/editing", json={"text": "Hallo.", "model": "gpt-4o"}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_job_is_private_to_its_owner(client: AsyncClient):
    await _store_keys(client)
    resp = await client.post(
        "/api/jobs/editing", json={"text": "Hallo.", "model": "gpt-4o"}, headers=AUTH_HEADERS
    )
    job_id = resp.json()["job_id"]

    resp = await client.get(f"/api/jobs/{job_id}", headers=AUTH_HEADERS_USER2)
    assert resp.status_code == 404
    resp = await client.post(f"/api/jobs/{job_id}/cancel", headers=AUTH_HEADERS_USER2)
    assert resp.status_code == 404

    await _poll_job(client, job_id)


@pytest.mark.asyncio
async def test_unknown_job_is_404(client: AsyncClient):
    resp = await client.get("/api/jobs/does-not-exist", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_cancel_running_job(client: AsyncClient):
    async def slow_handler(request):
        await asyncio.sleep(10)
        return httpx.Response(200, json={"choices": [{"message": {"content": "late"}}]})

    transport = httpx.MockTransport(slow_handler)
    app.dependency_overrides[get_ai_router] = lambda: AIRouter(
        OpenAIProvider(proxy_url="", transport=transport),
        ClaudeProvider(proxy_url="", transport=transport),
    )

    await _store_keys(client)
    resp = await client.post(
        "/api/jobs/editing", json={"text": "Hallo.", "model": "gpt-4o"}, headers=AUTH_HEADERS
    )
    job_id = resp.json()["job_id"]
    await asyncio.sleep(0.05)

    resp = await client.post(f"/api/jobs/{job_id}/cancel", headers=AUTH_HEADERS)
    assert resp.status_code == 200

    final = await _poll_job(client, job_id)
    assert final["phase"] == "cancelled"
    assert final["result"] is None
