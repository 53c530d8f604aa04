"""
Service dependencies for FastAPI routes.

Tests override these through ``app.dependency_overrides`` to swap in
providers backed by ``httpx.MockTransport``.
"""
from __future__ import annotations

from fastapi import Depends

from lektorat.services.ai_router import AIRouter
from lektorat.services.orchestrator import ChunkOrchestrator


def get_ai_router() -> AIRouter:
    return AIRouter()


def get_orchestrator(router: AIRouter = Depends(get_ai_router)) -> ChunkOrchestrator:
    return ChunkOrchestrator(router)
