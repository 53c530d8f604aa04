"""
AI service router.

Picks the provider for a model name, checks that the matching API key is
present before any network traffic, and applies the GPT-5 fallback policy:
when a ``gpt-5-*`` model fails and a Claude key is available, the request
is retried exactly once on Claude with ``settings.FALLBACK_MODEL``.
The fallback is one-directional; Claude failures are never retried on
OpenAI, and configuration errors are never retried at all.
"""
from __future__ import annotations

import dataclasses
import enum
import logging
from typing import TYPE_CHECKING, List, Optional, Sequence

from lektorat.config import settings
from lektorat.exceptions import ConfigurationError, MissingCredentialError, UnknownModelError
from lektorat.services.glossary import GlossaryEntry
from lektorat.services.providers import BaseProvider, ClaudeProvider, OpenAIProvider
from lektorat.services.response_parser import AIResponse, SectionScheme

if TYPE_CHECKING:
    from lektorat.services.chunking import TextChunk
    from lektorat.services.orchestrator import ChunkJobResult, ChunkTask, ProgressCallback

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Model classification
# ---------------------------------------------------------------------------

class ModelProvider(str, enum.Enum):
    OPENAI = "openai"
    CLAUDE = "claude"
    UNKNOWN = "unknown"


_CLAUDE_PREFIXES = ("claude-",)
_OPENAI_PREFIXES = ("gpt-", "o3-", "o4-")


@dataclasses.dataclass(frozen=True)
class ModelRoute:
    provider: ModelProvider
    name: str

    @property
    def supports_fallback(self) -> bool:
        return (
            self.provider is ModelProvider.OPENAI
            and self.name.lower().startswith(settings.FALLBACK_MODEL_PREFIX)
        )


def classify_model(model: Optional[str]) -> ModelRoute:
    """Single source of truth for prefix-based provider routing."""
    name = (model or "").strip()
    lowered = name.lower()
    if lowered.startswith(_CLAUDE_PREFIXES):
        return ModelRoute(ModelProvider.CLAUDE, name)
    if lowered.startswith(_OPENAI_PREFIXES):
        return ModelRoute(ModelProvider.OPENAI, name)
    return ModelRoute(ModelProvider.UNKNOWN, name)


# ---------------------------------------------------------------------------
# Credentials passed per call
# ---------------------------------------------------------------------------

def has_credential(value: Optional[str]) -> bool:
    return bool(value and value.strip())


@dataclasses.dataclass(frozen=True)
class ProviderCredentials:
    openai: Optional[str] = None
    claude: Optional[str] = None

    def available_providers(self) -> List[str]:
        providers = []
        if has_credential(self.openai):
            providers.append(ModelProvider.OPENAI.value)
        if has_credential(self.claude):
            providers.append(ModelProvider.CLAUDE.value)
        return providers


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------

class AIRouter:
    """Dispatches single calls and whole chunk jobs to the right provider."""

    def __init__(
        self,
        openai_provider: Optional[BaseProvider] = None,
        claude_provider: Optional[BaseProvider] = None,
        fallback_model: Optional[str] = None,
    ) -> None:
        self.openai = openai_provider or OpenAIProvider()
        self.claude = claude_provider or ClaudeProvider()
        self.fallback_model = fallback_model or settings.FALLBACK_MODEL

    async def call_ai(
        self,
        prompt: str,
        openai_credential: Optional[str],
        claude_credential: Optional[str],
        system_message: str,
        model: str,
        glossary: Optional[Sequence[GlossaryEntry]] = None,
        scheme: Optional[SectionScheme] = None,
    ) -> AIResponse:
        route = classify_model(model)

        if route.provider is ModelProvider.UNKNOWN:
            raise UnknownModelError(model)

        if route.provider is ModelProvider.CLAUDE:
            provider, credential = self.claude, claude_credential
        else:
            provider, credential = self.openai, openai_credential

        if not has_credential(credential):
            raise MissingCredentialError(provider.display_name)

        try:
            return await provider.call(
                prompt, credential, system_message, route.name, glossary, scheme
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            if not (route.supports_fallback and has_credential(claude_credential)):
                raise
            logger.warning(
                "AIRouter: %s failed (%s), falling back to %s",
                route.name,
                exc,
                self.fallback_model,
            )

        return await self.claude.call(
            prompt, claude_credential, system_message, self.fallback_model, glossary, scheme
        )

    async def process_chunks(
        self,
        chunks: Sequence["TextChunk"],
        credentials: ProviderCredentials,
        task: "ChunkTask",
        model: str,
        system_message: Optional[str] = None,
        glossary: Optional[Sequence[GlossaryEntry]] = None,
        on_progress: Optional["ProgressCallback"] = None,
        cancel_event=None,
    ) -> "ChunkJobResult":
        """Chunk variant of call_ai; see ChunkOrchestrator.process_chunks."""
        from lektorat.services.orchestrator import ChunkOrchestrator

        orchestrator = ChunkOrchestrator(self)
        return await orchestrator.process_chunks(
            chunks,
            credentials,
            task,
            model,
            system_message=system_message,
            glossary=glossary,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )
