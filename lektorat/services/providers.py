"""
Provider adapters for the OpenAI Chat Completions and Anthropic Messages APIs.

Each adapter normalises one vendor's request/response shape:

  - validates the API key before any network traffic
  - maps public model aliases to the vendor's API identifiers
  - picks the request parameters the model family accepts
    (token-limit field name, temperature support)
  - extracts the first text payload from the response envelope and hands
    it to the response parser

Requests go straight to the vendor, or through a backend proxy when
PROXY_BASE_URL is configured.  Adapters never retry; the router owns the
fallback policy.

Public API
----------
OpenAIProvider().call(prompt, credential, system_message, model, glossary, scheme) -> AIResponse
ClaudeProvider().call(prompt, credential, system_message, model, glossary, scheme) -> AIResponse
"""
from __future__ import annotations

import enum
import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from lektorat.config import settings
from lektorat.exceptions import InvalidCredentialError, MissingCredentialError, ProviderError
from lektorat.services.glossary import GlossaryEntry
from lektorat.services.prompts import build_system_message
from lektorat.services.response_parser import (
    ALL_SCHEMES,
    EMPTY_RESPONSE_PLACEHOLDER,
    AIResponse,
    SectionScheme,
    split_sections,
)
from lektorat.utils.helpers import truncate_text

logger = logging.getLogger(__name__)

# A stored "key" containing one of these is almost certainly an error
# message that was saved by mistake.
_ERROR_MARKERS = ("error", "fehler", "invalid", "ungültig")


class ProviderName(str, enum.Enum):
    OPENAI = "openai"
    CLAUDE = "claude"


class BaseProvider:
    """Shared plumbing: credential checks, HTTP transport, empty-payload handling."""

    name: ProviderName
    display_name: str = ""
    MODEL_ALIASES: Dict[str, str] = {}

    def __init__(
        self,
        base_url: Optional[str] = None,
        proxy_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or self.default_base_url()).rstrip("/")
        proxy = proxy_url if proxy_url is not None else settings.PROXY_BASE_URL
        self.proxy_url = proxy.rstrip("/") if proxy else None
        self.timeout = httpx.Timeout(float(timeout or settings.LLM_TIMEOUT), connect=10.0)
        self._transport = transport

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def call(
        self,
        prompt: str,
        credential: Optional[str],
        system_message: str,
        model: str,
        glossary: Optional[Sequence[GlossaryEntry]] = None,
        scheme: Optional[SectionScheme] = None,
    ) -> AIResponse:
        """
        Send one prompt to the provider and split the answer.

        Raises:
            MissingCredentialError / InvalidCredentialError: bad API key.
            ProviderError: non-2xx response, network failure, malformed envelope.

        A blank payload is not an error: a placeholder AIResponse is returned
        so the caller can show a usable message.  *scheme* restricts the section
        labels the answer is split on; without it every known label is tried.
        """
        key = self.validate_credential(credential)
        api_model = self.resolve_model(model)

        logger.info(
            "%s: calling model %s (requested %s), prompt %d chars",
            self.display_name,
            api_model,
            model,
            len(prompt),
        )

        if self.proxy_url:
            return await self._call_proxy(
                prompt, key, system_message, api_model, glossary, scheme
            )

        system = build_system_message(system_message, glossary)
        content = await self._call_vendor(prompt, key, system, api_model)
        if not content or not content.strip():
            logger.warning("%s: empty payload from model %s", self.display_name, api_model)
            return self._empty_response()
        return _split(content, scheme)

    def validate_credential(self, credential: Optional[str]) -> str:
        key = (credential or "").strip()
        if not key:
            raise MissingCredentialError(self.display_name)
        lowered = key.lower()
        if any(marker in lowered for marker in _ERROR_MARKERS) or " " in key:
            raise InvalidCredentialError(
                f"The stored {self.display_name} API key is invalid. Please enter it again."
            )
        return key

    def resolve_model(self, model: str) -> str:
        """Map a public alias to the vendor identifier; unknown names pass through."""
        name = model.strip()
        return self.MODEL_ALIASES.get(name.lower(), name)

    # ------------------------------------------------------------------
    # Vendor-specific hooks
    # ------------------------------------------------------------------

    @staticmethod
    def default_base_url() -> str:
        raise NotImplementedError

    async def _call_vendor(self, prompt: str, key: str, system: str, model: str) -> str:
        raise NotImplementedError

    def _proxy_path(self) -> str:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _post_json(
        self,
        url: str,
        headers: Dict[str, str],
        payload: Dict[str, Any],
    ) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"{self.display_name} request timed out", self.name.value
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"{self.display_name} connection error: {exc}", self.name.value
            ) from exc

        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.error(
                "%s: HTTP %d: %s", self.display_name, resp.status_code, truncate_text(message, 300)
            )
            raise ProviderError(
                f"{self.display_name} API error ({resp.status_code}): {message}",
                self.name.value,
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderError(
                f"{self.display_name} returned a non-JSON response", self.name.value
            ) from exc

    async def _call_proxy(
        self,
        prompt: str,
        key: str,
        system_message: str,
        model: str,
        glossary: Optional[Sequence[GlossaryEntry]],
        scheme: Optional[SectionScheme] = None,
    ) -> AIResponse:
        """
        Call the backend proxy, which holds the vendor key server-side,
        composes the glossary into the system message itself and answers
        either ``{text, changes}`` or ``{content}``.
        """
        entries = [{"term": e.term, "explanation": e.explanation} for e in glossary or ()]
        data = await self._post_json(
            f"{self.proxy_url}/{self._proxy_path()}",
            headers={"Authorization": f"Bearer {key}"},
            payload={
                "prompt": prompt,
                "model": model,
                "systemMessage": system_message,
                "glossaryEntries": entries,
            },
        )
        if data.get("error"):
            raise ProviderError(f"{self.display_name} proxy error: {data['error']}", self.name.value)

        if "content" in data:
            content = data.get("content") or ""
            if not content.strip():
                return self._empty_response()
            return _split(content, scheme)

        text = (data.get("text") or "").strip()
        if not text:
            return self._empty_response()
        return AIResponse(text=text, changes=(data.get("changes") or "").strip())

    @staticmethod
    def _empty_response() -> AIResponse:
        return AIResponse(
            text="", changes=EMPTY_RESPONSE_PLACEHOLDER, is_placeholder=True, tier="empty"
        )


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------

class OpenAIProvider(BaseProvider):
    """OpenAI Chat Completions adapter (gpt-*, o3-*, o4-*)."""

    name = ProviderName.OPENAI
    display_name = "OpenAI"

    MODEL_ALIASES: Dict[str, str] = {
        "gpt-4.5": "gpt-4.5-preview",
        "gpt-4o-latest": "chatgpt-4o-latest",
        "gpt-5-preview": "gpt-5",
    }

    LEGACY_MAX_TOKENS = 4000
    COMPLETION_MAX_TOKENS = 16000
    TEMPERATURE = 0.7

    @staticmethod
    def default_base_url() -> str:
        return settings.OPENAI_BASE_URL

    def _proxy_path(self) -> str:
        return "call-openai"

    def request_params(self, model: str) -> Dict[str, Any]:
        """
        Token-limit field and temperature by model family.

        gpt-5.1 / gpt-5.2 run with reasoning disabled, which re-enables
        temperature.  Other gpt-5, o3, o4 and gpt-4.1 models only accept
        ``max_completion_tokens`` and reject temperature.  Everything else
        (gpt-4o, gpt-4-turbo …) uses the classic ``max_tokens``.
        """
        if model in ("gpt-5.1", "gpt-5.2") or model.startswith(("gpt-5.1-", "gpt-5.2-")):
            return {
                "max_completion_tokens": self.COMPLETION_MAX_TOKENS,
                "reasoning_effort": "none",
                "temperature": self.TEMPERATURE,
            }
        if model.startswith(("gpt-5", "o3-", "o4-", "gpt-4.1")):
            return {"max_completion_tokens": self.COMPLETION_MAX_TOKENS}
        return {"max_tokens": self.LEGACY_MAX_TOKENS, "temperature": self.TEMPERATURE}

    async def _call_vendor(self, prompt: str, key: str, system: str, model: str) -> str:
        payload: Dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        }
        payload.update(self.request_params(model))

        data = await self._post_json(
            f"{self.base_url}/chat/completions",
            headers={"Authorization": f"Bearer {key}"},
            payload=payload,
        )
        try:
            return data["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ProviderError(
                "OpenAI returned an unexpected response format", self.name.value
            ) from exc


# ---------------------------------------------------------------------------
# Claude
# ---------------------------------------------------------------------------

class ClaudeProvider(BaseProvider):
    """Anthropic Messages API adapter (claude-*)."""

    name = ProviderName.CLAUDE
    display_name = "Claude"

    MODEL_ALIASES: Dict[str, str] = {
        "claude-3.7-sonnet": "claude-3-7-sonnet-20250219",
        "claude-3-7-sonnet": "claude-3-7-sonnet-20250219",
        "claude-3-opus": "claude-3-opus-20240229",
        "claude-3-haiku": "claude-3-haiku-20240307",
        "claude-sonnet-4": "claude-sonnet-4-20250514",
        "claude-sonnet-4-5": "claude-sonnet-4-5-20250929",
        "claude-opus-4-1": "claude-opus-4-1-20250805",
    }

    MAX_TOKENS = 8000
    TEMPERATURE = 0.7

    @staticmethod
    def default_base_url() -> str:
        return settings.ANTHROPIC_BASE_URL

    def _proxy_path(self) -> str:
        return "call-claude"

    def request_params(self, model: str) -> Dict[str, Any]:
        """Only the Claude 3 family still takes an explicit temperature here."""
        params: Dict[str, Any] = {"max_tokens": self.MAX_TOKENS}
        if model.startswith("claude-3"):
            params["temperature"] = self.TEMPERATURE
        return params

    async def _call_vendor(self, prompt: str, key: str, system: str, model: str) -> str:
        payload: Dict[str, Any] = {
            "model": model,
            "system": system,
            "messages": [{"role": "user", "content": prompt}],
        }
        payload.update(self.request_params(model))

        data = await self._post_json(
            f"{self.base_url}/messages",
            headers={
                "x-api-key": key,
                "anthropic-version": settings.ANTHROPIC_VERSION,
            },
            payload=payload,
        )
        try:
            blocks = data["content"]
        except (KeyError, TypeError) as exc:
            raise ProviderError(
                "Claude returned an unexpected response format", self.name.value
            ) from exc

        for block in blocks or []:
            if isinstance(block, dict) and block.get("type", "text") == "text":
                return block.get("text") or ""
        return ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _error_message(resp: httpx.Response) -> str:
    """Pull the vendor's error text out of an error response."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:300] or "Unknown error"

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    if error:
        return str(error)
    return resp.text[:300] or "Unknown error"


def _split(content: str, scheme: Optional[SectionScheme]) -> AIResponse:
    return split_sections(content, (scheme,) if scheme else ALL_SCHEMES)
