"""
Chunk orchestrator.

Runs an editing or translation task over an ordered list of text chunks:

  1. for every chunk after the first, prefix a "part N of M" notice
  2. build the task prompt and send it through the AI router
  3. split + parse the answer into text and change / note items
  4. replace the chunk text (same index) and collect the item list
  5. report progress, pause CHUNK_DELAY_SECONDS, continue

Chunks are processed strictly one after another; a failure anywhere aborts
the whole job with ChunkJobError and discards everything already done.
Setting the optional ``cancel_event`` stops the job at the next chunk
boundary (or immediately, if a provider call or pause is in flight).
"""
from __future__ import annotations

import asyncio
import dataclasses
import inspect
import logging
from typing import Awaitable, Callable, ClassVar, List, Optional, Sequence, Union

from lektorat.config import settings
from lektorat.exceptions import (
    ChunkJobError,
    JobCancelledError,
    MissingCredentialError,
    UnknownModelError,
)
from lektorat.services.ai_router import (
    AIRouter,
    ModelProvider,
    ProviderCredentials,
    classify_model,
    has_credential,
)
from lektorat.services.chunking import ChunkingService, TextChunk, flatten_change_lists
from lektorat.services.glossary import GlossaryEntry
from lektorat.services.prompts import (
    EDITING_SYSTEM_MESSAGE,
    TRANSLATION_SYSTEM_MESSAGE,
    EditingMode,
    TranslationStyle,
    build_editing_prompt,
    build_translation_prompt,
    chunk_notice,
)
from lektorat.services.response_parser import (
    EDITING_SCHEME,
    ORPHANS_TO_GENERAL,
    TRANSLATION_SCHEME,
    AIResponse,
    ChangeItem,
    ParsedResponse,
    SectionScheme,
    response_items,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Union[None, Awaitable[None]]]


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class EditingTask:
    mode: EditingMode = EditingMode.STANDARD

    kind: ClassVar[str] = "editing"
    default_system_message: ClassVar[str] = EDITING_SYSTEM_MESSAGE
    scheme: ClassVar[SectionScheme] = EDITING_SCHEME

    def build_prompt(self, text: str, model: str) -> str:
        return build_editing_prompt(text, self.mode, model)


@dataclasses.dataclass(frozen=True)
class TranslationTask:
    style: TranslationStyle = TranslationStyle.STANDARD
    source_language: str = "auto"
    target_language: str = "en"

    kind: ClassVar[str] = "translation"
    default_system_message: ClassVar[str] = TRANSLATION_SYSTEM_MESSAGE
    scheme: ClassVar[SectionScheme] = TRANSLATION_SCHEME

    def build_prompt(self, text: str, model: str) -> str:
        return build_translation_prompt(
            text, self.style, self.source_language, self.target_language, model
        )


ChunkTask = Union[EditingTask, TranslationTask]


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class ChunkJobResult:
    processed_chunks: List[TextChunk]
    all_change_lists: List[List[ChangeItem]]

    @property
    def merged_text(self) -> str:
        return ChunkingService.merge(self.processed_chunks)

    @property
    def items(self) -> List[ChangeItem]:
        return flatten_change_lists(self.all_change_lists)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class ChunkOrchestrator:
    """Sequential chunk processing on top of an AIRouter."""

    def __init__(
        self,
        router: AIRouter,
        chunk_delay: Optional[float] = None,
        orphan_policy: str = ORPHANS_TO_GENERAL,
        chunker: Optional[ChunkingService] = None,
    ) -> None:
        self.router = router
        self.chunk_delay = settings.CHUNK_DELAY_SECONDS if chunk_delay is None else chunk_delay
        self.orphan_policy = orphan_policy
        self.chunker = chunker or ChunkingService()

    async def process_text(
        self,
        text: str,
        credentials: ProviderCredentials,
        task: ChunkTask,
        model: str,
        system_message: Optional[str] = None,
        glossary: Optional[Sequence[GlossaryEntry]] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ChunkJobResult:
        """
        Process a whole document, chunking it only when it exceeds
        MAX_CHUNK_SIZE.  Single-chunk failures surface as the original
        exception rather than a ChunkJobError.
        """
        if not self.chunker.needs_chunking(text):
            try:
                return await self.process_chunks(
                    [TextChunk(text=text, index=0)],
                    credentials,
                    task,
                    model,
                    system_message=system_message,
                    glossary=glossary,
                    on_progress=on_progress,
                    cancel_event=cancel_event,
                )
            except ChunkJobError as exc:
                raise exc.cause

        chunks = self.chunker.split(text)
        logger.info(
            "process_text: %d chars split into %d chunks for %s",
            len(text),
            len(chunks),
            task.kind,
        )
        return await self.process_chunks(
            chunks,
            credentials,
            task,
            model,
            system_message=system_message,
            glossary=glossary,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )

    async def process_chunks(
        self,
        chunks: Sequence[TextChunk],
        credentials: ProviderCredentials,
        task: ChunkTask,
        model: str,
        system_message: Optional[str] = None,
        glossary: Optional[Sequence[GlossaryEntry]] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ChunkJobResult:
        """
        Run *task* over *chunks* in order.

        Raises:
            ConfigurationError: unknown model or missing key, before any call.
            ChunkJobError: a chunk failed; ``chunk_number`` is 1-based.
            JobCancelledError: *cancel_event* was set.
        """
        self.check_ready(credentials, model)

        total = len(chunks)
        system = system_message or task.default_system_message
        processed: List[TextChunk] = []
        change_lists: List[List[ChangeItem]] = []

        for position, chunk in enumerate(chunks):
            _check_cancelled(cancel_event)

            prompt = task.build_prompt(chunk_notice(chunk.text, position, total), model)
            try:
                response = await self._call(
                    prompt, credentials, system, model, glossary, task.scheme, cancel_event
                )
            except JobCancelledError:
                raise
            except Exception as exc:
                logger.error(
                    "process_chunks: chunk %d/%d failed: %s", position + 1, total, exc
                )
                raise ChunkJobError(position + 1, exc) from exc

            parsed = self._parse(response, chunk)
            processed.append(TextChunk(text=parsed.text, index=chunk.index))
            change_lists.append(parsed.items)

            await _notify(on_progress, position + 1, total)

            if position < total - 1:
                await self._pause(cancel_event)

        logger.info("process_chunks: %s job finished, %d chunks", task.kind, total)
        return ChunkJobResult(processed_chunks=processed, all_change_lists=change_lists)

    def check_ready(self, credentials: ProviderCredentials, model: str) -> None:
        """Raise ConfigurationError if *model* cannot be dispatched with *credentials*."""
        route = classify_model(model)
        if route.provider is ModelProvider.UNKNOWN:
            raise UnknownModelError(model)
        if route.provider is ModelProvider.CLAUDE and not has_credential(credentials.claude):
            raise MissingCredentialError(self.router.claude.display_name)
        if route.provider is ModelProvider.OPENAI and not has_credential(credentials.openai):
            raise MissingCredentialError(self.router.openai.display_name)

    def chunk_count(self, text: str) -> int:
        """Number of provider calls process_text will make for *text*."""
        if not self.chunker.needs_chunking(text):
            return 1
        return len(self.chunker.split(text))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _call(
        self,
        prompt: str,
        credentials: ProviderCredentials,
        system: str,
        model: str,
        glossary: Optional[Sequence[GlossaryEntry]],
        scheme: SectionScheme,
        cancel_event: Optional[asyncio.Event],
    ) -> AIResponse:
        call = self.router.call_ai(
            prompt, credentials.openai, credentials.claude, system, model, glossary, scheme
        )
        if cancel_event is None:
            return await call

        call_task = asyncio.ensure_future(call)
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {call_task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
            if not call_task.done():
                call_task.cancel()

        if call_task in done:
            return call_task.result()
        raise JobCancelledError("Job cancelled while waiting for the provider")

    async def _pause(self, cancel_event: Optional[asyncio.Event]) -> None:
        if self.chunk_delay <= 0:
            _check_cancelled(cancel_event)
            return
        if cancel_event is None:
            await asyncio.sleep(self.chunk_delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=self.chunk_delay)
        except asyncio.TimeoutError:
            return
        raise JobCancelledError("Job cancelled between chunks")

    def _parse(self, response: AIResponse, chunk: TextChunk) -> ParsedResponse:
        text = response.text
        if not text.strip():
            # Blank model text: the original chunk stays in the merged output
            logger.warning("process_chunks: empty text for chunk index %d, keeping original", chunk.index)
            text = chunk.text
        return ParsedResponse(text=text, items=response_items(response, self.orphan_policy))


def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise JobCancelledError("Job cancelled")


async def _notify(callback: Optional[ProgressCallback], completed: int, total: int) -> None:
    if callback is None:
        return
    result = callback(completed, total)
    if inspect.isawaitable(result):
        await result
