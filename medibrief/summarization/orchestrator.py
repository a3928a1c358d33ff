"""
Summarization Orchestrator - One Report In, One SummaryResult Out

Two operating modes:

    single   One prompt (safety preamble + full cleaned text), one provider
             call. Used for providers with a large context budget.
    chunked  Strict extraction. The cleaned text is cut into fixed-size
             chunks; each chunk gets its own extraction-only prompt at
             temperature 0. Calls are strictly sequential with a fixed pause
             between them so free-tier rate limits are respected.

"auto" picks single-shot when the estimated prompt fits the provider's
context window with room left for the answer, otherwise chunked.

A failed chunk leaves an inline marker at its position and processing
continues. A missing credential aborts the whole report.

Usage:
    orchestrator = SummarizationOrchestrator(create_provider(config.provider), config)
    result = await orchestrator.summarize(DocumentReference("https://.../report.pdf"))
    print(result.summary)
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

from medibrief.ai.base import LanguageModelProvider
from medibrief.chunking import TextChunk, chunk_text
from medibrief.cleaning import clean_text
from medibrief.config import PipelineConfig
from medibrief.errors import ExtractionError, MissingCredentialError, ProviderError
from medibrief.extraction import DocumentExtractor, DocumentReference
from medibrief.logging_config import debug_log, error, info, text_stats, warning
from medibrief.prompts import extraction_prompt, summary_prompt

from .result_types import SummaryResult

NO_TEXT_MESSAGE = "No text available for extraction"

# Share of the context window kept free for the model's answer in auto mode
OUTPUT_HEADROOM = 0.25

# Rough estimate: 1 token ~ 4 chars
CHARS_PER_TOKEN = 4


def failure_marker(chunk_number: int, message: str) -> str:
    """Inline placeholder for a chunk whose provider call failed."""
    return f"[Section {chunk_number}: extraction failed - {message}]"


class SummarizationOrchestrator:
    """
    Turns a document reference or raw text into a SummaryResult.

    Attributes:
        provider: LanguageModelProvider used for every call
        config: PipelineConfig (mode, chunk size, delay, temperatures)
        extractor: DocumentExtractor for DocumentReference sources
    """

    def __init__(
        self,
        provider: LanguageModelProvider,
        config: PipelineConfig | None = None,
        extractor: DocumentExtractor | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the orchestrator.

        Args:
            provider: Provider for all generation calls
            config: Pipeline settings. Defaults to PipelineConfig().
            extractor: Extractor for document references. Built from config if None.
            sleep: Coroutine used for the pause between chunk calls
        """
        self.provider = provider
        self.config = config or PipelineConfig()
        self.extractor = extractor or DocumentExtractor(self.config)
        self._sleep = sleep

    async def summarize(self, source: DocumentReference | str) -> SummaryResult:
        """
        Summarize a report.

        Args:
            source: DocumentReference to extract, or raw text to clean

        Returns:
            SummaryResult. Expected failures (extraction, provider, empty
            text) come back as an "Error: <reason>" result, never raised.
        """
        start_time = time.perf_counter()

        if isinstance(source, DocumentReference):
            try:
                text = await self.extractor.extract(source)
            except ExtractionError as e:
                return SummaryResult.failure(
                    e.user_message, processing_time_seconds=time.perf_counter() - start_time
                )
        else:
            text = clean_text(source or "")

        if not text.strip():
            warning("[SUMMARIZE] Nothing to summarize after cleaning")
            return SummaryResult.failure(
                NO_TEXT_MESSAGE, processing_time_seconds=time.perf_counter() - start_time
            )

        mode = self.choose_mode(text)
        info(f"[SUMMARIZE] {text_stats(text)} via {self.provider.name} in {mode} mode")

        if mode == "single":
            result = await self._summarize_single(text)
        else:
            result = await self._summarize_chunked(text)

        result.processing_time_seconds = time.perf_counter() - start_time
        info(f"[SUMMARIZE] Done in {result.processing_time_seconds:.1f}s "
             f"(success={result.success}, chunks={result.chunk_count}, failed={result.failed_chunks})")
        return result

    def choose_mode(self, text: str) -> str:
        """
        Resolve the configured mode for this text.

        Returns:
            "single" or "chunked"
        """
        mode = self.config.summary_mode
        if mode != "auto":
            return mode

        prompt = summary_prompt(text, self.config.summary_temperature).render()
        estimated_tokens = len(prompt) // CHARS_PER_TOKEN
        budget = int(self.provider.context_window * (1 - OUTPUT_HEADROOM))
        debug_log(f"[SUMMARIZE] Auto mode: ~{estimated_tokens} tokens against a budget of {budget}")
        return "single" if estimated_tokens <= budget else "chunked"

    async def _summarize_single(self, text: str) -> SummaryResult:
        spec = summary_prompt(text, self.config.summary_temperature)
        try:
            summary = await self.provider.generate(spec.render(), spec.temperature)
        except ProviderError as e:
            error(f"[SUMMARIZE] Single-shot call failed: {e.user_message}")
            return SummaryResult.failure(e.user_message, mode="single", chunk_count=1)

        return SummaryResult(summary=summary.strip(), mode="single", chunk_count=1)

    async def _summarize_chunked(self, text: str) -> SummaryResult:
        chunks = chunk_text(text, self.config.chunk_size)
        debug_log(f"[SUMMARIZE] {len(chunks)} chunk(s) of at most {self.config.chunk_size} chars")

        sections: list[str] = []
        failed = 0
        last_error = ""

        for chunk in chunks:
            if chunk.index > 0:
                await self._sleep(self.config.chunk_delay_seconds)

            try:
                sections.append(await self._extract_chunk(chunk))
            except MissingCredentialError as e:
                error(f"[SUMMARIZE] {e.user_message}")
                return SummaryResult.failure(e.user_message, mode="chunked", chunk_count=len(chunks))
            except ProviderError as e:
                warning(f"[SUMMARIZE] Chunk {chunk.number}/{len(chunks)} failed: {e.user_message}")
                sections.append(failure_marker(chunk.number, e.user_message))
                failed += 1
                last_error = e.user_message

        if failed == len(chunks):
            return SummaryResult.failure(
                f"Could not extract data from any section. {last_error}".strip(),
                mode="chunked",
                chunk_count=len(chunks),
            )

        return SummaryResult(
            summary="\n\n".join(sections).strip(),
            mode="chunked",
            chunk_count=len(chunks),
            failed_chunks=failed,
        )

    async def _extract_chunk(self, chunk: TextChunk) -> str:
        spec = extraction_prompt(chunk.text, self.config.extraction_temperature)
        output = await self.provider.generate(spec.render(), spec.temperature)
        debug_log(f"[SUMMARIZE] Chunk {chunk.number}: {len(chunk)} chars -> {len(output)} chars")
        return output.strip()
