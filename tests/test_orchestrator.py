"""
Tests for the summarization orchestrator.

These tests verify:
1. Single-shot mode calls the provider once with the safety preamble
2. Chunked mode calls the provider once per chunk, in order, with a delay
   before every call except the first
3. A failed chunk leaves an inline marker and processing continues
4. A missing credential aborts with an Error: payload
5. Auto mode picks the mode from the provider's context window
"""

import asyncio
import math
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from medibrief.ai import create_provider
from medibrief.config import PipelineConfig, provider_config_for
from medibrief.errors import (
    ExtractionError,
    ExtractionErrorKind,
    MissingCredentialError,
    NetworkUnavailableError,
    QuotaExceededError,
)
from medibrief.extraction import SCANNED_PDF_MESSAGE, DocumentReference
from medibrief.prompts import NO_MEDICAL_DATA, SUMMARY_DISCLAIMER
from medibrief.summarization import (
    NO_TEXT_MESSAGE,
    SummarizationOrchestrator,
    SummaryResult,
    failure_marker,
)

REPORT = "\n".join(
    f"Analyte {i}: {i * 0.7:.1f} mmol/L (Ref 1.0-5.0)" for i in range(60)
)


class FakeProvider:
    """Records prompts and replays scripted answers or errors."""

    name = "Fake"

    def __init__(self, answers=None, context_window=1_000_000):
        self.answers = list(answers or [])
        self.context_window = context_window
        self.calls = []

    async def generate(self, prompt, temperature=None):
        self.calls.append((prompt, temperature))
        answer = self.answers.pop(0) if self.answers else f"answer {len(self.calls)}"
        if isinstance(answer, Exception):
            raise answer
        return answer


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def run(orchestrator, source):
    return asyncio.run(orchestrator.summarize(source))


@pytest.fixture
def sleep():
    return RecordingSleep()


def chunked_config(**kwargs):
    return PipelineConfig(summary_mode='chunked', chunk_size=kwargs.pop('chunk_size', 500), **kwargs)


class TestSingleShot:
    """One prompt, one call."""

    def test_single_call_with_preamble(self, sleep):
        provider = FakeProvider(["  **Patient Overview**: ...  \n"])
        orchestrator = SummarizationOrchestrator(provider, PipelineConfig(summary_mode='single'), sleep=sleep)

        result = run(orchestrator, REPORT)

        assert result.success
        assert result.mode == "single"
        assert result.summary == "**Patient Overview**: ..."
        assert len(provider.calls) == 1
        assert sleep.delays == []

        prompt, temperature = provider.calls[0]
        assert temperature == 0.3
        assert "Analyte 59" in prompt
        assert "Patient Overview" in prompt
        assert "Key Findings" in prompt
        assert "What This Means" in prompt
        assert "Next Steps" in prompt
        assert "This may indicate" in prompt
        assert SUMMARY_DISCLAIMER in prompt

    def test_raw_text_is_cleaned(self):
        provider = FakeProvider(["ok"])
        orchestrator = SummarizationOrchestrator(provider, PipelineConfig(summary_mode='single'))

        run(orchestrator, "Hb 11.2 g/dL (Low) - jane@doe.com\nPage 1 of 1")

        prompt = provider.calls[0][0]
        assert "jane@doe.com" not in prompt
        assert "Page 1 of 1" not in prompt
        assert "Hb 11.2 g/dL (Low) -" in prompt

    def test_provider_error_becomes_payload(self):
        provider = FakeProvider([QuotaExceededError("Quota exceeded (429). Please try again later.")])
        orchestrator = SummarizationOrchestrator(provider, PipelineConfig(summary_mode='single'))

        result = run(orchestrator, REPORT)

        assert not result.success
        assert result.summary == "Error: Quota exceeded (429). Please try again later."
        assert result.error_message == "Quota exceeded (429). Please try again later."

    @patch('medibrief.ai.base.requests.post')
    def test_missing_credential_payload(self, mock_post):
        provider = create_provider(provider_config_for('keyed'))
        orchestrator = SummarizationOrchestrator(provider, PipelineConfig(summary_mode='single'))

        result = run(orchestrator, REPORT)

        assert not result.success
        assert result.mode == "single"
        assert result.summary.startswith("Error: Gemini API Key is missing")
        mock_post.assert_not_called()


class TestChunked:
    """Strict extraction, one call per chunk."""

    def test_call_count_and_delays(self, sleep):
        config = chunked_config(chunk_size=500)
        provider = FakeProvider()
        orchestrator = SummarizationOrchestrator(provider, config, sleep=sleep)

        result = run(orchestrator, REPORT)

        expected_chunks = math.ceil(len(REPORT) / 500)
        assert expected_chunks > 1
        assert len(provider.calls) == expected_chunks
        assert result.chunk_count == expected_chunks
        assert sleep.delays == [1.0] * (expected_chunks - 1)
        assert result.mode == "chunked"
        assert result.failed_chunks == 0

    def test_order_and_temperature(self, sleep):
        provider = FakeProvider()
        orchestrator = SummarizationOrchestrator(provider, chunked_config(chunk_size=1000), sleep=sleep)

        result = run(orchestrator, REPORT)

        assert all(temperature == 0.0 for _, temperature in provider.calls)
        assert "Analyte 0:" in provider.calls[0][0]
        assert "Analyte 59:" in provider.calls[-1][0]
        assert NO_MEDICAL_DATA in provider.calls[0][0]
        assert result.summary.split("\n\n") == [f"answer {i}" for i in range(1, len(provider.calls) + 1)]

    def test_configured_delay(self, sleep):
        provider = FakeProvider()
        config = chunked_config(chunk_size=1000, chunk_delay_seconds=2.5)
        run(SummarizationOrchestrator(provider, config, sleep=sleep), REPORT)

        assert set(sleep.delays) == {2.5}

    def test_single_chunk_no_delay(self, sleep):
        provider = FakeProvider(["- Sodium 140 mmol/L"])
        orchestrator = SummarizationOrchestrator(provider, chunked_config(chunk_size=4000), sleep=sleep)

        result = run(orchestrator, "Sodium 140 mmol/L")

        assert result.summary == "- Sodium 140 mmol/L"
        assert sleep.delays == []

    def test_failed_chunk_marker(self, sleep):
        provider = FakeProvider(["- first", NetworkUnavailableError("Request to Fake failed."), "- third"])
        orchestrator = SummarizationOrchestrator(provider, chunked_config(chunk_size=800), sleep=sleep)

        result = run(orchestrator, REPORT)

        assert result.success
        assert result.failed_chunks == 1
        assert result.is_partial
        sections = result.summary.split("\n\n")
        assert sections[0] == "- first"
        assert sections[1] == failure_marker(2, "Request to Fake failed.")
        assert sections[1] == "[Section 2: extraction failed - Request to Fake failed.]"
        assert sections[2] == "- third"
        assert len(provider.calls) == result.chunk_count

    def test_missing_credential_is_fatal(self, sleep):
        provider = FakeProvider(["- first", MissingCredentialError("Gemini API Key is missing.")])
        orchestrator = SummarizationOrchestrator(provider, chunked_config(chunk_size=500), sleep=sleep)

        result = run(orchestrator, REPORT)

        assert not result.success
        assert result.summary == "Error: Gemini API Key is missing."
        assert len(provider.calls) == 2
        assert "- first" not in result.summary

    def test_all_chunks_failed(self, sleep):
        failures = [NetworkUnavailableError("offline") for _ in range(10)]
        provider = FakeProvider(failures)
        orchestrator = SummarizationOrchestrator(provider, chunked_config(chunk_size=1200), sleep=sleep)

        result = run(orchestrator, REPORT)

        assert not result.success
        assert result.summary.startswith("Error: ")
        assert "offline" in result.error_message


class TestAutoMode:
    """auto chooses by context window."""

    def test_large_context_single(self):
        provider = FakeProvider(context_window=1_000_000)
        orchestrator = SummarizationOrchestrator(provider, PipelineConfig(summary_mode='auto'))

        assert orchestrator.choose_mode(REPORT) == "single"

    def test_small_context_chunked(self, sleep):
        provider = FakeProvider(context_window=512)
        orchestrator = SummarizationOrchestrator(provider, PipelineConfig(summary_mode='auto'), sleep=sleep)

        result = run(orchestrator, REPORT)

        assert result.mode == "chunked"
        assert len(provider.calls) == math.ceil(len(REPORT) / 4000)

    def test_fixed_modes_ignore_context(self):
        provider = FakeProvider(context_window=10)
        orchestrator = SummarizationOrchestrator(provider, PipelineConfig(summary_mode='single'))

        assert orchestrator.choose_mode(REPORT) == "single"


class TestSources:
    """Document references and empty input."""

    def test_empty_text(self):
        provider = FakeProvider()
        orchestrator = SummarizationOrchestrator(provider, PipelineConfig())

        for text in ["", "   \n\n", "Page 1 of 2\n---"]:
            result = run(orchestrator, text)
            assert not result.success
            assert result.summary == f"Error: {NO_TEXT_MESSAGE}"
            assert result.summary == "Error: No text available for extraction"
        assert provider.calls == []

    def test_reference_extracted(self):
        provider = FakeProvider(["summary"])
        extractor = MagicMock()
        extractor.extract = AsyncMock(return_value="Ferritin 8 ng/mL (Low)")
        orchestrator = SummarizationOrchestrator(provider, PipelineConfig(summary_mode='single'), extractor)
        reference = DocumentReference("https://store.example.com/r.pdf?token=x")

        result = run(orchestrator, reference)

        assert result.summary == "summary"
        extractor.extract.assert_awaited_once_with(reference)
        assert "Ferritin 8 ng/mL (Low)" in provider.calls[0][0]

    def test_extraction_error_payload(self):
        provider = FakeProvider()
        extractor = MagicMock()
        extractor.extract = AsyncMock(
            side_effect=ExtractionError(SCANNED_PDF_MESSAGE, ExtractionErrorKind.SCANNED_NO_TEXT_LAYER)
        )
        orchestrator = SummarizationOrchestrator(provider, PipelineConfig(), extractor)

        result = run(orchestrator, DocumentReference("scan.pdf"))

        assert not result.success
        assert result.summary == f"Error: {SCANNED_PDF_MESSAGE}"
        assert provider.calls == []


class TestSummaryResult:
    def test_failure_gets_payload(self):
        result = SummaryResult(summary="", success=False, error_message="boom")
        assert result.summary == "Error: boom"

    def test_failure_without_reason(self):
        result = SummaryResult(summary="", success=False)
        assert result.summary.startswith("Error: ")
        assert result.error_message

    def test_processing_time_recorded(self):
        provider = FakeProvider(["ok"])
        result = run(SummarizationOrchestrator(provider, PipelineConfig(summary_mode='single')), REPORT)
        assert result.processing_time_seconds >= 0
