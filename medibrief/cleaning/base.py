"""
Base Cleaning Classes

Defines the abstract base class for cleaning steps and the pipeline that runs
them in order. Every step works line by line, so a pipeline of steps behaves
exactly like applying all of them to each line and filtering at the end.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from medibrief.logging_config import debug_log


@dataclass
class CleaningResult:
    """
    Result of a cleaning step.

    Attributes:
        text: The processed text
        changes_made: Number of lines changed or removed
        metadata: Additional info about the processing (e.g. redaction counts)
        processing_time_ms: Time taken to process in milliseconds
    """
    text: str
    changes_made: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)
    processing_time_ms: float = 0.0


class BaseCleaningStep(ABC):
    """
    Abstract base class for cleaning steps.

    Example:
        class UppercaseStep(BaseCleaningStep):
            name = "Uppercase"

            def process(self, text: str) -> CleaningResult:
                return CleaningResult(text=text.upper())
    """

    name: str = "Base Cleaning Step"
    enabled: bool = True

    @abstractmethod
    def process(self, text: str) -> CleaningResult:
        """
        Process the input text and return the cleaned version.

        Args:
            text: Newline-separated text

        Returns:
            CleaningResult containing cleaned text and metadata
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(enabled={self.enabled})"


class CleaningPipeline:
    """
    Runs cleaning steps in sequence, each receiving the previous step's output.
    An exception raised by a step propagates; steps are never skipped on error.

    Example:
        pipeline = CleaningPipeline([LineNormalizer(), ContactRedactor(), LineFilter()])
        cleaned = pipeline.process(raw_text)
    """

    def __init__(self, steps: list[BaseCleaningStep] | None = None):
        self.steps: list[BaseCleaningStep] = steps or []
        self.total_changes: int = 0
        self._last_run_stats: dict[str, dict[str, Any]] = {}

    def process(self, text: str) -> str:
        """
        Run all enabled steps on the input text.

        Args:
            text: Raw input text

        Returns:
            Text after all cleaning steps
        """
        self.total_changes = 0
        self._last_run_stats = {}
        if not text:
            return ""

        current_text = text
        pipeline_start = time.perf_counter()

        for step in self.steps:
            if not step.enabled:
                debug_log(f"[CLEAN] Skipping disabled: {step.name}")
                continue

            start_time = time.perf_counter()
            result = step.process(current_text)
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            result.processing_time_ms = elapsed_ms

            self.total_changes += result.changes_made
            self._last_run_stats[step.name] = {
                'changes': result.changes_made,
                'time_ms': elapsed_ms,
                'metadata': result.metadata,
            }
            debug_log(f"[CLEAN] {step.name}: {result.changes_made} changes in {elapsed_ms:.1f}ms")

            current_text = result.text

        total_ms = (time.perf_counter() - pipeline_start) * 1000
        debug_log(f"[CLEAN] Pipeline complete: {len(text)} -> {len(current_text)} chars, "
                  f"{self.total_changes} changes in {total_ms:.1f}ms")
        return current_text

    def get_stats(self) -> dict[str, dict[str, Any]]:
        """Statistics from the last run, keyed by step name."""
        return self._last_run_stats.copy()

    def __repr__(self) -> str:
        return f"CleaningPipeline({[s.name for s in self.steps]})"
