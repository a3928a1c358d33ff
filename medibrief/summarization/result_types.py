"""
Result Types for Report Summarization

SummaryResult is what the orchestrator and the document workflow hand back
to callers. Failures are values, not exceptions: a failed result carries the
literal "Error: <reason>" payload in ``summary`` so a UI can render it as-is.

Usage:
    result = SummaryResult(
        summary="**Patient Overview**: ...",
        mode="single",
        chunk_count=1,
        processing_time_seconds=3.4
    )
"""

from __future__ import annotations

from dataclasses import dataclass

ERROR_PREFIX = "Error: "


@dataclass
class SummaryResult:
    """
    Result from summarizing one report.

    Attributes:
        summary: Patient summary, extracted bullet list, or "Error: <reason>".
        mode: "single", "chunked", "stored", or "" when no mode was reached.
        chunk_count: Number of provider calls the text was split into.
        failed_chunks: Chunks replaced by an inline failure marker.
        processing_time_seconds: Wall-clock time for this report.
        success: Whether summarization completed.
        error_message: Reason if success is False.
    """
    summary: str
    mode: str = ""
    chunk_count: int = 0
    failed_chunks: int = 0
    processing_time_seconds: float = 0.0
    success: bool = True
    error_message: str | None = None

    def __post_init__(self):
        """Failed results always carry a reason and the Error: payload."""
        if not self.success:
            if not self.error_message:
                self.error_message = "Unknown error during summarization"
            if not self.summary.startswith(ERROR_PREFIX):
                self.summary = f"{ERROR_PREFIX}{self.error_message}"

    @classmethod
    def failure(cls, reason: str, mode: str = "", chunk_count: int = 0,
                processing_time_seconds: float = 0.0) -> SummaryResult:
        """Build a failed result whose summary is "Error: <reason>"."""
        return cls(
            summary=f"{ERROR_PREFIX}{reason}",
            mode=mode,
            chunk_count=chunk_count,
            processing_time_seconds=processing_time_seconds,
            success=False,
            error_message=reason,
        )

    @property
    def is_partial(self) -> bool:
        """True if some, but not all, chunks failed."""
        return self.success and self.failed_chunks > 0
