"""
Summarization Package - Unified API for Report Summarization.

    from medibrief.summarization import SummarizationOrchestrator, SummaryResult

Flow:
    DocumentReference ─→ DocumentExtractor ─┐
    raw text ─────────→ clean_text ─────────┤
                                            ↓
                     single: summary prompt → provider (once)
                     chunked: chunk_text → extraction prompt per chunk
                              → provider (sequential, paced)
                                            ↓
                                     SummaryResult
"""

from .orchestrator import NO_TEXT_MESSAGE, SummarizationOrchestrator, failure_marker
from .result_types import ERROR_PREFIX, SummaryResult

__all__ = [
    'ERROR_PREFIX',
    'NO_TEXT_MESSAGE',
    'SummarizationOrchestrator',
    'SummaryResult',
    'failure_marker',
]
