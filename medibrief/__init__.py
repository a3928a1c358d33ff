"""
MediBrief - patient-friendly summaries of medical reports.

Pipeline: DocumentExtractor (PDF text layer or OCR) -> clean_text ->
SummarizationOrchestrator (single-shot or chunked strict extraction) over a
pluggable LanguageModelProvider. TermExplainer answers single-term questions.
"""

__version__ = "0.1.0"
