"""
Extraction Package

Resolves a DocumentReference into cleaned text via the PDF text layer or OCR.
"""

from medibrief.extraction.document_extractor import SCANNED_PDF_MESSAGE, DocumentExtractor, page_lines
from medibrief.extraction.models import DocumentKind, DocumentReference, ExtractedText

__all__ = [
    'DocumentExtractor',
    'DocumentKind',
    'DocumentReference',
    'ExtractedText',
    'SCANNED_PDF_MESSAGE',
    'page_lines',
]
