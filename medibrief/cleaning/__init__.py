"""
Text Cleaning Package

Turns raw PDF/OCR text into cleaned text: normalized lines with contact
details redacted and boilerplate removed.

Usage:
    from medibrief.cleaning import clean_text

    cleaned = clean_text(raw_text)
"""

from medibrief.cleaning.base import BaseCleaningStep, CleaningPipeline, CleaningResult
from medibrief.cleaning.text_cleaner import (
    ContactRedactor,
    LineFilter,
    LineNormalizer,
    TextCleaner,
    clean_text,
    normalize_line,
    redact_line,
)

__all__ = [
    'BaseCleaningStep',
    'CleaningPipeline',
    'CleaningResult',
    'ContactRedactor',
    'LineFilter',
    'LineNormalizer',
    'TextCleaner',
    'clean_text',
    'normalize_line',
    'redact_line',
]
