"""
Text Cleaner

Normalizes and redacts text recovered from PDFs and OCR before it is sent to
a language model.

Steps (each applied line by line):
1. LineNormalizer - trim, collapse whitespace, strip OCR edge artifacts
2. ContactRedactor - remove emails, phone numbers and URLs (no placeholder)
3. LineFilter - drop short lines, footer/header boilerplate and symbol-only lines

Dates, lab values and units are never targeted. The rules are heuristics:
they remove the listed classes and nothing more, so they are not a complete
PII scrubber (street addresses, for example, pass through).

clean_text() is idempotent: every surviving line is a fixed point of the
normalize and redact steps, and the filter only removes lines.
"""

import re

from medibrief.cleaning.base import BaseCleaningStep, CleaningPipeline, CleaningResult

LINE_BREAK = re.compile(r'\r?\n')
WHITESPACE_RUN = re.compile(r'\s+')

# OCR artifact characters: | _ ~ ` - > <
ARTIFACT_CHARS = r'|_~`\-><'
LEADING_ARTIFACTS = re.compile(rf'^[{ARTIFACT_CHARS}]+')
TRAILING_ARTIFACTS = re.compile(rf'[{ARTIFACT_CHARS}]+$')

EMAIL_PATTERN = re.compile(r'\b[\w.-]+@[\w.-]+\.\w{2,4}\b')
PHONE_PATTERN = re.compile(r'(?:\+?\d{1,3}[ -]?)?\(?\d{3}\)?[ -]?\d{3}[ -]?\d{4}')
URL_PATTERN = re.compile(r'https?://\S+')

BOILERPLATE_PATTERNS = [
    re.compile(r'page\s+\d+\s+of\s+\d+', re.IGNORECASE),
    re.compile(r'printed\s+on', re.IGNORECASE),
    re.compile(r'electronically\s+signed', re.IGNORECASE),
    re.compile(r'verified\s+by', re.IGNORECASE),
    re.compile(r'end\s+of\s+report', re.IGNORECASE),
]

NON_ALPHANUMERIC = re.compile(r'[^a-zA-Z0-9]')

MIN_LINE_LENGTH = 3
MIN_ALPHANUMERIC_CHARS = 2


def _strip_artifacts(line: str) -> str:
    """
    Remove leading and trailing runs of OCR artifact characters.

    A lone '-' separated from the text by a space is kept: it is a dash
    ("Hb: 13.2 (Low) -", "- Glucose 95") rather than scanner noise.
    """
    match = LEADING_ARTIFACTS.match(line)
    if match and not (match.group() == '-' and line[match.end():match.end() + 1] == ' '):
        line = line[match.end():]

    match = TRAILING_ARTIFACTS.search(line)
    if match and not (match.group() == '-' and match.start() > 0 and line[match.start() - 1] == ' '):
        line = line[:match.start()]

    return line


def normalize_line(line: str) -> str:
    """
    Trim, collapse whitespace and strip edge artifacts until the line is stable.

    Args:
        line: A single line of text

    Returns:
        The normalized line
    """
    previous = None
    while line != previous:
        previous = line
        line = WHITESPACE_RUN.sub(' ', line.strip())
        line = _strip_artifacts(line)
    return line


def redact_line(line: str) -> tuple[str, int]:
    """
    Remove contact details from one line.

    Returns:
        (redacted_line, number_of_substrings_removed)
    """
    removed = 0
    for pattern in (EMAIL_PATTERN, PHONE_PATTERN, URL_PATTERN):
        line, count = pattern.subn('', line)
        removed += count
    return line, removed


def boilerplate_match(line: str) -> bool:
    """True if the line is a report header/footer such as 'Page 2 of 5'."""
    return any(pattern.search(line) for pattern in BOILERPLATE_PATTERNS)


class LineNormalizer(BaseCleaningStep):
    """Trims each line, collapses whitespace and strips OCR edge artifacts."""

    name = "Line Normalizer"

    def process(self, text: str) -> CleaningResult:
        lines = LINE_BREAK.split(text)
        normalized = [normalize_line(line) for line in lines]
        changes = sum(1 for before, after in zip(lines, normalized) if before != after)
        return CleaningResult(text='\n'.join(normalized), changes_made=changes)


class ContactRedactor(BaseCleaningStep):
    """
    Replaces emails, phone numbers and URLs with the empty string.

    A redacted line is normalized again (removal can leave a double space or
    expose an edge artifact) and re-checked until nothing more matches.
    """

    name = "Contact Redactor"

    def process(self, text: str) -> CleaningResult:
        output = []
        changed_lines = 0
        redactions = 0

        for line in LINE_BREAK.split(text):
            original = line
            while True:
                line, removed = redact_line(line)
                if not removed:
                    break
                redactions += removed
                line = normalize_line(line)
            if line != original:
                changed_lines += 1
            output.append(line)

        return CleaningResult(
            text='\n'.join(output),
            changes_made=changed_lines,
            metadata={'redactions': redactions},
        )


class LineFilter(BaseCleaningStep):
    """Drops lines that are too short, boilerplate, or mostly symbols."""

    name = "Line Filter"

    def keep(self, line: str) -> bool:
        """Decide whether a normalized, redacted line survives."""
        if len(line) < MIN_LINE_LENGTH:
            return False
        if boilerplate_match(line):
            return False
        return len(NON_ALPHANUMERIC.sub('', line)) >= MIN_ALPHANUMERIC_CHARS

    def process(self, text: str) -> CleaningResult:
        lines = LINE_BREAK.split(text)
        kept = [line for line in lines if self.keep(line)]
        return CleaningResult(
            text='\n'.join(kept),
            changes_made=len(lines) - len(kept),
            metadata={'lines_in': len(lines), 'lines_out': len(kept)},
        )


class TextCleaner:
    """
    Cleans raw extracted text for summarization.

    Usage:
        cleaner = TextCleaner()
        cleaned = cleaner.clean(raw_text)
        print(cleaner.get_stats())
    """

    def __init__(self):
        self.pipeline = CleaningPipeline([
            LineNormalizer(),
            ContactRedactor(),
            LineFilter(),
        ])

    def clean(self, raw_text: str) -> str:
        """
        Normalize, redact and filter raw text.

        Args:
            raw_text: Text straight from the PDF parser or OCR engine

        Returns:
            Surviving lines joined with newlines, original order preserved
        """
        if not raw_text:
            return ""
        return self.pipeline.process(raw_text)

    def get_stats(self) -> dict:
        """Per-step statistics from the last clean() call."""
        return self.pipeline.get_stats()


def clean_text(raw_text: str) -> str:
    """Clean text with a fresh TextCleaner. See TextCleaner.clean()."""
    return TextCleaner().clean(raw_text)
