"""
Data types passed into and out of the DocumentExtractor.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

PDF_ALIASES = {'pdf', 'application/pdf'}
IMAGE_ALIASES = {
    'image', 'png', 'jpg', 'jpeg', 'gif', 'bmp', 'tif', 'tiff', 'webp',
}


class DocumentKind(Enum):
    """Declared media kind of a document."""
    PDF = "pdf"
    IMAGE = "image"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | DocumentKind | None) -> DocumentKind:
        """
        Map a declared file type to a DocumentKind.

        Accepts kind names, file extensions (with or without the dot) and
        MIME types. Anything unrecognised, including None, is UNKNOWN.

        Example:
            DocumentKind.parse(".PDF")       # DocumentKind.PDF
            DocumentKind.parse("image/png")  # DocumentKind.IMAGE
            DocumentKind.parse("")           # DocumentKind.UNKNOWN
        """
        if isinstance(value, DocumentKind):
            return value
        if not value:
            return cls.UNKNOWN

        declared = value.strip().lower().lstrip('.')
        if declared in PDF_ALIASES:
            return cls.PDF
        if declared in IMAGE_ALIASES or declared.startswith('image/'):
            return cls.IMAGE
        return cls.UNKNOWN


@dataclass(frozen=True)
class DocumentReference:
    """
    A fetchable document handed over by the document store.

    Attributes:
        location: Time-limited URL (or a local path for CLI use)
        kind: Declared media kind; UNKNOWN means infer from the location
    """
    location: str
    kind: DocumentKind = DocumentKind.UNKNOWN

    @classmethod
    def from_declared(cls, location: str, declared_type: str | None = None) -> DocumentReference:
        """Build a reference from a location and a loosely-typed file type."""
        return cls(location=location, kind=DocumentKind.parse(declared_type))

    def resolved_kind(self) -> DocumentKind:
        """
        The kind the extractor should use.

        A declared PDF or image wins. Otherwise a case-insensitive '.pdf'
        suffix on the URL path (query string ignored) means PDF and anything
        else is treated as an image for OCR.
        """
        if self.kind is not DocumentKind.UNKNOWN:
            return self.kind
        path = urlparse(self.location).path or self.location
        if path.lower().endswith('.pdf'):
            return DocumentKind.PDF
        return DocumentKind.IMAGE

    def __repr__(self) -> str:
        # Signed URLs carry access tokens in the query string
        return f"DocumentReference(location={self.display_name!r}, kind={self.kind.value})"

    @property
    def display_name(self) -> str:
        """Location without query string, safe for logs."""
        return self.location.split('?', 1)[0]


@dataclass
class ExtractedText:
    """
    Text recovered from one document.

    Attributes:
        raw_text: Text as produced by the PDF parser or OCR engine
        cleaned_text: Output of the TextCleaner
        method: 'pdf_text', 'ocr' or 'pdf_ocr'
        page_count: Number of pages (1 for images)
    """
    raw_text: str
    cleaned_text: str
    method: str
    page_count: int = 1

    @property
    def lines(self) -> list[str]:
        """Cleaned text as an ordered list of lines."""
        return self.cleaned_text.split('\n') if self.cleaned_text else []
