"""
Document Extraction Module

Turns a fetchable document (signed URL or local file) into cleaned text.

- PDF documents: the embedded text layer is read with pdfplumber. A PDF whose
  cleaned text is shorter than MIN_PDF_TEXT_LENGTH is a scan saved as PDF and
  is reported as SCANNED_NO_TEXT_LAYER (or OCR'd, when ocr_scanned_pdfs is on).
- Images: recognized with Tesseract via pytesseract.

Parsing and OCR are blocking library calls; they run in worker threads so
that concurrent extractions do not block the event loop.

This module can be used standalone via `medibrief extract <location>`.
"""

import asyncio
import io
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

# PDF processing
import pdfplumber

# OCR
import pytesseract
from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError
from PIL import Image, UnidentifiedImageError

import requests

from medibrief.cleaning import TextCleaner
from medibrief.config import MAX_FILE_SIZE_MB, OCR_DPI, PipelineConfig
from medibrief.errors import ExtractionError, ExtractionErrorKind
from medibrief.extraction.models import DocumentKind, DocumentReference, ExtractedText
from medibrief.logging_config import Timer, debug_log, error, info, text_stats

SCANNED_PDF_MESSAGE = (
    "Scanned PDF detected (no selectable text). "
    "Please upload an image or paste text manually."
)
UNSUPPORTED_MESSAGE = (
    "This file type is not supported. Please upload a PDF or an image (PNG or JPG)."
)
GENERIC_FAILURE_MESSAGE = "Could not extract text from document."

# Words whose tops differ by at most this many points share a visual line
LINE_TOLERANCE = 3


def page_lines(page) -> list[str]:
    """
    Rebuild the visual lines of a pdfplumber page from its positioned words.

    Words are grouped by vertical position and joined with single spaces in
    left-to-right order, so adjacent items never run together.

    Args:
        page: pdfplumber Page

    Returns:
        Lines of the page, top to bottom
    """
    words = sorted(page.extract_words(), key=lambda w: (w['top'], w['x0']))

    rows: list[list[dict]] = []
    row_top = None
    for word in words:
        if rows and word['top'] - row_top <= LINE_TOLERANCE:
            rows[-1].append(word)
        else:
            rows.append([word])
            row_top = word['top']

    return [
        ' '.join(w['text'] for w in sorted(row, key=lambda w: w['x0']))
        for row in rows
    ]


class DocumentExtractor:
    """
    Extracts and cleans text from patient documents.

    Each call is independent: no state is shared between concurrent
    extractions apart from the read-only settings.

    Usage:
        extractor = DocumentExtractor(config)
        text = await extractor.extract(DocumentReference(url, DocumentKind.PDF))
    """

    def __init__(self, config: PipelineConfig | None = None):
        """
        Initialize the extractor.

        Args:
            config: Pipeline settings (OCR language, scan threshold, timeouts)
        """
        config = config or PipelineConfig()
        self.ocr_language = config.ocr_language
        self.min_text_length = config.min_pdf_text_length
        self.ocr_scanned_pdfs = config.ocr_scanned_pdfs
        self.fetch_timeout = config.fetch_timeout_seconds

    async def extract(self, reference: DocumentReference) -> str:
        """
        Extract cleaned text from a document.

        Args:
            reference: Document location and declared kind

        Returns:
            Cleaned text (may be empty for an image with no readable text)

        Raises:
            ExtractionError: UNREADABLE_SOURCE, SCANNED_NO_TEXT_LAYER or UNSUPPORTED
        """
        extracted = await self.extract_document(reference)
        return extracted.cleaned_text

    async def extract_document(self, reference: DocumentReference) -> ExtractedText:
        """
        Extract text from a document, keeping raw text and metadata.

        Raises:
            ExtractionError: see extract()
        """
        kind = reference.resolved_kind()
        info(f"[EXTRACT] Processing {reference.display_name} as {kind.value}")

        try:
            with Timer(f"[EXTRACT] {kind.value} extraction"):
                content = await asyncio.to_thread(self._fetch, reference)
                if kind is DocumentKind.PDF:
                    result = await asyncio.to_thread(self._extract_pdf, content)
                else:
                    result = await asyncio.to_thread(self._extract_image, content)
        except ExtractionError as e:
            error(f"[EXTRACT] {e.kind.name}: {e.user_message} (cause: {e.__cause__!r})")
            raise
        except Exception as e:
            error(f"[EXTRACT] Unexpected failure on {reference.display_name}: {e!r}", exc_info=True)
            raise ExtractionError(GENERIC_FAILURE_MESSAGE, ExtractionErrorKind.UNREADABLE_SOURCE) from e

        debug_log(f"[EXTRACT] {result.method}: {result.page_count} page(s), "
                  f"{len(result.raw_text)} raw -> {len(result.cleaned_text)} cleaned chars")
        return result

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    def _fetch(self, reference: DocumentReference) -> bytes:
        """Download the document, or read it from disk for non-HTTP locations."""
        location = reference.location
        parsed = urlparse(location)

        if parsed.scheme.lower() in ('http', 'https'):
            try:
                response = requests.get(location, timeout=self.fetch_timeout)
            except requests.exceptions.RequestException as e:
                raise ExtractionError(
                    "Could not download the document. Please check your connection and try again.",
                    ExtractionErrorKind.UNREADABLE_SOURCE,
                ) from e
            if response.status_code != 200:
                raise ExtractionError(
                    f"Could not download the document (HTTP {response.status_code}). "
                    "The link may have expired; please try again.",
                    ExtractionErrorKind.UNREADABLE_SOURCE,
                )
            content = response.content
        else:
            path = Path(url2pathname(parsed.path)) if parsed.scheme.lower() == 'file' else Path(location)
            try:
                content = path.read_bytes()
            except OSError as e:
                raise ExtractionError(
                    f"Could not read the document file '{path.name}'.",
                    ExtractionErrorKind.UNREADABLE_SOURCE,
                ) from e

        if not content:
            raise ExtractionError("The document is empty.", ExtractionErrorKind.UNREADABLE_SOURCE)

        size_mb = len(content) / (1024 * 1024)
        if size_mb > MAX_FILE_SIZE_MB:
            raise ExtractionError(
                f"The document is too large ({size_mb:.1f}MB). The maximum size is {MAX_FILE_SIZE_MB}MB.",
                ExtractionErrorKind.UNSUPPORTED,
            )

        debug_log(f"[EXTRACT] Fetched {len(content)} bytes")
        return content

    # -------------------------------------------------------------------------
    # PDF branch
    # -------------------------------------------------------------------------

    def _extract_pdf(self, content: bytes) -> ExtractedText:
        """Read the text layer of a PDF, page by page."""
        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                page_count = len(pdf.pages)
                debug_log(f"[EXTRACT] PDF has {page_count} pages")
                pages = ['\n'.join(page_lines(page)) for page in pdf.pages]
        except Exception as e:
            # pdfminer raises many unrelated exception types for bad input
            reason = f"{type(e).__name__} {e}".lower()
            if "password" in reason or "encrypt" in reason:
                message = "This PDF is password-protected. Please upload an unlocked copy."
            else:
                message = "Could not read this PDF. The file may be damaged or not a PDF."
            raise ExtractionError(message, ExtractionErrorKind.UNREADABLE_SOURCE) from e

        raw_text = '\n\n'.join(pages)
        cleaned = TextCleaner().clean(raw_text)

        if len(cleaned) < self.min_text_length:
            debug_log(f"[EXTRACT] Only {len(cleaned)} chars of text layer; treating as scanned PDF")
            if self.ocr_scanned_pdfs:
                return self._ocr_pdf(content, page_count)
            raise ExtractionError(SCANNED_PDF_MESSAGE, ExtractionErrorKind.SCANNED_NO_TEXT_LAYER)

        return ExtractedText(raw_text=raw_text, cleaned_text=cleaned, method='pdf_text', page_count=page_count)

    def _ocr_pdf(self, content: bytes, page_count: int) -> ExtractedText:
        """Rasterise a scanned PDF and OCR every page."""
        try:
            with Timer("[EXTRACT] PDF to images conversion"):
                images = convert_from_bytes(content, dpi=OCR_DPI)
        except (PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError) as e:
            raise ExtractionError(SCANNED_PDF_MESSAGE, ExtractionErrorKind.SCANNED_NO_TEXT_LAYER) from e

        page_texts = []
        for i, image in enumerate(images, 1):
            with Timer(f"[EXTRACT] OCR page {i}/{len(images)}", auto_log=False) as timer:
                page_texts.append(self._recognize(image))
            debug_log(f"[EXTRACT] OCR page {i}/{len(images)}: {text_stats(page_texts[-1])} "
                      f"in {timer.duration_ms:.0f} ms")

        raw_text = '\n\n'.join(page_texts)
        cleaned = TextCleaner().clean(raw_text)
        if len(cleaned) < self.min_text_length:
            raise ExtractionError(SCANNED_PDF_MESSAGE, ExtractionErrorKind.SCANNED_NO_TEXT_LAYER)

        return ExtractedText(
            raw_text=raw_text,
            cleaned_text=cleaned,
            method='pdf_ocr',
            page_count=page_count or len(images),
        )

    # -------------------------------------------------------------------------
    # Image branch
    # -------------------------------------------------------------------------

    def _extract_image(self, content: bytes) -> ExtractedText:
        """OCR an image document."""
        try:
            image = Image.open(io.BytesIO(content))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ExtractionError(UNSUPPORTED_MESSAGE, ExtractionErrorKind.UNSUPPORTED) from e

        with Timer("[EXTRACT] OCR image"):
            raw_text = self._recognize(image)

        cleaned = TextCleaner().clean(raw_text)
        return ExtractedText(raw_text=raw_text, cleaned_text=cleaned, method='ocr', page_count=1)

    def _recognize(self, image) -> str:
        """Run Tesseract over one image."""
        try:
            return pytesseract.image_to_string(image, lang=self.ocr_language)
        except pytesseract.TesseractNotFoundError as e:
            raise ExtractionError(
                "Text recognition is not available right now. Please paste the text manually.",
                ExtractionErrorKind.UNREADABLE_SOURCE,
            ) from e
        except pytesseract.TesseractError as e:
            raise ExtractionError(
                "Text recognition failed for this image. "
                "Please upload a clearer image or paste the text manually.",
                ExtractionErrorKind.UNREADABLE_SOURCE,
            ) from e
