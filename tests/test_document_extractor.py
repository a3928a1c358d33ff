"""
Tests for document extraction.

These tests verify:
1. Dispatch between the PDF and OCR branches
2. Visual line rebuilding from positioned PDF words
3. Scanned-PDF detection and the optional OCR fallback
4. Error kinds for unreadable and unsupported documents

pdfplumber, Tesseract and HTTP are mocked; images are real Pillow images.
"""

import asyncio
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests
from PIL import Image

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from medibrief.config import PipelineConfig
from medibrief.errors import ExtractionError, ExtractionErrorKind
from medibrief.extraction import (
    SCANNED_PDF_MESSAGE,
    DocumentExtractor,
    DocumentKind,
    DocumentReference,
    page_lines,
)

MODULE = 'medibrief.extraction.document_extractor'

LAB_LINES = [
    ["Patient:", "Jane", "Doe", "Age:", "42"],
    ["Hemoglobin", "11.2", "g/dL", "(Low)", "Ref", "12.0-15.5"],
    ["Glucose", "132", "mg/dL", "(High)", "Ref", "70-99"],
    ["Page", "1", "of", "1"],
]


def make_page(rows, shuffle=True):
    """Fake pdfplumber page whose words sit on the given rows."""
    words = []
    for row_number, row in enumerate(rows):
        top = 100 + row_number * 20
        x = 50
        for i, text in enumerate(row):
            # Small vertical jitter within a line
            words.append({'text': text, 'x0': x, 'top': top + (i % 2) * 1.5})
            x += 10 * len(text) + 5
    if shuffle:
        words = list(reversed(words))
    page = MagicMock()
    page.extract_words.return_value = words
    return page


def mock_pdf(mock_open, pages):
    pdf = MagicMock()
    pdf.pages = pages
    mock_open.return_value.__enter__.return_value = pdf
    return pdf


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "report.pdf"
    path.write_bytes(b"%PDF-1.4 placeholder")
    return path


@pytest.fixture
def png_file(tmp_path):
    path = tmp_path / "scan.png"
    Image.new('RGB', (60, 30), 'white').save(path)
    return path


def extract(reference, config=None):
    return asyncio.run(DocumentExtractor(config).extract_document(reference))


class TestReference:
    """DocumentKind parsing and dispatch decisions."""

    @pytest.mark.parametrize("declared, expected", [
        ("pdf", DocumentKind.PDF),
        (".PDF", DocumentKind.PDF),
        ("application/pdf", DocumentKind.PDF),
        ("png", DocumentKind.IMAGE),
        ("jpg", DocumentKind.IMAGE),
        ("image/jpeg", DocumentKind.IMAGE),
        ("", DocumentKind.UNKNOWN),
        (None, DocumentKind.UNKNOWN),
        ("docx", DocumentKind.UNKNOWN),
    ])
    def test_parse(self, declared, expected):
        assert DocumentKind.parse(declared) is expected

    def test_pdf_suffix_ignores_query(self):
        reference = DocumentReference("https://store.example.com/u/1/Report.PDF?token=abc.png")
        assert reference.resolved_kind() is DocumentKind.PDF

    def test_pdf_in_query_only_is_image(self):
        reference = DocumentReference("https://store.example.com/u/1/scan?name=report.pdf")
        assert reference.resolved_kind() is DocumentKind.IMAGE

    def test_declared_kind_wins(self):
        reference = DocumentReference.from_declared("https://x.example.com/file.pdf", "image")
        assert reference.resolved_kind() is DocumentKind.IMAGE

    def test_repr_hides_token(self):
        reference = DocumentReference("https://x.example.com/a.pdf?token=secret")
        assert "secret" not in repr(reference)
        assert reference.display_name == "https://x.example.com/a.pdf"


class TestPageLines:
    """Rebuilding visual lines from positioned words."""

    def test_words_grouped_and_ordered(self):
        page = make_page(LAB_LINES[:2])
        assert page_lines(page) == [
            "Patient: Jane Doe Age: 42",
            "Hemoglobin 11.2 g/dL (Low) Ref 12.0-15.5",
        ]

    def test_empty_page(self):
        page = MagicMock()
        page.extract_words.return_value = []
        assert page_lines(page) == []


class TestPdfBranch:
    """Text-layer extraction through pdfplumber."""

    @patch(f'{MODULE}.pdfplumber.open')
    def test_text_layer_extracted_and_cleaned(self, mock_open, pdf_file):
        mock_pdf(mock_open, [make_page(LAB_LINES), make_page(LAB_LINES[1:2])])

        result = extract(DocumentReference(str(pdf_file)))

        assert result.method == 'pdf_text'
        assert result.page_count == 2
        assert result.lines[0] == "Patient: Jane Doe Age: 42"
        assert "Glucose 132 mg/dL (High) Ref 70-99" in result.lines
        assert "Page 1 of 1" not in result.cleaned_text
        # Pages are separated by a blank line in the raw text
        assert "\n\n" in result.raw_text

    @patch(f'{MODULE}.pdfplumber.open')
    def test_scanned_pdf_detected(self, mock_open, pdf_file):
        mock_pdf(mock_open, [make_page([["Page", "1", "of", "1"]]), make_page([])])

        with pytest.raises(ExtractionError) as exc_info:
            extract(DocumentReference(str(pdf_file)))

        assert exc_info.value.kind is ExtractionErrorKind.SCANNED_NO_TEXT_LAYER
        assert exc_info.value.user_message == SCANNED_PDF_MESSAGE

    @patch(f'{MODULE}.pytesseract.image_to_string')
    @patch(f'{MODULE}.convert_from_bytes')
    @patch(f'{MODULE}.pdfplumber.open')
    def test_scanned_pdf_ocr_fallback(self, mock_open, mock_convert, mock_ocr, pdf_file):
        mock_pdf(mock_open, [make_page([])])
        mock_convert.return_value = [Image.new('RGB', (10, 10)), Image.new('RGB', (10, 10))]
        mock_ocr.return_value = "Hemoglobin 11.2 g/dL (Low)\nPlatelets 250 x10^3/uL (Normal)"

        result = extract(DocumentReference(str(pdf_file)), PipelineConfig(ocr_scanned_pdfs=True))

        assert result.method == 'pdf_ocr'
        assert mock_ocr.call_count == 2
        assert result.lines[0] == "Hemoglobin 11.2 g/dL (Low)"

    @patch(f'{MODULE}.pdfplumber.open')
    def test_corrupt_pdf(self, mock_open, pdf_file):
        mock_open.side_effect = ValueError("No /Root object! - Is this really a PDF?")

        with pytest.raises(ExtractionError) as exc_info:
            extract(DocumentReference(str(pdf_file)))

        assert exc_info.value.kind is ExtractionErrorKind.UNREADABLE_SOURCE
        assert isinstance(exc_info.value.__cause__, ValueError)

    @patch(f'{MODULE}.pdfplumber.open')
    def test_password_protected_pdf(self, mock_open, pdf_file):
        class PDFPasswordIncorrect(Exception):
            pass

        mock_open.side_effect = PDFPasswordIncorrect()

        with pytest.raises(ExtractionError) as exc_info:
            extract(DocumentReference(str(pdf_file)))

        assert exc_info.value.kind is ExtractionErrorKind.UNREADABLE_SOURCE
        assert "password" in exc_info.value.user_message.lower()


class TestImageBranch:
    """OCR through pytesseract."""

    @patch(f'{MODULE}.pytesseract.image_to_string')
    def test_image_ocr(self, mock_ocr, png_file):
        mock_ocr.return_value = "LAB REPORT\nSodium   140 mmol/L\n|||\nemail: lab@example.com"

        text = asyncio.run(DocumentExtractor().extract(DocumentReference(str(png_file))))

        assert text == "LAB REPORT\nSodium 140 mmol/L\nemail:"
        assert mock_ocr.call_args.kwargs['lang'] == 'eng'

    @patch(f'{MODULE}.pytesseract.image_to_string')
    def test_ocr_language_from_config(self, mock_ocr, png_file):
        mock_ocr.return_value = "Natrium 140 mmol/L"

        extract(DocumentReference(str(png_file)), PipelineConfig(ocr_language='deu'))

        assert mock_ocr.call_args.kwargs['lang'] == 'deu'

    def test_unidentifiable_image(self, tmp_path):
        path = tmp_path / "notes.png"
        path.write_bytes(b"this is not an image")

        with pytest.raises(ExtractionError) as exc_info:
            extract(DocumentReference(str(path)))

        assert exc_info.value.kind is ExtractionErrorKind.UNSUPPORTED

    @patch(f'{MODULE}.pytesseract.image_to_string')
    def test_tesseract_missing(self, mock_ocr, png_file):
        import pytesseract
        mock_ocr.side_effect = pytesseract.TesseractNotFoundError()

        with pytest.raises(ExtractionError) as exc_info:
            extract(DocumentReference(str(png_file)))

        assert exc_info.value.kind is ExtractionErrorKind.UNREADABLE_SOURCE


class TestFetch:
    """Downloading and reading documents."""

    @patch(f'{MODULE}.pytesseract.image_to_string')
    @patch(f'{MODULE}.requests.get')
    def test_http_download(self, mock_get, mock_ocr, png_file):
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.content = png_file.read_bytes()
        mock_get.return_value = mock_response
        mock_ocr.return_value = "Cholesterol 210 mg/dL (High)"

        reference = DocumentReference("https://store.example.com/scan.png?token=t", DocumentKind.IMAGE)
        text = asyncio.run(DocumentExtractor().extract(reference))

        assert text == "Cholesterol 210 mg/dL (High)"
        assert mock_get.call_args.kwargs['timeout'] == 60

    @patch(f'{MODULE}.requests.get')
    def test_expired_link(self, mock_get):
        mock_response = MagicMock()
        mock_response.status_code = 403
        mock_get.return_value = mock_response

        with pytest.raises(ExtractionError) as exc_info:
            extract(DocumentReference("https://store.example.com/a.pdf?token=old"))

        assert exc_info.value.kind is ExtractionErrorKind.UNREADABLE_SOURCE
        assert "403" in exc_info.value.user_message

    @patch(f'{MODULE}.requests.get')
    def test_network_failure_chained(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(ExtractionError) as exc_info:
            extract(DocumentReference("https://store.example.com/a.pdf"))

        assert exc_info.value.kind is ExtractionErrorKind.UNREADABLE_SOURCE
        assert isinstance(exc_info.value.__cause__, requests.exceptions.ConnectionError)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ExtractionError) as exc_info:
            extract(DocumentReference(str(tmp_path / "nope.pdf")))

        assert exc_info.value.kind is ExtractionErrorKind.UNREADABLE_SOURCE

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.pdf"
        path.write_bytes(b"")

        with pytest.raises(ExtractionError) as exc_info:
            extract(DocumentReference(str(path)))

        assert exc_info.value.kind is ExtractionErrorKind.UNREADABLE_SOURCE

    @patch(f'{MODULE}.pdfplumber.open')
    def test_file_url(self, mock_open, pdf_file):
        mock_pdf(mock_open, [make_page(LAB_LINES)])

        result = extract(DocumentReference(pdf_file.as_uri()))

        assert result.method == 'pdf_text'


class TestConcurrency:
    """Independent extractions can run together."""

    @patch(f'{MODULE}.pytesseract.image_to_string')
    def test_gather(self, mock_ocr, png_file):
        mock_ocr.return_value = "Vitamin D 18 ng/mL (Low)"
        extractor = DocumentExtractor()

        async def run_all():
            return await asyncio.gather(
                *(extractor.extract(DocumentReference(str(png_file))) for _ in range(3))
            )

        assert asyncio.run(run_all()) == ["Vitamin D 18 ng/mL (Low)"] * 3
