"""Tests for plain-text extraction from script files."""

from unittest.mock import patch

import pytest

from ducktylo.exceptions import (
    EmptyFileError,
    TextExtractionFailedError,
    UnsupportedFileTypeError,
)
from ducktylo.ingest.models import FileKind
from ducktylo.ingest.text_extractor import DOCX_MIME, TextExtractor, resolve_file_kind
from tests.builders import SAMPLE_SCRIPT_LINES, build_docx, build_fdx, build_pdf


@pytest.fixture
def extractor() -> TextExtractor:
    """Create a text extractor."""
    return TextExtractor()


class TestResolveFileKind:
    """Test declared type resolution."""

    @pytest.mark.parametrize(
        ("declared", "expected"),
        [
            ("application/pdf", FileKind.PDF),
            ("APPLICATION/PDF", FileKind.PDF),
            (DOCX_MIME, FileKind.DOCX),
            ("application/xml", FileKind.FDX),
            ("text/xml", FileKind.FDX),
            (".fdx", FileKind.FDX),
            ("DOCX", FileKind.DOCX),
            ("pdf", FileKind.PDF),
            ("application/x-final-draft", FileKind.FDX),
        ],
    )
    def test_supported_types(self, declared, expected):
        """Test MIME strings and extensions map case-insensitively."""
        assert resolve_file_kind(declared) == expected

    @pytest.mark.parametrize("declared", ["image/png", "text/plain", "", ".rtf"])
    def test_unsupported_types(self, declared):
        """Test anything else is rejected."""
        with pytest.raises(UnsupportedFileTypeError) as exc_info:
            resolve_file_kind(declared)
        assert exc_info.value.status_code == 400


class TestTextExtractor:
    """Test TextExtractor.extract."""

    def test_pdf(self, extractor):
        """Test text is pulled from every PDF page."""
        text = extractor.extract(build_pdf(SAMPLE_SCRIPT_LINES), "application/pdf")

        assert "INT. LAB - NIGHT" in text
        assert "ADA (40s) stares at the engine." in text
        assert text == text.strip()

    def test_docx_drops_styling(self, extractor):
        """Test DOCX paragraphs come back as plain lines."""
        data = build_docx(["INT. LAB - NIGHT", "Ada stares at the engine."])

        text = extractor.extract(data, DOCX_MIME)

        assert text == "INT. LAB - NIGHT\nAda stares at the engine."

    def test_fdx_collects_text_not_attributes(self, extractor):
        """Test FDX element text is joined by newlines and attributes ignored."""
        data = build_fdx(
            [
                ("Scene Heading", "INT. LAB - NIGHT"),
                ("Character", "ADA"),
                ("Dialogue", "It computes."),
            ]
        )

        text = extractor.extract(data, "application/xml")

        assert text == "INT. LAB - NIGHT\nADA\nIt computes."
        assert "Scene Heading" not in text
        assert "FinalDraft" not in text

    def test_fdx_keeps_document_order_with_tails(self, extractor):
        """Test mixed content keeps text before, inside and after children."""
        data = b"<FinalDraft><Text>Hello <b>brave</b> new world</Text></FinalDraft>"

        assert extractor.extract(data, "fdx") == "Hello\nbrave\nnew world"

    def test_fdx_deeply_nested(self, extractor):
        """Test nesting deeper than the recursion limit is still walked."""
        depth = 3000
        data = (
            b"<FinalDraft>"
            + b"<a>" * depth
            + b"INT. LAB"
            + b"</a>" * depth
            + b"</FinalDraft>"
        )

        assert extractor.extract(data, "fdx") == "INT. LAB"

    def test_unexpected_parser_error_wrapped(self, extractor):
        """Test any parser exception becomes an extraction error."""
        with patch.object(
            TextExtractor, "_extract_pdf", side_effect=RuntimeError("parser bug")
        ):
            with pytest.raises(TextExtractionFailedError) as exc_info:
                extractor.extract(b"%PDF-1.4", "application/pdf")

        assert exc_info.value.kind == "pdf"
        assert exc_info.value.reason == "parser bug"

    def test_unsupported_type_checked_before_content(self, extractor):
        """Test an unsupported type wins over an empty buffer."""
        with pytest.raises(UnsupportedFileTypeError):
            extractor.extract(b"", "image/png")

    def test_empty_buffer(self, extractor):
        """Test empty input is a client error."""
        with pytest.raises(EmptyFileError) as exc_info:
            extractor.extract(b"", "application/pdf")
        assert exc_info.value.message == "File content is empty"
        assert exc_info.value.status_code == 400

    def test_corrupt_pdf(self, extractor):
        """Test parser failures surface as extraction errors."""
        with pytest.raises(TextExtractionFailedError) as exc_info:
            extractor.extract(b"not a pdf at all", "application/pdf")
        assert exc_info.value.kind == "pdf"
        assert exc_info.value.message.startswith("Could not extract text from PDF")
        assert exc_info.value.status_code == 500

    def test_corrupt_docx(self, extractor):
        """Test a non-zip DOCX buffer fails cleanly."""
        with pytest.raises(TextExtractionFailedError) as exc_info:
            extractor.extract(b"PK-but-not-really", DOCX_MIME)
        assert exc_info.value.kind == "docx"

    def test_malformed_fdx(self, extractor):
        """Test broken XML fails cleanly."""
        with pytest.raises(TextExtractionFailedError):
            extractor.extract(b"<FinalDraft><Content>", "application/xml")

    def test_whitespace_only_document(self, extractor):
        """Test a document without text is an extraction failure."""
        with pytest.raises(TextExtractionFailedError) as exc_info:
            extractor.extract(build_fdx([("Action", "   ")]), "application/xml")
        assert exc_info.value.reason == "no text found"
