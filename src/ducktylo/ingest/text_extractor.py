"""Plain-text extraction from PDF, DOCX and Final Draft (FDX) script files."""

from __future__ import annotations

import io
import zipfile
from typing import ClassVar
from xml.etree import ElementTree as ET

from pypdf import PdfReader

from ducktylo.config import get_logger
from ducktylo.exceptions import (
    EmptyFileError,
    IngestError,
    TextExtractionFailedError,
    UnsupportedFileTypeError,
)
from ducktylo.ingest.models import FileKind

logger = get_logger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
_WORD_NS = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"


def resolve_file_kind(declared_type: str) -> FileKind:
    """Resolve a MIME type or file extension to a supported file kind.

    Matching is case-insensitive and accepts a leading dot on extensions.

    Args:
        declared_type: MIME string (``application/pdf``) or extension (``.fdx``)

    Returns:
        The matching FileKind

    Raises:
        UnsupportedFileTypeError: If the value names no supported format
    """
    normalized = (declared_type or "").strip().lower()

    kind = TextExtractor.MIME_TO_KIND.get(normalized)
    if kind is not None:
        return kind

    extension = normalized.removeprefix(".")
    for candidate in FileKind:
        if extension == candidate.value:
            return candidate

    if "pdf" in normalized:
        return FileKind.PDF
    if "docx" in normalized or "wordprocessingml" in normalized:
        return FileKind.DOCX
    if "fdx" in normalized or "final draft" in normalized:
        return FileKind.FDX

    raise UnsupportedFileTypeError(declared_type)


class TextExtractor:
    """Turns a raw script file into plain text.

    Every parser failure surfaces as ``TextExtractionFailedError`` so callers
    never see a library-specific exception type.
    """

    MIME_TO_KIND: ClassVar[dict[str, FileKind]] = {
        "application/pdf": FileKind.PDF,
        DOCX_MIME: FileKind.DOCX,
        "application/xml": FileKind.FDX,
        "text/xml": FileKind.FDX,
        "application/final-draft": FileKind.FDX,
        "application/x-final-draft": FileKind.FDX,
    }

    def extract(self, data: bytes, declared_type: str) -> str:
        """Extract plain text from a file buffer.

        Args:
            data: Raw file bytes
            declared_type: MIME type or file extension of the buffer

        Returns:
            Non-empty extracted text

        Raises:
            UnsupportedFileTypeError: If the declared type is not PDF/DOCX/FDX
            EmptyFileError: If the buffer is empty
            TextExtractionFailedError: If parsing fails or yields no text
        """
        kind = resolve_file_kind(declared_type)

        if not data:
            raise EmptyFileError()

        handlers = {
            FileKind.PDF: self._extract_pdf,
            FileKind.DOCX: self._extract_docx,
            FileKind.FDX: self._extract_fdx,
        }

        try:
            text = handlers[kind](data).strip()
        except IngestError:
            raise
        except Exception as e:
            logger.warning(
                "Script text extraction failed",
                kind=kind.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TextExtractionFailedError(kind.value, str(e)) from e

        if not text:
            raise TextExtractionFailedError(kind.value, "no text found")

        logger.info(
            "Extracted script text",
            kind=kind.value,
            size_bytes=len(data),
            text_length=len(text),
        )
        return text

    def _extract_pdf(self, data: bytes) -> str:
        """Concatenate the text of every page."""
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
        return "\n".join(pages)

    def _extract_docx(self, data: bytes) -> str:
        """Read paragraph text from ``word/document.xml``; styling is dropped."""
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            xml_payload = archive.read("word/document.xml")
        root = ET.fromstring(xml_payload)

        paragraphs: list[str] = []
        for paragraph in root.iter(f"{_WORD_NS}p"):
            parts: list[str] = []
            for node in paragraph.iter():
                if node.tag == f"{_WORD_NS}t" and node.text:
                    parts.append(node.text)
                elif node.tag == f"{_WORD_NS}tab":
                    parts.append("\t")
                elif node.tag in {f"{_WORD_NS}br", f"{_WORD_NS}cr"}:
                    parts.append("\n")
            paragraphs.append("".join(parts))
        return "\n".join(paragraphs)

    def _extract_fdx(self, data: bytes) -> str:
        """Collect element text depth-first, one fragment per line.

        Attribute values are ignored.
        """
        root = ET.fromstring(data)
        fragments: list[str] = []

        # Explicit stack; a child's tail follows its subtree
        stack: list[ET.Element | str] = [root]
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                fragments.append(item)
                continue
            if item.text and item.text.strip():
                fragments.append(item.text.strip())
            for child in reversed(item):
                if child.tail and child.tail.strip():
                    stack.append(child.tail.strip())
                stack.append(child)
        return "\n".join(fragments)
