"""In-memory builders for script files and fake collaborators used by tests."""

import io
import json
import zipfile
from typing import Any

from ducktylo.exceptions import LLMProviderError
from ducktylo.llm.base import BaseLLMProvider
from ducktylo.llm.models import CompletionRequest, CompletionResponse, LLMProvider

WORD_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"


def _pdf_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(lines: list[str]) -> bytes:
    """Build a one-page PDF showing each line with Helvetica.

    Byte offsets in the xref table are computed so strict readers accept it.
    """
    operations = ["BT", "/F1 12 Tf", "72 720 Td", "14 TL"]
    for index, line in enumerate(lines):
        if index:
            operations.append("T*")
        operations.append(f"({_pdf_escape(line)}) Tj")
    operations.append("ET")
    stream = "\n".join(operations).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length "
        + str(len(stream)).encode()
        + b" >>\nstream\n"
        + stream
        + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    output = io.BytesIO()
    output.write(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(output.tell())
        output.write(f"{number} 0 obj\n".encode() + body + b"\nendobj\n")

    xref_offset = output.tell()
    output.write(f"xref\n0 {len(objects) + 1}\n".encode())
    output.write(b"0000000000 65535 f \n")
    for offset in offsets:
        output.write(f"{offset:010d} 00000 n \n".encode())
    output.write(
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n".encode()
    )
    return output.getvalue()


def build_docx(paragraphs: list[str]) -> bytes:
    """Build a minimal DOCX archive with one run per paragraph."""
    body = "".join(
        f'<w:p><w:r><w:rPr><w:b/></w:rPr><w:t xml:space="preserve">{text}</w:t>'
        "</w:r></w:p>"
        for text in paragraphs
    )
    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document xmlns:w="{WORD_NS}"><w:body>{body}</w:body></w:document>'
    )
    content_types = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
        '<Override PartName="/word/document.xml" ContentType="application/'
        'vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
        "</Types>"
    )
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", content_types)
        archive.writestr("word/document.xml", document)
    return buffer.getvalue()


def build_fdx(paragraphs: list[tuple[str, str]]) -> bytes:
    """Build a Final Draft document from ``(type, text)`` paragraphs."""
    body = "".join(
        f'<Paragraph Type="{kind}"><Text>{text}</Text></Paragraph>'
        for kind, text in paragraphs
    )
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="no" ?>'
        '<FinalDraft DocumentType="Script" Template="No" Version="5">'
        f"<Content>{body}</Content></FinalDraft>"
    ).encode()


SAMPLE_SCRIPT_LINES = [
    "FADE IN:",
    "INT. LAB - NIGHT",
    "ADA (40s) stares at the engine.",
    "ADA",
    "It computes.",
]


def completion_response(
    content: Any,
    model: str = "gpt-4o-mini",
    usage: dict[str, Any] | None = None,
) -> CompletionResponse:
    """Build a provider response with one choice."""
    if usage is None:
        usage = {"prompt_tokens": 120, "completion_tokens": 45}
    raw = {
        "id": "chatcmpl-test",
        "model": model,
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}}
        ],
        "usage": usage,
    }
    return CompletionResponse(
        id="chatcmpl-test",
        model=model,
        choices=raw["choices"],
        usage=usage,
        provider=LLMProvider.OPENAI_COMPATIBLE,
        raw=raw,
    )


class FakeProvider(BaseLLMProvider):
    """Provider returning a canned answer and recording requests."""

    provider_type = LLMProvider.OPENAI_COMPATIBLE

    def __init__(
        self,
        content: Any = None,
        error: Exception | None = None,
        has_key: bool = True,
    ) -> None:
        if content is not None and not isinstance(content, str):
            content = json.dumps(content)
        self.content = content
        self.error = error
        self.has_key = has_key
        self.requests: list[CompletionRequest] = []
        self.closed = False

    @property
    def has_credentials(self) -> bool:
        return self.has_key

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return completion_response(self.content, model=request.model)

    async def aclose(self) -> None:
        self.closed = True


def failing_provider(message: str = "upstream timeout") -> FakeProvider:
    """Provider whose every call fails at the transport level."""
    return FakeProvider(error=LLMProviderError(message=message))
