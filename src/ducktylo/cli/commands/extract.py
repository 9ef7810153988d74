"""Extract plain text from a script file."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from ducktylo.cli.errors import exit_with_error
from ducktylo.exceptions import IngestError
from ducktylo.ingest.orchestrator import infer_file_type
from ducktylo.ingest.text_extractor import TextExtractor

console = Console()


def read_script_text(path: Path, file_type: str | None) -> str:
    """Read a local script file and extract its text.

    The type comes from ``--type`` when given, otherwise from the file
    extension, like stored files without a recorded type.
    """
    data = path.read_bytes()
    return TextExtractor().extract(data, infer_file_type(file_type, path.name))


def extract_command(
    path: Annotated[
        Path,
        typer.Argument(
            help="PDF, DOCX or FDX script file",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    file_type: Annotated[
        str | None,
        typer.Option(
            "--type",
            "-t",
            help="MIME type or extension overriding the file extension",
        ),
    ] = None,
) -> None:
    """Print the plain text extracted from a script file."""
    try:
        text = read_script_text(path, file_type)
    except (IngestError, OSError) as e:
        exit_with_error(console, e, "Text extraction failed")

    # Raw text to stdout so it can be piped
    print(text)
