"""Custom exception hierarchy for Ducktylo with helpful error messages."""

from __future__ import annotations

from typing import Any, ClassVar


class DucktyloError(Exception):
    """Base exception with helpful formatting for all Ducktylo errors.

    Provides structured error messages with hints and details to help users
    understand and fix problems.
    """

    def __init__(
        self,
        message: str,
        hint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize exception with structured error information.

        Args:
            message: Primary error message describing what went wrong
            hint: Optional hint suggesting how to fix the problem
            details: Optional dictionary with additional debugging information
        """
        self.message = message
        self.hint = hint
        self.details = details
        super().__init__(self.format_error())

    def format_error(self) -> str:
        """Format the error message with hint and details.

        Returns:
            Formatted error string with all available information
        """
        output = f"Error: {self.message}"
        if self.hint:
            output += f"\nHint: {self.hint}"
        if self.details:
            details_str = "\n".join(
                f"  {key}: {value}" for key, value in self.details.items()
            )
            output += f"\nDetails:\n{details_str}"
        return output


class ConfigurationError(DucktyloError):
    """Configuration errors including invalid settings and missing config files."""

    pass


class BackendError(DucktyloError):
    """Failure reported by the auth/database/storage collaborator."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        hint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize backend error.

        Args:
            message: Error message
            status_code: HTTP status returned by the collaborator, if any
            hint: Optional hint
            details: Optional debugging details
        """
        self.status_code = status_code
        super().__init__(message=message, hint=hint, details=details)


class IngestError(DucktyloError):
    """Base class for every failure of the auto-ingest pipeline.

    Each subclass pins the HTTP status used when the error reaches the
    endpoint. ``message`` is the user-facing text recorded on failed jobs;
    ``job_id`` is set once the failure has been recorded on a job.
    """

    status_code: ClassVar[int] = 500
    job_id: str | None = None


class BadRequestError(IngestError):
    """Missing or invalid request fields."""

    status_code = 400


class UnauthenticatedError(IngestError):
    """Caller has no valid session."""

    status_code = 401

    def __init__(self, message: str = "Authentication required") -> None:
        """Initialize with a default message."""
        super().__init__(message=message, hint="Sign in and retry the request")


class UnauthorizedError(IngestError):
    """Caller is not the script's primary owner."""

    status_code = 403


class NotFoundError(IngestError):
    """Script or file record does not exist."""

    status_code = 404


class DownloadFailedError(IngestError):
    """Object storage download failed."""

    status_code = 500


class UnsupportedFileTypeError(IngestError):
    """Declared type does not resolve to PDF, DOCX or FDX."""

    status_code = 400

    def __init__(self, file_type: str) -> None:
        """Initialize with the offending type value."""
        self.file_type = file_type
        super().__init__(
            message=f"Unsupported file type: {file_type}",
            hint="Upload a PDF, DOCX or FDX file",
            details={"file_type": file_type},
        )


class EmptyFileError(IngestError):
    """Uploaded buffer has no bytes."""

    status_code = 400

    def __init__(self, message: str = "File content is empty") -> None:
        """Initialize with a default message."""
        super().__init__(message=message, hint="Upload a non-empty script file")


class TextExtractionFailedError(IngestError):
    """A format parser failed or produced no text."""

    status_code = 500

    def __init__(self, kind: str, reason: str | None = None) -> None:
        """Initialize extraction error.

        Args:
            kind: File kind that failed (pdf, docx, fdx)
            reason: Underlying parser message, when there was one
        """
        self.kind = kind
        self.reason = reason
        message = f"Could not extract text from {kind.upper()} file"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message=message, details={"kind": kind})


class MissingCredentialError(IngestError):
    """LLM provider API key is not configured."""

    status_code = 500


class LLMProviderError(IngestError):
    """Transport or HTTP failure talking to the LLM provider."""

    status_code = 500


class MalformedIngestResponseError(IngestError):
    """Model output could not be turned into a JSON object."""

    status_code = 500


class PersistenceFailedError(IngestError):
    """A downstream write (script, characters, job) failed."""

    status_code = 500


def check_config_keys(data: dict[str, Any]) -> None:
    """Check configuration for common key mistakes.

    Args:
        data: Raw configuration mapping loaded from a file

    Raises:
        ConfigurationError: If a known misspelled key is present
    """
    common_mistakes = {
        "openai_api_key": "llm_api_key",
        "api_key": "llm_api_key",
        "model": "llm_model",
        "db_path": "database_path",
        "supabase_key": "supabase_anon_key",
        "bucket": "storage_bucket",
    }

    for wrong_key, correct_key in common_mistakes.items():
        if wrong_key in data and correct_key not in data:
            raise ConfigurationError(
                message=f"Unknown configuration key '{wrong_key}'",
                hint=f"Did you mean '{correct_key}'?",
                details={"found": wrong_key, "expected": correct_key},
            )
