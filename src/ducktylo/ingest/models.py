"""Domain models for the auto-ingest pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from ducktylo.exceptions import BadRequestError

DEFAULT_CHARACTER_ROLE = "support"
MAX_DESCRIPTION_LENGTH = 250


class JobStatus(str, Enum):
    """Lifecycle states of an ingest job record."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FileKind(str, Enum):
    """Script file formats the extractor understands."""

    PDF = "pdf"
    DOCX = "docx"
    FDX = "fdx"


@dataclass
class AuthenticatedUser:
    """Caller identity returned by the backend."""

    id: str
    email: str | None = None
    role: str | None = None


@dataclass
class ScriptRecord:
    """Ownership projection of a script row."""

    id: str
    primary_owner_id: str | None


@dataclass
class ScriptFileRecord:
    """Stored file attached to a script."""

    id: str
    storage_path: str
    file_type: str | None = None


@dataclass
class AutoIngestCharacter:
    """A character extracted by the model, after normalization."""

    name: str
    role: str | None = None
    genders: list[str] = field(default_factory=list)
    races: list[str] = field(default_factory=list)
    start_age: int | None = None
    end_age: int | None = None
    any_age: bool = True
    description: str | None = None

    def to_row(self, script_id: str) -> dict[str, Any]:
        """Build the ``script_characters`` row for this character."""
        return {
            "script_id": script_id,
            "name": self.name,
            "role": self.role or DEFAULT_CHARACTER_ROLE,
            "genders": self.genders,
            "races": self.races,
            "start_age": None if self.any_age else self.start_age,
            "end_age": None if self.any_age else self.end_age,
            "any_age": self.any_age,
            "description": self.description,
        }


@dataclass
class AutoIngestResult:
    """Normalized output of one model call. Never persisted as a whole."""

    logline: str = ""
    synopsis: str = ""
    genres: list[str] = field(default_factory=list)
    eras: list[str] = field(default_factory=list)
    locations: list[str] = field(default_factory=list)
    content_warnings: list[str] = field(default_factory=list)
    format: str | None = None
    estimated_page_count: int | None = None
    characters: list[AutoIngestCharacter] = field(default_factory=list)
    model: str = ""
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    raw_response: Any = None

    def script_update(self) -> dict[str, Any]:
        """Fields written onto the script row after a successful run.

        Empty text and empty taxonomy lists are stored as null, except
        content warnings where an empty list means "no warnings".
        """
        return {
            "logline": self.logline or None,
            "synopsis": self.synopsis or None,
            "genres": self.genres or None,
            "eras": self.eras or None,
            "locations": self.locations or None,
            "content_warnings": self.content_warnings,
            "format": self.format,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize without the raw provider payload."""
        data = asdict(self)
        data.pop("raw_response", None)
        return data


@dataclass
class IngestJob:
    """Write-only audit record of one ingest attempt."""

    id: str
    script_id: str
    status: JobStatus = JobStatus.RUNNING
    model: str | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    raw_response: Any = None
    error_message: str | None = None


@dataclass
class IngestRequest:
    """Validated body of an auto-ingest call."""

    script_id: str
    file_id: str | None = None
    storage_path: str | None = None


@dataclass
class IngestOutcome:
    """Successful result returned to the caller."""

    script: dict[str, Any] | None
    characters: list[dict[str, Any]]
    job: IngestJob

    def to_response(self) -> dict[str, Any]:
        """Unified response body."""
        return {
            "status": JobStatus.SUCCEEDED.value,
            "script": self.script,
            "characters": self.characters,
            "job": {"id": self.job.id, "status": self.job.status.value},
        }


def age_range_problem(
    any_age: bool, start_age: int | None, end_age: int | None
) -> str | None:
    """Describe what is wrong with an age range, or None when it is valid."""
    if any_age:
        return None
    if start_age is None or end_age is None:
        return "start and end age are required unless any age is allowed"
    if start_age < 0 or end_age < 0:
        return "ages cannot be negative"
    if start_age > end_age:
        return "start age cannot be greater than end age"
    return None


def validate_character(character: AutoIngestCharacter) -> AutoIngestCharacter:
    """Validate a manually entered character.

    Args:
        character: Character as entered by a writer

    Returns:
        The character with name, role and description trimmed

    Raises:
        BadRequestError: If a required field is missing or the age range
            is inconsistent
    """
    name = (character.name or "").strip()
    if not name:
        raise BadRequestError(message="Character name is required")
    role = (character.role or "").strip()
    if not role:
        raise BadRequestError(message="Character role is required")
    problem = age_range_problem(
        character.any_age, character.start_age, character.end_age
    )
    if problem:
        raise BadRequestError(
            message=f"Invalid age range for {name}: {problem}",
            hint="Fill in the age range or allow any age",
        )
    description = (character.description or "").strip() or None
    if description and len(description) > MAX_DESCRIPTION_LENGTH:
        raise BadRequestError(
            message=(
                f"Character description cannot exceed "
                f"{MAX_DESCRIPTION_LENGTH} characters"
            )
        )
    return AutoIngestCharacter(
        name=name,
        role=role,
        genders=list(character.genders),
        races=list(character.races),
        start_age=None if character.any_age else character.start_age,
        end_age=None if character.any_age else character.end_age,
        any_age=character.any_age,
        description=description,
    )
