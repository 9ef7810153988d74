"""Pydantic schemas for API request bodies."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ducktylo.ingest.models import AutoIngestCharacter, IngestRequest


class AutoIngestRequestBody(BaseModel):
    """Body of ``POST /api/v1/ai/auto-ingest``."""

    model_config = ConfigDict(populate_by_name=True)

    script_id: str = Field(alias="scriptId", min_length=1)
    file_id: str | None = Field(default=None, alias="fileId")
    storage_path: str | None = Field(default=None, alias="storagePath")

    @field_validator("script_id")
    @classmethod
    def validate_script_id(cls, v: str) -> str:
        """Reject blank identifiers."""
        if not v.strip():
            raise ValueError("scriptId cannot be blank")
        return v.strip()

    @field_validator("file_id", "storage_path", mode="before")
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        """Treat empty strings as absent."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_request(self) -> IngestRequest:
        """Convert to the pipeline's request record."""
        return IngestRequest(
            script_id=self.script_id,
            file_id=self.file_id,
            storage_path=self.storage_path,
        )


class CharacterInput(BaseModel):
    """One manually entered character."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    role: str | None = None
    genders: list[str] = Field(default_factory=list)
    races: list[str] = Field(default_factory=list)
    start_age: int | None = Field(default=None, alias="startAge")
    end_age: int | None = Field(default=None, alias="endAge")
    any_age: bool = Field(default=True, alias="anyAge")
    description: str | None = None

    def to_character(self) -> AutoIngestCharacter:
        """Convert to the domain character record."""
        return AutoIngestCharacter(
            name=self.name,
            role=self.role,
            genders=self.genders,
            races=self.races,
            start_age=self.start_age,
            end_age=self.end_age,
            any_age=self.any_age,
            description=self.description,
        )


class SaveCharactersRequestBody(BaseModel):
    """Body of ``PUT /api/v1/scripts/{script_id}/characters``."""

    characters: list[CharacterInput] = Field(default_factory=list)
