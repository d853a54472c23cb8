"""Destination model."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Destination(BaseModel):
    """A third-party data recipient connected to one of the write keys.

    Only ``id`` is interpreted by the consent engine. The catalog sends it
    as ``creationName``; any other fields are carried through untouched.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
    )

    id: str = Field(..., validation_alias=AliasChoices("id", "creationName", "creation_name"))
    """Stable destination identifier."""
    name: str = Field(default="", validation_alias=AliasChoices("name"))
    """Display name (e.g. ``"Google Analytics"``)."""
    description: str = Field(default="", validation_alias=AliasChoices("description"))
    """Catalog description."""
    website: str = Field(default="", validation_alias=AliasChoices("website"))
    """Vendor website."""
    category: str = Field(default="", validation_alias=AliasChoices("category"))
    """Catalog category (e.g. ``"Analytics"``, ``"Advertising"``)."""

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        destination_id = value.strip()
        if not destination_id:
            raise ValueError("destination id must be non-empty")
        return destination_id

    @field_validator("name", "description", "website", "category", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value
