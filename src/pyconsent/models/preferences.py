"""Preference mappings and the persisted preference record."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pyconsent._constants import RECORD_VERSION

CategoryPreferences = dict[str, bool | None]
"""Destination or category id -> ``True`` (consented), ``False`` (declined) or ``None`` (undecided)."""


def _coerce_preferences(value: Any) -> CategoryPreferences | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError("preferences must be a mapping")
    cleaned: CategoryPreferences = {}
    for key, pref in value.items():
        if pref is not None and not isinstance(pref, bool):
            raise ValueError(f"preference {key!r} must be a bool or None, got {type(pref).__name__}")
        cleaned[str(key)] = pref
    return cleaned


class PreferenceRecord(BaseModel):
    """A durable preference record as read from a preference store.

    Both mappings are optional; a store with nothing saved yields a record
    where both are ``None``.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    version: int = RECORD_VERSION
    destination_preferences: CategoryPreferences | None = Field(
        default=None,
        validation_alias=AliasChoices("destinations", "destinationPreferences", "destination_preferences"),
    )
    """Destination-level decisions keyed by destination id."""
    custom_preferences: CategoryPreferences | None = Field(
        default=None,
        validation_alias=AliasChoices("custom", "customPreferences", "custom_preferences"),
    )
    """Category-level decisions produced by a custom preference mapper."""

    @field_validator("destination_preferences", "custom_preferences", mode="before")
    @classmethod
    def _validate_preferences(cls, value: Any) -> CategoryPreferences | None:
        return _coerce_preferences(value)

    @property
    def is_empty(self) -> bool:
        return self.destination_preferences is None and self.custom_preferences is None

    def to_wire(self) -> dict[str, Any]:
        """Serialise to the stored JSON shape."""
        payload: dict[str, Any] = {
            "version": self.version,
            "destinations": dict(self.destination_preferences or {}),
        }
        if self.custom_preferences is not None:
            payload["custom"] = dict(self.custom_preferences)
        return payload


@dataclass(frozen=True, slots=True)
class MappedPreferences:
    """Output of a custom preference mapper.

    ``custom_preferences`` may be ``None``, in which case the preferences
    passed to the mapper are kept as the custom preferences.
    """

    destination_preferences: CategoryPreferences
    custom_preferences: CategoryPreferences | None = None
