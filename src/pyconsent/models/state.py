"""Immutable consent state snapshot owned by the consent manager."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pyconsent.models.destination import Destination
from pyconsent.models.preferences import CategoryPreferences


class ConsentState(BaseModel):
    """One committed state of the consent manager.

    Snapshots are never mutated; every transition builds a new one with
    :meth:`evolve` and replaces the previous snapshot wholesale.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    destinations: tuple[Destination, ...] = ()
    new_destinations: tuple[Destination, ...] = ()
    preferences: CategoryPreferences = Field(default_factory=dict)
    destination_preferences: CategoryPreferences | None = None
    custom_preferences: CategoryPreferences | None = None
    is_consent_required: bool = True
    is_loading: bool = True

    def evolve(self, **changes: object) -> ConsentState:
        """Return a copy with *changes* applied; mappings are copied."""
        for key in ("preferences", "destination_preferences", "custom_preferences"):
            value = changes.get(key)
            if isinstance(value, dict):
                changes[key] = dict(value)
        for key in ("destinations", "new_destinations"):
            value = changes.get(key)
            if value is not None:
                changes[key] = tuple(value)  # type: ignore[arg-type]
        return self.model_copy(update=changes)
