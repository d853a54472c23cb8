"""Pure preference reconciliation helpers.

Nothing in this module touches storage, the network or the manager's
state; the consent manager composes these into its transitions.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from pyconsent.models.destination import Destination
from pyconsent.models.preferences import CategoryPreferences


def destinations_without_consent(
    destinations: Sequence[Destination],
    destination_preferences: Mapping[str, bool | None] | None,
) -> list[Destination]:
    """Return the destinations that have no recorded decision.

    A destination counts as decided as soon as its id is a key in
    *destination_preferences*, even when the value is ``None``. With no
    mapping at all every destination is new. Input order is preserved.
    """
    if destination_preferences is None:
        return list(destinations)
    return [destination for destination in destinations if destination.id not in destination_preferences]


def merge_preferences(
    destinations: Sequence[Destination],
    existing_preferences: Mapping[str, bool | None],
    new_preferences: Mapping[str, bool | None] | bool | None = None,
) -> CategoryPreferences:
    """Merge *new_preferences* over *existing_preferences*.

    A bool is a bulk accept/decline: the result holds exactly one key per
    destination, all set to that value, and existing decisions are dropped.
    A mapping is shallow-merged with its keys winning. ``None`` returns a
    copy of the existing preferences.
    """
    if isinstance(new_preferences, bool):
        return {destination.id: new_preferences for destination in destinations}
    merged: CategoryPreferences = dict(existing_preferences)
    if new_preferences:
        merged.update(new_preferences)
    return merged


def has_any_consent(preferences: Mapping[str, bool | None] | None) -> bool:
    """``True`` when at least one preference is truthy."""
    return any(bool(value) for value in (preferences or {}).values())


def is_undecided(preferences: Mapping[str, bool | None] | None) -> bool:
    """``True`` when *preferences* is missing or holds only ``None`` values."""
    return all(value is None for value in (preferences or {}).values())
