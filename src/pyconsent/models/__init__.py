"""Data models for destinations, preferences and consent state."""

from pyconsent.models.destination import Destination
from pyconsent.models.preferences import CategoryPreferences, MappedPreferences, PreferenceRecord
from pyconsent.models.state import ConsentState

__all__ = [
    "CategoryPreferences",
    "ConsentState",
    "Destination",
    "MappedPreferences",
    "PreferenceRecord",
]
