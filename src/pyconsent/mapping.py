"""Custom preference mapping.

A mapper lets an application ask users about a few coarse categories
while the consent manager still persists and diffs per destination.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence

from pyconsent.models.destination import Destination
from pyconsent.models.preferences import CategoryPreferences, MappedPreferences

CustomPreferenceMapper = Callable[[Sequence[Destination], CategoryPreferences], MappedPreferences]
"""``(destinations, preferences) -> MappedPreferences``."""

MARKETING_AND_ANALYTICS = "marketingAndAnalytics"
ADVERTISING = "advertising"
FUNCTIONAL = "functional"

ADVERTISING_CATEGORIES: frozenset[str] = frozenset({"Advertising", "Tag Managers"})

FUNCTIONAL_CATEGORIES: frozenset[str] = frozenset(
    {
        "CRM",
        "Customer Success",
        "Deep Linking",
        "Helpdesk",
        "Livechat",
        "Performance Monitoring",
        "Personalization",
        "SMS & Push Notifications",
        "Security & Fraud",
    }
)

MARKETING_AND_ANALYTICS_CATEGORIES: frozenset[str] = frozenset(
    {
        "A/B Testing",
        "Analytics",
        "Attribution",
        "Email",
        "Enrichment",
        "Heatmaps & Recordings",
        "Raw Data",
        "Realtime Dashboards",
        "Referrals",
        "Surveys",
        "Video",
    }
)


def category_for(destination: Destination) -> str:
    """Return the custom preference key a destination belongs to."""
    if destination.category in ADVERTISING_CATEGORIES:
        return ADVERTISING
    if destination.category in FUNCTIONAL_CATEGORIES:
        return FUNCTIONAL
    # Marketing and analytics doubles as the catch-all bucket.
    return MARKETING_AND_ANALYTICS


class CategoryPreferenceMapper:
    """Map ``marketingAndAnalytics`` / ``advertising`` / ``functional`` onto destinations.

    Destinations whose bucket is undecided (``None`` or missing) are left
    out of the destination preferences so they stay "new".

    Usage::

        manager = ConsentManager(config, preference_mapper=CategoryPreferenceMapper())
    """

    def __init__(self, *, overrides: Mapping[str, str] | None = None) -> None:
        # destination id -> custom preference key, for destinations whose
        # catalog category does not describe them well.
        self._overrides = dict(overrides or {})

    def bucket_for(self, destination: Destination) -> str:
        return self._overrides.get(destination.id) or category_for(destination)

    def __call__(
        self,
        destinations: Sequence[Destination],
        preferences: CategoryPreferences,
    ) -> MappedPreferences:
        custom_preferences: CategoryPreferences = {
            key: preferences.get(key) for key in (MARKETING_AND_ANALYTICS, ADVERTISING, FUNCTIONAL)
        }
        # Unknown keys are kept so callers can persist extra choices.
        for key, value in preferences.items():
            custom_preferences.setdefault(key, value)

        destination_preferences: CategoryPreferences = {}
        for destination in destinations:
            value = custom_preferences.get(self.bucket_for(destination))
            if value is not None:
                destination_preferences[destination.id] = value
        return MappedPreferences(
            destination_preferences=destination_preferences,
            custom_preferences=custom_preferences,
        )
