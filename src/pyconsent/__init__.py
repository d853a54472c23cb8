"""pyconsent - Async consent reconciliation for tracking destinations."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyconsent")
except PackageNotFoundError:
    __version__ = "0+local"
from pyconsent._fetcher import CdnDestinationFetcher, DestinationFetcher
from pyconsent.analytics import (
    AnalyticsActivator,
    AnalyticsBackend,
    ConditionalAnalyticsLoader,
    NullAnalyticsActivator,
    compute_integrations,
)
from pyconsent.config import ConsentConfig
from pyconsent.exceptions import (
    ConsentConfigError,
    ConsentError,
    ConsentInitializationError,
    ConsentNotReadyError,
    ConsentStoreError,
    ConsentTransportError,
)
from pyconsent.manager import ConsentManager, RenderProps
from pyconsent.mapping import CategoryPreferenceMapper, CustomPreferenceMapper
from pyconsent.models import (
    CategoryPreferences,
    ConsentState,
    Destination,
    MappedPreferences,
    PreferenceRecord,
)
from pyconsent.reconcile import destinations_without_consent, merge_preferences
from pyconsent.store import (
    CookiePreferenceStore,
    JsonFilePreferenceStore,
    MemoryPreferenceStore,
    PreferenceStore,
)

__all__ = [
    "__version__",
    "AnalyticsActivator",
    "AnalyticsBackend",
    "CategoryPreferenceMapper",
    "CategoryPreferences",
    "CdnDestinationFetcher",
    "ConditionalAnalyticsLoader",
    "ConsentConfig",
    "ConsentConfigError",
    "ConsentError",
    "ConsentInitializationError",
    "ConsentManager",
    "ConsentNotReadyError",
    "ConsentState",
    "ConsentStoreError",
    "ConsentTransportError",
    "CookiePreferenceStore",
    "CustomPreferenceMapper",
    "Destination",
    "DestinationFetcher",
    "JsonFilePreferenceStore",
    "MappedPreferences",
    "MemoryPreferenceStore",
    "NullAnalyticsActivator",
    "PreferenceRecord",
    "PreferenceStore",
    "RenderProps",
    "compute_integrations",
    "destinations_without_consent",
    "merge_preferences",
]
