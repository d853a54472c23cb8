"""Conditional analytics activation.

Decides, from the resolved consent state, whether the analytics library
may load and which integrations it may talk to. Actually loading the
library is delegated to an :class:`AnalyticsBackend`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Protocol

from pyconsent._constants import INTEGRATION_ALL, INTEGRATION_SEGMENT
from pyconsent._redact import mask_write_key
from pyconsent.models.destination import Destination

_logger = logging.getLogger(__name__)


class AnalyticsBackend(Protocol):
    """The side-effecting analytics runtime (script loader, SDK, ...)."""

    @property
    def initialized(self) -> bool:
        ...

    def load(self, write_key: str, integrations: Mapping[str, bool] | None = None) -> None:
        ...

    def reload(self) -> None:
        ...


class AnalyticsActivator(Protocol):
    """Interface the consent manager calls after every initialization and save."""

    def activate(
        self,
        *,
        write_key: str,
        destinations: Sequence[Destination],
        destination_preferences: Mapping[str, bool | None] | None,
        is_consent_required: bool,
        should_reload: bool = True,
    ) -> None:
        ...


def compute_integrations(
    destinations: Sequence[Destination],
    destination_preferences: Mapping[str, bool | None],
) -> dict[str, bool]:
    """Build the integrations filter: everything off except consented destinations."""
    integrations: dict[str, bool] = {INTEGRATION_ALL: False, INTEGRATION_SEGMENT: True}
    for destination in destinations:
        integrations[destination.id] = bool(destination_preferences.get(destination.id))
    return integrations


class ConditionalAnalyticsLoader:
    """Load analytics only as far as the user's preferences allow."""

    def __init__(self, backend: AnalyticsBackend) -> None:
        self._backend = backend

    def activate(
        self,
        *,
        write_key: str,
        destinations: Sequence[Destination],
        destination_preferences: Mapping[str, bool | None] | None,
        is_consent_required: bool,
        should_reload: bool = True,
    ) -> None:
        if destination_preferences is None:
            if is_consent_required:
                _logger.debug("No preferences and consent required; analytics stays off")
                return
            if not self._backend.initialized:
                _logger.debug("Consent not required; loading analytics for %s", mask_write_key(write_key))
                self._backend.load(write_key)
            return

        integrations = compute_integrations(destinations, destination_preferences)
        is_anything_enabled = any(integrations[destination.id] for destination in destinations)

        # An already running library only picks up new preferences on reload.
        if self._backend.initialized:
            if should_reload:
                _logger.debug("Analytics already initialized; reloading to apply preferences")
                self._backend.reload()
            return

        if is_anything_enabled:
            _logger.debug(
                "Loading analytics for %s with %d enabled destinations",
                mask_write_key(write_key),
                sum(1 for d in destinations if integrations[d.id]),
            )
            self._backend.load(write_key, integrations)
        else:
            _logger.debug("No destinations enabled; analytics stays off")


class NullAnalyticsActivator:
    """Activator that only logs; used when no analytics backend is wired in."""

    def activate(
        self,
        *,
        write_key: str,
        destinations: Sequence[Destination],
        destination_preferences: Mapping[str, bool | None] | None,
        is_consent_required: bool,
        should_reload: bool = True,
    ) -> None:
        _logger.debug(
            "Analytics activation skipped for %s (%d destinations, consent_required=%s)",
            mask_write_key(write_key),
            len(destinations),
            is_consent_required,
        )
