"""Consent manager: reconciles stored preferences with the destination catalog."""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from pyconsent._fetcher import CdnDestinationFetcher, DestinationFetcher
from pyconsent._redact import mask_write_key, redact_for_log
from pyconsent.analytics import AnalyticsActivator, NullAnalyticsActivator
from pyconsent.config import ConsentConfig
from pyconsent.exceptions import ConsentError, ConsentInitializationError, ConsentNotReadyError
from pyconsent.mapping import CustomPreferenceMapper
from pyconsent.models.destination import Destination
from pyconsent.models.preferences import CategoryPreferences
from pyconsent.models.state import ConsentState
from pyconsent.reconcile import (
    destinations_without_consent,
    has_any_consent,
    is_undecided,
    merge_preferences,
)
from pyconsent.store import MemoryPreferenceStore, PreferenceStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")

ConsentPredicate = Callable[[], bool | Awaitable[bool]]
ErrorHandler = Callable[[ConsentInitializationError], None | Awaitable[None]]
PreferencesUpdate = Mapping[str, bool | None] | bool | None


def _always_require_consent() -> bool:
    return True


async def _join(*aws: Awaitable[Any]) -> list[Any]:
    """Run *aws* concurrently; the first failure cancels the rest and is raised."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


@dataclasses.dataclass(frozen=True, slots=True)
class RenderProps:
    """What the presentation layer receives once the manager is ready."""

    destinations: tuple[Destination, ...]
    new_destinations: tuple[Destination, ...]
    preferences: CategoryPreferences
    is_consent_required: bool
    set_preferences: Callable[[PreferencesUpdate], ConsentState]
    reset_preferences: Callable[[], ConsentState]
    save_consent: Callable[..., ConsentState]


Renderer = Callable[[RenderProps], Any]


class ConsentManager:
    """Own the consent state for one visitor.

    The manager loads the stored preference record, fetches the destination
    catalog and works out which destinations still need a decision. The
    presentation layer then edits preferences through :meth:`set_preferences`,
    discards edits with :meth:`reset_preferences` and commits them with
    :meth:`save_consent`.

    Usage::

        async with ConsentManager(config, store=store, activator=loader) as manager:
            state = await manager.initialize()
            manager.save_consent(True)
    """

    def __init__(
        self,
        config: ConsentConfig,
        *,
        store: PreferenceStore | None = None,
        fetcher: DestinationFetcher | None = None,
        activator: AnalyticsActivator | None = None,
        should_require_consent: ConsentPredicate | None = None,
        preference_mapper: CustomPreferenceMapper | None = None,
        on_error: ErrorHandler | None = None,
        renderer: Renderer | None = None,
    ) -> None:
        self._config = config
        self._store: PreferenceStore = store if store is not None else MemoryPreferenceStore()
        self._owns_fetcher = fetcher is None
        self._fetcher: DestinationFetcher = (
            fetcher
            if fetcher is not None
            else CdnDestinationFetcher(cdn_host=config.cdn_host, timeout=config.fetch_timeout)
        )
        self._activator: AnalyticsActivator = activator if activator is not None else NullAnalyticsActivator()
        self._should_require_consent = should_require_consent or _always_require_consent
        self._preference_mapper = preference_mapper
        self._on_error = on_error
        self._renderer = renderer
        self._state = ConsentState()
        self._initialize_started = False
        self._closed = False
        _logger.debug("Consent manager configured: %s", redact_for_log(dataclasses.asdict(config)))

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ConsentManager:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Tear down; a pending initialization will not be applied afterwards."""
        self._closed = True
        if self._owns_fetcher and isinstance(self._fetcher, CdnDestinationFetcher):
            await self._fetcher.close()

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConsentState:
        """A copy of the latest committed snapshot."""
        return self._state.model_copy(deep=True)

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def closed(self) -> bool:
        return self._closed

    def _require_ready(self) -> ConsentState:
        if self._closed:
            raise ConsentNotReadyError("Consent manager is closed")
        if self._state.is_loading:
            raise ConsentNotReadyError("Consent manager is not initialized. Await 'initialize()' first.")
        return self._state

    def _commit(self, state: ConsentState, *, render: bool = True) -> ConsentState:
        """Replace the snapshot and return a copy, so callers cannot mutate committed state."""
        self._state = state
        _logger.debug(
            "Committed consent state: %d destinations, %d new, %d preferences",
            len(state.destinations),
            len(state.new_destinations),
            len(state.preferences),
        )
        if render:
            self._render_committed()
        return state.model_copy(deep=True)

    def _render_committed(self) -> None:
        if self._renderer is not None and not self._state.is_loading:
            self._renderer(self._render_props(self._state))

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def initialize(self) -> ConsentState | None:
        """Load, fetch and reconcile; returns the ready state.

        With an ``on_error`` handler, failures are routed to it and ``None``
        is returned; the manager then stays loading for good. Without one
        the :class:`ConsentInitializationError` propagates.
        """
        if self._initialize_started:
            raise ConsentError("Consent manager can only be initialized once")
        self._initialize_started = True

        if self._on_error is None:
            return await self._initialise()
        try:
            return await self._initialise()
        except ConsentInitializationError as exc:
            _logger.debug("Consent manager initialization failed; routing to error handler", exc_info=True)
            result = self._on_error(exc)
            if inspect.isawaitable(result):
                await result
            return None

    async def _resolve_consent_required(self) -> bool:
        result = self._should_require_consent()
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    async def _initialise(self) -> ConsentState | None:
        config = self._config
        try:
            record = self._store.load()
            # A missing record is an empty mapping: everything is new and
            # analytics gets an all-off integrations filter.
            destination_preferences: CategoryPreferences = (
                record.destination_preferences if record.destination_preferences is not None else {}
            )
            custom_preferences = record.custom_preferences

            is_consent_required, destinations = await _join(
                self._resolve_consent_required(),
                self._fetcher.fetch(config.write_keys),
            )

            if self._closed:
                _logger.debug("Consent manager closed during initialization; discarding result")
                return None

            new_destinations = destinations_without_consent(destinations, destination_preferences)

            preferences: CategoryPreferences
            if self._preference_mapper is not None:
                preferences = dict(
                    custom_preferences if custom_preferences is not None else config.initial_preferences
                )
                # A first visit with opted-in defaults: derive destination
                # preferences from the defaults, but only persist on save.
                if has_any_consent(config.initial_preferences) and is_undecided(custom_preferences):
                    mapped = self._preference_mapper(destinations, dict(preferences))
                    destination_preferences = mapped.destination_preferences
                    custom_preferences = mapped.custom_preferences
            else:
                # Initial preferences only surface through reset_preferences.
                preferences = dict(destination_preferences)

            self._activator.activate(
                write_key=config.write_key,
                destinations=destinations,
                destination_preferences=destination_preferences,
                is_consent_required=is_consent_required,
            )
        except Exception as exc:
            raise ConsentInitializationError(
                f"Consent manager initialization failed: {type(exc).__name__}: {exc}"
            ) from exc

        _logger.debug(
            "Initialized consent for %s (consent_required=%s)",
            mask_write_key(config.write_key),
            is_consent_required,
        )
        loading = self._state
        ready = self._commit(
            loading.evolve(
                is_loading=False,
                destinations=destinations,
                new_destinations=new_destinations,
                preferences=preferences,
                destination_preferences=destination_preferences,
                custom_preferences=custom_preferences,
                is_consent_required=is_consent_required,
            ),
            render=False,
        )
        try:
            self._render_committed()
        except Exception as exc:
            # The first render is part of becoming ready.
            self._state = loading
            raise ConsentInitializationError(
                f"Consent manager initialization failed: {type(exc).__name__}: {exc}"
            ) from exc
        return ready

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_preferences(self, new_preferences: PreferencesUpdate) -> ConsentState:
        """Merge *new_preferences* into the in-memory preferences only."""
        state = self._require_ready()
        preferences = merge_preferences(state.destinations, state.preferences, new_preferences)
        return self._commit(state.evolve(preferences=preferences))

    def reset_preferences(self) -> ConsentState:
        """Drop unsaved edits by re-reading the preference store."""
        state = self._require_ready()
        record = self._store.load()
        stored = record.custom_preferences if self._preference_mapper is not None else record.destination_preferences
        preferences = stored if stored is not None else self._config.initial_preferences
        return self._commit(state.evolve(preferences=dict(preferences)))

    def save_consent(self, new_preferences: PreferencesUpdate = None, should_reload: bool = True) -> ConsentState:
        """Merge, persist and activate analytics for the resulting preferences.

        Without *new_preferences* whatever is currently in memory is saved.
        """
        state = self._require_ready()
        preferences = merge_preferences(state.destinations, state.preferences, new_preferences)

        destination_preferences: CategoryPreferences
        custom_preferences: CategoryPreferences | None = None
        if self._preference_mapper is not None:
            mapped = self._preference_mapper(state.destinations, preferences)
            destination_preferences = dict(mapped.destination_preferences)
            if mapped.custom_preferences is not None:
                preferences = dict(mapped.custom_preferences)
            custom_preferences = preferences
        else:
            destination_preferences = preferences

        new_destinations = destinations_without_consent(state.destinations, destination_preferences)

        self._store.save(
            destination_preferences=destination_preferences,
            custom_preferences=custom_preferences,
            cookie_domain=self._config.cookie_domain,
        )
        try:
            self._activator.activate(
                write_key=self._config.write_key,
                destinations=state.destinations,
                destination_preferences=destination_preferences,
                is_consent_required=state.is_consent_required,
                should_reload=should_reload,
            )
        except Exception:
            _logger.warning("Analytics activation failed after saving consent", exc_info=True)

        return self._commit(
            state.evolve(
                preferences=preferences,
                destination_preferences=destination_preferences,
                custom_preferences=custom_preferences,
                new_destinations=new_destinations,
            )
        )

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def _render_props(self, state: ConsentState) -> RenderProps:
        return RenderProps(
            destinations=state.destinations,
            new_destinations=state.new_destinations,
            preferences=dict(state.preferences),
            is_consent_required=state.is_consent_required,
            set_preferences=self.set_preferences,
            reset_preferences=self.reset_preferences,
            save_consent=self.save_consent,
        )

    def render(self, renderer: Callable[[RenderProps], T] | None = None) -> T | RenderProps | None:
        """Hand the current state to *renderer* (or the configured one).

        Returns ``None`` while loading. Without any renderer the props
        themselves are returned.
        """
        if self._state.is_loading:
            return None
        props = self._render_props(self._state)
        target = renderer or self._renderer
        if target is None:
            return props
        return target(props)
