"""Consent manager configuration for pyconsent."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyconsent._constants import CDN_HOST
from pyconsent.exceptions import ConsentConfigError
from pyconsent.models.preferences import CategoryPreferences


def _env_list(value: str | None) -> tuple[str, ...]:
    if value is None:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclasses.dataclass(frozen=True)
class ConsentConfig:
    """Consent manager configuration.

    Parameters
    ----------
    write_key : str
        Write key of the primary source. Used for the catalog fetch and
        passed to the analytics loader.
    other_write_keys : tuple of str
        Additional write keys whose destinations also require consent.
    cookie_domain : str or None
        Domain the preference record is persisted under. ``None`` lets
        the store pick its own default.
    initial_preferences : dict
        Preferences exposed to a user who has no persisted record yet.
    cdn_host : str
        Base URL of the destination catalog CDN.
    fetch_timeout : float
        Total timeout in seconds for each catalog request.
    """

    write_key: str
    other_write_keys: tuple[str, ...] = ()
    cookie_domain: str | None = None
    initial_preferences: CategoryPreferences = dataclasses.field(default_factory=dict)
    cdn_host: str = CDN_HOST
    fetch_timeout: float = 10.0

    def __post_init__(self) -> None:
        if not isinstance(self.write_key, str) or not self.write_key.strip():
            raise ConsentConfigError("write_key must be a non-empty string")
        if any(not key for key in self.other_write_keys):
            raise ConsentConfigError("other_write_keys must not contain empty keys")
        if self.fetch_timeout <= 0:
            raise ConsentConfigError(f"fetch_timeout must be positive, got {self.fetch_timeout}")
        # Accept lists from callers; the dataclass is frozen so normalise in place.
        object.__setattr__(self, "other_write_keys", tuple(self.other_write_keys))
        object.__setattr__(self, "cdn_host", self.cdn_host.rstrip("/"))

    @property
    def write_keys(self) -> tuple[str, ...]:
        """Primary write key followed by the additional ones."""
        return (self.write_key, *self.other_write_keys)

    @classmethod
    def from_env(cls, **overrides: Any) -> ConsentConfig:
        """Create configuration from environment variables.

        Reads ``CONSENT_WRITE_KEY`` and the optional ``CONSENT_*``
        variables. Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        ConsentConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "CONSENT_WRITE_KEY": "write_key",
            "CONSENT_COOKIE_DOMAIN": "cookie_domain",
            "CONSENT_CDN_HOST": "cdn_host",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        other_keys_env = env.get("CONSENT_OTHER_WRITE_KEYS")
        if other_keys_env is not None and "other_write_keys" not in overrides:
            config_kwargs["other_write_keys"] = _env_list(other_keys_env)

        timeout_env = env.get("CONSENT_FETCH_TIMEOUT")
        if timeout_env is not None and "fetch_timeout" not in overrides:
            try:
                config_kwargs["fetch_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise ConsentConfigError(f"CONSENT_FETCH_TIMEOUT is not a number: {timeout_env!r}") from exc

        config_kwargs.update(overrides)
        if "write_key" not in config_kwargs:
            raise ConsentConfigError("CONSENT_WRITE_KEY is not set")

        return cls(**config_kwargs)
