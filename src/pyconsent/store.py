"""Preference stores.

A store reads and overwrites the durable preference record. The consent
manager never merges into a store: every save carries the full record.
"""

from __future__ import annotations

import json
import logging
import os
from http.cookies import CookieError, SimpleCookie
from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote

from pydantic import ValidationError

from pyconsent._constants import COOKIE_MAX_AGE_SECONDS, COOKIE_NAME
from pyconsent.exceptions import ConsentStoreError
from pyconsent.models.preferences import CategoryPreferences, PreferenceRecord

_logger = logging.getLogger(__name__)


class PreferenceStore(Protocol):
    """Structural interface for preference persistence."""

    def load(self) -> PreferenceRecord:
        ...

    def save(
        self,
        *,
        destination_preferences: CategoryPreferences,
        custom_preferences: CategoryPreferences | None = None,
        cookie_domain: str | None = None,
    ) -> None:
        ...


def _build_record(
    destination_preferences: CategoryPreferences,
    custom_preferences: CategoryPreferences | None,
) -> PreferenceRecord:
    return PreferenceRecord(
        destination_preferences=dict(destination_preferences),
        custom_preferences=dict(custom_preferences) if custom_preferences is not None else None,
    )


class MemoryPreferenceStore:
    """In-process store; keeps every saved record for inspection."""

    def __init__(self, record: PreferenceRecord | None = None) -> None:
        self._record = record or PreferenceRecord()
        self.saves: list[PreferenceRecord] = []
        self.cookie_domain: str | None = None

    def load(self) -> PreferenceRecord:
        return self._record

    def save(
        self,
        *,
        destination_preferences: CategoryPreferences,
        custom_preferences: CategoryPreferences | None = None,
        cookie_domain: str | None = None,
    ) -> None:
        self._record = _build_record(destination_preferences, custom_preferences)
        self.cookie_domain = cookie_domain
        self.saves.append(self._record)


class JsonFilePreferenceStore:
    """Store the record as a JSON document on disk.

    A missing file is an empty record. A file that exists but does not
    decode raises :class:`ConsentStoreError`.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> PreferenceRecord:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return PreferenceRecord()
        except OSError as exc:
            raise ConsentStoreError(f"Cannot read preference record {self._path}: {exc}") from exc

        if not text.strip():
            return PreferenceRecord()
        try:
            return PreferenceRecord.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ConsentStoreError(f"Preference record {self._path} is invalid: {exc}") from exc

    def save(
        self,
        *,
        destination_preferences: CategoryPreferences,
        custom_preferences: CategoryPreferences | None = None,
        cookie_domain: str | None = None,
    ) -> None:
        record = _build_record(destination_preferences, custom_preferences)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(record.to_wire(), separators=(",", ":")), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise ConsentStoreError(f"Cannot write preference record {self._path}: {exc}") from exc
        _logger.debug("Saved preference record to %s", self._path)


class CookiePreferenceStore:
    """Read the record from a request ``Cookie`` header and render ``Set-Cookie`` on save.

    The cookie value is the URL-quoted JSON record. A cookie that fails to
    decode is treated as no record at all.
    """

    def __init__(self, cookie_header: str = "", *, cookie_name: str = COOKIE_NAME) -> None:
        self._cookie_name = cookie_name
        self._value: str | None = None
        self.set_cookie_header: str | None = None

        cookie: SimpleCookie = SimpleCookie()
        try:
            cookie.load(cookie_header)
        except CookieError:
            _logger.debug("Ignoring malformed Cookie header")
            return
        morsel = cookie.get(cookie_name)
        if morsel is not None:
            self._value = morsel.value

    def load(self) -> PreferenceRecord:
        if not self._value:
            return PreferenceRecord()
        try:
            return PreferenceRecord.model_validate(json.loads(unquote(self._value)))
        except (json.JSONDecodeError, ValidationError):
            _logger.debug("Ignoring undecodable %s cookie", self._cookie_name, exc_info=True)
            return PreferenceRecord()

    def save(
        self,
        *,
        destination_preferences: CategoryPreferences,
        custom_preferences: CategoryPreferences | None = None,
        cookie_domain: str | None = None,
    ) -> None:
        record = _build_record(destination_preferences, custom_preferences)
        value = quote(json.dumps(record.to_wire(), separators=(",", ":")), safe="")

        cookie: SimpleCookie = SimpleCookie()
        cookie[self._cookie_name] = value
        morsel = cookie[self._cookie_name]
        morsel["path"] = "/"
        morsel["max-age"] = str(COOKIE_MAX_AGE_SECONDS)
        morsel["samesite"] = "Lax"
        if cookie_domain:
            morsel["domain"] = cookie_domain

        self._value = value
        self.set_cookie_header = morsel.OutputString()
        _logger.debug("Rendered %s cookie (domain=%s)", self._cookie_name, cookie_domain)
