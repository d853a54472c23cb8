from __future__ import annotations

import json
from pathlib import Path
from urllib.parse import quote

import pytest

from pyconsent.exceptions import ConsentStoreError
from pyconsent.models.preferences import PreferenceRecord
from pyconsent.store import CookiePreferenceStore, JsonFilePreferenceStore, MemoryPreferenceStore


def test_memory_store_overwrites_record() -> None:
    store = MemoryPreferenceStore(PreferenceRecord(destination_preferences={"a": True, "b": False}))

    store.save(destination_preferences={"c": True}, cookie_domain="example.com")

    record = store.load()
    assert record.destination_preferences == {"c": True}
    assert record.custom_preferences is None
    assert store.cookie_domain == "example.com"
    assert len(store.saves) == 1


def test_empty_record_defaults() -> None:
    record = MemoryPreferenceStore().load()

    assert record.is_empty
    assert record.destination_preferences is None


def test_record_rejects_non_bool_values() -> None:
    with pytest.raises(ValueError):
        PreferenceRecord.model_validate({"destinations": {"a": "yes"}})


def test_json_file_store_missing_file_is_empty(tmp_path: Path) -> None:
    store = JsonFilePreferenceStore(tmp_path / "prefs.json")

    assert store.load().is_empty


def test_json_file_store_writes_wire_format(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "prefs.json"
    store = JsonFilePreferenceStore(path)

    store.save(destination_preferences={"a": True}, custom_preferences={"functional": False})

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "version": 1,
        "destinations": {"a": True},
        "custom": {"functional": False},
    }
    record = store.load()
    assert record.destination_preferences == {"a": True}
    assert record.custom_preferences == {"functional": False}


def test_json_file_store_corrupt_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "prefs.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConsentStoreError):
        JsonFilePreferenceStore(path).load()


def test_cookie_store_reads_request_cookie() -> None:
    value = quote(json.dumps({"version": 1, "destinations": {"Mixpanel": True}}), safe="")
    store = CookiePreferenceStore(f"session=abc; tracking-preferences={value}")

    record = store.load()

    assert record.destination_preferences == {"Mixpanel": True}


def test_cookie_store_ignores_undecodable_cookie() -> None:
    store = CookiePreferenceStore("tracking-preferences=garbage")

    assert store.load().is_empty


def test_cookie_store_renders_set_cookie_and_reloads() -> None:
    store = CookiePreferenceStore()

    store.save(
        destination_preferences={"Google Analytics": False},
        custom_preferences={"advertising": False},
        cookie_domain="example.com",
    )

    header = store.set_cookie_header
    assert header is not None
    assert header.startswith("tracking-preferences=")
    assert "Domain=example.com" in header
    assert "Path=/" in header
    assert "Max-Age=31536000" in header
    assert store.load().destination_preferences == {"Google Analytics": False}

    reloaded = CookiePreferenceStore(header.split(";", 1)[0])
    assert reloaded.load().custom_preferences == {"advertising": False}
