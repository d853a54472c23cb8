from __future__ import annotations

import pytest

from pyconsent.config import ConsentConfig
from pyconsent.exceptions import ConsentConfigError


def test_write_keys_primary_first() -> None:
    config = ConsentConfig(write_key="wk", other_write_keys=["wk2", "wk3"])  # type: ignore[arg-type]

    assert config.write_keys == ("wk", "wk2", "wk3")
    assert config.initial_preferences == {}


def test_empty_write_key_rejected() -> None:
    with pytest.raises(ConsentConfigError):
        ConsentConfig(write_key="  ")


def test_non_positive_timeout_rejected() -> None:
    with pytest.raises(ConsentConfigError):
        ConsentConfig(write_key="wk", fetch_timeout=0)


def test_from_env_reads_consent_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONSENT_WRITE_KEY", "env-wk")
    monkeypatch.setenv("CONSENT_OTHER_WRITE_KEYS", "a, b,,")
    monkeypatch.setenv("CONSENT_COOKIE_DOMAIN", "example.com")
    monkeypatch.setenv("CONSENT_CDN_HOST", "https://cdn.example.test/")
    monkeypatch.setenv("CONSENT_FETCH_TIMEOUT", "2.5")

    config = ConsentConfig.from_env()

    assert config.write_key == "env-wk"
    assert config.other_write_keys == ("a", "b")
    assert config.cookie_domain == "example.com"
    assert config.cdn_host == "https://cdn.example.test"
    assert config.fetch_timeout == 2.5


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONSENT_WRITE_KEY", "env-wk")
    monkeypatch.setenv("CONSENT_OTHER_WRITE_KEYS", "a")

    config = ConsentConfig.from_env(write_key="explicit", other_write_keys=(), initial_preferences={"x": True})

    assert config.write_key == "explicit"
    assert config.other_write_keys == ()
    assert config.initial_preferences == {"x": True}


def test_from_env_requires_write_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CONSENT_WRITE_KEY", raising=False)

    with pytest.raises(ConsentConfigError):
        ConsentConfig.from_env()


def test_from_env_bad_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONSENT_WRITE_KEY", "wk")
    monkeypatch.setenv("CONSENT_FETCH_TIMEOUT", "soon")

    with pytest.raises(ConsentConfigError):
        ConsentConfig.from_env()
