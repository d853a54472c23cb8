from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import aiohttp
import pytest

from pyconsent._fetcher import CdnDestinationFetcher, unique_destinations
from pyconsent.exceptions import ConsentTransportError
from pyconsent.models.destination import Destination

CDN = "https://cdn.example.test"


@dataclass
class FakeResponse:
    status: int
    body: str

    async def text(self) -> str:
        return self.body


class _RequestContext:
    def __init__(self, outcome: FakeResponse | Exception) -> None:
        self._outcome = outcome

    async def __aenter__(self) -> FakeResponse:
        if isinstance(self._outcome, Exception):
            raise self._outcome
        return self._outcome

    async def __aexit__(self, *exc: Any) -> None:
        return None


@dataclass
class FakeHttpSession:
    outcomes: dict[str, FakeResponse | Exception]
    requested: list[str] = field(default_factory=list)
    closed: bool = False

    def get(self, url: str, **_kwargs: Any) -> _RequestContext:
        self.requested.append(url)
        return _RequestContext(self.outcomes[url])

    async def close(self) -> None:
        self.closed = True


def _url(write_key: str) -> str:
    return f"{CDN}/v1/projects/{write_key}/integrations"


def _ok(items: list[dict[str, Any]]) -> FakeResponse:
    return FakeResponse(status=200, body=json.dumps(items))


def _fetcher(session: FakeHttpSession) -> CdnDestinationFetcher:
    return CdnDestinationFetcher(cdn_host=CDN + "/", http_session=session)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_fetch_flattens_dedupes_and_sorts() -> None:
    session = FakeHttpSession(
        outcomes={
            _url("wk1"): _ok(
                [
                    {"creationName": "Mixpanel", "name": "Mixpanel", "category": "Analytics"},
                    {"creationName": "Google Analytics", "name": "Google Analytics", "category": "Analytics"},
                ]
            ),
            _url("wk2"): _ok(
                [
                    {"creationName": "Mixpanel", "name": "Mixpanel (dup)", "category": "Analytics"},
                    {"creationName": "AdRoll", "name": "AdRoll", "category": "Advertising", "logo": "x.png"},
                ]
            ),
        }
    )

    destinations = await _fetcher(session).fetch(["wk1", "wk2"])

    assert [d.id for d in destinations] == ["AdRoll", "Google Analytics", "Mixpanel"]
    assert destinations[2].name == "Mixpanel"
    assert destinations[0].model_extra == {"logo": "x.png"}
    assert sorted(session.requested) == [_url("wk1"), _url("wk2")]


@pytest.mark.asyncio
async def test_fetch_skips_items_without_creation_name() -> None:
    session = FakeHttpSession(outcomes={_url("wk"): _ok([{"name": "nameless"}, "junk", {"creationName": "Hotjar"}])})

    destinations = await _fetcher(session).fetch(["wk"])

    assert [d.id for d in destinations] == ["Hotjar"]


@pytest.mark.asyncio
async def test_fetch_non_200_raises_transport_error() -> None:
    session = FakeHttpSession(outcomes={_url("wk"): FakeResponse(status=404, body="not found")})

    with pytest.raises(ConsentTransportError) as exc_info:
        await _fetcher(session).fetch(["wk"])

    assert exc_info.value.status_code == 404
    assert exc_info.value.write_key == "wk"


@pytest.mark.asyncio
async def test_fetch_invalid_json_raises_transport_error() -> None:
    session = FakeHttpSession(outcomes={_url("wk"): FakeResponse(status=200, body="<html>")})

    with pytest.raises(ConsentTransportError, match="Invalid JSON"):
        await _fetcher(session).fetch(["wk"])


@pytest.mark.asyncio
async def test_fetch_non_list_body_raises_transport_error() -> None:
    session = FakeHttpSession(outcomes={_url("wk"): FakeResponse(status=200, body='{"error": "x"}')})

    with pytest.raises(ConsentTransportError, match="not a list"):
        await _fetcher(session).fetch(["wk"])


@pytest.mark.asyncio
async def test_fetch_client_error_is_wrapped() -> None:
    cause = aiohttp.ClientConnectionError("connection refused")
    session = FakeHttpSession(outcomes={_url("wk"): cause})

    with pytest.raises(ConsentTransportError) as exc_info:
        await _fetcher(session).fetch(["wk"])

    assert exc_info.value.__cause__ is cause


@pytest.mark.asyncio
async def test_external_session_is_not_closed() -> None:
    session = FakeHttpSession(outcomes={})

    async with _fetcher(session):
        pass

    assert session.closed is False


def test_unique_destinations_first_occurrence_wins() -> None:
    destinations = [
        Destination(id="b", name="first"),
        Destination(id="a"),
        Destination(id="b", name="second"),
    ]

    result = unique_destinations(destinations)

    assert [(d.id, d.name) for d in result] == [("a", ""), ("b", "first")]
