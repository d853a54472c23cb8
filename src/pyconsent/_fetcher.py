"""Destination catalog fetcher backed by the CDN integrations endpoint."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from typing import Any, Protocol

import aiohttp
from pydantic import ValidationError

from pyconsent._constants import CDN_HOST, INTEGRATIONS_PATH, USER_AGENT
from pyconsent._redact import mask_write_key
from pyconsent.exceptions import ConsentTransportError
from pyconsent.models.destination import Destination

_logger = logging.getLogger(__name__)


class DestinationFetcher(Protocol):
    """Structural fetcher interface used by the consent manager.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`CdnDestinationFetcher`) concrete.
    """

    async def fetch(self, write_keys: Sequence[str]) -> list[Destination]:
        ...


def _parse_destinations(items: Any, write_key: str) -> list[Destination]:
    if not isinstance(items, list):
        raise ConsentTransportError(
            f"Integrations for write key {mask_write_key(write_key)} are not a list",
            write_key=write_key,
        )
    destinations: list[Destination] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            destinations.append(Destination.model_validate(item))
        except ValidationError:
            _logger.debug("Skipping destination without creationName: %r", item.get("name"))
    return destinations


def unique_destinations(destinations: Sequence[Destination]) -> list[Destination]:
    """Drop duplicate ids (first occurrence wins) and sort by id."""
    seen: dict[str, Destination] = {}
    for destination in destinations:
        seen.setdefault(destination.id, destination)
    return sorted(seen.values(), key=lambda destination: destination.id)


class CdnDestinationFetcher:
    """Fetch the destinations connected to a set of write keys.

    Usage::

        async with CdnDestinationFetcher() as fetcher:
            destinations = await fetcher.fetch(["writeKey"])
    """

    def __init__(
        self,
        *,
        cdn_host: str = CDN_HOST,
        timeout: float = 10.0,
        http_session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._cdn_host = cdn_host.rstrip("/")
        self._timeout = timeout
        self._external_session = http_session is not None
        self._http = http_session

    async def __aenter__(self) -> CdnDestinationFetcher:
        self._require_session()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
        self._http = None

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        return self._http

    async def _fetch_for_write_key(self, write_key: str) -> list[Destination]:
        http = self._require_session()
        url = f"{self._cdn_host}{INTEGRATIONS_PATH.format(write_key=write_key)}"
        headers = {"accept": "application/json", "user-agent": USER_AGENT}

        _logger.debug("GET integrations for write key %s", mask_write_key(write_key))

        try:
            async with http.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise ConsentTransportError(
                        f"Failed to fetch integrations for write key {mask_write_key(write_key)}: "
                        f"HTTP {resp.status} {text[:200]}",
                        status_code=resp.status,
                        write_key=write_key,
                    )
        except ConsentTransportError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ConsentTransportError(
                f"Request for write key {mask_write_key(write_key)} failed: {exc}",
                write_key=write_key,
            ) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConsentTransportError(
                f"Invalid JSON for write key {mask_write_key(write_key)}: {text[:200]}",
                write_key=write_key,
            ) from exc

        return _parse_destinations(body, write_key)

    async def fetch(self, write_keys: Sequence[str]) -> list[Destination]:
        """Fetch, flatten and de-duplicate destinations for *write_keys*."""
        results = await asyncio.gather(*(self._fetch_for_write_key(key) for key in write_keys))
        destinations = unique_destinations([d for batch in results for d in batch])
        _logger.debug("Fetched %d destinations for %d write keys", len(destinations), len(write_keys))
        return destinations
