"""Feature collection sources: local files and HTTP endpoints."""

from __future__ import annotations

import asyncio
import logging
from http.client import HTTPException
from pathlib import Path
from typing import Any, Mapping, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from fleetreplay.services.playback.errors import NetworkError
from fleetreplay.shared.geojson import decode_feature_collection

logger = logging.getLogger(__name__)

DEFAULT_HTTP_TIMEOUT_S = 10.0


class FeatureSource(Protocol):
    async def fetch_feature_collection(self, resource_id: str) -> dict[str, Any]:
        """Return the raw FeatureCollection for ``resource_id``.

        Raises ``NetworkError`` or ``ParseError``.
        """


def _validated_url(raw: str) -> str:
    url = str(raw or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"}:
        raise ValueError(f"feature URL scheme must be http or https, got: {parsed.scheme!r}")
    if not parsed.netloc:
        raise ValueError("feature URL must include host[:port]")
    return url


class FileFeatureSource:
    """Reads GeoJSON files named by resource id."""

    def __init__(self, locations: Mapping[str, str | Path]) -> None:
        self._locations = {key: Path(value) for key, value in locations.items()}

    async def fetch_feature_collection(self, resource_id: str) -> dict[str, Any]:
        path = self._locations.get(resource_id)
        if path is None:
            raise NetworkError(f"no location configured for {resource_id!r}", resource_id=resource_id)
        try:
            raw = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise NetworkError(f"cannot read {path}: {exc}", resource_id=resource_id) from exc
        collection = decode_feature_collection(raw, resource_id=resource_id)
        logger.info("loaded %s from %s (%d features)", resource_id, path, len(collection["features"]))
        return collection


class HttpFeatureSource:
    """Fetches GeoJSON over HTTP(S) without blocking the event loop."""

    def __init__(self, locations: Mapping[str, str], *, timeout_s: float = DEFAULT_HTTP_TIMEOUT_S) -> None:
        self._locations = {key: _validated_url(value) for key, value in locations.items()}
        self._timeout_s = float(timeout_s)

    def _fetch_blocking(self, url: str) -> bytes:
        request = Request(url, headers={"Accept": "application/geo+json, application/json"})
        with urlopen(request, timeout=self._timeout_s) as resp:
            return resp.read()

    async def fetch_feature_collection(self, resource_id: str) -> dict[str, Any]:
        url = self._locations.get(resource_id)
        if url is None:
            raise NetworkError(f"no location configured for {resource_id!r}", resource_id=resource_id)
        try:
            raw = await asyncio.to_thread(self._fetch_blocking, url)
        except HTTPError as exc:
            raise NetworkError(f"{url} answered HTTP {exc.code}", resource_id=resource_id) from exc
        except (URLError, TimeoutError, OSError, HTTPException) as exc:
            raise NetworkError(f"{url} unreachable: {exc}", resource_id=resource_id) from exc
        collection = decode_feature_collection(raw, resource_id=resource_id)
        logger.info("fetched %s from %s (%d features)", resource_id, url, len(collection["features"]))
        return collection


class CatalogFeatureSource:
    """Routes each resource id to the file or HTTP source by its location."""

    def __init__(self, locations: Mapping[str, str], *, timeout_s: float = DEFAULT_HTTP_TIMEOUT_S) -> None:
        remote = {key: value for key, value in locations.items() if "://" in value}
        local = {key: value for key, value in locations.items() if "://" not in value}
        self._http = HttpFeatureSource(remote, timeout_s=timeout_s)
        self._files = FileFeatureSource(local)
        self._remote_ids = frozenset(remote)

    async def fetch_feature_collection(self, resource_id: str) -> dict[str, Any]:
        if resource_id in self._remote_ids:
            return await self._http.fetch_feature_collection(resource_id)
        return await self._files.fetch_feature_collection(resource_id)
