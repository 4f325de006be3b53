"""GeoJSON FeatureCollection parsing helpers.

Coordinates on the wire are ``[longitude, latitude]``; everything past this
module speaks ``GeoPosition`` (latitude first).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator, Mapping

from fleetreplay.services.playback.errors import ParseError
from fleetreplay.shared.models.track import GeoBounds, GeoPosition

logger = logging.getLogger(__name__)


def decode_feature_collection(raw: bytes | str, *, resource_id: str | None = None) -> dict[str, Any]:
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        payload = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ParseError(f"invalid JSON payload: {exc}", resource_id=resource_id) from exc
    return parse_feature_collection(payload, resource_id=resource_id)


def parse_feature_collection(payload: Any, *, resource_id: str | None = None) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ParseError("GeoJSON payload is not a JSON object", resource_id=resource_id)
    if payload.get("type") != "FeatureCollection":
        raise ParseError(
            f"expected FeatureCollection, got {payload.get('type')!r}",
            resource_id=resource_id,
        )
    features = payload.get("features")
    if not isinstance(features, list):
        raise ParseError("FeatureCollection has no features list", resource_id=resource_id)
    if not features:
        raise ParseError("FeatureCollection has no features", resource_id=resource_id)
    return payload


def iter_features(raw_features: Any) -> Iterator[Any]:
    """Yield feature records from a FeatureCollection or a plain iterable."""

    if raw_features is None:
        return
    if isinstance(raw_features, Mapping):
        features = raw_features.get("features")
        if raw_features.get("type") == "FeatureCollection" or isinstance(features, list):
            yield from features or ()
            return
        # a lone Feature
        yield raw_features
        return
    yield from raw_features


def _walk_coordinates(coordinates: Any) -> Iterator[list[Any]]:
    if not isinstance(coordinates, (list, tuple)) or not coordinates:
        return
    if isinstance(coordinates[0], (list, tuple)):
        for item in coordinates:
            yield from _walk_coordinates(item)
        return
    yield list(coordinates)


def geometry_positions(geometry: Any) -> Iterator[GeoPosition]:
    """Yield every valid position of a geometry, skipping invalid pairs."""

    if not isinstance(geometry, Mapping):
        return
    if geometry.get("type") == "GeometryCollection":
        for child in geometry.get("geometries") or ():
            yield from geometry_positions(child)
        return
    for pair in _walk_coordinates(geometry.get("coordinates")):
        try:
            yield GeoPosition.from_lnglat(pair)
        except ValueError:
            logger.debug("skipping invalid coordinate pair %r", pair)


def collection_bounds(raw_features: Any) -> GeoBounds | None:
    positions = (
        position
        for feature in iter_features(raw_features)
        if isinstance(feature, Mapping)
        for position in geometry_positions(feature.get("geometry"))
    )
    return GeoBounds.from_positions(positions)
