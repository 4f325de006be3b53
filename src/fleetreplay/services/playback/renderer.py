"""Renderer interface and the in-process renderers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from fleetreplay.shared.models.track import EntityUpdate, GeoBounds, StaticLayer

logger = logging.getLogger(__name__)


class Renderer(ABC):
    """Map-side collaborator; owns all visual state."""

    @abstractmethod
    def upsert_entity(self, update: EntityUpdate) -> None:
        """Place or move the entity marker. Must be idempotent."""

    @abstractmethod
    def remove_all_entities(self) -> None:
        """Drop every entity marker."""

    def draw_layer(self, layer: StaticLayer) -> None:
        return None

    def remove_layer(self, layer_id: str) -> None:
        return None

    def fit_bounds(self, bounds: GeoBounds) -> None:
        return None


def describe_update(update: EntityUpdate) -> str:
    """Plain-text marker caption for an update."""

    name = update.label or update.entity_id
    lat, lng = update.position.as_latlng()
    parts = [f"{name} ({update.entity_id})", f"lat={lat:.5f}", f"lng={lng:.5f}", f"t={update.timestamp:g}"]
    parts.extend(f"{key}={value}" for key, value in sorted(update.attributes.items()))
    return " ".join(parts)


@dataclass
class RecordingRenderer(Renderer):
    """Keeps the latest update per entity and a log of commands."""

    entities: dict[str, EntityUpdate] = field(default_factory=dict)
    layers: dict[str, StaticLayer] = field(default_factory=dict)
    bounds: GeoBounds | None = None
    calls: list[tuple[str, Any]] = field(default_factory=list)

    def upsert_entity(self, update: EntityUpdate) -> None:
        self.calls.append(("upsert_entity", update))
        self.entities[update.entity_id] = update

    def remove_all_entities(self) -> None:
        self.calls.append(("remove_all_entities", None))
        self.entities.clear()

    def draw_layer(self, layer: StaticLayer) -> None:
        self.calls.append(("draw_layer", layer.layer_id))
        self.layers[layer.layer_id] = layer

    def remove_layer(self, layer_id: str) -> None:
        self.calls.append(("remove_layer", layer_id))
        self.layers.pop(layer_id, None)

    def fit_bounds(self, bounds: GeoBounds) -> None:
        self.calls.append(("fit_bounds", bounds))
        self.bounds = bounds

    def updates(self) -> list[EntityUpdate]:
        return [payload for name, payload in self.calls if name == "upsert_entity"]


class LoggingRenderer(Renderer):
    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger
        self.updates_seen = 0

    def upsert_entity(self, update: EntityUpdate) -> None:
        self.updates_seen += 1
        self._log.info("[cursor %d] %s", update.cursor, describe_update(update))

    def remove_all_entities(self) -> None:
        self._log.info("remove all entities")

    def draw_layer(self, layer: StaticLayer) -> None:
        self._log.info("draw %s layer %s (%d features)", layer.kind.value, layer.layer_id, len(layer.features))

    def remove_layer(self, layer_id: str) -> None:
        self._log.info("remove layer %s", layer_id)

    def fit_bounds(self, bounds: GeoBounds) -> None:
        self._log.info(
            "fit bounds south=%.5f west=%.5f north=%.5f east=%.5f",
            bounds.south,
            bounds.west,
            bounds.north,
            bounds.east,
        )
