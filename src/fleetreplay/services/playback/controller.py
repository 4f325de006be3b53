"""Dataset toggles wired to the track store, playback engine and renderer."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fleetreplay.services.playback.data_source import FeatureSource
from fleetreplay.services.playback.engine import PlaybackEngine
from fleetreplay.services.playback.errors import UnknownDatasetError
from fleetreplay.services.playback.renderer import Renderer
from fleetreplay.services.playback.track_store import TrackStore
from fleetreplay.shared.config.loaders import DatasetConfig, PlaybackSettings
from fleetreplay.shared.geojson import collection_bounds, iter_features
from fleetreplay.shared.models.track import LayerKind, StaticLayer

logger = logging.getLogger(__name__)


class PlaybackController:
    """Turns datasets on and off.

    Track datasets are merged into one store that feeds the engine; route and
    point datasets become static renderer layers. Fetch and ingest failures
    propagate and leave the current playback untouched.
    """

    def __init__(
        self,
        source: FeatureSource,
        renderer: Renderer,
        engine: PlaybackEngine,
        settings: PlaybackSettings,
    ) -> None:
        self._source = source
        self._renderer = renderer
        self._engine = engine
        self._settings = settings
        self._lock = asyncio.Lock()
        self._track_data: dict[str, Any] = {}
        self._static_layers: set[str] = set()
        self._store = TrackStore()

    @property
    def store(self) -> TrackStore:
        return self._store

    @property
    def engine(self) -> PlaybackEngine:
        return self._engine

    @property
    def active_datasets(self) -> list[str]:
        return sorted([*self._track_data, *self._static_layers])

    def _dataset(self, resource_id: str) -> DatasetConfig:
        dataset = self._settings.dataset(resource_id)
        if dataset is None:
            raise UnknownDatasetError(resource_id)
        return dataset

    def _build_store(self, track_data: dict[str, Any]) -> TrackStore:
        parts = [
            (track_data[resource_id], self._dataset(resource_id).feature_schema)
            for resource_id in sorted(track_data)
        ]
        return TrackStore().ingest_datasets(parts)

    async def toggle_on(self, resource_id: str) -> None:
        async with self._lock:
            dataset = self._dataset(resource_id)
            if resource_id in self._track_data or resource_id in self._static_layers:
                logger.debug("dataset %s already active", resource_id)
                return
            collection = await self._source.fetch_feature_collection(resource_id)

            if dataset.kind is LayerKind.TRACKS:
                candidate = dict(self._track_data)
                candidate[resource_id] = collection
                store = self._build_store(candidate)
                if self._engine.is_running:
                    self._engine.reload(store)
                else:
                    self._engine.start(store, self._renderer, self._settings.interval_ms)
                self._track_data = candidate
                self._store = store
                bounds = store.bounds()
            else:
                layer = StaticLayer(
                    layer_id=resource_id,
                    kind=dataset.kind,
                    features=list(iter_features(collection)),
                )
                self._renderer.draw_layer(layer)
                self._static_layers.add(resource_id)
                bounds = collection_bounds(collection)

            if bounds is not None:
                self._renderer.fit_bounds(bounds)
            logger.info("dataset %s (%s) on", resource_id, dataset.kind.value)

    async def toggle_off(self, resource_id: str) -> None:
        async with self._lock:
            if resource_id in self._static_layers:
                self._static_layers.discard(resource_id)
                self._renderer.remove_layer(resource_id)
                logger.info("dataset %s off", resource_id)
                return
            if resource_id not in self._track_data:
                logger.debug("dataset %s not active", resource_id)
                return

            remaining = {key: value for key, value in self._track_data.items() if key != resource_id}
            if not remaining:
                self._engine.stop()
                self._renderer.remove_all_entities()
                self._track_data = {}
                self._store.clear()
            else:
                store = self._build_store(remaining)
                self._renderer.remove_all_entities()
                self._engine.reload(store)
                self._track_data = remaining
                self._store = store
            logger.info("dataset %s off", resource_id)

    async def close(self) -> None:
        async with self._lock:
            self._engine.stop()
            if self._track_data:
                self._renderer.remove_all_entities()
            for layer_id in sorted(self._static_layers):
                self._renderer.remove_layer(layer_id)
            self._track_data = {}
            self._static_layers = set()
            self._store.clear()
