"""Fixed-cadence playback of per-entity tracks.

A single cursor indexes the Nth sample of every track. Each tick emits one
``EntityUpdate`` per entity whose track is long enough, then advances the
cursor and wraps it at the longest track. Entities with shorter tracks stay
at their last rendered position until the wrap.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from fleetreplay.services.playback import metrics
from fleetreplay.services.playback.renderer import Renderer
from fleetreplay.services.playback.scheduler import Scheduler, TimerHandle, ensure_scheduler
from fleetreplay.services.playback.track_store import TrackStore
from fleetreplay.shared.config.loaders import DEFAULT_INTERVAL_MS
from fleetreplay.shared.models.track import EntityUpdate

logger = logging.getLogger(__name__)


class PlaybackState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class PlaybackEngine:
    """Idle/Running state machine around one repeating timer.

    ``start``, ``stop`` and ``reload`` are the only entry points that mutate
    state; at most one timer is ever pending.
    """

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        *,
        default_interval_ms: int = DEFAULT_INTERVAL_MS,
    ) -> None:
        if default_interval_ms <= 0:
            raise ValueError("default_interval_ms must be > 0")
        self._scheduler = scheduler
        self._active_scheduler: Optional[Scheduler] = None
        self._default_interval_ms = int(default_interval_ms)
        self._interval_ms = self._default_interval_ms
        self._state = PlaybackState.IDLE
        self._cursor = 0
        self._store: Optional[TrackStore] = None
        self._renderer: Optional[Renderer] = None
        self._handle: Optional[TimerHandle] = None
        # bumped on every start/stop; stale timer callbacks compare against it
        self._generation = 0
        self._tick_count = 0

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is PlaybackState.RUNNING

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def store(self) -> Optional[TrackStore]:
        return self._store

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def start(self, store: TrackStore, renderer: Renderer, interval_ms: int | None = None) -> None:
        interval = self._default_interval_ms if interval_ms is None else int(interval_ms)
        if interval <= 0:
            raise ValueError("interval_ms must be > 0")
        scheduler = ensure_scheduler(self._scheduler)

        self.stop()
        self._active_scheduler = scheduler
        self._store = store
        self._renderer = renderer
        self._interval_ms = interval
        self._cursor = 0
        self._tick_count = 0
        self._state = PlaybackState.RUNNING
        self._generation += 1
        self._schedule(self._generation)
        logger.info(
            "playback started: entities=%d max_length=%d interval_ms=%d",
            len(store),
            store.max_length(),
            interval,
        )

    def stop(self) -> None:
        if self._state is PlaybackState.IDLE:
            return
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._state = PlaybackState.IDLE
        self._cursor = 0
        self._active_scheduler = None
        metrics.reset_active_entities()
        logger.info("playback stopped after %d ticks", self._tick_count)

    def reload(self, store: TrackStore) -> None:
        """Swap the backing store; cursor and timer are left alone."""

        self._store = store
        if self._state is PlaybackState.RUNNING:
            logger.info(
                "playback store reloaded: entities=%d max_length=%d cursor=%d",
                len(store),
                store.max_length(),
                self._cursor,
            )
        else:
            logger.debug("store recorded while idle; takes effect on start")

    def _schedule(self, generation: int) -> None:
        assert self._active_scheduler is not None
        self._handle = self._active_scheduler.call_later(
            self._interval_ms / 1000.0, lambda: self._on_timer(generation)
        )

    def _on_timer(self, generation: int) -> None:
        if generation != self._generation or self._state is not PlaybackState.RUNNING:
            return
        self._handle = None
        try:
            self._tick(generation)
        finally:
            # the next tick is armed only after this one's body returned
            if generation == self._generation and self._state is PlaybackState.RUNNING:
                self._schedule(generation)

    def _tick(self, generation: int) -> None:
        store = self._store
        renderer = self._renderer
        self._tick_count += 1
        max_length = store.max_length() if store is not None else 0
        if store is None or renderer is None or max_length == 0:
            self._cursor = 0
            metrics.observe_tick(0, 0)
            return

        # a reload may have shrunk the longest track below the cursor
        if self._cursor >= max_length:
            self._cursor = 0
        cursor = self._cursor

        emitted = 0
        for entity_id in store.entity_ids():
            if generation != self._generation:
                # renderer stopped or restarted playback mid-tick
                break
            track = store.track_of(entity_id)
            if cursor >= len(track):
                continue
            sample = track[cursor]
            update = EntityUpdate(
                entity_id=entity_id,
                position=sample.position,
                label=track.label_at(cursor),
                timestamp=sample.timestamp,
                cursor=cursor,
                attributes=dict(sample.attributes),
            )
            try:
                renderer.upsert_entity(update)
            except Exception as exc:
                logger.warning("renderer failed for entity %s: %s", entity_id, exc, exc_info=True)
                continue
            emitted += 1

        metrics.observe_tick(emitted, len(store))
        if generation != self._generation:
            return
        self._cursor = cursor + 1
        if self._cursor >= max_length:
            self._cursor = 0
