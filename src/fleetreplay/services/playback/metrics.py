"""Prometheus metrics for track ingestion and playback."""

from __future__ import annotations

from prometheus_client import Counter, Gauge


_INGEST_SKIPPED_TOTAL = Counter(
    "fleetreplay_ingest_records_skipped_total",
    "Feature records dropped during track ingestion",
    labelnames=("reason",),
)
_INGEST_OBSERVATIONS_TOTAL = Counter(
    "fleetreplay_ingest_observations_total",
    "Observations accepted into track stores",
)
_PLAYBACK_TICKS_TOTAL = Counter(
    "fleetreplay_playback_ticks_total",
    "Playback ticks executed",
)
_PLAYBACK_UPDATES_TOTAL = Counter(
    "fleetreplay_playback_updates_total",
    "Entity updates emitted to the renderer",
)
_PLAYBACK_ACTIVE_ENTITIES = Gauge(
    "fleetreplay_playback_active_entities",
    "Entities in the store backing playback",
)


def record_ingest(accepted: int, skipped_by_reason: dict[str, int]) -> None:
    """Account accepted observations and skipped records of one ingest."""

    _INGEST_OBSERVATIONS_TOTAL.inc(max(accepted, 0))
    for reason, count in skipped_by_reason.items():
        if count > 0:
            _INGEST_SKIPPED_TOTAL.labels(reason=reason).inc(count)


def observe_tick(emitted: int, entity_count: int) -> None:
    _PLAYBACK_TICKS_TOTAL.inc()
    if emitted > 0:
        _PLAYBACK_UPDATES_TOTAL.inc(emitted)
    _PLAYBACK_ACTIVE_ENTITIES.set(max(entity_count, 0))


def reset_active_entities() -> None:
    _PLAYBACK_ACTIVE_ENTITIES.set(0)
