"""Per-entity, time-ordered track storage built from raw point features."""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence, overload

from fleetreplay.services.playback import metrics
from fleetreplay.services.playback.errors import (
    EmptyDatasetError,
    MalformedRecordError,
    UnknownEntityError,
)
from fleetreplay.shared.config.loaders import FeatureSchema
from fleetreplay.shared.geojson import iter_features
from fleetreplay.shared.models.track import GeoBounds, GeoPosition, Observation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestReport:
    accepted: int = 0
    skipped: int = 0
    entities: int = 0
    reasons: dict[str, int] = field(default_factory=dict)


def _entity_id(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _timestamp(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _label(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def validate_feature(
    feature: Any, schema: FeatureSchema, *, seq: int = 0
) -> tuple[Optional[Observation], str]:
    """Return ``(observation, "OK")`` or ``(None, reason)`` for one record."""

    if not isinstance(feature, Mapping):
        return None, "NOT_A_FEATURE"
    properties = feature.get("properties")
    if not isinstance(properties, Mapping):
        properties = {}

    entity_id = _entity_id(properties.get(schema.entity_id_key))
    if entity_id is None:
        return None, "MISSING_ENTITY_ID"
    timestamp = _timestamp(properties.get(schema.time_key))
    if timestamp is None:
        return None, "INVALID_TIMESTAMP"

    geometry = feature.get("geometry")
    if not isinstance(geometry, Mapping) or geometry.get("type") != "Point":
        return None, "UNSUPPORTED_GEOMETRY"
    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) < 2:
        return None, "MISSING_POSITION"
    try:
        position = GeoPosition.from_lnglat(coordinates)
    except ValueError:
        return None, "INVALID_POSITION"

    label = _label(properties.get(schema.label_key)) if schema.label_key else None
    attributes = {key: properties[key] for key in schema.attribute_keys if key in properties}
    return (
        Observation(
            entity_id=entity_id,
            timestamp=timestamp,
            position=position,
            label=label,
            attributes=attributes,
            seq=seq,
        ),
        "OK",
    )


def observation_from_feature(feature: Any, schema: FeatureSchema, *, seq: int = 0) -> Observation:
    """Strict variant of ``validate_feature``."""

    observation, reason = validate_feature(feature, schema, seq=seq)
    if observation is None:
        raise MalformedRecordError(reason, seq=seq)
    return observation


class Track(Sequence[Observation]):
    """Immutable, timestamp-ordered observations of one entity."""

    __slots__ = ("_entity_id", "_samples", "_labels")

    def __init__(self, entity_id: str, samples: Sequence[Observation]) -> None:
        if not samples:
            raise ValueError(f"track {entity_id!r} must not be empty")
        self._entity_id = entity_id
        self._samples: tuple[Observation, ...] = tuple(samples)
        labels: list[Optional[str]] = []
        last: Optional[str] = None
        for sample in self._samples:
            if sample.label:
                last = sample.label
            labels.append(last)
        self._labels = tuple(labels)

    @property
    def entity_id(self) -> str:
        return self._entity_id

    def __len__(self) -> int:
        return len(self._samples)

    @overload
    def __getitem__(self, index: int) -> Observation: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[Observation]: ...

    def __getitem__(self, index):
        return self._samples[index]

    def __iter__(self) -> Iterator[Observation]:
        return iter(self._samples)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Track):
            return NotImplemented
        return self._entity_id == other._entity_id and self._samples == other._samples

    def __hash__(self) -> int:
        return hash((self._entity_id, len(self._samples)))

    def __repr__(self) -> str:
        return f"Track({self._entity_id!r}, samples={len(self._samples)})"

    def label_at(self, index: int) -> Optional[str]:
        """Last non-empty label at or before ``index``."""

        return self._labels[index]


class TrackStore:
    """Maps entity ids to their tracks; rebuilt wholesale on every ingest."""

    def __init__(self, *, schema: FeatureSchema | None = None) -> None:
        self._schema = schema or FeatureSchema()
        self._tracks: dict[str, Track] = {}
        self.last_report = IngestReport()

    @property
    def schema(self) -> FeatureSchema:
        return self._schema

    @classmethod
    def from_features(cls, raw_features: Any, *, schema: FeatureSchema | None = None) -> "TrackStore":
        return cls(schema=schema).ingest(raw_features)

    def ingest(self, raw_features: Any, *, schema: FeatureSchema | None = None) -> "TrackStore":
        """Replace the store content with tracks built from ``raw_features``.

        Malformed records are skipped. Raises ``EmptyDatasetError`` when no
        record survives, leaving the previous content in place.
        """

        schema = schema or self._schema
        self.ingest_datasets([(raw_features, schema)])
        self._schema = schema
        return self

    def ingest_datasets(self, parts: Iterable[tuple[Any, FeatureSchema]]) -> "TrackStore":
        """Ingest several collections, each read with its own schema, as one.

        Every part must contribute at least one observation; a part with none
        raises ``EmptyDatasetError`` and the store keeps its previous content.
        """

        grouped: dict[str, list[Observation]] = {}
        reasons: Counter[str] = Counter()
        accepted = 0
        seq = 0
        empty_parts: list[int] = []

        for index, (raw_features, schema) in enumerate(parts):
            part_accepted = 0
            for feature in iter_features(raw_features):
                observation, reason = validate_feature(feature, schema, seq=seq)
                seq += 1
                if observation is None:
                    reasons[reason] += 1
                    logger.debug("skipping feature record %d: %s", seq - 1, reason)
                    continue
                grouped.setdefault(observation.entity_id, []).append(observation)
                part_accepted += 1
            if not part_accepted:
                empty_parts.append(index)
            accepted += part_accepted

        skipped = sum(reasons.values())
        metrics.record_ingest(accepted, dict(reasons))
        if not accepted:
            logger.warning("ingest produced no valid observations (skipped=%d)", skipped)
            raise EmptyDatasetError(skipped=skipped)
        if empty_parts:
            logger.warning("dataset parts %s produced no valid observations (skipped=%d)", empty_parts, skipped)
            raise EmptyDatasetError(
                f"no valid observations in dataset part(s) {empty_parts}",
                skipped=skipped,
            )

        # sorted() is stable, so equal timestamps keep input order
        tracks = {
            entity_id: Track(entity_id, sorted(samples, key=lambda item: item.timestamp))
            for entity_id, samples in grouped.items()
        }
        self._tracks = tracks
        self.last_report = IngestReport(
            accepted=accepted,
            skipped=skipped,
            entities=len(tracks),
            reasons=dict(reasons),
        )
        logger.info(
            "ingested %d observations for %d entities (skipped=%d)",
            accepted,
            len(tracks),
            skipped,
        )
        return self

    def clear(self) -> None:
        self._tracks = {}
        self.last_report = IngestReport()

    def track_of(self, entity_id: str) -> Track:
        try:
            return self._tracks[entity_id]
        except KeyError:
            raise UnknownEntityError(entity_id) from None

    def entity_ids(self) -> Iterator[str]:
        # snapshot keys so a concurrent ingest cannot break iteration
        yield from tuple(self._tracks)

    def max_length(self) -> int:
        return max((len(track) for track in self._tracks.values()), default=0)

    def bounds(self) -> GeoBounds | None:
        return GeoBounds.from_positions(
            sample.position for track in self._tracks.values() for sample in track
        )

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._tracks

    def __repr__(self) -> str:
        return f"TrackStore(entities={len(self._tracks)}, max_length={self.max_length()})"
