"""Models shared by track ingestion, playback and renderers."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Iterable, List, Optional, Self, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LayerKind(str, Enum):
    TRACKS = "tracks"
    ROUTES = "routes"
    POINTS = "points"


def _finite_number(value: Any) -> float:
    # bool is an int subclass; a True latitude is never intended
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("coordinate must be a number")
    if not math.isfinite(value):
        raise ValueError("coordinate must be finite")
    return float(value)


class GeoPosition(BaseModel):
    """WGS84 position in (latitude, longitude) order."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> float:
        return _finite_number(value)

    @classmethod
    def from_lnglat(cls, coordinates: Iterable[Any]) -> "GeoPosition":
        """Build from a GeoJSON ``[longitude, latitude]`` pair."""

        values = list(coordinates)
        if len(values) < 2:
            raise ValueError(f"expected [lng, lat], got {len(values)} components")
        return cls(lat=values[1], lng=values[0])

    def as_latlng(self) -> Tuple[float, float]:
        return (self.lat, self.lng)


class Observation(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    entity_id: str = Field(min_length=1)
    timestamp: float = Field(allow_inf_nan=False)
    position: GeoPosition
    label: Optional[str] = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    seq: int = Field(ge=0, default=0)


class EntityUpdate(BaseModel):
    """Structured position update emitted once per entity per tick."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    entity_id: str
    position: GeoPosition
    label: Optional[str] = None
    timestamp: float
    cursor: int = Field(ge=0)
    attributes: dict[str, Any] = Field(default_factory=dict)


class StaticLayer(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    layer_id: str = Field(min_length=1)
    kind: LayerKind
    features: List[dict[str, Any]] = Field(default_factory=list)

    @model_validator(mode="after")
    def _not_tracks(self) -> Self:
        if self.kind == LayerKind.TRACKS:
            raise ValueError("track datasets are animated, not drawn as static layers")
        return self


class GeoBounds(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    south: float = Field(ge=-90.0, le=90.0)
    west: float = Field(ge=-180.0, le=180.0)
    north: float = Field(ge=-90.0, le=90.0)
    east: float = Field(ge=-180.0, le=180.0)

    @model_validator(mode="after")
    def _ordered(self) -> Self:
        if self.south > self.north or self.west > self.east:
            raise ValueError("bounds must satisfy south <= north and west <= east")
        return self

    @classmethod
    def from_positions(cls, positions: Iterable[GeoPosition]) -> Optional["GeoBounds"]:
        bounds: Optional[GeoBounds] = None
        for position in positions:
            bounds = position_bounds(position) if bounds is None else bounds.extend(position)
        return bounds

    def extend(self, position: GeoPosition) -> "GeoBounds":
        return GeoBounds(
            south=min(self.south, position.lat),
            west=min(self.west, position.lng),
            north=max(self.north, position.lat),
            east=max(self.east, position.lng),
        )

    def union(self, other: "GeoBounds") -> "GeoBounds":
        return GeoBounds(
            south=min(self.south, other.south),
            west=min(self.west, other.west),
            north=max(self.north, other.north),
            east=max(self.east, other.east),
        )


def position_bounds(position: GeoPosition) -> GeoBounds:
    return GeoBounds(
        south=position.lat,
        west=position.lng,
        north=position.lat,
        east=position.lng,
    )
