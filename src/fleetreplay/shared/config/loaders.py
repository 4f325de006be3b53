"""Loaders and validation for playback dataset configuration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Self

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fleetreplay.shared.models.track import LayerKind


DEFAULT_INTERVAL_MS = 5000


class FeatureSchema(BaseModel):
    """Property keys of a deployment's feature records."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    entity_id_key: str = Field(default="id_kapal", min_length=1)
    time_key: str = Field(default="waktu", min_length=1)
    label_key: Optional[str] = "nama_kapal"
    attribute_keys: List[str] = Field(default_factory=lambda: ["jenis_kapal"])

    @field_validator("entity_id_key", "time_key", "label_key")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        stripped = value.strip()
        if not stripped:
            raise ValueError("property key must not be blank")
        return stripped

    @model_validator(mode="after")
    def _distinct_keys(self) -> Self:
        if self.entity_id_key == self.time_key:
            raise ValueError("entity_id_key and time_key must differ")
        return self


class DatasetConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    resource_id: str = Field(min_length=1)
    kind: LayerKind = LayerKind.TRACKS
    location: str = Field(min_length=1)
    feature_schema: FeatureSchema = Field(default_factory=FeatureSchema)


class PlaybackSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    interval_ms: int = Field(default=DEFAULT_INTERVAL_MS, gt=0)
    datasets: List[DatasetConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_resources(self) -> Self:
        seen: set[str] = set()
        for dataset in self.datasets:
            if dataset.resource_id in seen:
                raise ValueError(f"duplicate resource_id: {dataset.resource_id}")
            seen.add(dataset.resource_id)
        return self

    def dataset(self, resource_id: str) -> Optional[DatasetConfig]:
        for dataset in self.datasets:
            if dataset.resource_id == resource_id:
                return dataset
        return None

    def locations(self) -> dict[str, str]:
        return {dataset.resource_id: dataset.location for dataset in self.datasets}


def _load_mapping(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(handle)
        else:
            data = json.load(handle)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level config must be a mapping")
    return data


def load_playback_settings(path: Path | str) -> PlaybackSettings:
    target = Path(path)
    data = _load_mapping(target)
    # relative dataset locations resolve against the config file
    for item in data.get("datasets") or ():
        if not isinstance(item, dict):
            continue
        location = item.get("location")
        if isinstance(location, str) and "://" not in location and not Path(location).is_absolute():
            item["location"] = str((target.parent / location).resolve())
    return PlaybackSettings.model_validate(data)
