from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from fleetreplay.services.playback.config import PlaybackServiceConfig
from fleetreplay.shared.config.loaders import (
    DEFAULT_INTERVAL_MS,
    FeatureSchema,
    PlaybackSettings,
    load_playback_settings,
)
from fleetreplay.shared.models.track import LayerKind


class TestFeatureSchema:
    def test_defaults(self):
        schema = FeatureSchema()
        assert schema.entity_id_key == "id_kapal"
        assert schema.time_key == "waktu"
        assert schema.label_key == "nama_kapal"
        assert schema.attribute_keys == ["jenis_kapal"]

    def test_blank_key_rejected(self):
        with pytest.raises(ValidationError):
            FeatureSchema(entity_id_key="  ")

    def test_same_id_and_time_key_rejected(self):
        with pytest.raises(ValidationError):
            FeatureSchema(entity_id_key="id", time_key="id")

    def test_label_key_optional(self):
        assert FeatureSchema(label_key=None).label_key is None


class TestPlaybackSettings:
    def test_default_interval(self):
        assert PlaybackSettings().interval_ms == DEFAULT_INTERVAL_MS == 5000

    def test_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            PlaybackSettings(interval_ms=0)

    def test_duplicate_resource_ids_rejected(self):
        with pytest.raises(ValidationError):
            PlaybackSettings(
                datasets=[
                    {"resource_id": "ships", "location": "a.geojson"},
                    {"resource_id": "ships", "location": "b.geojson"},
                ]
            )

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            PlaybackSettings(interval=10)


def test_load_yaml_resolves_relative_locations(tmp_path: Path) -> None:
    config = tmp_path / "fleet.yaml"
    config.write_text(
        "\n".join(
            [
                "interval_ms: 1500",
                "datasets:",
                "  - resource_id: ships",
                "    location: data/ships.geojson",
                "    feature_schema: {entity_id_key: mmsi, time_key: days}",
                "  - resource_id: routes",
                "    kind: routes",
                "    location: https://tiles.example.org/routes.geojson",
            ]
        ),
        encoding="utf-8",
    )

    settings = load_playback_settings(config)

    assert settings.interval_ms == 1500
    ships = settings.dataset("ships")
    assert ships is not None
    assert ships.kind is LayerKind.TRACKS
    assert ships.location == str((tmp_path / "data" / "ships.geojson").resolve())
    assert ships.feature_schema.entity_id_key == "mmsi"
    assert settings.locations()["routes"] == "https://tiles.example.org/routes.geojson"
    assert settings.dataset("docks") is None


def test_load_json_and_empty_yaml(tmp_path: Path) -> None:
    json_path = tmp_path / "fleet.json"
    json_path.write_text(json.dumps({"interval_ms": 250}), encoding="utf-8")
    assert load_playback_settings(json_path).interval_ms == 250

    empty = tmp_path / "empty.yml"
    empty.write_text("", encoding="utf-8")
    assert load_playback_settings(empty).datasets == []


def test_non_mapping_config_rejected(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_playback_settings(path)


def test_service_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLEETREPLAY_CONFIG", "/etc/fleetreplay.yaml")
    monkeypatch.setenv("FLEETREPLAY_INTERVAL_MS", "750")
    monkeypatch.setenv("FLEETREPLAY_HTTP_TIMEOUT_SEC", "2.5")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    config = PlaybackServiceConfig()

    assert config.config_path == "/etc/fleetreplay.yaml"
    assert config.interval_ms == 750
    assert config.http_timeout_s == 2.5
    assert config.log_level == "DEBUG"


def test_service_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("FLEETREPLAY_CONFIG", "FLEETREPLAY_INTERVAL_MS", "FLEETREPLAY_HTTP_TIMEOUT_SEC", "LOG_CFG"):
        monkeypatch.delenv(name, raising=False)

    config = PlaybackServiceConfig()

    assert config.config_path == "fleetreplay.yaml"
    assert config.interval_ms is None
    assert config.http_timeout_s == 10.0
    assert config.log_config_path == "logging.yaml"
