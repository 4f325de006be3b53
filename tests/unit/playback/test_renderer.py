from __future__ import annotations

import logging

from fleetreplay.services.playback.renderer import LoggingRenderer, RecordingRenderer, describe_update
from fleetreplay.shared.models.track import EntityUpdate, GeoBounds, GeoPosition, LayerKind, StaticLayer


def _update(entity_id: str = "101", label: str | None = "KM Sinar Bahari", cursor: int = 0) -> EntityUpdate:
    return EntityUpdate(
        entity_id=entity_id,
        position=GeoPosition(lat=-6.1045, lng=106.8272),
        label=label,
        timestamp=45123.25,
        cursor=cursor,
        attributes={"jenis_kapal": "cargo"},
    )


def test_describe_update_is_plain_text() -> None:
    text = describe_update(_update())
    assert text == "KM Sinar Bahari (101) lat=-6.10450 lng=106.82720 t=45123.2 jenis_kapal=cargo"


def test_describe_update_falls_back_to_entity_id() -> None:
    assert describe_update(_update(label=None)).startswith("101 (101)")


def test_describe_update_does_not_interpret_markup() -> None:
    text = describe_update(_update(label="<b>Bahari</b>"))
    assert "<b>Bahari</b>" in text


def test_recording_renderer_upsert_is_idempotent() -> None:
    renderer = RecordingRenderer()
    renderer.upsert_entity(_update(cursor=0))
    renderer.upsert_entity(_update(cursor=0))
    renderer.upsert_entity(_update(cursor=1))

    assert list(renderer.entities) == ["101"]
    assert renderer.entities["101"].cursor == 1
    assert len(renderer.updates()) == 3

    renderer.remove_all_entities()
    assert renderer.entities == {}


def test_recording_renderer_tracks_layers_and_bounds() -> None:
    renderer = RecordingRenderer()
    renderer.draw_layer(StaticLayer(layer_id="docks", kind=LayerKind.POINTS))
    renderer.fit_bounds(GeoBounds(south=-6.2, west=106.7, north=-6.0, east=106.9))
    renderer.remove_layer("docks")
    renderer.remove_layer("docks")

    assert renderer.layers == {}
    assert renderer.bounds is not None
    assert [name for name, _ in renderer.calls] == ["draw_layer", "fit_bounds", "remove_layer", "remove_layer"]


def test_logging_renderer_logs_each_command(caplog) -> None:
    renderer = LoggingRenderer(logging.getLogger("fleetreplay.test.renderer"))

    with caplog.at_level(logging.INFO, logger="fleetreplay.test.renderer"):
        renderer.upsert_entity(_update(cursor=3))
        renderer.draw_layer(StaticLayer(layer_id="routes", kind=LayerKind.ROUTES, features=[{"type": "Feature"}]))
        renderer.remove_all_entities()

    assert renderer.updates_seen == 1
    assert "[cursor 3] KM Sinar Bahari (101)" in caplog.text
    assert "draw routes layer routes (1 features)" in caplog.text
    assert "remove all entities" in caplog.text
