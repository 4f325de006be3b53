from __future__ import annotations

from typing import Any, Callable

import pytest

from fleetreplay.shared.config.loaders import FeatureSchema


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Automatically mark tests under tests/integration as `integration`.

    Keeps `pytest -m 'not integration'` reliable even if a file misses a decorator.
    """

    for item in items:
        if "tests/integration" in str(getattr(item, "fspath", "")):
            item.add_marker(pytest.mark.integration)


SHORT_SCHEMA = FeatureSchema(entity_id_key="id", time_key="t", label_key="name", attribute_keys=["kind"])


@pytest.fixture
def short_schema() -> FeatureSchema:
    """Schema with the terse keys used throughout the tests."""

    return SHORT_SCHEMA


@pytest.fixture
def make_feature() -> Callable[..., dict[str, Any]]:
    def _make(entity_id: Any, t: Any, lat: Any, lng: Any, name: str | None = None, **props: Any) -> dict[str, Any]:
        properties: dict[str, Any] = {"id": entity_id, "t": t, **props}
        if name is not None:
            properties["name"] = name
        return {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [lng, lat]},
            "properties": properties,
        }

    return _make


@pytest.fixture
def collection() -> Callable[[list[dict[str, Any]]], dict[str, Any]]:
    def _wrap(features: list[dict[str, Any]]) -> dict[str, Any]:
        return {"type": "FeatureCollection", "features": features}

    return _wrap
