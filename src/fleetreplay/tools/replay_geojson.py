from __future__ import annotations

import asyncio
import logging
from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Any, Sequence

import yaml
from pydantic import ValidationError

from fleetreplay.services.playback.config import PlaybackServiceConfig
from fleetreplay.services.playback.controller import PlaybackController
from fleetreplay.services.playback.data_source import CatalogFeatureSource, FeatureSource
from fleetreplay.services.playback.engine import PlaybackEngine
from fleetreplay.services.playback.errors import PlaybackError
from fleetreplay.services.playback.logger import setup_logging
from fleetreplay.services.playback.renderer import LoggingRenderer, Renderer
from fleetreplay.shared.config.loaders import (
    DatasetConfig,
    FeatureSchema,
    PlaybackSettings,
    load_playback_settings,
)
from fleetreplay.shared.models.track import LayerKind

logger = logging.getLogger(__name__)


async def run_replay(
    *,
    source: FeatureSource,
    settings: PlaybackSettings,
    resource_ids: Sequence[str],
    ticks: int,
    renderer: Renderer,
) -> dict[str, Any]:
    """Toggle datasets on, play ``ticks`` ticks on the running loop, tear down."""

    engine = PlaybackEngine(default_interval_ms=settings.interval_ms)
    controller = PlaybackController(source, renderer, engine, settings)
    try:
        for resource_id in resource_ids:
            await controller.toggle_on(resource_id)
        store = controller.store
        summary: dict[str, Any] = {
            "datasets": controller.active_datasets,
            "entities": len(store),
            "max_length": store.max_length(),
            "skipped": store.last_report.skipped,
            "ticks": 0,
        }
        if not engine.is_running:
            return summary
        poll_s = min(engine.interval_ms / 1000.0, 0.05)
        while engine.tick_count < ticks:
            await asyncio.sleep(poll_s)
        summary["ticks"] = engine.tick_count
        summary["cursor"] = engine.cursor
        return summary
    finally:
        await controller.close()


def _settings_from_args(args: Namespace, service: PlaybackServiceConfig) -> tuple[PlaybackSettings, list[str]]:
    if args.input_path:
        path = Path(str(args.input_path)).resolve()
        schema = FeatureSchema(
            entity_id_key=args.entity_key,
            time_key=args.time_key,
            label_key=args.label_key or None,
            attribute_keys=list(args.attribute) if args.attribute else FeatureSchema().attribute_keys,
        )
        settings = PlaybackSettings(
            datasets=[
                DatasetConfig(
                    resource_id=path.stem,
                    kind=LayerKind.TRACKS,
                    location=str(path),
                    feature_schema=schema,
                )
            ]
        )
        resource_ids = [path.stem]
    else:
        settings = load_playback_settings(args.config or service.config_path)
        resource_ids = list(args.dataset or [dataset.resource_id for dataset in settings.datasets])

    interval_ms = args.interval_ms or service.interval_ms
    if interval_ms:
        settings = settings.model_copy(update={"interval_ms": int(interval_ms)})
    return settings, resource_ids


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(description="Replay timestamped point features as fleet playback")
    parser.add_argument("--in", dest="input_path", default="", help="GeoJSON FeatureCollection of track points")
    parser.add_argument("--config", default="", help="Dataset config (JSON or YAML); default $FLEETREPLAY_CONFIG")
    parser.add_argument("--dataset", action="append", help="Resource id to toggle on (repeatable; default: all)")
    parser.add_argument("--interval-ms", type=int, default=0, help="Tick interval in milliseconds")
    parser.add_argument("--ticks", type=int, default=10, help="Number of ticks to play (default: 10)")
    parser.add_argument("--entity-key", default="id_kapal", help="Property holding the entity id")
    parser.add_argument("--time-key", default="waktu", help="Property holding the numeric timestamp")
    parser.add_argument("--label-key", default="nama_kapal", help="Property holding the display name")
    parser.add_argument("--attribute", action="append", help="Extra property copied onto updates (repeatable; default: jenis_kapal)")
    return parser


async def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    service = PlaybackServiceConfig()
    setup_logging(default_path=service.log_config_path, default_level=service.log_level)

    try:
        settings, resource_ids = _settings_from_args(args, service)
        source = CatalogFeatureSource(settings.locations(), timeout_s=service.http_timeout_s)
    except (OSError, yaml.YAMLError, ValidationError, ValueError) as exc:
        logger.error("invalid replay configuration: %s", exc)
        print({"error": "CONFIG_ERROR", "message": str(exc)})
        return 1

    try:
        result = await run_replay(
            source=source,
            settings=settings,
            resource_ids=resource_ids,
            ticks=max(0, int(args.ticks)),
            renderer=LoggingRenderer(),
        )
    except PlaybackError as exc:
        logger.error("replay failed: %s", exc)
        print({"error": exc.error_code, "message": exc.message})
        return 1
    print(result)
    return 0


def cli() -> None:
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":  # pragma: no cover
    cli()
