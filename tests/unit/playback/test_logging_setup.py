from __future__ import annotations

import logging
from pathlib import Path

import pytest

from fleetreplay.services.playback.logger import setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_yaml_logging_section_is_applied(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOG_CFG", raising=False)
    config = tmp_path / "logging.yaml"
    config.write_text(
        "\n".join(
            [
                "logging:",
                "  version: 1",
                "  disable_existing_loggers: false",
                "  loggers:",
                "    fleetreplay.test.logcfg:",
                "      level: ERROR",
            ]
        ),
        encoding="utf-8",
    )

    setup_logging(default_path=str(config))

    assert logging.getLogger("fleetreplay.test.logcfg").level == logging.ERROR


def test_env_override_and_broken_yaml_falls_back(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    broken = tmp_path / "broken.yaml"
    broken.write_text("logging: [unclosed", encoding="utf-8")
    monkeypatch.setenv("LOG_CFG", str(broken))

    with caplog.at_level(logging.WARNING):
        setup_logging(default_path=str(tmp_path / "unused.yaml"), default_level="debug")

    assert "Error in logging configuration" in caplog.text


def test_missing_file_uses_basic_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOG_CFG", raising=False)
    setup_logging(default_path=str(tmp_path / "absent.yaml"), default_level="NOPE")
