import logging
import logging.config
import os

import yaml

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(default_path="logging.yaml", default_level=logging.INFO, env_key="LOG_CFG"):
    """
    Configure logging for the playback service.

    Reads a ``logging`` section (dictConfig schema) from the YAML file named by
    ``$LOG_CFG`` or ``default_path``; falls back to basicConfig.
    """
    path = os.getenv(env_key, None) or default_path
    if isinstance(default_level, str):
        default_level = logging.getLevelName(default_level.upper())
        if not isinstance(default_level, int):
            default_level = logging.INFO

    if os.path.exists(path):
        with open(path, "rt", encoding="utf-8") as f:
            try:
                config = yaml.safe_load(f.read()) or {}
                if "logging" in config:
                    logging.config.dictConfig(config["logging"])
                    return
            except (yaml.YAMLError, ValueError, TypeError, AttributeError) as e:
                logging.basicConfig(level=default_level, format=DEFAULT_FORMAT)
                logging.getLogger(__name__).warning(
                    "Error in logging configuration %s: %s; using defaults", path, e
                )
                return

    logging.basicConfig(level=default_level, format=DEFAULT_FORMAT)