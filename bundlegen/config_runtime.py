"""Runtime configuration for bundlegen - centralized configuration management."""

import copy
import json
import os
from pathlib import Path
from typing import Any

from bundlegen.utils.constants import (
    BUNDLE_DIR,
    CONFIG_ENTRY_POINT,
    OPERATIONS_DIR_NAME,
    RUNTIME_CONFIG_FILE,
    SERVER_ENTRY_POINT,
    WEBHOOKS_DIR_NAME,
)
from bundlegen.utils.logging import logger

DEFAULTS = {
    "paths": {
        "config_out_file": f"{BUNDLE_DIR}/config.js",
        "server_out_file": f"{BUNDLE_DIR}/server.js",
        "webhooks_out_dir": f"{BUNDLE_DIR}/webhooks",
        "operations_out_dir": f"{BUNDLE_DIR}/operations",
    },
    "entrypoints": {
        "config": CONFIG_ENTRY_POINT,
        "server": SERVER_ENTRY_POINT,
        "webhooks_dir": WEBHOOKS_DIR_NAME,
        "operations_dir": OPERATIONS_DIR_NAME,
    },
    "bundle": {
        "ignore_paths": ["generated", "node_modules"],
        "platform": "node",
        "format": "cjs",
        "target": "node16",
        "sourcemap": True,
    },
    "runtime": {
        "node": "node",
        "esbuild": "esbuild",
    },
    "timeouts": {
        "stop_grace": 5.0,
    },
}


def _coerce(default_value: Any, value: str) -> Any:
    """Convert an environment string to the type of the default it overrides."""
    if isinstance(default_value, bool):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(default_value, int):
        return int(value)
    if isinstance(default_value, float):
        return float(value)
    if isinstance(default_value, list):
        return [v.strip() for v in value.split(",") if v.strip()]
    return value


def load_runtime_config(root: str | Path = ".") -> dict[str, Any]:
    """
    Load runtime configuration from bundlegen.json and environment variables.

    Config priority (highest to lowest):
    1. Environment variables (BUNDLEGEN_<SECTION>_<KEY>)
    2. <root>/bundlegen.json
    3. Built-in defaults

    Args:
        root: Project directory to look for the config file

    Returns:
        Configuration dictionary with merged values
    """
    cfg = copy.deepcopy(DEFAULTS)

    path = Path(root) / RUNTIME_CONFIG_FILE
    try:
        if path.exists():
            with open(path, encoding="utf-8") as f:
                user = json.load(f)

            if isinstance(user, dict):
                for section in cfg:
                    if section in user and isinstance(user[section], dict):
                        for key, value in user[section].items():
                            if key in cfg[section] and _same_kind(cfg[section][key], value):
                                cfg[section][key] = value
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config file from {path}: {e}")
        logger.info("Continuing with default configuration")

    for section in cfg:
        for key in cfg[section]:
            env_var = f"BUNDLEGEN_{section.upper()}_{key.upper()}"
            if env_var in os.environ:
                value = os.environ[env_var]
                try:
                    cfg[section][key] = _coerce(cfg[section][key], value)
                except ValueError as e:
                    logger.warning(
                        f"Invalid value for environment variable {env_var}: '{value}' - {e}"
                    )
                    logger.info(f"Using default value: {cfg[section][key]}")

    return cfg


def _same_kind(default_value: Any, value: Any) -> bool:
    # ints are accepted where floats are expected; bools never stand in for numbers
    if isinstance(default_value, bool) or isinstance(value, bool):
        return isinstance(default_value, bool) and isinstance(value, bool)
    if isinstance(default_value, float):
        return isinstance(value, (int, float))
    return isinstance(value, type(default_value))
