"""Configuration helpers: data directory discovery and settings.toml."""

import os
import pathlib
import sys

DEFAULT_CONFIG = {
    "desired_retention": 0.9,
    "new_item_window": 5,
    "db_name": "fluency.db",
}


def get_data_dir() -> pathlib.Path:
    env_dir = os.environ.get("FLUENCY_DIR")
    if env_dir:
        print(f"Using FLUENCY_DIR={env_dir}", file=sys.stderr)
        return pathlib.Path(env_dir)
    config_path = pathlib.Path.home() / ".config" / "fluency" / "config"
    if config_path.exists():
        for line in config_path.read_text().splitlines():
            line = line.strip()
            if line.startswith("DIR="):
                return pathlib.Path(line[4:].strip())
    return pathlib.Path.home() / ".local" / "share" / "fluency"


def load_config(data_dir: pathlib.Path) -> dict:
    config_path = data_dir / "settings.toml"
    config = dict(DEFAULT_CONFIG)
    if config_path.exists():
        config.update(_parse_toml_simple(config_path.read_text()))
    return config


def _parse_number(v: str):
    try:
        return int(v)
    except ValueError:
        pass
    try:
        return float(v)
    except ValueError:
        return v


def _parse_toml_simple(text: str) -> dict:
    """Minimal TOML parser for flat key=value files."""
    result = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" in line:
            k, v = line.split("=", 1)
            k = k.strip()
            v = v.strip()
            if v.startswith('"') and v.endswith('"'):
                v = v[1:-1]
            elif v == "true":
                v = True
            elif v == "false":
                v = False
            else:
                v = _parse_number(v)
            result[k] = v
    return result
