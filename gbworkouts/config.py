import copy
import os
from pathlib import Path

import yaml

from gbworkouts.errors import ConfigurationError

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "config.yaml"

DEFAULTS = {
    "paths": {
        "export": "~/Gadgetbridge.zip",
        "db": "~/gbworkouts/data/gbworkouts.db",
    },
    "scan": {
        "row_limit": 500,
        "min_rows": 3,
    },
    "list": {
        "count": 5,
    },
}


def _expand(value):
    """Recursively expand ~ and env vars in string values."""
    if isinstance(value, str):
        return os.path.expandvars(os.path.expanduser(value))
    if isinstance(value, dict):
        return {k: _expand(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand(v) for v in value]
    return value


def _merge(base: dict, override: dict) -> dict:
    out = copy.deepcopy(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path=None):
    """Load YAML config over DEFAULTS, expanding ~ and $ENV_VARS in all string values."""
    path = Path(path) if path else DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path) as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}", {"error": str(e)}) from e
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config root must be a mapping: {path}")
    return _expand(_merge(DEFAULTS, raw))


def default_config():
    """Built-in defaults, used when no config file exists."""
    return _expand(copy.deepcopy(DEFAULTS))
