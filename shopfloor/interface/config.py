"""
Runner settings for the terminal trainer.

Lives as `.shopfloor_config.json` inside the progress directory, so the
content backend, the LM Studio model and an optional rules override travel
with a trainee's progress files. Unknown or malformed values are dropped on
load rather than passed on to the backend factory.
"""

import json
import logging
from pathlib import Path
from typing import TypedDict, get_args

from ..llm import BackendType

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".shopfloor_config.json"
BACKENDS: tuple[str, ...] = get_args(BackendType)


class Config(TypedDict, total=False):
    """Runner settings."""
    backend: BackendType
    model: str | None  # LM Studio model id; None lets the server pick
    rules_path: str | None  # TrainerRules overrides, relative to the data dir


DEFAULT_CONFIG: Config = {
    "backend": "auto",
    "model": None,
    "rules_path": None,
}


def get_config_path(data_dir: Path | str = "progress") -> Path:
    return Path(data_dir) / CONFIG_FILENAME


def _optional_text(value) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _normalize(saved: dict) -> Config:
    config = DEFAULT_CONFIG.copy()

    backend = saved.get("backend", config["backend"])
    if backend in BACKENDS:
        config["backend"] = backend
    else:
        logger.warning(f"Unknown backend {backend!r} in config, using {config['backend']}")

    config["model"] = _optional_text(saved.get("model"))
    config["rules_path"] = _optional_text(saved.get("rules_path"))
    return config


def load_config(data_dir: Path | str = "progress") -> Config:
    """Load settings, falling back to defaults for anything missing or invalid."""
    path = get_config_path(data_dir)
    try:
        saved = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return DEFAULT_CONFIG.copy()
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Ignoring unreadable config {path}: {e}")
        return DEFAULT_CONFIG.copy()

    if not isinstance(saved, dict):
        logger.warning(f"Ignoring config {path}: expected an object")
        return DEFAULT_CONFIG.copy()
    return _normalize(saved)


def save_config(config: Config, data_dir: Path | str = "progress") -> bool:
    """Write settings. Returns False when the file cannot be written."""
    path = get_config_path(data_dir)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(config, indent=2), encoding="utf-8")
        return True
    except OSError as e:
        logger.warning(f"Could not save config {path}: {e}")
        return False


def update_config(data_dir: Path | str = "progress", **changes) -> Config:
    """
    Apply and persist changes to the stored settings.

    Raises ValueError for an unknown backend or setting so a typo at the
    prompt never reaches the file.
    """
    unknown = set(changes) - set(DEFAULT_CONFIG)
    if unknown:
        raise ValueError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
    if "backend" in changes and changes["backend"] not in BACKENDS:
        raise ValueError(f"Unknown backend {changes['backend']!r}; choose from {', '.join(BACKENDS)}")

    config = load_config(data_dir)
    config.update(changes)
    save_config(config, data_dir)
    return config


def resolve_rules_path(config: Config, data_dir: Path | str = "progress") -> Path | None:
    """Location of the rules override file, relative paths anchored at the data dir."""
    rules_path = config.get("rules_path")
    if not rules_path:
        return None
    path = Path(rules_path).expanduser()
    return path if path.is_absolute() else Path(data_dir) / path
