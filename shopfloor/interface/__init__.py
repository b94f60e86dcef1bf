"""Terminal front end for Shopfloor Trainer."""

from .cli import TrainerCLI, main
from .config import Config, load_config, resolve_rules_path, save_config, update_config

__all__ = [
    "TrainerCLI",
    "main",
    "Config",
    "load_config",
    "resolve_rules_path",
    "save_config",
    "update_config",
]
