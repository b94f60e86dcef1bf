"""
Shopfloor Trainer: practice modes for retail sales staff.

A timed multiple-choice quiz, a branching scenario with undo and an open
dialogue with a simulated customer, all feeding one XP and level profile.
"""

from .config import DEFAULT_RULES, TrainerRules, load_rules
from .orchestrator import Orchestrator, create_content_provider

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_RULES",
    "TrainerRules",
    "load_rules",
    "Orchestrator",
    "create_content_provider",
]
