"""
Gameplay rules for the practice modes.

Every timer, penalty, stress delta and threshold lives here so the three
session types read the same numbers. Defaults match the production tuning;
a JSON file can override any subset of them.
"""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class LevelThreshold(BaseModel):
    """XP strictly above `xp` unlocks `role`."""
    model_config = ConfigDict(frozen=True)

    role: str
    xp: int


class TrainerRules(BaseModel):
    """Named constants shared by scoring and all session types."""
    model_config = ConfigDict(frozen=True)

    # Timed choice quiz
    question_count: int = 3
    countdown_budget: int = 15
    tick_seconds: float = 1.0
    timeout_penalty: int = -25
    timeout_feedback: str = "Time is up! In sales, reaction speed is critical."
    custom_answer_fallback_score: int = 10
    custom_answer_fallback_feedback: str = (
        "Answer accepted and sent to an administrator for review."
    )

    # Open dialogue
    stress_initial: int = 30
    stress_irritated: int = 80
    stress_max: int = 100
    stress_min: int = 0
    short_message_length: int = 15
    short_message_stress: int = 30
    long_message_relief: int = 15
    evaluation_staff_turns: int = 4
    profanity_penalty: int = -100
    walkout_penalty: int = -50
    profanity_reply: str = "I will not listen to that language! I'm leaving!"
    walkout_reply: str = "You've worn me out. I'll look somewhere else."
    stalled_reply: str = "Hmm... give me a moment to think about that."
    evaluation_fallback_feedback: str = (
        "The conversation was saved and is pending review by an administrator."
    )

    # Progress
    history_cap: int = 50
    admin_identity: str = "ADMIN"
    levels: tuple[LevelThreshold, ...] = Field(
        default=(
            LevelThreshold(role="expert", xp=3000),
            LevelThreshold(role="senior", xp=2000),
            LevelThreshold(role="middle", xp=1000),
        )
    )

    # Achievements
    first_module_achievement: str = "first_module"
    quiz_achievement: str = "quiz_runner"
    scenario_achievement: str = "scenario_closer"
    negotiator_achievement: str = "negotiator"
    negotiator_min_score: int = 40
    rising_star_achievement: str = "rising_star"
    rising_star_xp: int = 1000


DEFAULT_RULES = TrainerRules()


def load_rules(path: Path | str | None = None) -> TrainerRules:
    """
    Load rules from a JSON file, overlaying the defaults.

    Missing or unreadable files fall back to DEFAULT_RULES.
    """
    if path is None:
        return DEFAULT_RULES

    path = Path(path)
    if not path.exists():
        return DEFAULT_RULES

    try:
        overrides = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Ignoring unreadable rules file {path}: {e}")
        return DEFAULT_RULES

    merged = DEFAULT_RULES.model_dump()
    merged.update(overrides)
    return TrainerRules.model_validate(merged)
