"""Practice-mode state machines."""

from .base import PracticeSession, ReportHook, TurnGuard, TurnKey
from .countdown import Countdown
from .timed_choice import QuizPhase, TimedChoiceSession
from .branching import BranchingScenarioSession, ScenarioPhase
from .dialogue import DialoguePhase, OpenDialogueSession, SpellingSuggestion

__all__ = [
    "PracticeSession",
    "ReportHook",
    "TurnGuard",
    "TurnKey",
    "Countdown",
    "QuizPhase",
    "TimedChoiceSession",
    "BranchingScenarioSession",
    "ScenarioPhase",
    "DialoguePhase",
    "OpenDialogueSession",
    "SpellingSuggestion",
]
