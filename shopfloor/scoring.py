"""
Scoring engine.

Aggregates per-turn scores into a session total, and session totals into
profile XP, level and achievements. All operations return new objects;
inputs are never mutated.
"""

import logging

from .config import DEFAULT_RULES, TrainerRules
from .errors import EmptyHistoryError
from .state.schema import ModuleKind, Profile, Role, SessionState

logger = logging.getLogger(__name__)


class ScoringEngine:
    """Pure score arithmetic shared by all practice modes."""

    def __init__(self, rules: TrainerRules = DEFAULT_RULES):
        self.rules = rules

    # ─── Session level ───────────────────────────────────────────

    def apply_turn_score(self, state: SessionState, delta: int) -> SessionState:
        """Push `delta` onto the score stack and recompute the total."""
        history = [*state.score_history, delta]
        return state.model_copy(update={
            "score_history": history,
            "total_score": sum(history),
        })

    def record_turn(self, state: SessionState, delta: int) -> SessionState:
        """Apply `delta` and move to the next step. Inverse of undo_last_turn."""
        state = self.apply_turn_score(state, delta)
        return state.model_copy(update={"step_index": state.step_index + 1})

    def undo_last_turn(self, state: SessionState) -> SessionState:
        """
        Pop the most recent score and step back one step.

        Raises:
            EmptyHistoryError: If no turn has been recorded
        """
        if not state.score_history:
            raise EmptyHistoryError("No turn to undo")

        *history, last = state.score_history
        return state.model_copy(update={
            "score_history": history,
            "total_score": state.total_score - last,
            "step_index": max(state.step_index - 1, 0),
        })

    # ─── Profile level ───────────────────────────────────────────

    def level_for(self, xp: int, current: Role) -> Role:
        """
        Highest tier whose threshold `xp` exceeds.

        Thresholds are checked highest first; `current` is kept only when
        no threshold is met.
        """
        for threshold in sorted(self.rules.levels, key=lambda t: t.xp, reverse=True):
            if xp > threshold.xp:
                return Role(threshold.role)
        return current

    def _new_achievements(
        self,
        before: Profile,
        xp: int,
        modules_completed: int,
        final_score: int,
        module_kind: ModuleKind,
    ) -> list[str]:
        rules = self.rules
        earned = []
        if modules_completed == 1:
            earned.append(rules.first_module_achievement)
        if module_kind == ModuleKind.QUIZ:
            earned.append(rules.quiz_achievement)
        if module_kind == ModuleKind.SCENARIO:
            earned.append(rules.scenario_achievement)
        if module_kind == ModuleKind.DIALOGUE and final_score >= rules.negotiator_min_score:
            earned.append(rules.negotiator_achievement)
        if xp > rules.rising_star_xp:
            earned.append(rules.rising_star_achievement)
        return [tag for tag in earned if not before.has_achievement(tag)]

    def finalize_session(
        self,
        profile: Profile,
        final_score: int,
        module_kind: ModuleKind,
    ) -> Profile:
        """
        Fold a finished session into the profile.

        XP may go negative; the total is kept as-is as a performance signal.
        """
        xp = profile.xp + final_score
        modules_completed = profile.modules_completed + 1
        level = self.level_for(xp, profile.level)
        granted = self._new_achievements(profile, xp, modules_completed, final_score, module_kind)

        if level != profile.level:
            logger.info(f"{profile.name} level {profile.level.value} -> {level.value}")
        for tag in granted:
            logger.info(f"{profile.name} earned achievement {tag}")

        return profile.model_copy(update={
            "xp": xp,
            "level": level,
            "modules_completed": modules_completed,
            "achievements": [*profile.achievements, *granted],
        })
