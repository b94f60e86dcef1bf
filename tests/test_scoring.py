"""Tests for score aggregation, levels and achievements."""

import pytest

from shopfloor.errors import EmptyHistoryError
from shopfloor.state import ModuleKind, Profile, Role, SessionState


class TestTurnScores:
    """Test the per-session score stack."""

    def test_apply_pushes_and_sums(self, scoring):
        state = SessionState()
        for delta in (30, -15, 30):
            state = scoring.apply_turn_score(state, delta)
        assert state.score_history == [30, -15, 30]
        assert state.total_score == 45
        assert state.turns_taken == 3

    def test_apply_does_not_mutate(self, scoring):
        state = SessionState()
        scoring.apply_turn_score(state, 30)
        assert state.score_history == []
        assert state.total_score == 0

    def test_record_advances_step(self, scoring):
        state = scoring.record_turn(SessionState(), 10)
        assert state.step_index == 1
        assert state.total_score == 10

    def test_undo_is_inverse_of_record(self, scoring):
        before = scoring.record_turn(SessionState(), 30)
        after = scoring.undo_last_turn(scoring.record_turn(before, -20))
        assert after == before

    def test_undo_twice(self, scoring):
        state = SessionState()
        state = scoring.record_turn(state, 30)
        state = scoring.record_turn(state, 10)
        state = scoring.undo_last_turn(state)
        state = scoring.undo_last_turn(state)
        assert state.step_index == 0
        assert state.total_score == 0
        assert state.score_history == []

    def test_undo_empty_raises(self, scoring):
        with pytest.raises(EmptyHistoryError):
            scoring.undo_last_turn(SessionState())


class TestLevels:
    """Test level thresholds."""

    @pytest.mark.parametrize("xp,expected", [
        (0, Role.JUNIOR),
        (1000, Role.JUNIOR),
        (1001, Role.MIDDLE),
        (2001, Role.SENIOR),
        (5000, Role.EXPERT),
    ])
    def test_thresholds_are_strict(self, scoring, xp, expected):
        assert scoring.level_for(xp, Role.JUNIOR) == expected

    def test_highest_threshold_wins(self, scoring):
        """A jump across several tiers lands on the highest one."""
        assert scoring.level_for(3500, Role.JUNIOR) == Role.EXPERT

    def test_kept_when_no_threshold_met(self, scoring):
        assert scoring.level_for(0, Role.SENIOR) == Role.SENIOR

    def test_drops_between_tiers(self, scoring):
        assert scoring.level_for(1900, Role.SENIOR) == Role.MIDDLE


class TestFinalizeSession:
    """Test folding a session into the profile."""

    def test_adds_xp_and_counts_module(self, scoring):
        profile = scoring.finalize_session(Profile(name="Anna"), 45, ModuleKind.QUIZ)
        assert profile.xp == 45
        assert profile.modules_completed == 1

    def test_input_not_mutated(self, scoring):
        original = Profile(name="Anna")
        scoring.finalize_session(original, 45, ModuleKind.QUIZ)
        assert original.xp == 0
        assert original.achievements == []

    def test_negative_xp_allowed(self, scoring):
        profile = scoring.finalize_session(Profile(name="Anna"), -100, ModuleKind.DIALOGUE)
        assert profile.xp == -100

    def test_promotion(self, scoring):
        profile = scoring.finalize_session(Profile(name="Anna", xp=990), 30, ModuleKind.SCENARIO)
        assert profile.level == Role.MIDDLE

    def test_xp_loss_recomputes_level(self, scoring):
        profile = Profile(name="Anna", xp=2100, level=Role.SENIOR)
        profile = scoring.finalize_session(profile, -200, ModuleKind.QUIZ)
        assert profile.level == Role.MIDDLE

    def test_first_module_granted_once(self, scoring):
        profile = scoring.finalize_session(Profile(name="Anna"), 10, ModuleKind.QUIZ)
        profile = scoring.finalize_session(profile, 10, ModuleKind.QUIZ)
        assert profile.achievements.count("first_module") == 1
        assert profile.achievements.count("quiz_runner") == 1

    def test_negotiator_needs_min_score(self, scoring):
        low = scoring.finalize_session(Profile(name="Anna"), 39, ModuleKind.DIALOGUE)
        high = scoring.finalize_session(Profile(name="Anna"), 40, ModuleKind.DIALOGUE)
        assert "negotiator" not in low.achievements
        assert "negotiator" in high.achievements

    def test_rising_star(self, scoring):
        profile = scoring.finalize_session(Profile(name="Anna", xp=1000), 1, ModuleKind.SCENARIO)
        assert "rising_star" in profile.achievements
        assert "scenario_closer" in profile.achievements
