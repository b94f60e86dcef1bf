"""
Branching sales scenario with undo.

    LOADING → AT_STEP(0) → AT_STEP(1) → ... → FINISHED
    AT_STEP(i) → AT_STEP(i-1)   (back)
    AT_STEP(0) → CLOSED         (back at the first step: abandon)

A "new situation" discards the current scenario and score sheet and loads
a fresh one.
"""

from __future__ import annotations

import logging
from enum import Enum

from ..content.offline import OFFLINE_SCENARIO
from ..errors import ContentGenerationError, EmptyHistoryError
from ..state.event_bus import EventType
from ..state.schema import EndReason, ModuleKind, Option, Scenario, ScenarioStep, SessionState
from .base import PracticeSession

logger = logging.getLogger(__name__)


class ScenarioPhase(str, Enum):
    LOADING = "loading"
    AT_STEP = "at_step"
    FINISHED = "finished"
    CLOSED = "closed"


class BranchingScenarioSession(PracticeSession):
    """Multi-step decision tree with a LIFO score stack for undo."""

    MODULE_KIND = ModuleKind.SCENARIO
    VALID_TRANSITIONS = {
        ScenarioPhase.LOADING: {ScenarioPhase.AT_STEP, ScenarioPhase.CLOSED},
        ScenarioPhase.AT_STEP: {ScenarioPhase.FINISHED, ScenarioPhase.CLOSED, ScenarioPhase.LOADING},
        ScenarioPhase.FINISHED: {ScenarioPhase.LOADING},
        ScenarioPhase.CLOSED: set(),
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._phase = ScenarioPhase.LOADING
        self.scenario: Scenario | None = None
        self.last_feedback: str | None = None

    # ─── Loading ─────────────────────────────────────────────────

    async def _load(self) -> None:
        self._begin_call()
        try:
            scenario = await self.provider.generate_scenario()
        except ContentGenerationError as e:
            logger.warning(f"[{self.session_id}] Scenario generation failed, using offline scenario: {e}")
            scenario = OFFLINE_SCENARIO
            self.used_fallback = True
        finally:
            self._end_call()

        if self._phase != ScenarioPhase.LOADING:
            return  # closed while loading

        self.scenario = scenario
        self.state = SessionState()
        self.last_feedback = None
        self.guard.open(0)
        self._transition(ScenarioPhase.AT_STEP)
        self._emit_started(product=scenario.product, steps=len(scenario.steps))

    async def start(self) -> None:
        self._require_phase(ScenarioPhase.LOADING, action="start")
        await self._load()

    async def new_situation(self) -> None:
        """Discard the current scenario and score, then load a fresh one."""
        self._require_phase(ScenarioPhase.AT_STEP, ScenarioPhase.FINISHED, action="request a new situation")
        self.guard.invalidate()
        self.scenario = None
        self.state = SessionState()
        self.used_fallback = False
        self.reported_score = None
        self.end_reason = None
        self._transition(ScenarioPhase.LOADING)
        await self._load()

    # ─── Steps ───────────────────────────────────────────────────

    @property
    def current_step(self) -> ScenarioStep | None:
        if self._phase != ScenarioPhase.AT_STEP or self.scenario is None:
            return None
        return self.scenario.steps[self.state.step_index]

    @property
    def is_last_step(self) -> bool:
        return self.scenario is not None and self.state.step_index >= len(self.scenario.steps) - 1

    def choose(self, index: int) -> Option:
        """
        Pick an option at the current step.

        Applies its score and advances; on the last step finalizes the
        scenario and reports the total.
        """
        self._require_phase(ScenarioPhase.AT_STEP, action="choose an option")
        option = self._pick_option(self.current_step.options, index)
        self.last_feedback = option.feedback

        if self.is_last_step:
            self.state = self.scoring.apply_turn_score(self.state, option.score)
            self.state = self.state.model_copy(update={"finished": True})
            self._transition(ScenarioPhase.FINISHED)
            self._report(self.state.total_score, EndReason.COMPLETED)
        else:
            self.state = self.scoring.record_turn(self.state, option.score)
            self.guard.open(self.state.step_index)
        return option

    def back(self) -> bool:
        """
        Undo the previous choice.

        At the first step this abandons the scenario without reporting.
        Returns True if the session stepped back, False if it closed.
        """
        self._require_phase(ScenarioPhase.AT_STEP, action="go back")
        if self.state.step_index == 0:
            self.close()
            return False

        try:
            self.state = self.scoring.undo_last_turn(self.state)
        except EmptyHistoryError:
            logger.warning(f"[{self.session_id}] Undo with empty history, abandoning")
            self.close()
            return False

        self.last_feedback = None
        self.guard.open(self.state.step_index)
        return True

    def close(self) -> None:
        """Leave the scenario. Nothing is reported unless it already finished."""
        self.guard.invalidate()
        if self._phase in (ScenarioPhase.LOADING, ScenarioPhase.AT_STEP):
            self._transition(ScenarioPhase.CLOSED)
            self.bus.emit(EventType.SESSION_CLOSED, session_id=self.session_id, module=self.MODULE_KIND.value)
