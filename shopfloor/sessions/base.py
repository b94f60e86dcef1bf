"""
Shared machinery for the practice-mode state machines.

- TurnGuard: stale-result protection. Every question or turn gets a
  TurnKey; a provider result is applied only if its key is still current
  and nothing has resolved that turn yet.
- PracticeSession: phase enforcement, busy lock, exactly-once reporting.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, NamedTuple, Sequence

from ..config import DEFAULT_RULES, TrainerRules
from ..content.provider import ContentProvider
from ..errors import InvalidPhaseError, SessionBusyError
from ..scoring import ScoringEngine
from ..state.event_bus import EventBus, EventType, get_event_bus
from ..state.schema import EndReason, ModuleKind, Option, SessionState, generate_id

logger = logging.getLogger(__name__)


# Receives the final aggregate score of a session, once
ReportHook = Callable[[int], None]


class TurnKey(NamedTuple):
    """Identity of one question or turn within one session generation."""
    session_id: str
    generation: int
    index: int


class TurnGuard:
    """
    Tracks the single "answer already resolved" flag of the active turn.

    `invalidate()` bumps the generation so every outstanding key goes stale,
    used when content is discarded or the session closes.
    """

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._generation = 0
        self._index = 0
        self._resolved = False

    @property
    def current(self) -> TurnKey:
        return TurnKey(self.session_id, self._generation, self._index)

    @property
    def resolved(self) -> bool:
        return self._resolved

    def open(self, index: int) -> TurnKey:
        """Start a new turn and return its key."""
        self._index = index
        self._resolved = False
        return self.current

    def is_current(self, key: TurnKey) -> bool:
        return key == self.current and not self._resolved

    def claim(self, key: TurnKey) -> bool:
        """Resolve the turn for `key`. Succeeds at most once per turn."""
        if not self.is_current(key):
            return False
        self._resolved = True
        return True

    def invalidate(self) -> None:
        self._generation += 1
        self._resolved = True


class PracticeSession:
    """
    Base for the three practice modes.

    Subclasses define their phase enum, VALID_TRANSITIONS and MODULE_KIND.
    """

    MODULE_KIND: ModuleKind
    VALID_TRANSITIONS: dict[Enum, set[Enum]] = {}

    def __init__(
        self,
        provider: ContentProvider,
        scoring: ScoringEngine | None = None,
        rules: TrainerRules = DEFAULT_RULES,
        on_report: ReportHook | None = None,
        bus: EventBus | None = None,
    ):
        self.session_id = generate_id()
        self.provider = provider
        self.rules = rules
        self.scoring = scoring or ScoringEngine(rules)
        self.on_report = on_report
        self.bus = bus or get_event_bus()
        self.guard = TurnGuard(self.session_id)
        self.state = SessionState()
        self.end_reason: EndReason | None = None
        self.reported_score: int | None = None
        self.used_fallback = False
        self._busy = False
        self._phase: Enum

    # ─── Phase machine ───────────────────────────────────────────

    @property
    def phase(self) -> Enum:
        return self._phase

    @property
    def busy(self) -> bool:
        """Whether a provider call is outstanding."""
        return self._busy

    @property
    def total_score(self) -> int:
        return self.state.total_score

    def _transition(self, to: Enum) -> None:
        """Transition to a new phase, enforcing valid transitions."""
        if to not in self.VALID_TRANSITIONS.get(self._phase, set()):
            raise InvalidPhaseError(self._phase.value, f"transition to {to.value}")
        logger.debug(f"[{self.session_id}] {self._phase.value} -> {to.value}")
        self._phase = to

    def _require_phase(self, *allowed: Enum, action: str) -> None:
        if self._phase not in allowed:
            raise InvalidPhaseError(self._phase.value, action)

    @staticmethod
    def _pick_option(options: Sequence[Option], index: int) -> Option:
        if not 0 <= index < len(options):
            raise ValueError(f"Option index {index} out of range (0..{len(options) - 1})")
        return options[index]

    def _begin_call(self) -> None:
        if self._busy:
            raise SessionBusyError(f"Session {self.session_id} is waiting on the provider")
        self._busy = True

    def _end_call(self) -> None:
        self._busy = False

    # ─── Reporting ───────────────────────────────────────────────

    @property
    def reported(self) -> bool:
        return self.reported_score is not None

    def _report(self, score: int, reason: EndReason) -> bool:
        """
        Deliver the final score to the report hook.

        Returns False (and does nothing) if a score was already reported.
        """
        if self.reported:
            return False
        self.reported_score = score
        self.end_reason = reason
        self.bus.emit(
            EventType.SESSION_FINISHED,
            session_id=self.session_id,
            module=self.MODULE_KIND.value,
            score=score,
            reason=reason.value,
        )
        if self.on_report is not None:
            self.on_report(score)
        return True

    def _emit_started(self, **data) -> None:
        self.bus.emit(
            EventType.SESSION_STARTED,
            session_id=self.session_id,
            module=self.MODULE_KIND.value,
            fallback=self.used_fallback,
            **data,
        )
