"""
Timed multiple-choice quiz.

    LOADING → AWAITING_ANSWER ⇄ CUSTOM_ANSWER → SHOWING_FEEDBACK
            → AWAITING_ANSWER (next question) | FINISHED

Each question runs a countdown. Picking an option applies its fixed score;
letting the countdown run out applies the timeout penalty. A custom answer
pauses the countdown and is scored by the provider. Custom answers are not
run through moderation in this mode.
"""

from __future__ import annotations

import logging
from enum import Enum

from ..config import DEFAULT_RULES, TrainerRules
from ..content.offline import OFFLINE_QUESTIONS
from ..content.provider import ContentProvider
from ..errors import ContentGenerationError, EvaluationError
from ..scoring import ScoringEngine
from ..state.event_bus import EventBus, EventType
from ..state.schema import EndReason, ModuleKind, Question
from ..state.store import ProgressStore
from .base import PracticeSession, ReportHook, TurnKey
from .countdown import Countdown

logger = logging.getLogger(__name__)


class QuizPhase(str, Enum):
    LOADING = "loading"
    AWAITING_ANSWER = "awaiting_answer"
    CUSTOM_ANSWER = "custom_answer"
    SHOWING_FEEDBACK = "showing_feedback"
    FINISHED = "finished"
    CLOSED = "closed"


TERMINAL_PHASES = frozenset({QuizPhase.FINISHED, QuizPhase.CLOSED})


class TimedChoiceSession(PracticeSession):
    """Countdown-driven quiz, one question at a time."""

    MODULE_KIND = ModuleKind.QUIZ
    VALID_TRANSITIONS = {
        QuizPhase.LOADING: {QuizPhase.AWAITING_ANSWER, QuizPhase.CLOSED},
        QuizPhase.AWAITING_ANSWER: {
            QuizPhase.CUSTOM_ANSWER, QuizPhase.SHOWING_FEEDBACK, QuizPhase.CLOSED,
        },
        QuizPhase.CUSTOM_ANSWER: {
            QuizPhase.AWAITING_ANSWER, QuizPhase.SHOWING_FEEDBACK, QuizPhase.CLOSED,
        },
        QuizPhase.SHOWING_FEEDBACK: {
            QuizPhase.AWAITING_ANSWER, QuizPhase.FINISHED, QuizPhase.CLOSED,
        },
        QuizPhase.FINISHED: set(),
        QuizPhase.CLOSED: set(),
    }

    def __init__(
        self,
        provider: ContentProvider,
        scoring: ScoringEngine | None = None,
        rules: TrainerRules = DEFAULT_RULES,
        on_report: ReportHook | None = None,
        bus: EventBus | None = None,
        store: ProgressStore | None = None,
        user_name: str = "Anonymous",
        use_timer: bool = True,
    ):
        super().__init__(provider, scoring, rules, on_report, bus)
        self._phase = QuizPhase.LOADING
        self.store = store
        self.user_name = user_name
        self.questions: list[Question] = []
        self.time_left = rules.countdown_budget
        self.last_feedback: str | None = None
        self.last_delta: int | None = None
        self.timed_out = False
        self._countdown = Countdown(self.tick, rules.tick_seconds) if use_timer else None

    # ─── Lifecycle ───────────────────────────────────────────────

    async def start(self) -> None:
        """Fetch questions and open the first one."""
        self._require_phase(QuizPhase.LOADING, action="start")
        self._begin_call()
        try:
            questions = await self.provider.generate_choice_questions(self.rules.question_count)
        except ContentGenerationError as e:
            logger.warning(f"[{self.session_id}] Question generation failed, using offline set: {e}")
            questions = []
        finally:
            self._end_call()

        if self._phase != QuizPhase.LOADING:
            return  # closed while loading

        if not questions:
            questions = list(OFFLINE_QUESTIONS[: self.rules.question_count])
            self.used_fallback = True

        self.questions = questions
        self._emit_started(questions=len(questions))
        self._open_question(0)

    def close(self) -> None:
        """Leave the quiz. Nothing is reported unless it already finished."""
        self._stop_timer()
        self.guard.invalidate()
        if self._phase not in TERMINAL_PHASES:
            self._transition(QuizPhase.CLOSED)
            self.bus.emit(EventType.SESSION_CLOSED, session_id=self.session_id, module=self.MODULE_KIND.value)

    @property
    def current_question(self) -> Question | None:
        if not self.questions or self._phase in TERMINAL_PHASES:
            return None
        return self.questions[self.state.step_index]

    @property
    def is_last_question(self) -> bool:
        return self.state.step_index >= len(self.questions) - 1

    # ─── Countdown ───────────────────────────────────────────────

    def _start_timer(self) -> None:
        if self._countdown is not None:
            self._countdown.start()

    def _stop_timer(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()

    def tick(self) -> bool:
        """
        Advance the countdown by one unit.

        Only counts while a question is awaiting an answer. Returns True if
        the countdown should keep running.
        """
        if self._phase != QuizPhase.AWAITING_ANSWER or self.guard.resolved:
            return False

        self.time_left -= 1
        if self.time_left > 0:
            return True

        self.time_left = 0
        if self._resolve(self.guard.current, self.rules.timeout_penalty, self.rules.timeout_feedback):
            self.timed_out = True
            logger.info(f"[{self.session_id}] Question {self.state.step_index + 1} timed out")
            self.bus.emit(
                EventType.SESSION_PENALTY,
                session_id=self.session_id,
                module=self.MODULE_KIND.value,
                reason="timeout",
                penalty=self.rules.timeout_penalty,
            )
        return False

    # ─── Answers ─────────────────────────────────────────────────

    def _open_question(self, index: int) -> None:
        self.state = self.state.model_copy(update={"step_index": index})
        self.time_left = self.rules.countdown_budget
        self.last_feedback = None
        self.last_delta = None
        self.timed_out = False
        self.guard.open(index)
        self._transition(QuizPhase.AWAITING_ANSWER)
        self._start_timer()

    def _resolve(self, key: TurnKey, delta: int, feedback: str) -> bool:
        """Apply an answer if its turn is still open. At most once per question."""
        if not self.guard.claim(key):
            logger.debug(f"[{self.session_id}] Discarding stale answer for {key}")
            return False

        self._stop_timer()
        self.state = self.scoring.apply_turn_score(self.state, delta)
        self.last_delta = delta
        self.last_feedback = feedback
        self._transition(QuizPhase.SHOWING_FEEDBACK)
        return True

    def select_option(self, index: int) -> bool:
        """
        Answer with one of the provided options.

        Returns False when the question is no longer accepting answers
        (e.g. it already timed out).
        """
        if self._phase != QuizPhase.AWAITING_ANSWER:
            return False
        option = self._pick_option(self.current_question.options, index)
        return self._resolve(self.guard.current, option.score, option.feedback)

    def enter_custom_answer(self) -> None:
        """Switch to free-text entry. The countdown pauses."""
        self._require_phase(QuizPhase.AWAITING_ANSWER, action="enter a custom answer")
        self._stop_timer()
        self._transition(QuizPhase.CUSTOM_ANSWER)

    def cancel_custom_answer(self) -> None:
        """Back to the options. The countdown resumes where it stopped."""
        self._require_phase(QuizPhase.CUSTOM_ANSWER, action="cancel a custom answer")
        if self.busy:
            return
        self._transition(QuizPhase.AWAITING_ANSWER)
        self._start_timer()

    async def submit_custom_answer(self, text: str) -> bool:
        """
        Score a free-text answer through the provider.

        The raw submission is written to the audit log first. Provider
        failure falls back to a fixed acceptance score pending human review.
        Returns True if the answer was applied.
        """
        self._require_phase(QuizPhase.CUSTOM_ANSWER, action="submit a custom answer")
        if not text.strip():
            return False

        question = self.current_question
        key = self.guard.current
        self._begin_call()
        try:
            if self.store is not None:
                self.store.append_custom_response(self.user_name, question.prompt, text)
            verdict = await self.provider.evaluate_free_text(question.prompt, text)
            delta, feedback = verdict.score, verdict.feedback
        except (EvaluationError, ContentGenerationError) as e:
            logger.warning(f"[{self.session_id}] Custom answer evaluation failed: {e}")
            delta = self.rules.custom_answer_fallback_score
            feedback = self.rules.custom_answer_fallback_feedback
        finally:
            self._end_call()

        if self._phase != QuizPhase.CUSTOM_ANSWER:
            return False
        return self._resolve(key, delta, feedback)

    def advance(self) -> bool:
        """
        Move past the feedback screen.

        After the last question the total is reported once and the session
        finishes; calling again afterwards is a no-op.
        """
        if self._phase in TERMINAL_PHASES:
            return False
        self._require_phase(QuizPhase.SHOWING_FEEDBACK, action="advance")

        if not self.is_last_question:
            self._open_question(self.state.step_index + 1)
            return True

        self.state = self.state.model_copy(update={"finished": True})
        self._transition(QuizPhase.FINISHED)
        self._report(self.state.total_score, EndReason.COMPLETED)
        return True
