"""
Open negotiation with a simulated customer.

    LOADING → CHATTING ⇄ AWAITING_CLIENT_REPLY → EVALUATED | FORCIBLY_ENDED

The customer's stress meter rises on curt replies and falls on considered
ones. Profanity or a maxed-out stress meter ends the session with a
penalty; otherwise the transcript is evaluated once, right after the
associate's fourth message. Every terminal outcome is written to the
registry history exactly once.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum

from ..config import DEFAULT_RULES, TrainerRules
from ..content.provider import ContentProvider
from ..errors import ContentGenerationError, EvaluationError, InvalidPhaseError, SessionBusyError
from ..moderation import ModerationFilter
from ..scoring import ScoringEngine
from ..state.event_bus import EventBus, EventType
from ..state.schema import (
    PRODUCTS,
    DialogueTurn,
    EndReason,
    ModuleKind,
    Mood,
    Product,
    SessionAnalysis,
    SessionState,
    SimulatorSessionRecord,
)
from ..state.store import ProgressStore
from .base import PracticeSession, ReportHook

logger = logging.getLogger(__name__)


class DialoguePhase(str, Enum):
    LOADING = "loading"
    CHATTING = "chatting"
    AWAITING_CLIENT_REPLY = "awaiting_client_reply"
    EVALUATED = "evaluated"
    FORCIBLY_ENDED = "forcibly_ended"
    CLOSED = "closed"


TERMINAL_PHASES = frozenset({
    DialoguePhase.EVALUATED,
    DialoguePhase.FORCIBLY_ENDED,
    DialoguePhase.CLOSED,
})


@dataclass(frozen=True)
class SpellingSuggestion:
    """A pending correction the associate may accept or dismiss."""
    original: str
    corrected: str
    explanation: str


class OpenDialogueSession(PracticeSession):
    """Free-form multi-turn negotiation with mood and stress simulation."""

    MODULE_KIND = ModuleKind.DIALOGUE
    VALID_TRANSITIONS = {
        DialoguePhase.LOADING: {DialoguePhase.CHATTING, DialoguePhase.CLOSED},
        DialoguePhase.CHATTING: {
            DialoguePhase.AWAITING_CLIENT_REPLY,
            DialoguePhase.FORCIBLY_ENDED,
            DialoguePhase.CLOSED,
            DialoguePhase.LOADING,
        },
        DialoguePhase.AWAITING_CLIENT_REPLY: {
            DialoguePhase.CHATTING,
            DialoguePhase.EVALUATED,
            DialoguePhase.FORCIBLY_ENDED,
            DialoguePhase.CLOSED,
        },
        DialoguePhase.EVALUATED: {DialoguePhase.LOADING},
        DialoguePhase.FORCIBLY_ENDED: {DialoguePhase.LOADING},
        DialoguePhase.CLOSED: set(),
    }

    def __init__(
        self,
        provider: ContentProvider,
        scoring: ScoringEngine | None = None,
        rules: TrainerRules = DEFAULT_RULES,
        on_report: ReportHook | None = None,
        bus: EventBus | None = None,
        store: ProgressStore | None = None,
        user_name: str | None = None,
        moderation: ModerationFilter | None = None,
        product: Product | None = None,
        mood: Mood = Mood.NEUTRAL,
    ):
        super().__init__(provider, scoring, rules, on_report, bus)
        self._phase = DialoguePhase.LOADING
        self.store = store
        self.user_name = user_name
        self.moderation = moderation or ModerationFilter()
        self.product = product or random.choice(PRODUCTS)
        self.mood = mood
        self.stress_level = self._stress_preset(mood)
        self.transcript: list[DialogueTurn] = []
        self.analysis: SessionAnalysis | None = None
        self.pending_suggestion: SpellingSuggestion | None = None
        self._evaluation_triggered = False
        self._persisted = False
        self._draft_version = 0

    # ─── Setup ───────────────────────────────────────────────────

    def _stress_preset(self, mood: Mood) -> int:
        if mood == Mood.IRRITATED:
            return self.rules.stress_irritated
        return self.rules.stress_initial

    def opening_line(self) -> str:
        return (
            f"Good afternoon. I'm looking at this {self.product.name}, "
            f"but {self.product.base_price:,} seems overpriced to me..."
        )

    async def start(self) -> None:
        """Open the conversation with the customer's first line."""
        self._require_phase(DialoguePhase.LOADING, action="start")
        self.transcript = [DialogueTurn(role="customer", text=self.opening_line())]
        self.guard.open(0)
        self._transition(DialoguePhase.CHATTING)
        self._emit_started(product=self.product.name, mood=self.mood.value)

    def set_mood(self, mood: Mood) -> None:
        """
        Choose the customer's mood. Resets the stress meter to its preset.

        Only allowed before the associate's first message.
        """
        if self._phase not in (DialoguePhase.LOADING, DialoguePhase.CHATTING) or self.staff_turns:
            raise InvalidPhaseError(self._phase.value, "change mood after the conversation started")
        self.mood = mood
        self.stress_level = self._stress_preset(mood)

    async def new_client(self, product: Product | None = None, mood: Mood | None = None) -> None:
        """Start over with another customer. The finished dialogue is kept in history."""
        if self.busy:
            raise SessionBusyError(f"Session {self.session_id} is waiting on the provider")
        if self._phase == DialoguePhase.CLOSED:
            raise InvalidPhaseError(self._phase.value, "start a new client")

        self.guard.invalidate()
        if self._phase != DialoguePhase.LOADING:
            self._transition(DialoguePhase.LOADING)
        self.product = product or random.choice(PRODUCTS)
        self.mood = mood or self.mood
        self.stress_level = self._stress_preset(self.mood)
        self.transcript = []
        self.analysis = None
        self.pending_suggestion = None
        self.state = SessionState()
        self.reported_score = None
        self.end_reason = None
        self._evaluation_triggered = False
        self._persisted = False
        await self.start()

    def close(self) -> None:
        """Leave mid-conversation. Late provider replies are discarded."""
        self.guard.invalidate()
        self.pending_suggestion = None
        if self._phase not in TERMINAL_PHASES:
            self._transition(DialoguePhase.CLOSED)
            self.bus.emit(EventType.SESSION_CLOSED, session_id=self.session_id, module=self.MODULE_KIND.value)

    # ─── Properties ──────────────────────────────────────────────

    @property
    def staff_turns(self) -> int:
        return sum(1 for turn in self.transcript if turn.role == "staff")

    @property
    def is_over(self) -> bool:
        return self._phase in TERMINAL_PHASES

    @property
    def customer_left(self) -> bool:
        return self._phase == DialoguePhase.FORCIBLY_ENDED

    # ─── Conversation ────────────────────────────────────────────

    def _apply_stress(self, text: str) -> int:
        rules = self.rules
        if len(text) < rules.short_message_length:
            self.stress_level = min(self.stress_level + rules.short_message_stress, rules.stress_max)
        else:
            self.stress_level = max(self.stress_level - rules.long_message_relief, rules.stress_min)
        return self.stress_level

    async def send(self, text: str) -> str | None:
        """
        Send the associate's message and run one turn.

        Returns the customer's reply (or final line), or None when nothing
        happened: blank text, a finished session, or a reply that arrived
        after the session closed.

        Raises:
            SessionBusyError: If a previous message is still being answered
        """
        if not text.strip() or self.is_over:
            return None
        if self.busy:
            raise SessionBusyError(f"Session {self.session_id} is waiting on the provider")
        self._require_phase(DialoguePhase.CHATTING, action="send a message")

        self.pending_suggestion = None
        self._draft_version += 1

        violation = self.moderation.first_violation(text)
        if violation is not None:
            logger.info(f"[{self.session_id}] Moderation violation ({violation!r}), customer leaves")
            self.transcript.append(DialogueTurn(role="staff", text=text))
            self._force_end(
                self.rules.profanity_reply,
                self.rules.profanity_penalty,
                EndReason.MODERATION_VIOLATION,
            )
            return self.rules.profanity_reply

        self.transcript.append(DialogueTurn(role="staff", text=text))
        self._transition(DialoguePhase.AWAITING_CLIENT_REPLY)
        key = self.guard.open(self.staff_turns)

        self._begin_call()
        try:
            reply = await self.provider.simulate_customer(list(self.transcript), self.mood, self.product)
        except ContentGenerationError as e:
            logger.warning(f"[{self.session_id}] Customer reply failed: {e}")
            reply = self.rules.stalled_reply
        finally:
            self._end_call()

        if not self.guard.claim(key):
            logger.debug(f"[{self.session_id}] Discarding late customer reply")
            return None

        stress = self._apply_stress(text)
        if stress >= self.rules.stress_max:
            logger.info(f"[{self.session_id}] Stress reached {stress}, customer leaves")
            self._force_end(
                self.rules.walkout_reply,
                self.rules.walkout_penalty,
                EndReason.CUSTOMER_LEFT,
            )
            return self.rules.walkout_reply

        self.transcript.append(DialogueTurn(role="customer", text=reply))

        if self.staff_turns == self.rules.evaluation_staff_turns and not self._evaluation_triggered:
            await self._evaluate()
        else:
            self._transition(DialoguePhase.CHATTING)
        return reply

    def evaluation_context(self) -> str:
        return f"Conversation about {self.product.name} priced at {self.product.base_price:,}."

    async def _evaluate(self) -> None:
        """Run the single holistic evaluation and finish the session."""
        self._evaluation_triggered = True
        key = self.guard.open(self.staff_turns)

        self._begin_call()
        try:
            analysis = await self.provider.evaluate_dialogue(self.evaluation_context(), list(self.transcript))
        except EvaluationError as e:
            logger.warning(f"[{self.session_id}] Dialogue evaluation failed: {e}")
            analysis = SessionAnalysis(
                score=0,
                satisfaction_percent=50,
                feedback=self.rules.evaluation_fallback_feedback,
            )
        finally:
            self._end_call()

        if not self.guard.claim(key):
            logger.debug(f"[{self.session_id}] Discarding late evaluation")
            return

        self.analysis = analysis
        self.state = self.scoring.apply_turn_score(self.state, analysis.score)
        self.state = self.state.model_copy(update={"finished": True})
        self._transition(DialoguePhase.EVALUATED)
        self._persist(left=False, score=analysis.score)
        self._report(analysis.score, EndReason.COMPLETED)

    def _force_end(self, reply: str, penalty: int, reason: EndReason) -> None:
        self.transcript.append(DialogueTurn(role="customer", text=reply))
        self.state = self.scoring.apply_turn_score(self.state, penalty)
        self.state = self.state.model_copy(update={"finished": True, "forcibly_ended": True})
        self._transition(DialoguePhase.FORCIBLY_ENDED)
        self.bus.emit(
            EventType.SESSION_PENALTY,
            session_id=self.session_id,
            module=self.MODULE_KIND.value,
            reason=reason.value,
            penalty=penalty,
        )
        self._persist(left=True, score=penalty)
        self._report(penalty, reason)

    def _persist(self, *, left: bool, score: int) -> bool:
        """Write this dialogue to the registry history. Once per outcome."""
        if self._persisted:
            return False
        self._persisted = True
        if self.store is None or not self.user_name:
            return False

        record = SimulatorSessionRecord(
            product=self.product.name,
            price=self.product.base_price,
            mood=self.mood,
            messages=list(self.transcript),
            left=left,
            score=score,
            metrics=self.analysis,
        )
        return self.store.append_session_history(self.user_name, record)

    # ─── Spelling assist ─────────────────────────────────────────

    async def check_spelling(self, text: str) -> SpellingSuggestion | None:
        """
        Ask for a correction of a draft message.

        Advisory only: never blocks send(), failures are ignored, and a
        result for a draft that was edited meanwhile is dropped.
        """
        if not text.strip() or self.is_over:
            return None

        self.pending_suggestion = None
        version = self._draft_version
        try:
            result = await self.provider.check_spelling(text)
        except (EvaluationError, ContentGenerationError) as e:
            logger.debug(f"[{self.session_id}] Spelling check unavailable: {e}")
            return None

        if version != self._draft_version or self.is_over:
            return None
        if not result.errors_found:
            return None

        self.pending_suggestion = SpellingSuggestion(
            original=text,
            corrected=result.corrected_text,
            explanation=result.explanation,
        )
        return self.pending_suggestion

    def accept_suggestion(self) -> str | None:
        """Take the corrected text and clear the suggestion."""
        suggestion = self.pending_suggestion
        self.pending_suggestion = None
        return suggestion.corrected if suggestion else None

    def dismiss_suggestion(self) -> None:
        self.pending_suggestion = None

    def edit_input(self) -> None:
        """The draft changed; any suggestion for the old draft is void."""
        self._draft_version += 1
        self.pending_suggestion = None
