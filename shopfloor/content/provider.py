"""
Content provider contract.

Generates quiz and scenario content and scores free text. The sessions
consume this interface only; every call may raise ContentGenerationError
or EvaluationError and every call site defines its own fallback.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Sequence

from ..errors import ContentGenerationError, EvaluationError
from ..state.schema import (
    DialogueTurn,
    FreeTextVerdict,
    Mood,
    Product,
    Question,
    Scenario,
    SessionAnalysis,
    SpellingCheck,
)


class ContentProvider(ABC):
    """Asynchronous source of practice content and evaluations."""

    @abstractmethod
    async def generate_choice_questions(self, n: int) -> list[Question]:
        """Return `n` quiz questions."""

    @abstractmethod
    async def generate_scenario(self) -> Scenario:
        """Return a fresh branching scenario."""

    @abstractmethod
    async def evaluate_free_text(self, question: str, answer: str) -> FreeTextVerdict:
        """Score a custom quiz answer."""

    @abstractmethod
    async def simulate_customer(
        self,
        transcript: Sequence[DialogueTurn],
        mood: Mood,
        product: Product,
    ) -> str:
        """Return the simulated customer's next line."""

    @abstractmethod
    async def evaluate_dialogue(
        self,
        context: str,
        transcript: Sequence[DialogueTurn],
    ) -> SessionAnalysis:
        """Holistic evaluation of a finished dialogue."""

    @abstractmethod
    async def check_spelling(self, text: str) -> SpellingCheck:
        """Spelling and grammar suggestion for a draft message."""


class ScriptedContentProvider(ContentProvider):
    """
    Deterministic provider for tests and demos.

    Each scripted queue is consumed in order; the last item repeats once the
    queue runs dry. An Exception instance in a queue is raised instead of
    returned. Setting `hold` to an asyncio.Event makes every call wait on it,
    which keeps a call in flight for as long as a test needs.
    """

    def __init__(
        self,
        questions: list[Question] | Exception | None = None,
        scenarios: list[Scenario | Exception] | None = None,
        verdicts: list[FreeTextVerdict | Exception] | None = None,
        customer_lines: list[str | Exception] | None = None,
        analyses: list[SessionAnalysis | Exception] | None = None,
        spelling: list[SpellingCheck | Exception] | None = None,
    ):
        self.questions = questions if questions is not None else []
        self._queues: dict[str, list[Any]] = {
            "scenario": list(scenarios or []),
            "verdict": list(verdicts or []),
            "customer": list(customer_lines or ["I see. Tell me more."]),
            "analysis": list(analyses or []),
            "spelling": list(spelling or [SpellingCheck(errors_found=False)]),
        }
        self.calls: list[tuple[str, tuple]] = []
        self.hold: asyncio.Event | None = None

    async def _next(self, queue: str, error: type[Exception], *args) -> Any:
        self.calls.append((queue, args))
        if self.hold is not None:
            await self.hold.wait()
        items = self._queues[queue]
        if not items:
            raise error(f"No scripted {queue} left")
        item = items.pop(0) if len(items) > 1 else items[0]
        if isinstance(item, Exception):
            raise item
        return item

    def call_count(self, queue: str) -> int:
        return sum(1 for name, _ in self.calls if name == queue)

    async def generate_choice_questions(self, n: int) -> list[Question]:
        self.calls.append(("questions", (n,)))
        if self.hold is not None:
            await self.hold.wait()
        if isinstance(self.questions, Exception):
            raise self.questions
        if not self.questions:
            raise ContentGenerationError("No scripted questions")
        return list(self.questions[:n])

    async def generate_scenario(self) -> Scenario:
        return await self._next("scenario", ContentGenerationError)

    async def evaluate_free_text(self, question: str, answer: str) -> FreeTextVerdict:
        return await self._next("verdict", EvaluationError, question, answer)

    async def simulate_customer(self, transcript, mood, product) -> str:
        return await self._next("customer", ContentGenerationError, len(transcript), mood)

    async def evaluate_dialogue(self, context, transcript) -> SessionAnalysis:
        return await self._next("analysis", EvaluationError, context, len(transcript))

    async def check_spelling(self, text: str) -> SpellingCheck:
        return await self._next("spelling", EvaluationError, text)
