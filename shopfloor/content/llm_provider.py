"""
ContentProvider backed by a chat LLM.

Each operation sends one JSON-mode prompt, extracts the JSON from the reply
and validates it with pydantic. Backend chat calls block, so they run in a
worker thread to keep the event loop responsive.
"""

import asyncio
import logging
from typing import Sequence

from pydantic import BaseModel, Field

from ..errors import ContentGenerationError, EvaluationError
from ..llm.base import LLMClient, Message
from ..state.schema import (
    DialogueTurn,
    FreeTextVerdict,
    Mood,
    Option,
    Product,
    Question,
    Scenario,
    ScenarioStep,
    SessionAnalysis,
    SpellingCheck,
)
from .parsing import parse_model
from .provider import ContentProvider

logger = logging.getLogger(__name__)


STORE_CONTEXT = (
    "You generate training material for sales associates in a consumer "
    "electronics and home appliance retail chain."
)

QUESTIONS_PROMPT = """Generate {n} random customer questions for a store associate.
Questions must be short and clear (max 10 words). For each give 3 answer options:
1. Ideal (+30 XP, clear and to the point), 2. Questionable (-15 XP, risky), 3. Failing (-40 XP).
Topics: price, availability, warranty, discounts. Keep all texts as concise as possible.
Reply with JSON only: {{"questions": [{{"q": str, "options": [{{"text": str, "score": int, "feedback": str}}]}}]}}"""

SCENARIO_PROMPT = """Generate a random in-store sales scenario. Pick one product (home appliance or electronics).
Create 3 dialogue steps. At each step the customer asks a question or raises an objection;
give 3 answer options: ideal (+30 XP), average (+10 XP) and failing (-20 XP).
Reply with JSON only: {"product": str, "steps": [{"client": str, "options": [{"text": str, "score": int, "feedback": str}]}]}"""

FREE_TEXT_PROMPT = """Evaluate the associate's answer to the customer question: "{question}".
Associate's answer: "{answer}".
Give an XP score between -50 and +50 and very short feedback (max 1 sentence).
Reply with JSON only: {{"score": int, "feedback": str}}"""

CUSTOMER_SYSTEM = """You are a customer in the store negotiating over: {product} priced at {price}.
Your mood: {mood}. Stay in character, reply in one or two sentences, push back on price
and ask about value. Never break character and never evaluate the associate."""

DIALOGUE_EVAL_PROMPT = """{context}
Evaluate the associate's performance in this conversation:
{transcript}
Reply with JSON only: {{"score": int between -50 and 100, "satisfactionPercent": int 0-100, "feedback": str}}"""

SPELLING_PROMPT = """Check the following message for spelling and grammar errors:
"{text}"
Reply with JSON only: {{"errorsFound": bool, "correctedText": str, "explanation": str}}"""

MOOD_DESCRIPTIONS = {
    Mood.NEUTRAL: "neutral, curious but price-conscious",
    Mood.IRRITATED: "irritated, impatient and quick to leave",
    Mood.DOUBTFUL: "doubtful, unsure the product is worth it",
}


class _WireStep(BaseModel):
    client: str
    options: list[Option] = Field(min_length=1)


class _WireScenario(BaseModel):
    product: str
    steps: list[_WireStep] = Field(min_length=1)


class _WireQuestion(BaseModel):
    q: str
    options: list[Option] = Field(min_length=1)


class _WireQuestionSet(BaseModel):
    questions: list[_WireQuestion] = Field(min_length=1)


def format_transcript(transcript: Sequence[DialogueTurn]) -> str:
    """Render a transcript as `Associate:`/`Customer:` lines."""
    labels = {"staff": "Associate", "customer": "Customer"}
    return "\n".join(f"{labels[turn.role]}: {turn.text}" for turn in transcript)


class LLMContentProvider(ContentProvider):
    """Generates and evaluates content through an LLMClient."""

    def __init__(self, client: LLMClient, temperature: float = 0.8):
        self.client = client
        self.temperature = temperature

    async def _ask(self, prompt: str, system: str = STORE_CONTEXT, json_mode: bool = True) -> str:
        response = await asyncio.to_thread(
            self.client.chat,
            [Message(role="user", content=prompt)],
            system=system,
            temperature=self.temperature,
            json_mode=json_mode,
        )
        return response.content

    async def _ask_safely(self, prompt: str, error: type[Exception], **kwargs) -> str:
        try:
            return await self._ask(prompt, **kwargs)
        except (ConnectionError, RuntimeError, OSError) as e:
            logger.warning(f"LLM call failed: {e}")
            raise error(str(e)) from e

    async def generate_choice_questions(self, n: int) -> list[Question]:
        raw = await self._ask_safely(QUESTIONS_PROMPT.format(n=n), ContentGenerationError)
        wire = parse_model(raw, _WireQuestionSet)
        return [Question(prompt=q.q, options=tuple(q.options)) for q in wire.questions[:n]]

    async def generate_scenario(self) -> Scenario:
        raw = await self._ask_safely(SCENARIO_PROMPT, ContentGenerationError)
        wire = parse_model(raw, _WireScenario)
        return Scenario(
            product=wire.product,
            steps=tuple(ScenarioStep(client_line=s.client, options=tuple(s.options)) for s in wire.steps),
        )

    async def evaluate_free_text(self, question: str, answer: str) -> FreeTextVerdict:
        raw = await self._ask_safely(
            FREE_TEXT_PROMPT.format(question=question, answer=answer), EvaluationError
        )
        verdict = parse_model(raw, FreeTextVerdict, error=EvaluationError)
        clamped = max(-50, min(50, verdict.score))
        return verdict.model_copy(update={"score": clamped})

    async def simulate_customer(
        self,
        transcript: Sequence[DialogueTurn],
        mood: Mood,
        product: Product,
    ) -> str:
        system = CUSTOMER_SYSTEM.format(
            product=product.name,
            price=f"{product.base_price:,}",
            mood=MOOD_DESCRIPTIONS.get(mood, mood.value),
        )
        # From the model's side the customer is the assistant
        messages = [
            Message(role="user" if turn.role == "staff" else "assistant", content=turn.text)
            for turn in transcript
        ]
        try:
            response = await asyncio.to_thread(
                self.client.chat, messages, system=system, temperature=self.temperature
            )
        except (ConnectionError, RuntimeError, OSError) as e:
            logger.warning(f"Customer simulation failed: {e}")
            raise ContentGenerationError(str(e)) from e

        line = response.content.strip()
        if not line:
            raise ContentGenerationError("Empty customer reply")
        return line

    async def evaluate_dialogue(
        self,
        context: str,
        transcript: Sequence[DialogueTurn],
    ) -> SessionAnalysis:
        prompt = DIALOGUE_EVAL_PROMPT.format(context=context, transcript=format_transcript(transcript))
        raw = await self._ask_safely(prompt, EvaluationError)
        return parse_model(raw, SessionAnalysis, error=EvaluationError)

    async def check_spelling(self, text: str) -> SpellingCheck:
        raw = await self._ask_safely(SPELLING_PROMPT.format(text=text), EvaluationError)
        return parse_model(raw, SpellingCheck, error=EvaluationError)
