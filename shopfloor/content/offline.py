"""
Built-in content used when generation is unavailable.

Sessions fall back to this set when the first content fetch fails, so a
dead backend never leaves a session stuck loading.
"""

import itertools

from ..errors import EvaluationError
from ..state.schema import (
    Option,
    Question,
    Scenario,
    ScenarioStep,
    SpellingCheck,
)
from .provider import ContentProvider


OFFLINE_QUESTIONS: tuple[Question, ...] = (
    Question(
        prompt="Is this cheaper anywhere else?",
        options=(
            Option(text="We match verified competitor prices, let me check now.", score=30,
                   feedback="Clear and confident, and you keep the customer in the store."),
            Option(text="Maybe, prices change all the time.", score=-15,
                   feedback="Vague answers push the customer to go and compare."),
            Option(text="Then go buy it there.", score=-40,
                   feedback="You just sent the customer to a competitor."),
        ),
    ),
    Question(
        prompt="Do you have it in stock today?",
        options=(
            Option(text="Yes, two units in the back. Want me to hold one?", score=30,
                   feedback="Direct answer plus a next step."),
            Option(text="I think so, the system sometimes lags.", score=-15,
                   feedback="Uncertainty undermines trust. Check before answering."),
            Option(text="No idea, ask someone else.", score=-40,
                   feedback="Never hand a customer off without help."),
        ),
    ),
    Question(
        prompt="What does the warranty cover?",
        options=(
            Option(text="Two years on parts and labour, plus optional extended cover.", score=30,
                   feedback="Precise and opens an upsell."),
            Option(text="The usual stuff, it's in the box.", score=-15,
                   feedback="Know your warranty terms."),
            Option(text="Warranties never pay out anyway.", score=-40,
                   feedback="Undermining the product loses the sale."),
        ),
    ),
    Question(
        prompt="Can I get a discount?",
        options=(
            Option(text="There's a bundle offer with the extended warranty today.", score=30,
                   feedback="You redirected a discount request into value."),
            Option(text="I'll ask the manager, but probably not.", score=-15,
                   feedback="Don't pre-empt the answer with a no."),
            Option(text="Prices are fixed, take it or leave it.", score=-40,
                   feedback="Too blunt. The customer will leave."),
        ),
    ),
)


OFFLINE_SCENARIO = Scenario(
    product="LG Steam Washing Machine",
    steps=(
        ScenarioStep(
            client_line="I saw this machine online for less. Why should I buy it here?",
            options=(
                Option(text="We deliver and install for free today, and you get our service warranty.",
                       score=30, feedback="Strong value argument."),
                Option(text="Our price is a bit higher, but it's fine.", score=10,
                       feedback="Acceptable, but you gave no reason to buy here."),
                Option(text="Then buy it online.", score=-20,
                       feedback="You gave the sale away."),
            ),
        ),
        ScenarioStep(
            client_line="Is the steam function really worth it?",
            options=(
                Option(text="It removes allergens and refreshes clothes without a full wash.",
                       score=30, feedback="Concrete benefit tied to the customer's life."),
                Option(text="Most people like it.", score=10,
                       feedback="Social proof helps, but name the benefit."),
                Option(text="Not really, it's a gimmick.", score=-20,
                       feedback="Never dismiss the feature you're selling."),
            ),
        ),
        ScenarioStep(
            client_line="Okay, but I need to think about it.",
            options=(
                Option(text="Of course. I can hold it until tomorrow at today's price.",
                       score=30, feedback="Respectful and creates a reason to return."),
                Option(text="Sure, here's a leaflet.", score=10,
                       feedback="Polite, but the customer leaves with nothing binding."),
                Option(text="The price might go up tomorrow, decide now.", score=-20,
                       feedback="Pressure tactics break trust."),
            ),
        ),
    ),
)


OFFLINE_CUSTOMER_LINES: tuple[str, ...] = (
    "Hmm. And what do I get for that price?",
    "Other stores offer a gift with purchase. Can you?",
    "I'm still not sure it's worth it.",
    "What if it breaks after a year?",
)


class OfflineContentProvider(ContentProvider):
    """
    Serves the built-in content.

    Free-text and dialogue evaluation are unavailable offline, so those calls
    raise EvaluationError and the sessions apply their neutral fallbacks.
    """

    def __init__(self):
        self._customer_lines = itertools.cycle(OFFLINE_CUSTOMER_LINES)

    async def generate_choice_questions(self, n: int) -> list[Question]:
        return list(OFFLINE_QUESTIONS[:n])

    async def generate_scenario(self) -> Scenario:
        return OFFLINE_SCENARIO

    async def evaluate_free_text(self, question, answer):
        raise EvaluationError("Free-text evaluation is not available offline")

    async def simulate_customer(self, transcript, mood, product) -> str:
        return next(self._customer_lines)

    async def evaluate_dialogue(self, context, transcript):
        raise EvaluationError("Dialogue evaluation is not available offline")

    async def check_spelling(self, text: str) -> SpellingCheck:
        return SpellingCheck(errors_found=False, corrected_text=text)
