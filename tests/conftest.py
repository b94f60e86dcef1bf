"""
Pytest fixtures for Shopfloor Trainer tests.

Provides in-memory stores, scripted content and mock clients for isolated
testing.
"""

import pytest

from shopfloor.config import DEFAULT_RULES
from shopfloor.content import ScriptedContentProvider
from shopfloor.llm import MockLLMClient
from shopfloor.scoring import ScoringEngine
from shopfloor.state import (
    EventBus,
    MemoryProgressBackend,
    Option,
    Product,
    Profile,
    ProgressStore,
    Question,
    Scenario,
    ScenarioStep,
    reset_event_bus,
)


@pytest.fixture(autouse=True)
def fresh_event_bus():
    """Each test gets an empty global bus."""
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def rules():
    return DEFAULT_RULES


@pytest.fixture
def scoring(rules):
    return ScoringEngine(rules)


@pytest.fixture
def memory_backend():
    """In-memory document storage for testing."""
    return MemoryProgressBackend()


@pytest.fixture
def store(memory_backend):
    """Progress store with in-memory backend."""
    return ProgressStore(memory_backend)


@pytest.fixture
def profile():
    return Profile(name="Anna", store="Central")


@pytest.fixture
def registered_store(store, profile):
    """Store with Anna already in the registry."""
    store.save(profile)
    return store


@pytest.fixture
def product():
    return Product(name="Test Kettle", base_price=4990)


@pytest.fixture
def questions():
    """Three questions whose first options score +30, -15 and +30."""
    return [
        Question(prompt="Q1", options=(
            Option(text="best", score=30, feedback="good"),
            Option(text="meh", score=-15, feedback="risky"),
        )),
        Question(prompt="Q2", options=(
            Option(text="meh", score=-15, feedback="risky"),
            Option(text="best", score=30, feedback="good"),
        )),
        Question(prompt="Q3", options=(
            Option(text="best", score=30, feedback="good"),
            Option(text="bad", score=-40, feedback="fail"),
        )),
    ]


@pytest.fixture
def scenario():
    """Three-step scenario; option 0 scores +30, option 1 +10, option 2 -20."""
    def step(line):
        return ScenarioStep(client_line=line, options=(
            Option(text="ideal", score=30, feedback="great"),
            Option(text="average", score=10, feedback="ok"),
            Option(text="fail", score=-20, feedback="no"),
        ))
    return Scenario(product="Test Fridge", steps=(step("s1"), step("s2"), step("s3")))


@pytest.fixture
def provider(questions, scenario):
    """Scripted provider with one of everything."""
    return ScriptedContentProvider(questions=questions, scenarios=[scenario])


@pytest.fixture
def mock_client():
    """Mock LLM client."""
    return MockLLMClient()


class ReportRecorder:
    """Report hook that remembers every score it receives."""

    def __init__(self):
        self.scores: list[int] = []

    def __call__(self, score: int) -> None:
        self.scores.append(score)


@pytest.fixture
def reports():
    return ReportRecorder()
