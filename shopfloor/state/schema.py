"""
Pydantic models for shopfloor training state.

Persisted records keep the external field names of the stored JSON
(camelCase) through aliases; Python code uses snake_case attributes.
"""

from datetime import datetime
from enum import Enum
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def generate_id() -> str:
    return str(uuid4())[:8]


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class Role(str, Enum):
    JUNIOR = "junior"
    MIDDLE = "middle"
    SENIOR = "senior"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        return _ROLE_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank >= other.rank


_ROLE_ORDER = [Role.JUNIOR, Role.MIDDLE, Role.SENIOR, Role.EXPERT]

# Display labels written into the registry summary
ROLE_LABELS: dict[Role, str] = {
    Role.JUNIOR: "Trainee (Junior)",
    Role.MIDDLE: "Specialist (Middle)",
    Role.SENIOR: "Master (Senior)",
    Role.EXPERT: "Expert (Expert)",
}


class ModuleKind(str, Enum):
    QUIZ = "quiz"
    SCENARIO = "scenario"
    DIALOGUE = "dialogue"


class Mood(str, Enum):
    NEUTRAL = "neutral"
    IRRITATED = "irritated"
    DOUBTFUL = "doubtful"


class EndReason(str, Enum):
    """How a session reached its terminal state."""
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    MODERATION_VIOLATION = "moderation_violation"
    CUSTOMER_LEFT = "customer_left"


# -----------------------------------------------------------------------------
# Profile & Registry
# -----------------------------------------------------------------------------

class Profile(BaseModel):
    """The logged-in staff member. Mutated only through ScoringEngine."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: f"STAFF-{generate_id()}")
    name: str = "New Associate"
    position: str = "Sales Associate"
    store: str = ""
    level: Role = Role.JUNIOR
    xp: int = 0
    modules_completed: int = Field(default=0, alias="modulesCompleted")
    avg_rating: float = Field(default=0.0, alias="avgRating")
    achievements: list[str] = Field(default_factory=list)
    avatar: str = "pixel-1"

    def has_achievement(self, tag: str) -> bool:
        return tag in self.achievements


class DialogueTurn(BaseModel):
    """One line of a dialogue transcript."""
    model_config = ConfigDict(frozen=True)

    role: Literal["staff", "customer"]
    text: str


class SessionAnalysis(BaseModel):
    """Holistic evaluation of a finished dialogue."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    score: int
    satisfaction_percent: int = Field(alias="satisfactionPercent", ge=0, le=100)
    feedback: str = ""


class SimulatorSessionRecord(BaseModel):
    """A dialogue session as stored in the registry history."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(int(datetime.now().timestamp() * 1000)))
    type: str = "simulator"
    date: datetime = Field(default_factory=datetime.now)
    product: str
    price: int
    mood: Mood = Mood.NEUTRAL
    messages: list[DialogueTurn] = Field(default_factory=list)
    left: bool = False
    score: int = 0
    metrics: SessionAnalysis | None = None


class RegistryEntry(BaseModel):
    """
    Denormalized summary of one profile, keyed by display name.

    Unknown keys written by other writers survive a round trip.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    xp: int = 0
    level: str = ROLE_LABELS[Role.JUNIOR]
    store: str = ""
    avatar: str = ""
    last_simulator_session: list[SimulatorSessionRecord] = Field(
        default_factory=list, alias="lastSimulatorSession"
    )


class LearningEvent(BaseModel):
    """One XP change in the flat analytics log."""
    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime = Field(default_factory=datetime.now)
    xp_delta: int = Field(alias="xpDelta")


class CustomResponse(BaseModel):
    """A free-text quiz answer kept for manual audit."""
    model_config = ConfigDict(populate_by_name=True)

    user_name: str = Field(alias="userName")
    question: str
    response: str
    timestamp: datetime = Field(default_factory=datetime.now)


# -----------------------------------------------------------------------------
# Content
# -----------------------------------------------------------------------------

class Option(BaseModel):
    """A fixed answer choice with its precomputed outcome."""
    model_config = ConfigDict(frozen=True)

    text: str
    score: int
    feedback: str = ""


class Question(BaseModel):
    """A single quiz question."""
    model_config = ConfigDict(frozen=True)

    prompt: str
    options: tuple[Option, ...] = Field(min_length=1)


class ScenarioStep(BaseModel):
    """One customer line in a branching scenario."""
    model_config = ConfigDict(frozen=True)

    client_line: str
    options: tuple[Option, ...] = Field(min_length=1)


class Scenario(BaseModel):
    """A branching sales scenario around one product."""
    model_config = ConfigDict(frozen=True)

    product: str
    steps: tuple[ScenarioStep, ...] = Field(min_length=1)


class FreeTextVerdict(BaseModel):
    """Provider score for a free-text quiz answer."""
    model_config = ConfigDict(frozen=True)

    score: int
    feedback: str = ""


class SpellingCheck(BaseModel):
    """Result of the spelling-assist call."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    errors_found: bool = Field(alias="errorsFound")
    corrected_text: str = Field(default="", alias="correctedText")
    explanation: str = ""


class Product(BaseModel):
    """A catalogue item the simulated customer negotiates over."""
    model_config = ConfigDict(frozen=True)

    name: str
    base_price: int


PRODUCTS: tuple[Product, ...] = (
    Product(name='Samsung 55" OLED TV', base_price=129990),
    Product(name="Haier Side-by-Side Refrigerator", base_price=84990),
    Product(name="iPhone 15 Pro 256GB", base_price=115990),
    Product(name="LG Steam Washing Machine", base_price=45990),
    Product(name="PS5 Slim Game Console", base_price=59990),
)


# -----------------------------------------------------------------------------
# Session scoring state
# -----------------------------------------------------------------------------

class SessionState(BaseModel):
    """
    Per-session score sheet.

    `score_history` is a LIFO stack of per-step scores used for undo;
    `total_score` always equals its sum.
    """
    step_index: int = 0
    score_history: list[int] = Field(default_factory=list)
    total_score: int = 0
    finished: bool = False
    forcibly_ended: bool = False

    @property
    def turns_taken(self) -> int:
        return len(self.score_history)
