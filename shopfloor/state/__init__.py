"""Persisted state for shopfloor training."""

from .schema import (
    CustomResponse,
    DialogueTurn,
    EndReason,
    FreeTextVerdict,
    LearningEvent,
    ModuleKind,
    Mood,
    Option,
    PRODUCTS,
    Product,
    Profile,
    Question,
    ROLE_LABELS,
    RegistryEntry,
    Role,
    Scenario,
    ScenarioStep,
    SessionAnalysis,
    SessionState,
    SimulatorSessionRecord,
    SpellingCheck,
)
from .store import (
    JsonProgressBackend,
    MemoryProgressBackend,
    ProgressBackend,
    ProgressStore,
    merge_registry_entry,
)
from .event_bus import (
    EventBus,
    EventType,
    TrainerEvent,
    get_event_bus,
    reset_event_bus,
)

__all__ = [
    # Schema
    "CustomResponse",
    "DialogueTurn",
    "EndReason",
    "FreeTextVerdict",
    "LearningEvent",
    "ModuleKind",
    "Mood",
    "Option",
    "PRODUCTS",
    "Product",
    "Profile",
    "Question",
    "ROLE_LABELS",
    "RegistryEntry",
    "Role",
    "Scenario",
    "ScenarioStep",
    "SessionAnalysis",
    "SessionState",
    "SimulatorSessionRecord",
    "SpellingCheck",
    # Store
    "JsonProgressBackend",
    "MemoryProgressBackend",
    "ProgressBackend",
    "ProgressStore",
    "merge_registry_entry",
    # Event Bus
    "EventBus",
    "EventType",
    "TrainerEvent",
    "get_event_bus",
    "reset_event_bus",
]
