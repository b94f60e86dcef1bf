"""
Shopfloor Trainer Orchestrator.

Owns the logged-in profile and wires each practice session's final score
into the scoring engine and the progress store.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .config import DEFAULT_RULES, TrainerRules
from .content import ContentProvider, LLMContentProvider, OfflineContentProvider
from .llm import BackendType, create_llm_client
from .moderation import ModerationFilter
from .scoring import ScoringEngine
from .sessions import BranchingScenarioSession, OpenDialogueSession, TimedChoiceSession
from .state import EventBus, EventType, ModuleKind, Mood, Product, Profile, ProgressStore, get_event_bus

logger = logging.getLogger(__name__)


def create_content_provider(
    backend: BackendType = "auto",
    model: str | None = None,
) -> tuple[str, ContentProvider]:
    """
    Pick a content provider for the configured backend.

    Falls back to the offline provider when no model server answers.
    """
    name, client = create_llm_client(backend, model=model)
    if client is None:
        return ("offline", OfflineContentProvider())
    return (name, LLMContentProvider(client))


class Orchestrator:
    """
    Entry point for front ends.

    Usage:
        trainer = Orchestrator(ProgressStore("progress"), provider)
        trainer.login("Anna", store="Central")
        quiz = trainer.start_quiz()
        await quiz.start()
    """

    def __init__(
        self,
        store: ProgressStore | Path | str = "progress",
        provider: ContentProvider | None = None,
        rules: TrainerRules = DEFAULT_RULES,
        bus: EventBus | None = None,
        use_timer: bool = True,
    ):
        if not isinstance(store, ProgressStore):
            store = ProgressStore(store, rules)
        self.store = store
        self.provider = provider or OfflineContentProvider()
        self.rules = rules
        self.scoring = ScoringEngine(rules)
        self.moderation = ModerationFilter()
        self.bus = bus or get_event_bus()
        self.use_timer = use_timer
        self.profile: Profile | None = store.load()

    # ─── Identity ────────────────────────────────────────────────

    @property
    def logged_in(self) -> bool:
        return self.profile is not None

    def login(self, name: str, store: str = "", avatar: str = "pixel-1") -> Profile:
        """
        Log in as `name`.

        Reuses the persisted profile when it belongs to `name`; otherwise
        starts a profile seeded from the registry entry, if there is one.
        """
        name = name.strip()
        if not name:
            raise ValueError("Name must not be empty")

        current = self.store.load()
        if current is not None and current.name == name:
            self.profile = current
            logger.info(f"Welcome back, {name}")
            return current

        entry = self.store.registry_entry(name)
        profile = Profile(name=name, store=store, avatar=avatar)
        if entry is not None:
            profile = profile.model_copy(update={
                "xp": entry.xp,
                "level": self.scoring.level_for(entry.xp, profile.level),
                "store": store or entry.store,
                "avatar": entry.avatar or avatar,
            })
            logger.info(f"Restored {name} from the registry ({entry.xp} XP)")

        self.profile = profile
        self.store.save(profile)
        return profile

    def logout(self) -> None:
        self.store.logout()
        self.profile = None

    # ─── Sessions ────────────────────────────────────────────────

    @property
    def user_name(self) -> str | None:
        return self.profile.name if self.profile else None

    def start_quiz(self) -> TimedChoiceSession:
        return TimedChoiceSession(
            self.provider,
            scoring=self.scoring,
            rules=self.rules,
            on_report=self._report_hook(ModuleKind.QUIZ),
            bus=self.bus,
            store=self.store,
            user_name=self.user_name or "Anonymous",
            use_timer=self.use_timer,
        )

    def start_scenario(self) -> BranchingScenarioSession:
        return BranchingScenarioSession(
            self.provider,
            scoring=self.scoring,
            rules=self.rules,
            on_report=self._report_hook(ModuleKind.SCENARIO),
            bus=self.bus,
        )

    def start_dialogue(self, product: Product | None = None, mood: Mood = Mood.NEUTRAL) -> OpenDialogueSession:
        return OpenDialogueSession(
            self.provider,
            scoring=self.scoring,
            rules=self.rules,
            on_report=self._report_hook(ModuleKind.DIALOGUE),
            bus=self.bus,
            store=self.store,
            user_name=self.user_name,
            moderation=self.moderation,
            product=product,
            mood=mood,
        )

    def _report_hook(self, module_kind: ModuleKind):
        def hook(score: int) -> None:
            self.record_score(score, module_kind)
        return hook

    # ─── Progress ────────────────────────────────────────────────

    def record_score(self, score: int, module_kind: ModuleKind) -> Profile | None:
        """
        Fold one session's final score into the profile and persist it.

        Scores reported while nobody is logged in are dropped.
        """
        if self.profile is None:
            logger.warning(f"Dropping {module_kind.value} score {score}: nobody is logged in")
            return None

        self.store.append_learning_event(score)
        before = self.profile
        after = self.scoring.finalize_session(before, score, module_kind)
        self.profile = after
        self.store.save(after)

        if after.level > before.level:
            self.bus.emit(
                EventType.LEVEL_UP,
                profile=after.name,
                before=before.level.value,
                after=after.level.value,
            )
        for tag in after.achievements[len(before.achievements):]:
            self.bus.emit(EventType.ACHIEVEMENT_GRANTED, profile=after.name, achievement=tag)
        self.bus.emit(
            EventType.PROGRESS_SAVED,
            profile=after.name,
            module=module_kind.value,
            score=score,
            xp=after.xp,
        )
        return after
