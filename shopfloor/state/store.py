"""
Progress storage.

Separates the storage engine (named JSON documents) from the merge rules
that keep two independent writers from erasing each other's registry data.

Documents:
- profile            the logged-in Profile (avatar included)
- registry           {display name: RegistryEntry}
- learning_history   [{timestamp, xpDelta}]
- custom_responses   [{userName, question, response, timestamp}]

Every write is a synchronous read-modify-write cycle. Two processes writing
the same document race, and the last full cycle wins.
"""

import json
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from ..config import DEFAULT_RULES, TrainerRules
from .schema import (
    CustomResponse,
    LearningEvent,
    Profile,
    ROLE_LABELS,
    RegistryEntry,
    SimulatorSessionRecord,
)

logger = logging.getLogger(__name__)


PROFILE_DOC = "profile"
REGISTRY_DOC = "registry"
LEARNING_DOC = "learning_history"
CUSTOM_RESPONSES_DOC = "custom_responses"

# Registry keys owned by appending writers, never by the summary sync
HISTORY_FIELDS = frozenset({"lastSimulatorSession"})


@runtime_checkable
class ProgressBackend(Protocol):
    """
    Storage interface for named JSON documents.

    Implementations:
    - JsonProgressBackend: File-based persistence (production)
    - MemoryProgressBackend: In-memory storage (testing)
    """

    def read(self, key: str) -> Any | None:
        """Return the decoded document, or None if absent."""
        ...

    def write(self, key: str, data: Any) -> None:
        """Persist a JSON-serializable document."""
        ...

    def delete(self, key: str) -> bool:
        """Remove a document. Returns True if it existed."""
        ...


class JsonProgressBackend:
    """
    File-based document storage, one JSON file per document.

    The previous file is copied to `<name>.json.bak` before each write.
    """

    def __init__(self, data_dir: Path | str = "progress"):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def read(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            # Corrupted file - treat as absent
            logger.warning(f"Corrupted document {path}, ignoring")
            return None

    def write(self, key: str, data: Any) -> None:
        path = self._path(key)
        if path.exists():
            backup = path.with_suffix(".json.bak")
            backup.write_text(path.read_text(encoding="utf-8"), encoding="utf-8")
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if path.exists():
            path.unlink()
            return True
        return False


class MemoryProgressBackend:
    """
    In-memory document storage for testing.

    Documents are kept as JSON text so reads never alias earlier writes.
    """

    def __init__(self):
        self.documents: dict[str, str] = {}

    def read(self, key: str) -> Any | None:
        raw = self.documents.get(key)
        return json.loads(raw) if raw is not None else None

    def write(self, key: str, data: Any) -> None:
        self.documents[key] = json.dumps(data)

    def delete(self, key: str) -> bool:
        return self.documents.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all documents (test utility)."""
        self.documents.clear()


def merge_registry_entry(
    existing: dict | None,
    updates: dict,
    *,
    history_field: str | None = None,
) -> dict:
    """
    Field-level merge of a registry entry.

    Summary fields come from `updates`. History fields keep their stored
    value unless `history_field` names the one this writer is appending to.
    Keys present only in `existing` are always kept.
    """
    merged = dict(existing or {})
    for key, value in updates.items():
        if key in HISTORY_FIELDS and key != history_field and key in merged:
            continue
        merged[key] = value
    return merged


class ProgressStore:
    """
    Owns the persisted profile, the shared registry and the flat logs.

    All components reach storage through this service.
    """

    def __init__(
        self,
        backend: ProgressBackend | Path | str = "progress",
        rules: TrainerRules = DEFAULT_RULES,
    ):
        if isinstance(backend, (Path, str)):
            backend = JsonProgressBackend(backend)
        self.backend = backend
        self.rules = rules

    # ─── Profile ─────────────────────────────────────────────────

    def load(self) -> Profile | None:
        """Return the persisted profile, or None when nobody is logged in."""
        data = self.backend.read(PROFILE_DOC)
        if not data:
            return None
        try:
            return Profile.model_validate(data)
        except ValueError as e:
            logger.warning(f"Stored profile is invalid, treating as logged out: {e}")
            return None

    def save(self, profile: Profile) -> None:
        """Persist the full profile and sync its registry summary."""
        self.backend.write(PROFILE_DOC, profile.model_dump(mode="json", by_alias=True))
        self.sync_registry(profile)
        logger.debug(f"Saved profile {profile.name} ({profile.xp} XP)")

    def logout(self) -> None:
        """Drop the persisted profile. The registry entry survives."""
        self.backend.delete(PROFILE_DOC)

    # ─── Registry ────────────────────────────────────────────────

    def _read_registry(self) -> dict[str, dict]:
        data = self.backend.read(REGISTRY_DOC)
        return data if isinstance(data, dict) else {}

    def sync_registry(self, profile: Profile) -> bool:
        """
        Merge the profile summary into its registry entry.

        Returns False for the reserved administrative identity, which is
        never listed.
        """
        if profile.name == self.rules.admin_identity:
            return False

        registry = self._read_registry()
        summary = {
            "name": profile.name,
            "xp": profile.xp,
            "level": ROLE_LABELS[profile.level],
            "store": profile.store,
            "avatar": profile.avatar,
        }
        registry[profile.name] = merge_registry_entry(registry.get(profile.name), summary)
        self.backend.write(REGISTRY_DOC, registry)
        return True

    def append_session_history(self, name: str, record: SimulatorSessionRecord) -> bool:
        """
        Prepend a dialogue record to the entry's history, keeping the newest
        `history_cap` records.

        Returns False when `name` has no registry entry.
        """
        registry = self._read_registry()
        entry = registry.get(name)
        if entry is None:
            logger.debug(f"No registry entry for {name}, session history not written")
            return False

        history = entry.get("lastSimulatorSession") or []
        history = [record.model_dump(mode="json", by_alias=True)] + list(history)
        registry[name] = merge_registry_entry(
            entry,
            {"lastSimulatorSession": history[: self.rules.history_cap]},
            history_field="lastSimulatorSession",
        )
        self.backend.write(REGISTRY_DOC, registry)
        return True

    def load_registry(self) -> dict[str, RegistryEntry]:
        """Return every registry entry, skipping ones that fail validation."""
        entries = {}
        for name, raw in self._read_registry().items():
            try:
                entries[name] = RegistryEntry.model_validate(raw)
            except ValueError:
                logger.warning(f"Skipping invalid registry entry {name!r}")
        return entries

    def registry_entry(self, name: str) -> RegistryEntry | None:
        return self.load_registry().get(name)

    def leaderboard(self, limit: int | None = None) -> list[RegistryEntry]:
        """Registry entries ranked by XP, highest first."""
        ranked = sorted(self.load_registry().values(), key=lambda e: e.xp, reverse=True)
        return ranked[:limit] if limit is not None else ranked

    # ─── Flat logs ───────────────────────────────────────────────

    def _append(self, key: str, item: dict) -> None:
        log = self.backend.read(key)
        if not isinstance(log, list):
            log = []
        log.append(item)
        self.backend.write(key, log)

    def append_learning_event(self, xp_delta: int) -> LearningEvent:
        """Append `{timestamp, xpDelta}` to the analytics log."""
        event = LearningEvent(xp_delta=xp_delta)
        self._append(LEARNING_DOC, event.model_dump(mode="json", by_alias=True))
        return event

    def list_learning_events(self) -> list[LearningEvent]:
        return [LearningEvent.model_validate(x) for x in self.backend.read(LEARNING_DOC) or []]

    def append_custom_response(self, user_name: str, question: str, response: str) -> CustomResponse:
        """Append a raw free-text submission to the audit log."""
        entry = CustomResponse(user_name=user_name, question=question, response=response)
        self._append(CUSTOM_RESPONSES_DOC, entry.model_dump(mode="json", by_alias=True))
        return entry

    def list_custom_responses(self) -> list[CustomResponse]:
        return [CustomResponse.model_validate(x) for x in self.backend.read(CUSTOM_RESPONSES_DOC) or []]
