"""Tests for progress persistence and the merge-safe registry."""

import json

from shopfloor.state import (
    DialogueTurn,
    JsonProgressBackend,
    Mood,
    Profile,
    ProgressStore,
    ROLE_LABELS,
    Role,
    SimulatorSessionRecord,
    merge_registry_entry,
)
from shopfloor.state.store import REGISTRY_DOC


def make_record(score: int = 10, left: bool = False) -> SimulatorSessionRecord:
    return SimulatorSessionRecord(
        product="Test Kettle",
        price=4990,
        mood=Mood.NEUTRAL,
        messages=[DialogueTurn(role="staff", text="Hello there, welcome")],
        left=left,
        score=score,
    )


class TestMergeRegistryEntry:
    """Test the field-level registry merge."""

    def test_summary_overwrites(self):
        merged = merge_registry_entry({"name": "Anna", "xp": 10}, {"name": "Anna", "xp": 50})
        assert merged["xp"] == 50

    def test_history_preserved_by_summary_writer(self):
        existing = {"name": "Anna", "xp": 10, "lastSimulatorSession": [{"id": "1"}]}
        merged = merge_registry_entry(existing, {"xp": 20, "lastSimulatorSession": []})
        assert merged["lastSimulatorSession"] == [{"id": "1"}]

    def test_history_writer_replaces_history(self):
        existing = {"name": "Anna", "lastSimulatorSession": [{"id": "1"}]}
        merged = merge_registry_entry(
            existing,
            {"lastSimulatorSession": [{"id": "2"}, {"id": "1"}]},
            history_field="lastSimulatorSession",
        )
        assert [r["id"] for r in merged["lastSimulatorSession"]] == ["2", "1"]

    def test_unknown_keys_kept(self):
        merged = merge_registry_entry({"name": "Anna", "badge": "gold"}, {"xp": 5})
        assert merged["badge"] == "gold"


class TestProfile:
    """Test profile load/save/logout."""

    def test_load_empty(self, store):
        assert store.load() is None

    def test_save_and_load(self, store, profile):
        store.save(profile.model_copy(update={"xp": 120, "level": Role.MIDDLE}))
        loaded = store.load()
        assert loaded.name == "Anna"
        assert loaded.xp == 120
        assert loaded.level == Role.MIDDLE

    def test_saved_with_external_names(self, store, memory_backend, profile):
        store.save(profile)
        raw = json.loads(memory_backend.documents["profile"])
        assert "modulesCompleted" in raw
        assert "avgRating" in raw

    def test_avatar_stored_on_profile(self, store, memory_backend, profile):
        store.save(profile.model_copy(update={"avatar": "pixel-3"}))
        assert store.load().avatar == "pixel-3"
        assert store.registry_entry("Anna").avatar == "pixel-3"
        assert set(memory_backend.documents) == {"profile", REGISTRY_DOC}

    def test_logout_keeps_registry(self, store, profile):
        store.save(profile)
        store.logout()
        assert store.load() is None
        assert store.registry_entry("Anna") is not None

    def test_invalid_profile_treated_as_logged_out(self, store, memory_backend):
        memory_backend.write("profile", {"xp": "lots"})
        assert store.load() is None


class TestRegistry:
    """Test registry sync and dialogue history."""

    def test_save_syncs_registry(self, store, profile):
        store.save(profile.model_copy(update={"xp": 1500, "level": Role.MIDDLE}))
        entry = store.registry_entry("Anna")
        assert entry.xp == 1500
        assert entry.level == ROLE_LABELS[Role.MIDDLE]
        assert entry.store == "Central"

    def test_admin_never_listed(self, store):
        assert store.sync_registry(Profile(name="ADMIN")) is False
        store.save(Profile(name="ADMIN"))
        assert store.load_registry() == {}

    def test_history_requires_entry(self, store):
        assert store.append_session_history("Nobody", make_record()) is False

    def test_history_newest_first(self, registered_store):
        registered_store.append_session_history("Anna", make_record(score=1))
        registered_store.append_session_history("Anna", make_record(score=2))
        history = registered_store.registry_entry("Anna").last_simulator_session
        assert [r.score for r in history] == [2, 1]

    def test_history_capped(self, registered_store):
        for i in range(55):
            registered_store.append_session_history("Anna", make_record(score=i))
        history = registered_store.registry_entry("Anna").last_simulator_session
        assert len(history) == 50
        assert history[0].score == 54

    def test_profile_save_preserves_history(self, registered_store, profile):
        """Summary sync after a dialogue must not erase the dialogue log."""
        registered_store.append_session_history("Anna", make_record(left=True, score=-50))
        registered_store.save(profile.model_copy(update={"xp": 999}))

        entry = registered_store.registry_entry("Anna")
        assert entry.xp == 999
        assert len(entry.last_simulator_session) == 1
        assert entry.last_simulator_session[0].left is True

    def test_history_written_with_external_names(self, registered_store, memory_backend):
        registered_store.append_session_history("Anna", make_record())
        raw = json.loads(memory_backend.documents[REGISTRY_DOC])
        assert "lastSimulatorSession" in raw["Anna"]
        assert raw["Anna"]["lastSimulatorSession"][0]["type"] == "simulator"

    def test_leaderboard_ranked(self, store):
        for name, xp in (("A", 10), ("B", 300), ("C", 50)):
            store.save(Profile(name=name, xp=xp))
        assert [e.name for e in store.leaderboard()] == ["B", "C", "A"]
        assert [e.name for e in store.leaderboard(limit=1)] == ["B"]


class TestLogs:
    """Test the append-only analytics and audit logs."""

    def test_learning_events(self, store):
        store.append_learning_event(45)
        store.append_learning_event(-25)
        assert [e.xp_delta for e in store.list_learning_events()] == [45, -25]

    def test_learning_event_external_name(self, store, memory_backend):
        store.append_learning_event(45)
        raw = json.loads(memory_backend.documents["learning_history"])
        assert raw[0]["xpDelta"] == 45
        assert "timestamp" in raw[0]

    def test_custom_responses(self, store):
        store.append_custom_response("Anna", "Q1", "my answer")
        entries = store.list_custom_responses()
        assert len(entries) == 1
        assert entries[0].user_name == "Anna"
        assert entries[0].response == "my answer"


class TestJsonBackend:
    """Test the file-based backend."""

    def test_roundtrip_across_instances(self, tmp_path, profile):
        ProgressStore(tmp_path).save(profile)
        assert ProgressStore(tmp_path).load().name == "Anna"

    def test_backup_written(self, tmp_path):
        backend = JsonProgressBackend(tmp_path)
        backend.write("registry", {"a": 1})
        backend.write("registry", {"a": 2})
        assert json.loads((tmp_path / "registry.json.bak").read_text()) == {"a": 1}

    def test_corrupt_file_treated_as_absent(self, tmp_path):
        (tmp_path / "profile.json").write_text("{not json")
        assert JsonProgressBackend(tmp_path).read("profile") is None

    def test_delete(self, tmp_path):
        backend = JsonProgressBackend(tmp_path)
        backend.write("profile", {})
        assert backend.delete("profile") is True
        assert backend.delete("profile") is False
