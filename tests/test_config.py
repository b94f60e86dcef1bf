"""Tests for gameplay rules and user configuration."""

import json

import pytest

from shopfloor.config import DEFAULT_RULES, TrainerRules, load_rules
from shopfloor.interface.config import (
    DEFAULT_CONFIG,
    get_config_path,
    load_config,
    resolve_rules_path,
    save_config,
    update_config,
)


class TestTrainerRules:
    """Test the gameplay constants."""

    def test_defaults(self):
        rules = TrainerRules()
        assert rules.countdown_budget == 15
        assert rules.timeout_penalty == -25
        assert rules.profanity_penalty == -100
        assert rules.walkout_penalty == -50
        assert rules.history_cap == 50
        assert rules.evaluation_staff_turns == 4

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_rules(tmp_path / "nope.json") is DEFAULT_RULES

    def test_none_gives_defaults(self):
        assert load_rules(None) is DEFAULT_RULES

    def test_overrides(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"countdown_budget": 30, "history_cap": 10}))
        rules = load_rules(path)
        assert rules.countdown_budget == 30
        assert rules.history_cap == 10
        assert rules.timeout_penalty == -25

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text("{broken")
        assert load_rules(path) is DEFAULT_RULES


class TestUserConfig:
    """Test backend/model preference persistence."""

    def test_defaults_when_missing(self, tmp_path):
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_path(self, tmp_path):
        assert get_config_path(tmp_path).name == ".shopfloor_config.json"

    def test_save_and_load(self, tmp_path):
        config = load_config(tmp_path)
        config["backend"] = "offline"
        assert save_config(config, tmp_path) is True
        assert load_config(tmp_path)["backend"] == "offline"

    def test_update(self, tmp_path):
        update_config(tmp_path, backend="lmstudio")
        config = update_config(tmp_path, model="qwen2.5-7b")
        assert config["backend"] == "lmstudio"
        assert load_config(tmp_path)["model"] == "qwen2.5-7b"

    def test_update_rejects_unknown_backend(self, tmp_path):
        with pytest.raises(ValueError):
            update_config(tmp_path, backend="cloud")
        assert not get_config_path(tmp_path).exists()

    def test_update_rejects_unknown_setting(self, tmp_path):
        with pytest.raises(ValueError):
            update_config(tmp_path, theme="dark")

    def test_corrupt_file_gives_defaults(self, tmp_path):
        get_config_path(tmp_path).write_text("not json")
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_invalid_values_dropped(self, tmp_path):
        get_config_path(tmp_path).write_text(json.dumps({
            "backend": "cloud",
            "model": "  ",
            "rules_path": 42,
            "show_banner": False,
        }))
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_non_object_gives_defaults(self, tmp_path):
        get_config_path(tmp_path).write_text("[1, 2]")
        assert load_config(tmp_path) == DEFAULT_CONFIG


class TestRulesPath:
    """Test locating the rules override file."""

    def test_unset(self, tmp_path):
        assert resolve_rules_path(load_config(tmp_path), tmp_path) is None

    def test_relative_to_data_dir(self, tmp_path):
        update_config(tmp_path, rules_path="rules.json")
        assert resolve_rules_path(load_config(tmp_path), tmp_path) == tmp_path / "rules.json"

    def test_absolute_kept(self, tmp_path):
        target = tmp_path / "elsewhere" / "rules.json"
        update_config(tmp_path, rules_path=str(target))
        assert resolve_rules_path(load_config(tmp_path), tmp_path) == target

    def test_feeds_load_rules(self, tmp_path):
        (tmp_path / "rules.json").write_text(json.dumps({"countdown_budget": 20}))
        update_config(tmp_path, rules_path="rules.json")
        rules = load_rules(resolve_rules_path(load_config(tmp_path), tmp_path))
        assert rules.countdown_budget == 20
