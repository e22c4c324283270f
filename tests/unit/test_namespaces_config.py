"""
Unit tests for namespace policy loading.
"""

import pytest

from pirate_cache.core.cache.namespaces import (
    DEFAULT_NAMESPACE_CONFIGS,
    PLAYERS,
    SESSIONS,
    NamespaceConfig,
    apply_overrides,
    load_namespace_configs,
)
from pirate_cache.core.config.config import Config
from pirate_cache.core.config.errors import ConfigLoadError, ConfigValidationError


@pytest.mark.unit
class TestNamespaceConfig:
    """Policy value validation."""

    @pytest.mark.parametrize("field", ["default_ttl", "max_entries", "sweep_interval"])
    @pytest.mark.parametrize("bad", [0, -1, 1.5, "10", True])
    def test_rejects_non_positive_integers(self, field, bad):
        values = {"default_ttl": 1, "max_entries": 1, "sweep_interval": 1, field: bad}
        with pytest.raises(ConfigValidationError):
            NamespaceConfig("players", **values)

    def test_defaults_cover_eight_namespaces(self):
        assert len(DEFAULT_NAMESPACE_CONFIGS) == 8
        assert DEFAULT_NAMESPACE_CONFIGS[PLAYERS].default_ttl == 300
        assert DEFAULT_NAMESPACE_CONFIGS[PLAYERS].max_entries == 10_000

    def test_shipped_policy_file_matches_defaults(self):
        assert load_namespace_configs(Config.PROJECT_ROOT / "config" / "cache.yaml") == (
            DEFAULT_NAMESPACE_CONFIGS
        )


@pytest.mark.unit
class TestOverrides:
    """Overlaying YAML values on the defaults."""

    def test_partial_override(self):
        merged = apply_overrides(DEFAULT_NAMESPACE_CONFIGS, {SESSIONS: {"default_ttl": 1800}})
        assert merged[SESSIONS].default_ttl == 1800
        assert merged[SESSIONS].max_entries == DEFAULT_NAMESPACE_CONFIGS[SESSIONS].max_entries
        assert merged[PLAYERS] == DEFAULT_NAMESPACE_CONFIGS[PLAYERS]

    def test_unknown_namespace_rejected(self):
        with pytest.raises(ConfigValidationError):
            apply_overrides(DEFAULT_NAMESPACE_CONFIGS, {"widgets": {"default_ttl": 1}})

    def test_unknown_field_rejected(self):
        with pytest.raises(ConfigValidationError):
            apply_overrides(DEFAULT_NAMESPACE_CONFIGS, {PLAYERS: {"ttl": 1}})

    def test_invalid_value_rejected(self):
        with pytest.raises(ConfigValidationError):
            apply_overrides(DEFAULT_NAMESPACE_CONFIGS, {PLAYERS: {"max_entries": 0}})


@pytest.mark.unit
class TestLoadFromFile:
    """YAML file handling."""

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_namespace_configs(tmp_path / "absent.yaml") == DEFAULT_NAMESPACE_CONFIGS

    def test_none_path_uses_defaults(self):
        assert load_namespace_configs(None) == DEFAULT_NAMESPACE_CONFIGS

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "cache.yaml"
        path.write_text("")
        assert load_namespace_configs(path) == DEFAULT_NAMESPACE_CONFIGS

    def test_file_overrides(self, tmp_path):
        path = tmp_path / "cache.yaml"
        path.write_text(
            "namespaces:\n"
            "  players:\n"
            "    max_entries: 2\n"
            "    sweep_interval: 5\n"
        )
        configs = load_namespace_configs(path)
        assert configs[PLAYERS].max_entries == 2
        assert configs[PLAYERS].sweep_interval == 5
        assert configs[PLAYERS].default_ttl == 300

    def test_malformed_yaml_raises_load_error(self, tmp_path):
        path = tmp_path / "cache.yaml"
        path.write_text("namespaces: [unclosed\n")
        with pytest.raises(ConfigLoadError):
            load_namespace_configs(path)

    def test_non_mapping_root_rejected(self, tmp_path):
        path = tmp_path / "cache.yaml"
        path.write_text("- players\n")
        with pytest.raises(ConfigValidationError):
            load_namespace_configs(path)
