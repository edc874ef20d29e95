"""
Tests for configuration loading and tuning tables.
"""

import pytest
import yaml

from phototune.config import (
    get_config_value, get_default_config, load_config, save_config, update_config_value,
)
from phototune.processing.tuning import DEFAULT_TUNING, TuningTable


class TestLoadConfig:

    def test_packaged_config_matches_defaults(self):
        assert load_config() == get_default_config()

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_config(tmp_path / "nope.yaml") == get_default_config()

    def test_partial_file_is_merged(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("orchestrator:\n  max_concurrent_runs: 8\n")

        config = load_config(path)

        assert config['orchestrator']['max_concurrent_runs'] == 8
        assert config['personalization']['cache_size'] == 256
        assert config['tuning']['feedback']['strength_floor'] == 0.1

    def test_env_vars_expanded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PHOTOTUNE_DB", "postgresql://phototune@db/phototune")
        path = tmp_path / "config.yaml"
        path.write_text("storage:\n  backend: sql\n  url: ${PHOTOTUNE_DB}\n")

        config = load_config(path)

        assert config['storage']['url'] == "postgresql://phototune@db/phototune"

    def test_unset_env_var_kept(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("storage:\n  url: ${PHOTOTUNE_SURELY_UNSET_VAR}\n")
        assert load_config(path)['storage']['url'] == "${PHOTOTUNE_SURELY_UNSET_VAR}"

    def test_invalid_yaml_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("tuning: [unclosed\n")
        assert load_config(path) == get_default_config()

    def test_save_round_trip(self, tmp_path):
        config = get_default_config()
        config['orchestrator']['max_concurrent_runs'] = 4
        path = tmp_path / "saved.yaml"

        assert save_config(config, path)
        assert yaml.safe_load(path.read_text())['orchestrator']['max_concurrent_runs'] == 4
        assert load_config(path) == config


class TestDotAccess:

    def test_get_value(self):
        config = get_default_config()
        assert get_config_value(config, 'tuning.ceilings.clahe') == 4.0
        assert get_config_value(config, 'tuning.missing.key', 'fallback') == 'fallback'

    def test_update_value_creates_sections(self):
        config = {}
        update_config_value(config, 'storage.url', 'sqlite:////tmp/sessions.db')
        assert config == {'storage': {'url': 'sqlite:////tmp/sessions.db'}}


class TestTuningTable:

    def test_default_config_matches_default_tuning(self):
        assert TuningTable.from_config(get_default_config()) == DEFAULT_TUNING

    def test_overrides(self):
        config = get_default_config()
        config['tuning']['generation']['strength_steps'] = [[0.3, 0.9]]
        config['tuning']['applicability']['color_balance_image_types'] = ['food']
        config['tuning']['ceilings']['clahe'] = 3
        config['tuning']['feedback']['strength_floor'] = 0.2

        tuning = TuningTable.from_config(config)

        assert tuning.generation.strength_steps == ((0.3, 0.9),)
        assert tuning.applicability.color_balance_image_types == ('food',)
        assert tuning.ceiling_for('clahe') == 3.0
        assert tuning.feedback.strength_floor == 0.2

    def test_missing_section_keeps_defaults(self):
        assert TuningTable.from_config({'tuning': {}}) == DEFAULT_TUNING

    def test_empty_yaml_sections_keep_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "tuning:\n  generation:\n  applicability:\n  personalization:\n"
            "  feedback:\n  ceilings:\n"
        )
        config = yaml.safe_load(path.read_text())
        assert config['tuning']['generation'] is None

        assert TuningTable.from_config(config) == DEFAULT_TUNING

    def test_empty_tuning_section(self):
        assert TuningTable.from_config({'tuning': None}) == DEFAULT_TUNING

    def test_unknown_keys_ignored(self):
        tuning = TuningTable.from_config({'tuning': {'generation': {'not_a_setting': 1}}})
        assert tuning.generation == DEFAULT_TUNING.generation

    @pytest.mark.parametrize("overall,strength", [(0.2, 0.8), (0.6, 0.6), (0.9, 0.4)])
    def test_strength_for_quality(self, overall, strength):
        assert DEFAULT_TUNING.strength_for_quality(overall) == strength

    def test_no_ceiling_for_primitives(self):
        assert DEFAULT_TUNING.ceiling_for('brightness') is None
