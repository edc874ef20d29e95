"""
Tests for rule-based configuration generation.
"""

import pytest

from conftest import make_analysis
from phototune.processing.config_generator import BASE_OPERATION_SETS, ConfigurationGenerator
from phototune.processing.models import (
    EditingPriority, EditingStyle, EnhancementConfig, UserPreferences,
)
from phototune.processing.tuning import GenerationTuning, TuningTable


class TestBaseSets:
    """Per image type base operation sets."""

    def test_portrait_scenario(self, generator):
        config = generator.generate(make_analysis("portrait", "neutral", 0.8, 0.8, 0.8))

        assert config.operation_names() == ['clahe', 'bilateral', 'unsharp_mask']
        assert [op.order for op in config.operations] == [1, 2, 3]
        assert all(op.enabled for op in config.operations)
        assert config.operations[0].params == {'clip_limit': 2.0, 'tile_grid_size': [8, 8]}
        assert config.operations[1].params == {'d': 9, 'sigma_color': 75, 'sigma_space': 75}
        assert config.operations[2].params == {'radius': 1.0, 'amount': 0.5, 'threshold': 0}
        assert config.strength == 0.4
        assert config.priority is EditingPriority.QUALITY
        assert config.style is EditingStyle.NATURAL

    def test_portrait_low_overall_quality(self, generator):
        config = generator.generate(make_analysis("portrait", "neutral", 0.4, 0.8, 0.8))
        assert config.strength == 0.8

    def test_unknown_type_falls_back_to_landscape(self, generator):
        unknown = generator.generate(make_analysis("unknown_type", "neutral", 0.8, 0.8, 0.8))
        landscape = generator.generate(make_analysis("landscape", "neutral", 0.8, 0.8, 0.8))
        assert unknown.operation_names() == [name for name, _ in BASE_OPERATION_SETS['landscape']]
        assert unknown.operations == landscape.operations

    def test_fallback_type_is_configurable(self, registry):
        tuning = TuningTable(generation=GenerationTuning(fallback_image_type="food"))
        generator = ConfigurationGenerator(registry, tuning)
        config = generator.generate(make_analysis("other"))
        assert config.operation_names() == ['dramatic_enhancement', 'color_balance', 'unsharp_mask']

    def test_overrides_merge_over_defaults(self, generator):
        config = generator.generate(make_analysis("food"))
        color_balance = config.operations[1]
        assert color_balance.name == 'color_balance'
        assert color_balance.params['temperature'] == 100
        assert color_balance.params['vibrancy'] == 1.4
        assert color_balance.params['tint'] == 0  # registry default

    def test_nature_set(self, generator):
        config = generator.generate(make_analysis("nature"))
        assert config.operation_names() == ['dramatic_enhancement', 'clahe', 'color_balance']
        assert config.operations[2].params['greens'] == 1.2


class TestQualityRules:
    """Exposure and sharpness corrections."""

    def test_low_exposure_appends_missing_corrections(self, generator):
        config = generator.generate(make_analysis("portrait", exposure=0.5))
        assert config.operation_names() == [
            'clahe', 'bilateral', 'unsharp_mask', 'tone_mapping', 'shadow_highlight',
        ]
        assert [op.order for op in config.operations] == [1, 2, 3, 4, 5]

    def test_low_sharpness_appends_detail(self, generator):
        config = generator.generate(make_analysis("portrait", sharpness=0.5))
        assert config.operation_names() == ['clahe', 'bilateral', 'unsharp_mask', 'detail_enhancement']

    def test_both_thresholds(self, generator):
        config = generator.generate(make_analysis("landscape", exposure=0.3, sharpness=0.3))
        assert config.operation_names() == [
            'dramatic_enhancement', 'clahe', 'tone_mapping', 'color_balance',
            'shadow_highlight', 'unsharp_mask', 'detail_enhancement',
        ]
        assert len(set(config.operation_names())) == len(config.operations)

    def test_appended_ops_use_registry_defaults(self, generator, registry):
        config = generator.generate(make_analysis("portrait", exposure=0.5))
        shadow = config.operations[-1]
        assert shadow.params == registry.default_params('shadow_highlight')

    def test_thresholds_are_strict(self, generator):
        config = generator.generate(make_analysis("portrait", exposure=0.6, sharpness=0.6))
        assert config.operation_names() == ['clahe', 'bilateral', 'unsharp_mask']


class TestGlobalSettings:
    """Strength, priority and style."""

    @pytest.mark.parametrize("overall,strength", [
        (0.0, 0.8), (0.49, 0.8), (0.5, 0.6), (0.69, 0.6), (0.7, 0.4), (1.0, 0.4),
    ])
    def test_strength_steps(self, generator, overall, strength):
        config = generator.generate(make_analysis(overall=overall))
        assert config.strength == strength
        assert 0.0 <= config.strength <= 1.0

    @pytest.mark.parametrize("image_type,mood,priority", [
        ("portrait", "artistic", EditingPriority.QUALITY),
        ("landscape", "artistic", EditingPriority.ARTISTIC),
        ("food", "creative", EditingPriority.ARTISTIC),
        ("food", "happy", EditingPriority.QUALITY),
    ])
    def test_priority(self, generator, image_type, mood, priority):
        assert generator.generate(make_analysis(image_type, mood)).priority is priority

    @pytest.mark.parametrize("image_type,mood,style", [
        ("portrait", "cozy", EditingStyle.WARM),
        ("landscape", "warm", EditingStyle.WARM),
        ("portrait", "serene", EditingStyle.COOL),
        ("nature", "cool", EditingStyle.COOL),
        ("landscape", "neutral", EditingStyle.VIBRANT),
        ("food", "neutral", EditingStyle.NATURAL),
    ])
    def test_style(self, generator, image_type, mood, style):
        assert generator.generate(make_analysis(image_type, mood)).style is style

    def test_explicit_preference_wins(self, generator):
        preferences = UserPreferences(color_preference=EditingStyle.MUTED)
        config = generator.generate(make_analysis("landscape", "warm"), preferences)
        assert config.style is EditingStyle.MUTED

    def test_preference_accepts_string(self, generator):
        preferences = UserPreferences(color_preference="cool")
        assert generator.generate(make_analysis(), preferences).style is EditingStyle.COOL


class TestDeterminism:
    """Same input, same output."""

    @pytest.mark.parametrize("image_type", ["portrait", "landscape", "food", "nature", "other"])
    def test_repeated_generation_is_identical(self, generator, image_type):
        analysis = make_analysis(image_type, "neutral", 0.55, 0.4, 0.3)
        outputs = {generator.generate(analysis).to_json() for _ in range(5)}
        assert len(outputs) == 1

    def test_independent_generators_agree(self, registry):
        analysis = make_analysis("food", "cozy", 0.3, 0.3, 0.3)
        first = ConfigurationGenerator(registry).generate(analysis)
        second = ConfigurationGenerator().generate(analysis)
        assert first.to_json() == second.to_json()

    def test_generated_configs_do_not_share_params(self, generator):
        analysis = make_analysis()
        first = generator.generate(analysis)
        first.operations[0].params['tile_grid_size'].append(99)
        second = generator.generate(analysis)
        assert second.operations[0].params['tile_grid_size'] == [8, 8]

    def test_json_round_trip(self, generator):
        config = generator.generate(make_analysis("nature", "serene", 0.4, 0.5, 0.5))
        assert EnhancementConfig.from_dict(config.to_dict()) == config


class TestPreview:
    """Preview configuration."""

    def test_preview_is_lighter(self, generator):
        analysis = make_analysis("landscape", overall=0.4)
        full = generator.generate(analysis)
        preview = generator.preview(analysis)
        assert preview.operation_names() == full.operation_names()[:2]
        assert preview.strength == pytest.approx(full.strength * 0.7)
        assert preview.style is full.style
