"""
Rule-based enhancement configuration generator

Turns an image analysis result into an ordered, parameterized list of
operations plus a global strength, priority and style. Generation is
deterministic: the same analysis and preferences always produce the same
configuration.
"""

import copy
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from .models import (
    AnalysisResult, EditingPriority, EditingStyle, EnhancementConfig,
    ImageType, OperationConfig, UserPreferences,
)
from .operations import OperationRegistry, build_default_registry
from .tuning import DEFAULT_TUNING, TuningTable

logger = logging.getLogger(__name__)

# Per image type: (operation name, parameter overrides merged over registry defaults)
BASE_OPERATION_SETS: Dict[str, Tuple[Tuple[str, Dict[str, Any]], ...]] = {
    ImageType.PORTRAIT.value: (
        ('clahe', {'clip_limit': 2.0, 'tile_grid_size': [8, 8]}),
        ('bilateral', {'d': 9, 'sigma_color': 75, 'sigma_space': 75}),
        ('unsharp_mask', {'radius': 1.0, 'amount': 0.5, 'threshold': 0}),
    ),
    ImageType.LANDSCAPE.value: (
        ('dramatic_enhancement', {'intensity': 0.6, 'style': 'vibrant'}),
        ('clahe', {'clip_limit': 3.0, 'tile_grid_size': [16, 16]}),
        ('tone_mapping', {'gamma': 0.8, 'exposure': 0.2}),
        ('color_balance', {'temperature': 0, 'tint': 0, 'vibrancy': 1.3}),
    ),
    ImageType.FOOD.value: (
        ('dramatic_enhancement', {'intensity': 0.7, 'style': 'warm'}),
        ('color_balance', {'temperature': 100, 'vibrancy': 1.4, 'saturation': 1.2}),
        ('unsharp_mask', {'radius': 0.8, 'amount': 0.6, 'threshold': 2}),
    ),
    ImageType.NATURE.value: (
        ('dramatic_enhancement', {'intensity': 0.8, 'style': 'vibrant'}),
        ('clahe', {'clip_limit': 2.5, 'tile_grid_size': [12, 12]}),
        ('color_balance', {'vibrancy': 1.3, 'greens': 1.2, 'blues': 1.1}),
    ),
}

EXPOSURE_OPERATIONS = ('clahe', 'tone_mapping', 'shadow_highlight')
SHARPNESS_OPERATIONS = ('unsharp_mask', 'detail_enhancement')

ARTISTIC_MOODS = frozenset({'artistic', 'creative'})
WARM_MOODS = frozenset({'warm', 'cozy'})
COOL_MOODS = frozenset({'cool', 'serene'})


class ConfigurationGenerator:
    """
    Builds an EnhancementConfig from an AnalysisResult.

    Steps:
    1. Base operation set for the image type (unknown types use the
       fallback type, landscape by default)
    2. Exposure and sharpness corrections appended when quality is low
    3. Strength from overall quality, then priority and style
    """

    def __init__(self, registry: Optional[OperationRegistry] = None,
                 tuning: Optional[TuningTable] = None):
        self.tuning = tuning or DEFAULT_TUNING
        self.registry = registry or build_default_registry(self.tuning)

    def generate(self, analysis: AnalysisResult,
                 user_preferences: Optional[UserPreferences] = None) -> EnhancementConfig:
        """
        Generate an enhancement configuration

        Args:
            analysis: Upstream image analysis
            user_preferences: Optional explicit preferences (color style)

        Returns:
            EnhancementConfig with operations sorted by order

        Raises:
            UnknownOperation: a base or correction operation is not registered
        """
        operations = self.base_operations(analysis.image_type)
        operations.extend(self._quality_operations(analysis, operations))
        operations.sort(key=lambda op: op.order)

        config = EnhancementConfig(
            operations=tuple(operations),
            strength=self.strength_for(analysis),
            priority=self.priority_for(analysis),
            style=self.style_for(analysis, user_preferences),
        )
        logger.debug(
            f"Generated config for {analysis.image_type}: "
            f"{', '.join(config.operation_names())} "
            f"(strength {config.strength}, style {config.style.value})"
        )
        return config

    def preview(self, analysis: AnalysisResult,
                user_preferences: Optional[UserPreferences] = None) -> EnhancementConfig:
        """Lighter configuration for quick previews: fewer ops, less strength."""
        config = self.generate(analysis, user_preferences)
        limit = self.tuning.generation.preview_operation_limit
        return replace(
            config,
            operations=tuple(config.sorted_operations()[:limit]),
            strength=config.strength * self.tuning.generation.preview_strength_factor,
        )

    def base_operations(self, image_type: str) -> List[OperationConfig]:
        entries = BASE_OPERATION_SETS.get(image_type)
        if entries is None:
            fallback = self.tuning.generation.fallback_image_type
            logger.debug(f"No base set for image type '{image_type}', using {fallback}")
            entries = BASE_OPERATION_SETS[fallback]

        operations = []
        for order, (name, overrides) in enumerate(entries, start=1):
            params = self.registry.default_params(name)
            params.update(copy.deepcopy(overrides))
            operations.append(OperationConfig(name=name, params=params, order=order))
        return operations

    def _quality_operations(self, analysis: AnalysisResult,
                            existing: List[OperationConfig]) -> List[OperationConfig]:
        """Corrections for low exposure or sharpness not already scheduled."""
        quality = analysis.technical_quality
        thresholds = self.tuning.generation

        wanted = []
        if quality.exposure < thresholds.exposure_threshold:
            wanted.extend(EXPOSURE_OPERATIONS)
        if quality.sharpness < thresholds.sharpness_threshold:
            wanted.extend(SHARPNESS_OPERATIONS)

        present = {op.name for op in existing}
        next_order = max((op.order for op in existing), default=0) + 1
        added = []
        for name in wanted:
            if name in present:
                continue
            added.append(OperationConfig(
                name=name,
                params=self.registry.default_params(name),
                order=next_order,
            ))
            present.add(name)
            next_order += 1
        return added

    def strength_for(self, analysis: AnalysisResult) -> float:
        return self.tuning.strength_for_quality(analysis.technical_quality.overall)

    def priority_for(self, analysis: AnalysisResult) -> EditingPriority:
        if analysis.kind is ImageType.PORTRAIT:
            return EditingPriority.QUALITY
        if analysis.mood in ARTISTIC_MOODS:
            return EditingPriority.ARTISTIC
        return EditingPriority.QUALITY

    def style_for(self, analysis: AnalysisResult,
                  user_preferences: Optional[UserPreferences] = None) -> EditingStyle:
        if user_preferences is not None and user_preferences.color_preference is not None:
            return user_preferences.color_preference
        if analysis.mood in WARM_MOODS:
            return EditingStyle.WARM
        if analysis.mood in COOL_MOODS:
            return EditingStyle.COOL
        if analysis.kind is ImageType.LANDSCAPE:
            return EditingStyle.VIBRANT
        return EditingStyle.NATURAL
