"""
Tuning table for configuration generation and personalization.

All numeric thresholds, weighting ratios and parameter ceilings used by the
generator, the operation registry's applicability rules and the
personalization engine are collected here so they can be overridden from
``config.yaml`` and asserted on by name in tests.
"""

import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional, Tuple

from ..config import get_default_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationTuning:
    """Thresholds used by the configuration generator"""
    exposure_threshold: float = 0.6
    sharpness_threshold: float = 0.6
    # (overall quality below, strength) pairs, first match wins
    strength_steps: Tuple[Tuple[float, float], ...] = ((0.5, 0.8), (0.7, 0.6))
    strength_default: float = 0.4
    fallback_image_type: str = "landscape"
    preview_operation_limit: int = 2
    preview_strength_factor: float = 0.7


@dataclass(frozen=True)
class ApplicabilityTuning:
    """Quality limits under which an operation is worth adding"""
    bilateral_max_sharpness: float = 0.7
    clahe_max_exposure: float = 0.8
    denoising_max_overall: float = 0.6
    color_balance_image_types: Tuple[str, ...] = ("food", "landscape", "nature")


@dataclass(frozen=True)
class PersonalizationTuning:
    """Profile learning and blending parameters"""
    profile_weight: float = 0.6
    style_min_score: float = 0.1
    preferred_boost: float = 1.1
    default_rating: int = 3
    favorite_min_rating: int = 4
    max_preferred_algorithms: int = 5
    max_favorite_looks: int = 10
    min_insight_sessions: int = 5


@dataclass(frozen=True)
class FeedbackTuning:
    """Multipliers applied when adapting a configuration to feedback"""
    too_strong_factor: float = 0.8
    too_weak_factor: float = 1.2
    improved_boost: float = 1.15
    strength_floor: float = 0.1
    strength_ceiling: float = 1.0


DEFAULT_CEILINGS: Dict[str, float] = {
    'clahe': 4.0,
    'unsharp_mask': 1.0,
    'color_balance': 1.5,
    'bilateral': 150.0,
    'tone_mapping': 1.0,
    'denoising': 1.0,
    'dramatic_enhancement': 1.0,
    'shadow_highlight': 100.0,
    'detail_enhancement': 1.0,
}


@dataclass(frozen=True)
class TuningTable:
    """
    Named configuration table shared by the generator, the registry and the
    personalization engine.
    """
    generation: GenerationTuning = field(default_factory=GenerationTuning)
    applicability: ApplicabilityTuning = field(default_factory=ApplicabilityTuning)
    personalization: PersonalizationTuning = field(default_factory=PersonalizationTuning)
    feedback: FeedbackTuning = field(default_factory=FeedbackTuning)
    ceilings: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_CEILINGS))

    def ceiling_for(self, operation_name: str) -> Optional[float]:
        """Upper bound for an operation's salient parameter, if any."""
        return self.ceilings.get(operation_name)

    def strength_for_quality(self, overall: float) -> float:
        """Step function from overall quality to enhancement strength."""
        for below, strength in self.generation.strength_steps:
            if overall < below:
                return strength
        return self.generation.strength_default

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> 'TuningTable':
        """
        Build a tuning table from the ``tuning`` section of a config dict.

        Unknown keys are ignored with a warning; missing keys keep defaults.
        """
        section = (config or get_default_config()).get('tuning') or {}
        generation_values = section.get('generation') or {}
        applicability_values = section.get('applicability') or {}

        generation = _build(GenerationTuning, generation_values)
        if generation_values.get('strength_steps'):
            steps = tuple(
                (float(below), float(strength))
                for below, strength in generation_values['strength_steps']
            )
            generation = replace(generation, strength_steps=steps)

        applicability = _build(ApplicabilityTuning, applicability_values)
        if applicability_values.get('color_balance_image_types') is not None:
            applicability = replace(
                applicability,
                color_balance_image_types=tuple(
                    applicability_values['color_balance_image_types']
                ),
            )

        ceilings = dict(DEFAULT_CEILINGS)
        ceilings.update({
            name: float(value)
            for name, value in (section.get('ceilings') or {}).items()
        })

        return cls(
            generation=generation,
            applicability=applicability,
            personalization=_build(PersonalizationTuning, section.get('personalization') or {}),
            feedback=_build(FeedbackTuning, section.get('feedback') or {}),
            ceilings=ceilings,
        )


def _build(tuning_cls, values: Dict[str, Any]):
    known = {f.name for f in fields(tuning_cls)}
    kwargs = {}
    for key, value in (values or {}).items():
        if key not in known:
            logger.warning(f"Ignoring unknown tuning key {tuning_cls.__name__}.{key}")
            continue
        if isinstance(value, list):
            continue  # sequences are converted by the caller
        kwargs[key] = value
    return tuning_cls(**kwargs)


DEFAULT_TUNING = TuningTable()
