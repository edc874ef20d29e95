"""
Processing modules for PhotoTune

Color transforms, the operation registry and configuration generation.
"""

from .color import ColorTransform, TransformKind
from .config_generator import ConfigurationGenerator
from .models import (
    AnalysisResult,
    EditingPriority,
    EditingStyle,
    EnhancementConfig,
    EnhancementResult,
    FeedbackRecord,
    FeedbackType,
    ImageType,
    OperationConfig,
    SessionRecord,
    SpecificFeedback,
    TechnicalQuality,
    UserEditingProfile,
    UserPreferences,
)
from .operations import OperationRegistry, OperationSpec, build_default_registry
from .tuning import DEFAULT_TUNING, TuningTable

__all__ = [
    'ColorTransform',
    'TransformKind',
    'ConfigurationGenerator',
    'AnalysisResult',
    'EditingPriority',
    'EditingStyle',
    'EnhancementConfig',
    'EnhancementResult',
    'FeedbackRecord',
    'FeedbackType',
    'ImageType',
    'OperationConfig',
    'SessionRecord',
    'SpecificFeedback',
    'TechnicalQuality',
    'UserEditingProfile',
    'UserPreferences',
    'OperationRegistry',
    'OperationSpec',
    'build_default_registry',
    'DEFAULT_TUNING',
    'TuningTable',
]
