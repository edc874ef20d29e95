"""
PhotoTune: analysis-driven, personalized color enhancement

Selects and orders color operations for a photo from its analysis and the
user's learned preferences, folds them into a single color matrix, and
refines future configurations from feedback.
"""

__version__ = "0.1.0"

from .config import load_config
from .processing.color import ColorTransform
from .processing.config_generator import ConfigurationGenerator
from .processing.operations import OperationRegistry, build_default_registry
from .personalization import PersonalizationEngine
from .core import EnhancementOrchestrator

__all__ = [
    "load_config",
    "ColorTransform",
    "ConfigurationGenerator",
    "OperationRegistry",
    "build_default_registry",
    "PersonalizationEngine",
    "EnhancementOrchestrator",
]
