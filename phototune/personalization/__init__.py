"""
Per-user personalization: profile learning, caching and blending.
"""

from .cache import ProfileCache
from .engine import PersonalizationEngine
from .profile import ProfileBuilder, look_signature

__all__ = [
    'ProfileCache',
    'PersonalizationEngine',
    'ProfileBuilder',
    'look_signature',
]
