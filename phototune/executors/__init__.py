"""
Pixel executors that apply composed color transforms to images.
"""

from .base import ImageHandle, PixelExecutor
from .array_executor import ArrayPixelExecutor

__all__ = [
    'ImageHandle',
    'PixelExecutor',
    'ArrayPixelExecutor',
]
