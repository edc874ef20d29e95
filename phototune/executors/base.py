"""
Pixel executor contract.

An executor applies one composed ColorTransform to an image. It must be
deterministic for a given transform and input and must never modify the
input handle.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..processing.color import ColorTransform


@dataclass(frozen=True, eq=False)
class ImageHandle:
    """Read-only RGB or RGBA uint8 image plus where it came from"""
    array: np.ndarray
    source: Optional[str] = None

    def __post_init__(self):
        array = np.array(self.array, dtype=np.uint8, copy=True)
        array.setflags(write=False)
        object.__setattr__(self, 'array', array)

    @property
    def shape(self):
        return self.array.shape

    @property
    def has_alpha(self) -> bool:
        return self.array.ndim == 3 and self.array.shape[2] == 4


class PixelExecutor(ABC):
    """Applies a ColorTransform to image pixels."""

    @abstractmethod
    def apply(self, handle: ImageHandle, transform: ColorTransform) -> ImageHandle:
        """Return a new handle with the transform applied; raise ExecutorError on failure."""
        pass
