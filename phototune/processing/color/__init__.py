"""
Color processing modules for PhotoTune

Affine color matrices and the closed set of transform kinds.
"""

from .color_matrix import ColorTransform, TransformKind, PRESET_MATRICES, LUMINANCE_WEIGHTS

__all__ = [
    "ColorTransform",
    "TransformKind",
    "PRESET_MATRICES",
    "LUMINANCE_WEIGHTS",
]
