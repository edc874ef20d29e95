"""
Color matrix transforms for PhotoTune

Every adjustment is expressed as a 4x5 affine matrix over (R, G, B, A):
the left 4x4 block is the linear part and the last column is an offset in
0-255 units. Matrices compose by multiplication, so a whole enhancement
pipeline collapses into a single transform handed to the pixel executor.

Gamma is a first-order linear approximation, not a power curve. Pipelines
that need a true tone curve have to do it outside matrix composition.
"""

import re
import math
import logging
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ...errors import InvalidParameter, UnknownOperation

logger = logging.getLogger(__name__)

# Rec. 601 luma weights
LUMINANCE_WEIGHTS = (0.299, 0.587, 0.114)

AMOUNT_RANGE = (-100.0, 100.0)
HUE_RANGE = (-180.0, 180.0)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class TransformKind(Enum):
    """Closed set of transform kinds understood by ColorTransform.from_kind"""
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    SATURATION = "saturation"
    CHANNELS = "channels"
    GAMMA = "gamma"
    HUE = "hue"
    GRAYSCALE = "grayscale"
    SEPIA = "sepia"
    INVERT = "invert"
    HIGH_CONTRAST = "high_contrast"
    WARMTH = "warmth"
    COOL = "cool"

    @property
    def is_preset(self) -> bool:
        return self in PRESET_MATRICES

    @classmethod
    def parse(cls, kind: Union[str, 'TransformKind']) -> 'TransformKind':
        """Accepts snake_case, camelCase (``highContrast``) or kebab-case names."""
        if isinstance(kind, cls):
            return kind
        name = _CAMEL_BOUNDARY.sub("_", str(kind).strip()).replace("-", "_").lower()
        try:
            return cls(name)
        except ValueError:
            raise UnknownOperation(str(kind)) from None


_ALPHA_ROW = [0.0, 0.0, 0.0, 1.0, 0.0]

PRESET_MATRICES = {
    TransformKind.GRAYSCALE: [
        [0.299, 0.587, 0.114, 0.0, 0.0],
        [0.299, 0.587, 0.114, 0.0, 0.0],
        [0.299, 0.587, 0.114, 0.0, 0.0],
        _ALPHA_ROW,
    ],
    TransformKind.SEPIA: [
        [0.393, 0.769, 0.189, 0.0, 0.0],
        [0.349, 0.686, 0.168, 0.0, 0.0],
        [0.272, 0.534, 0.131, 0.0, 0.0],
        _ALPHA_ROW,
    ],
    TransformKind.INVERT: [
        [-1.0, 0.0, 0.0, 0.0, 255.0],
        [0.0, -1.0, 0.0, 0.0, 255.0],
        [0.0, 0.0, -1.0, 0.0, 255.0],
        _ALPHA_ROW,
    ],
    TransformKind.HIGH_CONTRAST: [
        [2.0, 0.0, 0.0, 0.0, -128.0],
        [0.0, 2.0, 0.0, 0.0, -128.0],
        [0.0, 0.0, 2.0, 0.0, -128.0],
        _ALPHA_ROW,
    ],
    TransformKind.WARMTH: [
        [1.2, 0.1, 0.0, 0.0, 10.0],
        [0.1, 1.0, 0.1, 0.0, 5.0],
        [0.0, 0.0, 0.8, 0.0, -10.0],
        _ALPHA_ROW,
    ],
    TransformKind.COOL: [
        [0.8, 0.0, 0.1, 0.0, -5.0],
        [0.0, 1.0, 0.1, 0.0, 0.0],
        [0.1, 0.1, 1.2, 0.0, 15.0],
        _ALPHA_ROW,
    ],
}


def _number(value: Any, name: str) -> float:
    """Coerce a parameter to a finite float or raise InvalidParameter."""
    if isinstance(value, bool):
        raise InvalidParameter(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidParameter(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise InvalidParameter(f"{name} must be finite, got {value!r}")
    return number


def _clamped(value: Any, name: str, bounds: Tuple[float, float] = AMOUNT_RANGE) -> float:
    number = _number(value, name)
    low, high = bounds
    if number < low or number > high:
        logger.debug(f"Clamping {name}={number} to [{low}, {high}]")
    return max(low, min(high, number))


def _factor(amount: float) -> float:
    return (amount + 100.0) / 100.0


class ColorTransform:
    """
    Immutable 4x5 affine color matrix.

    ``compose(a, b)`` applies ``a`` first and ``b`` second, so for a pixel
    ``p``: ``compose(a, b)(p) == b(a(p))``.
    """

    __slots__ = ('_matrix',)

    def __init__(self, matrix: Union[Sequence[Sequence[float]], np.ndarray]):
        array = np.array(matrix, dtype=np.float64)
        if array.shape != (4, 5):
            raise InvalidParameter(f"Color matrix must be 4x5, got shape {array.shape}")
        if not np.all(np.isfinite(array)):
            raise InvalidParameter("Color matrix coefficients must be finite")
        array.setflags(write=False)
        self._matrix = array

    # ----- constructors -----

    @classmethod
    def identity(cls) -> 'ColorTransform':
        return cls(np.hstack([np.eye(4), np.zeros((4, 1))]))

    @classmethod
    def from_kind(cls, kind: Union[str, TransformKind],
                  params: Optional[Union[Mapping[str, Any], float]] = None) -> 'ColorTransform':
        """
        Build the transform for one kind.

        Args:
            kind: Transform kind name or TransformKind
            params: Parameter mapping, or a bare number used as the kind's
                amount. Presets ignore params.

        Returns:
            ColorTransform

        Raises:
            UnknownOperation: kind is not one of TransformKind
            InvalidParameter: non-numeric input, or gamma <= 0
        """
        kind = TransformKind.parse(kind)
        if kind.is_preset:
            return cls(PRESET_MATRICES[kind])

        if params is None:
            params = {}
        elif not isinstance(params, Mapping):
            params = {'amount': params}

        if kind is TransformKind.BRIGHTNESS:
            return cls.brightness(params.get('amount', 0))
        if kind is TransformKind.CONTRAST:
            return cls.contrast(params.get('amount', 0))
        if kind is TransformKind.SATURATION:
            return cls.saturation(params.get('amount', 0))
        if kind is TransformKind.CHANNELS:
            return cls.channels(params.get('red', 0), params.get('green', 0), params.get('blue', 0))
        if kind is TransformKind.GAMMA:
            return cls.gamma(params.get('gamma', params.get('amount', 1.0)))
        if kind is TransformKind.HUE:
            return cls.hue(params.get('degrees', params.get('amount', 0)))
        raise UnknownOperation(kind.value)

    @classmethod
    def preset(cls, name: Union[str, TransformKind]) -> 'ColorTransform':
        kind = TransformKind.parse(name)
        if not kind.is_preset:
            raise UnknownOperation(kind.value)
        return cls(PRESET_MATRICES[kind])

    @classmethod
    def brightness(cls, amount: float) -> 'ColorTransform':
        """Add ``amount/100 * 255`` to R, G and B."""
        amount = _clamped(amount, 'brightness')
        matrix = cls.identity().as_array()
        matrix[:3, 4] = amount / 100.0 * 255.0
        return cls(matrix)

    @classmethod
    def contrast(cls, amount: float) -> 'ColorTransform':
        """Scale R, G, B around mid-grey 128."""
        factor = _factor(_clamped(amount, 'contrast'))
        matrix = cls.identity().as_array()
        for channel in range(3):
            matrix[channel, channel] = factor
        matrix[:3, 4] = 128.0 * (1.0 - factor)
        return cls(matrix)

    @classmethod
    def saturation(cls, amount: float) -> 'ColorTransform':
        factor = _factor(_clamped(amount, 'saturation'))
        matrix = cls.identity().as_array()
        for row in range(3):
            for col, weight in enumerate(LUMINANCE_WEIGHTS):
                matrix[row, col] = weight * (1.0 - factor)
            matrix[row, row] += factor
        return cls(matrix)

    @classmethod
    def channels(cls, red: float = 0.0, green: float = 0.0, blue: float = 0.0) -> 'ColorTransform':
        """Per-channel gain; each amount scales only its own diagonal entry."""
        matrix = cls.identity().as_array()
        for channel, (name, amount) in enumerate((('red', red), ('green', green), ('blue', blue))):
            matrix[channel, channel] = _factor(_clamped(amount, name))
        return cls(matrix)

    @classmethod
    def gamma(cls, gamma: float) -> 'ColorTransform':
        """
        Linear approximation of a gamma adjustment.

        gamma < 1 brightens (factor ``1 + (1-g)*0.5``, offset ``(1-g)*50``),
        gamma > 1 darkens (factor ``1/(1 + (g-1)*0.3)``, offset ``-(g-1)*30``).

        Raises:
            InvalidParameter: gamma <= 0
        """
        gamma = _number(gamma, 'gamma')
        if gamma <= 0:
            raise InvalidParameter(f"gamma must be > 0, got {gamma}")
        if gamma == 1.0:
            return cls.identity()

        if gamma < 1.0:
            factor = 1.0 + (1.0 - gamma) * 0.5
            offset = (1.0 - gamma) * 50.0
        else:
            factor = 1.0 / (1.0 + (gamma - 1.0) * 0.3)
            offset = -(gamma - 1.0) * 30.0

        matrix = cls.identity().as_array()
        for channel in range(3):
            matrix[channel, channel] = factor
        matrix[:3, 4] = offset
        return cls(matrix)

    @classmethod
    def hue(cls, degrees: float) -> 'ColorTransform':
        """Luminance-preserving hue rotation."""
        radians = math.radians(_clamped(degrees, 'hue', HUE_RANGE))
        c, s = math.cos(radians), math.sin(radians)
        matrix = cls.identity().as_array()
        matrix[0, :3] = [0.213 + c * 0.787 - s * 0.213,
                         0.715 - c * 0.715 - s * 0.715,
                         0.072 - c * 0.072 + s * 0.928]
        matrix[1, :3] = [0.213 - c * 0.213 + s * 0.143,
                         0.715 + c * 0.285 + s * 0.140,
                         0.072 - c * 0.072 - s * 0.283]
        matrix[2, :3] = [0.213 - c * 0.213 - s * 0.787,
                         0.715 - c * 0.715 + s * 0.715,
                         0.072 + c * 0.928 + s * 0.072]
        return cls(matrix)

    # ----- composition -----

    @staticmethod
    def compose(first: 'ColorTransform', second: 'ColorTransform') -> 'ColorTransform':
        """Apply ``first`` then ``second``."""
        linear = second.linear @ first.linear
        offset = second.linear @ first.offset + second.offset
        return ColorTransform(np.hstack([linear, offset.reshape(4, 1)]))

    def then(self, other: 'ColorTransform') -> 'ColorTransform':
        return ColorTransform.compose(self, other)

    @classmethod
    def fold(cls, transforms: Iterable['ColorTransform']) -> 'ColorTransform':
        """Compose transforms left to right, starting from identity."""
        result = cls.identity()
        for transform in transforms:
            result = cls.compose(result, transform)
        return result

    def blend(self, other: 'ColorTransform', weight: float) -> 'ColorTransform':
        """
        Interpolate coefficients towards ``other``.

        ``weight`` is clamped to [0, 1]; 0 returns self, 1 returns other.
        """
        weight = max(0.0, min(1.0, _number(weight, 'weight')))
        return ColorTransform(self._matrix * (1.0 - weight) + other._matrix * weight)

    # ----- accessors -----

    @property
    def linear(self) -> np.ndarray:
        return self._matrix[:, :4]

    @property
    def offset(self) -> np.ndarray:
        return self._matrix[:, 4]

    def as_array(self) -> np.ndarray:
        """Writable copy of the 4x5 matrix."""
        return self._matrix.copy()

    def to_list(self) -> List[List[float]]:
        return self._matrix.tolist()

    def to_flat_list(self) -> List[float]:
        """Row-major 20 coefficients."""
        return self._matrix.flatten().tolist()

    def apply_to_pixel(self, rgba: Sequence[float]) -> Tuple[float, float, float, float]:
        """Apply to one pixel, without clipping."""
        if len(rgba) == 3:
            rgba = (*rgba, 255.0)
        pixel = np.asarray(rgba, dtype=np.float64)
        result = self.linear @ pixel + self.offset
        return tuple(float(v) for v in result)

    def approx_equal(self, other: 'ColorTransform', tol: float = 1e-9) -> bool:
        return bool(np.allclose(self._matrix, other._matrix, rtol=0.0, atol=tol))

    def is_identity(self, tol: float = 1e-9) -> bool:
        return self.approx_equal(ColorTransform.identity(), tol)

    def __eq__(self, other):
        if not isinstance(other, ColorTransform):
            return NotImplemented
        return bool(np.array_equal(self._matrix, other._matrix))

    def __hash__(self):
        return hash(self._matrix.tobytes())

    def __repr__(self):
        rows = ", ".join(
            "[" + ", ".join(f"{v:.4g}" for v in row) + "]" for row in self._matrix
        )
        return f"ColorTransform([{rows}])"
