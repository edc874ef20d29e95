"""
Operation registry for PhotoTune

Maps operation names to their default parameters, applicability rules and
the color transform each one produces. The registry is filled once at
startup by :func:`build_default_registry` and frozen; afterwards it is only
read, so it can be shared between concurrent runs without locking.

Named enhancement operations (clahe, bilateral, unsharp_mask, ...) are
approximated by composing the primitive transform kinds. They reproduce the
intent of the spatial filters they are named after, not their output.
"""

import copy
import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from ..errors import InvalidParameter, UnknownOperation
from .color import ColorTransform, TransformKind
from .models import AnalysisResult, OperationConfig
from .tuning import DEFAULT_TUNING, TuningTable

logger = logging.getLogger(__name__)

Params = Mapping[str, Any]
Applicability = Callable[[AnalysisResult], bool]


@dataclass(frozen=True)
class OperationSpec:
    """
    Declarative description of one operation.

    ``derive`` receives the operation's parameters merged over
    ``default_params`` and returns its ColorTransform.
    """
    name: str
    derive: Callable[[Params], ColorTransform]
    default_params: Mapping[str, Any] = field(default_factory=dict)
    applicability: Optional[Applicability] = None
    salient_param: Optional[str] = None
    salient_ceiling: Optional[float] = None
    category: str = "enhancement"
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'default_params',
                           MappingProxyType(copy.deepcopy(dict(self.default_params))))

    def transform(self, params: Optional[Params] = None) -> ColorTransform:
        merged = dict(copy.deepcopy(dict(self.default_params)))
        merged.update(params or {})
        return self.derive(merged)

    def is_applicable(self, analysis: AnalysisResult) -> bool:
        if self.applicability is None:
            return True
        return bool(self.applicability(analysis))


class OperationRegistry:
    """Name-keyed collection of OperationSpec"""

    def __init__(self):
        self._specs: Dict[str, OperationSpec] = {}
        self._frozen = False

    def register(self, spec: OperationSpec) -> None:
        if self._frozen:
            raise RuntimeError(f"Registry is frozen; cannot register {spec.name}")
        if spec.name in self._specs:
            raise ValueError(f"Operation already registered: {spec.name}")
        self._specs[spec.name] = spec
        logger.debug(f"Registered operation {spec.name}")

    def freeze(self) -> 'OperationRegistry':
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> OperationSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownOperation(name) from None

    def __contains__(self, name: str) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[OperationSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    def default_params(self, name: str) -> Dict[str, Any]:
        """Mutable copy of an operation's default parameters."""
        return copy.deepcopy(dict(self.get(name).default_params))

    def is_applicable(self, name: str, analysis: AnalysisResult) -> bool:
        return self.get(name).is_applicable(analysis)

    def transform_for(self, operation: OperationConfig) -> ColorTransform:
        return self.get(operation.name).transform(operation.params)

    def scale_salient(self, operation: OperationConfig, factor: float) -> OperationConfig:
        """
        Scale an operation's most salient parameter, bounded by its ceiling.

        Operations without a salient parameter, or where the parameter is
        missing or zero, are returned unchanged.
        """
        spec = self.get(operation.name)
        key = spec.salient_param
        if key is None:
            return operation
        value = operation.params.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value == 0:
            return operation

        scaled = value * factor
        if spec.salient_ceiling is not None:
            scaled = min(scaled, spec.salient_ceiling)
        params = copy.deepcopy(operation.params)
        params[key] = scaled
        return replace(operation, params=params)

    def available(self) -> List[str]:
        return sorted(self._specs)

    def info(self, name: str) -> Dict[str, Any]:
        spec = self.get(name)
        return {
            'name': spec.name,
            'category': spec.category,
            'description': spec.description,
            'default_params': self.default_params(name),
            'salient_param': spec.salient_param,
            'salient_ceiling': spec.salient_ceiling,
        }


def _num(params: Params, key: str, default: float) -> float:
    value = params.get(key, default)
    if isinstance(value, bool):
        raise InvalidParameter(f"{key} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidParameter(f"{key} must be a number, got {value!r}") from None


# Enhancement approximations. Amounts are in the -100..100 units of
# ColorTransform; ColorTransform clamps anything outside that range.

def _clahe(params: Params) -> ColorTransform:
    strength = max(0.0, _num(params, 'clip_limit', 2.0) - 1.0)
    return ColorTransform.fold([
        ColorTransform.contrast(min(strength * 12.0, 40.0)),
        ColorTransform.brightness(min(strength * 2.0, 6.0)),
    ])


def _bilateral(params: Params) -> ColorTransform:
    smoothing = min(_num(params, 'd', 9) / 15.0, 0.3)
    smoothing *= min(_num(params, 'sigma_color', 75) / 75.0, 2.0)
    return ColorTransform.fold([
        ColorTransform.saturation(-smoothing * 30.0),
        ColorTransform.contrast(-smoothing * 20.0),
    ])


def _unsharp_mask(params: Params) -> ColorTransform:
    sharpen = min(_num(params, 'amount', 0.5) * 2.0, 1.0)
    return ColorTransform.fold([
        ColorTransform.contrast(sharpen * 40.0),
        ColorTransform.saturation(sharpen * 20.0),
    ])


def _tone_mapping(params: Params) -> ColorTransform:
    return ColorTransform.fold([
        ColorTransform.brightness(_num(params, 'exposure', 0.0) * 50.0),
        ColorTransform.gamma(_num(params, 'gamma', 1.0)),
    ])


def _color_balance(params: Params) -> ColorTransform:
    temperature = _num(params, 'temperature', 0.0)
    tint = _num(params, 'tint', 0.0)
    multiplier = min(_num(params, 'vibrancy', 1.0) * (_num(params, 'saturation', 1.0) or 1.0), 2.0)
    greens = _num(params, 'greens', 1.0)
    blues = _num(params, 'blues', 1.0)
    return ColorTransform.fold([
        ColorTransform.saturation((multiplier - 1.0) * 100.0),
        ColorTransform.channels(
            red=temperature / 10.0,
            green=-tint / 10.0 + (greens - 1.0) * 50.0,
            blue=-temperature / 10.0 + (blues - 1.0) * 50.0,
        ),
    ])


def _denoising(params: Params) -> ColorTransform:
    factor = min(_num(params, 'strength', 0.3), 0.4)
    return ColorTransform.fold([
        ColorTransform.saturation(-factor * 20.0),
        ColorTransform.contrast(-factor * 10.0),
    ])


def _dramatic_enhancement(params: Params) -> ColorTransform:
    intensity = _num(params, 'intensity', 0.5)
    style = str(params.get('style', 'natural')).lower()
    steps = [ColorTransform.contrast(intensity * 20.0)]
    if style == 'vibrant':
        steps.append(ColorTransform.saturation(intensity * 30.0))
    elif style == 'warm':
        steps.append(ColorTransform.channels(red=intensity * 10.0, blue=-intensity * 10.0))
    else:
        steps.append(ColorTransform.saturation(intensity * 10.0))
    return ColorTransform.fold(steps)


def _shadow_highlight(params: Params) -> ColorTransform:
    return ColorTransform.fold([
        ColorTransform.brightness(_num(params, 'shadows', 20.0) * 0.2),
        ColorTransform.contrast(_num(params, 'highlights', -20.0) * 0.3),
    ])


def _detail_enhancement(params: Params) -> ColorTransform:
    return ColorTransform.contrast(_num(params, 'amount', 0.3) * 25.0)


def _basic_adjust(params: Params) -> ColorTransform:
    return ColorTransform.fold([
        ColorTransform.brightness(_num(params, 'brightness', 10.0)),
        ColorTransform.contrast(_num(params, 'contrast', 15.0)),
        ColorTransform.saturation(_num(params, 'saturation', 10.0)),
    ])


def _primitive(kind: TransformKind) -> Callable[[Params], ColorTransform]:
    def derive(params: Params) -> ColorTransform:
        return ColorTransform.from_kind(kind, params)
    return derive


FALLBACK_OPERATION = 'basic_adjust'


def build_default_registry(tuning: TuningTable = DEFAULT_TUNING) -> OperationRegistry:
    """
    Create the standard operation registry.

    Applicability thresholds and salient-parameter ceilings are read from
    ``tuning``.

    Args:
        tuning: Tuning table to read thresholds and ceilings from

    Returns:
        Frozen OperationRegistry
    """
    registry = OperationRegistry()
    limits = tuning.applicability

    # Primitive adjustments
    primitives = [
        (TransformKind.BRIGHTNESS, {'amount': 0}, "Shift R, G, B by amount% of full scale"),
        (TransformKind.CONTRAST, {'amount': 0}, "Scale R, G, B around mid-grey"),
        (TransformKind.SATURATION, {'amount': 0}, "Mix towards or away from luminance"),
        (TransformKind.CHANNELS, {'red': 0, 'green': 0, 'blue': 0}, "Per-channel gain"),
        (TransformKind.GAMMA, {'gamma': 1.0}, "Linear approximation of gamma"),
        (TransformKind.HUE, {'degrees': 0}, "Luminance-preserving hue rotation"),
    ]
    for kind, defaults, description in primitives:
        registry.register(OperationSpec(
            name=kind.value,
            derive=_primitive(kind),
            default_params=defaults,
            category="adjustment",
            description=description,
        ))

    for kind in (TransformKind.GRAYSCALE, TransformKind.SEPIA, TransformKind.INVERT,
                 TransformKind.HIGH_CONTRAST, TransformKind.WARMTH, TransformKind.COOL):
        registry.register(OperationSpec(
            name=kind.value,
            derive=_primitive(kind),
            category="preset",
            description=f"Fixed {kind.value.replace('_', ' ')} matrix",
        ))

    enhancements = [
        OperationSpec(
            name='clahe',
            derive=_clahe,
            default_params={'clip_limit': 2.0, 'tile_grid_size': [8, 8]},
            applicability=lambda a: a.technical_quality.exposure < limits.clahe_max_exposure,
            salient_param='clip_limit',
            description="Local contrast boost (adaptive histogram equalization)",
        ),
        OperationSpec(
            name='bilateral',
            derive=_bilateral,
            default_params={'d': 9, 'sigma_color': 75, 'sigma_space': 75},
            applicability=lambda a: a.technical_quality.sharpness < limits.bilateral_max_sharpness,
            salient_param='sigma_color',
            description="Edge-preserving smoothing",
        ),
        OperationSpec(
            name='unsharp_mask',
            derive=_unsharp_mask,
            default_params={'radius': 1.0, 'amount': 0.5, 'threshold': 0},
            salient_param='amount',
            description="Sharpening",
        ),
        OperationSpec(
            name='tone_mapping',
            derive=_tone_mapping,
            default_params={'gamma': 0.9, 'exposure': 0.1},
            salient_param='exposure',
            description="Exposure and gamma correction",
        ),
        OperationSpec(
            name='color_balance',
            derive=_color_balance,
            default_params={'temperature': 0, 'tint': 0, 'vibrancy': 1.1, 'saturation': 1.0},
            applicability=lambda a: a.image_type in limits.color_balance_image_types,
            salient_param='vibrancy',
            description="White balance and vibrancy",
        ),
        OperationSpec(
            name='denoising',
            derive=_denoising,
            default_params={'strength': 0.3, 'h': 10},
            applicability=lambda a: a.technical_quality.overall < limits.denoising_max_overall,
            salient_param='strength',
            description="Noise reduction",
        ),
        OperationSpec(
            name='dramatic_enhancement',
            derive=_dramatic_enhancement,
            default_params={'intensity': 0.5, 'style': 'natural'},
            salient_param='intensity',
            description="Combined contrast and color punch",
        ),
        OperationSpec(
            name='shadow_highlight',
            derive=_shadow_highlight,
            default_params={'shadows': 20, 'highlights': -20},
            salient_param='shadows',
            description="Lift shadows and recover highlights",
        ),
        OperationSpec(
            name='detail_enhancement',
            derive=_detail_enhancement,
            default_params={'amount': 0.3},
            salient_param='amount',
            description="Mid-tone detail boost",
        ),
        OperationSpec(
            name=FALLBACK_OPERATION,
            derive=_basic_adjust,
            default_params={'brightness': 10, 'contrast': 15, 'saturation': 10},
            category="fallback",
            description="Mild brightness, contrast and saturation lift",
        ),
    ]
    for spec in enhancements:
        if spec.salient_param is not None:
            spec = replace(spec, salient_ceiling=tuning.ceiling_for(spec.name))
        registry.register(spec)

    return registry.freeze()
