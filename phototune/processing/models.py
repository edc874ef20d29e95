"""
Data models for enhancement configuration, sessions and feedback.
"""

import copy
import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


class ImageType(Enum):
    """Image categories reported by the upstream analysis."""
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    FOOD = "food"
    NATURE = "nature"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> 'ImageType':
        """Parse a free-form string, mapping anything unknown to OTHER."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


class EditingPriority(Enum):
    """What a configuration optimizes for"""
    QUALITY = "quality"
    SPEED = "speed"
    ARTISTIC = "artistic"


class EditingStyle(Enum):
    """Global color style of a configuration"""
    NATURAL = "natural"
    VIBRANT = "vibrant"
    MUTED = "muted"
    WARM = "warm"
    COOL = "cool"


class FeedbackType(Enum):
    LIKE = "like"
    DISLIKE = "dislike"
    ADJUSTMENT_REQUEST = "adjustment_request"


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, float(value)))


def _clamp_rating(value: Optional[Any]) -> Optional[int]:
    if value is None:
        return None
    return int(max(1, min(5, round(float(value)))))


@dataclass(frozen=True)
class TechnicalQuality:
    """Technical quality scores, each in [0, 1]"""
    overall: float = 0.5
    exposure: float = 0.5
    sharpness: float = 0.5

    def __post_init__(self):
        for name in ('overall', 'exposure', 'sharpness'):
            object.__setattr__(self, name, _clamp(getattr(self, name)))

    def to_dict(self) -> Dict[str, float]:
        return {'overall': self.overall, 'exposure': self.exposure, 'sharpness': self.sharpness}


@dataclass(frozen=True)
class AnalysisResult:
    """
    Upstream understanding of one photo.

    ``image_type`` keeps the raw string reported by the analysis model so
    that unrecognized types can fall back to a default operation set;
    use :attr:`kind` for the parsed enum.
    """
    image_type: str
    mood: str = "neutral"
    technical_quality: TechnicalQuality = field(default_factory=TechnicalQuality)

    def __post_init__(self):
        image_type = self.image_type.value if isinstance(self.image_type, ImageType) else self.image_type
        object.__setattr__(self, 'image_type', str(image_type).strip().lower())
        object.__setattr__(self, 'mood', str(self.mood or "neutral").strip().lower())

    @property
    def kind(self) -> ImageType:
        return ImageType.parse(self.image_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'image_type': self.image_type,
            'mood': self.mood,
            'technical_quality': self.technical_quality.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'AnalysisResult':
        """Build from a dict, accepting snake_case or camelCase keys."""
        quality = data.get('technical_quality', data.get('technicalQuality')) or {}
        return cls(
            image_type=data.get('image_type', data.get('imageType', ImageType.OTHER.value)),
            mood=data.get('mood', 'neutral'),
            technical_quality=TechnicalQuality(
                overall=quality.get('overall', 0.5),
                exposure=quality.get('exposure', 0.5),
                sharpness=quality.get('sharpness', 0.5),
            ),
        )


@dataclass(frozen=True)
class UserPreferences:
    """Explicit, per-request user preferences"""
    color_preference: Optional[EditingStyle] = None

    def __post_init__(self):
        if self.color_preference is not None and not isinstance(self.color_preference, EditingStyle):
            object.__setattr__(self, 'color_preference', EditingStyle(self.color_preference))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional['UserPreferences']:
        if not data:
            return None
        return cls(color_preference=data.get('color_preference', data.get('colorPreference')))


@dataclass(frozen=True)
class OperationConfig:
    """One scheduled operation instance in an enhancement configuration"""
    name: str
    params: Dict[str, Any] = field(default_factory=dict)
    order: int = 0
    enabled: bool = True

    def with_params(self, params: Dict[str, Any]) -> 'OperationConfig':
        return replace(self, params=copy.deepcopy(params))

    def disabled(self) -> 'OperationConfig':
        return replace(self, enabled=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'enabled': self.enabled,
            'params': copy.deepcopy(self.params),
            'order': self.order,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'OperationConfig':
        return cls(
            name=data['name'],
            params=copy.deepcopy(dict(data.get('params') or {})),
            order=int(data.get('order', 0)),
            enabled=bool(data.get('enabled', True)),
        )


@dataclass(frozen=True)
class EnhancementConfig:
    """
    Full enhancement plan for one image.

    Strength is clamped to [0, 1] on construction. Operations are kept in
    the order given; :meth:`sorted_operations` returns them in execution
    order (ascending ``order``, stable for ties). The same operation name
    may appear more than once when it is meant to be applied twice.
    """
    operations: Tuple[OperationConfig, ...] = ()
    strength: float = 0.5
    priority: EditingPriority = EditingPriority.QUALITY
    style: EditingStyle = EditingStyle.NATURAL

    def __post_init__(self):
        object.__setattr__(self, 'operations', tuple(self.operations))
        object.__setattr__(self, 'strength', _clamp(self.strength))
        if not isinstance(self.priority, EditingPriority):
            object.__setattr__(self, 'priority', EditingPriority(self.priority))
        if not isinstance(self.style, EditingStyle):
            object.__setattr__(self, 'style', EditingStyle(self.style))

    def sorted_operations(self) -> List[OperationConfig]:
        return sorted(self.operations, key=lambda op: op.order)

    def enabled_operations(self) -> List[OperationConfig]:
        return [op for op in self.sorted_operations() if op.enabled]

    def operation_names(self) -> List[str]:
        return [op.name for op in self.sorted_operations()]

    def has_operation(self, name: str) -> bool:
        return any(op.name == name for op in self.operations)

    def next_order(self) -> int:
        return max((op.order for op in self.operations), default=0) + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'operations': [op.to_dict() for op in self.operations],
            'strength': self.strength,
            'priority': self.priority.value,
            'style': self.style.value,
        }

    def to_json(self) -> str:
        """Canonical JSON form; identical configs give identical strings."""
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'EnhancementConfig':
        operations = data.get('operations', data.get('algorithms')) or []
        return cls(
            operations=tuple(OperationConfig.from_dict(op) for op in operations),
            strength=data.get('strength', 0.5),
            priority=data.get('priority', EditingPriority.QUALITY.value),
            style=data.get('style', EditingStyle.NATURAL.value),
        )


@dataclass(frozen=True)
class UserEditingProfile:
    """
    Learned preference summary for one user.

    Mapping fields are exposed as read-only views; use :meth:`to_dict` for
    a mutable copy.
    """
    preferred_algorithms: Tuple[str, ...] = ()
    style_preferences: Mapping[str, float] = field(default_factory=dict)
    average_enhancement_strength: float = 0.5
    favorite_looks: Tuple[str, ...] = ()
    image_type_preferences: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'preferred_algorithms', tuple(self.preferred_algorithms))
        object.__setattr__(self, 'favorite_looks', tuple(self.favorite_looks))
        object.__setattr__(self, 'average_enhancement_strength',
                           _clamp(self.average_enhancement_strength))
        object.__setattr__(self, 'style_preferences',
                           MappingProxyType(dict(self.style_preferences)))
        object.__setattr__(self, 'image_type_preferences',
                           MappingProxyType(dict(self.image_type_preferences)))

    @classmethod
    def default(cls) -> 'UserEditingProfile':
        """Profile used for users without history."""
        return cls(
            preferred_algorithms=('clahe', 'color_balance', 'unsharp_mask'),
            style_preferences={
                EditingStyle.NATURAL.value: 0.4,
                EditingStyle.VIBRANT.value: 0.3,
                EditingStyle.WARM.value: 0.2,
                EditingStyle.COOL.value: 0.1,
                EditingStyle.MUTED.value: 0.0,
            },
            average_enhancement_strength=0.5,
            favorite_looks=(),
            image_type_preferences={},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'preferred_algorithms': list(self.preferred_algorithms),
            'style_preferences': dict(self.style_preferences),
            'average_enhancement_strength': self.average_enhancement_strength,
            'favorite_looks': list(self.favorite_looks),
            'image_type_preferences': copy.deepcopy(dict(self.image_type_preferences)),
        }


@dataclass(frozen=True)
class SpecificFeedback:
    """Structured notes attached to a feedback record"""
    too_strong: bool = False
    too_weak: bool = False
    wrong_style: bool = False
    improved_aspects: Tuple[str, ...] = ()
    issue_aspects: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'improved_aspects', tuple(self.improved_aspects or ()))
        object.__setattr__(self, 'issue_aspects', tuple(self.issue_aspects or ()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'too_strong': self.too_strong,
            'too_weak': self.too_weak,
            'wrong_style': self.wrong_style,
            'improved_aspects': list(self.improved_aspects),
            'issue_aspects': list(self.issue_aspects),
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'SpecificFeedback':
        data = data or {}
        return cls(
            too_strong=bool(data.get('too_strong', data.get('tooStrong', False))),
            too_weak=bool(data.get('too_weak', data.get('tooWeak', False))),
            wrong_style=bool(data.get('wrong_style', data.get('wrongStyle', False))),
            improved_aspects=tuple(data.get('improved_aspects', data.get('improvedAspects')) or ()),
            issue_aspects=tuple(data.get('issue_aspects', data.get('issueAspects')) or ()),
        )


@dataclass
class FeedbackRecord:
    """Explicit user reaction to one enhancement session"""
    session_id: str
    user_id: str
    feedback_type: FeedbackType = FeedbackType.ADJUSTMENT_REQUEST
    rating: Optional[int] = None  # 1-5 stars
    specific_feedback: SpecificFeedback = field(default_factory=SpecificFeedback)
    feedback_id: Optional[str] = None
    created_at: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.feedback_type, FeedbackType):
            self.feedback_type = FeedbackType(self.feedback_type)
        self.rating = _clamp_rating(self.rating)
        if self.created_at is None:
            self.created_at = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'feedback_id': self.feedback_id,
            'session_id': self.session_id,
            'user_id': self.user_id,
            'feedback_type': self.feedback_type.value,
            'rating': self.rating,
            'specific_feedback': self.specific_feedback.to_dict(),
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'FeedbackRecord':
        return cls(
            session_id=data.get('session_id', data.get('editingSessionId')),
            user_id=data.get('user_id', data.get('userId')),
            feedback_type=data.get('feedback_type', data.get('feedbackType',
                                                             FeedbackType.ADJUSTMENT_REQUEST.value)),
            rating=data.get('rating'),
            specific_feedback=SpecificFeedback.from_dict(
                data.get('specific_feedback', data.get('specificFeedback'))
            ),
            feedback_id=data.get('feedback_id'),
            created_at=data.get('created_at'),
        )


@dataclass
class SessionRecord:
    """One historical enhancement run"""
    user_id: str
    config: EnhancementConfig
    image_type: str = ImageType.OTHER.value
    rating: Optional[int] = None  # 1-5 stars, None until rated
    quality_improvement: Optional[float] = None
    processing_time: float = 0.0
    created_at: Optional[str] = None
    session_id: Optional[str] = None
    feedback: Tuple[FeedbackRecord, ...] = ()

    def __post_init__(self):
        self.rating = _clamp_rating(self.rating)
        self.feedback = tuple(self.feedback)
        if self.created_at is None:
            self.created_at = datetime.now().isoformat()

    def effective_rating(self, default: int) -> int:
        """Latest rating given through feedback, else the session rating."""
        for record in reversed(self.feedback):
            if record.rating is not None:
                return record.rating
        return self.rating if self.rating is not None else default

    def with_feedback(self, records: Iterable[FeedbackRecord]) -> 'SessionRecord':
        return replace(self, feedback=tuple(records))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'user_id': self.user_id,
            'image_type': self.image_type,
            'config': self.config.to_dict(),
            'rating': self.rating,
            'quality_improvement': self.quality_improvement,
            'processing_time': self.processing_time,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'SessionRecord':
        return cls(
            user_id=data['user_id'],
            config=EnhancementConfig.from_dict(data.get('config') or {}),
            image_type=data.get('image_type', ImageType.OTHER.value),
            rating=data.get('rating'),
            quality_improvement=data.get('quality_improvement'),
            processing_time=float(data.get('processing_time') or 0.0),
            created_at=data.get('created_at'),
            session_id=data.get('session_id'),
        )


@dataclass
class EnhancementResult:
    """Outcome of one orchestrated enhancement run"""
    transformed_image_handle: Any
    applied_config: EnhancementConfig
    elapsed_time: float
    operation_summary: List[str]
    transform: Any = None
    session_id: Optional[str] = None
    used_fallback: bool = False
    persistence_error: Optional[str] = None
    quality_improvement: Optional[float] = None

    @property
    def persisted(self) -> bool:
        return self.session_id is not None
