"""
Learning user editing profiles from session history.

Each session contributes with weight ``rating / 5``. The rating is the most
recent one given through feedback, falling back to the session rating and
then to a neutral default for unrated sessions.
"""

import math
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..processing.models import EditingStyle, EnhancementConfig, SessionRecord, UserEditingProfile
from ..processing.tuning import DEFAULT_TUNING, TuningTable

logger = logging.getLogger(__name__)


def look_signature(config: EnhancementConfig) -> str:
    """
    Compact identifier for a style + operations + strength combination.

    Example: ``vibrant_clahe,color_balance_6``
    """
    names = sorted(op.name for op in config.operations if op.enabled)
    strength_step = int(math.floor(config.strength * 10 + 0.5))
    return f"{config.style.value}_{','.join(names)}_{strength_step}"


class ProfileBuilder:
    """Builds UserEditingProfile values from sessions ordered newest first"""

    def __init__(self, tuning: Optional[TuningTable] = None):
        self.tuning = tuning or DEFAULT_TUNING

    def session_weight(self, session: SessionRecord) -> float:
        return session.effective_rating(self.tuning.personalization.default_rating) / 5.0

    def session_strength(self, session: SessionRecord) -> float:
        """Session strength, corrected by its latest strength feedback."""
        strength = session.config.strength
        factors = self.tuning.feedback
        for record in reversed(session.feedback):
            notes = record.specific_feedback
            if notes.too_strong:
                return max(0.0, strength * factors.too_strong_factor)
            if notes.too_weak:
                return min(1.0, strength * factors.too_weak_factor)
        return strength

    def build(self, sessions: Sequence[SessionRecord]) -> UserEditingProfile:
        """
        Build a profile from sessions ordered newest first.

        Args:
            sessions: Historical sessions with feedback attached

        Returns:
            UserEditingProfile; the default profile when there is no history
        """
        if not sessions:
            return UserEditingProfile.default()

        settings = self.tuning.personalization
        operation_usage: Dict[str, float] = {}
        style_usage: Dict[str, float] = {}
        type_totals: Dict[str, Dict[str, float]] = {}
        favorite_looks: List[str] = []
        strength_total = 0.0
        weight_total = 0.0

        for session in sessions:
            weight = self.session_weight(session)
            config = session.config

            for op in config.sorted_operations():
                if op.enabled:
                    operation_usage[op.name] = operation_usage.get(op.name, 0.0) + weight

            style = config.style.value
            style_usage[style] = style_usage.get(style, 0.0) + weight

            strength = self.session_strength(session)
            strength_total += strength * weight
            weight_total += weight

            totals = type_totals.setdefault(session.image_type, {'strength': 0.0, 'weight': 0.0, 'sessions': 0})
            totals['strength'] += strength * weight
            totals['weight'] += weight
            totals['sessions'] += 1

            if session.effective_rating(settings.default_rating) >= settings.favorite_min_rating:
                signature = look_signature(config)
                if signature not in favorite_looks:
                    favorite_looks.append(signature)

        # sorted() is stable, so ties keep first-appearance order
        ranked = sorted(operation_usage.items(), key=lambda item: -item[1])
        preferred = [name for name, _ in ranked[:settings.max_preferred_algorithms]]

        count = len(sessions)
        style_preferences = {
            style.value: style_usage.get(style.value, 0.0) / count for style in EditingStyle
        }

        image_type_preferences = {
            image_type: {
                'average_strength': totals['strength'] / totals['weight'] if totals['weight'] else 0.5,
                'sessions': int(totals['sessions']),
            }
            for image_type, totals in type_totals.items()
        }

        profile = UserEditingProfile(
            preferred_algorithms=tuple(preferred),
            style_preferences=style_preferences,
            average_enhancement_strength=strength_total / weight_total if weight_total else 0.5,
            favorite_looks=tuple(favorite_looks[:settings.max_favorite_looks]),
            image_type_preferences=image_type_preferences,
        )
        logger.debug(f"Built profile from {count} sessions: {', '.join(preferred)}")
        return profile

    def insights(self, sessions: Sequence[SessionRecord]) -> Optional[Dict[str, Any]]:
        """
        Summarize editing habits for display.

        Returns None until the user has enough history.
        """
        if len(sessions) < self.tuning.personalization.min_insight_sessions:
            return None

        count = len(sessions)
        algorithms: Dict[str, float] = {}
        styles: Dict[str, float] = {}
        priorities: Dict[str, float] = {}
        effectiveness: Dict[str, List[float]] = {}
        ratings = []

        for session in sessions:
            weight = self.session_weight(session)
            config = session.config
            ratings.append(session.effective_rating(self.tuning.personalization.default_rating))

            for op in config.operations:
                if not op.enabled:
                    continue
                algorithms[op.name] = algorithms.get(op.name, 0.0) + weight
                if session.quality_improvement is not None:
                    effectiveness.setdefault(op.name, []).append(session.quality_improvement * weight)

            styles[config.style.value] = styles.get(config.style.value, 0.0) + weight
            priorities[config.priority.value] = priorities.get(config.priority.value, 0.0) + weight

        profile = self.build(sessions)
        return {
            'session_count': count,
            'average_rating': sum(ratings) / count,
            'algorithm_preferences': {name: value / count for name, value in algorithms.items()},
            'style_preferences': {name: value / count for name, value in styles.items()},
            'priority_preferences': {name: value / count for name, value in priorities.items()},
            'strength_by_image_type': {
                image_type: prefs['average_strength']
                for image_type, prefs in profile.image_type_preferences.items()
            },
            'algorithm_effectiveness': {
                name: sum(values) / len(values) for name, values in effectiveness.items()
            },
            'favorite_looks': list(profile.favorite_looks),
        }
