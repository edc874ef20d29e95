"""
Personalization engine for PhotoTune

Learns a per-user editing profile from stored sessions and feedback,
blends it into generated configurations, and adapts configurations in
response to explicit feedback.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Union

from ..config import get_default_config
from ..errors import PersistenceError
from ..processing.config_generator import ConfigurationGenerator
from ..processing.models import (
    AnalysisResult, EditingStyle, EnhancementConfig, FeedbackRecord,
    OperationConfig, SpecificFeedback, UserEditingProfile,
)
from ..processing.operations import OperationRegistry, build_default_registry
from ..processing.tuning import DEFAULT_TUNING, TuningTable
from ..storage import SessionStore
from .cache import ProfileCache
from .profile import ProfileBuilder

logger = logging.getLogger(__name__)


def _matches(name: str, tokens: Iterable[str]) -> bool:
    name = name.lower()
    return any(token and token.strip().lower() in name for token in tokens)


class PersonalizationEngine:
    """
    Per-user profile learning and configuration blending.

    Only :meth:`record_feedback` writes anything; every other method is a
    read or a pure transformation of its arguments.
    """

    def __init__(self, store: SessionStore,
                 registry: Optional[OperationRegistry] = None,
                 generator: Optional[ConfigurationGenerator] = None,
                 tuning: Optional[TuningTable] = None,
                 cache: Optional[ProfileCache] = None,
                 history_limit: int = 50):
        """
        Initialize the engine.

        Args:
            store: Session/feedback persistence
            registry: Operation registry (default registry if None)
            generator: Generator used when personalize() gets no base config
            tuning: Tuning table for weights, multipliers and ceilings
            cache: Profile cache (256-entry LRU if None)
            history_limit: Sessions read per profile rebuild
        """
        self.store = store
        self.tuning = tuning or DEFAULT_TUNING
        self.registry = registry or build_default_registry(self.tuning)
        self.generator = generator or ConfigurationGenerator(self.registry, self.tuning)
        self.cache = cache if cache is not None else ProfileCache()
        self.history_limit = history_limit
        self.builder = ProfileBuilder(self.tuning)

    @classmethod
    def from_config(cls, store: SessionStore, config: Optional[Dict[str, Any]] = None,
                    registry: Optional[OperationRegistry] = None,
                    generator: Optional[ConfigurationGenerator] = None,
                    tuning: Optional[TuningTable] = None) -> 'PersonalizationEngine':
        """Engine sized by the ``personalization`` config section."""
        config = config or get_default_config()
        section = config.get('personalization') or {}
        return cls(
            store,
            registry=registry,
            generator=generator,
            tuning=tuning or TuningTable.from_config(config),
            cache=ProfileCache(max_size=int(section.get('cache_size', 256))),
            history_limit=int(section.get('history_limit', 50)),
        )

    # ----- profiles -----

    def profile_for(self, user_id: str) -> UserEditingProfile:
        """
        Cached profile for a user, rebuilt from history on a miss.

        If history cannot be read the default profile is returned and
        nothing is cached, so the next call retries the store.
        """
        profile = self.cache.get(user_id)
        if profile is not None:
            return profile

        with self.cache.lock_for(user_id):
            # Another caller may have built it while we waited
            profile = self.cache.peek(user_id)
            if profile is not None:
                return profile

            try:
                sessions = self.store.load_recent_sessions(user_id, self.history_limit)
            except PersistenceError as e:
                logger.warning(f"Could not load history for user {user_id}, using default profile: {e}")
                return UserEditingProfile.default()

            profile = self.builder.build(sessions)
            self.cache.put(user_id, profile)
            logger.info(f"Built profile for user {user_id} from {len(sessions)} sessions")
            return profile

    def preload_profile(self, user_id: str) -> UserEditingProfile:
        """Warm the cache for a user, e.g. right after sign-in."""
        return self.profile_for(user_id)

    def clear_cache(self, user_id: Optional[str] = None) -> None:
        """Drop one user's cached profile, or every profile when user_id is None."""
        if user_id is None:
            self.cache.clear()
            logger.debug("Cleared all cached profiles")
            return
        with self.cache.lock_for(user_id):
            self.cache.invalidate(user_id)

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()

    def insights(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Editing habit summary, or None when history is too short or unreadable."""
        try:
            sessions = self.store.load_recent_sessions(user_id, self.history_limit)
        except PersistenceError as e:
            logger.warning(f"Could not load history for insights of user {user_id}: {e}")
            return None
        return self.builder.insights(sessions)

    # ----- blending -----

    def personalize(self, analysis: AnalysisResult, profile: UserEditingProfile,
                    base_config: Optional[EnhancementConfig] = None) -> EnhancementConfig:
        """
        Blend a user profile into a configuration.

        Args:
            analysis: Analysis of the image being enhanced
            profile: The user's profile
            base_config: Configuration to personalize; generated from
                ``analysis`` when None

        Returns:
            New EnhancementConfig
        """
        base = base_config if base_config is not None else self.generator.generate(analysis)
        settings = self.tuning.personalization

        weight = settings.profile_weight
        strength = base.strength * (1.0 - weight) + profile.average_enhancement_strength * weight
        strength = max(0.0, min(1.0, strength))

        style = self._preferred_style(profile) or base.style

        preferred = set(profile.preferred_algorithms)
        operations: List[OperationConfig] = []
        for op in base.sorted_operations():
            if op.name in preferred and op.name in self.registry:
                op = self.registry.scale_salient(op, settings.preferred_boost)
            operations.append(op)

        present = {op.name for op in operations}
        next_order = base.next_order()
        for name in profile.preferred_algorithms:
            if name in present:
                continue
            if name not in self.registry:
                logger.warning(f"Profile prefers unregistered operation {name}, skipping")
                continue
            if not self.registry.is_applicable(name, analysis):
                continue
            operations.append(OperationConfig(
                name=name,
                params=self.registry.default_params(name),
                order=next_order,
            ))
            present.add(name)
            next_order += 1

        return replace(base, operations=tuple(operations), strength=strength, style=style)

    def _preferred_style(self, profile: UserEditingProfile) -> Optional[EditingStyle]:
        best_style, best_score = None, self.tuning.personalization.style_min_score
        for name, score in profile.style_preferences.items():
            if score > best_score:
                try:
                    best_style, best_score = EditingStyle(name), score
                except ValueError:
                    logger.debug(f"Ignoring unknown style preference {name}")
        return best_style

    # ----- feedback -----

    def adapt_from_feedback(self, config: EnhancementConfig,
                            feedback: Union[SpecificFeedback, FeedbackRecord]) -> EnhancementConfig:
        """
        Adjust a configuration to explicit feedback.

        too_strong lowers strength (not below the floor), otherwise too_weak
        raises it (not above the ceiling). Operations named in issue aspects
        are disabled; operations named in improved aspects get their salient
        parameter boosted.
        """
        notes = feedback.specific_feedback if isinstance(feedback, FeedbackRecord) else feedback
        factors = self.tuning.feedback

        strength = config.strength
        if notes.too_strong:
            if strength > factors.strength_floor:
                strength = max(factors.strength_floor, strength * factors.too_strong_factor)
        elif notes.too_weak:
            strength = min(factors.strength_ceiling, strength * factors.too_weak_factor)

        operations = []
        for op in config.operations:
            if op.enabled and _matches(op.name, notes.issue_aspects):
                op = op.disabled()
            elif op.enabled and _matches(op.name, notes.improved_aspects) and op.name in self.registry:
                op = self.registry.scale_salient(op, factors.improved_boost)
            operations.append(op)

        return replace(config, operations=tuple(operations), strength=strength)

    def record_feedback(self, feedback: FeedbackRecord) -> str:
        """
        Persist feedback and invalidate the user's cached profile.

        Raises:
            PersistenceError: the store rejected the write
        """
        try:
            feedback_id = self.store.save_feedback(feedback)
        except PersistenceError:
            logger.error(f"Failed to save feedback for session {feedback.session_id}")
            raise

        with self.cache.lock_for(feedback.user_id):
            self.cache.invalidate(feedback.user_id)
        logger.info(f"Recorded {feedback.feedback_type.value} feedback {feedback_id} "
                    f"from user {feedback.user_id}")
        return feedback_id
