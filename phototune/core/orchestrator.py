"""
Enhancement orchestration for PhotoTune

Sequences one enhancement run: generate a configuration, personalize it,
fold its operations into a single color transform, hand that transform to
the pixel executor once, and record the session.

Blocking collaborators (executor, session store, profile rebuilds) run in
the event loop's default thread pool so runs for different images overlap
while the admission gate bounds how many are in flight.
"""

import asyncio
import logging
import time
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import EnhancementFailed, ExecutorError, PersistenceError, UnknownOperation
from ..executors import PixelExecutor
from ..personalization import PersonalizationEngine, ProfileCache
from ..processing.color import ColorTransform, TransformKind
from ..processing.config_generator import ConfigurationGenerator
from ..processing.models import (
    AnalysisResult, EditingPriority, EditingStyle, EnhancementConfig,
    EnhancementResult, ImageType, OperationConfig, SessionRecord, UserPreferences,
)
from ..processing.operations import FALLBACK_OPERATION, OperationRegistry, build_default_registry
from ..processing.tuning import DEFAULT_TUNING, TuningTable
from ..storage import SessionStore
from ..utils.logging import RunStats, StructuredLogger
from .admission import AdmissionGate

logger = logging.getLogger(__name__)

# Global grade applied after all operations, per style
STYLE_GRADES: Dict[EditingStyle, ColorTransform] = {
    EditingStyle.NATURAL: ColorTransform.identity(),
    EditingStyle.VIBRANT: ColorTransform.saturation(15),
    EditingStyle.MUTED: ColorTransform.saturation(-20),
    EditingStyle.WARM: ColorTransform.identity().blend(ColorTransform.preset(TransformKind.WARMTH), 0.3),
    EditingStyle.COOL: ColorTransform.identity().blend(ColorTransform.preset(TransformKind.COOL), 0.3),
}


class EnhancementOrchestrator:
    """
    Runs enhancement pipelines against a pixel executor.

    Features:
    - Admission gate limiting concurrent runs
    - One executor call per run with the fully composed transform
    - One retry with a mild fallback configuration on executor failure
    - Session recording that never unwinds a finished image
    """

    def __init__(self, executor: PixelExecutor,
                 store: Optional[SessionStore] = None,
                 registry: Optional[OperationRegistry] = None,
                 generator: Optional[ConfigurationGenerator] = None,
                 personalization: Optional[PersonalizationEngine] = None,
                 tuning: Optional[TuningTable] = None,
                 max_concurrent_runs: int = 2,
                 history_limit: int = 50,
                 profile_cache_size: int = 256):
        """
        Initialize the orchestrator.

        Args:
            executor: Pixel executor applying the composed transform
            store: Session store; sessions are not recorded when None
            registry: Operation registry (default registry if None)
            generator: Configuration generator
            personalization: Personalization engine; built on ``store`` if None
            tuning: Tuning table shared by generator and personalization
            max_concurrent_runs: Admission gate capacity
            history_limit: Sessions read per profile rebuild (built engine only)
            profile_cache_size: Profile cache capacity (built engine only)
        """
        self.executor = executor
        self.store = store
        self.tuning = tuning or DEFAULT_TUNING
        self.registry = registry or build_default_registry(self.tuning)
        self.generator = generator or ConfigurationGenerator(self.registry, self.tuning)
        if personalization is None and store is not None:
            personalization = PersonalizationEngine(
                store, registry=self.registry, generator=self.generator, tuning=self.tuning,
                cache=ProfileCache(max_size=profile_cache_size), history_limit=history_limit,
            )
        self.personalization = personalization
        self.gate = AdmissionGate(max_concurrent_runs)
        self.run_stats = RunStats()
        self.log = StructuredLogger(__name__)

    # ----- transform building -----

    def build_transform(self, config: EnhancementConfig) -> ColorTransform:
        """
        Fold a configuration into one ColorTransform.

        Enabled operations are composed in ascending order, the style grade
        is applied last, and the result is blended from identity by
        ``config.strength``. Unknown operations are logged and skipped.
        """
        steps = []
        for op in config.enabled_operations():
            try:
                steps.append(self.registry.transform_for(op))
            except UnknownOperation:
                logger.warning(f"Skipping unknown operation '{op.name}' (order {op.order})")

        composed = ColorTransform.fold(steps)
        graded = ColorTransform.compose(composed, STYLE_GRADES[config.style])
        return ColorTransform.identity().blend(graded, config.strength)

    def fallback_config(self) -> EnhancementConfig:
        return EnhancementConfig(
            operations=(OperationConfig(
                name=FALLBACK_OPERATION,
                params=self.registry.default_params(FALLBACK_OPERATION),
                order=1,
            ),),
            strength=1.0,
            priority=EditingPriority.SPEED,
            style=EditingStyle.NATURAL,
        )

    def estimate_quality_improvement(self, analysis: AnalysisResult,
                                     config: EnhancementConfig) -> float:
        """
        Expected quality gain of a run, in [0, 1].

        The headroom left by the analysed overall quality, scaled by how
        strongly the configuration is applied. A configuration with no
        enabled operations gains nothing.
        """
        if not config.enabled_operations():
            return 0.0
        headroom = 1.0 - analysis.technical_quality.overall
        return round(max(0.0, min(1.0, headroom * config.strength)), 4)

    def summarize(self, config: EnhancementConfig) -> List[str]:
        """Human-readable line per enabled operation."""
        lines = []
        for op in config.enabled_operations():
            params = ", ".join(f"{key}={value}" for key, value in sorted(op.params.items()))
            lines.append(f"{op.name}({params})" if params else op.name)
        lines.append(f"strength {config.strength:.0%}, {config.style.value} style, "
                     f"{config.priority.value} priority")
        return lines

    # ----- runs -----

    async def run(self, image: Any, analysis: AnalysisResult,
                  user_preferences: Optional[UserPreferences] = None,
                  user_id: Optional[str] = None) -> EnhancementResult:
        """
        Enhance one image.

        Args:
            image: Executor image handle
            analysis: Analysis of the image
            user_preferences: Optional explicit preferences
            user_id: Personalize for and record the session under this user

        Returns:
            EnhancementResult

        Raises:
            EnhancementFailed: executor failed for both the configuration
                and the fallback
        """
        async with self.gate:
            started = time.perf_counter()
            config = self.generator.generate(analysis, user_preferences)
            if user_id is not None and self.personalization is not None:
                profile = await self._in_thread(self.personalization.profile_for, user_id)
                config = self.personalization.personalize(analysis, profile, config)
            return await self._execute(image, config, analysis.image_type, user_id, started,
                                       analysis=analysis)

    async def run_config(self, image: Any, config: EnhancementConfig,
                         image_type: str = ImageType.OTHER.value,
                         user_id: Optional[str] = None) -> EnhancementResult:
        """Apply an externally supplied configuration as-is."""
        async with self.gate:
            return await self._execute(image, config, image_type, user_id, time.perf_counter())

    async def run_batch(self, items: Sequence[Tuple[Any, AnalysisResult]],
                        user_preferences: Optional[UserPreferences] = None,
                        user_id: Optional[str] = None,
                        progress_callback: Optional[Callable[[int, int], None]] = None
                        ) -> List[EnhancementResult]:
        """
        Enhance several images concurrently through the admission gate.

        Failed runs are logged and left out of the returned list.
        """
        if not items:
            return []

        total = len(items)
        completed = 0

        async def one(image, analysis):
            nonlocal completed
            try:
                return await self.run(image, analysis, user_preferences, user_id)
            finally:
                completed += 1
                if progress_callback:
                    try:
                        progress_callback(completed, total)
                    except Exception as e:
                        logger.warning(f"Progress callback error: {e}")

        outcomes = await asyncio.gather(
            *(one(image, analysis) for image, analysis in items),
            return_exceptions=True,
        )

        results = []
        for index, outcome in enumerate(outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Batch item {index} failed: {outcome}")
                continue
            results.append(outcome)
        logger.info(f"Batch complete: {len(results)}/{total} images enhanced")
        return results

    async def _execute(self, image: Any, config: EnhancementConfig, image_type: str,
                       user_id: Optional[str], started: float,
                       analysis: Optional[AnalysisResult] = None) -> EnhancementResult:
        applied = config
        used_fallback = False
        transform = self.build_transform(config)

        try:
            output = await self._in_thread(self.executor.apply, image, transform)
        except ExecutorError as e:
            logger.warning(f"Executor failed, retrying with fallback configuration: {e}")
            applied = self.fallback_config()
            used_fallback = True
            transform = self.build_transform(applied)
            try:
                output = await self._in_thread(self.executor.apply, image, transform)
            except ExecutorError as retry_error:
                self.run_stats.add_error(image_type, str(retry_error))
                self.log.error("Enhancement failed", image_type=image_type, user_id=user_id)
                raise EnhancementFailed(
                    f"Executor failed for configuration and fallback: {retry_error}"
                ) from retry_error

        elapsed = time.perf_counter() - started
        result = EnhancementResult(
            transformed_image_handle=output,
            applied_config=applied,
            elapsed_time=elapsed,
            operation_summary=self.summarize(applied),
            transform=transform,
            used_fallback=used_fallback,
            quality_improvement=(
                self.estimate_quality_improvement(analysis, applied) if analysis is not None else None
            ),
        )

        if user_id is not None and self.store is not None:
            session = SessionRecord(
                user_id=user_id,
                config=applied,
                image_type=image_type,
                quality_improvement=result.quality_improvement,
                processing_time=elapsed,
            )
            try:
                result.session_id = await self._in_thread(self.store.save_session, session)
            except PersistenceError as e:
                logger.error(f"Failed to record session for user {user_id}: {e}")
                result.persistence_error = str(e)

        self.run_stats.add_result(elapsed, used_fallback, result.persistence_error is not None)
        self.log.info(
            "Enhancement complete",
            image_type=image_type,
            operations=len(applied.enabled_operations()),
            strength=round(applied.strength, 3),
            fallback=used_fallback,
            elapsed=round(elapsed, 4),
        )
        return result

    async def _in_thread(self, func: Callable, *args, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    def stats(self) -> Dict[str, Any]:
        stats = {
            'runs': self.run_stats.get_summary(),
            'admission': self.gate.stats(),
        }
        if self.personalization is not None:
            stats['profile_cache'] = self.personalization.cache_stats()
        return stats
