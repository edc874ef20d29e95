"""
Shared fixtures for PhotoTune tests.
"""

import pytest

from phototune.processing.config_generator import ConfigurationGenerator
from phototune.processing.models import (
    AnalysisResult, EditingPriority, EditingStyle, EnhancementConfig,
    OperationConfig, SessionRecord, TechnicalQuality,
)
from phototune.processing.operations import build_default_registry
from phototune.processing.tuning import DEFAULT_TUNING
from phototune.personalization import PersonalizationEngine
from phototune.storage import InMemorySessionStore


def make_analysis(image_type="portrait", mood="neutral", overall=0.8,
                  exposure=0.8, sharpness=0.8):
    return AnalysisResult(
        image_type=image_type,
        mood=mood,
        technical_quality=TechnicalQuality(overall=overall, exposure=exposure, sharpness=sharpness),
    )


def make_config(names=("clahe", "unsharp_mask"), strength=0.5,
                style=EditingStyle.NATURAL, params=None):
    params = params or {}
    return EnhancementConfig(
        operations=tuple(
            OperationConfig(name=name, params=dict(params.get(name, {})), order=i)
            for i, name in enumerate(names, start=1)
        ),
        strength=strength,
        priority=EditingPriority.QUALITY,
        style=style,
    )


def make_session(user_id="user-1", names=("clahe",), strength=0.5, rating=5,
                 style=EditingStyle.NATURAL, image_type="portrait",
                 quality_improvement=None):
    return SessionRecord(
        user_id=user_id,
        config=make_config(names, strength, style),
        image_type=image_type,
        rating=rating,
        quality_improvement=quality_improvement,
    )


@pytest.fixture
def registry():
    return build_default_registry(DEFAULT_TUNING)


@pytest.fixture
def generator(registry):
    return ConfigurationGenerator(registry, DEFAULT_TUNING)


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def engine(store, registry, generator):
    return PersonalizationEngine(store, registry=registry, generator=generator)


@pytest.fixture
def portrait_analysis():
    return make_analysis()
