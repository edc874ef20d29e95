"""
Shared helpers for PhotoTune CLI commands
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import click

from ..config import get_default_config
from ..errors import PersistenceError
from ..processing.models import AnalysisResult
from ..processing.tuning import TuningTable
from ..personalization import PersonalizationEngine
from ..processing.config_generator import ConfigurationGenerator
from ..processing.operations import OperationRegistry
from ..storage import SessionStore, create_session_store, sqlite_url

logger = logging.getLogger(__name__)


def get_config(ctx: click.Context) -> Dict[str, Any]:
    obj = ctx.find_root().obj or {}
    return obj.get('config') or get_default_config()


def get_tuning(ctx: click.Context) -> TuningTable:
    return TuningTable.from_config(get_config(ctx))


def get_store(ctx: click.Context) -> SessionStore:
    """Session store from --store or the storage config section."""
    obj = ctx.find_root().obj or {}
    if obj.get('store') is not None:
        return obj['store']

    section = dict(get_config(ctx).get('storage') or {})
    if obj.get('store_path'):
        target = obj['store_path']
        url = target if '://' in target else sqlite_url(target)
        section = {'backend': 'sql', 'url': url}
    try:
        store = create_session_store(section)
    except (ValueError, PersistenceError) as e:
        raise click.ClickException(f"Could not open session store: {e}")
    obj['store'] = store
    return store


def get_personalization(ctx: click.Context, registry: Optional[OperationRegistry] = None,
                        generator: Optional[ConfigurationGenerator] = None) -> PersonalizationEngine:
    """Personalization engine on the session store, sized from the config."""
    return PersonalizationEngine.from_config(
        get_store(ctx), get_config(ctx), registry=registry, generator=generator,
        tuning=get_tuning(ctx),
    )


def load_analysis(path: Optional[str], image_type: Optional[str] = None,
                  mood: Optional[str] = None, overall: Optional[float] = None,
                  exposure: Optional[float] = None,
                  sharpness: Optional[float] = None) -> AnalysisResult:
    """
    Build an AnalysisResult from a JSON file and/or explicit options.

    Options given on the command line override values from the file.
    """
    data: Dict[str, Any] = {}
    if path:
        try:
            with open(Path(path), 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise click.BadParameter(f"Could not read analysis file {path}: {e}")

    analysis = AnalysisResult.from_dict(data)
    quality = analysis.technical_quality.to_dict()
    overrides = {'overall': overall, 'exposure': exposure, 'sharpness': sharpness}
    quality.update({key: value for key, value in overrides.items() if value is not None})

    return AnalysisResult.from_dict({
        'image_type': image_type or analysis.image_type,
        'mood': mood or analysis.mood,
        'technical_quality': quality,
    })


def analysis_options(func):
    """Attach the analysis input options to a command."""
    options = [
        click.option('--analysis', '-a', 'analysis_path', type=click.Path(exists=True),
                     help='JSON file with image_type, mood and technical_quality'),
        click.option('--image-type', '-t', help='Image type (portrait, landscape, food, nature, other)'),
        click.option('--mood', '-m', help='Mood tag (e.g. warm, serene, artistic)'),
        click.option('--overall', type=click.FloatRange(0.0, 1.0), help='Overall quality 0-1'),
        click.option('--exposure', type=click.FloatRange(0.0, 1.0), help='Exposure quality 0-1'),
        click.option('--sharpness', type=click.FloatRange(0.0, 1.0), help='Sharpness quality 0-1'),
    ]
    for option in reversed(options):
        func = option(func)
    return func
