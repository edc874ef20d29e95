"""
Configuration CLI commands for PhotoTune

Show the active settings and generate enhancement configurations without
touching any pixels.
"""

import json
import logging

import click
import yaml

from ..config import get_config_value
from ..processing.config_generator import ConfigurationGenerator
from ..processing.models import EditingStyle, UserPreferences
from ..processing.operations import build_default_registry
from .common import analysis_options, get_config, get_personalization, get_tuning, load_analysis

logger = logging.getLogger(__name__)


@click.group(name='config')
def config_group():
    """Settings and configuration generation commands"""
    pass


@config_group.command()
@click.option('--key', '-k', help="Dotted key to show, e.g. 'tuning.generation'")
@click.pass_context
def show(ctx, key):
    """Show the active settings"""
    config = get_config(ctx)
    value = get_config_value(config, key) if key else config
    if value is None:
        raise click.ClickException(f"No such config key: {key}")
    click.echo(yaml.safe_dump(value, default_flow_style=False, sort_keys=False).rstrip())


@config_group.command()
@analysis_options
@click.option('--color-preference', type=click.Choice([s.value for s in EditingStyle]),
              help='Explicit color style preference')
@click.option('--user-id', '-u', help='Personalize for this user')
@click.option('--preview', is_flag=True, help='Generate the lighter preview configuration')
@click.pass_context
def generate(ctx, analysis_path, image_type, mood, overall, exposure, sharpness,
             color_preference, user_id, preview):
    """Generate an enhancement configuration as JSON"""
    analysis = load_analysis(analysis_path, image_type, mood, overall, exposure, sharpness)
    preferences = UserPreferences(color_preference=color_preference) if color_preference else None

    tuning = get_tuning(ctx)
    registry = build_default_registry(tuning)
    generator = ConfigurationGenerator(registry, tuning)

    if preview:
        config = generator.preview(analysis, preferences)
    else:
        config = generator.generate(analysis, preferences)

    if user_id:
        engine = get_personalization(ctx, registry=registry, generator=generator)
        config = engine.personalize(analysis, engine.profile_for(user_id), config)

    click.echo(json.dumps(config.to_dict(), indent=2, sort_keys=True))
