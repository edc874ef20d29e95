"""
PhotoTune Command Line Interface

Enhance photos from an analysis result, inspect and generate
configurations, and manage per-user profiles and feedback.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import click
from tqdm import tqdm

from ..config import load_config
from ..core import EnhancementOrchestrator
from ..errors import ExecutorError
from ..executors import ArrayPixelExecutor
from ..processing.models import EditingStyle, UserPreferences
from ..processing.operations import build_default_registry
from ..utils.logging import setup_logging_from_config
from .common import analysis_options, get_config, get_personalization, get_tuning, load_analysis
from .config_commands import config_group
from .operation_commands import operations_group
from .profile_commands import feedback_group, profile_group

logger = logging.getLogger(__name__)


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--store', '-s', 'store_path', metavar='URL|PATH',
              help='Session database URL or SQLite file (overrides storage settings)')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, config: Optional[str] = None, store_path: Optional[str] = None,
         verbose: bool = False, quiet: bool = False):
    """
    PhotoTune - analysis-driven, personalized color enhancement

    Builds an ordered pipeline of color operations for each photo from its
    analysis and the user's editing history, and applies it as one color
    matrix.
    """
    if ctx.obj is None:
        ctx.obj = {}

    ctx.obj['config'] = load_config(config)
    setup_logging_from_config(ctx.obj['config'])

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif quiet:
        logging.getLogger().setLevel(logging.ERROR)

    ctx.obj['store_path'] = store_path
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


@main.command()
@click.argument('images', nargs=-1, required=True,
                type=click.Path(exists=True, dir_okay=False, path_type=Path))
@analysis_options
@click.option('--user-id', '-u', help='Personalize for and record sessions under this user')
@click.option('--color-preference', type=click.Choice([s.value for s in EditingStyle]),
              help='Explicit color style preference')
@click.option('--output-dir', '-o', type=click.Path(file_okay=False, path_type=Path),
              help='Directory for enhanced images (default: next to the input)')
@click.option('--suffix', default='_enhanced', show_default=True,
              help='Suffix added to output file names')
@click.pass_context
def enhance(ctx, images, analysis_path, image_type, mood, overall, exposure, sharpness,
            user_id, color_preference, output_dir, suffix):
    """Enhance one or more IMAGES using a shared analysis"""
    analysis = load_analysis(analysis_path, image_type, mood, overall, exposure, sharpness)
    preferences = UserPreferences(color_preference=color_preference) if color_preference else None
    quiet = ctx.obj.get('quiet', False)

    config = get_config(ctx)
    tuning = get_tuning(ctx)
    executor = ArrayPixelExecutor()
    registry = build_default_registry(tuning)
    personalization = get_personalization(ctx, registry=registry) if user_id else None
    orchestrator = EnhancementOrchestrator(
        executor,
        store=personalization.store if personalization else None,
        registry=registry,
        personalization=personalization,
        tuning=tuning,
        max_concurrent_runs=(config.get('orchestrator') or {}).get('max_concurrent_runs', 2),
    )

    handles = []
    for path in images:
        try:
            handles.append(executor.load(path))
        except ExecutorError as e:
            click.echo(f"❌ {e}", err=True)
    if not handles:
        raise click.ClickException("No images could be loaded")

    with tqdm(total=len(handles), desc="Enhancing", unit="img", disable=quiet) as bar:
        def progress(done, total):
            bar.update(1)

        results = asyncio.run(orchestrator.run_batch(
            [(handle, analysis) for handle in handles],
            user_preferences=preferences,
            user_id=user_id,
            progress_callback=progress,
        ))

    for result in results:
        source = Path(result.transformed_image_handle.source)
        target_dir = output_dir or source.parent
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / f"{source.stem}{suffix}{source.suffix}"
        try:
            executor.save(result.transformed_image_handle, target)
        except ExecutorError as e:
            click.echo(f"❌ {e}", err=True)
            continue

        if not quiet:
            click.echo(f"✅ {source.name} -> {target}")
            for line in result.operation_summary:
                click.echo(f"   {line}")
            if result.used_fallback:
                click.echo("   ⚠️  fallback configuration applied")
            if result.session_id:
                click.echo(f"   session {result.session_id}")
            if result.persistence_error:
                click.echo(f"   ⚠️  session not saved: {result.persistence_error}", err=True)

    if len(results) < len(handles):
        click.echo(f"❌ {len(handles) - len(results)} image(s) failed", err=True)

    if ctx.obj.get('verbose'):
        orchestrator.run_stats.print_summary()


main.add_command(config_group)
main.add_command(profile_group)
main.add_command(feedback_group)
main.add_command(operations_group)


if __name__ == '__main__':
    main()
