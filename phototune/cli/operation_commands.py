"""
Operation registry CLI commands for PhotoTune
"""

import json

import click

from ..errors import UnknownOperation
from ..processing.operations import build_default_registry
from .common import get_tuning


@click.group(name='operations')
def operations_group():
    """Operation registry commands"""
    pass


@operations_group.command(name='list')
@click.option('--category', type=click.Choice(['adjustment', 'preset', 'enhancement', 'fallback']),
              help='Only show one category')
@click.pass_context
def list_operations(ctx, category):
    """List registered operations"""
    registry = build_default_registry(get_tuning(ctx))
    for name in registry.available():
        spec = registry.get(name)
        if category and spec.category != category:
            continue
        click.echo(f"{name:<22} {spec.category:<12} {spec.description}")


@operations_group.command()
@click.argument('name')
@click.option('--matrix', is_flag=True, help='Also print the default color matrix')
@click.pass_context
def info(ctx, name, matrix):
    """Show details for operation NAME"""
    registry = build_default_registry(get_tuning(ctx))
    try:
        details = registry.info(name)
    except UnknownOperation as e:
        raise click.ClickException(str(e))
    if matrix:
        details['matrix'] = registry.get(name).transform().to_list()
    click.echo(json.dumps(details, indent=2))
