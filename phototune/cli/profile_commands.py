"""
Profile and feedback CLI commands for PhotoTune
"""

import json
import logging

import click

from ..errors import PersistenceError
from ..personalization import PersonalizationEngine
from ..processing.models import FeedbackRecord, FeedbackType, SpecificFeedback
from .common import get_personalization

logger = logging.getLogger(__name__)


def _engine(ctx) -> PersonalizationEngine:
    return get_personalization(ctx)


@click.group(name='profile')
def profile_group():
    """User profile commands"""
    pass


@profile_group.command(name='show')
@click.argument('user_id')
@click.pass_context
def show_profile(ctx, user_id):
    """Show the learned editing profile for USER_ID"""
    profile = _engine(ctx).profile_for(user_id)

    click.echo(f"Profile for {user_id}")
    click.echo("=" * 60)
    click.echo(f"Preferred operations: {', '.join(profile.preferred_algorithms) or '-'}")
    click.echo(f"Average strength:     {profile.average_enhancement_strength:.2f}")
    click.echo("Style preferences:")
    for style, score in sorted(profile.style_preferences.items(), key=lambda item: -item[1]):
        click.echo(f"  {style:<10} {score:.2f}")
    if profile.favorite_looks:
        click.echo("Favorite looks:")
        for look in profile.favorite_looks:
            click.echo(f"  {look}")
    if profile.image_type_preferences:
        click.echo("By image type:")
        for image_type, prefs in sorted(profile.image_type_preferences.items()):
            click.echo(f"  {image_type:<10} strength {prefs['average_strength']:.2f} "
                       f"({prefs['sessions']} sessions)")


@profile_group.command()
@click.argument('user_id')
@click.pass_context
def insights(ctx, user_id):
    """Show editing habit insights for USER_ID as JSON"""
    data = _engine(ctx).insights(user_id)
    if data is None:
        click.echo(f"Not enough history for {user_id} yet")
        return
    click.echo(json.dumps(data, indent=2, sort_keys=True))


@click.group(name='feedback')
def feedback_group():
    """Feedback commands"""
    pass


@feedback_group.command()
@click.argument('session_id')
@click.argument('user_id')
@click.option('--type', 'feedback_type', type=click.Choice([t.value for t in FeedbackType]),
              default=FeedbackType.ADJUSTMENT_REQUEST.value, show_default=True)
@click.option('--rating', '-r', type=click.IntRange(1, 5), help='Star rating 1-5')
@click.option('--too-strong', is_flag=True, help='The enhancement was too strong')
@click.option('--too-weak', is_flag=True, help='The enhancement was too weak')
@click.option('--wrong-style', is_flag=True, help='The style did not fit')
@click.option('--improved', multiple=True, help='Aspect that improved (repeatable)')
@click.option('--issue', multiple=True, help='Aspect with problems (repeatable)')
@click.pass_context
def record(ctx, session_id, user_id, feedback_type, rating, too_strong, too_weak,
           wrong_style, improved, issue):
    """Record feedback for SESSION_ID from USER_ID"""
    feedback = FeedbackRecord(
        session_id=session_id,
        user_id=user_id,
        feedback_type=FeedbackType(feedback_type),
        rating=rating,
        specific_feedback=SpecificFeedback(
            too_strong=too_strong,
            too_weak=too_weak,
            wrong_style=wrong_style,
            improved_aspects=tuple(improved),
            issue_aspects=tuple(issue),
        ),
    )
    try:
        feedback_id = _engine(ctx).record_feedback(feedback)
    except PersistenceError as e:
        raise click.ClickException(f"Could not record feedback: {e}")
    click.echo(f"✓ Recorded feedback {feedback_id}")
