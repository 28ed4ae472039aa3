"""Hash command implementation"""

from pathlib import Path

import click

from ..utils.output import console
from ...api.exceptions import HashError
from ...constants import DEFAULT_HASH_EXCLUDES, EMOJI_ERROR
from ...utils.hash_utils import calculate_directory_hash


@click.command(name='hash')
@click.argument('path', type=click.Path(path_type=Path))
@click.option('--exclude', '-e', multiple=True,
              help='Exclusion pattern (repeatable, replaces the defaults)')
@click.option('--follow-symlinks', is_flag=True, help='Hash symlink targets instead of links')
@click.pass_context
def hash_command(ctx, path, exclude, follow_symlinks):
    """Print the content hash of a directory

    This is the hash devflow compares against its ledger to decide whether
    a dependency must be rebuilt or redeployed.

    Examples:

        # Hash with the default exclusions (.git, .devflow)
        devflow hash ./services/api

        # Hash ignoring build output
        devflow hash ./services/api -e .git -e 'dist/' -e '*.pyc'
    """
    excludes = list(exclude) if exclude else list(DEFAULT_HASH_EXCLUDES)

    try:
        digest = calculate_directory_hash(path, excludes, follow_symlinks=follow_symlinks)
    except HashError as e:
        console.print(f"[red]{EMOJI_ERROR} {e}[/red]")
        ctx.exit(1)

    click.echo(digest)
