"""Project context decorator for CLI commands"""

from functools import wraps
from typing import Callable

import click

from ..utils.output import console
from ...api.exceptions import ProjectNotFoundError
from ...constants import EMOJI_ERROR


def require_project(func: Callable) -> Callable:
    """Decorator that ensures command runs in a valid project context

    The project root is resolved through the CLI context before the
    command runs. Outside of a project the command exits with code 1.

    Args:
        func: Command function to decorate

    Returns:
        Decorated function
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()

        try:
            ctx.obj.project_root
        except ProjectNotFoundError as e:
            console.print(f"{EMOJI_ERROR} {e}")
            ctx.exit(1)

        return func(*args, **kwargs)

    return wrapper
