# devflow/cli/main.py
"""Main CLI entry point for devflow"""

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from ..__version__ import __version__
from ..constants import APP_NAME, ENV_LOG_LEVEL, LOG_FORMAT
from ..core import PathResolver
from ..api.exceptions import DevflowError, ProjectNotFoundError

# Import all commands
from .commands import deps, hash

console = Console()


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Setup logging configuration

    Args:
        verbose: Enable verbose output (INFO level)
        debug: Enable debug output (DEBUG level)
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    # Environment override
    env_level = os.environ.get(ENV_LOG_LEVEL)
    if env_level:
        level = logging.getLevelName(env_level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    # Configure rich handler
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            RichHandler(
                console=console,
                show_time=debug,
                show_path=debug,
                rich_tracebacks=True,
                tracebacks_suppress=[click]
            )
        ],
        force=True
    )

    # Adjust third-party loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiofiles").setLevel(logging.WARNING)


class Context:
    """CLI context object with lazy project initialization

    The project root is only searched for when a command asks for it, so
    commands like `devflow hash` work outside of a project.
    """

    def __init__(self, project_root: Optional[Path] = None):
        """Initialize CLI context"""
        self._project_root: Optional[Path] = project_root
        self._path_resolver: Optional[PathResolver] = None
        self.verbose: bool = False
        self.debug: bool = False

    @property
    def project_root(self) -> Path:
        """Get project root directory (lazy loading)

        Raises:
            ProjectNotFoundError: If not inside a devflow project
        """
        if self._project_root is None:
            self._project_root = PathResolver.find_project_root()
            if self.debug:
                console.print(f"[dim]Project root: {self._project_root}[/dim]")
        return self._project_root

    @property
    def path_resolver(self) -> PathResolver:
        """Get path resolver instance (lazy loading)"""
        if self._path_resolver is None:
            self._path_resolver = PathResolver(self.project_root)
        return self._path_resolver


@click.group(name=APP_NAME)
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('-d', '--debug', is_flag=True, help='Enable debug output')
@click.option('-q', '--quiet', is_flag=True, help='Suppress all output except errors')
@click.option('--project-root', type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Project directory (defaults to the nearest directory with devflow.yaml)')
@click.version_option(version=__version__, prog_name=APP_NAME)
@click.pass_context
def cli(ctx, verbose, debug, quiet, project_root):
    """devflow - Orchestrate the dependencies of containerized projects

    Each project declares its images, deployments and sub-project
    dependencies in devflow.yaml. devflow resolves the dependency graph and
    builds, deploys, updates or purges every dependency in order, skipping
    work whose sources did not change.
    """
    # Setup logging
    if quiet:
        logging.disable(logging.CRITICAL)
    else:
        setup_logging(verbose=verbose, debug=debug)

    # Create context with lazy initialization
    ctx.obj = Context(project_root.resolve() if project_root else None)
    ctx.obj.verbose = verbose
    ctx.obj.debug = debug


# Register commands
cli.add_command(deps.deps)
cli.add_command(hash.hash_command)


def main():
    """Main entry point for the CLI application

    This function handles:
    - Auto-help for incomplete commands
    - Keyboard interrupts
    - Errors escaping the commands, with proper error display
    """
    try:
        # Handle help for incomplete commands
        if len(sys.argv) == 2 and sys.argv[1] not in [
            '-h', '--help', '-v', '--verbose', '-d', '--debug', '-q', '--quiet', '--version'
        ]:
            # If only command name provided, show its help
            sys.argv.append('--help')

        cli(prog_name=APP_NAME)

    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(130)

    except ProjectNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    except DevflowError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
