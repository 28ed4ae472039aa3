"""Dependency commands implementation"""

from typing import Callable, Dict, Tuple, TypeVar

import click

from ..decorators import require_project
from ..utils.output import console, format_dependency_list, format_operation_result
from ...api.dependencies import Dependencies
from ...api.exceptions import (
    CycleError,
    DependencyResolutionError,
    DevflowError,
    OrchestrationError,
)
from ...constants import EMOJI_ERROR, ENV_PROFILE
from ...models.options import BuildOptions, DeployOptions

T = TypeVar('T')


def _parse_vars(values: Tuple[str, ...]) -> Dict[str, str]:
    variables = {}
    for value in values:
        key, sep, item = value.partition('=')
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got '{value}'", param_hint="'--var'")
        variables[key] = item
    return variables


def _run(ctx: click.Context, action: Callable[[Dependencies], T]) -> T:
    """Run an action against the project, mapping errors to exit codes"""
    settings = ctx.obj.deps_settings
    try:
        api = Dependencies(ctx.obj.project_root, **settings)
        return action(api)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        ctx.exit(130)
    except OrchestrationError as e:
        format_operation_result(e.result)
        ctx.exit(1)
    except CycleError as e:
        console.print(f"[red]{EMOJI_ERROR} {e}[/red]")
        ctx.exit(1)
    except DependencyResolutionError as e:
        console.print(f"[red]{EMOJI_ERROR} {e}[/red]")
        if e.resolved:
            format_dependency_list(e.resolved, title="Resolved before the failure")
        ctx.exit(1)
    except DevflowError as e:
        console.print(f"[red]{EMOJI_ERROR} {e}[/red]")
        if ctx.obj.debug:
            console.print_exception()
        ctx.exit(1)


@click.group()
@click.option('--profile', '-p', envvar=ENV_PROFILE, help='Profile to activate in the project')
@click.option('--var', 'variables', multiple=True, metavar='KEY=VALUE',
              help='Override a project variable (repeatable)')
@click.option('--allow-cyclic', is_flag=True, help='Tolerate cyclic dependencies')
@click.option('--workers', type=click.IntRange(min=1),
              help='Dependencies processed concurrently (default: $DEVFLOW_MAX_WORKERS or 4)')
@click.option('--timeout', type=click.FloatRange(min=0, min_open=True),
              help='Cancel the operation after this many seconds')
@click.pass_context
def deps(ctx, profile, variables, allow_cyclic, workers, timeout):
    """Resolve and orchestrate project dependencies

    Dependencies are processed in resolution order: a dependency is only
    handled after everything it declares. Work is skipped when the content
    hash of a dependency matches the one recorded in
    .devflow/generated.yaml.

    Examples:

        # Show the resolved dependency graph
        devflow deps list

        # Build changed dependencies with the dev profile
        devflow deps --profile dev build

        # Redeploy everything, even unchanged dependencies
        devflow deps deploy --force-deploy
    """
    ctx.obj.deps_settings = {
        'profile': profile,
        'variables': _parse_vars(variables),
        'allow_cyclic': allow_cyclic,
        'max_workers': workers,
        'timeout': timeout,
    }


@deps.command(name='list')
@click.option('--update', is_flag=True, help='Refresh remote sources before listing')
@click.pass_context
@require_project
def list_command(ctx, update):
    """List dependencies in resolution order"""
    dependencies = _run(ctx, lambda api: api.list(update=update))
    format_dependency_list(dependencies)


@deps.command()
@click.pass_context
@require_project
def update(ctx):
    """Refresh remote sources and report changed dependencies

    Nothing is built or deployed.
    """
    result = _run(ctx, lambda api: api.update())
    format_operation_result(result)


@deps.command()
@click.option('--force-build', is_flag=True, help='Build even if sources are unchanged')
@click.option('--skip-push', is_flag=True, help='Do not push built images')
@click.option('--continue-on-error', is_flag=True, help='Keep building independent dependencies after a failure')
@click.pass_context
@require_project
def build(ctx, force_build, skip_push, continue_on_error):
    """Build dependencies whose sources changed"""
    options = BuildOptions(
        force_build=force_build,
        skip_push=skip_push,
        continue_on_error=continue_on_error
    )
    result = _run(ctx, lambda api: api.build(options))
    format_operation_result(result)


@deps.command()
@click.option('--force-build', is_flag=True, help='Build even if sources are unchanged')
@click.option('--force-deploy', is_flag=True, help='Deploy even if already deployed')
@click.option('--skip-build', is_flag=True, help='Deploy without building')
@click.option('--skip-push', is_flag=True, help='Do not push built images')
@click.option('--continue-on-error', is_flag=True, help='Keep deploying independent dependencies after a failure')
@click.pass_context
@require_project
def deploy(ctx, force_build, force_deploy, skip_build, skip_push, continue_on_error):
    """Build and deploy dependencies that are not up to date"""
    options = DeployOptions(
        force_build=force_build,
        force_deploy=force_deploy,
        skip_build=skip_build,
        skip_push=skip_push,
        continue_on_error=continue_on_error
    )
    result = _run(ctx, lambda api: api.deploy(options))
    format_operation_result(result)


@deps.command()
@click.option('--verbose-purge', is_flag=True, help='Report purge failures as warnings instead of failing')
@click.pass_context
@require_project
def purge(ctx, verbose_purge):
    """Purge all dependencies in reverse resolution order"""
    result = _run(ctx, lambda api: api.purge(verbose=verbose_purge))
    format_operation_result(result)
