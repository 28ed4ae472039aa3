"""Dependency orchestration service"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Set, Union

from ..api.exceptions import (
    BuildError,
    ConfigError,
    DependencyResolutionError,
    DeployError,
    DevflowError,
    OrchestrationError,
    PurgeError,
)
from ..constants import (
    DEFAULT_MAX_WORKERS,
    ENV_MAX_WORKERS,
    MSG_DEPENDENCY_DONE,
    MSG_DEPENDENCY_FAILED,
    MSG_DEPENDENCY_SKIPPED,
    Operation,
)
from ..controllers.base import BuildController, DeployController
from ..core.config_loader import ConfigLoader
from ..core.generated_store import GeneratedStore
from ..core.resolver import DependencyResolver, Resolver
from ..core.source_fetcher import SourceFetcher
from ..models.config import ProjectConfig
from ..models.dependency import Dependency
from ..models.generated import ImageCache
from ..models.options import BuildOptions, DeployOptions, LoadOptions
from ..models.result import DependencyResult, DependencyStatus, OperationResult
from ..utils.async_utils import run_in_executor

Worker = Callable[[Dependency, DependencyResult], Awaitable[None]]


def default_max_workers() -> int:
    """Get the worker count from the environment or the default"""
    value = os.environ.get(ENV_MAX_WORKERS)
    if not value:
        return DEFAULT_MAX_WORKERS
    try:
        workers = int(value)
    except ValueError:
        raise ConfigError(f"{ENV_MAX_WORKERS} must be an integer, got '{value}'")
    if workers < 1:
        raise ConfigError(f"{ENV_MAX_WORKERS} must be at least 1")
    return workers


class DependencyManager:
    """Builds, deploys, updates and purges the dependencies of a project

    Every operation resolves the dependency graph first and then works
    through the ordered list: a dependency only starts once the
    dependencies it declares have finished. The generated state is saved
    once at the end of each operation, never after a cancellation.
    """

    def __init__(self,
                 config: ProjectConfig,
                 generated: GeneratedStore,
                 resolver: Optional[DependencyResolver] = None,
                 allow_cyclic: bool = False,
                 load_options: Optional[LoadOptions] = None,
                 logger: Optional[logging.Logger] = None,
                 build_controller: Optional[BuildController] = None,
                 deploy_controller: Optional[DeployController] = None,
                 project_root: Optional[Union[str, Path]] = None,
                 max_workers: Optional[int] = None,
                 fetcher: Optional[SourceFetcher] = None):
        """
        Initialize dependency manager

        Args:
            config: Root project configuration
            generated: Generated store of the root project
            resolver: Resolver override, built from the other arguments when omitted
            allow_cyclic: Tolerate dependency cycles
            load_options: Options for loading dependency configurations
            logger: Logger to report progress to
            build_controller: Backend used to build dependencies
            deploy_controller: Backend used to deploy and purge dependencies
            project_root: Directory of the root project (defaults to cwd)
            max_workers: Dependencies processed concurrently
            fetcher: Fetcher for remote sources
        """
        self.config = config
        self.store = generated
        self.allow_cyclic = allow_cyclic
        self.load_options = load_options or LoadOptions()
        self.log = logger or logging.getLogger(__name__)
        self.build_controller = build_controller
        self.deploy_controller = deploy_controller
        self.project_root = Path(project_root or Path.cwd()).resolve()
        self.max_workers = max(1, max_workers or default_max_workers())

        if config.active_profile:
            self.store.config.active_profile = config.active_profile

        if resolver is None:
            child_options = LoadOptions(
                config_file=self.load_options.config_file,
                expand_env=self.load_options.expand_env
            )
            resolver = Resolver(
                self.project_root,
                config,
                generated,
                loader=ConfigLoader(child_options),
                fetcher=fetcher,
                allow_cyclic=allow_cyclic,
                max_workers=self.max_workers,
                logger=self.log
            )
        self.resolver = resolver

    async def resolve(self, update: bool = False) -> List[Dependency]:
        """
        Resolve the dependency graph

        Args:
            update: Refresh remote sources

        Returns:
            Ordered dependency list
        """
        return await self.resolver.resolve(update)

    async def build_all(self, options: Optional[BuildOptions] = None) -> OperationResult:
        """
        Build every dependency whose source changed since its last build

        Args:
            options: Build options

        Returns:
            Operation result

        Raises:
            OrchestrationError: If any dependency failed (after the checkpoint)
        """
        options = options or BuildOptions()
        result = OperationResult(operation=Operation.BUILD.value)

        dependencies = await self._resolve_for(result, options.continue_on_error)
        if not dependencies and not result.errors:
            return result.complete()

        touched: Set[Dependency] = set()

        async def build(dependency: Dependency, entry: DependencyResult) -> None:
            await self._build_one(dependency, entry, options, touched)
            if entry.status == DependencyStatus.RESOLVED:
                entry.succeed("built")

        await self._execute(Operation.BUILD, dependencies, result, build, options.continue_on_error)
        await self._checkpoint(touched)
        return self._finish(result)

    async def deploy_all(self, options: Optional[DeployOptions] = None) -> OperationResult:
        """
        Build and deploy every dependency that is not up to date

        Args:
            options: Deploy options

        Returns:
            Operation result

        Raises:
            OrchestrationError: If any dependency failed (after the checkpoint)
        """
        options = options or DeployOptions()
        build_options = options.build_options()
        result = OperationResult(operation=Operation.DEPLOY.value)

        dependencies = await self._resolve_for(result, options.continue_on_error)
        if not dependencies and not result.errors:
            return result.complete()

        touched: Set[Dependency] = set()

        async def deploy(dependency: Dependency, entry: DependencyResult) -> None:
            reasons = []
            if options.skip_build:
                reasons.append("build skipped")
            else:
                await self._build_one(dependency, entry, build_options, touched)
                if entry.status == DependencyStatus.SKIPPED:
                    reasons.append(entry.message)
                entry.status = DependencyStatus.RESOLVED

            await self._deploy_one(dependency, entry, options, reasons)

        await self._execute(Operation.DEPLOY, dependencies, result, deploy, options.continue_on_error)
        await self._checkpoint(touched)
        return self._finish(result)

    async def update_all(self, hash_excludes: Optional[List[str]] = None) -> OperationResult:
        """
        Refresh all remote sources and report which dependencies changed

        Nothing is built or deployed and no state file is written.

        Args:
            hash_excludes: Exclusion patterns, the same ones a build uses;
                defaults to BuildOptions().hash_excludes

        Returns:
            Operation result; each dependency's message tells whether its
            source differs from the last build
        """
        result = OperationResult(operation=Operation.UPDATE.value)
        dependencies = await self._resolve_for(result, continue_on_error=True, update=True)

        if hash_excludes is None:
            hash_excludes = BuildOptions().hash_excludes
        semaphore = asyncio.Semaphore(self.max_workers)

        async def inspect(dependency: Dependency) -> None:
            entry = result.add(DependencyResult(dependency.identity, dependency.name, DependencyStatus.RESOLVED))
            async with semaphore:
                try:
                    current = await run_in_executor(dependency.current_hash, hash_excludes)
                except DevflowError as e:
                    entry.fail(e)
                    result.errors.append(e)
                    return
            entry.source_hash = current
            if dependency.stored_build_hash() == current:
                entry.succeed("up to date")
            else:
                entry.succeed("changed")
                self.log.info("Dependency %s changed since its last build", dependency.name)

        await asyncio.gather(*(inspect(d) for d in dependencies))
        return self._finish(result)

    async def purge_all(self, verbose: bool = False) -> OperationResult:
        """
        Purge every dependency in reverse order

        Every dependency is attempted even after failures.

        Args:
            verbose: Report failures as warnings instead of raising

        Returns:
            Operation result

        Raises:
            OrchestrationError: If a purge failed and verbose is off
        """
        result = OperationResult(operation=Operation.PURGE.value)
        dependencies = await self._resolve_for(result, continue_on_error=True)
        if not dependencies and not result.errors:
            return result.complete()
        if self.deploy_controller is None and dependencies:
            raise ConfigError("no deploy controller configured")

        for dependency in reversed(dependencies):
            entry = result.add(DependencyResult(dependency.identity, dependency.name, DependencyStatus.RESOLVED))
            if dependency.skip_deploy:
                self._skip(Operation.PURGE, dependency, entry, "skip_deploy is set")
                continue

            try:
                await self.deploy_controller.purge(dependency, verbose)
            except Exception as e:
                error = PurgeError(dependency.identity, dependency.name, e)
                entry.fail(error)
                if verbose:
                    self.log.warning(str(error))
                    result.add_warning(str(error))
                else:
                    self.log.error(MSG_DEPENDENCY_FAILED.format(
                        operation=Operation.PURGE.value, name=dependency.name, error=e
                    ))
                    result.errors.append(error)
                continue

            await self._record(dependency, "deployments", None)
            entry.succeed("purged")
            self.log.info(MSG_DEPENDENCY_DONE.format(operation=Operation.PURGE.value, name=dependency.name))

        await self._checkpoint(set())
        return self._finish(result)

    async def _resolve_for(self,
                           result: OperationResult,
                           continue_on_error: bool,
                           update: bool = False) -> List[Dependency]:
        try:
            return await self.resolve(update)
        except DependencyResolutionError as e:
            if not continue_on_error:
                raise
            for error in e.errors:
                self.log.error(str(error))
            result.errors.extend(e.errors)
            return e.resolved

    async def _build_one(self,
                         dependency: Dependency,
                         entry: DependencyResult,
                         options: BuildOptions,
                         touched: Set[Dependency]) -> None:
        if dependency.skip_build:
            self._skip(Operation.BUILD, dependency, entry, "skip_build is set")
            return

        current = entry.source_hash or await run_in_executor(dependency.current_hash, options.hash_excludes)
        entry.source_hash = current

        if not options.force_build and dependency.stored_build_hash() == current:
            self._skip(Operation.BUILD, dependency, entry, "source unchanged")
            return

        if self.build_controller is None:
            raise BuildError(dependency.identity, dependency.name, ConfigError("no build controller configured"))

        try:
            artifacts = await self.build_controller.build(
                dependency.local_path,
                dependency.profile,
                options,
                dependency.config
            )
        except Exception as e:
            raise BuildError(dependency.identity, dependency.name, e)

        artifacts = artifacts or {}
        cache = dependency.active_cache()
        if cache is not None and artifacts:
            async with dependency.generated_store.lock(dependency.profile):
                for name, reference in artifacts.items():
                    cache.images[name] = ImageCache.from_reference(reference)
            touched.add(dependency)

        await self._record(dependency, "dependencies", current)

        entry.built = True
        entry.artifacts = dict(artifacts)
        self.log.info(MSG_DEPENDENCY_DONE.format(operation=Operation.BUILD.value, name=dependency.name))

    async def _deploy_one(self,
                          dependency: Dependency,
                          entry: DependencyResult,
                          options: DeployOptions,
                          reasons: List[str]) -> None:
        if dependency.skip_deploy:
            reasons.append("skip_deploy is set")
            self._finish_deploy(dependency, entry, reasons)
            return

        current = entry.source_hash or await run_in_executor(dependency.current_hash, options.hash_excludes)
        entry.source_hash = current

        if not options.force_deploy and not entry.built and dependency.stored_deploy_hash() == current:
            reasons.append("already deployed")
            self._finish_deploy(dependency, entry, reasons)
            return

        if self.deploy_controller is None:
            raise DeployError(dependency.identity, dependency.name, ConfigError("no deploy controller configured"))

        try:
            await self.deploy_controller.deploy(dependency, options)
        except Exception as e:
            raise DeployError(dependency.identity, dependency.name, e)

        await self._record(dependency, "deployments", current)

        entry.deployed = True
        self.log.info(MSG_DEPENDENCY_DONE.format(operation=Operation.DEPLOY.value, name=dependency.name))
        self._finish_deploy(dependency, entry, reasons)

    def _finish_deploy(self, dependency: Dependency, entry: DependencyResult, reasons: List[str]) -> None:
        if entry.built or entry.deployed:
            entry.succeed(", ".join(
                part for part, done in (("built", entry.built), ("deployed", entry.deployed)) if done
            ))
        else:
            self._skip(Operation.DEPLOY, dependency, entry, "; ".join(reasons) or "up to date")

    def _skip(self, operation: Operation, dependency: Dependency, entry: DependencyResult, reason: str) -> None:
        entry.skip(reason)
        self.log.info(MSG_DEPENDENCY_SKIPPED.format(operation=operation.value, name=dependency.name, reason=reason))

    async def _execute(self,
                       operation: Operation,
                       dependencies: List[Dependency],
                       result: OperationResult,
                       worker: Worker,
                       continue_on_error: bool) -> None:
        """Run worker over the ordered dependencies

        A dependency waits for those of its children that precede it in the
        order; back edges of tolerated cycles point forward and are ignored.
        """
        semaphore = asyncio.Semaphore(self.max_workers)
        position = {d.identity: index for index, d in enumerate(dependencies)}
        entries = {
            d.identity: result.add(DependencyResult(d.identity, d.name, DependencyStatus.RESOLVED))
            for d in dependencies
        }
        tasks: Dict[str, asyncio.Task] = {}

        async def run(dependency: Dependency) -> None:
            entry = entries[dependency.identity]
            index = position[dependency.identity]

            for child in dependency.children:
                if position.get(child.identity, index) >= index:
                    continue
                await asyncio.wait({tasks[child.identity]})
                child_entry = entries[child.identity]
                if child_entry.status in (DependencyStatus.FAILED, DependencyStatus.BLOCKED):
                    entry.status = DependencyStatus.BLOCKED
                    entry.message = f"dependency {child.name} did not complete"
                    self.log.warning(MSG_DEPENDENCY_SKIPPED.format(
                        operation=operation.value, name=dependency.name, reason=entry.message
                    ))
                    return

            async with semaphore:
                try:
                    await worker(dependency, entry)
                except DevflowError as e:
                    entry.fail(e)
                    result.errors.append(e)
                    self.log.error(MSG_DEPENDENCY_FAILED.format(
                        operation=operation.value, name=dependency.name, error=e
                    ))
                    if not continue_on_error:
                        raise

        for dependency in dependencies:
            tasks[dependency.identity] = asyncio.ensure_future(run(dependency))

        try:
            await asyncio.wait(set(tasks.values()), return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [task for task in tasks.values() if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        for task in tasks.values():
            if task.cancelled():
                continue
            error = task.exception()
            if error is not None and not isinstance(error, DevflowError):
                raise error

        for entry in entries.values():
            if not entry.is_final:
                entry.skip("cancelled after an earlier failure")

    async def _record(self, dependency: Dependency, ledger: str, value: Optional[str]) -> None:
        """Set or (with value None) remove a ledger entry of a dependency"""
        cache = dependency.dependency_cache
        if cache is None:
            cache = dependency.dependency_cache = self.store.profile()

        async with self.store.lock():
            entries = getattr(cache, ledger)
            if value is None:
                entries.pop(dependency.identity, None)
            else:
                entries[dependency.identity] = value

    async def _checkpoint(self, touched: Set[Dependency]) -> None:
        for dependency in touched:
            await dependency.generated_store.save()
        await self.store.save()

    def _finish(self, result: OperationResult) -> OperationResult:
        result.complete()
        if result.errors:
            raise OrchestrationError(result.operation, result)
        return result
