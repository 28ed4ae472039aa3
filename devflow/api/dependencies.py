"""Dependencies API for orchestration operations"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Coroutine, Dict, List, Optional, TypeVar, Union

from ..constants import DEFAULT_CONTROLLER_BACKEND, ErrorCode
from ..controllers import ControllerFactory
from ..core.config_loader import ConfigLoader
from ..core.generated_store import GeneratedStore
from ..core.path_resolver import PathResolver
from ..core.source_fetcher import GitSourceFetcher
from ..models.dependency import Dependency
from ..models.options import BuildOptions, DeployOptions, LoadOptions
from ..models.result import OperationResult
from ..services.dependency_manager import DependencyManager
from ..utils.async_utils import run_async
from .exceptions import DevflowError

T = TypeVar('T')


class Dependencies:
    """Entry point wiring the dependency engine for a project on disk"""

    def __init__(self,
                 project_root: Optional[Union[str, Path]] = None,
                 profile: Optional[str] = None,
                 variables: Optional[Dict[str, str]] = None,
                 allow_cyclic: bool = False,
                 max_workers: Optional[int] = None,
                 timeout: Optional[float] = None,
                 backend: str = DEFAULT_CONTROLLER_BACKEND,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize dependencies API

        Args:
            project_root: Project directory, discovered from cwd when omitted
            profile: Profile to activate in the root project
            variables: Variables overriding the root project's vars
            allow_cyclic: Tolerate dependency cycles
            max_workers: Dependencies processed concurrently
            timeout: Seconds after which an operation is cancelled
            backend: Controller backend name
            logger: Logger to report progress to
        """
        if project_root is None:
            project_root = PathResolver.find_project_root()
        self.path_resolver = PathResolver(project_root)
        self.load_options = LoadOptions(profile=profile, vars=dict(variables or {}))
        self.allow_cyclic = allow_cyclic
        self.max_workers = max_workers
        self.timeout = timeout
        self.backend = backend
        self.log = logger or logging.getLogger(__name__)
        self._manager: Optional[DependencyManager] = None

    @property
    def manager(self) -> DependencyManager:
        """Get dependency manager (lazy load)"""
        if self._manager is None:
            self._manager = self._create_manager()
        return self._manager

    def _create_manager(self) -> DependencyManager:
        root = self.path_resolver.project_root
        loader = ConfigLoader(self.load_options)
        config = loader.load_project(root)

        store = GeneratedStore(self.path_resolver.get_generated_path())
        store.load()

        return DependencyManager(
            config,
            store,
            allow_cyclic=self.allow_cyclic,
            load_options=self.load_options,
            logger=self.log,
            build_controller=ControllerFactory.create_build_controller(self.backend),
            deploy_controller=ControllerFactory.create_deploy_controller(self.backend),
            project_root=root,
            max_workers=self.max_workers,
            fetcher=GitSourceFetcher()
        )

    def _run(self, operation: str, coro: Coroutine[Any, Any, T]) -> T:
        if self.timeout:
            coro = self._with_timeout(operation, coro)
        return run_async(coro)

    async def _with_timeout(self, operation: str, coro: Coroutine[Any, Any, T]) -> T:
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise DevflowError(
                f"{operation} timed out after {self.timeout:g}s",
                ErrorCode.OPERATION_FAILED
            )

    def list(self, update: bool = False) -> List[Dependency]:
        """Resolve and return the ordered dependencies"""
        return self._run("resolve", self.manager.resolve(update))

    def update(self, hash_excludes: Optional[List[str]] = None) -> OperationResult:
        """Refresh remote sources and report changed dependencies"""
        return self._run("update", self.manager.update_all(hash_excludes))

    def build(self, options: Optional[BuildOptions] = None) -> OperationResult:
        """Build outdated dependencies"""
        return self._run("build", self.manager.build_all(options))

    def deploy(self, options: Optional[DeployOptions] = None) -> OperationResult:
        """Build and deploy outdated dependencies"""
        return self._run("deploy", self.manager.deploy_all(options))

    def purge(self, verbose: bool = False) -> OperationResult:
        """Purge all dependencies in reverse order"""
        return self._run("purge", self.manager.purge_all(verbose))


# Convenience functions
def build(project_root: Optional[Union[str, Path]] = None, **options) -> OperationResult:
    """
    Build the dependencies of a project (convenience function)

    Args:
        project_root: Project directory
        **options: Dependencies() arguments plus BuildOptions fields

    Returns:
        OperationResult: Build result
    """
    api_args, build_args = _split_options(options, BuildOptions)
    return Dependencies(project_root, **api_args).build(BuildOptions(**build_args))


def deploy(project_root: Optional[Union[str, Path]] = None, **options) -> OperationResult:
    """
    Deploy the dependencies of a project (convenience function)

    Args:
        project_root: Project directory
        **options: Dependencies() arguments plus DeployOptions fields

    Returns:
        OperationResult: Deploy result
    """
    api_args, deploy_args = _split_options(options, DeployOptions)
    return Dependencies(project_root, **api_args).deploy(DeployOptions(**deploy_args))


def purge(project_root: Optional[Union[str, Path]] = None, verbose: bool = False, **options) -> OperationResult:
    """Purge the dependencies of a project (convenience function)"""
    return Dependencies(project_root, **options).purge(verbose)


def _split_options(options: Dict[str, Any], option_class: type):
    fields = option_class.__dataclass_fields__
    api_args = {k: v for k, v in options.items() if k not in fields}
    op_args = {k: v for k, v in options.items() if k in fields}
    return api_args, op_args
