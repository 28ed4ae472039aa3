"""Dependency resolution

Resolution runs in two phases. Discovery loads every reachable dependency
concurrently, at most once per identity. Ordering then walks the loaded
graph depth first with an explicit stack, detecting cycles and emitting
dependencies after everything they declare.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

from .config_loader import ConfigLoader
from .generated_store import GeneratedStore
from .path_resolver import PathResolver
from .source_fetcher import GitSourceFetcher, SourceFetcher
from ..api.exceptions import (
    ConfigError,
    CycleError,
    DependencyResolutionError,
    DevflowError,
)
from ..constants import DEFAULT_MAX_WORKERS
from ..models.config import ProjectConfig
from ..models.dependency import Dependency, DependencyConfig
from ..utils.async_utils import run_in_executor
from ..utils.hash_utils import calculate_string_hash


class DependencyResolver(ABC):
    """Interface of anything that can produce the ordered dependency list"""

    @abstractmethod
    async def resolve(self, update: bool = False) -> List[Dependency]:
        """
        Resolve the dependency graph

        Args:
            update: Refresh remote sources even when a checkout exists

        Returns:
            Dependencies ordered so that every dependency precedes the
            dependents that declare it
        """
        pass


@dataclass(eq=False)
class _Node:
    """Bookkeeping for one identity during a resolution pass"""

    identity: str
    declaration: DependencyConfig
    base_path: Path
    parent_identity: Optional[str] = None
    dependency: Optional[Dependency] = None
    error: Optional[DevflowError] = None
    child_ids: List[str] = field(default_factory=list)


class Resolver(DependencyResolver):
    """Resolves the dependencies declared by a project"""

    def __init__(self,
                 project_root: Union[str, Path],
                 config: ProjectConfig,
                 store: GeneratedStore,
                 loader: Optional[ConfigLoader] = None,
                 fetcher: Optional[SourceFetcher] = None,
                 allow_cyclic: bool = False,
                 max_workers: int = DEFAULT_MAX_WORKERS,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize resolver

        Args:
            project_root: Directory of the root project
            config: Loaded root project configuration
            store: Generated store of the root project (holds the ledger)
            loader: Loader used for dependency configurations
            fetcher: Fetcher used for remote sources
            allow_cyclic: Tolerate cycles instead of failing
            max_workers: Concurrent dependency loads
            logger: Logger to report progress to
        """
        self.project_root = Path(project_root).resolve()
        self.config = config
        self.store = store
        self.loader = loader or ConfigLoader()
        self.fetcher = fetcher or GitSourceFetcher()
        self.allow_cyclic = allow_cyclic
        self.max_workers = max(1, max_workers)
        self.log = logger or logging.getLogger(__name__)

        self.root_identity = calculate_string_hash(
            f"{self.project_root}#{config.active_profile or ''}"
        )
        self._nodes: Dict[str, _Node] = {}
        self._semaphore: Optional[asyncio.Semaphore] = None

    async def resolve(self, update: bool = False) -> List[Dependency]:
        """
        Resolve all dependencies of the root project

        Args:
            update: Refresh remote sources even when a checkout exists

        Returns:
            Ordered dependency list, each identity exactly once

        Raises:
            CycleError: If a cycle exists and cyclic graphs are not allowed
            DependencyResolutionError: If some dependencies failed to load;
                carries the errors and the dependencies that did resolve
        """
        self._nodes = {}
        self._semaphore = asyncio.Semaphore(self.max_workers)

        if not self.config.dependencies:
            return []

        root_ids = await self._discover(self.config.dependencies, self.project_root, None, update)
        ordered, errors = self._order(root_ids)

        self.log.debug("Resolved %d dependencies", len(ordered))

        if errors:
            raise DependencyResolutionError(errors, ordered)
        return ordered

    async def _discover(self,
                        declarations: List[DependencyConfig],
                        base_path: Path,
                        parent_identity: Optional[str],
                        update: bool) -> List[str]:
        """Register declarations and load the unseen ones concurrently"""
        identities = []
        pending = []

        for declaration in declarations:
            identity = declaration.identity(base_path)
            identities.append(identity)

            # Registration happens without awaiting, so an identity is
            # claimed by exactly one loader
            if identity in self._nodes or identity == self.root_identity:
                continue
            node = _Node(identity, declaration, base_path, parent_identity)
            self._nodes[identity] = node
            pending.append(self._load(node, update))

        if pending:
            await asyncio.gather(*pending)
        return identities

    async def _load(self, node: _Node, update: bool) -> None:
        async with self._semaphore:
            try:
                node.dependency = await self._materialize(node, update)
            except DevflowError as e:
                self.log.debug("Dependency %s failed to resolve: %s", node.declaration.source.key(node.base_path), e)
                node.error = e
                return

        dependency = node.dependency
        if node.declaration.ignore_dependencies:
            return

        node.child_ids = await self._discover(
            dependency.config.dependencies,
            dependency.local_path,
            node.identity,
            update
        )

    async def _materialize(self, node: _Node, update: bool) -> Dependency:
        """Fetch the source, load the configuration and the generated state"""
        declaration = node.declaration
        source = declaration.source
        source_key = source.key(node.base_path)

        if source.is_remote:
            local_path = await self.fetcher.fetch(source, update)
        else:
            local_path = Path(source_key)
            if not local_path.is_dir():
                raise ConfigError("dependency path does not exist", source_key)

        config = await run_in_executor(
            self.loader.load_child_config,
            local_path,
            declaration.profile,
            declaration.vars
        )

        generated_store = GeneratedStore(PathResolver.generated_path_for(local_path))
        await run_in_executor(generated_store.load)

        self.log.info("Resolved dependency %s (%s)", config.name, source_key)

        return Dependency(
            identity=node.identity,
            name=config.name,
            local_path=local_path,
            dependency_config=declaration,
            config=config,
            generated_store=generated_store,
            dependency_cache=self.store.profile(),
            source_key=source_key,
            parent_identity=node.parent_identity
        )

    def _display_name(self, identity: str) -> str:
        if identity == self.root_identity:
            return self.config.name or str(self.project_root)
        node = self._nodes[identity]
        if node.dependency is not None:
            return node.dependency.name
        return node.declaration.source.key(node.base_path)

    def _order(self, root_ids: List[str]) -> Tuple[List[Dependency], List[DevflowError]]:
        """Depth-first post-order over the discovered graph"""
        ordered: List[Dependency] = []
        emitted: Set[str] = set()
        unusable: Set[str] = set()
        errors: List[DevflowError] = []
        reported: Set[str] = set()

        for root_id in root_ids:
            if root_id == self.root_identity:
                # The project declares itself
                if not self.allow_cyclic:
                    raise CycleError([self._display_name(root_id)] * 2)
                continue
            if root_id in emitted or root_id in unusable:
                continue

            root_node = self._nodes[root_id]
            if root_node.error is not None:
                if root_id not in reported:
                    errors.append(root_node.error)
                    reported.add(root_id)
                unusable.add(root_id)
                continue

            path: List[str] = [self.root_identity, root_id]
            on_path: Set[str] = {self.root_identity, root_id}
            # Frames: (identity, child id iterator, blocked flag)
            stack: List[Tuple[str, Iterator[str], List[bool]]] = [
                (root_id, iter(root_node.child_ids), [False])
            ]

            while stack:
                identity, children, blocked = stack[-1]
                child_id = next(children, None)

                if child_id is None:
                    stack.pop()
                    path.pop()
                    on_path.discard(identity)

                    if blocked[0]:
                        unusable.add(identity)
                        self.log.warning(
                            "Dependency %s cannot be used because one of its dependencies failed",
                            self._display_name(identity)
                        )
                        if stack:
                            stack[-1][2][0] = True
                        continue

                    node = self._nodes[identity]
                    node.dependency.children = [
                        self._nodes[c].dependency for c in node.child_ids
                        if c in self._nodes and self._nodes[c].dependency is not None
                    ]
                    ordered.append(node.dependency)
                    emitted.add(identity)
                    continue

                if child_id in on_path:
                    cycle = path[path.index(child_id):] + [child_id]
                    if not self.allow_cyclic:
                        raise CycleError([self._display_name(i) for i in cycle])
                    self.log.debug(
                        "Cycle %s tolerated",
                        " -> ".join(self._display_name(i) for i in cycle)
                    )
                    continue

                if child_id in emitted:
                    continue

                if child_id in unusable:
                    blocked[0] = True
                    continue

                child = self._nodes[child_id]
                if child.error is not None:
                    if child_id not in reported:
                        errors.append(child.error)
                        reported.add(child_id)
                    unusable.add(child_id)
                    blocked[0] = True
                    continue

                path.append(child_id)
                on_path.add(child_id)
                stack.append((child_id, iter(child.child_ids), [False]))

        return ordered, errors
