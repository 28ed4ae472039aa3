"""Materialization of remote dependency sources"""

import asyncio
import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from .path_resolver import PathResolver
from ..api.exceptions import SourceFetchError
from ..constants import DEFAULT_GIT_REVISION
from ..models.dependency import SourceConfig
from ..utils import git_utils
from ..utils.git_utils import GitCommandError
from ..utils.hash_utils import calculate_string_hash

logger = logging.getLogger(__name__)


class SourceFetcher(ABC):
    """Abstract base class for source fetchers"""

    @abstractmethod
    async def fetch(self, source: SourceConfig, update: bool = False) -> Path:
        """
        Make a remote source available locally

        Args:
            source: Remote source configuration
            update: Refresh an existing checkout

        Returns:
            Local directory holding the dependency (sub_path applied)

        Raises:
            SourceFetchError: If the source is unreachable or the revision
                does not exist
        """
        pass


class GitSourceFetcher(SourceFetcher):
    """Clones git sources into the devflow dependencies directory"""

    def __init__(self, dependencies_dir: Optional[Path] = None):
        """
        Initialize git fetcher

        Args:
            dependencies_dir: Clone cache directory, defaults to
                ~/.devflow/dependencies (or $DEVFLOW_HOME/dependencies)
        """
        self.dependencies_dir = Path(dependencies_dir or PathResolver.get_dependencies_dir())
        self._locks: Dict[Path, asyncio.Lock] = {}

    def clone_path(self, source: SourceConfig) -> Path:
        """Get the directory a source is cloned into"""
        clone_key = f"{source.git}@{source.ref or DEFAULT_GIT_REVISION}"
        return self.dependencies_dir / calculate_string_hash(clone_key)[:32]

    def _lock(self, path: Path) -> asyncio.Lock:
        if path not in self._locks:
            self._locks[path] = asyncio.Lock()
        return self._locks[path]

    async def fetch(self, source: SourceConfig, update: bool = False) -> Path:
        if not source.is_remote:
            raise SourceFetchError(source.key(), "not a remote source")

        target = self.clone_path(source)

        async with self._lock(target):
            try:
                if git_utils.is_git_repository(target):
                    if update:
                        logger.info("Updating %s in %s", source.git, target)
                        await self._update(source, target)
                    else:
                        logger.debug("Reusing checkout of %s in %s", source.git, target)
                else:
                    logger.info("Cloning %s into %s", source.git, target)
                    await self._clone(source, target)
            except GitCommandError as e:
                raise SourceFetchError(source.key(), str(e))
            except OSError as e:
                raise SourceFetchError(source.key(), e.strerror or str(e))

        local_path = target
        if source.sub_path:
            local_path = target / source.sub_path.strip('/')
            if not local_path.is_dir():
                raise SourceFetchError(source.key(), f"sub path '{source.sub_path}' does not exist")

        return local_path

    async def _clone(self, source: SourceConfig, target: Path) -> None:
        if target.exists():
            # Leftover from an interrupted clone
            shutil.rmtree(target)
        target.parent.mkdir(parents=True, exist_ok=True)

        shallow = not source.disable_shallow and not source.revision
        try:
            await git_utils.clone(
                source.git,
                target,
                branch=source.branch or source.tag,
                shallow=shallow,
                extra_args=source.clone_args
            )
            if source.revision:
                await git_utils.checkout(target, source.revision)
        except BaseException:
            shutil.rmtree(target, ignore_errors=True)
            raise

    async def _update(self, source: SourceConfig, target: Path) -> None:
        shallow = not source.disable_shallow and not source.revision

        if source.revision:
            await git_utils.fetch(target)
            await git_utils.checkout(target, source.revision)
            return

        ref = source.branch or source.tag or DEFAULT_GIT_REVISION
        await git_utils.fetch(target, ref, shallow=shallow)
        await git_utils.reset_hard(target, "FETCH_HEAD")
