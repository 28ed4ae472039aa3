"""Shared fixtures for devflow tests"""

import asyncio
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import yaml

from devflow.api.exceptions import SourceFetchError
from devflow.controllers.base import BuildController, DeployController
from devflow.core.config_loader import ConfigLoader
from devflow.core.generated_store import GeneratedStore
from devflow.core.path_resolver import PathResolver
from devflow.core.source_fetcher import SourceFetcher
from devflow.models.dependency import SourceConfig
from devflow.models.options import LoadOptions
from devflow.services.dependency_manager import DependencyManager


def write_project(path: Path,
                  name: Optional[str] = None,
                  dependencies: Optional[List[dict]] = None,
                  **sections) -> Path:
    """Create a project directory with a devflow.yaml and a source file"""
    path.mkdir(parents=True, exist_ok=True)
    config = {"version": "1.0"}
    if name:
        config["name"] = name
    if dependencies:
        config["dependencies"] = dependencies
    config.update(sections)

    (path / "devflow.yaml").write_text(yaml.safe_dump(config))
    if not (path / "main.txt").exists():
        (path / "main.txt").write_text(f"source of {name or path.name}\n")
    return path


def dep(path: str, **options) -> dict:
    """Declaration of a local path dependency"""
    declaration = {"source": {"path": path}}
    declaration.update(options)
    return declaration


class FakeBuildController(BuildController):
    """Records builds; fails for the project directories named in fail"""

    def __init__(self, fail=(), delay: float = 0):
        self.fail = set(fail)
        self.delay = delay
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0

    async def build(self, path, profile, options, config=None) -> Dict[str, str]:
        name = Path(path).name
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if name in self.fail:
                raise RuntimeError(f"build of {name} exploded")
            self.calls.append(name)
            return {"app": f"registry.local:5000/{name}:abc123"}
        finally:
            self.active -= 1


class FakeDeployController(DeployController):
    """Records deploys and purges; fails for the dependencies named in fail"""

    def __init__(self, fail_deploy=(), fail_purge=()):
        self.fail_deploy = set(fail_deploy)
        self.fail_purge = set(fail_purge)
        self.deployed: List[str] = []
        self.purged: List[str] = []
        self.purge_attempts: List[str] = []

    async def deploy(self, dependency, options) -> None:
        if dependency.name in self.fail_deploy:
            raise RuntimeError(f"deploy of {dependency.name} exploded")
        self.deployed.append(dependency.name)

    async def purge(self, dependency, verbose=False) -> None:
        self.purge_attempts.append(dependency.name)
        if dependency.name in self.fail_purge:
            raise RuntimeError(f"purge of {dependency.name} exploded")
        self.purged.append(dependency.name)


class FakeFetcher(SourceFetcher):
    """Serves git sources from local directories"""

    def __init__(self, repositories: Dict[str, Path], broken=()):
        self.repositories = repositories
        self.broken = set(broken)
        self.fetches: List[tuple] = []

    async def fetch(self, source: SourceConfig, update: bool = False) -> Path:
        self.fetches.append((source.git, update))
        if source.git in self.broken or source.git not in self.repositories:
            raise SourceFetchError(source.key(), "repository not found")
        path = self.repositories[source.git]
        if source.sub_path:
            path = path / source.sub_path
        return path


@pytest.fixture
def build_controller():
    return FakeBuildController()


@pytest.fixture
def deploy_controller():
    return FakeDeployController()


@pytest.fixture
def make_manager(build_controller, deploy_controller):
    """Factory creating a DependencyManager for a project on disk"""

    def factory(root: Path, profile: Optional[str] = None, **kwargs) -> DependencyManager:
        options = LoadOptions(profile=profile)
        config = ConfigLoader(options).load_project(root)
        store = GeneratedStore(PathResolver(root).get_generated_path())
        store.load()

        kwargs.setdefault("build_controller", build_controller)
        kwargs.setdefault("deploy_controller", deploy_controller)
        kwargs.setdefault("max_workers", 4)
        return DependencyManager(
            config,
            store,
            load_options=options,
            project_root=root,
            **kwargs
        )

    return factory


def read_generated(project: Path) -> dict:
    """Read the generated state of a project from disk"""
    path = PathResolver.generated_path_for(project)
    with open(path) as f:
        return yaml.safe_load(f)
