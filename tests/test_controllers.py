"""Tests for the shell controllers and the controller factory"""

import asyncio
import sys

import pytest

from devflow.api.exceptions import ConfigError
from devflow.controllers import (
    CommandError,
    ControllerFactory,
    ShellBuildController,
    ShellDeployController,
)
from devflow.core.config_loader import ConfigLoader
from devflow.core.generated_store import GeneratedStore
from devflow.core.path_resolver import PathResolver
from devflow.models.dependency import Dependency, DependencyConfig, SourceConfig
from devflow.models.generated import ImageCache
from devflow.models.options import BuildOptions, DeployOptions
from devflow.utils.hash_utils import calculate_directory_hash

from conftest import FakeBuildController, FakeDeployController, write_project

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="shell commands use POSIX syntax")


def make_dependency(path, namespace=None):
    config = ConfigLoader().load_child_config(path)
    store = GeneratedStore(PathResolver.generated_path_for(path))
    store.load()
    return Dependency(
        identity="f" * 64,
        name=config.name,
        local_path=path,
        dependency_config=DependencyConfig(SourceConfig(path=str(path)), namespace=namespace),
        config=config,
        generated_store=store,
        source_key=str(path)
    )


@pytest.mark.asyncio
async def test_build_runs_command_with_image_and_tag(tmp_path):
    project = write_project(
        tmp_path / "api",
        vars={"GREETING": "hello"},
        images={"api": {
            "image": "registry.local/api",
            "context": "src",
            "build": "echo \"$GREETING ${IMAGE}:${TAG}\" > ../built.txt",
        }}
    )
    (project / "src").mkdir()
    (project / "src" / "app.py").write_text("print('api')\n")

    artifacts = await ShellBuildController().build(project, None, BuildOptions())

    tag = calculate_directory_hash(project / "src", [".git", ".devflow"])[:12]
    assert artifacts == {"api": f"registry.local/api:{tag}"}
    assert (project / "built.txt").read_text().strip() == f"hello registry.local/api:{tag}"


@pytest.mark.asyncio
async def test_push_runs_after_build_unless_skipped(tmp_path):
    project = write_project(tmp_path / "api", images={"api": {
        "image": "registry.local/api",
        "build": "echo build >> steps.txt",
        "push": "echo \"push ${IMAGE}:${TAG}\" >> steps.txt",
    }})
    controller = ShellBuildController()

    artifacts = await controller.build(project, None, BuildOptions())
    steps = (project / "steps.txt").read_text().splitlines()
    assert steps == ["build", f"push {artifacts['api']}"]

    (project / "steps.txt").unlink()
    await controller.build(project, None, BuildOptions(skip_push=True))
    assert (project / "steps.txt").read_text().splitlines() == ["build"]


def test_deploy_options_carry_skip_push_to_build():
    assert DeployOptions(skip_push=True).build_options().skip_push is True


@pytest.mark.asyncio
async def test_image_without_build_command_is_recorded(tmp_path):
    project = write_project(tmp_path / "api", images={"api": {"image": "registry.local/api"}})

    artifacts = await ShellBuildController().build(project, None, BuildOptions())

    assert list(artifacts) == ["api"]
    assert artifacts["api"].startswith("registry.local/api:")


@pytest.mark.asyncio
async def test_failing_build_command_raises(tmp_path):
    project = write_project(tmp_path / "api", images={"api": {"image": "x", "build": "echo boom >&2; exit 4"}})

    with pytest.raises(CommandError) as exc_info:
        await ShellBuildController().build(project, None, BuildOptions())

    assert "exit code 4" in str(exc_info.value)
    assert "boom" in str(exc_info.value)


@pytest.mark.asyncio
async def test_build_command_timeout(tmp_path):
    project = write_project(tmp_path / "api", images={"api": {"image": "x", "build": "sleep 5"}})

    with pytest.raises(asyncio.TimeoutError):
        await ShellBuildController(timeout=0.2).build(project, None, BuildOptions())


@pytest.mark.asyncio
async def test_deploy_passes_namespace_and_images(tmp_path):
    project = write_project(
        tmp_path / "api",
        deployments=[{
            "name": "api",
            "deploy": "echo \"$DEVFLOW_NAMESPACE $IMAGE_API\" > deployed.txt",
            "purge": "rm deployed.txt",
        }]
    )
    dependency = make_dependency(project, namespace="data")
    dependency.active_cache().images["api"] = ImageCache("registry.local/api", "0123456789ab")
    controller = ShellDeployController()

    await controller.deploy(dependency, DeployOptions())
    assert (project / "deployed.txt").read_text().strip() == "data registry.local/api:0123456789ab"

    await controller.purge(dependency, verbose=True)
    assert not (project / "deployed.txt").exists()


@pytest.mark.asyncio
async def test_purge_runs_deployments_in_reverse(tmp_path):
    project = write_project(
        tmp_path / "api",
        deployments=[
            {"name": "first", "purge": "echo first >> purged.txt"},
            {"name": "second", "purge": "echo second >> purged.txt"},
        ]
    )

    await ShellDeployController().purge(make_dependency(project))

    assert (project / "purged.txt").read_text().split() == ["second", "first"]


def test_factory_creates_shell_controllers():
    assert isinstance(ControllerFactory.create_build_controller(), ShellBuildController)
    assert isinstance(ControllerFactory.create_deploy_controller("shell", timeout=10), ShellDeployController)
    assert "shell" in ControllerFactory.get_supported_backends()


def test_factory_rejects_unknown_backend():
    with pytest.raises(ConfigError):
        ControllerFactory.create_build_controller("helm")


def test_factory_registers_backends():
    ControllerFactory.register_backend("fake", FakeBuildController, FakeDeployController)
    try:
        assert isinstance(ControllerFactory.create_deploy_controller("fake"), FakeDeployController)
    finally:
        ControllerFactory._backends.pop("fake")
