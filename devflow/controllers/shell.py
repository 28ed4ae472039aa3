# devflow/controllers/shell.py
"""Controllers that run the commands declared in devflow.yaml"""

import logging
import re
from pathlib import Path
from typing import Dict, Optional

from .base import BuildController, DeployController
from ..api.exceptions import DevflowError
from ..constants import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_HASH_EXCLUDES,
    ENV_IMAGE,
    ENV_NAMESPACE,
    ENV_PROFILE,
    ENV_TAG,
    IMAGE_TAG_LENGTH,
)
from ..core.config_loader import ConfigLoader
from ..models.config import ProjectConfig
from ..models.dependency import Dependency
from ..models.options import BuildOptions, DeployOptions
from ..utils.async_utils import run_command, run_in_executor
from ..utils.hash_utils import calculate_directory_hash_async, short_hash

logger = logging.getLogger(__name__)


class CommandError(DevflowError):
    """A declared command exited with a non-zero code"""

    def __init__(self, what: str, description: str):
        super().__init__(f"{what} failed with {description}")


def image_env_name(name: str) -> str:
    """Environment variable holding the reference of an image"""
    return "IMAGE_" + re.sub(r"[^A-Za-z0-9]", "_", name).upper()


class _ShellRunner:
    """Shared command execution for the shell controllers"""

    def __init__(self, timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT):
        self.timeout = timeout

    async def _run(self, what: str, command: str, cwd: Path, env: Dict[str, str]) -> None:
        logger.debug("Running %s: %s", what, command)
        result = await run_command(command, cwd=cwd, env=env, timeout=self.timeout, shell=True)
        if not result.ok:
            raise CommandError(what, result.describe())
        if result.stdout.strip():
            logger.debug(result.stdout.rstrip())


class ShellBuildController(_ShellRunner, BuildController):
    """Runs each image's build command, then its push command

    The commands see IMAGE and TAG in their environment; TAG is derived from
    the content hash of the image context so unchanged sources produce the
    same tag. Pushing is skipped with BuildOptions.skip_push.
    """

    def __init__(self,
                 loader: Optional[ConfigLoader] = None,
                 timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT):
        super().__init__(timeout)
        self.loader = loader or ConfigLoader()

    async def build(self,
                    path: Path,
                    profile: Optional[str],
                    options: BuildOptions,
                    config: Optional[ProjectConfig] = None) -> Dict[str, str]:
        path = Path(path)
        if config is None:
            config = await run_in_executor(self.loader.load_child_config, path, profile)

        excludes = options.hash_excludes if options.hash_excludes is not None else DEFAULT_HASH_EXCLUDES
        built = {}

        for name, image in config.images.items():
            context = (path / image.context).resolve()
            digest = await calculate_directory_hash_async(context, excludes)
            tag = short_hash(digest, IMAGE_TAG_LENGTH)
            reference = f"{image.image}:{tag}"

            if not image.build:
                logger.debug("Image %s has no build command, recording %s", name, reference)
                built[name] = reference
                continue

            env = dict(config.vars)
            env.update({ENV_IMAGE: image.image, ENV_TAG: tag})
            if profile:
                env[ENV_PROFILE] = profile

            await self._run(f"build of image {name}", image.build, context, env)
            logger.info("Built image %s", reference)

            if image.push and not options.skip_push:
                await self._run(f"push of image {name}", image.push, context, env)
                logger.info("Pushed image %s", reference)

            built[name] = reference

        return built


class ShellDeployController(_ShellRunner, DeployController):
    """Runs each deployment's deploy and purge commands"""

    def _env(self, dependency: Dependency, namespace: Optional[str]) -> Dict[str, str]:
        env = dict(dependency.config.vars) if dependency.config else {}
        if namespace:
            env[ENV_NAMESPACE] = namespace
        if dependency.profile:
            env[ENV_PROFILE] = dependency.profile

        cache = dependency.active_cache()
        if cache is not None:
            for name, image in cache.images.items():
                env[image_env_name(name)] = image.reference
        return env

    async def deploy(self, dependency: Dependency, options: DeployOptions) -> None:
        if dependency.config is None:
            return

        for deployment in dependency.config.deployments:
            if not deployment.deploy:
                continue
            namespace = dependency.namespace or deployment.namespace
            env = self._env(dependency, namespace)
            await self._run(f"deployment {deployment.name}", deployment.deploy, dependency.local_path, env)
            logger.info("Deployed %s of %s", deployment.name, dependency.name)

    async def purge(self, dependency: Dependency, verbose: bool = False) -> None:
        if dependency.config is None:
            return

        for deployment in reversed(dependency.config.deployments):
            if not deployment.purge:
                continue
            namespace = dependency.namespace or deployment.namespace
            env = self._env(dependency, namespace)
            if verbose:
                logger.info("Purging %s of %s", deployment.name, dependency.name)
            await self._run(f"purge of {deployment.name}", deployment.purge, dependency.local_path, env)
