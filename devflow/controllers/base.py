# devflow/controllers/base.py
"""Build and deploy controller abstract base classes"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from ..models.config import ProjectConfig
from ..models.dependency import Dependency
from ..models.options import BuildOptions, DeployOptions


class BuildController(ABC):
    """Abstract base class for build backends"""

    @abstractmethod
    async def build(self,
                    path: Path,
                    profile: Optional[str],
                    options: BuildOptions,
                    config: Optional[ProjectConfig] = None) -> Dict[str, str]:
        """
        Build the artifacts of a project

        Args:
            path: Project directory
            profile: Profile activated in the project
            options: Build options
            config: Already loaded project configuration, if any

        Returns:
            Mapping of artifact name to built image reference (image:tag)
        """
        pass


class DeployController(ABC):
    """Abstract base class for deploy backends"""

    @abstractmethod
    async def deploy(self, dependency: Dependency, options: DeployOptions) -> None:
        """
        Deploy a resolved dependency

        Args:
            dependency: Dependency to deploy
            options: Deploy options
        """
        pass

    @abstractmethod
    async def purge(self, dependency: Dependency, verbose: bool = False) -> None:
        """
        Remove everything a dependency deployed

        Args:
            dependency: Dependency to purge
            verbose: Report progress of the individual purge steps
        """
        pass
