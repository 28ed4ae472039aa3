"""Path resolution module for devflow"""

import os
from pathlib import Path
from typing import Optional, Union

from ..api.exceptions import ProjectNotFoundError
from ..constants import (
    DEFAULT_HOME_DIR,
    DEPENDENCIES_DIR,
    ENV_HOME,
    ENV_PROJECT_ROOT,
    GENERATED_CONFIG_FILE,
    PROJECT_CONFIG_FILE,
    PROJECT_STATE_DIR,
)


class PathResolver:
    """Resolves paths within a devflow project"""

    def __init__(self, project_root: Optional[Union[str, Path]] = None):
        """Initialize path resolver

        Args:
            project_root: Root directory of the project. When omitted the
                root is searched upwards from the working directory.
        """
        if project_root is None:
            project_root = self.find_project_root()
        self.project_root = Path(project_root).resolve()

    @staticmethod
    def find_project_root(start_path: Optional[Path] = None) -> Path:
        """Find the nearest directory containing devflow.yaml

        Args:
            start_path: Starting directory for search

        Returns:
            Project root path

        Raises:
            ProjectNotFoundError: If no project root is found
        """
        env_root = os.environ.get(ENV_PROJECT_ROOT)
        if env_root and start_path is None:
            root = Path(env_root).expanduser().resolve()
            if (root / PROJECT_CONFIG_FILE).exists():
                return root
            raise ProjectNotFoundError(f"{ENV_PROJECT_ROOT} does not point to a project: {root}")

        current = Path(start_path or Path.cwd()).resolve()
        for candidate in [current, *current.parents]:
            if (candidate / PROJECT_CONFIG_FILE).exists():
                return candidate

        raise ProjectNotFoundError()

    def get_state_dir(self) -> Path:
        """Get the project's .devflow directory"""
        return self.project_root / PROJECT_STATE_DIR

    def get_generated_path(self) -> Path:
        """Get path of the generated state file"""
        return self.get_state_dir() / GENERATED_CONFIG_FILE

    @staticmethod
    def get_home_dir() -> Path:
        """Get the devflow home directory

        Returns:
            DEVFLOW_HOME when set, otherwise ~/.devflow
        """
        home = os.environ.get(ENV_HOME)
        if home:
            return Path(home).expanduser().resolve()
        return Path(DEFAULT_HOME_DIR).expanduser()

    @classmethod
    def get_dependencies_dir(cls) -> Path:
        """Get the directory remote dependencies are cloned into"""
        return cls.get_home_dir() / DEPENDENCIES_DIR

    @staticmethod
    def generated_path_for(project_dir: Union[str, Path]) -> Path:
        """Get the generated state file of an arbitrary project directory"""
        return Path(project_dir) / PROJECT_STATE_DIR / GENERATED_CONFIG_FILE
