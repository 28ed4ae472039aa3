"""Project configuration loading"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from packaging.version import InvalidVersion, Version

from ..api.exceptions import ConfigError
from ..constants import CONFIG_VERSION, ENV_IMAGE, ENV_TAG, VAR_PATTERN
from ..models.config import ProfileConfig, ProjectConfig, require_list, require_mapping
from ..models.options import LoadOptions

logger = logging.getLogger(__name__)

# Resolved by the controllers when a command runs
RUNTIME_VARS = {ENV_IMAGE, ENV_TAG}


class ConfigLoader:
    """Loads devflow.yaml files and applies profiles and variables

    Loading is deterministic: the same directory, profile and variables
    always produce an equal ProjectConfig.
    """

    def __init__(self, options: Optional[LoadOptions] = None):
        """Initialize config loader

        Args:
            options: Load options; the profile and vars only apply to the
                root project loaded through load_project()
        """
        self.options = options or LoadOptions()

    def load_project(self, project_dir: Union[str, Path]) -> ProjectConfig:
        """Load the root project configuration

        Args:
            project_dir: Project root directory

        Returns:
            Loaded configuration with the selected profile applied
        """
        return self.load_child_config(project_dir, self.options.profile, self.options.vars)

    def load_child_config(self,
                          path: Union[str, Path],
                          profile: Optional[str] = None,
                          variables: Optional[Dict[str, str]] = None) -> ProjectConfig:
        """Load the configuration of a (dependency) project

        Args:
            path: Project directory
            profile: Profile to activate
            variables: Values overriding the project's own vars

        Returns:
            Loaded configuration

        Raises:
            ConfigError: If the file is missing, unreadable or invalid
        """
        path = Path(path)
        config_path = path / self.options.config_file

        data = self._read(config_path)

        try:
            self._check_version(data.get("version"))
            data = self._apply_profile(data, profile)

            effective_vars = dict(data["vars"])
            effective_vars.update(variables or {})
            data["vars"] = effective_vars
            data = self._substitute(data, effective_vars)

            config = ProjectConfig.from_dict(data)
        except ConfigError as e:
            if e.path:
                raise
            raise ConfigError(str(e), str(config_path))

        if not config.name:
            config.name = path.resolve().name
        config.active_profile = profile

        logger.debug("Loaded %s (profile: %s)", config_path, profile or "none")
        return config

    def _read(self, config_path: Path) -> Dict[str, Any]:
        if not config_path.exists():
            raise ConfigError("configuration file not found", str(config_path))

        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"cannot read configuration: {e.strerror or e}", str(config_path))
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML: {e}", str(config_path))

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError("configuration must be a mapping", str(config_path))
        return data

    @staticmethod
    def _check_version(version: Any) -> None:
        if version is None:
            return
        try:
            parsed = Version(str(version))
        except InvalidVersion:
            raise ConfigError(f"invalid config version: {version}")
        if parsed > Version(CONFIG_VERSION):
            raise ConfigError(
                f"config version {version} is newer than the supported version {CONFIG_VERSION}"
            )

    @staticmethod
    def _apply_profile(data: Dict[str, Any], profile: Optional[str]) -> Dict[str, Any]:
        data = copy.deepcopy(data)
        data["vars"] = {str(k): str(v) for k, v in require_mapping(data.get("vars"), "vars").items()}
        profiles = [
            ProfileConfig.from_dict(item)
            for item in require_list(data.pop("profiles", None), "profiles")
        ]
        if not profile:
            return data

        selected = next((item for item in profiles if item.name == profile), None)
        if selected is None:
            raise ConfigError(f"profile '{profile}' not found")

        data["vars"].update(selected.vars)
        for section in ("images", "deployments", "dependencies"):
            value = getattr(selected, section)
            if value is not None:
                data[section] = copy.deepcopy(value)

        return data

    def _substitute(self, value: Any, variables: Dict[str, str]) -> Any:
        if isinstance(value, str):
            return VAR_PATTERN.sub(lambda m: self._lookup(m, variables), value)
        if isinstance(value, list):
            return [self._substitute(item, variables) for item in value]
        if isinstance(value, dict):
            return {key: self._substitute(item, variables) for key, item in value.items()}
        return value

    def _lookup(self, match, variables: Dict[str, str]) -> str:
        name = match.group(1)
        if name in variables:
            return variables[name]
        if name in RUNTIME_VARS:
            return match.group(0)
        if self.options.expand_env and name in os.environ:
            return os.environ[name]
        return match.group(0)
