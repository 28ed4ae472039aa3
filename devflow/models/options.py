"""Option models for loading and orchestration"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..constants import DEFAULT_HASH_EXCLUDES, PROJECT_CONFIG_FILE


@dataclass
class LoadOptions:
    """How project configurations are loaded"""

    profile: Optional[str] = None
    vars: Dict[str, str] = field(default_factory=dict)
    config_file: str = PROJECT_CONFIG_FILE
    expand_env: bool = True


@dataclass
class BuildOptions:
    """Options for building dependencies"""

    force_build: bool = False
    skip_push: bool = False
    continue_on_error: bool = False
    hash_excludes: List[str] = field(default_factory=lambda: list(DEFAULT_HASH_EXCLUDES))


@dataclass
class DeployOptions:
    """Options for deploying dependencies"""

    force_build: bool = False
    force_deploy: bool = False
    skip_build: bool = False
    skip_push: bool = False
    continue_on_error: bool = False
    hash_excludes: List[str] = field(default_factory=lambda: list(DEFAULT_HASH_EXCLUDES))

    def build_options(self) -> BuildOptions:
        """Derive the options used for the build step of a deploy"""
        return BuildOptions(
            force_build=self.force_build,
            skip_push=self.skip_push,
            continue_on_error=self.continue_on_error,
            hash_excludes=list(self.hash_excludes)
        )
