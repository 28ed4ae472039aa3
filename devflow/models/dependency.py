"""Dependency data models"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..api.exceptions import ConfigError
from ..constants import DEFAULT_GIT_REVISION, DEFAULT_HASH_EXCLUDES
from ..utils.hash_utils import calculate_directory_hash, calculate_string_hash

if TYPE_CHECKING:
    from .config import ProjectConfig
    from .generated import CacheConfig, GeneratedConfig
    from ..core.generated_store import GeneratedStore


@dataclass(frozen=True)
class SourceConfig:
    """Where the code of a dependency lives"""

    path: Optional[str] = None
    git: Optional[str] = None
    branch: Optional[str] = None
    tag: Optional[str] = None
    revision: Optional[str] = None
    sub_path: Optional[str] = None
    clone_args: tuple = ()
    disable_shallow: bool = False

    def __post_init__(self):
        """Validate source configuration"""
        if bool(self.path) == bool(self.git):
            raise ConfigError("dependency source requires exactly one of 'path' or 'git'")

        refs = [ref for ref in (self.branch, self.tag, self.revision) if ref]
        if len(refs) > 1:
            raise ConfigError("dependency source accepts only one of 'branch', 'tag' or 'revision'")

        if self.path and (refs or self.sub_path or self.clone_args):
            raise ConfigError("git options are not allowed for a 'path' source")

    @property
    def is_remote(self) -> bool:
        """Check if this source must be fetched"""
        return bool(self.git)

    @property
    def ref(self) -> Optional[str]:
        """Get the requested branch, tag or revision"""
        return self.branch or self.tag or self.revision

    def key(self, base_path: Optional[Path] = None) -> str:
        """Get the canonical source key

        Args:
            base_path: Directory of the declaring project, used to make
                local paths absolute

        Returns:
            Key that is stable across runs for the same logical source
        """
        if self.path:
            path = Path(self.path)
            if not path.is_absolute() and base_path is not None:
                path = Path(base_path) / path
            return str(path.resolve())

        key = f"{self.git}@{self.ref or DEFAULT_GIT_REVISION}"
        if self.sub_path:
            key += f":{self.sub_path.strip('/')}"
        return key

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {}
        for name in ("path", "git", "branch", "tag", "revision", "sub_path"):
            value = getattr(self, name)
            if value:
                data[name] = value
        if self.clone_args:
            data["clone_args"] = list(self.clone_args)
        if self.disable_shallow:
            data["disable_shallow"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceConfig':
        """Create from dictionary"""
        if not isinstance(data, dict):
            raise ConfigError("dependency 'source' must be a mapping")

        unknown = set(data) - {
            "path", "git", "branch", "tag", "revision",
            "sub_path", "clone_args", "disable_shallow"
        }
        if unknown:
            raise ConfigError(f"unknown source option(s): {', '.join(sorted(unknown))}")

        return cls(
            path=data.get("path"),
            git=data.get("git"),
            branch=data.get("branch"),
            tag=data.get("tag"),
            revision=data.get("revision"),
            sub_path=data.get("sub_path"),
            clone_args=tuple(data.get("clone_args") or ()),
            disable_shallow=bool(data.get("disable_shallow", False))
        )


@dataclass
class DependencyConfig:
    """A dependency as declared by a project"""

    source: SourceConfig
    profile: Optional[str] = None
    skip_build: bool = False
    skip_deploy: bool = False
    ignore_dependencies: bool = False
    namespace: Optional[str] = None
    vars: Dict[str, str] = field(default_factory=dict)

    def identity(self, base_path: Optional[Path] = None) -> str:
        """Compute the dependency identity from source and profile

        Args:
            base_path: Directory of the declaring project

        Returns:
            Hex digest identifying this dependency across runs
        """
        return calculate_string_hash(f"{self.source.key(base_path)}#{self.profile or ''}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data: Dict[str, Any] = {"source": self.source.to_dict()}
        if self.profile:
            data["profile"] = self.profile
        if self.skip_build:
            data["skip_build"] = True
        if self.skip_deploy:
            data["skip_deploy"] = True
        if self.ignore_dependencies:
            data["ignore_dependencies"] = True
        if self.namespace:
            data["namespace"] = self.namespace
        if self.vars:
            data["vars"] = dict(self.vars)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DependencyConfig':
        """Create from dictionary"""
        if not isinstance(data, dict) or "source" not in data:
            raise ConfigError("dependency entry requires a 'source'")

        variables = data.get("vars") or {}
        if not isinstance(variables, dict):
            raise ConfigError("dependency 'vars' must be a mapping")

        return cls(
            source=SourceConfig.from_dict(data["source"]),
            profile=data.get("profile"),
            skip_build=bool(data.get("skip_build", False)),
            skip_deploy=bool(data.get("skip_deploy", False)),
            ignore_dependencies=bool(data.get("ignore_dependencies", False)),
            namespace=data.get("namespace"),
            vars={str(k): str(v) for k, v in variables.items()}
        )


@dataclass(eq=False)
class Dependency:
    """A resolved dependency

    Instances are created by the resolver, one per identity per run. The
    parent ledger (`dependency_cache`) is the cache profile of the root
    project in which this dependency's source hashes are recorded; the
    dependency's own generated config holds its image tags.
    """

    identity: str
    name: str
    local_path: Path
    dependency_config: DependencyConfig
    config: Optional['ProjectConfig'] = None
    generated_store: Optional['GeneratedStore'] = None
    dependency_cache: Optional['CacheConfig'] = None
    source_key: str = ""
    parent_identity: Optional[str] = None
    children: List['Dependency'] = field(default_factory=list)

    def __post_init__(self):
        if isinstance(self.local_path, str):
            self.local_path = Path(self.local_path)

    def __repr__(self) -> str:
        return f"Dependency(name={self.name!r}, identity={self.identity[:12]!r})"

    @property
    def profile(self) -> Optional[str]:
        """Get the profile activated in the dependency"""
        return self.dependency_config.profile

    @property
    def source(self) -> SourceConfig:
        return self.dependency_config.source

    @property
    def namespace(self) -> Optional[str]:
        return self.dependency_config.namespace

    @property
    def skip_build(self) -> bool:
        return self.dependency_config.skip_build

    @property
    def skip_deploy(self) -> bool:
        return self.dependency_config.skip_deploy

    def current_hash(self, excludes: Optional[List[str]] = None) -> str:
        """Compute the content hash of the dependency's source tree

        Args:
            excludes: Exclusion patterns, defaults to DEFAULT_HASH_EXCLUDES

        Returns:
            Hex digest of the materialized source tree
        """
        if excludes is None:
            excludes = DEFAULT_HASH_EXCLUDES
        return calculate_directory_hash(self.local_path, excludes)

    def stored_build_hash(self) -> Optional[str]:
        """Get the source hash recorded at the last successful build"""
        if self.dependency_cache is None:
            return None
        return self.dependency_cache.dependencies.get(self.identity)

    def stored_deploy_hash(self) -> Optional[str]:
        """Get the source hash recorded at the last successful deploy"""
        if self.dependency_cache is None:
            return None
        return self.dependency_cache.deployments.get(self.identity)

    @property
    def generated(self) -> Optional['GeneratedConfig']:
        """Get the dependency's own generated config"""
        if self.generated_store is None:
            return None
        return self.generated_store.config

    def active_cache(self) -> Optional['CacheConfig']:
        """Get the dependency's own cache profile (image tags)"""
        if self.generated_store is None:
            return None
        return self.generated_store.profile(self.profile)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for display"""
        return {
            "identity": self.identity,
            "name": self.name,
            "source": self.source_key,
            "profile": self.profile,
            "local_path": str(self.local_path),
            "dependencies": [child.name for child in self.children],
        }
