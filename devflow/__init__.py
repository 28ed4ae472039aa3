"""devflow - dependency orchestration for containerized projects.

Projects declare images, deployments and sub-project dependencies in
devflow.yaml. devflow resolves the dependency graph and builds, deploys,
updates or purges every dependency in order, reusing earlier work when a
dependency's sources did not change.
"""

from .__version__ import __version__, __version_info__, __author__, __license__

# Exceptions
from .api.exceptions import (
    DevflowError,
    ConfigError,
    SourceFetchError,
    CycleError,
    HashError,
    BuildError,
    DeployError,
    PurgeError,
    DependencyResolutionError,
    OrchestrationError,
)

# Data models
from .models import (
    Dependency,
    DependencyConfig,
    SourceConfig,
    ProjectConfig,
    GeneratedConfig,
    BuildOptions,
    DeployOptions,
    LoadOptions,
    OperationResult,
)

# Core API
from .services.dependency_manager import DependencyManager
from .api.dependencies import Dependencies, build, deploy, purge

__all__ = [
    # Version information
    "__version__",
    "__version_info__",
    "__author__",
    "__license__",

    # Main classes
    "DependencyManager",
    "Dependencies",

    # Core API functions
    "build",
    "deploy",
    "purge",

    # Data models
    "Dependency",
    "DependencyConfig",
    "SourceConfig",
    "ProjectConfig",
    "GeneratedConfig",
    "BuildOptions",
    "DeployOptions",
    "LoadOptions",
    "OperationResult",

    # Exceptions
    "DevflowError",
    "ConfigError",
    "SourceFetchError",
    "CycleError",
    "HashError",
    "BuildError",
    "DeployError",
    "PurgeError",
    "DependencyResolutionError",
    "OrchestrationError",
]
