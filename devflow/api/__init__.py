# devflow/api/__init__.py
"""API layer for devflow

The orchestration entry point lives in devflow.api.dependencies; this package
only exposes the exception hierarchy so that every layer can import it.
"""

from .exceptions import (
    DevflowError,
    ConfigError,
    SourceFetchError,
    CycleError,
    HashError,
    DependencyError,
    BuildError,
    DeployError,
    PurgeError,
    DependencyResolutionError,
    OrchestrationError,
    StateWriteError,
    ProjectNotFoundError,
)

__all__ = [
    "DevflowError",
    "ConfigError",
    "SourceFetchError",
    "CycleError",
    "HashError",
    "DependencyError",
    "BuildError",
    "DeployError",
    "PurgeError",
    "DependencyResolutionError",
    "OrchestrationError",
    "StateWriteError",
    "ProjectNotFoundError",
]
