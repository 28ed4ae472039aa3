# devflow/models/__init__.py
"""Data models for devflow"""

from .dependency import SourceConfig, DependencyConfig, Dependency
from .config import ProjectConfig, ImageConfig, DeploymentConfig, ProfileConfig
from .generated import GeneratedConfig, CacheConfig, ImageCache
from .options import LoadOptions, BuildOptions, DeployOptions
from .result import DependencyStatus, DependencyResult, OperationStatus, OperationResult

__all__ = [
    # Dependency models
    "SourceConfig",
    "DependencyConfig",
    "Dependency",

    # Config models
    "ProjectConfig",
    "ImageConfig",
    "DeploymentConfig",
    "ProfileConfig",

    # Generated state models
    "GeneratedConfig",
    "CacheConfig",
    "ImageCache",

    # Option models
    "LoadOptions",
    "BuildOptions",
    "DeployOptions",

    # Result models
    "DependencyStatus",
    "DependencyResult",
    "OperationStatus",
    "OperationResult",
]
