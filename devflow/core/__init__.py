"""Core functionality for devflow"""

from .path_resolver import PathResolver
from .config_loader import ConfigLoader
from .generated_store import GeneratedStore, InMemoryGeneratedStore
from .source_fetcher import SourceFetcher, GitSourceFetcher
from .resolver import DependencyResolver, Resolver

__all__ = [
    "PathResolver",
    "ConfigLoader",
    "GeneratedStore",
    "InMemoryGeneratedStore",
    "SourceFetcher",
    "GitSourceFetcher",
    "DependencyResolver",
    "Resolver",
]
