# devflow/services/__init__.py
"""Business logic services for devflow"""

from .dependency_manager import DependencyManager

__all__ = [
    "DependencyManager",
]
