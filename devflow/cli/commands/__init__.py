# devflow/cli/commands/__init__.py
"""CLI commands"""

from . import deps
from . import hash

__all__ = [
    "deps",
    "hash",
]
