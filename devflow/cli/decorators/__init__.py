# devflow/cli/decorators/__init__.py
"""CLI decorators"""

from .project import require_project

__all__ = [
    'require_project',
]
