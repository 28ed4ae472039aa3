"""CLI utility functions"""

from .output import (
    console,
    format_dependency_list,
    format_operation_result,
)

__all__ = [
    'console',
    'format_dependency_list',
    'format_operation_result',
]
