# devflow/utils/__init__.py
"""Utility functions for devflow"""

from .hash_utils import (
    calculate_content_hash,
    calculate_string_hash,
    calculate_directory_hash,
    calculate_directory_hash_async,
    is_excluded,
    short_hash,
)

from .async_utils import (
    run_async,
    run_command,
    run_in_executor,
    CommandResult,
)

from .formatting import (
    format_duration,
    format_source,
    pluralize,
)

__all__ = [
    # Hash utilities
    "calculate_content_hash",
    "calculate_string_hash",
    "calculate_directory_hash",
    "calculate_directory_hash_async",
    "is_excluded",
    "short_hash",

    # Async utilities
    "run_async",
    "run_command",
    "run_in_executor",
    "CommandResult",

    # Formatting utilities
    "format_duration",
    "format_source",
    "pluralize",
]
