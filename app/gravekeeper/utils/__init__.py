"""Utility modules for gravekeeper.

This module exports commonly used utility functions.
"""

from gravekeeper.utils.formatting import (
    console,
    create_file_table,
    create_log_table,
    err_console,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
)

__all__ = [
    "console",
    "create_file_table",
    "create_log_table",
    "err_console",
    "format_size",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]
