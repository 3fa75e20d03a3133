"""Shared utilities package for the taskboard session client"""

from .storage import TokenStorage
from .debug_console import (
    DebugCapturingConsole,
    create_debug_console,
    setup_debug_logger,
    configure_logging,
)

__all__ = [
    "TokenStorage",
    "DebugCapturingConsole",
    "create_debug_console",
    "setup_debug_logger",
    "configure_logging",
]
