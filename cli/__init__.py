"""CLI package for the taskboard session client

Provides login, logout, status and authenticated request commands on top
of the session package.
"""

from cli.main import main

__all__ = [
    "main",
]
