"""
CLI module for foxprefs.

Provides the command-line interface using Click.
"""

from foxprefs.cli.main import cli, main

__all__ = ["main", "cli"]
