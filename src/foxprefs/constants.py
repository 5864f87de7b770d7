"""
Shared constants for foxprefs.

This module provides a single source of truth for default values
that are used across multiple modules.
"""

# Archive layout
BUILTIN_PREFS_PREFIX = "defaults/pref/"
"""Archive path prefix under which built-in preference files live."""

GLOBAL_PREFS_NAME = "greprefs.js"
"""File name of the global-default preference file."""

USER_PREFS_NAME = "prefs.js"
"""File name of the user preference file inside a profile directory."""

ARCHIVE_NAME = "omni.ja"
"""File name of the application resource archive."""

# Size limits
DEFAULT_MAX_ARCHIVE_SIZE = 100 * 1024 * 1024
"""Largest archive (bytes) the loader will read into memory (100 MiB)."""

MAX_ENTRY_SIZE = 10 * 1024 * 1024
"""Largest uncompressed archive entry (bytes) the reader will inflate (10 MiB)."""

# Display
SNIPPET_LENGTH = 60
"""Maximum characters of source text quoted in a parse warning."""
