"""
foxprefs - browser preference resolution.

Parses preference-declaration files (prefs.js, greprefs.js and the
defaults bundled in omni.ja), merges them by precedence, and reports
where every effective value came from.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml - read it and parse into tuple (primary representation)
_raw_version = _metadata.version("foxprefs")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)

from foxprefs.config import Settings  # noqa: E402
from foxprefs.errors import FoxprefsError  # noqa: E402
from foxprefs.prefs import (  # noqa: E402
    MergeConfig,
    MergedPreferences,
    ResolutionContext,
    merge_tiers,
    parse,
    resolve_preferences,
)
from foxprefs.query import Matcher, query_preferences  # noqa: E402

__all__ = [
    "__version__",
    "__version_info__",
    "FoxprefsError",
    "Matcher",
    "MergeConfig",
    "MergedPreferences",
    "ResolutionContext",
    "Settings",
    "merge_tiers",
    "parse",
    "query_preferences",
    "resolve_preferences",
]
