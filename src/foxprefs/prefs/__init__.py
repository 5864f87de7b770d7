"""
Preference declarations: parsing, loading, merging.

Example usage:
    from foxprefs.prefs import MergeConfig, ResolutionContext, resolve_preferences

    merged = resolve_preferences(
        ResolutionContext(profile_dir=profile, install_dir=install),
        MergeConfig(continue_on_error=True),
    )
    for key, pref in merged.entries.items():
        print(key, pref.value, pref.origin.label)
"""

from foxprefs.prefs.loader import (
    load_builtin_tiers,
    load_file_tier,
    load_text_tier,
)
from foxprefs.prefs.merge import MergeConfig, merge_tiers
from foxprefs.prefs.parser import parse, parse_file
from foxprefs.prefs.resolve import ResolutionContext, resolve_preferences
from foxprefs.prefs.types import (
    DeclarationKind,
    Entry,
    MergedPreferences,
    ParseResult,
    ParseWarning,
    PrefValue,
    ResolvedPreference,
    Source,
    Tier,
    TierFailure,
    ValueKind,
)
from foxprefs.prefs.writer import dump, format_entry

__all__ = [
    "DeclarationKind",
    "Entry",
    "MergeConfig",
    "MergedPreferences",
    "ParseResult",
    "ParseWarning",
    "PrefValue",
    "ResolutionContext",
    "ResolvedPreference",
    "Source",
    "Tier",
    "TierFailure",
    "ValueKind",
    "dump",
    "format_entry",
    "load_builtin_tiers",
    "load_file_tier",
    "load_text_tier",
    "merge_tiers",
    "parse",
    "parse_file",
    "resolve_preferences",
]
