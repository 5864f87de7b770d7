"""
Glob filtering of preference keys.
"""

from foxprefs.query.matching import (
    Matcher,
    compile_pattern,
    compile_patterns,
    query_preferences,
)

__all__ = ["Matcher", "compile_pattern", "compile_patterns", "query_preferences"]
