"""
Glob matching for preference keys.

Only one wildcard exists: `*` matches one or more characters, and may
span dots, so "browser.*.enabled" matches "browser.search.suggest.enabled".
Matching is case-sensitive and anchored at both ends. A key matches a
Matcher when it matches any of its patterns; a Matcher with no patterns
matches nothing.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import re as _re
import typing as _typing

import foxprefs.errors as errors
import foxprefs.prefs.types as types

# Glob syntax from other dialects that is rejected rather than taken literally
_UNSUPPORTED = {
    "?": "'?' is not supported; use '*'",
    "[": "character classes are not supported",
    "]": "character classes are not supported",
    "{": "brace alternatives are not supported",
    "}": "brace alternatives are not supported",
    "\\": "escapes are not supported",
}

T = _typing.TypeVar("T")


def compile_pattern(pattern: str) -> _re.Pattern[str]:
    """
    Translate one glob into an anchored regular expression.

    Raises:
        PatternError: For an empty pattern, `**`, or unsupported glob syntax.
            The column is 1-based.
    """
    if not pattern:
        raise errors.PatternError(pattern, 1, "pattern is empty")

    parts: list[str] = []
    for index, char in enumerate(pattern):
        column = index + 1
        if char in _UNSUPPORTED:
            raise errors.PatternError(pattern, column, _UNSUPPORTED[char])
        if char == "*":
            if index > 0 and pattern[index - 1] == "*":
                raise errors.PatternError(pattern, column, "'**' is not supported")
            parts.append(".+")
        else:
            parts.append(_re.escape(char))
    return _re.compile("".join(parts), _re.DOTALL)


@_dataclasses.dataclass(frozen=True)
class Matcher:
    """
    A compiled set of patterns, OR-combined.

    Build with `Matcher.compile()` so every pattern is validated up front.
    """

    patterns: tuple[str, ...]
    _compiled: tuple[_re.Pattern[str], ...] = _dataclasses.field(repr=False, compare=False)

    @classmethod
    def compile(cls, patterns: _typing.Iterable[str]) -> Matcher:
        """
        Compile patterns, failing on the first malformed one.

        Raises:
            PatternError: If any pattern is malformed.
        """
        patterns = tuple(patterns)
        return cls(patterns, tuple(compile_pattern(pattern) for pattern in patterns))

    def matches(self, key: str) -> bool:
        """True if `key` matches at least one pattern."""
        return any(regex.fullmatch(key) for regex in self._compiled)

    def __bool__(self) -> bool:
        return bool(self._compiled)


def compile_patterns(patterns: _typing.Iterable[str]) -> Matcher:
    """Shorthand for `Matcher.compile(patterns)`."""
    return Matcher.compile(patterns)


@_typing.overload
def query_preferences(
    items: types.MergedPreferences, patterns: _typing.Iterable[str]
) -> types.MergedPreferences: ...


@_typing.overload
def query_preferences(
    items: _typing.Mapping[str, T], patterns: _typing.Iterable[str]
) -> dict[str, T]: ...


@_typing.overload
def query_preferences(
    items: _typing.Iterable[T], patterns: _typing.Iterable[str]
) -> list[T]: ...


def query_preferences(items: _typing.Any, patterns: _typing.Iterable[str]) -> _typing.Any:
    """
    Keep the items whose key matches any pattern, preserving order.

    Args:
        items: A MergedPreferences, a key-to-value mapping, or an iterable
            of objects with a `key` attribute (Entry, ResolvedPreference).
        patterns: Glob patterns. An empty list keeps nothing.

    Returns:
        The same kind of container, filtered. A MergedPreferences keeps its
        loaded_sources and warnings.

    Raises:
        PatternError: If any pattern is malformed.

    Example:
        >>> query_preferences({"network.proxy.type": 0, "browser.x": 1}, ["network.*"])
        {'network.proxy.type': 0}
    """
    matcher = Matcher.compile(patterns)
    if isinstance(items, types.MergedPreferences):
        return types.MergedPreferences(
            entries={key: pref for key, pref in items.entries.items() if matcher.matches(key)},
            loaded_sources=items.loaded_sources,
            warnings=list(items.warnings),
        )
    if isinstance(items, _typing.Mapping):
        return {key: value for key, value in items.items() if matcher.matches(key)}
    return [item for item in items if matcher.matches(item.key)]
