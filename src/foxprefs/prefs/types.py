"""
Core data types for preference resolution.

- ValueKind / PrefValue: the closed set of preference value variants
- DeclarationKind: which call form declared a preference
- Source: which tier a declaration was loaded from, with precedence
- Entry: one parsed declaration
- ParseWarning / ParseResult: best-effort parse output
- Tier / TierFailure: a loaded (or failed) tier handed to the merge engine
- ResolvedPreference / MergedPreferences: the merge output

Entries and tiers are produced per resolution request and discarded after
the merge. MergedPreferences is the only object meant to outlive a call.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import enum as _enum
import math as _math
import typing as _typing

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ValueKind(_enum.Enum):
    """Variant tag of a preference value."""

    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    NULL = "null"


@_dataclasses.dataclass(frozen=True)
class PrefValue:
    """
    A tagged preference value.

    The tag is explicit so that `True` and `1` never compare equal and no
    implicit coercion happens between variants. Use the per-variant
    constructors rather than building instances directly.

    Attributes:
        kind: Variant tag.
        data: Python payload (bool, int, float, str or None).
    """

    kind: ValueKind
    data: bool | int | float | str | None

    def __post_init__(self) -> None:
        _check_payload(self.kind, self.data)

    @classmethod
    def boolean(cls, value: bool) -> PrefValue:
        return cls(ValueKind.BOOLEAN, value)

    @classmethod
    def integer(cls, value: int) -> PrefValue:
        return cls(ValueKind.INTEGER, value)

    @classmethod
    def float_(cls, value: float) -> PrefValue:
        return cls(ValueKind.FLOAT, value)

    @classmethod
    def string(cls, value: str) -> PrefValue:
        return cls(ValueKind.STRING, value)

    @classmethod
    def null(cls) -> PrefValue:
        return cls(ValueKind.NULL, None)

    @classmethod
    def from_python(cls, value: _typing.Any) -> PrefValue:
        """
        Build a PrefValue from a plain Python value.

        bool is checked before int because bool subclasses int.

        Raises:
            TypeError: If the value has no preference variant.
        """
        if value is None:
            return cls.null()
        if isinstance(value, bool):
            return cls.boolean(value)
        if isinstance(value, int):
            return cls.integer(value)
        if isinstance(value, float):
            return cls.float_(value)
        if isinstance(value, str):
            return cls.string(value)
        raise TypeError(f"No preference value variant for {type(value).__name__}")

    def to_python(self) -> bool | int | float | str | None:
        """Return the plain Python payload (JSON-serializable)."""
        return self.data

    def __str__(self) -> str:
        kind = self.kind
        if kind is ValueKind.BOOLEAN:
            return "true" if self.data else "false"
        if kind is ValueKind.INTEGER or kind is ValueKind.FLOAT:
            return repr(self.data)
        if kind is ValueKind.STRING:
            return _typing.cast(str, self.data)
        if kind is ValueKind.NULL:
            return "null"
        _typing.assert_never(kind)


def _check_payload(kind: ValueKind, data: _typing.Any) -> None:
    """Validate that a payload matches its variant tag."""
    if kind is ValueKind.BOOLEAN:
        ok = isinstance(data, bool)
    elif kind is ValueKind.INTEGER:
        ok = isinstance(data, int) and not isinstance(data, bool)
        if ok and not INT64_MIN <= data <= INT64_MAX:
            raise ValueError(f"Integer {data} is outside the signed 64-bit range")
    elif kind is ValueKind.FLOAT:
        ok = isinstance(data, float) and _math.isfinite(data)
    elif kind is ValueKind.STRING:
        ok = isinstance(data, str)
    elif kind is ValueKind.NULL:
        ok = data is None
    else:
        _typing.assert_never(kind)
    if not ok:
        raise TypeError(f"Payload {data!r} does not match value kind {kind.value}")


class DeclarationKind(_enum.Enum):
    """
    Call form used to declare a preference.

    This is distinct from the tier a declaration was loaded from: a
    user_pref() call inside a built-in file is still a USER declaration.
    """

    DEFAULT = "default"
    """pref() - application default."""

    USER = "user"
    """user_pref() - value set by the user."""

    LOCKED = "locked"
    """lock_pref() - locked by an administrator."""

    STICKY = "sticky"
    """sticky_pref() - default that sticks across updates."""

    @property
    def function_name(self) -> str:
        """The call name used in declaration text."""
        if self is DeclarationKind.DEFAULT:
            return "pref"
        if self is DeclarationKind.USER:
            return "user_pref"
        if self is DeclarationKind.LOCKED:
            return "lock_pref"
        if self is DeclarationKind.STICKY:
            return "sticky_pref"
        _typing.assert_never(self)

    @classmethod
    def from_function_name(cls, name: str) -> DeclarationKind | None:
        """Map a call name to its kind, or None for an unknown call."""
        return _FUNCTION_NAMES.get(name)


_FUNCTION_NAMES: dict[str, DeclarationKind] = {
    kind.function_name: kind for kind in DeclarationKind
}

DECLARATION_FUNCTIONS: frozenset[str] = frozenset(_FUNCTION_NAMES)
"""All recognized declaration call names."""


class Source(_enum.Enum):
    """
    Tier a declaration was loaded from.

    Ordered by precedence: SYSTEM_POLICY > USER > GLOBAL_DEFAULT > BUILT_IN.
    SYSTEM_POLICY is reserved; the merge engine never loads it today.
    """

    BUILT_IN = "builtin"
    GLOBAL_DEFAULT = "global"
    USER = "user"
    SYSTEM_POLICY = "policy"

    @property
    def precedence(self) -> int:
        """Higher number wins."""
        return _PRECEDENCE[self]

    @property
    def label(self) -> str:
        """Short label used in warnings and tables."""
        return self.value


_PRECEDENCE: dict[Source, int] = {
    Source.BUILT_IN: 0,
    Source.GLOBAL_DEFAULT: 1,
    Source.USER: 2,
    Source.SYSTEM_POLICY: 3,
}


@_dataclasses.dataclass(frozen=True)
class Entry:
    """
    One parsed preference declaration.

    Attributes:
        key: Dotted, case-sensitive preference name.
        value: Declared value.
        kind: Call form used (pref, user_pref, ...).
        origin: Tier the declaration came from.
        line: 1-based source line. Not part of equality, so re-serialized
            text that moves a declaration still compares equal.
    """

    key: str
    value: PrefValue
    kind: DeclarationKind
    origin: Source
    line: int = _dataclasses.field(default=0, compare=False)


@_dataclasses.dataclass(frozen=True)
class ParseWarning:
    """A malformed statement that lenient parsing skipped."""

    line: int
    column: int
    message: str
    snippet: str

    def __str__(self) -> str:
        return f"{self.line}:{self.column}: {self.message}"


@_dataclasses.dataclass(frozen=True)
class ParseResult:
    """
    Best-effort parse output.

    Degradation is inspected through `warnings` rather than a log, so
    callers decide what a skipped statement means to them.
    """

    entries: tuple[Entry, ...]
    warnings: tuple[ParseWarning, ...] = ()

    @property
    def ok(self) -> bool:
        """True when every statement parsed."""
        return not self.warnings

    def to_mapping(self) -> dict[str, PrefValue]:
        """Collapse to key -> value with last declaration winning."""
        return {entry.key: entry.value for entry in self.entries}


@_dataclasses.dataclass(frozen=True)
class Tier:
    """
    Ordered entries read from one logical origin.

    Attributes:
        source: Tier precedence level.
        label: Human-readable origin, e.g. "omni.ja:defaults/pref/firefox.js".
        entries: Declarations in file order.
        parse_warnings: Statements skipped while parsing this tier.
    """

    source: Source
    label: str
    entries: tuple[Entry, ...]
    parse_warnings: tuple[ParseWarning, ...] = ()


@_dataclasses.dataclass(frozen=True)
class TierFailure:
    """A tier that could not be loaded, with the error that stopped it."""

    source: Source
    label: str
    error: Exception


TierInput = Tier | TierFailure


@_dataclasses.dataclass
class ResolvedPreference:
    """
    Per-key outcome of a merge.

    Attributes:
        key: Preference name.
        value: Winning value.
        origin: Tier that supplied the winning value.
        conflicting: True when two tiers declared incompatible variants.
        kind: Call form of the winning declaration.
        label: File that supplied the winning value.
        line: Line of the winning declaration (0 if unknown).
    """

    key: str
    value: PrefValue
    origin: Source
    conflicting: bool = False
    kind: DeclarationKind = DeclarationKind.DEFAULT
    label: str = ""
    line: int = 0

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "value": self.value.to_python(),
            "type": self.value.kind.value,
            "kind": self.kind.value,
            "origin": self.origin.label,
            "conflicting": self.conflicting,
            "declared_in": f"{self.label}:{self.line}" if self.label else None,
        }


@_dataclasses.dataclass
class MergedPreferences:
    """
    Result of resolving all tiers.

    The shape (entries, loaded_sources, warnings) is the stable contract
    consumed by renderers and JSON output.
    """

    entries: dict[str, ResolvedPreference] = _dataclasses.field(default_factory=dict)
    loaded_sources: frozenset[Source] = frozenset()
    warnings: list[str] = _dataclasses.field(default_factory=list)

    def get(self, key: str) -> ResolvedPreference | None:
        """Return the resolved preference for a key, if present."""
        return self.entries.get(key)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def sorted_sources(self) -> list[Source]:
        """Loaded sources in ascending precedence."""
        return sorted(self.loaded_sources, key=lambda source: source.precedence)

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "entries": {key: pref.to_dict() for key, pref in self.entries.items()},
            "loaded_sources": [source.label for source in self.sorted_sources()],
            "warnings": list(self.warnings),
        }
