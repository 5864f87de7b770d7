"""
Serialize entries back to preference-declaration text.

The output is accepted by `foxprefs.prefs.parser.parse`, which yields the
same entries again.
"""

from __future__ import annotations

import typing as _typing

import foxprefs.prefs.types as types

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\x08": "\\b",
    "\x0c": "\\f",
}


def quote(text: str) -> str:
    """Return `text` as a double-quoted string literal."""
    parts = ['"']
    for char in text:
        if char in _ESCAPES:
            parts.append(_ESCAPES[char])
        elif ord(char) < 0x20 or char == "\x7f":
            parts.append(f"\\x{ord(char):02x}")
        else:
            parts.append(char)
    parts.append('"')
    return "".join(parts)


def format_value(value: types.PrefValue) -> str:
    """Return the literal form of a value."""
    kind = value.kind
    if kind is types.ValueKind.BOOLEAN:
        return "true" if value.data else "false"
    if kind is types.ValueKind.INTEGER:
        return str(value.data)
    if kind is types.ValueKind.FLOAT:
        # repr() keeps a '.' or exponent, so the literal re-parses as a float
        return repr(value.data)
    if kind is types.ValueKind.STRING:
        return quote(_typing.cast(str, value.data))
    if kind is types.ValueKind.NULL:
        return "null"
    _typing.assert_never(kind)


def format_entry(entry: types.Entry) -> str:
    """Return one declaration statement, without a trailing newline."""
    return f"{entry.kind.function_name}({quote(entry.key)}, {format_value(entry.value)});"


def dump(entries: _typing.Iterable[types.Entry], header: str | None = None) -> str:
    """
    Serialize entries, one statement per line.

    Args:
        entries: Entries in the order they should be declared.
        header: Optional comment text placed at the top, one `//` line
            per input line.

    Returns:
        Declaration text ending in a newline (empty string for no entries
        and no header).
    """
    lines: list[str] = []
    if header:
        lines.extend(f"// {line}".rstrip() for line in header.splitlines())
        lines.append("")
    lines.extend(format_entry(entry) for entry in entries)
    return "\n".join(lines) + "\n" if lines else ""
