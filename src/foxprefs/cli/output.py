"""
Renderers for resolved preferences.

Three formats are supported:
- json-object: `{key: value}` with plain JSON values
- json-array: one object per preference with type and provenance details
- table: a rich table for terminals

Plus the raw single-value form printed by `--get`.
"""

from __future__ import annotations

import json as _json
import os as _os
import sys as _sys
import typing as _typing

import click as _click
import rich.console as _rich_console
import rich.table as _rich_table
import rich.text as _rich_text

import foxprefs.explanations as explanations
import foxprefs.prefs.types as types


def should_use_color(cli_flag: bool | None) -> tuple[bool, bool]:
    """Determine whether to use color output.

    Priority:
    1. CLI flag (--color / --no-color) if specified
    2. NO_COLOR env var (if set, disable color) - standard convention
    3. Auto-detect: color if stdout is a TTY

    Args:
        cli_flag: True for --color, False for --no-color, None for auto

    Returns:
        Tuple of (color_enabled, force_color).
        force_color is True when color was explicitly requested (not auto-detected).
    """
    if cli_flag is not None:
        return (cli_flag, cli_flag)

    if _os.environ.get("NO_COLOR") is not None:
        return (False, False)

    return (_sys.stdout.isatty(), False)


def make_console(*, color: bool, force_color: bool, stderr: bool = False) -> _rich_console.Console:
    """Console honoring the color decision from `should_use_color`."""
    return _rich_console.Console(
        stderr=stderr,
        force_terminal=force_color,
        no_color=not color,
        color_system="truecolor" if force_color else "auto",
        highlight=False,
    )


def format_raw_value(value: types.PrefValue) -> str:
    """
    Raw text of a value: strings unquoted, booleans as true/false,
    Null as `null`.
    """
    kind = value.kind
    if kind is types.ValueKind.STRING:
        return _typing.cast(str, value.data)
    if kind is types.ValueKind.BOOLEAN:
        return "true" if value.data else "false"
    if kind is types.ValueKind.INTEGER or kind is types.ValueKind.FLOAT:
        return repr(value.data)
    if kind is types.ValueKind.NULL:
        return "null"
    _typing.assert_never(kind)


def to_json_object(merged: types.MergedPreferences) -> dict[str, _typing.Any]:
    """`{key: value}` for every entry."""
    return {key: pref.value.to_python() for key, pref in merged.entries.items()}


def to_json_array(
    merged: types.MergedPreferences,
    *,
    provenance: bool = False,
) -> list[dict[str, _typing.Any]]:
    """
    One object per entry, with an explanation where one is known.

    Args:
        merged: Preferences to render.
        provenance: Include origin, conflict flag and declaring file.
    """
    rows: list[dict[str, _typing.Any]] = []
    for key, pref in merged.entries.items():
        row: dict[str, _typing.Any] = {
            "key": key,
            "value": pref.value.to_python(),
            "type": pref.value.kind.value,
            "pref_type": pref.kind.value,
        }
        if provenance:
            row["source"] = pref.origin.label
            row["conflicting"] = pref.conflicting
            row["declared_in"] = f"{pref.label}:{pref.line}" if pref.label else None
        explanation = explanations.get_preference_explanation(key)
        if explanation is not None:
            row["explanation"] = explanation
        rows.append(row)
    return rows


def build_table(
    merged: types.MergedPreferences,
    *,
    provenance: bool = False,
) -> _rich_table.Table:
    """Rich table of the entries, optionally with origin and conflict columns."""
    table = _rich_table.Table(show_header=True, header_style="bold")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value")
    table.add_column("Type", style="dim")
    table.add_column("Declared as", style="dim")
    if provenance:
        table.add_column("Origin")
        table.add_column("Conflict")

    for key, pref in merged.entries.items():
        cells: list[_rich_text.Text | str] = [
            key,
            _rich_text.Text(format_raw_value(pref.value)),
            pref.value.kind.value,
            pref.kind.function_name,
        ]
        if provenance:
            cells.append(pref.origin.label)
            cells.append(_rich_text.Text("yes", style="bold yellow") if pref.conflicting else "")
        table.add_row(*cells)
    return table


def render(
    merged: types.MergedPreferences,
    output_type: str,
    *,
    provenance: bool = False,
    color: bool = False,
    force_color: bool = False,
) -> None:
    """Print entries to stdout in the requested format."""
    if output_type == "json-object":
        _click.echo(_json.dumps(to_json_object(merged), indent=2, ensure_ascii=False))
    elif output_type == "json-array":
        rows = to_json_array(merged, provenance=provenance)
        _click.echo(_json.dumps(rows, indent=2, ensure_ascii=False))
    elif output_type == "table":
        console = make_console(color=color, force_color=force_color)
        console.print(build_table(merged, provenance=provenance))
        sources = ", ".join(source.label for source in merged.sorted_sources())
        console.print(f"{len(merged)} preferences from: {sources or 'no sources'}", style="dim")
    else:
        raise _click.ClickException(f"Unknown output type: {output_type}")


def echo_warnings(warnings: _typing.Iterable[str]) -> None:
    """Print warnings to stderr, one per line."""
    for warning in warnings:
        _click.echo(f"warning: {warning}", err=True)
