"""
Exception hierarchy for foxprefs.

All errors raised by the library derive from FoxprefsError so callers can
catch one type at the boundary. Each subclass carries the structured
fields needed to report where a failure happened, not just a message.

Type conflicts between tiers are deliberately absent here: they are data
(ResolvedPreference.conflicting plus a warning), never an exception.
"""

import pathlib as _pathlib


class FoxprefsError(Exception):
    """Base class for all foxprefs errors."""

    pass


class PrefSyntaxError(FoxprefsError):
    """A malformed statement in preference-declaration text.

    Raised only in strict parsing mode; lenient parsing reports the same
    information as a ParseWarning and keeps going.
    """

    def __init__(self, line: int, column: int, message: str, snippet: str = "") -> None:
        self.line = line
        self.column = column
        self.message = message
        self.snippet = snippet
        super().__init__(f"Syntax error at line {line}, column {column}: {message}")


class ArchiveFormatError(FoxprefsError):
    """Malformed or unsupported zip structure."""

    pass


class CorruptArchiveError(ArchiveFormatError):
    """The central directory (or an entry's checksum) cannot be trusted."""

    pass


class UnsupportedCompressionError(ArchiveFormatError):
    """An entry uses a compression method other than stored or deflate."""

    def __init__(self, name: str, method: int) -> None:
        self.name = name
        self.method = method
        super().__init__(f"Entry '{name}' uses unsupported compression method {method}")


class TruncatedEntryError(ArchiveFormatError):
    """An entry's data runs past the end of the archive buffer."""

    def __init__(self, name: str, message: str = "entry data is truncated") -> None:
        self.name = name
        super().__init__(f"Entry '{name}': {message}")


class SourceUnavailable(FoxprefsError):
    """An expected preference file or archive entry is missing or unreadable."""

    def __init__(self, source_label: str, reason: str) -> None:
        self.source_label = source_label
        self.reason = reason
        super().__init__(f"Source '{source_label}' unavailable: {reason}")


class PatternError(FoxprefsError):
    """A malformed glob pattern passed to the query matcher."""

    def __init__(self, pattern: str, column: int, message: str) -> None:
        self.pattern = pattern
        self.column = column
        self.message = message
        super().__init__(f"Invalid pattern {pattern!r} at column {column}: {message}")


class ProfileNotFoundError(FoxprefsError):
    """No profile with the requested name could be located."""

    pass


class InstallationNotFoundError(FoxprefsError):
    """No application installation could be located."""

    pass


class ConfigFileError(FoxprefsError):
    """Error loading or parsing the foxprefs settings file."""

    def __init__(self, path: _pathlib.Path, message: str) -> None:
        self.path = path
        super().__init__(f"Error in config file {path}: {message}")
