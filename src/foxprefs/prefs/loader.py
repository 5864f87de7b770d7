"""
Source Loader: turns files, text and archive entries into tiers.

Every function here takes paths or bytes as parameters and reads no
ambient configuration. Failures are raised as FoxprefsError subclasses;
deciding whether a failure is fatal belongs to the merge engine.
"""

from __future__ import annotations

import logging as _logging
import pathlib as _pathlib

import foxprefs.archive.reader as reader
import foxprefs.constants as constants
import foxprefs.errors as errors
import foxprefs.prefs.parser as parser
import foxprefs.prefs.types as types

_logger = _logging.getLogger(__name__)


def load_text_tier(
    text: str,
    source: types.Source,
    label: str,
    *,
    strict: bool = False,
) -> types.Tier:
    """
    Parse declaration text into a tier.

    Args:
        text: Declaration text.
        source: Tier precedence level to attribute entries to.
        label: Human-readable origin used in warnings.
        strict: Raise on the first malformed statement.

    Raises:
        PrefSyntaxError: In strict mode only.
    """
    result = parser.parse(text, origin=source, strict=strict)
    _logger.debug(
        "Loaded %d %s entries from %s (%d skipped)",
        len(result.entries),
        source.label,
        label,
        len(result.warnings),
    )
    return types.Tier(
        source=source,
        label=label,
        entries=result.entries,
        parse_warnings=result.warnings,
    )


def load_bytes_tier(
    data: bytes,
    source: types.Source,
    label: str,
    *,
    strict: bool = False,
) -> types.Tier:
    """
    Decode UTF-8 bytes and parse them into a tier.

    Raises:
        SourceUnavailable: If the bytes are not valid UTF-8.
        PrefSyntaxError: In strict mode only.
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise errors.SourceUnavailable(label, f"not valid UTF-8: {e}") from e
    return load_text_tier(text, source, label, strict=strict)


def load_file_tier(
    path: _pathlib.Path,
    source: types.Source,
    label: str | None = None,
    *,
    strict: bool = False,
) -> types.Tier:
    """
    Read a declaration file from disk into a tier.

    Args:
        path: File to read.
        source: Tier precedence level.
        label: Origin label; defaults to the file name.
        strict: Raise on the first malformed statement.

    Raises:
        SourceUnavailable: If the file is missing, unreadable or not UTF-8.
        PrefSyntaxError: In strict mode only.
    """
    label = label or path.name
    try:
        data = path.read_bytes()
    except FileNotFoundError as e:
        raise errors.SourceUnavailable(label, f"file not found: {path}") from e
    except OSError as e:
        raise errors.SourceUnavailable(label, f"cannot read {path}: {e}") from e
    return load_bytes_tier(data, source, label, strict=strict)


def read_archive_file(
    path: _pathlib.Path,
    max_size: int = constants.DEFAULT_MAX_ARCHIVE_SIZE,
) -> bytes:
    """
    Read an archive into memory, refusing oversized files.

    Raises:
        SourceUnavailable: If the file is missing, unreadable or too large.
    """
    label = path.name
    try:
        size = path.stat().st_size
        if size > max_size:
            raise errors.SourceUnavailable(
                label, f"archive is {size} bytes, above the {max_size} byte limit"
            )
        return path.read_bytes()
    except FileNotFoundError as e:
        raise errors.SourceUnavailable(label, f"file not found: {path}") from e
    except OSError as e:
        raise errors.SourceUnavailable(label, f"cannot read {path}: {e}") from e


def load_archive_entry_tier(
    archive: reader.Archive,
    name: str,
    source: types.Source,
    *,
    archive_label: str = constants.ARCHIVE_NAME,
    strict: bool = False,
) -> types.Tier:
    """
    Read one archive entry into a tier labelled `<archive_label>:<name>`.

    Raises:
        SourceUnavailable: If the entry is missing or not UTF-8.
        ArchiveFormatError: If the entry cannot be decompressed.
        PrefSyntaxError: In strict mode only.
    """
    label = f"{archive_label}:{name}"
    if name not in archive:
        raise errors.SourceUnavailable(label, "no such entry in the archive")
    return load_bytes_tier(archive.read_entry(name), source, label, strict=strict)


def load_builtin_tiers(
    archive_bytes: bytes,
    prefix: str = constants.BUILTIN_PREFS_PREFIX,
    *,
    archive_label: str = constants.ARCHIVE_NAME,
    strict: bool = False,
) -> list[types.TierInput]:
    """
    Load every `.js` entry under `prefix` as its own built-in tier.

    A failure confined to one entry (decompression, encoding, strict
    parse) becomes a TierFailure for that entry; the other entries still
    load.

    Args:
        archive_bytes: Whole archive held in memory.
        prefix: Entry path prefix of the built-in preference files.
        archive_label: Archive name used in tier labels.
        strict: Raise on the first malformed statement of each entry.

    Returns:
        One Tier or TierFailure per entry, sorted by entry name.

    Raises:
        ArchiveFormatError: If the archive's central directory is unreadable.
    """
    tiers: list[types.TierInput] = []
    with reader.open_archive(archive_bytes) as archive:
        for name in archive.list_entries(prefix):
            if not name.endswith(".js"):
                continue
            try:
                tiers.append(
                    load_archive_entry_tier(
                        archive,
                        name,
                        types.Source.BUILT_IN,
                        archive_label=archive_label,
                        strict=strict,
                    )
                )
            except errors.FoxprefsError as e:
                _logger.debug("Skipping archive entry %s: %s", name, e)
                tiers.append(
                    types.TierFailure(
                        source=types.Source.BUILT_IN,
                        label=f"{archive_label}:{name}",
                        error=e,
                    )
                )
    return tiers
