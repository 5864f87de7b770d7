"""
End-to-end preference resolution for a profile + installation pair.

All inputs travel in an explicit ResolutionContext; nothing here consults
the environment or the settings file. The CLI builds the context from its
options and Settings.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import pathlib as _pathlib

import foxprefs.archive.reader as reader
import foxprefs.constants as constants
import foxprefs.errors as errors
import foxprefs.prefs.loader as loader
import foxprefs.prefs.merge as merge
import foxprefs.prefs.types as types

_logger = _logging.getLogger(__name__)


@_dataclasses.dataclass(frozen=True)
class ResolutionContext:
    """
    Where to find each tier.

    Attributes:
        profile_dir: Profile directory holding prefs.js (None: no user tier).
        install_dir: Installation directory holding omni.ja and greprefs.js
            (None: no built-in or global tiers).
        archive_prefix: Archive path prefix of the built-in preference files.
        max_archive_size: Largest archive read into memory, in bytes.
    """

    profile_dir: _pathlib.Path | None = None
    install_dir: _pathlib.Path | None = None
    archive_prefix: str = constants.BUILTIN_PREFS_PREFIX
    max_archive_size: int = constants.DEFAULT_MAX_ARCHIVE_SIZE


def find_builtin_archive(install_dir: _pathlib.Path) -> _pathlib.Path | None:
    """Return `browser/omni.ja`, else the root `omni.ja`, else None."""
    for candidate in (
        install_dir / "browser" / constants.ARCHIVE_NAME,
        install_dir / constants.ARCHIVE_NAME,
    ):
        if candidate.is_file():
            return candidate
    return None


def find_global_prefs(install_dir: _pathlib.Path) -> _pathlib.Path | None:
    """Return `greprefs.js` at the install root or under `browser/`, else None."""
    for candidate in (
        install_dir / constants.GLOBAL_PREFS_NAME,
        install_dir / "browser" / constants.GLOBAL_PREFS_NAME,
    ):
        if candidate.is_file():
            return candidate
    return None


def _failure(source: types.Source, label: str, error: Exception) -> types.TierFailure:
    _logger.debug("Could not load %s tier %s: %s", source.label, label, error)
    return types.TierFailure(source=source, label=label, error=error)


def load_builtins(context: ResolutionContext, *, strict: bool = False) -> list[types.TierInput]:
    """
    Load the built-in tier set of the context's installation.

    Never raises: a missing installation or unreadable archive becomes a
    single TierFailure.
    """
    label = constants.ARCHIVE_NAME
    if context.install_dir is None:
        return [
            _failure(
                types.Source.BUILT_IN,
                label,
                errors.SourceUnavailable(label, "no installation directory given"),
            )
        ]
    path = find_builtin_archive(context.install_dir)
    if path is None:
        return [
            _failure(
                types.Source.BUILT_IN,
                label,
                errors.SourceUnavailable(label, f"no {label} found under {context.install_dir}"),
            )
        ]

    try:
        data = loader.read_archive_file(path, context.max_archive_size)
        tiers = loader.load_builtin_tiers(data, context.archive_prefix, strict=strict)
    except errors.FoxprefsError as e:
        return [_failure(types.Source.BUILT_IN, label, e)]

    if not tiers:
        return [
            _failure(
                types.Source.BUILT_IN,
                label,
                errors.SourceUnavailable(
                    label, f"no preference files under '{context.archive_prefix}'"
                ),
            )
        ]
    return tiers


def load_global(context: ResolutionContext, *, strict: bool = False) -> types.TierInput:
    """
    Load the global-default tier.

    Looks for greprefs.js on disk first, then for the entry of the same
    name inside the installation's root omni.ja. Never raises.
    """
    label = constants.GLOBAL_PREFS_NAME
    if context.install_dir is None:
        return _failure(
            types.Source.GLOBAL_DEFAULT,
            label,
            errors.SourceUnavailable(label, "no installation directory given"),
        )

    path = find_global_prefs(context.install_dir)
    try:
        if path is not None:
            return loader.load_file_tier(path, types.Source.GLOBAL_DEFAULT, label, strict=strict)

        archive_path = context.install_dir / constants.ARCHIVE_NAME
        if archive_path.is_file():
            data = loader.read_archive_file(archive_path, context.max_archive_size)
            with reader.open_archive(data) as archive:
                return loader.load_archive_entry_tier(
                    archive, label, types.Source.GLOBAL_DEFAULT, strict=strict
                )
    except errors.FoxprefsError as e:
        return _failure(types.Source.GLOBAL_DEFAULT, label, e)

    return _failure(
        types.Source.GLOBAL_DEFAULT,
        label,
        errors.SourceUnavailable(label, f"file not found under {context.install_dir}"),
    )


def load_user(context: ResolutionContext, *, strict: bool = False) -> types.TierInput:
    """Load the user tier from the profile's prefs.js. Never raises."""
    label = constants.USER_PREFS_NAME
    if context.profile_dir is None:
        return _failure(
            types.Source.USER,
            label,
            errors.SourceUnavailable(label, "no profile directory given"),
        )
    try:
        return loader.load_file_tier(
            context.profile_dir / constants.USER_PREFS_NAME,
            types.Source.USER,
            label,
            strict=strict,
        )
    except errors.FoxprefsError as e:
        return _failure(types.Source.USER, label, e)


def resolve_preferences(
    context: ResolutionContext,
    config: merge.MergeConfig | None = None,
    *,
    strict: bool = False,
) -> types.MergedPreferences:
    """
    Load the included tiers for a context and merge them.

    Excluded tiers are not read at all.

    Args:
        context: Profile and installation locations.
        config: Tier selection and error policy.
        strict: Treat any malformed statement as a load failure of its tier.

    Returns:
        The merged preferences.

    Raises:
        FoxprefsError: The first tier failure, when continue_on_error is false.
    """
    config = config or merge.MergeConfig()

    builtins = load_builtins(context, strict=strict) if config.include_builtins else []
    global_default = load_global(context, strict=strict) if config.include_globals else None
    user = load_user(context, strict=strict) if config.include_user else None

    return merge.merge_tiers(builtins, global_default, user, config)
