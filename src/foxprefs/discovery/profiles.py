"""
Profile discovery.

Profiles are listed in `profiles.ini` inside the profiles root:

    [Profile0]
    Name=default-release
    IsRelative=1
    Path=abcd1234.default-release
    Default=1

    [4F96D1932A9F858E]
    Default=abcd1234.default-release

Sections named after an install hash record which profile that
installation uses by default ("locked" to the install).
"""

from __future__ import annotations

import configparser as _configparser
import dataclasses as _dataclasses
import logging as _logging
import os as _os
import pathlib as _pathlib
import sys as _sys
import typing as _typing

import foxprefs.errors as errors

_logger = _logging.getLogger(__name__)

PROFILES_INI = "profiles.ini"


@_dataclasses.dataclass(frozen=True)
class ProfileInfo:
    """One profile declared in profiles.ini."""

    name: str
    path: _pathlib.Path
    is_default: bool = False
    is_relative: bool = True
    locked_to_install: str | None = None

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "name": self.name,
            "path": str(self.path),
            "is_default": self.is_default,
            "is_relative": self.is_relative,
            "locked_to_install": self.locked_to_install,
        }


def default_profiles_dir() -> _pathlib.Path:
    """
    Platform profiles root.

    - Linux: ~/.mozilla/firefox
    - macOS: ~/Library/Application Support/Firefox
    - Windows: %APPDATA%/Mozilla/Firefox
    """
    home = _pathlib.Path.home()
    if _sys.platform == "darwin":
        return home / "Library" / "Application Support" / "Firefox"
    if _sys.platform == "win32":
        appdata = _os.environ.get("APPDATA")
        base = _pathlib.Path(appdata) if appdata else home / "AppData" / "Roaming"
        return base / "Mozilla" / "Firefox"
    return home / ".mozilla" / "firefox"


def _read_ini(path: _pathlib.Path) -> _configparser.ConfigParser:
    parser = _configparser.ConfigParser(interpolation=None, strict=False)
    # Keys are case-sensitive in profiles.ini
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    try:
        # utf-8-sig drops a leading BOM
        parser.read_string(path.read_text(encoding="utf-8-sig"), source=str(path))
    except (OSError, UnicodeDecodeError) as e:
        raise errors.ProfileNotFoundError(f"Cannot read {path}: {e}") from e
    except _configparser.Error as e:
        raise errors.ProfileNotFoundError(f"Malformed {path}: {e}") from e
    return parser


def _flag(section: _configparser.SectionProxy, key: str, default: int) -> bool:
    raw = section.get(key, str(default)).strip()
    try:
        return int(raw) == 1
    except ValueError:
        return default == 1


def parse_profiles_ini(path: _pathlib.Path) -> list[ProfileInfo]:
    """
    Parse profiles.ini into ProfileInfo records, in file order.

    Sections without a Name or Path are ignored. Relative paths are kept
    relative; see `ProfileInfo.is_relative`.

    Raises:
        ProfileNotFoundError: If the file cannot be read or parsed.
    """
    parser = _read_ini(path)

    # Install-hash sections: every section that is neither a profile nor General
    locked: dict[str, str] = {}
    for name in parser.sections():
        lower = name.lower()
        if lower.startswith("profile") or lower == "general":
            continue
        default = parser[name].get("Default")
        if default:
            locked[default] = name

    profiles: list[ProfileInfo] = []
    for name in parser.sections():
        if not name.lower().startswith("profile"):
            continue
        section = parser[name]
        profile_name = section.get("Name", "")
        profile_path = section.get("Path", "")
        if not profile_name or not profile_path:
            continue
        profiles.append(
            ProfileInfo(
                name=profile_name,
                path=_pathlib.Path(profile_path),
                is_default=_flag(section, "Default", 0),
                is_relative=_flag(section, "IsRelative", 1),
                locked_to_install=locked.get(profile_path),
            )
        )
    return profiles


def list_profiles(profiles_dir: _pathlib.Path | None = None) -> list[ProfileInfo]:
    """
    List the profiles declared under a profiles root.

    Args:
        profiles_dir: Profiles root; the platform default when None.

    Raises:
        ProfileNotFoundError: If profiles.ini is missing or unreadable.
    """
    profiles_dir = profiles_dir or default_profiles_dir()
    ini_path = profiles_dir / PROFILES_INI
    if not ini_path.is_file():
        raise errors.ProfileNotFoundError(f"No {PROFILES_INI} found in {profiles_dir}")
    return parse_profiles_ini(ini_path)


def profile_directory(profile: ProfileInfo, profiles_dir: _pathlib.Path) -> _pathlib.Path:
    """Absolute directory of a profile."""
    return profiles_dir / profile.path if profile.is_relative else profile.path


def find_profile_path(name: str, profiles_dir: _pathlib.Path | None = None) -> _pathlib.Path:
    """
    Locate a profile directory by profile name.

    profiles.ini is consulted first. When it does not resolve the name to
    an existing directory, the profiles root is scanned for a directory
    named exactly `name` or, failing that, ending in `.name` (the
    `<salt>.<name>` convention).

    Raises:
        ProfileNotFoundError: If nothing matches, or several directories
            match the suffix.
    """
    profiles_dir = profiles_dir or default_profiles_dir()

    ini_path = profiles_dir / PROFILES_INI
    if ini_path.is_file():
        try:
            for profile in parse_profiles_ini(ini_path):
                if profile.name == name:
                    path = profile_directory(profile, profiles_dir)
                    if path.is_dir():
                        return path
                    _logger.debug("Profile %s listed at missing path %s", name, path)
        except errors.ProfileNotFoundError as e:
            _logger.debug("Ignoring unreadable %s: %s", ini_path, e)

    return _scan_profiles_dir(name, profiles_dir)


def _scan_profiles_dir(name: str, profiles_dir: _pathlib.Path) -> _pathlib.Path:
    try:
        children = sorted(child for child in profiles_dir.iterdir() if child.is_dir())
    except OSError as e:
        raise errors.ProfileNotFoundError(
            f"Cannot read profiles directory {profiles_dir}: {e}"
        ) from e

    for child in children:
        if child.name == name:
            return child

    matches = [child for child in children if child.name.endswith(f".{name}")]
    if len(matches) == 1:
        return matches[0]
    if matches:
        listed = ", ".join(child.name for child in matches)
        raise errors.ProfileNotFoundError(
            f"Profile name '{name}' is ambiguous; matching directories: {listed}"
        )
    raise errors.ProfileNotFoundError(f"Profile '{name}' not found in {profiles_dir}")
