"""
Installation discovery.

An installation directory counts as valid when it holds an omni.ja
(at the root or under browser/) or a greprefs.js. The version is read
from application.ini, else platform.ini.
"""

from __future__ import annotations

import configparser as _configparser
import dataclasses as _dataclasses
import logging as _logging
import pathlib as _pathlib
import sys as _sys
import typing as _typing

import foxprefs.errors as errors
import foxprefs.prefs.resolve as resolve

_logger = _logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"

_LINUX_PATHS = (
    "/usr/lib/firefox",
    "/usr/lib64/firefox",
    "/opt/firefox",
    "/usr/local/firefox",
    "/opt/firefox-beta",
    "/opt/firefox-esr",
)

_MACOS_PATHS = (
    "/Applications/Firefox.app/Contents/Resources",
    "/Applications/Firefox Beta.app/Contents/Resources",
    "/Applications/Firefox Developer Edition.app/Contents/Resources",
    "/Applications/Firefox ESR.app/Contents/Resources",
)

_WINDOWS_PATHS = (
    r"C:\Program Files\Mozilla Firefox",
    r"C:\Program Files\Firefox Beta",
    r"C:\Program Files\Firefox ESR",
    r"C:\Program Files\Mozilla Firefox ESR",
    r"C:\Program Files (x86)\Mozilla Firefox",
    r"C:\Program Files (x86)\Firefox Beta",
    r"C:\Program Files (x86)\Firefox ESR",
    r"C:\Program Files (x86)\Mozilla Firefox ESR",
    r"C:\Program Files\Mozilla Firefox Developer Edition",
)

# Symlinks whose target directory is a Nix store installation
_NIX_LINKS = (
    "/nix/var/nix/profiles/default/bin/firefox",
    "/run/current-system/sw/bin/firefox",
)


@_dataclasses.dataclass(frozen=True)
class Installation:
    """A located application installation."""

    path: _pathlib.Path
    version: str = UNKNOWN_VERSION
    has_omni_ja: bool = False
    has_greprefs: bool = False

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "path": str(self.path),
            "version": self.version,
            "has_omni_ja": self.has_omni_ja,
            "has_greprefs": self.has_greprefs,
        }


def search_paths() -> list[_pathlib.Path]:
    """Standard install locations for the running platform."""
    if _sys.platform == "darwin":
        return [_pathlib.Path(path) for path in _MACOS_PATHS]
    if _sys.platform == "win32":
        return [_pathlib.Path(path) for path in _WINDOWS_PATHS]

    paths = [_pathlib.Path(path) for path in _LINUX_PATHS]
    for link in _NIX_LINKS:
        link_path = _pathlib.Path(link)
        if link_path.is_symlink():
            paths.append(link_path.resolve().parent)
    return paths


def read_version(install_dir: _pathlib.Path) -> str | None:
    """Return `Version=` from application.ini or platform.ini, if present."""
    for name in ("application.ini", "platform.ini"):
        ini_path = install_dir / name
        if not ini_path.is_file():
            continue
        parser = _configparser.ConfigParser(interpolation=None, strict=False)
        try:
            parser.read_string(ini_path.read_text(encoding="utf-8-sig"), source=str(ini_path))
        except (OSError, UnicodeDecodeError, _configparser.Error) as e:
            _logger.debug("Cannot read version from %s: %s", ini_path, e)
            continue
        for section in parser.sections():
            version = parser[section].get("Version", "").strip()
            if version:
                return version
    return None


def inspect_installation(path: _pathlib.Path) -> Installation | None:
    """Return an Installation for `path`, or None if it is not one."""
    if not path.is_dir():
        return None
    has_omni_ja = resolve.find_builtin_archive(path) is not None
    has_greprefs = resolve.find_global_prefs(path) is not None
    if not has_omni_ja and not has_greprefs:
        return None
    return Installation(
        path=path,
        version=read_version(path) or UNKNOWN_VERSION,
        has_omni_ja=has_omni_ja,
        has_greprefs=has_greprefs,
    )


def find_installations(
    paths: _typing.Iterable[_pathlib.Path] | None = None,
) -> list[Installation]:
    """
    All valid installations among `paths` (the platform defaults if None).
    """
    found: list[Installation] = []
    for path in search_paths() if paths is None else paths:
        installation = inspect_installation(path)
        if installation is not None:
            _logger.debug("Found installation %s (version %s)", path, installation.version)
            found.append(installation)
    return found


def find_installation(
    paths: _typing.Iterable[_pathlib.Path] | None = None,
) -> Installation:
    """
    The first valid installation.

    Raises:
        InstallationNotFoundError: If none of the paths is an installation.
    """
    candidates = list(search_paths() if paths is None else paths)
    for path in candidates:
        installation = inspect_installation(path)
        if installation is not None:
            return installation
    searched = ", ".join(str(path) for path in candidates) or "no paths"
    raise errors.InstallationNotFoundError(f"No installation found (searched: {searched})")
