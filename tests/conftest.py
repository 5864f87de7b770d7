"""
Shared pytest fixtures for foxprefs tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import io as _io
import os as _os
import pathlib as _pathlib
import typing as _typing
import warnings as _warnings
import zipfile as _zipfile

import click.testing as _click_testing
import pytest as _pytest

# =============================================================================
# Sample preference files
# =============================================================================

FIREFOX_JS = """\
// Built-in defaults shipped in omni.ja
pref("app.update.auto", true);
pref("browser.startup.homepage", "about:home");
pref("network.proxy.type", 5);
pref("browser.search.suggest.enabled", true);
"""

BROWSER_JS = """\
pref("browser.tabs.warnOnClose", true);
pref("network.proxy.type", 0);
"""

GREPREFS_JS = """\
pref("app.update.auto", true);
pref("general.useragent.locale", "en-US");
pref("network.http.max-connections", 900);
"""

USER_PREFS_JS = """\
// Mozilla User Preferences
user_pref("app.update.auto", false);
user_pref("network.proxy.type", "1");
user_pref("browser.startup.homepage", "https://example.com");
user_pref("javascript.enabled", true);
"""

PROFILES_INI = """\
[General]
StartWithLastProfile=1
Version=2

[Profile0]
Name=default-release
IsRelative=1
Path=abc123.default-release
Default=1

[Profile1]
Name=work
IsRelative=1
Path=def456.work

[4F96D1932A9F858E]
Default=abc123.default-release
Locked=1
"""


# =============================================================================
# Environment isolation
# =============================================================================


@_pytest.fixture(autouse=True)
def isolated_env(monkeypatch: _pytest.MonkeyPatch, tmp_path: _pathlib.Path) -> None:
    """
    Isolate every test from the user's environment and config file.

    Removes FOXPREFS_* variables and points the user config directory at an
    empty temporary directory.
    """
    for key in list(_os.environ):
        if key.startswith("FOXPREFS_"):
            monkeypatch.delenv(key)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("FOXPREFS_CONFIG_DIR", str(tmp_path / "foxprefs-config"))


# =============================================================================
# Archive builders
# =============================================================================


def build_zip(
    entries: _typing.Mapping[str, str | bytes] | _typing.Sequence[tuple[str, str | bytes]],
    compression: int = _zipfile.ZIP_DEFLATED,
) -> bytes:
    """
    Build a zip archive in memory.

    Entries may be a mapping or a sequence of (name, data) pairs; the
    sequence form allows duplicate names.
    """
    items = entries.items() if isinstance(entries, _typing.Mapping) else entries
    buffer = _io.BytesIO()
    with _warnings.catch_warnings():
        # zipfile warns about duplicate names, which some tests want
        _warnings.simplefilter("ignore")
        with _zipfile.ZipFile(buffer, "w", compression=compression) as archive:
            for name, data in items:
                archive.writestr(name, data)
    return buffer.getvalue()


@_pytest.fixture
def zip_builder() -> _typing.Callable[..., bytes]:
    """The `build_zip` helper as a fixture."""
    return build_zip


@_pytest.fixture
def omni_bytes() -> bytes:
    """An omni.ja with two built-in preference files and unrelated payload."""
    return build_zip(
        {
            "defaults/pref/firefox.js": FIREFOX_JS,
            "defaults/pref/browser.js": BROWSER_JS,
            "chrome/browser/content/browser.xhtml": "<html/>",
            "defaults/settings/blocklist.json": "{}",
        }
    )


# =============================================================================
# Fake installation and profiles
# =============================================================================


@_pytest.fixture
def install_dir(tmp_path: _pathlib.Path, omni_bytes: bytes) -> _pathlib.Path:
    """Installation with browser/omni.ja, greprefs.js and application.ini."""
    root = tmp_path / "install"
    (root / "browser").mkdir(parents=True)
    (root / "browser" / "omni.ja").write_bytes(omni_bytes)
    (root / "greprefs.js").write_text(GREPREFS_JS, encoding="utf-8")
    (root / "application.ini").write_text(
        "[App]\nVendor=Mozilla\nName=Firefox\nVersion=128.0.3\n", encoding="utf-8"
    )
    return root


@_pytest.fixture
def profiles_dir(tmp_path: _pathlib.Path) -> _pathlib.Path:
    """Profiles root with profiles.ini and two profile directories."""
    root = tmp_path / "profiles"
    default = root / "abc123.default-release"
    work = root / "def456.work"
    default.mkdir(parents=True)
    work.mkdir()
    (root / "profiles.ini").write_text(PROFILES_INI, encoding="utf-8")
    (default / "prefs.js").write_text(USER_PREFS_JS, encoding="utf-8")
    (work / "prefs.js").write_text(
        'user_pref("browser.tabs.warnOnClose", false);\n', encoding="utf-8"
    )
    return root


@_pytest.fixture
def profile_dir(profiles_dir: _pathlib.Path) -> _pathlib.Path:
    """The default profile's directory."""
    return profiles_dir / "abc123.default-release"


@_pytest.fixture
def cli_runner() -> _click_testing.CliRunner:
    """Click test runner with stdout and stderr captured separately."""
    return _click_testing.CliRunner()
