"""Tests for CLI main module."""

import json as _json
import pathlib as _pathlib

import click.testing as _click_testing
import pytest as _pytest

import foxprefs.cli as cli
import foxprefs.config.sources as sources
import foxprefs.discovery.installations as installations


@_pytest.fixture(autouse=True)
def no_system_installations(monkeypatch: _pytest.MonkeyPatch) -> None:
    """Keep auto-detection away from real installations on the test machine."""
    monkeypatch.setattr(installations, "search_paths", lambda: [])


def _merge_args(profiles_dir: _pathlib.Path, install_dir: _pathlib.Path, *extra: str) -> list[str]:
    return [
        "prefs",
        "merge",
        "--profiles-dir",
        str(profiles_dir),
        "--install-dir",
        str(install_dir),
        *extra,
    ]


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_help_shows_all_commands(self, cli_runner: _click_testing.CliRunner) -> None:
        """Help output should list all command groups."""
        result = cli_runner.invoke(cli.cli, ["--help"])
        assert result.exit_code == 0
        for cmd in ["profile", "install", "prefs", "settings"]:
            assert cmd in result.output, f"Command '{cmd}' missing from help"

    def test_version_shows_current_version(self, cli_runner: _click_testing.CliRunner) -> None:
        result = cli_runner.invoke(cli.cli, ["--version"])
        assert result.exit_code == 0
        assert "foxprefs" in result.output

    def test_malformed_settings_file(self, cli_runner: _click_testing.CliRunner) -> None:
        """A broken config file is reported, not raised."""
        path = sources.get_user_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("output_type: [\n", encoding="utf-8")
        result = cli_runner.invoke(cli.cli, ["settings", "show"])
        assert result.exit_code == 1
        assert "Error in config file" in result.output


class TestProfileCommands:
    """Tests for `profile list`."""

    def test_list_text(
        self, cli_runner: _click_testing.CliRunner, profiles_dir: _pathlib.Path
    ) -> None:
        result = cli_runner.invoke(
            cli.cli, ["profile", "list", "--profiles-dir", str(profiles_dir)]
        )
        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines[0] == (
            f"* default-release: {profiles_dir / 'abc123.default-release'}"
            " (default for install 4F96D1932A9F858E)"
        )
        assert lines[1] == f"  work: {profiles_dir / 'def456.work'}"

    def test_list_json(
        self, cli_runner: _click_testing.CliRunner, profiles_dir: _pathlib.Path
    ) -> None:
        result = cli_runner.invoke(
            cli.cli, ["profile", "list", "--profiles-dir", str(profiles_dir), "--json"]
        )
        assert result.exit_code == 0
        data = _json.loads(result.stdout)
        assert [item["name"] for item in data] == ["default-release", "work"]

    def test_missing_profiles_ini(
        self, cli_runner: _click_testing.CliRunner, tmp_path: _pathlib.Path
    ) -> None:
        result = cli_runner.invoke(cli.cli, ["profile", "list", "--profiles-dir", str(tmp_path)])
        assert result.exit_code == 1
        assert "No profiles.ini found" in result.stderr


class TestInstallCommands:
    """Tests for `install list`."""

    def test_none_found(self, cli_runner: _click_testing.CliRunner) -> None:
        result = cli_runner.invoke(cli.cli, ["install", "list"])
        assert result.exit_code == 0
        assert "No installations found" in result.stdout

    def test_found(
        self,
        cli_runner: _click_testing.CliRunner,
        install_dir: _pathlib.Path,
        monkeypatch: _pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(installations, "search_paths", lambda: [install_dir])
        result = cli_runner.invoke(cli.cli, ["install", "list", "--json"])
        assert result.exit_code == 0
        assert _json.loads(result.stdout) == [
            {
                "path": str(install_dir),
                "version": "128.0.3",
                "has_omni_ja": True,
                "has_greprefs": True,
            }
        ]


class TestPrefsView:
    """Tests for `prefs view`."""

    def test_default_profile(
        self, cli_runner: _click_testing.CliRunner, profiles_dir: _pathlib.Path
    ) -> None:
        result = cli_runner.invoke(cli.cli, ["prefs", "view", "--profiles-dir", str(profiles_dir)])
        assert result.exit_code == 0
        assert _json.loads(result.stdout) == {
            "app.update.auto": False,
            "browser.startup.homepage": "https://example.com",
            "javascript.enabled": True,
            "network.proxy.type": "1",
        }

    def test_named_profile(
        self, cli_runner: _click_testing.CliRunner, profiles_dir: _pathlib.Path
    ) -> None:
        result = cli_runner.invoke(
            cli.cli, ["prefs", "view", "work", "--profiles-dir", str(profiles_dir)]
        )
        assert result.exit_code == 0
        assert _json.loads(result.stdout) == {"browser.tabs.warnOnClose": False}

    def test_stdin(self, cli_runner: _click_testing.CliRunner) -> None:
        result = cli_runner.invoke(
            cli.cli,
            ["prefs", "view", "--stdin", "--output-type", "json-array"],
            input='user_pref("javascript.enabled", false);\nuser_pref("x.y", 1.5);\n',
        )
        assert result.exit_code == 0
        rows = _json.loads(result.stdout)
        assert rows[0]["key"] == "javascript.enabled"
        assert rows[0]["type"] == "boolean"
        assert rows[0]["pref_type"] == "user"
        assert rows[0]["explanation"].startswith("Master switch")
        assert rows[1] == {"key": "x.y", "value": 1.5, "type": "float", "pref_type": "user"}

    @_pytest.mark.filterwarnings("error:.*Click 9:DeprecationWarning")
    def test_stdin_uses_no_deprecated_click_api(
        self, cli_runner: _click_testing.CliRunner
    ) -> None:
        """Reading --stdin must keep working once Click 9 drops deprecated helpers."""
        result = cli_runner.invoke(cli.cli, ["prefs", "view", "--stdin"], input='pref("a", 1);\n')
        assert result.exception is None
        assert _json.loads(result.stdout) == {"a": 1}

    def test_parse_warnings_on_stderr(self, cli_runner: _click_testing.CliRunner) -> None:
        result = cli_runner.invoke(
            cli.cli, ["prefs", "view", "--stdin"], input='user_pref("a" 1);\nuser_pref("b", 2);\n'
        )
        assert result.exit_code == 0
        assert _json.loads(result.stdout) == {"b": 2}
        assert "warning: <stdin>:1:15: Expected ',', got number 1" in result.stderr

    def test_strict_fails(self, cli_runner: _click_testing.CliRunner) -> None:
        result = cli_runner.invoke(
            cli.cli, ["prefs", "view", "--stdin", "--strict"], input='user_pref("a" 1);\n'
        )
        assert result.exit_code == 1
        assert "Syntax error at line 1, column 15" in result.stderr

    def test_query(self, cli_runner: _click_testing.CliRunner, profiles_dir: _pathlib.Path) -> None:
        result = cli_runner.invoke(
            cli.cli,
            ["prefs", "view", "--profiles-dir", str(profiles_dir)]
            + ["-q", "*.enabled", "-q", "app.*"],
        )
        assert result.exit_code == 0
        assert set(_json.loads(result.stdout)) == {"javascript.enabled", "app.update.auto"}

    def test_invalid_query(
        self, cli_runner: _click_testing.CliRunner, profiles_dir: _pathlib.Path
    ) -> None:
        result = cli_runner.invoke(
            cli.cli, ["prefs", "view", "--profiles-dir", str(profiles_dir), "-q", "a?"]
        )
        assert result.exit_code == 1
        assert "Invalid pattern 'a?' at column 2" in result.stderr

    def test_get_raw_value(
        self, cli_runner: _click_testing.CliRunner, profiles_dir: _pathlib.Path
    ) -> None:
        result = cli_runner.invoke(
            cli.cli,
            ["prefs", "view", "--profiles-dir", str(profiles_dir), "--get", "network.proxy.type"],
        )
        assert result.exit_code == 0
        assert result.stdout == "1\n"

    def test_get_missing_key(
        self, cli_runner: _click_testing.CliRunner, profiles_dir: _pathlib.Path
    ) -> None:
        result = cli_runner.invoke(
            cli.cli, ["prefs", "view", "--profiles-dir", str(profiles_dir), "--get", "nope"]
        )
        assert result.exit_code == 1
        assert "Preference 'nope' not found" in result.stderr

    def test_get_explained_with_unexplained_only(
        self, cli_runner: _click_testing.CliRunner, profiles_dir: _pathlib.Path
    ) -> None:
        result = cli_runner.invoke(
            cli.cli,
            [
                "prefs",
                "view",
                "--profiles-dir",
                str(profiles_dir),
                "--get",
                "javascript.enabled",
                "--unexplained-only",
            ],
        )
        assert result.exit_code == 1
        assert "--unexplained-only" in result.stderr

    def test_unexplained_only(self, cli_runner: _click_testing.CliRunner) -> None:
        result = cli_runner.invoke(
            cli.cli,
            ["prefs", "view", "--stdin", "--unexplained-only"],
            input='user_pref("javascript.enabled", true);\nuser_pref("custom.key", 1);\n',
        )
        assert result.exit_code == 0
        assert _json.loads(result.stdout) == {"custom.key": 1}

    def test_unknown_profile(
        self, cli_runner: _click_testing.CliRunner, profiles_dir: _pathlib.Path
    ) -> None:
        result = cli_runner.invoke(
            cli.cli, ["prefs", "view", "ghost", "--profiles-dir", str(profiles_dir)]
        )
        assert result.exit_code == 1
        assert "Profile 'ghost' not found" in result.stderr

    def test_table_output(
        self,
        cli_runner: _click_testing.CliRunner,
        profiles_dir: _pathlib.Path,
        monkeypatch: _pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("COLUMNS", "200")
        result = cli_runner.invoke(
            cli.cli,
            [
                "prefs",
                "view",
                "--profiles-dir",
                str(profiles_dir),
                "--output-type",
                "table",
                "--no-color",
            ],
        )
        assert result.exit_code == 0
        assert "javascript.enabled" in result.stdout
        assert "4 preferences from: user" in result.stdout

    def test_output_type_from_settings(
        self, cli_runner: _click_testing.CliRunner, monkeypatch: _pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FOXPREFS_OUTPUT_TYPE", "json-array")
        result = cli_runner.invoke(cli.cli, ["prefs", "view", "--stdin"], input='pref("a", 1);')
        assert result.exit_code == 0
        assert isinstance(_json.loads(result.stdout), list)


class TestPrefsMerge:
    """Tests for `prefs merge`."""

    def test_merge_all_sources(
        self,
        cli_runner: _click_testing.CliRunner,
        profiles_dir: _pathlib.Path,
        install_dir: _pathlib.Path,
    ) -> None:
        result = cli_runner.invoke(cli.cli, _merge_args(profiles_dir, install_dir))
        assert result.exit_code == 0
        data = _json.loads(result.stdout)
        assert data["app.update.auto"] is False
        assert data["general.useragent.locale"] == "en-US"
        assert data["network.proxy.type"] == "1"
        assert len(data) == 8
        assert "Type conflict for 'network.proxy.type'" in result.stderr

    def test_provenance_in_array_output(
        self,
        cli_runner: _click_testing.CliRunner,
        profiles_dir: _pathlib.Path,
        install_dir: _pathlib.Path,
    ) -> None:
        result = cli_runner.invoke(
            cli.cli, _merge_args(profiles_dir, install_dir, "--output-type", "json-array")
        )
        assert result.exit_code == 0
        rows = {row["key"]: row for row in _json.loads(result.stdout)}
        proxy = rows["network.proxy.type"]
        assert proxy["source"] == "user"
        assert proxy["conflicting"] is True
        assert proxy["declared_in"] == "prefs.js:3"
        warn = rows["browser.tabs.warnOnClose"]
        assert warn["source"] == "builtin"
        assert warn["declared_in"] == "omni.ja:defaults/pref/browser.js:1"
        assert "explanation" not in warn

    def test_get(
        self,
        cli_runner: _click_testing.CliRunner,
        profiles_dir: _pathlib.Path,
        install_dir: _pathlib.Path,
    ) -> None:
        result = cli_runner.invoke(
            cli.cli,
            _merge_args(profiles_dir, install_dir, "--get", "network.http.max-connections"),
        )
        assert result.exit_code == 0
        assert result.stdout == "900\n"

    def test_no_user(
        self,
        cli_runner: _click_testing.CliRunner,
        profiles_dir: _pathlib.Path,
        install_dir: _pathlib.Path,
    ) -> None:
        result = cli_runner.invoke(
            cli.cli, _merge_args(profiles_dir, install_dir, "--no-user", "-q", "app.*")
        )
        assert result.exit_code == 0
        assert _json.loads(result.stdout) == {"app.update.auto": True}
        assert result.stderr == ""

    def test_missing_global_warns(
        self,
        cli_runner: _click_testing.CliRunner,
        profiles_dir: _pathlib.Path,
        install_dir: _pathlib.Path,
    ) -> None:
        (install_dir / "greprefs.js").unlink()
        result = cli_runner.invoke(cli.cli, _merge_args(profiles_dir, install_dir))
        assert result.exit_code == 0
        assert "general.useragent.locale" not in _json.loads(result.stdout)
        assert "warning: Failed to load global preferences from greprefs.js" in result.stderr

    def test_missing_global_fail_fast(
        self,
        cli_runner: _click_testing.CliRunner,
        profiles_dir: _pathlib.Path,
        install_dir: _pathlib.Path,
    ) -> None:
        (install_dir / "greprefs.js").unlink()
        result = cli_runner.invoke(cli.cli, _merge_args(profiles_dir, install_dir, "--fail-fast"))
        assert result.exit_code == 1
        assert "greprefs.js" in result.stderr

    def test_no_installation_found(
        self, cli_runner: _click_testing.CliRunner, profiles_dir: _pathlib.Path
    ) -> None:
        """Without an installation, only the user tier is resolved."""
        result = cli_runner.invoke(cli.cli, ["prefs", "merge", "--profiles-dir", str(profiles_dir)])
        assert result.exit_code == 0
        assert len(_json.loads(result.stdout)) == 4
        assert "Failed to load builtin preferences" in result.stderr

    def test_no_installation_fail_fast(
        self, cli_runner: _click_testing.CliRunner, profiles_dir: _pathlib.Path
    ) -> None:
        result = cli_runner.invoke(
            cli.cli, ["prefs", "merge", "--profiles-dir", str(profiles_dir), "--fail-fast"]
        )
        assert result.exit_code == 1
        assert "No installation found" in result.stderr

    def test_table_has_provenance_columns(
        self,
        cli_runner: _click_testing.CliRunner,
        profiles_dir: _pathlib.Path,
        install_dir: _pathlib.Path,
        monkeypatch: _pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("COLUMNS", "200")
        result = cli_runner.invoke(
            cli.cli,
            _merge_args(profiles_dir, install_dir, "--output-type", "table", "--no-color"),
        )
        assert result.exit_code == 0
        assert "Origin" in result.stdout
        assert "Conflict" in result.stdout
        assert "8 preferences from: builtin, global, user" in result.stdout


class TestSettingsCommands:
    """Tests for `settings show` and `settings path`."""

    def test_show_json(self, cli_runner: _click_testing.CliRunner) -> None:
        result = cli_runner.invoke(cli.cli, ["settings", "show", "--json"])
        assert result.exit_code == 0
        data = _json.loads(result.stdout)
        assert data["output_type"] == "json-object"
        assert data["continue_on_error"] is True

    def test_show_yaml(self, cli_runner: _click_testing.CliRunner) -> None:
        result = cli_runner.invoke(cli.cli, ["settings", "show", "--no-color"])
        assert result.exit_code == 0
        assert "archive_prefix: defaults/pref/" in result.stdout

    def test_path_all(self, cli_runner: _click_testing.CliRunner) -> None:
        result = cli_runner.invoke(cli.cli, ["settings", "path", "--all"])
        assert result.exit_code == 0
        assert "Built-in defaults" in result.stdout
        assert f"✗ User config: {sources.get_user_config_path()}" in result.stdout
