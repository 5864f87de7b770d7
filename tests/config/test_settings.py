"""Tests for foxprefs tool settings."""

import pathlib as _pathlib

import pydantic as _pydantic
import pytest as _pytest

import foxprefs.config as config
import foxprefs.config.sources as sources
import foxprefs.constants as constants
import foxprefs.errors as errors


def _user_config(content: str) -> None:
    path = sources.get_user_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class TestSettingsDefaults:
    """Tests for values coming from the built-in defaults."""

    def test_defaults(self) -> None:
        settings = config.Settings()
        assert settings.profiles_dir is None
        assert settings.install_dir is None
        assert settings.archive_prefix == constants.BUILTIN_PREFS_PREFIX
        assert settings.max_archive_size == constants.DEFAULT_MAX_ARCHIVE_SIZE
        assert settings.continue_on_error is True
        assert settings.strict_parsing is False
        assert settings.output_type == "json-object"
        assert settings.verbose is False

    def test_no_extra_fields_by_default(self) -> None:
        assert config.Settings().get_extra_fields() == {}


class TestSettingsPrecedence:
    """Tests for the layering of settings sources."""

    def test_user_file_overrides_defaults(self) -> None:
        _user_config("output_type: table\ncontinue_on_error: false\n")
        settings = config.Settings()
        assert settings.output_type == "table"
        assert settings.continue_on_error is False

    def test_env_overrides_user_file(self, monkeypatch: _pytest.MonkeyPatch) -> None:
        _user_config("output_type: table\n")
        monkeypatch.setenv("FOXPREFS_OUTPUT_TYPE", "json-array")
        assert config.Settings().output_type == "json-array"

    def test_init_overrides_env(self, monkeypatch: _pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FOXPREFS_STRICT_PARSING", "true")
        assert config.Settings(strict_parsing=False).strict_parsing is False

    def test_path_from_env(self, monkeypatch: _pytest.MonkeyPatch, tmp_path: _pathlib.Path) -> None:
        monkeypatch.setenv("FOXPREFS_PROFILES_DIR", str(tmp_path))
        assert config.Settings().profiles_dir == tmp_path

    def test_unknown_keys_are_reported(self) -> None:
        _user_config("contine_on_error: false\n")
        settings = config.Settings()
        assert settings.get_extra_fields() == {"contine_on_error": False}
        assert settings.continue_on_error is True

    def test_malformed_user_file(self) -> None:
        _user_config("output_type: [\n")
        with _pytest.raises(errors.ConfigFileError):
            config.Settings()


class TestSettingsValidation:
    """Tests for field validation."""

    def test_output_type_rejects_unknown(self) -> None:
        with _pytest.raises(_pydantic.ValidationError):
            config.Settings(output_type="xml")

    def test_max_archive_size_must_be_positive(self) -> None:
        with _pytest.raises(_pydantic.ValidationError):
            config.Settings(max_archive_size=0)


class TestDerivedValues:
    """Tests for helpers built from settings."""

    def test_config_dir(self) -> None:
        assert config.Settings().config_dir == sources.get_user_config_dir()

    def test_merge_config_uses_settings_default(self) -> None:
        settings = config.Settings(continue_on_error=False)
        merge_config = settings.merge_config(include_globals=False)
        assert merge_config.continue_on_error is False
        assert merge_config.include_globals is False
        assert merge_config.include_builtins is True

    def test_merge_config_override(self) -> None:
        merge_config = config.Settings().merge_config(continue_on_error=False)
        assert merge_config.continue_on_error is False

    def test_resolution_context(self, tmp_path: _pathlib.Path) -> None:
        settings = config.Settings(install_dir=tmp_path / "install", max_archive_size=1024)
        context = settings.resolution_context(tmp_path / "profile")
        assert context.profile_dir == tmp_path / "profile"
        assert context.install_dir == tmp_path / "install"
        assert context.max_archive_size == 1024

    def test_resolution_context_explicit_install(self, tmp_path: _pathlib.Path) -> None:
        settings = config.Settings(install_dir=tmp_path / "configured")
        context = settings.resolution_context(None, tmp_path / "explicit")
        assert context.install_dir == tmp_path / "explicit"
