"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with FOXPREFS_ prefix
3. YAML config files:
   - User config: ~/.config/foxprefs/config.yaml
   - Built-in defaults: bundled defaults/config.yaml (lowest)

Examples:
  FOXPREFS_PROFILES_DIR=~/.mozilla/firefox
  FOXPREFS_CONTINUE_ON_ERROR=false
"""

import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import foxprefs.config.sources as sources
import foxprefs.constants as constants
import foxprefs.prefs.merge as merge
import foxprefs.prefs.resolve as resolve

OutputType = _typing.Literal["json-object", "json-array", "table"]


class Settings(_pydantic_settings.BaseSettings):
    """
    foxprefs tool settings.

    These configure the command-line tool only. The library functions take
    every input as an explicit argument and never read Settings.

    Config precedence (highest to lowest):
    1. Constructor arguments
    2. Environment variables (FOXPREFS_*)
    3. User config (~/.config/foxprefs/config.yaml)
    4. Built-in defaults
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix="FOXPREFS_",
        env_nested_delimiter="__",
        extra="allow",  # Preserve unknown fields so typos can be reported
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[_pydantic_settings.BaseSettings],
        init_settings: _pydantic_settings.PydanticBaseSettingsSource,
        env_settings: _pydantic_settings.PydanticBaseSettingsSource,
        dotenv_settings: _pydantic_settings.PydanticBaseSettingsSource,
        file_secret_settings: _pydantic_settings.PydanticBaseSettingsSource,
    ) -> tuple[_pydantic_settings.PydanticBaseSettingsSource, ...]:
        """
        Configure settings sources with precedence:
        1. init_settings (constructor args) - highest
        2. env_settings (FOXPREFS_* env vars)
        3. yaml_settings (user and built-in config.yaml)
        4. (defaults via Field definitions) - lowest
        """
        return (
            init_settings,
            env_settings,
            sources.YamlSettingsSource(settings_cls),
        )

    # =========================================================================
    # Locations
    # =========================================================================

    profiles_dir: _pathlib.Path | None = _pydantic.Field(
        default=None,
        description="Profiles root holding profiles.ini (platform default if unset)",
    )

    install_dir: _pathlib.Path | None = _pydantic.Field(
        default=None,
        description="Installation directory (auto-detected if unset)",
    )

    archive_prefix: str = _pydantic.Field(
        default=constants.BUILTIN_PREFS_PREFIX,
        description="Archive path prefix of the built-in preference files",
    )

    max_archive_size: int = _pydantic.Field(
        default=constants.DEFAULT_MAX_ARCHIVE_SIZE,
        gt=0,
        description="Largest omni.ja read into memory, in bytes",
    )

    # =========================================================================
    # Behavior
    # =========================================================================

    continue_on_error: bool = _pydantic.Field(
        default=True,
        description="Skip tiers that fail to load instead of aborting",
    )

    strict_parsing: bool = _pydantic.Field(
        default=False,
        description="Treat a malformed statement as a load failure of its file",
    )

    output_type: OutputType = _pydantic.Field(
        default="json-object",
        description="Default output format",
    )

    verbose: bool = _pydantic.Field(
        default=False,
        description="Log debug output to stderr",
    )

    # =========================================================================
    # Derived values
    # =========================================================================

    @property
    def config_dir(self) -> _pathlib.Path:
        """User configuration directory (~/.config/foxprefs/)."""
        return sources.get_user_config_dir()

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """Fields that were provided but are not settings (likely typos)."""
        return dict(self.model_extra) if self.model_extra else {}

    def merge_config(
        self,
        *,
        include_builtins: bool = True,
        include_globals: bool = True,
        include_user: bool = True,
        continue_on_error: bool | None = None,
    ) -> merge.MergeConfig:
        """
        Build a MergeConfig, taking continue_on_error from settings unless given.
        """
        return merge.MergeConfig(
            include_builtins=include_builtins,
            include_globals=include_globals,
            include_user=include_user,
            continue_on_error=(
                self.continue_on_error if continue_on_error is None else continue_on_error
            ),
        )

    def resolution_context(
        self,
        profile_dir: _pathlib.Path | None,
        install_dir: _pathlib.Path | None = None,
    ) -> resolve.ResolutionContext:
        """Build a ResolutionContext, defaulting install_dir from settings."""
        return resolve.ResolutionContext(
            profile_dir=profile_dir,
            install_dir=install_dir or self.install_dir,
            archive_prefix=self.archive_prefix,
            max_archive_size=self.max_archive_size,
        )
