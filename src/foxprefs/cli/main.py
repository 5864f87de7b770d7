"""
Main CLI entry point for foxprefs.

Provides the command-line interface using Click.
"""

import contextlib as _contextlib
import json as _json
import logging as _logging
import pathlib as _pathlib
import sys as _sys
import typing as _typing

import click as _click
import pydantic as _pydantic
import rich.logging as _rich_logging
import rich.syntax as _rich_syntax
import yaml as _yaml

import foxprefs
import foxprefs.cli.output as output
import foxprefs.config as config
import foxprefs.config.sources as config_sources
import foxprefs.discovery.installations as installations
import foxprefs.discovery.profiles as profiles
import foxprefs.errors as errors
import foxprefs.explanations as explanations
import foxprefs.prefs.loader as loader
import foxprefs.prefs.merge as merge
import foxprefs.prefs.resolve as resolve
import foxprefs.prefs.types as types
import foxprefs.query.matching as matching

_logger = _logging.getLogger(__name__)

# Custom Click context settings for better help formatting
CONTEXT_SETTINGS: dict[str, _typing.Any] = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 100,
}

OUTPUT_TYPES = ("json-object", "json-array", "table")

_PATH_TYPE = _click.Path(file_okay=False, path_type=_pathlib.Path)


@_contextlib.contextmanager
def _handle_errors() -> _typing.Iterator[None]:
    """Report library errors as click errors (exit code 1)."""
    try:
        yield
    except errors.FoxprefsError as e:
        raise _click.ClickException(str(e)) from e


def _configure_logging(verbose: bool) -> None:
    """Send foxprefs debug logging to stderr through rich when verbose."""
    package_logger = _logging.getLogger("foxprefs")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    if verbose:
        handler = _rich_logging.RichHandler(
            console=output.make_console(color=True, force_color=False, stderr=True),
            show_path=False,
        )
        package_logger.addHandler(handler)
        package_logger.setLevel(_logging.DEBUG)
    else:
        package_logger.setLevel(_logging.WARNING)


@_click.group(context_settings=CONTEXT_SETTINGS)
@_click.version_option(foxprefs.__version__, "-v", "--version", prog_name="foxprefs")
@_click.option("--verbose", is_flag=True, default=False, help="Log debug output to stderr")
@_click.pass_context
def cli(ctx: _click.Context, verbose: bool) -> None:
    """
    foxprefs - inspect effective browser preferences.

    Resolves built-in defaults (omni.ja), global defaults (greprefs.js) and
    user preferences (prefs.js) into one mapping with provenance.

    \b
    Examples:
        foxprefs profile list                        # Profiles in profiles.ini
        foxprefs prefs view default-release          # The user's prefs.js
        foxprefs prefs view --stdin < prefs.js       # Parse piped content
        foxprefs prefs merge -q 'network.*'          # Effective network prefs
        foxprefs prefs merge --get app.update.auto   # One raw value
    """
    try:
        settings = config.Settings()
    except errors.ConfigFileError as e:
        raise _click.ClickException(str(e)) from e
    except _pydantic.ValidationError as e:
        raise _click.ClickException(f"Invalid settings: {e}") from e

    if verbose:
        settings.verbose = True
    _configure_logging(settings.verbose)

    for name in settings.get_extra_fields():
        _logger.warning("Unknown setting '%s' ignored", name)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


# =============================================================================
# profile
# =============================================================================


@cli.group(name="profile")
def profile_cmd() -> None:
    """Profile discovery commands."""
    pass


@profile_cmd.command(name="list")
@_click.option("--profiles-dir", type=_PATH_TYPE, default=None, help="Profiles root directory")
@_click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@_click.pass_context
def profile_list(ctx: _click.Context, profiles_dir: _pathlib.Path | None, as_json: bool) -> None:
    """List profiles declared in profiles.ini."""
    settings: config.Settings = ctx.obj["settings"]
    root = profiles_dir or settings.profiles_dir or profiles.default_profiles_dir()

    with _handle_errors():
        found = profiles.list_profiles(root)

    if as_json:
        _click.echo(_json.dumps([profile.to_dict() for profile in found], indent=2))
        return

    if not found:
        _click.echo(f"No profiles declared in {root}")
        return
    for profile in found:
        marker = "*" if profile.is_default else " "
        locked = ""
        if profile.locked_to_install:
            locked = f" (default for install {profile.locked_to_install})"
        _click.echo(f"{marker} {profile.name}: {profiles.profile_directory(profile, root)}{locked}")


# =============================================================================
# install
# =============================================================================


@cli.group(name="install")
def install_cmd() -> None:
    """Installation discovery commands."""
    pass


@install_cmd.command(name="list")
@_click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def install_list(as_json: bool) -> None:
    """List installations found in the platform's standard locations."""
    found = installations.find_installations()

    if as_json:
        _click.echo(_json.dumps([item.to_dict() for item in found], indent=2))
        return

    if not found:
        _click.echo("No installations found")
        return
    for item in found:
        parts = []
        if item.has_omni_ja:
            parts.append("omni.ja")
        if item.has_greprefs:
            parts.append("greprefs.js")
        _click.echo(f"{item.path} (version {item.version}; {', '.join(parts)})")


# =============================================================================
# prefs
# =============================================================================


@cli.group(name="prefs")
def prefs_cmd() -> None:
    """Preference inspection commands."""
    pass


def _resolve_profile_dir(profile: str | None, profiles_dir: _pathlib.Path) -> _pathlib.Path:
    """Directory of the named profile, or of the default profile when unnamed."""
    if profile:
        return profiles.find_profile_path(profile, profiles_dir)
    for candidate in profiles.list_profiles(profiles_dir):
        if candidate.is_default:
            return profiles.profile_directory(candidate, profiles_dir)
    raise errors.ProfileNotFoundError(
        f"No profile given and no default profile declared in {profiles_dir}"
    )


def _without_explained(merged: types.MergedPreferences) -> types.MergedPreferences:
    return types.MergedPreferences(
        entries={
            key: pref
            for key, pref in merged.entries.items()
            if explanations.get_preference_explanation(key) is None
        },
        loaded_sources=merged.loaded_sources,
        warnings=list(merged.warnings),
    )


def _emit(
    merged: types.MergedPreferences,
    *,
    queries: tuple[str, ...],
    get_key: str | None,
    output_type: str,
    unexplained_only: bool,
    provenance: bool,
    use_color: bool | None,
) -> None:
    """Shared tail of `prefs view` and `prefs merge`."""
    output.echo_warnings(merged.warnings)

    if get_key is not None:
        pref = merged.get(get_key)
        if pref is None:
            raise _click.ClickException(f"Preference '{get_key}' not found")
        if unexplained_only and explanations.get_preference_explanation(get_key) is not None:
            raise _click.ClickException(
                f"Preference '{get_key}' has an explanation, "
                "but --unexplained-only was specified"
            )
        _click.echo(output.format_raw_value(pref.value))
        return

    if queries:
        with _handle_errors():
            merged = matching.query_preferences(merged, queries)
    if unexplained_only:
        merged = _without_explained(merged)

    color, force_color = output.should_use_color(use_color)
    output.render(
        merged,
        output_type,
        provenance=provenance,
        color=color,
        force_color=force_color,
    )


def _output_options(func: _typing.Callable[..., _typing.Any]) -> _typing.Callable[..., _typing.Any]:
    """Options shared by `prefs view` and `prefs merge`."""
    options = [
        _click.option(
            "-q",
            "--query",
            "queries",
            multiple=True,
            help="Glob pattern on keys, e.g. 'network.*' (repeatable, OR-combined)",
        ),
        _click.option("--get", "get_key", default=None, help="Print one preference's raw value"),
        _click.option(
            "--output-type",
            type=_click.Choice(OUTPUT_TYPES),
            default=None,
            help="Output format (default from settings)",
        ),
        _click.option(
            "--unexplained-only",
            is_flag=True,
            help="Only show preferences without a bundled explanation",
        ),
        _click.option(
            "--strict/--lenient",
            default=None,
            help="Fail on malformed statements instead of skipping them",
        ),
        _click.option(
            "--color/--no-color",
            "use_color",
            default=None,
            help="Enable/disable colored table output (default: auto-detect TTY)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@prefs_cmd.command(name="view")
@_click.argument("profile", required=False)
@_click.option("--profiles-dir", type=_PATH_TYPE, default=None, help="Profiles root directory")
@_click.option("--stdin", "from_stdin", is_flag=True, help="Read prefs.js content from stdin")
@_output_options
@_click.pass_context
def prefs_view(
    ctx: _click.Context,
    profile: str | None,
    profiles_dir: _pathlib.Path | None,
    from_stdin: bool,
    queries: tuple[str, ...],
    get_key: str | None,
    output_type: str | None,
    unexplained_only: bool,
    strict: bool | None,
    use_color: bool | None,
) -> None:
    """Show the preferences declared in one prefs.js.

    PROFILE is a profile name; without it the default profile is used.

    \b
    Examples:
        foxprefs prefs view default-release
        foxprefs prefs view --stdin --output-type json-array < prefs.js
        foxprefs prefs view -q 'browser.*' -q 'network.*'
    """
    settings: config.Settings = ctx.obj["settings"]
    strict = settings.strict_parsing if strict is None else strict

    with _handle_errors():
        if from_stdin:
            text = _sys.stdin.read()
            tier = loader.load_text_tier(text, types.Source.USER, "<stdin>", strict=strict)
        else:
            root = profiles_dir or settings.profiles_dir or profiles.default_profiles_dir()
            profile_dir = _resolve_profile_dir(profile, root)
            tier = loader.load_file_tier(
                profile_dir / "prefs.js", types.Source.USER, strict=strict
            )
        merged = merge.merge_tiers(
            user=tier,
            config=settings.merge_config(
                include_builtins=False, include_globals=False, continue_on_error=False
            ),
        )

    _emit(
        merged,
        queries=queries,
        get_key=get_key,
        output_type=output_type or settings.output_type,
        unexplained_only=unexplained_only,
        provenance=False,
        use_color=use_color,
    )


@prefs_cmd.command(name="merge")
@_click.argument("profile", required=False)
@_click.option("--profiles-dir", type=_PATH_TYPE, default=None, help="Profiles root directory")
@_click.option("--install-dir", type=_PATH_TYPE, default=None, help="Installation directory")
@_click.option("--no-builtins", is_flag=True, help="Skip built-in defaults (omni.ja)")
@_click.option("--no-globals", is_flag=True, help="Skip global defaults (greprefs.js)")
@_click.option("--no-user", is_flag=True, help="Skip user preferences (prefs.js)")
@_click.option(
    "--fail-fast",
    is_flag=True,
    help="Abort when any source fails to load instead of warning",
)
@_output_options
@_click.pass_context
def prefs_merge(
    ctx: _click.Context,
    profile: str | None,
    profiles_dir: _pathlib.Path | None,
    install_dir: _pathlib.Path | None,
    no_builtins: bool,
    no_globals: bool,
    no_user: bool,
    fail_fast: bool,
    queries: tuple[str, ...],
    get_key: str | None,
    output_type: str | None,
    unexplained_only: bool,
    strict: bool | None,
    use_color: bool | None,
) -> None:
    """Resolve effective preferences across all sources.

    Precedence, lowest to highest: built-in defaults, global defaults,
    user preferences. Every value is reported with the source it came from.

    \b
    Examples:
        foxprefs prefs merge default-release --output-type table
        foxprefs prefs merge --install-dir /usr/lib/firefox --get app.update.auto
        foxprefs prefs merge --no-user -q 'privacy.*'
    """
    settings: config.Settings = ctx.obj["settings"]
    strict = settings.strict_parsing if strict is None else strict
    merge_config = settings.merge_config(
        include_builtins=not no_builtins,
        include_globals=not no_globals,
        include_user=not no_user,
        continue_on_error=False if fail_fast else None,
    )

    with _handle_errors():
        profile_dir = None
        if merge_config.include_user:
            root = profiles_dir or settings.profiles_dir or profiles.default_profiles_dir()
            profile_dir = _resolve_profile_dir(profile, root)

        install_dir = install_dir or settings.install_dir
        if install_dir is None and (merge_config.include_builtins or merge_config.include_globals):
            try:
                install_dir = installations.find_installation().path
            except errors.InstallationNotFoundError:
                if not merge_config.continue_on_error:
                    raise
                _logger.debug("No installation found; built-in and global tiers will be skipped")

        context = settings.resolution_context(profile_dir, install_dir)
        merged = resolve.resolve_preferences(context, merge_config, strict=strict)

    _emit(
        merged,
        queries=queries,
        get_key=get_key,
        output_type=output_type or settings.output_type,
        unexplained_only=unexplained_only,
        provenance=True,
        use_color=use_color,
    )


# =============================================================================
# settings
# =============================================================================


@cli.group(name="settings")
def settings_cmd() -> None:
    """Tool settings commands."""
    pass


@settings_cmd.command(name="show")
@_click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@_click.option(
    "--color/--no-color",
    "use_color",
    default=None,
    help="Enable/disable syntax highlighting (default: auto-detect TTY)",
)
@_click.pass_context
def settings_show(ctx: _click.Context, as_json: bool, use_color: bool | None) -> None:
    """Show effective settings from defaults, user config and environment.

    Examples:
        foxprefs settings show          # YAML (colorized on a terminal)
        foxprefs settings show --json   # JSON
    """
    settings: config.Settings = ctx.obj["settings"]
    full_config = settings.model_dump(mode="json")

    if as_json:
        _click.echo(_json.dumps(full_config, indent=2))
        return

    yaml_text = _yaml.dump(full_config, default_flow_style=False, sort_keys=False)
    color, force_color = output.should_use_color(use_color)
    if not color:
        _click.echo(yaml_text)
        return
    console = output.make_console(color=color, force_color=force_color)
    console.print(
        _rich_syntax.Syntax(yaml_text, "yaml", theme="monokai", background_color="default")
    )


@settings_cmd.command(name="path")
@_click.option("--all", "show_all", is_flag=True, help="Show all paths even if not found")
def settings_path(show_all: bool) -> None:
    """Show settings file paths and their status.

    Examples:
        foxprefs settings path        # Show existing config files
        foxprefs settings path --all  # Show all possible paths
    """
    paths = [
        ("Built-in defaults", config_sources.get_builtin_defaults_path()),
        ("User config", config_sources.get_user_config_path()),
    ]
    for name, path in paths:
        exists = path.exists()
        if exists or show_all:
            status = "✓" if exists else "✗"
            _click.echo(f"{status} {name}: {path}")


def main() -> None:
    """Entry point for the foxprefs console script."""
    cli()
