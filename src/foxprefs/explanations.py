"""
Explanations for well-known preferences.

The table lives in the bundled data/explanations.yaml and is read once.
"""

from __future__ import annotations

import functools as _functools
import pathlib as _pathlib

import yaml as _yaml

import foxprefs.errors as errors


def get_explanations_path() -> _pathlib.Path:
    """Path to the bundled explanations table."""
    return _pathlib.Path(__file__).parent / "data" / "explanations.yaml"


@_functools.lru_cache(maxsize=1)
def load_explanations() -> dict[str, str]:
    """
    Load the key -> explanation table.

    Raises:
        ConfigFileError: If the bundled file is missing or malformed
            (an installation problem).
    """
    path = get_explanations_path()
    try:
        data = _yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise errors.ConfigFileError(path, f"cannot read file: {e}") from e
    except _yaml.YAMLError as e:
        raise errors.ConfigFileError(path, f"invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise errors.ConfigFileError(path, "explanations must be a YAML mapping")
    return {str(key): " ".join(str(text).split()) for key, text in data.items()}


def get_preference_explanation(key: str) -> str | None:
    """Explanation for `key`, or None if the key is not documented."""
    return load_explanations().get(key)
