"""
Merge Engine: folds tiers into one mapping with provenance.

Tiers are processed in ascending precedence: the built-in set (sorted by
label), then the global-default tier, then the user tier. Within a tier,
entries are applied in file order so the last declaration of a key wins.
A later tier replaces the value of every key it declares; an earlier one
only ever contributes keys nobody else declares.

A key is flagged `conflicting` when two different tiers last-declared it
with different value variants. Each built-in archive file is its own tier.
That is reported as data plus a warning, never as an exception.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import typing as _typing

import pydantic as _pydantic

import foxprefs.prefs.types as types

_logger = _logging.getLogger(__name__)

# (source, tier label)
_TierKey = tuple[types.Source, str]


class MergeConfig(_pydantic.BaseModel):
    """
    The only knobs the merge engine accepts.

    Unknown fields are rejected so a misspelled option fails loudly
    instead of silently merging with defaults.
    """

    model_config = _pydantic.ConfigDict(frozen=True, extra="forbid")

    include_builtins: bool = True
    """Fold the built-in archive tiers."""

    include_globals: bool = True
    """Fold the global-default tier."""

    include_user: bool = True
    """Fold the user tier."""

    continue_on_error: bool = True
    """Turn a tier that failed to load into a warning instead of raising."""

    def includes(self, source: types.Source) -> bool:
        """Whether tiers of `source` take part in the merge."""
        if source is types.Source.BUILT_IN:
            return self.include_builtins
        if source is types.Source.GLOBAL_DEFAULT:
            return self.include_globals
        if source is types.Source.USER:
            return self.include_user
        if source is types.Source.SYSTEM_POLICY:
            return False
        _typing.assert_never(source)


@_dataclasses.dataclass
class _Accumulated:
    """Winning declaration of one key plus the last variant seen per tier."""

    preference: types.ResolvedPreference
    variants: dict[_TierKey, types.ValueKind]


class _Merger:
    def __init__(self, config: MergeConfig) -> None:
        self._config = config
        self._accumulator: dict[str, _Accumulated] = {}
        self._loaded: set[types.Source] = set()
        self._warnings: list[str] = []

    def fold_slot(
        self,
        source: types.Source,
        inputs: _typing.Sequence[types.TierInput],
    ) -> None:
        if not self._config.includes(source):
            _logger.debug("Skipping excluded %s tier", source.label)
            return
        for tier in inputs:
            if isinstance(tier, types.TierFailure):
                self._fail(tier)
            else:
                self._fold_tier(source, tier)

    def _fail(self, failure: types.TierFailure) -> None:
        if not self._config.continue_on_error:
            raise failure.error
        self._warnings.append(
            f"Failed to load {failure.source.label} preferences from "
            f"{failure.label}: {failure.error}"
        )

    def _fold_tier(self, source: types.Source, tier: types.Tier) -> None:
        self._loaded.add(source)
        self._warnings.extend(f"{tier.label}:{warning}" for warning in tier.parse_warnings)
        for entry in tier.entries:
            self._fold_entry(source, tier.label, entry)

    def _fold_entry(self, source: types.Source, label: str, entry: types.Entry) -> None:
        slot = self._accumulator.get(entry.key)
        if slot is None:
            self._accumulator[entry.key] = _Accumulated(
                preference=types.ResolvedPreference(
                    key=entry.key,
                    value=entry.value,
                    origin=source,
                    kind=entry.kind,
                    label=label,
                    line=entry.line,
                ),
                variants={(source, label): entry.value.kind},
            )
            return

        slot.variants[(source, label)] = entry.value.kind
        preference = slot.preference
        if source.precedence >= preference.origin.precedence:
            preference.value = entry.value
            preference.origin = source
            preference.kind = entry.kind
            preference.label = label
            preference.line = entry.line

    def result(self) -> types.MergedPreferences:
        entries: dict[str, types.ResolvedPreference] = {}
        for key in sorted(self._accumulator):
            slot = self._accumulator[key]
            preference = slot.preference
            preference.conflicting = len(set(slot.variants.values())) > 1
            if preference.conflicting:
                self._warnings.append(_conflict_message(preference, slot.variants))
            entries[key] = preference
        return types.MergedPreferences(
            entries=entries,
            loaded_sources=frozenset(self._loaded),
            warnings=self._warnings,
        )


def _conflict_message(
    preference: types.ResolvedPreference,
    variants: dict[_TierKey, types.ValueKind],
) -> str:
    # Tiers of one source that agree collapse into a single part
    parts: list[str] = []
    seen: set[tuple[types.Source, types.ValueKind]] = set()
    for (source, label), kind in sorted(
        variants.items(), key=lambda item: (item[0][0].precedence, item[0][1])
    ):
        kinds = {other for (tier_source, _), other in variants.items() if tier_source is source}
        if len(kinds) > 1:
            parts.append(f"{source.label} ({label}) declares {kind.value}")
        elif (source, kind) not in seen:
            parts.append(f"{source.label} declares {kind.value}")
        seen.add((source, kind))
    declared = ", ".join(parts)
    return (
        f"Type conflict for '{preference.key}': {declared}; "
        f"using {preference.origin.label} value"
    )


def merge_tiers(
    builtins: _typing.Sequence[types.TierInput] = (),
    global_default: types.TierInput | None = None,
    user: types.TierInput | None = None,
    config: MergeConfig | None = None,
) -> types.MergedPreferences:
    """
    Fold tiers into one MergedPreferences.

    Args:
        builtins: One tier (or failure) per built-in archive entry. Folded
            in label order regardless of the order given.
        global_default: The global-default tier, if any.
        user: The user tier, if any.
        config: Tier selection and error policy. Defaults to all tiers
            included with continue_on_error.

    Returns:
        Entries sorted by key, the sources actually read, and warnings
        (tier failures, parse warnings, type conflicts) in that order of
        discovery.

    Raises:
        FoxprefsError: The error of the first failed tier, when
            continue_on_error is false.

    Example:
        >>> user_tier = loader.load_text_tier('user_pref("a", 1);', Source.USER, "prefs.js")
        >>> merge_tiers(user=user_tier).get("a").origin
        <Source.USER: 'user'>
    """
    config = config or MergeConfig()
    merger = _Merger(config)

    merger.fold_slot(types.Source.BUILT_IN, sorted(builtins, key=lambda tier: tier.label))
    if global_default is not None:
        merger.fold_slot(types.Source.GLOBAL_DEFAULT, [global_default])
    if user is not None:
        merger.fold_slot(types.Source.USER, [user])

    merged = merger.result()
    _logger.debug(
        "Merged %d preferences from %s with %d warnings",
        len(merged),
        ", ".join(source.label for source in merged.sorted_sources()) or "no sources",
        len(merged.warnings),
    )
    return merged
