"""Condition specs, combination enumeration, and module-resolution aliasing.

A project may declare build-time *conditions* in one of two shapes:

* **Flat** -- a list of labels, each built in its own pass
  (``["node", "browser", "default"]``).
* **Grouped** -- named groups of mutually exclusive labels; one pass is run
  per element of the cartesian product
  (``{"env": ["cocos", "node", "default"], "platform": ["ios", "default"]}``).

The raw configuration value is turned into a :class:`FlatConditions` or
:class:`GroupedConditions` exactly once by :func:`parse_condition_spec`.
Everything downstream consumes that tagged value or the
:class:`ConditionCombination` list produced by
:func:`get_condition_combinations`, never the raw JSON shape.

The reserved label ``default`` is the fallback label of a group. It is
always moved to the end of its group so that it is tried last, both when
enumerating passes and when nesting ``exports`` branches.
"""

from __future__ import annotations

import itertools
import json
import re
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional, Union

from utc.exceptions import ConditionSpecError
from utc.models import ResolutionAliasing

DEFAULT_LABEL = "default"

# Bundler output extension -> matching TypeScript source extension.
_EXTENSION_PAIRS: tuple[tuple[str, str], ...] = (
    ("js", "ts"),
    ("mjs", "mts"),
    ("cjs", "cts"),
    ("jsx", "tsx"),
    ("mjsx", "mtsx"),
    ("cjsx", "ctsx"),
)

_RESOLVE_EXTENSIONS: tuple[str, ...] = (".tsx", ".ts", ".jsx", ".js", ".json")


@dataclass(frozen=True)
class FlatConditions:
    """A flat list of independently built condition labels."""

    labels: tuple[str, ...]

    @property
    def has_default(self) -> bool:
        return DEFAULT_LABEL in self.labels


@dataclass(frozen=True)
class GroupedConditions:
    """Named groups of mutually exclusive labels, in declaration order."""

    groups: tuple[tuple[str, tuple[str, ...]], ...]

    def labels(self, group: str) -> tuple[str, ...]:
        for name, labels in self.groups:
            if name == group:
                return labels
        raise KeyError(group)

    @property
    def all_have_default(self) -> bool:
        """Whether every group declares the ``default`` label."""
        return all(DEFAULT_LABEL in labels for _, labels in self.groups)


ConditionSpec = Union[FlatConditions, GroupedConditions]


@dataclass(frozen=True)
class ConditionCombination:
    """One concrete assignment of active conditions, i.e. one build pass.

    Flat specs produce ``{label: True}`` combinations; grouped specs
    produce ``{group: label}`` combinations. The empty combination stands
    for an unconditional build.

    Attributes:
        items: ``(key, value)`` pairs in group declaration order.
    """

    items: tuple[tuple[str, Union[str, bool]], ...] = ()

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Union[str, bool]]) -> "ConditionCombination":
        return cls(tuple(mapping.items()))

    @classmethod
    def from_active(
        cls, active: Union[list[str], Mapping[str, Union[str, bool]], None]
    ) -> "ConditionCombination":
        """Build a combination from a list of active labels or a group mapping."""
        if active is None:
            return cls()
        if isinstance(active, Mapping):
            return cls.from_mapping(active)
        return cls(tuple((name, True) for name in active))

    def as_dict(self) -> dict[str, Union[str, bool]]:
        return dict(self.items)

    def get(self, key: str) -> Union[str, bool, None]:
        for name, value in self.items:
            if name == key:
                return value
        return None

    def with_value(self, key: str, value: Union[str, bool]) -> "ConditionCombination":
        """Return a copy with *key* set to *value* (appended if new)."""
        items = [(k, v) for k, v in self.items if k != key]
        if len(items) == len(self.items):
            return ConditionCombination(self.items + ((key, value),))
        return ConditionCombination(
            tuple((k, value if k == key else v) for k, v in self.items)
        )

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def key(self) -> str:
        """Compact JSON serialization used to key accumulated outputs."""
        return json.dumps(self.as_dict(), separators=(",", ":"))

    @property
    def segments(self) -> list[str]:
        """Active labels: the key for boolean values, the value for string values."""
        parts: list[str] = []
        for name, value in self.items:
            if isinstance(value, bool):
                if value:
                    parts.append(name)
            elif isinstance(value, str) and value:
                parts.append(value)
        return parts

    @property
    def out_dir_suffix(self) -> str:
        return "/".join(self.segments)

    def __str__(self) -> str:
        if not self.items:
            return "(unconditional)"
        return ", ".join(
            name if value is True else f"{name}={value}" for name, value in self.items
        )


# ------------------------------------------------------------------ #
# Parsing
# ------------------------------------------------------------------ #


def parse_condition_spec(raw: Any) -> Optional[ConditionSpec]:
    """Resolve a raw condition configuration value into a tagged spec.

    Args:
        raw: ``None``, a list of labels, a mapping of group name to a list
            of labels, or a JSON string encoding either of those.

    Returns:
        ``None`` when no conditions are configured (including an empty list
        or mapping), otherwise a :class:`FlatConditions` or
        :class:`GroupedConditions`.

    Raises:
        ConditionSpecError: If *raw* has any other shape, or a group
            contains empty, non-string, or duplicate labels.
    """
    if raw is None:
        return None
    if isinstance(raw, (FlatConditions, GroupedConditions)):
        return raw
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConditionSpecError(f"Conditions are not valid JSON: {exc}") from exc

    if isinstance(raw, (list, tuple)):
        if not raw:
            return None
        return FlatConditions(_normalize_labels(raw, "conditions"))

    if isinstance(raw, Mapping):
        if not raw:
            return None
        groups: list[tuple[str, tuple[str, ...]]] = []
        for group, labels in raw.items():
            if not isinstance(group, str) or not group:
                raise ConditionSpecError(f"Invalid condition group name: {group!r}")
            if not isinstance(labels, (list, tuple)) or not labels:
                raise ConditionSpecError(
                    f"Condition group '{group}' must be a non-empty list of labels"
                )
            groups.append((group, _normalize_labels(labels, f"group '{group}'")))
        return GroupedConditions(tuple(groups))

    raise ConditionSpecError(
        f"Conditions must be a list of labels or a mapping of groups, got {type(raw).__name__}"
    )


def _normalize_labels(labels: Any, where: str) -> tuple[str, ...]:
    """Validate *labels* and move the ``default`` label to the end."""
    seen: set[str] = set()
    ordered: list[str] = []
    for label in labels:
        if not isinstance(label, str) or not label.strip():
            raise ConditionSpecError(f"Invalid condition label {label!r} in {where}")
        if label in seen:
            raise ConditionSpecError(f"Duplicate condition label '{label}' in {where}")
        seen.add(label)
        ordered.append(label)
    if DEFAULT_LABEL in seen:
        ordered.remove(DEFAULT_LABEL)
        ordered.append(DEFAULT_LABEL)
    return tuple(ordered)


def condition_spec_to_raw(spec: Optional[ConditionSpec]) -> Any:
    """Inverse of :func:`parse_condition_spec`, used for display."""
    if spec is None:
        return None
    if isinstance(spec, FlatConditions):
        return list(spec.labels)
    return {name: list(labels) for name, labels in spec.groups}


# ------------------------------------------------------------------ #
# Enumeration
# ------------------------------------------------------------------ #


def get_condition_combinations(spec: Optional[ConditionSpec]) -> list[ConditionCombination]:
    """Enumerate every build pass for *spec*.

    Order follows group declaration order, then label order within each
    group. Export synthesis relies on this order for deterministic output.

    Args:
        spec: A parsed condition spec, or ``None`` for an unconditional build.

    Returns:
        ``[ConditionCombination()]`` for ``None``; one ``{label: True}``
        combination per label for flat specs; the full cartesian product
        (``prod(len(labels))`` combinations) for grouped specs.
    """
    if spec is None:
        return [ConditionCombination()]
    if isinstance(spec, FlatConditions):
        return [ConditionCombination(((label, True),)) for label in spec.labels]
    return list(_enumerate_groups(spec.groups, 0, ConditionCombination()))


def _enumerate_groups(
    groups: tuple[tuple[str, tuple[str, ...]], ...],
    index: int,
    current: ConditionCombination,
) -> Iterator[ConditionCombination]:
    if index == len(groups):
        yield current
        return
    name, labels = groups[index]
    for label in labels:
        yield from _enumerate_groups(groups, index + 1, current.with_value(name, label))


# ------------------------------------------------------------------ #
# Resolution aliasing
# ------------------------------------------------------------------ #


def condition_suffixes(segments: list[str]) -> list[str]:
    """Return ``.a.b``-style file suffix candidates, most specific first.

    Every permutation of every length of *segments* is produced, longest
    first, with duplicates removed, so ``module.ios.cocos.ts`` wins over
    ``module.ios.ts`` which wins over ``module.ts``.
    """
    suffixes: list[str] = []
    seen: set[str] = set()
    for length in range(len(segments), 0, -1):
        for perm in itertools.permutations(segments, length):
            suffix = "." + ".".join(perm)
            if suffix not in seen:
                seen.add(suffix)
                suffixes.append(suffix)
    return suffixes


def build_resolve_config(combination: ConditionCombination) -> ResolutionAliasing:
    """Build the bundler's module-resolution aliasing for one pass.

    Args:
        combination: The active conditions of the pass.

    Returns:
        A :class:`~utc.models.ResolutionAliasing` whose ``extension_alias``
        and ``extensions`` list condition-suffixed candidates before the
        plain ones.
    """
    segments = combination.segments
    if not segments:
        return ResolutionAliasing(
            suffixes=[],
            extension_alias={
                f".{js}": [f".{js}", f".{ts}"] for js, ts in _EXTENSION_PAIRS
            },
            extensions=list(_RESOLVE_EXTENSIONS),
            condition_names=[],
        )

    suffixes = condition_suffixes(segments)

    extension_alias: dict[str, list[str]] = {}
    for js, ts in _EXTENSION_PAIRS:
        aliases: list[str] = []
        for suffix in suffixes:
            aliases.extend([f"{suffix}.{js}", f"{suffix}.{ts}"])
        aliases.extend([f".{js}", f".{ts}"])
        extension_alias[f".{js}"] = aliases

    extensions: list[str] = []
    for suffix in suffixes:
        extensions.extend(f"{suffix}{ext}" for ext in _RESOLVE_EXTENSIONS)
    extensions.extend(_RESOLVE_EXTENSIONS)

    return ResolutionAliasing(
        suffixes=suffixes,
        extension_alias=extension_alias,
        extensions=extensions,
        condition_names=[*segments, "..."],
    )


def canonical_constant_name(label: str) -> str:
    """Turn a condition label into a constant name (``react-native`` -> ``REACT_NATIVE``)."""
    return re.sub(r"[^a-z0-9]+", "_", label, flags=re.IGNORECASE).upper()
