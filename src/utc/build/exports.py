"""Export field synthesis.

Turns the accumulated output files of every pass into the ``exports``,
``main``, ``module``, ``types`` and ``bin`` fields of ``package.json``.

The shape of each subpath's export value follows the condition spec:

* **No conditions** -- a single leaf::

    {"types": "./dist/index.d.ts", "import": "./dist/index.mjs",
     "require": "./dist/index.cjs", "default": "./dist/index.mjs"}

* **Flat conditions** -- one leaf per label that produced output, plus
  ``default`` (from the ``default`` label's own pass, else from an
  unconditional pass)::

    {"node": {...}, "browser": {...}, "default": {...}}

* **Grouped conditions** -- one nesting level per group in declaration
  order, empty branches pruned::

    {"cocos": {"ios": {...}, "default": {...}}, "default": {"default": {...}}}

Legacy single-value fields are derived from the *default chain* of the
``"."`` export only when the condition shape guarantees one. When it does
not, the fields are omitted instead of guessed.

Everything here is a pure function of the accumulator, so synthesizing
twice from the same passes yields byte-identical JSON.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

from utc.build.accumulator import BuildAccumulator, BuildResult
from utc.build.classifier import DECLARATION_SUFFIXES, FileRole, classify_file
from utc.conditions import (
    DEFAULT_LABEL,
    ConditionCombination,
    ConditionSpec,
    FlatConditions,
    GroupedConditions,
)
from utc.entries import EntryMap
from utc.models import TypesMode
from utc.scanner.modules import default_bin_id

ExportValue = dict[str, Any]


def to_export_path(path: str) -> str:
    """Return *path* in ``./``-prefixed POSIX form."""
    path = path.replace("\\", "/")
    return path if path.startswith("./") else "./" + path.lstrip("/")


def declaration_candidates(script: str, package_type: Optional[str]) -> list[str]:
    """Declaration suffixes to probe for *script*, closest dialect first.

    ``.mjs`` pairs with ``.d.mts`` and ``.cjs`` with ``.d.cts``; a plain
    ``.js`` follows the package's module type.
    """
    lowered = script.lower()
    if lowered.endswith(".mjs"):
        return [".d.mts", ".d.ts"]
    if lowered.endswith(".cjs"):
        return [".d.cts", ".d.ts"]
    if package_type == "commonjs":
        return [".d.ts", ".d.cts", ".d.mts"]
    return [".d.ts", ".d.mts", ".d.cts"]


def _script_stem(script: str) -> str:
    for ext in (".mjs", ".cjs", ".js"):
        if script.lower().endswith(ext):
            return script[: -len(ext)]
    return script


def probe_declaration(
    script: Optional[str], files: Iterable[str], package_type: Optional[str]
) -> Optional[str]:
    """Find the declaration file paired with *script* among *files*."""
    if not script:
        return None
    available = {to_export_path(f) for f in files}
    stem = _script_stem(to_export_path(script))
    for suffix in declaration_candidates(script, package_type):
        if stem + suffix in available:
            return stem + suffix
    return None


@dataclass(frozen=True)
class ExportEntry:
    """The resolved leaf of one subpath under one combination.

    ``import_types`` and ``require_types`` are the per-branch declarations
    used when types are emitted inside the ``import``/``require`` branches.
    """

    types: Optional[str] = None
    import_: Optional[str] = None
    require: Optional[str] = None
    default: Optional[str] = None
    import_types: Optional[str] = None
    require_types: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.types or self.import_ or self.require)

    def to_export_value(self, types_mode: TypesMode = TypesMode.SHARED) -> ExportValue:
        """Render the leaf as an ``exports`` object; ``types`` always comes first."""
        value: ExportValue = {}
        if types_mode is TypesMode.SHARED and self.types:
            value["types"] = self.types

        for key, script, declaration in (
            ("import", self.import_, self.import_types),
            ("require", self.require, self.require_types),
        ):
            if not script:
                continue
            if types_mode is TypesMode.BRANCH and declaration:
                value[key] = {"types": declaration, "default": script}
            else:
                value[key] = script

        if self.default:
            value["default"] = self.default
        return value


def create_export_entry(files: Iterable[str], package_type: Optional[str] = None) -> ExportEntry:
    """Pick the declaration, ESM and CJS files of one output group.

    Args:
        files: Output paths of one (subpath, combination) group.
        package_type: The ``type`` field of ``package.json``.
    """
    declarations: list[str] = []
    esm: list[str] = []
    cjs: list[str] = []
    plain: list[str] = []
    for path in files:
        role = classify_file(path)
        if role is FileRole.DECLARATION:
            declarations.append(to_export_path(path))
        elif role is FileRole.ESM:
            esm.append(to_export_path(path))
        elif role is FileRole.CJS:
            cjs.append(to_export_path(path))
        elif role is FileRole.SCRIPT:
            plain.append(to_export_path(path))

    types: Optional[str] = None
    for suffix in DECLARATION_SUFFIXES:
        types = next((d for d in declarations if d.lower().endswith(suffix)), None)
        if types:
            break

    import_ = esm[0] if esm else (plain[0] if plain else None)
    require = cjs[0] if cjs else (plain[0] if plain else None)

    if package_type == "commonjs":
        default = require or import_
    else:
        default = import_ or require

    return ExportEntry(
        types=types,
        import_=import_,
        require=require,
        default=default,
        import_types=probe_declaration(import_, declarations, package_type),
        require_types=probe_declaration(require, declarations, package_type),
    )


def _leaf(
    subpath: str,
    combination: ConditionCombination,
    accumulator: BuildAccumulator,
    package_type: Optional[str],
    types_mode: TypesMode,
) -> ExportValue:
    files = accumulator.files(subpath, combination)
    if not files:
        return {}
    entry = create_export_entry(files, package_type)
    if entry.is_empty:
        return {}
    return entry.to_export_value(types_mode)


def _build_level(
    groups: tuple[tuple[str, tuple[str, ...]], ...],
    index: int,
    current: ConditionCombination,
    leaf: Callable[[ConditionCombination], ExportValue],
) -> ExportValue:
    if index == len(groups):
        return leaf(current)
    name, labels = groups[index]
    level: ExportValue = {}
    for label in labels:
        branch = _build_level(groups, index + 1, current.with_value(name, label), leaf)
        if branch:
            level[label] = branch
    return level


def build_export_value(
    subpath: str,
    spec: Optional[ConditionSpec],
    accumulator: BuildAccumulator,
    package_type: Optional[str] = None,
    types_mode: TypesMode = TypesMode.SHARED,
) -> ExportValue:
    """Build the export value of one subpath; ``{}`` when nothing was produced."""

    def leaf(combination: ConditionCombination) -> ExportValue:
        return _leaf(subpath, combination, accumulator, package_type, types_mode)

    if spec is None:
        return leaf(ConditionCombination())

    if isinstance(spec, FlatConditions):
        value: ExportValue = {}
        for label in spec.labels:
            branch = leaf(ConditionCombination(((label, True),)))
            if branch:
                value[label] = branch
        if spec.has_default:
            fallback = leaf(ConditionCombination(((DEFAULT_LABEL, True),)))
        else:
            fallback = leaf(ConditionCombination())
        if fallback:
            value[DEFAULT_LABEL] = fallback
        return value

    return _build_level(spec.groups, 0, ConditionCombination(), leaf)


def build_exports_field(
    entry_map: EntryMap,
    spec: Optional[ConditionSpec],
    accumulator: BuildAccumulator,
    package_type: Optional[str] = None,
    types_mode: TypesMode = TypesMode.SHARED,
) -> dict[str, ExportValue]:
    """Build the whole ``exports`` field in entry-map order.

    Subpaths that produced no output under any combination are omitted.
    """
    exports: dict[str, ExportValue] = {}
    for subpath in entry_map:
        value = build_export_value(subpath, spec, accumulator, package_type, types_mode)
        if value:
            exports[subpath] = value
    return exports


# ------------------------------------------------------------------ #
# Legacy fields
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class LegacyFields:
    """Root-level ``main``/``module``/``types``; ``None`` means delete the field."""

    main: Optional[str] = None
    module: Optional[str] = None
    types: Optional[str] = None

    def as_dict(self) -> dict[str, Optional[str]]:
        return {"main": self.main, "module": self.module, "types": self.types}


def default_leaf(
    exports_field: dict[str, ExportValue], spec: Optional[ConditionSpec]
) -> Optional[ExportValue]:
    """Follow the default chain of the ``"."`` export down to its leaf.

    Returns ``None`` when the condition shape has no unambiguous default
    (a flat spec without ``default``, a grouped spec where some group
    lacks it) or when a branch along the chain was pruned.
    """
    current: Any = exports_field.get(".")
    if not isinstance(current, dict):
        return None

    if isinstance(spec, FlatConditions):
        if not spec.has_default:
            return None
        current = current.get(DEFAULT_LABEL)
    elif isinstance(spec, GroupedConditions):
        if not spec.all_have_default:
            return None
        for _ in spec.groups:
            if not isinstance(current, dict):
                return None
            current = current.get(DEFAULT_LABEL)

    if isinstance(current, dict) and current:
        return current
    return None


def _script_of(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("default"), str):
        return value["default"]
    return None


def derive_legacy_fields(
    exports_field: dict[str, ExportValue],
    spec: Optional[ConditionSpec],
    accumulator: BuildAccumulator,
    package_type: Optional[str] = None,
) -> LegacyFields:
    """Derive ``main``, ``module`` and ``types`` from the default chain.

    ``main`` prefers the leaf's ``require`` and ``module`` is its
    ``import``. ``types`` is the leaf's own ``types`` key, else the
    declaration file paired with the chosen script among all produced
    files.
    """
    leaf = default_leaf(exports_field, spec)
    if leaf is None:
        return LegacyFields()

    module = _script_of(leaf.get("import"))
    main = _script_of(leaf.get("require")) or module

    types = leaf.get("types") if isinstance(leaf.get("types"), str) else None
    if types is None:
        scripts = [module, main] if package_type == "module" else [main, module]
        files = accumulator.all_files()
        for script in scripts:
            types = probe_declaration(script, files, package_type)
            if types:
                break

    return LegacyFields(main=main, module=module, types=types)


# ------------------------------------------------------------------ #
# bin
# ------------------------------------------------------------------ #


def _bin_chunk_path(result: BuildResult) -> Optional[str]:
    scripts = (FileRole.ESM, FileRole.SCRIPT)
    for chunk in result.entry_chunks() or list(result.chunks):
        if classify_file(chunk.file_name) in scripts:
            return to_export_path(result.path_of(chunk))
    return None


def build_bin_field(
    bin_results: Iterable[BuildResult], package_name: Optional[str]
) -> Union[str, dict[str, str], None]:
    """Build the ``bin`` field from the bin passes.

    A package whose only bin id is its own default id (the package name
    without scope) gets the single-string form; otherwise an ``{id: path}``
    map. Returns ``None`` when there are no bins.
    """
    paths: dict[str, str] = {}
    for result in bin_results:
        path = _bin_chunk_path(result)
        if path is not None:
            paths[result.target] = path
    if not paths:
        return None
    if len(paths) == 1 and next(iter(paths)) == default_bin_id(package_name):
        return next(iter(paths.values()))
    return paths
