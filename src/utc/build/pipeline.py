"""The full ``utc build`` pipeline.

:func:`run_build` wires the stages together for one invocation:

1. read ``package.json`` (name and module type),
2. scan the sources and resolve the entry map and the bin map -- every
   configuration error surfaces here, before anything is deleted or built,
3. wipe the output directory,
4. run the condition passes, then the bin passes,
5. check that every combination finished,
6. synthesize and write the ``package.json`` fields,
7. write the compile-constant declaration file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from utc.build.accumulator import BuildAccumulator
from utc.build.builder import Builder
from utc.build.classifier import OutputClassifier
from utc.build.constants import write_compile_constant_dts
from utc.build.exports import build_bin_field, build_exports_field, derive_legacy_fields
from utc.build.orchestrator import BuildOrchestrator, clean_out_dir
from utc.build.package_json import (
    apply_export_fields,
    package_name,
    package_type,
    read_package_json,
    write_package_json,
)
from utc.conditions import get_condition_combinations
from utc.entries import EntryMap, resolve_bin_map, to_entry_subpath_map
from utc.exceptions import BuildError, ConfigError
from utc.models import ProjectConfig
from utc.output import debug, info, warning
from utc.scanner import scan_sources
from utc.scanner.modules import ModuleScanner, SourceModule, bin_modules, root_modules


@dataclass
class BuildSummary:
    """What one ``utc build`` run did."""

    entry_map: EntryMap = field(default_factory=dict)
    bin_map: dict[str, str] = field(default_factory=dict)
    passes: int = 0
    exports: Optional[dict[str, Any]] = None
    package_json: Optional[Path] = None
    compile_constant_dts: Optional[Path] = None


def resolve_entry_modules(
    config: ProjectConfig,
    scanned: list[SourceModule],
    name: Optional[str],
) -> list[SourceModule]:
    """Return the root modules to publish.

    Explicit ``web.build.entry`` files bypass auto-discovery; their
    ``@modulePath`` annotations are still honoured.

    Raises:
        ConfigError: If an explicit entry file does not exist.
    """
    root = Path(config.project)
    explicit = config.web.build.entry
    if not explicit:
        return root_modules(scanned)

    by_path = {m.path.resolve(): m for m in scanned}
    modules: list[SourceModule] = []
    scanner = ModuleScanner(name)
    for entry in explicit:
        path = (root / entry).resolve()
        if not path.is_file():
            raise ConfigError(f"Entry file not found: {entry}")
        module = by_path.get(path)
        if module is None:
            module = next(iter(scanner.scan([path])), SourceModule(path=path))
        modules.append(module)
    return modules


def run_build(config: ProjectConfig, builder: Builder) -> BuildSummary:
    """Build every pass and rewrite ``package.json``.

    Raises:
        ConfigError: For malformed conditions, annotations or entry conflicts.
        PackageJsonError: If ``package.json`` is missing or invalid.
        BuildError: If any pass fails.
    """
    root = Path(config.project)
    build_config = config.web.build
    spec = build_config.condition_spec()
    combinations = get_condition_combinations(spec)

    pkg = read_package_json(root)
    name = package_name(pkg)

    scanned = scan_sources(config.web.source, root, name)
    entry_modules = resolve_entry_modules(config, scanned, name)
    entry_map = to_entry_subpath_map(entry_modules, root)
    bin_map = resolve_bin_map(bin_modules(scanned), root)
    debug(f"Entries: {entry_map}")
    debug(f"Bins: {bin_map}")

    summary = BuildSummary(entry_map=entry_map, bin_map=bin_map)
    if not entry_map and not bin_map:
        warning("No entry points found: mark a module with @public and @module, or set web.build.entry")
        return summary

    clean_out_dir(root, build_config.out_dir)

    accumulator = BuildAccumulator()
    orchestrator = BuildOrchestrator(builder, root, build_config, spec)
    if entry_map:
        classifier = OutputClassifier(entry_map, root)
        orchestrator.run(list(entry_map.values()), combinations, accumulator, classifier)
        if not accumulator.is_complete(combinations):
            raise BuildError("Not every condition combination finished building")
    if bin_map:
        orchestrator.run_bins(bin_map, accumulator)
    summary.passes = len(accumulator.results)

    if build_config.exports:
        ptype = package_type(pkg)
        exports = build_exports_field(
            entry_map, spec, accumulator, ptype, build_config.types_mode
        )
        legacy = derive_legacy_fields(exports, spec, accumulator, ptype)
        bin_field = build_bin_field(accumulator.bin_results(), name)
        apply_export_fields(pkg, exports, legacy, bin_field)
        summary.exports = exports
        summary.package_json = write_package_json(root, pkg)
        info(f"Updated {summary.package_json}")

    summary.compile_constant_dts = write_compile_constant_dts(
        spec, root, build_config.compile_constant_dts
    )
    if summary.compile_constant_dts is not None:
        info(f"Wrote {summary.compile_constant_dts}")
    return summary
