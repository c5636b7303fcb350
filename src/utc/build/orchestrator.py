"""Build pass orchestration.

Passes run strictly one after another: one per condition combination over
all entries, then one per bin target. Every finished pass is recorded into
the :class:`~utc.build.accumulator.BuildAccumulator` and classified right
away. The first failing pass raises :class:`~utc.exceptions.BuildError`
and aborts the run; nothing already written is rolled back.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional, Sequence

from utc.build.accumulator import BuildAccumulator, BuildResult
from utc.build.bin_helper import make_executable
from utc.build.builder import Builder
from utc.build.classifier import OutputClassifier
from utc.build.constants import compile_constant_modules
from utc.conditions import ConditionCombination, ConditionSpec, build_resolve_config
from utc.exceptions import BuildError
from utc.models import BuildConfig, BuildRequest
from utc.output import debug, progress

BIN_DIR = "bin"


def clean_out_dir(project_root: str | Path, out_dir: str) -> bool:
    """Remove ``<project_root>/<out_dir>`` if present.

    Returns:
        True if something was removed.

    Raises:
        BuildError: If *out_dir* resolves to the project root or outside it.
    """
    root = Path(project_root).resolve()
    target = (root / out_dir).resolve()
    if target == root or root not in target.parents:
        raise BuildError(f"Refusing to clean output directory outside the project: {target}")
    if not target.exists():
        return False
    debug(f"Removing {target}")
    shutil.rmtree(target)
    return True


def pass_out_dir(out_dir: str, combination: ConditionCombination) -> str:
    """``dist`` for the unconditional pass, ``dist/<a>/<b>`` otherwise."""
    out_dir = out_dir.rstrip("/")
    suffix = combination.out_dir_suffix
    return f"{out_dir}/{suffix}" if suffix else out_dir


class BuildOrchestrator:
    """Drive a :class:`~utc.build.builder.Builder` through every pass.

    Args:
        builder: The bundler boundary.
        project_root: Absolute project directory (the bundler's cwd).
        build_config: The ``web.build`` settings.
        spec: The parsed condition spec, used for compile constants.
    """

    def __init__(
        self,
        builder: Builder,
        project_root: str | Path,
        build_config: BuildConfig,
        spec: Optional[ConditionSpec] = None,
    ) -> None:
        self.builder = builder
        self.project_root = Path(project_root)
        self.config = build_config
        self.spec = spec

    def request_for(
        self,
        entries: Sequence[str],
        combination: ConditionCombination,
        out_dir: str,
    ) -> BuildRequest:
        return BuildRequest(
            cwd=str(self.project_root),
            entry=list(entries),
            out_dir=out_dir,
            sourcemap=self.config.sourcemap,
            strict=self.config.strict,
            resolution=build_resolve_config(combination),
            constants=compile_constant_modules(self.spec, combination),
        )

    def run(
        self,
        entries: Sequence[str],
        combinations: Sequence[ConditionCombination],
        accumulator: BuildAccumulator,
        classifier: OutputClassifier,
    ) -> list[BuildResult]:
        """Run one pass per combination over all *entries*.

        Raises:
            BuildError: If any pass fails; later passes do not run.
        """
        results: list[BuildResult] = []
        total = len(combinations)
        for index, combination in enumerate(combinations, start=1):
            out_dir = pass_out_dir(self.config.out_dir, combination)
            progress(f"[{index}/{total}] Building {combination} -> {out_dir}")
            manifest = self.builder.build(self.request_for(entries, combination, out_dir))
            result = BuildResult(
                combination=combination,
                out_dir=out_dir,
                chunks=tuple(manifest.chunks),
            )
            accumulator.record(result)
            classifier.collect(result, accumulator)
            accumulator.mark_complete(combination)
            results.append(result)
        return results

    def run_bins(
        self, bin_map: dict[str, str], accumulator: BuildAccumulator
    ) -> list[BuildResult]:
        """Run one unconditional ESM-only pass per bin target.

        Each target lands in ``dist/bin/<id>``; its entry chunks get a
        hashbang and the executable bit.
        """
        results: list[BuildResult] = []
        combination = ConditionCombination()
        for bin_id, file in bin_map.items():
            out_dir = f"{self.config.out_dir.rstrip('/')}/{BIN_DIR}/{bin_id}"
            progress(f"Building bin '{bin_id}' -> {out_dir}")
            request = self.request_for([file], combination, out_dir).model_copy(
                update={"format": ["esm"], "declarations": False}
            )
            manifest = self.builder.build(request)
            result = BuildResult(
                combination=combination,
                out_dir=out_dir,
                chunks=tuple(manifest.chunks),
                target=bin_id,
            )
            if not result.entry_chunks():
                raise BuildError(f"Bin '{bin_id}' produced no entry chunk ({file})")
            make_executable(result, self.project_root)
            accumulator.record(result)
            results.append(result)
        return results
