"""Shared test fixtures for utc.

Provides reusable fixtures for laying out sample packages on disk,
isolating environment variables, managing output state, and a
:class:`FakeBuilder` that stands in for the external bundler. These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Iterable

import pytest

from utc.build.builder import Builder
from utc.entries import common_ancestor, normalize_match_path, strip_script_extension
from utc.exceptions import BuildError
from utc.models import BuildManifest, BuildRequest, ChunkDescriptor
from utc.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file"). Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep UTC_* variables and crash logs of the real environment out of tests."""
    for var in ("UTC_PROJECT", "UTC_CONDITIONS"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))


# ---------------------------------------------------------------------------
# Sample packages
# ---------------------------------------------------------------------------


def write_file(path: Path, text: str) -> Path:
    """Write *text* to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def write_package(root: Path, files: dict[str, str], pkg: dict[str, Any] | None = None) -> Path:
    """Lay out a package: ``package.json`` plus *files* (relative path -> text)."""
    pkg = pkg if pkg is not None else {"name": "sample", "version": "1.0.0"}
    write_file(root / "package.json", json.dumps(pkg, indent=2) + "\n")
    for rel, text in files.items():
        write_file(root / rel, text)
    return root


ROOT_MODULE = "/**\n * Package entry.\n * @public\n * @module\n */\nexport const value = 1;\n"


@pytest.fixture
def make_package(tmp_path: Path):
    """Factory fixture: ``make_package(files, pkg=None, name="pkg")`` -> package root."""

    def _make(files: dict[str, str], pkg: dict[str, Any] | None = None, name: str = "pkg") -> Path:
        return write_package(tmp_path / name, files, pkg)

    return _make


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A scoped ESM package with two root modules, an internal module and a bin.

    Layout::

        package.json        {"name": "@acme/widgets", "type": "module", ...}
        src/index.ts        @public @module
        src/utils.ts        @public @module
        src/internal.ts     @internal
        src/cli.ts          @bin
    """
    return write_package(
        tmp_path / "widgets",
        {
            "src/index.ts": ROOT_MODULE,
            "src/utils.ts": "/** @public @module */\nexport function util() {}\n",
            "src/internal.ts": "/** @internal */\nexport const hidden = true;\n",
            "src/cli.ts": "#!/usr/bin/env node\n/** @bin */\nconsole.log('hi');\n",
        },
        {
            "name": "@acme/widgets",
            "version": "1.0.0",
            "description": "Sample package",
            "type": "module",
            "main": "./old/main.js",
            "scripts": {"test": "vitest"},
        },
    )


# ---------------------------------------------------------------------------
# Bundler stand-in
# ---------------------------------------------------------------------------


class FakeBuilder(Builder):
    """Fabricates unbundled output the way the real bundler lays it out.

    Every entry yields ``<stem>.mjs`` (ESM phase) and ``<stem>.cjs`` (CJS
    phase) plus source maps, with *declaration_suffixes* emitted in the
    first phase when declarations are requested. Files are written to disk
    so bin post-processing has something to work on.

    Args:
        fail_on: Output directories whose pass raises :class:`BuildError`.
        empty: Output directories whose pass emits nothing.
        declaration_suffixes: Declaration extensions to emit per entry.
    """

    def __init__(
        self,
        fail_on: Iterable[str] = (),
        empty: Iterable[str] = (),
        declaration_suffixes: tuple[str, ...] = (".d.ts",),
    ) -> None:
        self.fail_on = set(fail_on)
        self.empty = set(empty)
        self.declaration_suffixes = declaration_suffixes
        self.requests: list[BuildRequest] = []

    @property
    def out_dirs(self) -> list[str]:
        return [r.out_dir for r in self.requests]

    def build(self, request: BuildRequest) -> BuildManifest:
        self.requests.append(request)
        if request.out_dir in self.fail_on:
            raise BuildError(f"Bundler failed for {request.out_dir} (exit code 1)")
        if request.out_dir in self.empty:
            return BuildManifest(phases=[])

        root = Path(request.cwd)
        ancestor = common_ancestor(request.entry, root)
        stems = [
            strip_script_extension(
                normalize_match_path(os.path.abspath(root / entry), ancestor)
            )
            for entry in request.entry
        ]

        phases: list[list[ChunkDescriptor]] = []
        for index, fmt in enumerate(request.format):
            ext = ".mjs" if fmt == "esm" else ".cjs"
            chunks: list[ChunkDescriptor] = []
            for stem in stems:
                chunks.append(ChunkDescriptor(file_name=stem + ext, is_entry_chunk=True))
                chunks.append(ChunkDescriptor(file_name=stem + ext + ".map"))
                if request.declarations and index == 0:
                    chunks.extend(
                        ChunkDescriptor(file_name=stem + suffix)
                        for suffix in self.declaration_suffixes
                    )
            phases.append(chunks)

        for chunk in (c for phase in phases for c in phase):
            write_file(root / request.out_dir / chunk.file_name, "export {};\n")
        return BuildManifest(phases=phases)


@pytest.fixture
def fake_builder() -> FakeBuilder:
    return FakeBuilder()


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
