"""Tests for bin chunk post-processing."""

from __future__ import annotations

import stat
import sys
from pathlib import Path

import pytest

from conftest import write_file
from utc.build.accumulator import BuildResult
from utc.build.bin_helper import HASHBANG, ensure_hashbang, make_executable
from utc.conditions import ConditionCombination
from utc.models import ChunkDescriptor


class TestEnsureHashbang:

    def test_prepends(self, tmp_path: Path) -> None:
        path = write_file(tmp_path / "cli.mjs", "console.log(1);\n")
        assert ensure_hashbang(path) is True
        assert path.read_text() == HASHBANG + "console.log(1);\n"

    def test_existing_hashbang_kept(self, tmp_path: Path) -> None:
        path = write_file(tmp_path / "cli.mjs", "#!/usr/bin/env bun\nrun();\n")
        assert ensure_hashbang(path) is False
        assert path.read_text() == "#!/usr/bin/env bun\nrun();\n"


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
def test_make_executable(tmp_path: Path) -> None:
    write_file(tmp_path / "dist/bin/tool/cli.mjs", "run();\n")
    write_file(tmp_path / "dist/bin/tool/cli.d.ts", "export {};\n")
    result = BuildResult(
        combination=ConditionCombination(),
        out_dir="dist/bin/tool",
        chunks=(
            ChunkDescriptor(file_name="cli.mjs", is_entry_chunk=True),
            ChunkDescriptor(file_name="cli.d.ts", is_entry_chunk=True),
            ChunkDescriptor(file_name="missing.mjs", is_entry_chunk=True),
            ChunkDescriptor(file_name="shared.mjs"),
        ),
        target="tool",
    )
    processed = make_executable(result, tmp_path)
    target = tmp_path / "dist/bin/tool/cli.mjs"
    assert processed == [target]
    assert target.read_text().startswith(HASHBANG)
    assert stat.S_IMODE(target.stat().st_mode) == 0o755
    assert not (tmp_path / "dist/bin/tool/cli.d.ts").read_text().startswith("#!")
