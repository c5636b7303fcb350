"""Tests for entry subpath resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from utc.entries import (
    common_ancestor,
    entry_name,
    entry_output_stems,
    normalize_match_path,
    resolve_bin_map,
    strip_script_extension,
    to_entry_path,
    to_entry_subpath,
    to_entry_subpath_map,
)
from utc.exceptions import ConfigError, EntryConflictError
from utc.scanner.modules import SourceModule, Visibility


def _root(path: Path, module_path: str | None = None) -> SourceModule:
    return SourceModule(path=path, visibility=Visibility.PUBLIC, module_path=module_path)


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


class TestPathHelpers:

    def test_normalize_match_path(self, tmp_path: Path) -> None:
        assert normalize_match_path(tmp_path / "src" / "a.ts", tmp_path) == "src/a.ts"
        assert normalize_match_path(tmp_path, tmp_path) == "."

    def test_outside_base_is_absolute(self, tmp_path: Path) -> None:
        outside = tmp_path.parent / "other.ts"
        assert normalize_match_path(outside, tmp_path) == outside.as_posix()

    def test_to_entry_path(self, tmp_path: Path) -> None:
        assert to_entry_path(tmp_path / "src" / "index.ts", tmp_path) == "./src/index.ts"

    @pytest.mark.parametrize(
        "path, expected",
        [("a/index.d.ts", "a/index"), ("a.mts", "a"), ("a.test.ts", "a.test"), ("README", "README")],
    )
    def test_strip_script_extension(self, path: str, expected: str) -> None:
        assert strip_script_extension(path) == expected

    @pytest.mark.parametrize(
        "entry, expected",
        [("./src/index.ts", "index"), ("src\\io\\fs.mts", "fs"), ("./src/cli.tsx", "cli")],
    )
    def test_entry_name(self, entry: str, expected: str) -> None:
        assert entry_name(entry) == expected


class TestCommonAncestor:

    def test_single_file_is_its_directory(self, tmp_path: Path) -> None:
        assert common_ancestor(["src/index.ts"], tmp_path) == tmp_path / "src"

    def test_nested_files(self, tmp_path: Path) -> None:
        files = ["src/index.ts", "src/io/fs.ts", "src/io/net/socket.ts"]
        assert common_ancestor(files, tmp_path) == tmp_path / "src"

    def test_empty(self, tmp_path: Path) -> None:
        assert common_ancestor([], tmp_path) == tmp_path


# ---------------------------------------------------------------------------
# to_entry_subpath
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "rel, expected",
    [
        ("index.ts", "."),
        ("index.d.ts", "."),
        ("utils.ts", "./utils"),
        ("io/index.mts", "./io"),
        ("io/fs.d.ts", "./io/fs"),
        ("io/Index.tsx", "./io"),
        ("reindex.ts", "./reindex"),
    ],
)
def test_to_entry_subpath(tmp_path: Path, rel: str, expected: str) -> None:
    assert to_entry_subpath(tmp_path, tmp_path / rel) == expected


# ---------------------------------------------------------------------------
# to_entry_subpath_map
# ---------------------------------------------------------------------------


class TestEntrySubpathMap:

    def test_auto_subpaths_relative_to_common_ancestor(self, tmp_path: Path) -> None:
        modules = [
            _root(tmp_path / "src" / "index.ts"),
            _root(tmp_path / "src" / "utils.ts"),
            _root(tmp_path / "src" / "io" / "index.ts"),
        ]
        assert to_entry_subpath_map(modules, tmp_path) == {
            ".": "./src/index.ts",
            "./utils": "./src/utils.ts",
            "./io": "./src/io/index.ts",
        }

    def test_single_file_is_named_after_its_stem(self, tmp_path: Path) -> None:
        modules = [_root(tmp_path / "src" / "lib" / "main.ts")]
        assert to_entry_subpath_map(modules, tmp_path) == {"./main": "./src/lib/main.ts"}

    def test_single_index_file_is_root_subpath(self, tmp_path: Path) -> None:
        modules = [_root(tmp_path / "src" / "lib" / "index.ts")]
        assert to_entry_subpath_map(modules, tmp_path) == {".": "./src/lib/index.ts"}

    def test_module_path_override(self, tmp_path: Path) -> None:
        modules = [
            _root(tmp_path / "src" / "index.ts"),
            _root(tmp_path / "src" / "deep" / "impl.ts", module_path="./helpers"),
        ]
        assert to_entry_subpath_map(modules, tmp_path)["./helpers"] == "./src/deep/impl.ts"

    def test_duplicate_file_is_not_a_conflict(self, tmp_path: Path) -> None:
        path = tmp_path / "src" / "index.ts"
        assert to_entry_subpath_map([_root(path), _root(path)], tmp_path) == {
            ".": "./src/index.ts"
        }

    def test_conflict_between_override_and_auto(self, tmp_path: Path) -> None:
        modules = [
            _root(tmp_path / "src" / "index.ts"),
            _root(tmp_path / "src" / "utils.ts"),
            _root(tmp_path / "src" / "a.ts", module_path="./utils"),
        ]
        with pytest.raises(EntryConflictError) as exc_info:
            to_entry_subpath_map(modules, tmp_path)
        exc = exc_info.value
        assert exc.subpath == "./utils"
        assert exc.existing == "./src/utils.ts"
        assert exc.conflicting == "./src/a.ts"
        assert exc.exit_code == 4
        assert isinstance(exc, ConfigError)

    def test_conflict_between_index_and_file(self, tmp_path: Path) -> None:
        modules = [
            _root(tmp_path / "src" / "index.ts"),
            _root(tmp_path / "src" / "io.ts"),
            _root(tmp_path / "src" / "io" / "index.ts"),
        ]
        with pytest.raises(EntryConflictError, match="'./io'"):
            to_entry_subpath_map(modules, tmp_path)

    def test_empty(self, tmp_path: Path) -> None:
        assert to_entry_subpath_map([], tmp_path) == {}

    def test_output_stems_follow_subpath_map(self, tmp_path: Path) -> None:
        entry_map = {
            ".": "./src/index.ts",
            "./io": "./src/io/index.mts",
            "./helpers": "./src/deep/impl.ts",
        }
        assert entry_output_stems(entry_map, tmp_path) == {
            ".": "index",
            "./io": "io/index",
            "./helpers": "deep/impl",
        }


# ---------------------------------------------------------------------------
# resolve_bin_map
# ---------------------------------------------------------------------------


class TestBinMap:

    def test_several_ids_per_file(self, tmp_path: Path) -> None:
        modules = [SourceModule(path=tmp_path / "src" / "cli.ts", bin_ids=("tool", "t"))]
        assert resolve_bin_map(modules, tmp_path) == {
            "tool": "./src/cli.ts",
            "t": "./src/cli.ts",
        }

    def test_conflicting_bin_id(self, tmp_path: Path) -> None:
        modules = [
            SourceModule(path=tmp_path / "a.ts", bin_ids=("tool",)),
            SourceModule(path=tmp_path / "b.ts", bin_ids=("tool",)),
        ]
        with pytest.raises(EntryConflictError, match="Bin conflict"):
            resolve_bin_map(modules, tmp_path)
