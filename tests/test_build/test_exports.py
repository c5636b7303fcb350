"""Tests for exports / legacy field / bin field synthesis."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from utc.build.accumulator import BuildAccumulator, BuildResult
from utc.build.classifier import OutputClassifier
from utc.build.exports import (
    ExportEntry,
    LegacyFields,
    build_bin_field,
    build_export_value,
    build_exports_field,
    create_export_entry,
    declaration_candidates,
    default_leaf,
    derive_legacy_fields,
    probe_declaration,
    to_export_path,
)
from utc.conditions import ConditionCombination, get_condition_combinations, parse_condition_spec
from utc.models import ChunkDescriptor, TypesMode


STANDARD = ("index.mjs", "index.cjs", "index.d.ts")


def _accumulate(root: Path, passes, entry_map=None) -> BuildAccumulator:
    """Record ``(combination, out_dir, file names)`` passes the way the orchestrator does."""
    classifier = OutputClassifier(entry_map or {".": "./src/index.ts"}, root)
    accumulator = BuildAccumulator()
    for combination, out_dir, names in passes:
        result = BuildResult(
            combination=combination,
            out_dir=out_dir,
            chunks=tuple(
                ChunkDescriptor(file_name=n, is_entry_chunk=not n.endswith(".d.ts")) for n in names
            ),
        )
        accumulator.record(result)
        classifier.collect(result, accumulator)
        accumulator.mark_complete(combination)
    return accumulator


def _leaf(out_dir: str) -> dict[str, str]:
    return {
        "types": f"./{out_dir}/index.d.ts",
        "import": f"./{out_dir}/index.mjs",
        "require": f"./{out_dir}/index.cjs",
        "default": f"./{out_dir}/index.mjs",
    }


# ---------------------------------------------------------------------------
# Declaration probing
# ---------------------------------------------------------------------------


class TestDeclarations:

    @pytest.mark.parametrize(
        "script, package_type, expected",
        [
            ("a.mjs", None, [".d.mts", ".d.ts"]),
            ("a.cjs", "module", [".d.cts", ".d.ts"]),
            ("a.js", "commonjs", [".d.ts", ".d.cts", ".d.mts"]),
            ("a.js", "module", [".d.ts", ".d.mts", ".d.cts"]),
        ],
    )
    def test_candidates(self, script: str, package_type, expected: list[str]) -> None:
        assert declaration_candidates(script, package_type) == expected

    def test_probe_prefers_dialect(self) -> None:
        files = ["dist/index.d.ts", "dist/index.d.mts"]
        assert probe_declaration("./dist/index.mjs", files, None) == "./dist/index.d.mts"
        assert probe_declaration("./dist/index.cjs", files, None) == "./dist/index.d.ts"

    def test_probe_nothing(self) -> None:
        assert probe_declaration(None, ["dist/index.d.ts"], None) is None
        assert probe_declaration("./dist/other.mjs", ["dist/index.d.ts"], None) is None

    def test_to_export_path(self) -> None:
        assert to_export_path("dist\\index.mjs") == "./dist/index.mjs"
        assert to_export_path("./dist/index.mjs") == "./dist/index.mjs"


# ---------------------------------------------------------------------------
# ExportEntry
# ---------------------------------------------------------------------------


class TestExportEntry:

    def test_create_from_standard_outputs(self) -> None:
        entry = create_export_entry(["dist/index.mjs", "dist/index.cjs", "dist/index.d.ts"])
        assert entry.types == "./dist/index.d.ts"
        assert entry.import_ == "./dist/index.mjs"
        assert entry.require == "./dist/index.cjs"
        assert entry.default == "./dist/index.mjs"

    def test_commonjs_default_is_require(self) -> None:
        entry = create_export_entry(["dist/index.mjs", "dist/index.cjs"], "commonjs")
        assert entry.default == "./dist/index.cjs"

    def test_plain_js_serves_both_branches(self) -> None:
        entry = create_export_entry(["dist/index.js"])
        assert entry.import_ == entry.require == entry.default == "./dist/index.js"

    def test_only_declarations_is_not_empty(self) -> None:
        assert not create_export_entry(["dist/index.d.ts"]).is_empty
        assert create_export_entry(["dist/index.mjs.map"]).is_empty

    def test_types_key_comes_first(self) -> None:
        value = ExportEntry(
            types="./t.d.ts", import_="./i.mjs", require="./r.cjs", default="./i.mjs"
        ).to_export_value()
        assert list(value) == ["types", "import", "require", "default"]

    def test_branch_types(self) -> None:
        files = ["dist/index.mjs", "dist/index.cjs", "dist/index.d.mts", "dist/index.d.cts"]
        value = create_export_entry(files).to_export_value(TypesMode.BRANCH)
        assert value == {
            "import": {"types": "./dist/index.d.mts", "default": "./dist/index.mjs"},
            "require": {"types": "./dist/index.d.cts", "default": "./dist/index.cjs"},
            "default": "./dist/index.mjs",
        }

    def test_no_types(self) -> None:
        value = create_export_entry(list(f"dist/{n}" for n in STANDARD)).to_export_value(
            TypesMode.NONE
        )
        assert "types" not in value
        assert value["import"] == "./dist/index.mjs"


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestUnconditional:

    def test_single_entry(self, tmp_path: Path) -> None:
        accumulator = _accumulate(tmp_path, [(ConditionCombination(), "dist", STANDARD)])
        exports = build_exports_field({".": "./src/index.ts"}, None, accumulator)
        assert exports == {".": _leaf("dist")}

        legacy = derive_legacy_fields(exports, None, accumulator)
        assert legacy == LegacyFields(
            main="./dist/index.cjs",
            module="./dist/index.mjs",
            types="./dist/index.d.ts",
        )

    def test_nested_index_does_not_shadow_entry(self, tmp_path: Path) -> None:
        names = ("utils/index.mjs", "utils/index.cjs", "utils/index.d.ts", *STANDARD)
        accumulator = _accumulate(tmp_path, [(ConditionCombination(), "dist", names)])
        exports = build_exports_field({".": "./src/index.ts"}, None, accumulator)
        assert exports == {".": _leaf("dist")}

    def test_subpath_without_output_is_omitted(self, tmp_path: Path) -> None:
        entry_map = {".": "./src/index.ts", "./utils": "./src/utils.ts"}
        accumulator = _accumulate(
            tmp_path, [(ConditionCombination(), "dist", STANDARD)], entry_map
        )
        assert list(build_exports_field(entry_map, None, accumulator)) == ["."]


class TestFlatConditions:

    SPEC = parse_condition_spec(["node", "browser", "default"])

    def _passes(self, labels):
        return [(ConditionCombination.from_active([label]), f"dist/{label}", STANDARD) for label in labels]

    def test_one_key_per_label(self, tmp_path: Path) -> None:
        accumulator = _accumulate(tmp_path, self._passes(["node", "browser", "default"]))
        value = build_export_value(".", self.SPEC, accumulator)
        assert list(value) == ["node", "browser", "default"]
        assert value["node"] == _leaf("dist/node")
        assert value["default"] == _leaf("dist/default")

    def test_legacy_from_default_branch(self, tmp_path: Path) -> None:
        accumulator = _accumulate(tmp_path, self._passes(["node", "browser", "default"]))
        exports = build_exports_field({".": "./src/index.ts"}, self.SPEC, accumulator)
        legacy = derive_legacy_fields(exports, self.SPEC, accumulator)
        assert legacy.main == "./dist/default/index.cjs"
        assert legacy.module == "./dist/default/index.mjs"
        assert legacy.types == "./dist/default/index.d.ts"

    def test_label_without_output_is_pruned(self, tmp_path: Path) -> None:
        passes = self._passes(["node", "default"]) + [
            (ConditionCombination.from_active(["browser"]), "dist/browser", ())
        ]
        value = build_export_value(".", self.SPEC, _accumulate(tmp_path, passes))
        assert list(value) == ["node", "default"]

    def test_without_default_legacy_fields_are_omitted(self, tmp_path: Path) -> None:
        spec = parse_condition_spec(["node", "browser"])
        accumulator = _accumulate(tmp_path, self._passes(["node", "browser"]))
        exports = build_exports_field({".": "./src/index.ts"}, spec, accumulator)
        assert list(exports["."]) == ["node", "browser"]
        assert derive_legacy_fields(exports, spec, accumulator) == LegacyFields()

    def test_without_default_unconditional_pass_is_fallback(self, tmp_path: Path) -> None:
        spec = parse_condition_spec(["node"])
        passes = self._passes(["node"]) + [(ConditionCombination(), "dist", STANDARD)]
        value = build_export_value(".", spec, _accumulate(tmp_path, passes))
        assert value["default"] == _leaf("dist")


class TestGroupedConditions:

    SPEC = parse_condition_spec(
        {"env": ["cocos", "node", "default"], "platform": ["ios", "android", "default"]}
    )

    def _passes(self, skip=()):
        passes = []
        for combination in get_condition_combinations(self.SPEC):
            names = () if combination.out_dir_suffix in skip else STANDARD
            passes.append((combination, f"dist/{combination.out_dir_suffix}", names))
        return passes

    def test_nested_tree(self, tmp_path: Path) -> None:
        value = build_export_value(".", self.SPEC, _accumulate(tmp_path, self._passes()))
        assert list(value) == ["cocos", "node", "default"]
        assert list(value["cocos"]) == ["ios", "android", "default"]
        assert value["cocos"]["ios"] == _leaf("dist/cocos/ios")
        assert value["default"]["default"] == _leaf("dist/default/default")

    def test_empty_combinations_are_pruned(self, tmp_path: Path) -> None:
        skip = {"cocos/android", "node/ios", "node/android", "node/default"}
        value = build_export_value(".", self.SPEC, _accumulate(tmp_path, self._passes(skip)))
        assert list(value) == ["cocos", "default"]
        assert list(value["cocos"]) == ["ios", "default"]

    def test_legacy_from_default_default(self, tmp_path: Path) -> None:
        accumulator = _accumulate(tmp_path, self._passes())
        exports = build_exports_field({".": "./src/index.ts"}, self.SPEC, accumulator)
        leaf = default_leaf(exports, self.SPEC)
        assert leaf == _leaf("dist/default/default")
        assert derive_legacy_fields(exports, self.SPEC, accumulator).main == (
            "./dist/default/default/index.cjs"
        )

    def test_pruned_default_chain_omits_legacy(self, tmp_path: Path) -> None:
        accumulator = _accumulate(tmp_path, self._passes({"default/default"}))
        exports = build_exports_field({".": "./src/index.ts"}, self.SPEC, accumulator)
        assert default_leaf(exports, self.SPEC) is None
        assert derive_legacy_fields(exports, self.SPEC, accumulator) == LegacyFields()

    def test_group_without_default_omits_legacy(self, tmp_path: Path) -> None:
        spec = parse_condition_spec({"env": ["node", "default"], "platform": ["ios"]})
        passes = [
            (c, f"dist/{c.out_dir_suffix}", STANDARD) for c in get_condition_combinations(spec)
        ]
        accumulator = _accumulate(tmp_path, passes)
        exports = build_exports_field({".": "./src/index.ts"}, spec, accumulator)
        assert exports["."]["default"]["ios"] == _leaf("dist/default/ios")
        assert derive_legacy_fields(exports, spec, accumulator) == LegacyFields()

    def test_synthesis_is_deterministic(self, tmp_path: Path) -> None:
        accumulator = _accumulate(tmp_path, self._passes({"node/android"}))
        first = build_exports_field({".": "./src/index.ts"}, self.SPEC, accumulator)
        second = build_exports_field({".": "./src/index.ts"}, self.SPEC, accumulator)
        assert json.dumps(first) == json.dumps(second)


def test_legacy_types_probed_when_leaf_has_none(tmp_path: Path) -> None:
    names = ("index.mjs", "index.cjs", "index.d.mts", "index.d.cts")
    accumulator = _accumulate(tmp_path, [(ConditionCombination(), "dist", names)])
    exports = build_exports_field(
        {".": "./src/index.ts"}, None, accumulator, "module", TypesMode.BRANCH
    )
    assert "types" not in exports["."]
    legacy = derive_legacy_fields(exports, None, accumulator, "module")
    assert legacy.types == "./dist/index.d.mts"
    legacy = derive_legacy_fields(exports, None, accumulator, "commonjs")
    assert legacy.types == "./dist/index.d.cts"


# ---------------------------------------------------------------------------
# bin
# ---------------------------------------------------------------------------


def _bin_result(bin_id: str) -> BuildResult:
    return BuildResult(
        combination=ConditionCombination(),
        out_dir=f"dist/bin/{bin_id}",
        chunks=(
            ChunkDescriptor(file_name="cli.mjs", is_entry_chunk=True),
            ChunkDescriptor(file_name="cli.mjs.map"),
        ),
        target=bin_id,
    )


class TestBinField:

    def test_single_default_id_is_string(self) -> None:
        assert build_bin_field([_bin_result("widgets")], "@acme/widgets") == (
            "./dist/bin/widgets/cli.mjs"
        )

    def test_named_ids_are_a_map(self) -> None:
        assert build_bin_field([_bin_result("widgets"), _bin_result("w")], "@acme/widgets") == {
            "widgets": "./dist/bin/widgets/cli.mjs",
            "w": "./dist/bin/w/cli.mjs",
        }
        assert build_bin_field([_bin_result("other")], "@acme/widgets") == {
            "other": "./dist/bin/other/cli.mjs"
        }

    def test_no_bins(self) -> None:
        assert build_bin_field([], "pkg") is None
