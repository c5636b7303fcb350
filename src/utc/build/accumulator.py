"""Cross-pass state for one ``utc build`` invocation.

Export synthesis needs every pass's outputs at once, so results are
accumulated as passes finish. The :class:`BuildAccumulator` is created by
:func:`utc.build.run_build`, threaded explicitly through the orchestrator,
the classifier and the synthesizer, and dropped when the invocation ends.
Nothing here is module-level state, so two builds in one process (for
instance two tests) never see each other's outputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from utc.conditions import ConditionCombination
from utc.models import ChunkDescriptor

ENTRIES_TARGET = "entries"


@dataclass(frozen=True)
class BuildResult:
    """The chunk manifest emitted by one build pass.

    Attributes:
        combination: The active conditions of the pass.
        out_dir: Project-relative POSIX output directory (``dist/node``).
        chunks: Every emitted chunk, all build phases flattened.
        target: ``"entries"`` for condition passes, the bin id for bin passes.
    """

    combination: ConditionCombination
    out_dir: str
    chunks: tuple[ChunkDescriptor, ...] = ()
    target: str = ENTRIES_TARGET

    @property
    def is_bin(self) -> bool:
        return self.target != ENTRIES_TARGET

    def entry_chunks(self) -> list[ChunkDescriptor]:
        return [chunk for chunk in self.chunks if chunk.is_entry_chunk]

    def path_of(self, chunk: ChunkDescriptor) -> str:
        file_name = chunk.file_name.replace("\\", "/")
        return f"{self.out_dir}/{file_name}"


@dataclass
class OutputFileGroup:
    """Output files of one entry subpath under one condition combination."""

    subpath: str
    combination_key: str
    files: list[str] = field(default_factory=list)

    def add(self, path: str) -> None:
        if path not in self.files:
            self.files.append(path)

    def __bool__(self) -> bool:
        return bool(self.files)


class BuildAccumulator:
    """Owns every :class:`BuildResult` and :class:`OutputFileGroup` of one run."""

    def __init__(self) -> None:
        self.results: list[BuildResult] = []
        self._groups: dict[tuple[str, str], OutputFileGroup] = {}
        self._completed: set[str] = set()

    def record(self, result: BuildResult) -> None:
        self.results.append(result)

    def add_file(self, subpath: str, combination_key: str, path: str) -> None:
        key = (subpath, combination_key)
        group = self._groups.get(key)
        if group is None:
            group = self._groups[key] = OutputFileGroup(subpath, combination_key)
        group.add(path)

    def group(self, subpath: str, combination_key: str) -> Optional[OutputFileGroup]:
        return self._groups.get((subpath, combination_key))

    def files(self, subpath: str, combination: ConditionCombination) -> list[str]:
        """Output files of *subpath* under *combination*, empty when none."""
        group = self.group(subpath, combination.key)
        return list(group.files) if group else []

    def mark_complete(self, combination: ConditionCombination) -> None:
        self._completed.add(combination.key)

    def is_complete(self, combinations: Iterable[ConditionCombination]) -> bool:
        """Whether every combination in *combinations* has finished its pass."""
        return all(c.key in self._completed for c in combinations)

    def all_files(self) -> list[str]:
        """Every output file of every condition pass, in recording order."""
        seen: dict[str, None] = {}
        for result in self.results:
            if result.is_bin:
                continue
            for chunk in result.chunks:
                seen.setdefault(result.path_of(chunk), None)
        return list(seen)

    def bin_results(self) -> list[BuildResult]:
        return [result for result in self.results if result.is_bin]
