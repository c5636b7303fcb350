"""The bundler boundary.

utc never compiles anything itself. Each build pass is handed to a
:class:`Builder` as a :class:`~utc.models.BuildRequest`, and the builder
answers with the :class:`~utc.models.BuildManifest` of emitted chunks.

:class:`CommandBuilder` runs an external bundler command (``npx tsdown`` by
default) once per pass. The entries, output directory, formats and
declaration flag are passed on the command line; the complete request,
resolution aliasing and compile constants included, is serialized as JSON
into the ``UTC_BUILD_REQUEST`` environment variable for bundler configs
that want it. A bundler that writes a manifest to the path named by
``UTC_BUILD_MANIFEST`` is trusted as-is; otherwise the manifest is derived
by walking the output directory.
"""

from __future__ import annotations

import abc
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from utc.build.classifier import FileRole, classify_file, strip_output_extension
from utc.entries import entry_name, entry_output_stems
from utc.exceptions import BuildError
from utc.models import BuildManifest, BuildRequest, ChunkDescriptor
from utc.output import debug

ENV_REQUEST = "UTC_BUILD_REQUEST"
ENV_MANIFEST = "UTC_BUILD_MANIFEST"

_STDERR_TAIL = 20


class Builder(abc.ABC):
    """Runs one build pass."""

    @abc.abstractmethod
    def build(self, request: BuildRequest) -> BuildManifest:
        """Build *request* and return the emitted chunks.

        Raises:
            BuildError: If the pass fails.
        """


def manifest_from_directory(request: BuildRequest) -> BuildManifest:
    """Derive a single-phase manifest from the files under ``request.out_dir``.

    A script is flagged as an entry chunk when its path without extension
    equals an entry's output stem. Entries whose stem is absent fall back
    to matching the bare base name.
    """
    root = Path(request.cwd) / request.out_dir
    if not root.is_dir():
        return BuildManifest(phases=[])
    scripts = (FileRole.ESM, FileRole.CJS, FileRole.SCRIPT)

    files: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        files.extend(
            (Path(dirpath) / fname).relative_to(root).as_posix() for fname in sorted(filenames)
        )

    stems = entry_output_stems({entry: entry for entry in request.entry}, request.cwd)
    emitted = {strip_output_extension(rel) for rel in files if classify_file(rel) in scripts}
    expected = set(stems.values())
    fallback = {entry_name(entry) for entry, stem in stems.items() if stem not in emitted}

    chunks: list[ChunkDescriptor] = []
    for rel in files:
        stem = strip_output_extension(rel)
        is_entry = classify_file(rel) in scripts and (
            stem in expected or stem.rsplit("/", 1)[-1] in fallback
        )
        chunks.append(ChunkDescriptor(file_name=rel, is_entry_chunk=is_entry))
    return BuildManifest(phases=[chunks])


class CommandBuilder(Builder):
    """Invoke an external bundler command once per pass.

    Args:
        command: The bundler command line, e.g. ``["npx", "tsdown"]``.
        timeout: Seconds before a pass is abandoned; ``None`` waits forever.
    """

    def __init__(self, command: Sequence[str], timeout: Optional[float] = None) -> None:
        if not command:
            raise BuildError("No bundler command configured")
        self.command = list(command)
        self.timeout = timeout

    def argv(self, request: BuildRequest) -> list[str]:
        args = [*self.command, *request.entry, "--out-dir", request.out_dir]
        args.extend(["--format", ",".join(request.format)])
        args.append("--dts" if request.declarations else "--no-dts")
        if request.sourcemap:
            args.append("--sourcemap")
        args.append("--no-clean")
        return args

    def build(self, request: BuildRequest) -> BuildManifest:
        argv = self.argv(request)
        debug(f"Running: {' '.join(argv)}")

        with tempfile.TemporaryDirectory(prefix="utc-build-") as tmp:
            manifest_path = Path(tmp) / "manifest.json"
            env = dict(os.environ)
            env[ENV_REQUEST] = request.model_dump_json(by_alias=True)
            env[ENV_MANIFEST] = str(manifest_path)

            try:
                result = subprocess.run(
                    argv,
                    cwd=request.cwd,
                    env=env,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except FileNotFoundError as exc:
                raise BuildError(f"Bundler executable not found: {argv[0]}") from exc
            except subprocess.TimeoutExpired as exc:
                raise BuildError(
                    f"Bundler timed out after {self.timeout}s for {request.out_dir}"
                ) from exc

            for line in (result.stdout or "").splitlines():
                debug(line)

            if result.returncode != 0:
                tail = "\n".join((result.stderr or "").splitlines()[-_STDERR_TAIL:])
                raise BuildError(
                    f"Bundler failed for {request.out_dir} "
                    f"(exit code {result.returncode}): {' '.join(argv)}"
                    + (f"\n{tail}" if tail else "")
                )

            if manifest_path.is_file() and manifest_path.stat().st_size:
                try:
                    return BuildManifest.model_validate_json(
                        manifest_path.read_text(encoding="utf-8")
                    )
                except ValidationError as exc:
                    raise BuildError(f"Bundler wrote an invalid manifest: {exc}") from exc

        return manifest_from_directory(request)
