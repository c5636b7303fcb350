"""Canonical Pydantic models shared across all utc modules.

The models fall into two groups:

**Configuration models** -- loaded from ``utc.config.json``,
``utc.config.yaml`` or the ``"utc"`` key of ``package.json``:
    :class:`BuildConfig`, :class:`WebConfig`, and :class:`ProjectConfig`.

**Builder wire models** -- exchanged with the external bundler, one request
and one manifest per build pass:
    :class:`ResolutionAliasing`, :class:`BuildRequest`,
    :class:`ChunkDescriptor`, and :class:`BuildManifest`.

All models use Pydantic v2 and accept camelCase keys (``compileConstantDts``,
``isEntryChunk``) as well as snake_case field names.
"""

from __future__ import annotations

import enum
import json
import shlex
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class TypesMode(str, enum.Enum):
    """How declaration files appear inside the ``exports`` field.

    ``SHARED`` emits one ``types`` key first in every leaf. ``BRANCH``
    nests a ``types`` key inside the ``import`` and ``require`` branches
    so CJS and ESM consumers can get different declaration dialects.
    ``NONE`` leaves declaration discovery to the consumer's type-checker.
    """

    SHARED = "shared"
    BRANCH = "branch"
    NONE = "none"


# --- Configuration ---


class BuildConfig(BaseModel):
    """Settings for ``utc build`` (the ``web.build`` section).

    Example::

        BuildConfig(
            conditions={"env": ["node", "default"], "platform": ["ios", "default"]},
            export_types=True,
        )
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    entry: Optional[list[str]] = Field(
        default=None,
        description="Explicit entry files; auto-discovered from @public @module doc comments when unset",
    )
    conditions: Optional[Union[list[str], dict[str, list[str]]]] = Field(
        default=None,
        description="Flat list of condition labels or mapping of group name to labels",
    )
    exports: bool = Field(
        default=True, description="Rewrite the exports field of package.json"
    )
    export_types: Optional[bool] = Field(
        default=None,
        description="true: per-branch types in exports, false: no types, unset: shared types key",
    )
    compile_constant_dts: Optional[str] = Field(
        default="src/compile-constant.d.ts",
        description="Where to write the compile-constant module declarations",
    )
    strict: bool = Field(default=False, description="Ask the bundler for strict package checks")
    sourcemap: bool = True
    out_dir: str = Field(default="dist", description="Root output directory")
    builder: list[str] = Field(
        default_factory=lambda: ["npx", "tsdown"],
        description="Bundler command line, invoked once per build pass",
    )

    @field_validator("entry", mode="before")
    @classmethod
    def _entry_as_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("conditions", mode="before")
    @classmethod
    def _conditions_from_json(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError(f"conditions must be valid JSON: {exc}") from exc
        return value

    @field_validator("builder", mode="before")
    @classmethod
    def _builder_from_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return shlex.split(value)
        return value

    @property
    def types_mode(self) -> TypesMode:
        if self.export_types is None:
            return TypesMode.SHARED
        return TypesMode.BRANCH if self.export_types else TypesMode.NONE

    def condition_spec(self):  # noqa: ANN201
        """Parse :attr:`conditions` into a tagged condition spec (or ``None``)."""
        from utc.conditions import parse_condition_spec

        return parse_condition_spec(self.conditions)


class WebConfig(BaseModel):
    """The ``web`` section: source globs plus build settings.

    Lint-related keys of the same section are preserved in ``model_extra``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    source: list[str] = Field(
        default_factory=lambda: ["src"],
        description="Source files, directories, or glob patterns",
    )
    build: BuildConfig = Field(default_factory=BuildConfig)

    @field_validator("source", mode="before")
    @classmethod
    def _source_as_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class ProjectConfig(BaseModel):
    """Fully resolved configuration for one invocation."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    project: str = Field(description="Absolute project root")
    web: WebConfig = Field(default_factory=WebConfig)


# --- Builder wire models ---


class ResolutionAliasing(BaseModel):
    """Condition-aware module resolution settings for one pass."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    suffixes: list[str] = Field(default_factory=list)
    extension_alias: dict[str, list[str]] = Field(default_factory=dict)
    extensions: list[str] = Field(default_factory=list)
    condition_names: list[str] = Field(default_factory=list)


class BuildRequest(BaseModel):
    """Everything the bundler needs for one build pass."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    cwd: str
    entry: list[str]
    out_dir: str
    format: list[Literal["esm", "cjs"]] = Field(default_factory=lambda: ["esm", "cjs"])
    declarations: bool = True
    sourcemap: bool = True
    strict: bool = False
    resolution: ResolutionAliasing = Field(default_factory=ResolutionAliasing)
    constants: dict[str, dict[str, bool]] = Field(default_factory=dict)


class ChunkDescriptor(BaseModel):
    """One emitted chunk, relative to the pass's output directory."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    file_name: str
    is_entry_chunk: bool = False


class BuildManifest(BaseModel):
    """Chunks emitted by one pass, grouped by internal build phase."""

    phases: list[list[ChunkDescriptor]] = Field(default_factory=list)

    @property
    def chunks(self) -> list[ChunkDescriptor]:
        return [chunk for phase in self.phases for chunk in phase]
