"""Compile-time condition constants.

Source code can branch on the active conditions of a pass by importing
boolean constants from virtual modules::

    import { NODE } from 'compile-constant';         // flat conditions
    import { IOS } from 'compile-constant/platform'; // grouped conditions

The bundler serves those modules from the ``constants`` field of each
:class:`~utc.models.BuildRequest`, and a generated declaration file makes
them known to the type-checker.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from utc.conditions import (
    ConditionCombination,
    ConditionSpec,
    FlatConditions,
    canonical_constant_name,
)
from utc.config import _atomic_write

MODULE_ID = "compile-constant"

REGION_START = "// #region Generated compile constants"
REGION_END = "// #endregion"


def compile_constant_modules(
    spec: Optional[ConditionSpec], combination: ConditionCombination
) -> dict[str, dict[str, bool]]:
    """Return ``{module id: {CONSTANT: value}}`` for one pass.

    Flat specs produce a single ``compile-constant`` module where a label's
    constant is true iff the label is active. Grouped specs produce one
    ``compile-constant/<group>`` module per group where exactly the active
    label's constant is true.
    """
    if spec is None:
        return {}
    if isinstance(spec, FlatConditions):
        return {
            MODULE_ID: {
                canonical_constant_name(label): bool(combination.get(label))
                for label in spec.labels
            }
        }
    return {
        f"{MODULE_ID}/{group}": {
            canonical_constant_name(label): combination.get(group) == label
            for label in labels
        }
        for group, labels in spec.groups
    }


def _declare_block(module_id: str, labels: tuple[str, ...]) -> str:
    lines = [f"declare module '{module_id}' {{"]
    lines.extend(f"  export const {canonical_constant_name(label)}: boolean;" for label in labels)
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_compile_constant_dts(spec: Optional[ConditionSpec]) -> Optional[str]:
    """Render the declaration file text, or ``None`` when *spec* is ``None``."""
    if spec is None:
        return None
    if isinstance(spec, FlatConditions):
        blocks = [_declare_block(MODULE_ID, spec.labels)]
    else:
        blocks = [_declare_block(f"{MODULE_ID}/{group}", labels) for group, labels in spec.groups]
    return f"{REGION_START}\n" + "\n".join(blocks) + f"{REGION_END}\n"


def write_compile_constant_dts(
    spec: Optional[ConditionSpec],
    project_root: str | Path,
    relative_path: Optional[str],
) -> Optional[Path]:
    """Write the declaration file below *project_root*.

    Returns:
        The written path, or ``None`` when there is no spec or no path.
    """
    text = render_compile_constant_dts(spec)
    if text is None or not relative_path:
        return None
    path = Path(project_root) / relative_path
    _atomic_write(path, text)
    return path
