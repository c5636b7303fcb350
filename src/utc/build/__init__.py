"""Multi-pass build and ``package.json`` export synthesis.

Typical usage::

    from utc.build import CommandBuilder, run_build
    from utc.config import resolve_config

    config = resolve_config("/path/to/package")
    summary = run_build(config, CommandBuilder(config.web.build.builder))

Sub-modules:

* :mod:`~utc.build.builder` -- the bundler boundary (one subprocess per pass).
* :mod:`~utc.build.orchestrator` -- sequential condition and bin passes.
* :mod:`~utc.build.accumulator` -- cross-pass results, owned by one run.
* :mod:`~utc.build.classifier` -- match emitted chunks to entry subpaths.
* :mod:`~utc.build.exports` -- ``exports``, legacy fields and ``bin``.
* :mod:`~utc.build.package_json` -- read and atomically rewrite ``package.json``.
* :mod:`~utc.build.constants` -- compile-constant modules and declarations.
* :mod:`~utc.build.pipeline` -- :func:`run_build`, all of the above in order.
"""

from utc.build.builder import Builder, CommandBuilder
from utc.build.pipeline import BuildSummary, run_build

__all__ = ["Builder", "CommandBuilder", "BuildSummary", "run_build"]
