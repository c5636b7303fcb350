"""utc -- build a source package once per condition combination and publish it.

This package drives an external bundler over every combination of
build-time conditions (e.g. platform x environment) and rewrites the
project's ``package.json`` so consumers resolve each public entry point
under each condition.

Typical workflow::

    utc inspect entries     # list the modules published as entry points
    utc build               # build every combination and update package.json

Modules:
    app: Typer application factory and CLI entry point.
    conditions: Condition specs, combination enumeration, resolution aliasing.
    entries: Entry subpath resolution and bin target resolution.
    scanner: Source discovery and doc-comment annotation scanning.
    build: Build orchestration, output classification, export synthesis.
    models: Pydantic configuration models.
    config: Configuration file discovery and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.3.0"
