"""errcheckif — report Go error results that are assigned but never checked.

A static pass over a syntax tree and its resolved type facts.  For every
assignment that binds the error result of a call to a variable, the pass
looks for a later ``if`` that tests the variable against ``nil`` (or
through ``errors.Is`` / ``errors.As``), or a ``return`` that forwards it,
before the variable is overwritten or its scope ends.  Sites with no such
evidence are reported.

Submodules
----------
syntax
    Syntax tree nodes, pre-order walk, ancestor paths.

typeinfo
    Type descriptors, declaration objects, the universe scope, the
    ``TypeInfo`` fact base and the ``implements_error`` oracle.

analysis
    The pass itself: ``find_unhandled_errors(file, info)``.

checkers
    Diagnostics, ``//nolint`` suppressions, ``ErrCheckIfChecker`` and the
    multi-file ``CheckerRunner``.

dumpfile
    Reader for the S-expression dump files the CLI consumes.

config, errors, main
    Settings, exception hierarchy, CLI.

Usage
-----
Command-line::

    python -m errcheckif check fetch.go.dump
    python -m errcheckif --help

Programmatic::

    from errcheckif.dumpfile import parsedump
    from errcheckif.checkers import ErrCheckIfChecker

    for unit in parsedump("fetch.go.dump"):
        for diag in ErrCheckIfChecker().check(unit.file, unit.info):
            print(diag.to_gcc_format())
"""

from __future__ import annotations

import logging

__version__: str = "0.1.0"
__all__: list[str] = [
    "__version__",
    "analysis",
    "checkers",
    "config",
    "dumpfile",
    "errors",
    "syntax",
    "typeinfo",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
