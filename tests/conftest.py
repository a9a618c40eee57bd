# tests/conftest.py
"""
Shared builders: every test describes a ``func main`` body as dump text
and gets back a SourceUnit (or the pass's findings for it).

Object table available to test bodies
-------------------------------------
   1 err          error           10 ok       bool
   2 load         func() (int, error)
   3 save         func() error    11 errors   int   (a local named errors)
   4 errors       package         12 openP    func() *PathError
   5 n            int             13 openV    func() PathError
   6 ErrNotFound  error           14 nil      error (a local named nil)
   7 err          error (shadow)  15 p        *PathError
   8 count        func() int      16 v        PathError
   9 pe           *PathError      17 pair     func() (error, error)
  18 err2         error
  19 fetch        Loader  (type Loader func() (int, error))
"""

import pytest

from errcheckif.analysis import find_unhandled_errors
from errcheckif.dumpfile import load_unit


TYPES = """
  (types
    (named "PathError" (struct)
      (method "Error" (func () (string)) :ptr true))
    (named "Stringer" (interface (method "String" (func () (string)))))
    (named "Loader" (func () (int error))))
"""

OBJECTS = """
    (var 1 "err" error)
    (func 2 "load" (func () (int error)))
    (func 3 "save" (func () (error)))
    (pkg 4 "errors" "errors")
    (var 5 "n" int)
    (var 6 "ErrNotFound" error)
    (var 7 "err" error)
    (func 8 "count" (func () (int)))
    (var 9 "pe" (ptr PathError))
    (var 10 "ok" bool)
    (var 11 "errors" int)
    (func 12 "openP" (func () ((ptr PathError))))
    (func 13 "openV" (func () (PathError)))
    (var 14 "nil" error)
    (var 15 "p" (ptr PathError))
    (var 16 "v" PathError)
    (func 17 "pair" (func () (error error)))
    (var 18 "err2" error)
    (var 19 "fetch" Loader)
"""


def unit_text(body, filename="main.go", comments=""):
    return (
        f'(unit "{filename}"\n'
        f'  (package "main")\n'
        f"{TYPES}\n"
        f"  (objects {OBJECTS})\n"
        f"  (comments {comments})\n"
        f'  (func "main"\n'
        f"    (block\n{body})))\n"
    )


@pytest.fixture
def build_unit():
    """``build_unit(body, filename=..., comments=...)`` → SourceUnit."""
    def _build(body, filename="main.go", comments=""):
        return load_unit(unit_text(body, filename, comments), filename)
    return _build


@pytest.fixture
def findings(build_unit):
    """``findings(body)`` → the pass's findings for ``func main``."""
    def _run(body, **kwargs):
        unit = build_unit(body)
        return find_unhandled_errors(unit.file, unit.info, **kwargs)
    return _run


@pytest.fixture
def write_dump(tmp_path):
    """Write a ``func main`` body to a dump file and return its path."""
    def _write(body, filename="main.go", comments="", name="main.go.dump"):
        path = tmp_path / name
        path.write_text(unit_text(body, filename, comments), encoding="utf-8")
        return path
    return _write
