# tests/test_dumpfile.py
"""
Tests for the dump reader: the S-expression grammar, the unit builder
and the file-scope filter.
"""

import pytest
from parsimonious.exceptions import ParseError

from errcheckif.config import Settings
from errcheckif.dumpfile import (
    SEXP_GRAMMAR,
    SList,
    Symbol,
    load_unit,
    load_units,
    offset_to_line_col,
    parse_sexp,
    parsedump,
    should_analyze,
)
from errcheckif.errors import (
    DumpError,
    DumpFormatError,
    DumpSyntaxError,
    ErrorCode,
)
from errcheckif.syntax import (
    AssignStmt,
    CaseClause,
    IfStmt,
    Position,
    ReturnStmt,
    SwitchStmt,
)
from errcheckif.typeinfo import ERROR_TYPE, UNIVERSE, NamedType, ObjectKind, Signature


class TestGrammar:

    def test_atoms(self):
        forms = parse_sexp('foo "a \\"b\\"" -12 7 != :pos')
        assert forms == ["foo", 'a "b"', -12, 7, "!=", ":pos"]
        assert isinstance(forms[0], Symbol)
        assert not isinstance(forms[1], Symbol)
        assert isinstance(forms[2], int)

    def test_nested_lists_and_comments(self):
        forms = parse_sexp("; header\n(a (b c) ()) ; trailing\n")
        assert len(forms) == 1
        outer = forms[0]
        assert isinstance(outer, SList)
        assert outer == ["a", ["b", "c"], []]
        assert outer.start == 9

    def test_number_needs_delimiter(self):
        assert parse_sexp("12ab") == ["12ab"]
        assert isinstance(parse_sexp("12ab")[0], Symbol)

    def test_empty_document(self):
        assert parse_sexp("") == []
        assert parse_sexp("  ; nothing\n") == []

    def test_grammar_rejects_unbalanced(self):
        with pytest.raises(ParseError):
            SEXP_GRAMMAR.parse("(a (b)")

    def test_syntax_error_carries_location(self):
        with pytest.raises(DumpSyntaxError) as info:
            parse_sexp("(a)\n(b", filename="x.dump")
        assert info.value.filename == "x.dump"
        assert info.value.code is ErrorCode.MALFORMED_SEXP
        assert info.value.line >= 1
        assert str(info.value).startswith("[ECI-1002] x.dump:")

    def test_offset_to_line_col(self):
        text = "ab\ncd\nef"
        assert offset_to_line_col(text, 0) == (1, 1)
        assert offset_to_line_col(text, 4) == (2, 2)
        assert offset_to_line_col(text, 6) == (3, 1)


MINIMAL = """(unit "a.go"
  (package "a")
  (objects (var 1 "err" error) (func 2 "f" (func () (error))) (pkg 3 "errors" "errors"))
    (func "main"
    (block (define ((ident "err" 1 :def true :pos (4 2) :end (4 5))) ((call (ident "f" 2))))
           (if (binary != (ident "err" 1) (ident "nil" universe)) (block (return (ident "err" 1)))))))
"""


class TestUnitBuilder:

    def test_minimal_unit(self):
        unit = load_unit(MINIMAL, "a.dump")
        assert unit.filename == "a.go"
        assert unit.file.package == "a"
        body = unit.file.decls[0].body.stmts
        assert isinstance(body[0], AssignStmt) and body[0].tok == ":="
        assert isinstance(body[1], IfStmt)
        assert isinstance(body[1].body.stmts[0], ReturnStmt)

    def test_objects_and_facts(self):
        unit = load_unit(MINIMAL)
        assign = unit.file.decls[0].body.stmts[0]
        err_def = assign.lhs[0]
        assert unit.info.defs[err_def] is unit.objects[1]
        assert unit.objects[1].type is ERROR_TYPE
        assert unit.objects[3].kind is ObjectKind.PKGNAME
        assert unit.objects[3].path == "errors"
        assert isinstance(unit.info.type_of(assign.rhs[0].fun), Signature)
        cond = unit.file.decls[0].body.stmts[1].cond
        assert unit.info.object_of(cond.y) is UNIVERSE.nil
        assert unit.info.object_of(cond.x) is unit.objects[1]

    def test_explicit_positions(self):
        unit = load_unit(MINIMAL)
        err_def = unit.file.decls[0].body.stmts[0].lhs[0]
        assert err_def.pos == Position(4, 2)
        assert err_def.end == Position(4, 5)

    def test_fallback_positions(self):
        unit = load_unit('(unit "a.go"\n  (func "main"\n    (block (return))))')
        block = unit.file.decls[0].body
        assert block.pos == Position(3, 5)
        assert block.stmts[0].pos == Position(3, 12)

    def test_named_types_and_methods(self):
        text = """(unit "a.go"
          (types (named "E" (ptr E) (method "Error" (func () (string)) :ptr true)))
          (objects (var 1 "e" (ptr E))))"""
        unit = load_unit(text)
        t = unit.objects[1].type.elem
        assert isinstance(t, NamedType) and t.name == "E"
        assert t.methods[0].pointer_receiver
        assert t.underlying_type.elem is t

    def test_explicit_type_attribute(self):
        text = '(unit "a.go" (func "main" (block (expr (call (ident "g") :type error)))))'
        unit = load_unit(text)
        call = unit.file.decls[0].body.stmts[0].x
        assert unit.info.type_of(call) is ERROR_TYPE

    def test_switch_and_clauses(self):
        text = """(unit "a.go" (func "main" (block
          (switch (case ((lit int "1")) (return)) (default (return)) :tag (ident "x")))))"""
        unit = load_unit(text)
        sw = unit.file.decls[0].body.stmts[0]
        assert isinstance(sw, SwitchStmt)
        assert all(isinstance(c, CaseClause) for c in sw.body.stmts)
        assert sw.body.stmts[1].exprs == []
        assert sw.tag.name == "x"

    def test_several_units(self):
        units = load_units('(unit "a.go") (unit "b.go")')
        assert [u.filename for u in units] == ["a.go", "b.go"]
        with pytest.raises(DumpFormatError):
            load_unit('(unit "a.go") (unit "b.go")')


class TestFormatErrors:

    @pytest.mark.parametrize("text,code", [
        ('(module "a.go")', ErrorCode.UNKNOWN_FORM),
        ('(unit a.go)', ErrorCode.BAD_ARITY),
        ('(unit "a.go" (func "main" (block (loop))))', ErrorCode.UNKNOWN_FORM),
        ('(unit "a.go" (func "main" (block (expr (ident "x" 9)))))', ErrorCode.UNKNOWN_OBJECT),
        ('(unit "a.go" (func "main" (block (expr (ident "nada" universe)))))', ErrorCode.UNKNOWN_OBJECT),
        ('(unit "a.go" (objects (var 1 "x" Missing)))', ErrorCode.UNKNOWN_TYPE),
        ('(unit "a.go" (objects (var 1 "x" int) (var 1 "y" int)))', ErrorCode.DUPLICATE_DECLARATION),
        ('(unit "a.go" (func "main" (block (if (ident "x")))))', ErrorCode.BAD_ARITY),
        ('(unit "a.go" (func "main" (block (return :pos))))', ErrorCode.BAD_ARITY),
    ])
    def test_rejected(self, text, code):
        with pytest.raises(DumpFormatError) as info:
            load_unit(text, "bad.dump")
        assert info.value.code is code
        assert info.value.filename == "bad.dump"


class TestParsedump:

    def test_reads_file(self, tmp_path):
        path = tmp_path / "a.go.dump"
        path.write_text(MINIMAL, encoding="utf-8")
        units = parsedump(path)
        assert len(units) == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(DumpError) as info:
            parsedump(tmp_path / "nope.dump")
        assert info.value.code is ErrorCode.UNREADABLE_DUMP

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "a.go.dump"
        path.write_bytes(b'(unit "a.go" (package "\xff"))')
        with pytest.raises(DumpError) as info:
            parsedump(path)
        assert info.value.code is ErrorCode.UNREADABLE_DUMP
        assert info.value.filename == str(path)


class TestShouldAnalyze:

    def test_regular_file(self, build_unit):
        assert should_analyze(build_unit(""))

    def test_test_file(self, build_unit):
        unit = build_unit("", filename="fetch_test.go")
        assert not should_analyze(unit)
        assert should_analyze(unit, Settings(skip_tests=False))

    def test_generated_file(self, build_unit):
        marker = '(comment 1 "// Code generated by stringer; DO NOT EDIT.")'
        unit = build_unit("", comments=marker)
        assert unit.is_generated
        assert not should_analyze(unit)
        assert should_analyze(unit, Settings(skip_generated=False))

    def test_marker_must_be_exact(self, build_unit):
        unit = build_unit("", comments='(comment 1 "// Code generated, edit freely")')
        assert should_analyze(unit)
