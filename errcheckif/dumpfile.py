"""
errcheckif/dumpfile.py — reader for errcheckif dump files
==========================================================

A dump file carries one source unit: the syntax tree of a Go file plus
the resolution facts an upstream type checker computed for it.  It is to
this package what a ``.dump`` is to a cppcheck addon.

The format is a sequence of S-expressions, parsed with a ``parsimonious``
PEG grammar into plain forms, then built into :mod:`errcheckif.syntax`
nodes and a :class:`errcheckif.typeinfo.TypeInfo`.

::

    ; fetch.go
    (unit "fetch.go"
      (package "fetch")
      (types   (named "PathError" (struct)
                  (method "Error" (func () (string)) :ptr true)))
      (objects (var 1 "err" error)
               (func 2 "load" (func () (int error)))
               (pkg 3 "errors" "errors"))
      (comments (comment 9 "//nolint:errcheckif"))
      (func "main"
        (block
          (define ((ident "_") (ident "err" 1)) ((call (ident "load" 2))))
          (if (binary != (ident "err" 1) (ident "nil" universe))
              (block (return (ident "err" 1)))))))

Identifiers
-----------
``(ident NAME)``            unresolved occurrence
``(ident NAME ID)``         bound to object ``ID`` of the ``objects`` table
``(ident NAME universe)``   bound to the predeclared scope (``nil`` …)

Attributes
----------
Every node form accepts ``:pos (LINE COL)`` and ``:end (LINE COL)``;
without them the node is positioned at the form's own location in the
dump text.  Expression forms accept ``:type T`` to record a type fact.

Depends on:
    - parsimonious      (PEG parsing of the S-expression layer)
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Tuple,
    Union,
)

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from errcheckif import syntax as ast
from errcheckif.config import Settings
from errcheckif.errors import (
    DumpError,
    DumpFormatError,
    DumpSyntaxError,
    ErrorCode,
)
from errcheckif.typeinfo import (
    UNIVERSE,
    InterfaceType,
    MapType,
    Method,
    NamedType,
    Object,
    ObjectKind,
    PointerType,
    Signature,
    SliceType,
    StructType,
    Type,
    TypeInfo,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  PART 1 — S-EXPRESSION GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

SEXP_GRAMMAR = Grammar(r'''
    document    = _ (form _)*
    form        = list / atom
    list        = "(" _ (form _)* ")"
    atom        = string / number / symbol
    string      = ~r'"(?:[^"\\]|\\.)*"'
    number      = ~r"-?[0-9]+(?=[\s();]|$)"
    symbol      = ~r'[^\s()";]+'
    _           = ~r"(?:\s+|;[^\n]*)*"
''')


class Symbol(str):
    """A bare S-expression atom (as opposed to a quoted string)."""

    def __repr__(self) -> str:
        return f"Symbol({str.__repr__(self)})"


class SList(list):
    """A parenthesised form, remembering where it starts and ends."""

    def __init__(self, items: List[Any], start: int, end: int) -> None:
        super().__init__(items)
        self.start = start
        self.end = end


class SexpBuilder(NodeVisitor):
    """Turns the parsimonious parse tree into Symbol / str / int / SList."""

    grammar = SEXP_GRAMMAR
    unwrapped_exceptions = (DumpSyntaxError,)

    def generic_visit(self, node, visited_children):
        return visited_children or node

    def visit_document(self, node, visited_children):
        _, forms = visited_children
        return [form for form, _ in self._items(forms)]

    def visit_form(self, node, visited_children):
        return visited_children[0]

    def visit_atom(self, node, visited_children):
        return visited_children[0]

    def visit_list(self, node, visited_children):
        _, _, forms, _ = visited_children
        items = [form for form, _ in self._items(forms)]
        return SList(items, node.start, node.end)

    def visit_string(self, node, visited_children):
        try:
            return str(json.loads(node.text))
        except ValueError as exc:
            raise DumpSyntaxError(f"bad string literal {node.text}: {exc}") from exc

    def visit_number(self, node, visited_children):
        return int(node.text)

    def visit_symbol(self, node, visited_children):
        return Symbol(node.text)

    @staticmethod
    def _items(forms: Any) -> List[Any]:
        # An empty ``(form _)*`` comes back as the bare Node.
        if isinstance(forms, Node):
            return []
        return forms


def offset_to_line_col(text: str, offset: int) -> Tuple[int, int]:
    """1-based (line, column) of a character offset."""
    line = text.count("\n", 0, offset) + 1
    column = offset - text.rfind("\n", 0, offset)
    return line, column


def parse_sexp(text: str, filename: str = "") -> List[Any]:
    """Parse dump text into a list of top-level forms."""
    try:
        tree = SEXP_GRAMMAR.parse(text)
    except ParseError as exc:
        raise DumpSyntaxError(
            "malformed S-expression",
            line=exc.line() or 0,
            column=exc.column() or 0,
            filename=filename,
        ) from exc
    try:
        return SexpBuilder().visit(tree)
    except DumpSyntaxError as exc:
        exc.filename = filename
        raise


# ═══════════════════════════════════════════════════════════════════
#  PART 2 — SOURCE UNIT
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Comment:
    line: int
    text: str


@dataclass
class SourceUnit:
    """One parsed file together with its resolution facts."""
    file: ast.File
    info: TypeInfo
    comments: List[Comment] = field(default_factory=list)
    objects: Dict[int, Object] = field(default_factory=dict)

    @property
    def filename(self) -> str:
        return self.file.name

    @property
    def is_test(self) -> bool:
        return self.filename.endswith("_test.go")

    @property
    def is_generated(self) -> bool:
        return any(GENERATED_MARKER.match(c.text) for c in self.comments)


GENERATED_MARKER = re.compile(r"^// Code generated .* DO NOT EDIT\.$")


def should_analyze(unit: SourceUnit, settings: Optional[Settings] = None) -> bool:
    """File-scope predicate: test and generated sources are excluded by default."""
    settings = settings or Settings()
    if settings.skip_tests and unit.is_test:
        return False
    if settings.skip_generated and unit.is_generated:
        return False
    return True


# ═══════════════════════════════════════════════════════════════════
#  PART 3 — FORM HELPERS
# ═══════════════════════════════════════════════════════════════════

def _head(form: Any) -> str:
    if isinstance(form, list) and form and isinstance(form[0], str):
        return str(form[0])
    return ""


def _split(form: SList) -> Tuple[List[Any], Dict[str, Any]]:
    """Separate positional arguments from ``:keyword value`` attributes."""
    args: List[Any] = []
    attrs: Dict[str, Any] = {}
    items = list(form[1:])
    i = 0
    while i < len(items):
        item = items[i]
        if isinstance(item, Symbol) and item.startswith(":") and len(item) > 1:
            if i + 1 >= len(items):
                raise DumpFormatError(
                    f"attribute {item} of ({_head(form)} …) has no value",
                    ErrorCode.BAD_ARITY,
                )
            attrs[str(item[1:])] = items[i + 1]
            i += 2
            continue
        args.append(item)
        i += 1
    return args, attrs


def _expect_list(form: Any, what: str) -> SList:
    if not isinstance(form, list):
        raise DumpFormatError(f"expected a list for {what}, got {form!r}", ErrorCode.BAD_ARITY)
    return form


def _truthy(value: Any) -> bool:
    return value not in (None, 0, "false", "nil", "no")


# ═══════════════════════════════════════════════════════════════════
#  PART 4 — UNIT BUILDER
# ═══════════════════════════════════════════════════════════════════

class UnitBuilder:
    """Builds a :class:`SourceUnit` from the forms of one ``(unit …)``."""

    def __init__(self, text: str, filename: str = "") -> None:
        self.text = text
        self.filename = filename
        self.info = TypeInfo()
        self.objects: Dict[int, Object] = {}
        self.named: Dict[str, NamedType] = {}
        self._stmt_builders: Dict[str, Callable[[SList, List[Any], Dict[str, Any]], ast.Stmt]] = {
            "block": self._block,
            "assign": self._assign,
            "define": self._assign,
            "assign-op": self._assign_op,
            "expr": self._expr_stmt,
            "return": self._return,
            "if": self._if,
            "for": self._for,
            "range": self._range,
            "switch": self._switch,
            "typeswitch": self._typeswitch,
            "select": self._select,
            "case": self._case,
            "default": self._case,
            "comm": self._comm,
            "var": self._var,
            "go": self._go,
            "defer": self._defer,
            "labeled": self._labeled,
            "branch": self._branch,
            "incdec": self._incdec,
            "send": self._send,
        }
        self._expr_builders: Dict[str, Callable[[SList, List[Any], Dict[str, Any]], ast.Expr]] = {
            "ident": self._ident,
            "lit": self._lit,
            "sel": self._sel,
            "call": self._call,
            "binary": self._binary,
            "unary": self._unary,
            "paren": self._paren,
            "star": self._star,
            "index": self._index,
            "funclit": self._funclit,
            "composite": self._composite,
            "kv": self._kv,
        }

    # ── positions ────────────────────────────────────────────────────

    def _position(self, value: Any, fallback_offset: int) -> ast.Position:
        if isinstance(value, list) and len(value) == 2 and all(isinstance(v, int) for v in value):
            return ast.Position(value[0], value[1])
        if value is not None:
            raise DumpFormatError(f"bad position {value!r}", ErrorCode.BAD_ARITY)
        line, column = offset_to_line_col(self.text, fallback_offset)
        return ast.Position(line, column)

    def _place(self, node: ast.SyntaxNode, form: SList, attrs: Dict[str, Any]) -> None:
        node.pos = self._position(attrs.get("pos"), form.start)
        node.end = self._position(attrs.get("end"), max(form.end - 1, form.start))

    # ── unit ─────────────────────────────────────────────────────────

    def build(self, form: Any) -> SourceUnit:
        form = _expect_list(form, "unit")
        if _head(form) != "unit":
            raise DumpFormatError(f"expected (unit …), got ({_head(form)} …)")
        args, attrs = _split(form)
        if not args or not isinstance(args[0], str) or isinstance(args[0], Symbol):
            raise DumpFormatError("(unit …) needs a quoted file name", ErrorCode.BAD_ARITY)
        name = str(args[0])
        sections = [_expect_list(a, "unit section") for a in args[1:]]

        # Types first so objects can refer to them; objects before code.
        for section in sections:
            if _head(section) == "types":
                self._declare_types(section)
        for section in sections:
            if _head(section) == "types":
                self._define_types(section)
        for section in sections:
            if _head(section) == "objects":
                self._objects(section)

        package = ""
        comments: List[Comment] = []
        decls: List[ast.FuncDecl] = []
        for section in sections:
            head = _head(section)
            if head in ("types", "objects"):
                continue
            if head == "package":
                package = str(section[1]) if len(section) > 1 else ""
            elif head == "comments":
                comments.extend(self._comments(section))
            elif head == "func":
                decls.append(self._func(section))
            else:
                raise DumpFormatError(f"unknown unit section ({head} …)")

        file = ast.File(name=name, package=package, decls=decls)
        self._place(file, form, attrs)
        return SourceUnit(file=file, info=self.info, comments=comments, objects=self.objects)

    def _comments(self, section: SList) -> List[Comment]:
        result = []
        for item in section[1:]:
            item = _expect_list(item, "comment")
            if _head(item) != "comment" or len(item) != 3 or not isinstance(item[1], int):
                raise DumpFormatError("expected (comment LINE TEXT)", ErrorCode.BAD_ARITY)
            result.append(Comment(line=int(item[1]), text=str(item[2])))
        return result

    # ── types ────────────────────────────────────────────────────────

    def _declare_types(self, section: SList) -> None:
        for item in section[1:]:
            item = _expect_list(item, "named type")
            if _head(item) != "named" or len(item) < 3:
                raise DumpFormatError("expected (named NAME UNDERLYING METHOD…)", ErrorCode.BAD_ARITY)
            name = str(item[1])
            if name in self.named:
                raise DumpFormatError(f"type {name} declared twice", ErrorCode.DUPLICATE_DECLARATION)
            self.named[name] = NamedType(name)

    def _define_types(self, section: SList) -> None:
        for item in section[1:]:
            named = self.named[str(item[1])]
            named.underlying_type = self.type_expr(item[2])
            for m in item[3:]:
                named.methods.append(self._method(m))

    def _method(self, form: Any) -> Method:
        form = _expect_list(form, "method")
        args, attrs = _split(form)
        if _head(form) != "method" or len(args) != 2:
            raise DumpFormatError("expected (method NAME SIGNATURE)", ErrorCode.BAD_ARITY)
        sig = self.type_expr(args[1])
        if not isinstance(sig, Signature):
            raise DumpFormatError(f"method {args[0]} needs a func signature", ErrorCode.BAD_ARITY)
        return Method(str(args[0]), sig, pointer_receiver=_truthy(attrs.get("ptr")))

    def type_expr(self, form: Any) -> Type:
        if isinstance(form, str):
            name = str(form)
            if name in self.named:
                return self.named[name]
            t = UNIVERSE.lookup_type(name)
            if t is None:
                raise DumpFormatError(f"unknown type {name}", ErrorCode.UNKNOWN_TYPE)
            return t
        form = _expect_list(form, "type")
        head = _head(form)
        args, attrs = _split(form)
        if head == "ptr" and len(args) == 1:
            return PointerType(self.type_expr(args[0]))
        if head == "slice" and len(args) == 1:
            return SliceType(self.type_expr(args[0]))
        if head == "map" and len(args) == 2:
            return MapType(self.type_expr(args[0]), self.type_expr(args[1]))
        if head == "struct":
            return StructType()
        if head == "func" and len(args) == 2:
            params = tuple(self.type_expr(p) for p in _expect_list(args[0], "params"))
            results = tuple(self.type_expr(r) for r in _expect_list(args[1], "results"))
            return Signature(params, results, variadic=_truthy(attrs.get("variadic")))
        if head == "interface":
            methods = []
            embedded = []
            for item in args:
                if _head(item) == "embed" and len(item) == 2:
                    embedded.append(self.type_expr(item[1]))
                else:
                    methods.append(self._method(item))
            return InterfaceType(tuple(methods), tuple(embedded))
        raise DumpFormatError(f"unknown type form ({head} …)", ErrorCode.UNKNOWN_TYPE)

    # ── objects ──────────────────────────────────────────────────────

    _OBJECT_KINDS = {
        "var": ObjectKind.VAR,
        "const": ObjectKind.CONST,
        "func": ObjectKind.FUNC,
        "type": ObjectKind.TYPENAME,
        "pkg": ObjectKind.PKGNAME,
        "label": ObjectKind.LABEL,
    }

    def _objects(self, section: SList) -> None:
        for item in section[1:]:
            item = _expect_list(item, "object")
            head = _head(item)
            kind = self._OBJECT_KINDS.get(head)
            if kind is None or len(item) < 3 or not isinstance(item[1], int):
                raise DumpFormatError(f"expected (KIND ID NAME …), got ({head} …)", ErrorCode.BAD_ARITY)
            obj_id = item[1]
            if obj_id in self.objects:
                raise DumpFormatError(f"object {obj_id} declared twice", ErrorCode.DUPLICATE_DECLARATION)
            obj = Object(kind, str(item[2]), id=obj_id)
            if kind is ObjectKind.PKGNAME:
                obj.path = str(item[3]) if len(item) > 3 else obj.name
            elif len(item) > 3:
                obj.type = self.type_expr(item[3])
            self.objects[obj_id] = obj

    def _lookup_object(self, ref: Any, name: str) -> Optional[Object]:
        if ref is None:
            return None
        if isinstance(ref, Symbol) and ref == "universe":
            obj = UNIVERSE.lookup(name)
            if obj is None:
                raise DumpFormatError(f"{name} is not predeclared", ErrorCode.UNKNOWN_OBJECT)
            return obj
        if isinstance(ref, int):
            obj = self.objects.get(ref)
            if obj is None:
                raise DumpFormatError(f"unknown object id {ref} for {name}", ErrorCode.UNKNOWN_OBJECT)
            return obj
        raise DumpFormatError(f"bad object reference {ref!r} for {name}", ErrorCode.UNKNOWN_OBJECT)

    # ── declarations ─────────────────────────────────────────────────

    def _func(self, form: SList) -> ast.FuncDecl:
        args, attrs = _split(form)
        if len(args) != 2:
            raise DumpFormatError("expected (func NAME BLOCK)", ErrorCode.BAD_ARITY)
        name = args[0]
        ident = self.expr(name) if isinstance(name, list) else ast.Ident(name=str(name))
        body = self.stmt(args[1])
        if not isinstance(body, ast.BlockStmt) or not isinstance(ident, ast.Ident):
            raise DumpFormatError("expected (func NAME BLOCK)", ErrorCode.BAD_ARITY)
        decl = ast.FuncDecl(name=ident, body=body)
        self._place(decl, form, attrs)
        if not ident.pos.is_valid:
            ident.pos = decl.pos
        return decl

    # ── statements ───────────────────────────────────────────────────

    def stmt(self, form: Any) -> ast.Stmt:
        form = _expect_list(form, "statement")
        head = _head(form)
        builder = self._stmt_builders.get(head)
        if builder is None:
            raise DumpFormatError(f"unknown statement form ({head} …)")
        args, attrs = _split(form)
        node = builder(form, args, attrs)
        self._place(node, form, attrs)
        return node

    def _opt_stmt(self, form: Any) -> Optional[ast.Stmt]:
        return None if form is None else self.stmt(form)

    def _opt_expr(self, form: Any) -> Optional[ast.Expr]:
        return None if form is None else self.expr(form)

    def _exprs(self, form: Any) -> List[ast.Expr]:
        return [self.expr(f) for f in _expect_list(form, "expression list")]

    def _block_of(self, form: Any) -> ast.BlockStmt:
        node = self.stmt(form)
        if not isinstance(node, ast.BlockStmt):
            raise DumpFormatError(f"expected (block …), got {node.kind}", ErrorCode.BAD_ARITY)
        return node

    def _block(self, form, args, attrs):
        return ast.BlockStmt(stmts=[self.stmt(a) for a in args])

    def _assign(self, form, args, attrs):
        if len(args) != 2:
            raise DumpFormatError(f"expected ({_head(form)} (LHS…) (RHS…))", ErrorCode.BAD_ARITY)
        tok = ast.DEFINE if _head(form) == "define" else ast.ASSIGN
        return ast.AssignStmt(lhs=self._exprs(args[0]), tok=tok, rhs=self._exprs(args[1]))

    def _assign_op(self, form, args, attrs):
        if len(args) != 3:
            raise DumpFormatError("expected (assign-op OP (LHS…) (RHS…))", ErrorCode.BAD_ARITY)
        return ast.AssignStmt(lhs=self._exprs(args[1]), tok=str(args[0]), rhs=self._exprs(args[2]))

    def _expr_stmt(self, form, args, attrs):
        if len(args) != 1:
            raise DumpFormatError("expected (expr X)", ErrorCode.BAD_ARITY)
        return ast.ExprStmt(x=self.expr(args[0]))

    def _return(self, form, args, attrs):
        return ast.ReturnStmt(results=[self.expr(a) for a in args])

    def _if(self, form, args, attrs):
        if len(args) != 2:
            raise DumpFormatError("expected (if COND BLOCK [:init S] [:else S])", ErrorCode.BAD_ARITY)
        init = self._opt_stmt(attrs.get("init"))
        cond = self.expr(args[0])
        body = self._block_of(args[1])
        else_ = self._opt_stmt(attrs.get("else"))
        return ast.IfStmt(init=init, cond=cond, body=body, else_=else_)

    def _for(self, form, args, attrs):
        if len(args) != 1:
            raise DumpFormatError("expected (for BLOCK [:init S] [:cond E] [:post S])", ErrorCode.BAD_ARITY)
        return ast.ForStmt(
            init=self._opt_stmt(attrs.get("init")),
            cond=self._opt_expr(attrs.get("cond")),
            post=self._opt_stmt(attrs.get("post")),
            body=self._block_of(args[0]),
        )

    def _range(self, form, args, attrs):
        if len(args) != 2:
            raise DumpFormatError("expected (range X BLOCK [:key E] [:value E] [:tok T])", ErrorCode.BAD_ARITY)
        tok = attrs.get("tok")
        return ast.RangeStmt(
            key=self._opt_expr(attrs.get("key")),
            value=self._opt_expr(attrs.get("value")),
            tok={"define": ast.DEFINE, "assign": ast.ASSIGN}.get(str(tok), "") if tok else "",
            x=self.expr(args[0]),
            body=self._block_of(args[1]),
        )

    def _clause_body(self, form: SList, clauses: List[Any], clause_type: type) -> ast.BlockStmt:
        stmts = [self.stmt(c) for c in clauses]
        for s in stmts:
            if not isinstance(s, clause_type):
                raise DumpFormatError(
                    f"({_head(form)} …) may only contain {clause_type.__name__} forms",
                    ErrorCode.BAD_ARITY,
                )
        body = ast.BlockStmt(stmts=stmts)
        self._place(body, form, {})
        return body

    def _switch(self, form, args, attrs):
        return ast.SwitchStmt(
            init=self._opt_stmt(attrs.get("init")),
            tag=self._opt_expr(attrs.get("tag")),
            body=self._clause_body(form, args, ast.CaseClause),
        )

    def _typeswitch(self, form, args, attrs):
        if not args:
            raise DumpFormatError("expected (typeswitch ASSIGN CASE…)", ErrorCode.BAD_ARITY)
        return ast.TypeSwitchStmt(
            init=self._opt_stmt(attrs.get("init")),
            assign=self.stmt(args[0]),
            body=self._clause_body(form, args[1:], ast.CaseClause),
        )

    def _select(self, form, args, attrs):
        return ast.SelectStmt(body=self._clause_body(form, args, ast.CommClause))

    def _case(self, form, args, attrs):
        if _head(form) == "default":
            return ast.CaseClause(exprs=[], body=[self.stmt(a) for a in args])
        if not args:
            raise DumpFormatError("expected (case (EXPR…) STMT…)", ErrorCode.BAD_ARITY)
        return ast.CaseClause(exprs=self._exprs(args[0]), body=[self.stmt(a) for a in args[1:]])

    def _comm(self, form, args, attrs):
        if not args:
            raise DumpFormatError("expected (comm STMT|default STMT…)", ErrorCode.BAD_ARITY)
        comm = None if args[0] == "default" else self.stmt(args[0])
        return ast.CommClause(comm=comm, body=[self.stmt(a) for a in args[1:]])

    def _var(self, form, args, attrs):
        if len(args) not in (1, 2):
            raise DumpFormatError("expected (var (NAME…) [(VALUE…)])", ErrorCode.BAD_ARITY)
        names = self._exprs(args[0])
        if not all(isinstance(n, ast.Ident) for n in names):
            raise DumpFormatError("(var …) names must be identifiers", ErrorCode.BAD_ARITY)
        values = self._exprs(args[1]) if len(args) == 2 else []
        return ast.DeclStmt(names=names, values=values)

    def _call_of(self, form: SList, args: List[Any]) -> ast.CallExpr:
        if len(args) != 1:
            raise DumpFormatError(f"expected ({_head(form)} CALL)", ErrorCode.BAD_ARITY)
        call = self.expr(args[0])
        if not isinstance(call, ast.CallExpr):
            raise DumpFormatError(f"({_head(form)} …) needs a call", ErrorCode.BAD_ARITY)
        return call

    def _go(self, form, args, attrs):
        return ast.GoStmt(call=self._call_of(form, args))

    def _defer(self, form, args, attrs):
        return ast.DeferStmt(call=self._call_of(form, args))

    def _labeled(self, form, args, attrs):
        if len(args) != 2:
            raise DumpFormatError("expected (labeled NAME STMT)", ErrorCode.BAD_ARITY)
        return ast.LabeledStmt(label=ast.Ident(name=str(args[0])), stmt=self.stmt(args[1]))

    def _branch(self, form, args, attrs):
        if not args:
            raise DumpFormatError("expected (branch TOK [LABEL])", ErrorCode.BAD_ARITY)
        label = ast.Ident(name=str(args[1])) if len(args) > 1 else None
        return ast.BranchStmt(tok=str(args[0]), label=label)

    def _incdec(self, form, args, attrs):
        if len(args) != 2:
            raise DumpFormatError("expected (incdec TOK X)", ErrorCode.BAD_ARITY)
        return ast.IncDecStmt(tok=str(args[0]), x=self.expr(args[1]))

    def _send(self, form, args, attrs):
        if len(args) != 2:
            raise DumpFormatError("expected (send CHAN VALUE)", ErrorCode.BAD_ARITY)
        return ast.SendStmt(chan=self.expr(args[0]), value=self.expr(args[1]))

    # ── expressions ──────────────────────────────────────────────────

    def expr(self, form: Any) -> ast.Expr:
        form = _expect_list(form, "expression")
        head = _head(form)
        builder = self._expr_builders.get(head)
        if builder is None:
            raise DumpFormatError(f"unknown expression form ({head} …)")
        args, attrs = _split(form)
        node = builder(form, args, attrs)
        self._place(node, form, attrs)
        if "type" in attrs:
            self.info.record_type(node, self.type_expr(attrs["type"]))
        return node

    def _ident(self, form, args, attrs):
        if len(args) not in (1, 2) or not isinstance(args[0], str):
            raise DumpFormatError("expected (ident NAME [ID|universe])", ErrorCode.BAD_ARITY)
        ident = ast.Ident(name=str(args[0]))
        obj = self._lookup_object(args[1] if len(args) == 2 else None, ident.name)
        if obj is not None:
            if _truthy(attrs.get("def")):
                self.info.record_def(ident, obj)
            else:
                self.info.record_use(ident, obj)
        return ident

    def _lit(self, form, args, attrs):
        if len(args) != 2:
            raise DumpFormatError("expected (lit KIND VALUE)", ErrorCode.BAD_ARITY)
        return ast.BasicLit(lit_kind=str(args[0]).upper(), value=str(args[1]))

    def _sel(self, form, args, attrs):
        if len(args) != 2:
            raise DumpFormatError("expected (sel X (ident NAME …))", ErrorCode.BAD_ARITY)
        sel = self.expr(args[1]) if isinstance(args[1], list) else ast.Ident(name=str(args[1]))
        if not isinstance(sel, ast.Ident):
            raise DumpFormatError("selector must be an identifier", ErrorCode.BAD_ARITY)
        return ast.SelectorExpr(x=self.expr(args[0]), sel=sel)

    def _call(self, form, args, attrs):
        if not args:
            raise DumpFormatError("expected (call FUN ARG…)", ErrorCode.BAD_ARITY)
        return ast.CallExpr(
            fun=self.expr(args[0]),
            args=[self.expr(a) for a in args[1:]],
            ellipsis=_truthy(attrs.get("ellipsis")),
        )

    def _binary(self, form, args, attrs):
        if len(args) != 3:
            raise DumpFormatError("expected (binary OP X Y)", ErrorCode.BAD_ARITY)
        return ast.BinaryExpr(op=str(args[0]), x=self.expr(args[1]), y=self.expr(args[2]))

    def _unary(self, form, args, attrs):
        if len(args) != 2:
            raise DumpFormatError("expected (unary OP X)", ErrorCode.BAD_ARITY)
        return ast.UnaryExpr(op=str(args[0]), x=self.expr(args[1]))

    def _paren(self, form, args, attrs):
        if len(args) != 1:
            raise DumpFormatError("expected (paren X)", ErrorCode.BAD_ARITY)
        return ast.ParenExpr(x=self.expr(args[0]))

    def _star(self, form, args, attrs):
        if len(args) != 1:
            raise DumpFormatError("expected (star X)", ErrorCode.BAD_ARITY)
        return ast.StarExpr(x=self.expr(args[0]))

    def _index(self, form, args, attrs):
        if len(args) != 2:
            raise DumpFormatError("expected (index X I)", ErrorCode.BAD_ARITY)
        return ast.IndexExpr(x=self.expr(args[0]), index=self.expr(args[1]))

    def _funclit(self, form, args, attrs):
        if len(args) != 1:
            raise DumpFormatError("expected (funclit BLOCK)", ErrorCode.BAD_ARITY)
        return ast.FuncLit(body=self._block_of(args[0]))

    def _composite(self, form, args, attrs):
        return ast.CompositeLit(elts=[self.expr(a) for a in args])

    def _kv(self, form, args, attrs):
        if len(args) != 2:
            raise DumpFormatError("expected (kv KEY VALUE)", ErrorCode.BAD_ARITY)
        return ast.KeyValueExpr(key=self.expr(args[0]), value=self.expr(args[1]))


# ═══════════════════════════════════════════════════════════════════
#  PART 5 — PUBLIC ENTRY POINTS
# ═══════════════════════════════════════════════════════════════════

def load_units(text: str, filename: str = "") -> List[SourceUnit]:
    """Build every ``(unit …)`` form found in ``text``."""
    units = []
    for form in parse_sexp(text, filename):
        try:
            units.append(UnitBuilder(text, filename).build(form))
        except DumpError as exc:
            exc.filename = exc.filename or filename
            raise
    logger.debug("loaded %d unit(s) from %s", len(units), filename or "<text>")
    return units


def load_unit(text: str, filename: str = "") -> SourceUnit:
    """Build exactly one unit from ``text``."""
    units = load_units(text, filename)
    if len(units) != 1:
        raise DumpFormatError(
            f"expected exactly one (unit …) form, found {len(units)}",
            ErrorCode.BAD_ARITY,
            filename,
        )
    return units[0]


def parsedump(path: Union[str, Path]) -> List[SourceUnit]:
    """Read and build all units of a dump file on disk."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DumpError(f"cannot read dump: {exc}", ErrorCode.UNREADABLE_DUMP, str(p)) from exc
    logger.info("Parsing dump file: %s", p)
    return load_units(text, str(p))


__all__ = [
    "SEXP_GRAMMAR",
    "Symbol",
    "SList",
    "parse_sexp",
    "offset_to_line_col",
    "Comment",
    "SourceUnit",
    "GENERATED_MARKER",
    "should_analyze",
    "UnitBuilder",
    "load_units",
    "load_unit",
    "parsedump",
]
