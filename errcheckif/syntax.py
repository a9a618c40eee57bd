#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
errcheckif/syntax.py
════════════════════

Syntax tree for the Go-flavoured programs the checker inspects.

The tree is produced once per source unit (see ``dumpfile.py``) and is
never mutated by the analysis.  It deliberately has no parent pointers:
ancestry is recovered on demand with :func:`path_enclosing`, which
keeps the structure a plain tree.

    ┌─────────────────────────────────────────────────────────────────┐
    │  Node variants                                                  │
    │    • Expressions   Ident, CallExpr, SelectorExpr, BinaryExpr …  │
    │    • Statements    AssignStmt, IfStmt, ReturnStmt, BlockStmt …  │
    │    • Clauses       CaseClause, CommClause                       │
    │    • Declarations  FuncDecl, File                               │
    ├─────────────────────────────────────────────────────────────────┤
    │  Traversal                                                      │
    │    • iter_children / walk (deterministic pre-order)             │
    │    • path_enclosing (ancestor chain, innermost first)           │
    │    • stmt_list (ordered statement list of a scope)              │
    └─────────────────────────────────────────────────────────────────┘

Nodes compare by identity: two occurrences of ``err`` are different
nodes even when they print the same.  That is what lets a node key the
fact-base dictionaries in ``typeinfo.TypeInfo``.

License: MIT
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import (
    Iterator,
    List,
    Optional,
    Union,
)


# ═══════════════════════════════════════════════════════════════════════════
#  PART 1 — POSITIONS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, order=True)
class Position:
    """1-based line/column.  ``Position()`` means "unknown"."""
    line: int = 0
    column: int = 0

    @property
    def is_valid(self) -> bool:
        return self.line > 0

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


NO_POS = Position()


# Assignment tokens
ASSIGN = "="
DEFINE = ":="

# Operators the condition classifier distinguishes
LOR = "||"
LAND = "&&"
EQL = "=="
NEQ = "!="

BLANK = "_"


# ═══════════════════════════════════════════════════════════════════════════
#  PART 2 — NODE BASE
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(eq=False)
class SyntaxNode:
    """Abstract supertype of every tree node."""
    pos: Position = field(default=NO_POS, kw_only=True)
    end: Position = field(default=NO_POS, kw_only=True)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __repr__(self) -> str:
        return f"<{self.kind} @{self.pos}>"


class Expr(SyntaxNode):
    """Marker base for expressions."""


class Stmt(SyntaxNode):
    """Marker base for statements."""


# ═══════════════════════════════════════════════════════════════════════════
#  PART 3 — EXPRESSIONS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(eq=False, repr=False)
class Ident(Expr):
    name: str = ""

    @property
    def is_blank(self) -> bool:
        return self.name == BLANK

    def __repr__(self) -> str:
        return f"<Ident {self.name!r} @{self.pos}>"


@dataclass(eq=False, repr=False)
class BasicLit(Expr):
    lit_kind: str = "INT"        # INT, FLOAT, STRING, CHAR, IMAG
    value: str = ""


@dataclass(eq=False, repr=False)
class SelectorExpr(Expr):
    x: Optional[Expr] = None
    sel: Optional[Ident] = None


@dataclass(eq=False, repr=False)
class CallExpr(Expr):
    fun: Optional[Expr] = None
    args: List[Expr] = field(default_factory=list)
    ellipsis: bool = False


@dataclass(eq=False, repr=False)
class BinaryExpr(Expr):
    op: str = ""
    x: Optional[Expr] = None
    y: Optional[Expr] = None


@dataclass(eq=False, repr=False)
class UnaryExpr(Expr):
    op: str = ""
    x: Optional[Expr] = None


@dataclass(eq=False, repr=False)
class ParenExpr(Expr):
    x: Optional[Expr] = None


@dataclass(eq=False, repr=False)
class StarExpr(Expr):
    x: Optional[Expr] = None


@dataclass(eq=False, repr=False)
class IndexExpr(Expr):
    x: Optional[Expr] = None
    index: Optional[Expr] = None


@dataclass(eq=False, repr=False)
class KeyValueExpr(Expr):
    key: Optional[Expr] = None
    value: Optional[Expr] = None


@dataclass(eq=False, repr=False)
class CompositeLit(Expr):
    elts: List[Expr] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class FuncLit(Expr):
    body: Optional["BlockStmt"] = None


# ═══════════════════════════════════════════════════════════════════════════
#  PART 4 — STATEMENTS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(eq=False, repr=False)
class BlockStmt(Stmt):
    stmts: List[Stmt] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class AssignStmt(Stmt):
    lhs: List[Expr] = field(default_factory=list)
    tok: str = ASSIGN
    rhs: List[Expr] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class ExprStmt(Stmt):
    x: Optional[Expr] = None


@dataclass(eq=False, repr=False)
class ReturnStmt(Stmt):
    results: List[Expr] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class IfStmt(Stmt):
    init: Optional[Stmt] = None
    cond: Optional[Expr] = None
    body: Optional[BlockStmt] = None
    else_: Optional[Stmt] = None     # BlockStmt or IfStmt


@dataclass(eq=False, repr=False)
class ForStmt(Stmt):
    init: Optional[Stmt] = None
    cond: Optional[Expr] = None
    post: Optional[Stmt] = None
    body: Optional[BlockStmt] = None


@dataclass(eq=False, repr=False)
class RangeStmt(Stmt):
    key: Optional[Expr] = None
    value: Optional[Expr] = None
    tok: str = ""                    # "", "=" or ":="
    x: Optional[Expr] = None
    body: Optional[BlockStmt] = None


@dataclass(eq=False, repr=False)
class CaseClause(Stmt):
    """``case a, b:`` / ``default:`` (empty ``exprs``) in a switch body."""
    exprs: List[Expr] = field(default_factory=list)
    body: List[Stmt] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class CommClause(Stmt):
    """``case <-ch:`` / ``default:`` (``comm`` is None) in a select body."""
    comm: Optional[Stmt] = None
    body: List[Stmt] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class SwitchStmt(Stmt):
    init: Optional[Stmt] = None
    tag: Optional[Expr] = None
    body: Optional[BlockStmt] = None  # list of CaseClause


@dataclass(eq=False, repr=False)
class TypeSwitchStmt(Stmt):
    init: Optional[Stmt] = None
    assign: Optional[Stmt] = None
    body: Optional[BlockStmt] = None  # list of CaseClause


@dataclass(eq=False, repr=False)
class SelectStmt(Stmt):
    body: Optional[BlockStmt] = None  # list of CommClause


@dataclass(eq=False, repr=False)
class DeclStmt(Stmt):
    """``var a, b = x, y`` inside a function body."""
    names: List[Ident] = field(default_factory=list)
    values: List[Expr] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class GoStmt(Stmt):
    call: Optional[CallExpr] = None


@dataclass(eq=False, repr=False)
class DeferStmt(Stmt):
    call: Optional[CallExpr] = None


@dataclass(eq=False, repr=False)
class LabeledStmt(Stmt):
    label: Optional[Ident] = None
    stmt: Optional[Stmt] = None


@dataclass(eq=False, repr=False)
class BranchStmt(Stmt):
    tok: str = "break"
    label: Optional[Ident] = None


@dataclass(eq=False, repr=False)
class IncDecStmt(Stmt):
    x: Optional[Expr] = None
    tok: str = "++"


@dataclass(eq=False, repr=False)
class SendStmt(Stmt):
    chan: Optional[Expr] = None
    value: Optional[Expr] = None


# ═══════════════════════════════════════════════════════════════════════════
#  PART 5 — DECLARATIONS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(eq=False, repr=False)
class FuncDecl(SyntaxNode):
    name: Optional[Ident] = None
    body: Optional[BlockStmt] = None


@dataclass(eq=False, repr=False)
class File(SyntaxNode):
    name: str = ""
    package: str = ""
    decls: List[FuncDecl] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"<File {self.name!r} decls={len(self.decls)}>"


StmtListOwner = Union[BlockStmt, CaseClause, CommClause]

_POSITION_FIELDS = frozenset({"pos", "end"})


# ═══════════════════════════════════════════════════════════════════════════
#  PART 6 — TRAVERSAL
# ═══════════════════════════════════════════════════════════════════════════

def iter_children(node: Optional[SyntaxNode]) -> Iterator[SyntaxNode]:
    """
    Yield the direct children of ``node`` in declaration order.

    List-valued fields are expanded in place, so a ``BlockStmt``'s
    statements come out in source order.
    """
    if node is None:
        return
    for f in fields(node):
        if f.name in _POSITION_FIELDS:
            continue
        value = getattr(node, f.name)
        if isinstance(value, SyntaxNode):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, SyntaxNode):
                    yield item


def walk(root: Optional[SyntaxNode]) -> Iterator[SyntaxNode]:
    """
    Iterate a subtree in pre-order (node before its children).

    The order depends only on the tree, so two walks over the same tree
    always agree.
    """
    if root is None:
        return
    stack: List[SyntaxNode] = [root]
    while stack:
        node = stack.pop()
        yield node
        children = list(iter_children(node))
        stack.extend(reversed(children))


def path_enclosing(root: SyntaxNode, target: SyntaxNode) -> List[SyntaxNode]:
    """
    Reconstruct the ancestor chain of ``target`` inside ``root``.

    Returns
    -------
    ``[target, parent, grandparent, …, root]`` (innermost first), or an
    empty list when ``target`` is not part of the tree.
    """
    # Iterative DFS carrying the current root-to-node chain.
    stack: List[tuple] = [(root, 0)]
    chain: List[SyntaxNode] = []
    while stack:
        node, depth = stack.pop()
        del chain[depth:]
        chain.append(node)
        if node is target:
            return list(reversed(chain))
        children = list(iter_children(node))
        for child in reversed(children):
            stack.append((child, depth + 1))
    return []


def stmt_list(node: SyntaxNode) -> Optional[List[Stmt]]:
    """Return the ordered statement list a scope node exposes, if any."""
    if isinstance(node, BlockStmt):
        return node.stmts
    if isinstance(node, (CaseClause, CommClause)):
        return node.body
    return None


def is_clause(node: SyntaxNode) -> bool:
    """True for switch / select clauses (members of a multi-way body)."""
    return isinstance(node, (CaseClause, CommClause))


def is_function_boundary(node: SyntaxNode) -> bool:
    return isinstance(node, (FuncDecl, FuncLit))


def describe(node: Optional[SyntaxNode], indent: int = 0) -> str:
    """Indented outline of a subtree, used by ``errcheckif parse``."""
    if node is None:
        return ""
    pad = "  " * indent
    label = node.kind
    if isinstance(node, Ident):
        label += f" {node.name}"
    elif isinstance(node, (BinaryExpr, UnaryExpr)):
        label += f" {node.op}"
    elif isinstance(node, (AssignStmt, IncDecStmt, BranchStmt)):
        label += f" {node.tok}"
    elif isinstance(node, BasicLit):
        label += f" {node.value}"
    elif isinstance(node, File):
        label += f" {node.name}"
    lines = [f"{pad}{label}  [{node.pos}]"]
    for child in iter_children(node):
        lines.append(describe(child, indent + 1))
    return "\n".join(lines)


__all__ = [
    "Position", "NO_POS",
    "ASSIGN", "DEFINE", "LOR", "LAND", "EQL", "NEQ", "BLANK",
    "SyntaxNode", "Expr", "Stmt",
    "Ident", "BasicLit", "SelectorExpr", "CallExpr", "BinaryExpr",
    "UnaryExpr", "ParenExpr", "StarExpr", "IndexExpr", "KeyValueExpr",
    "CompositeLit", "FuncLit",
    "BlockStmt", "AssignStmt", "ExprStmt", "ReturnStmt", "IfStmt",
    "ForStmt", "RangeStmt", "CaseClause", "CommClause", "SwitchStmt",
    "TypeSwitchStmt", "SelectStmt", "DeclStmt", "GoStmt", "DeferStmt",
    "LabeledStmt", "BranchStmt", "IncDecStmt", "SendStmt",
    "FuncDecl", "File",
    "iter_children", "walk", "path_enclosing", "stmt_list",
    "is_clause", "is_function_boundary", "describe",
]
