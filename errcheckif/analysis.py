"""
errcheckif/analysis.py
══════════════════════

The intraprocedural "was this error looked at?" pass.

For every assignment whose right-hand side is a single call returning an
error-capable value, decide whether a sequentially subsequent construct
in the same (or an enclosing) statement list proves the error was
checked or forwarded before being overwritten.

Pipeline per assignment
───────────────────────

    AssignStmt
        │
        ▼
    find_returned_error()          ← detector (arity, signature, oracle)
        │  tracked Ident
        ▼
    path_enclosing()               ← ancestor chain, innermost first
        │
        ├──► handled_in_if_init()  ← ``if _, err = f(); err != nil``
        │
        └──► handled_in_subsequent_statement()
                 │  for each enclosing statement list, the statements
                 │  strictly after the one we came from:
                 │     if-test proves it   → handled
                 │     return forwards it  → handled
                 │     rebinds it          → NOT handled, stop
                 ▼
             Finding (one per unproven site)

Known limitations (accepted)
────────────────────────────
- No path sensitivity: a check in one branch of an earlier ``if`` does
  not cover a use after the merge point, and vice versa.
- ``&&`` conditions are opaque; only ``||`` is decomposed.
- A search never leaves the innermost function literal; captures by
  closures or goroutines are not followed.

License: MIT
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import (
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
)

from errcheckif.syntax import (
    ASSIGN,
    DEFINE,
    EQL,
    LAND,
    LOR,
    NEQ,
    AssignStmt,
    BinaryExpr,
    CallExpr,
    Expr,
    File,
    Ident,
    IfStmt,
    Position,
    RangeStmt,
    ReturnStmt,
    SelectorExpr,
    Stmt,
    SyntaxNode,
    is_clause,
    is_function_boundary,
    path_enclosing,
    stmt_list,
    walk,
)
from errcheckif.typeinfo import (
    UNIVERSE,
    Object,
    ObjectKind,
    Signature,
    TypeInfo,
    implements_error,
)

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATE = "error '{name}' is not checked or returned"


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — RESULT RECORDS
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ErrorHelpers:
    """
    The errors-helper convention recognised in conditions:
    ``<package>.<predicate>(err, target)``.
    """
    package: str = "errors"
    predicates: FrozenSet[str] = frozenset({"Is", "As"})


DEFAULT_HELPERS = ErrorHelpers()


@dataclass(frozen=True)
class TrackedError:
    """The variable bound to the error result of one call site."""
    ident: Ident
    obj: Object
    assign: AssignStmt

    @property
    def name(self) -> str:
        return self.ident.name


@dataclass(frozen=True)
class Finding:
    """One unproven tracked error."""
    name: str
    pos: Position
    end: Position
    message: str = field(default="")

    @classmethod
    def from_tracked(cls, tracked: TrackedError) -> "Finding":
        return cls(
            name=tracked.name,
            pos=tracked.ident.pos,
            end=tracked.ident.end,
            message=MESSAGE_TEMPLATE.format(name=tracked.name),
        )


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — IDENTIFIER RESOLVER
# ═════════════════════════════════════════════════════════════════════════

def object_of(info: TypeInfo, expr: Optional[Expr]) -> Optional[Object]:
    if not isinstance(expr, Ident):
        return None
    return info.object_of(expr)


def same_variable(info: TypeInfo, a: Optional[Expr], b: Optional[Expr]) -> bool:
    """
    True iff both expressions are identifiers bound to the *same*
    declaration object.  Names are never compared, and an unresolved
    occurrence matches nothing.
    """
    obj = object_of(info, a)
    return obj is not None and obj is object_of(info, b)


def is_nil(info: TypeInfo, expr: Optional[Expr]) -> bool:
    """True iff ``expr`` denotes the universe ``nil`` (not a shadowing local)."""
    return object_of(info, expr) is UNIVERSE.nil


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — ERROR-PRODUCING ASSIGNMENT DETECTOR
# ═════════════════════════════════════════════════════════════════════════

def find_returned_error(info: TypeInfo, assign: AssignStmt) -> Optional[TrackedError]:
    """
    If ``assign`` binds the error result of a single call, return the
    tracked left-hand identifier.

    Declines (returns None) when:
      - the statement is a compound assignment (``+=`` …)
      - the right-hand side is not exactly one direct call
      - the callee has no signature fact
      - left and right arity disagree
      - the error slot is bound to ``_`` or to a non-identifier
      - the bound identifier has no declaration object
    """
    if assign.tok not in (ASSIGN, DEFINE):
        return None
    if len(assign.rhs) != 1:
        return None
    call = assign.rhs[0]
    if not isinstance(call, CallExpr):
        return None

    fun_type = info.type_of(call.fun)
    # named func types call through their underlying signature
    sig = fun_type.underlying if fun_type is not None else None
    if not isinstance(sig, Signature):
        return None
    results = sig.results
    if not results or len(results) != len(assign.lhs):
        return None

    for index, result_type in enumerate(results):
        if not implements_error(result_type):
            continue
        target = assign.lhs[index]
        if not isinstance(target, Ident) or target.is_blank:
            return None
        obj = info.object_of(target)
        if obj is None:
            logger.debug("unresolved error target %r, skipping", target)
            return None
        return TrackedError(ident=target, obj=obj, assign=assign)
    return None


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — CONDITION CLASSIFIER
# ═════════════════════════════════════════════════════════════════════════

def _is_helper_qualifier(info: TypeInfo, expr: Optional[Expr], helpers: ErrorHelpers) -> bool:
    if not isinstance(expr, Ident) or expr.name != helpers.package:
        return False
    obj = info.object_of(expr)
    return obj is None or obj.kind is ObjectKind.PKGNAME


def _is_helper_predicate(
    info: TypeInfo,
    call: CallExpr,
    target: Ident,
    helpers: ErrorHelpers,
) -> bool:
    fun = call.fun
    if not isinstance(fun, SelectorExpr) or fun.sel is None:
        return False
    if not _is_helper_qualifier(info, fun.x, helpers):
        return False
    if fun.sel.name not in helpers.predicates:
        return False
    return len(call.args) == 2 and same_variable(info, call.args[0], target)


def proves(
    info: TypeInfo,
    cond: Optional[Expr],
    target: Ident,
    helpers: ErrorHelpers = DEFAULT_HELPERS,
) -> bool:
    """
    Does the branch condition ``cond`` constitute a check of ``target``?

      A || B               either side proves it
      A && B               never (opaque)
      x != nil, x == nil   in either operand order
      errors.Is(x, …)      likewise errors.As; first argument is x
      anything else        no
    """
    if isinstance(cond, BinaryExpr):
        if cond.op == LOR:
            return (proves(info, cond.x, target, helpers)
                    or proves(info, cond.y, target, helpers))
        if cond.op == LAND:
            return False
        if cond.op in (EQL, NEQ):
            if same_variable(info, cond.x, target) and is_nil(info, cond.y):
                return True
            if is_nil(info, cond.x) and same_variable(info, cond.y, target):
                return True
        return False
    if isinstance(cond, CallExpr):
        return _is_helper_predicate(info, cond, target, helpers)
    return False


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — IF-INITIALIZER SPECIAL CASE
# ═════════════════════════════════════════════════════════════════════════

def handled_in_if_init(
    info: TypeInfo,
    target: Ident,
    path: Sequence[SyntaxNode],
    helpers: ErrorHelpers = DEFAULT_HELPERS,
) -> bool:
    """``if _, err = f(); err != nil {…}``: the if's own test decides."""
    if len(path) < 2:
        return False
    parent = path[1]
    if not isinstance(parent, IfStmt) or parent.init is not path[0]:
        return False
    return proves(info, parent.cond, target, helpers)


# ═════════════════════════════════════════════════════════════════════════
#  PART 6 — SEQUENTIAL SCOPE SCANNER
# ═════════════════════════════════════════════════════════════════════════

def is_valid_handler(
    info: TypeInfo,
    stmt: Stmt,
    target: Ident,
    helpers: ErrorHelpers = DEFAULT_HELPERS,
) -> bool:
    """An ``if`` whose test proves the check, or a ``return`` forwarding it."""
    if isinstance(stmt, IfStmt):
        return proves(info, stmt.cond, target, helpers)
    if isinstance(stmt, ReturnStmt):
        return any(same_variable(info, r, target) for r in stmt.results)
    return False


def is_reassigned(info: TypeInfo, stmt: Stmt, target: Ident) -> bool:
    """
    Does ``stmt`` (at any depth) assign to the target's declaration?

    Both ``err = …`` and ``for _, err = range …`` rebind it.
    """
    obj = info.object_of(target)
    if obj is None:
        return False
    for node in walk(stmt):
        if isinstance(node, AssignStmt):
            targets = node.lhs
        elif isinstance(node, RangeStmt) and node.tok == ASSIGN:
            targets = [node.key, node.value]
        else:
            continue
        for lhs in targets:
            if isinstance(lhs, Ident) and info.object_of(lhs) is obj:
                return True
    return False


def _scan_following(
    info: TypeInfo,
    stmts: Sequence[Stmt],
    start: int,
    target: Ident,
    helpers: ErrorHelpers,
) -> Optional[bool]:
    """
    Examine ``stmts[start:]``.  True = handled, False = rebound first,
    None = list exhausted without a verdict.
    """
    for stmt in stmts[start:]:
        if is_valid_handler(info, stmt, target, helpers):
            return True
        if is_reassigned(info, stmt, target):
            return False
    return None


def handled_in_subsequent_statement(
    info: TypeInfo,
    target: Ident,
    path: Sequence[SyntaxNode],
    helpers: ErrorHelpers = DEFAULT_HELPERS,
) -> bool:
    """
    Walk the ancestor chain outward looking for a handler after the
    assignment, one enclosing statement list at a time.

    Sibling ``case`` / ``select`` clauses are never searched: execution
    does not flow from one clause body into the next.  The walk stops at
    the innermost function boundary.
    """
    for i in range(1, len(path)):
        owner = path[i]
        if is_function_boundary(owner):
            return False
        stmts = stmt_list(owner)
        if stmts is None:
            continue
        came_from = path[i - 1]
        if is_clause(came_from):
            continue
        for index, stmt in enumerate(stmts):
            if stmt is came_from:
                verdict = _scan_following(info, stmts, index + 1, target, helpers)
                if verdict is not None:
                    return verdict
                break
    return False


# ═════════════════════════════════════════════════════════════════════════
#  PART 7 — PASS ENTRY POINT
# ═════════════════════════════════════════════════════════════════════════

def iter_tracked_errors(file: File, info: TypeInfo) -> Iterable[TrackedError]:
    """Every error-producing assignment in ``file``, in pre-order."""
    for node in walk(file):
        if isinstance(node, AssignStmt):
            tracked = find_returned_error(info, node)
            if tracked is not None:
                yield tracked


def is_handled(
    file: File,
    info: TypeInfo,
    tracked: TrackedError,
    helpers: ErrorHelpers = DEFAULT_HELPERS,
) -> Optional[bool]:
    """
    Verdict for one site.  None means the ancestor chain could not be
    rebuilt; such sites are neither proven nor reported.
    """
    path = path_enclosing(file, tracked.assign)
    if not path:
        logger.debug("assignment at %s not found under %s", tracked.assign.pos, file.name)
        return None
    if handled_in_if_init(info, tracked.ident, path, helpers):
        return True
    return handled_in_subsequent_statement(info, tracked.ident, path, helpers)


def find_unhandled_errors(
    file: File,
    info: TypeInfo,
    helpers: ErrorHelpers = DEFAULT_HELPERS,
) -> List[Finding]:
    """
    Run the pass over one file.

    A pure function of ``(file, info, helpers)``: the result is sorted by
    position and is identical across repeated runs.
    """
    findings: List[Finding] = []
    for tracked in iter_tracked_errors(file, info):
        verdict = is_handled(file, info, tracked, helpers)
        if verdict is False:
            logger.debug("unhandled error %r at %s", tracked.name, tracked.ident.pos)
            findings.append(Finding.from_tracked(tracked))
    findings.sort(key=lambda f: (f.pos, f.end))
    return findings


__all__ = [
    "MESSAGE_TEMPLATE",
    "ErrorHelpers",
    "DEFAULT_HELPERS",
    "TrackedError",
    "Finding",
    "object_of",
    "same_variable",
    "is_nil",
    "find_returned_error",
    "proves",
    "handled_in_if_init",
    "is_valid_handler",
    "is_reassigned",
    "handled_in_subsequent_statement",
    "iter_tracked_errors",
    "is_handled",
    "find_unhandled_errors",
]
