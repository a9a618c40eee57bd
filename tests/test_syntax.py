# tests/test_syntax.py
"""
Tests for syntax-tree traversal: child order, pre-order walk, ancestor
paths and statement-list extraction.
"""

from errcheckif.syntax import (
    AssignStmt,
    BinaryExpr,
    BlockStmt,
    CallExpr,
    CaseClause,
    CommClause,
    ExprStmt,
    FuncDecl,
    FuncLit,
    Ident,
    IfStmt,
    ReturnStmt,
    SwitchStmt,
    describe,
    is_clause,
    is_function_boundary,
    iter_children,
    path_enclosing,
    stmt_list,
    walk,
)


def small_tree():
    err_def = Ident(name="err")
    assign = AssignStmt(lhs=[err_def], tok=":=", rhs=[CallExpr(fun=Ident(name="load"))])
    cond = BinaryExpr(op="!=", x=Ident(name="err"), y=Ident(name="nil"))
    ret = ReturnStmt(results=[Ident(name="err")])
    if_stmt = IfStmt(cond=cond, body=BlockStmt(stmts=[ret]))
    body = BlockStmt(stmts=[assign, if_stmt])
    decl = FuncDecl(name=Ident(name="main"), body=body)
    return decl, body, assign, if_stmt, ret


class TestTraversal:

    def test_children_in_field_order(self):
        decl, body, assign, if_stmt, ret = small_tree()
        assert list(iter_children(body)) == [assign, if_stmt]
        kinds = [c.kind for c in iter_children(if_stmt)]
        assert kinds == ["BinaryExpr", "BlockStmt"]

    def test_walk_is_preorder(self):
        decl, body, assign, if_stmt, ret = small_tree()
        order = list(walk(decl))
        assert order[0] is decl
        assert order.index(assign) < order.index(if_stmt) < order.index(ret)
        assert list(walk(decl)) == order

    def test_walk_none(self):
        assert list(walk(None)) == []


class TestPathEnclosing:

    def test_innermost_first(self):
        decl, body, assign, if_stmt, ret = small_tree()
        path = path_enclosing(decl, ret)
        assert path[0] is ret
        assert path[-1] is decl
        assert [n.kind for n in path] == ["ReturnStmt", "BlockStmt", "IfStmt", "BlockStmt", "FuncDecl"]

    def test_missing_node(self):
        decl, *_ = small_tree()
        assert path_enclosing(decl, ReturnStmt()) == []

    def test_identity_not_equality(self):
        a = ExprStmt(x=Ident(name="x"))
        b = ExprStmt(x=Ident(name="x"))
        body = BlockStmt(stmts=[a, b])
        assert path_enclosing(body, b)[0] is b


class TestStatementLists:

    def test_block_and_clauses(self):
        s = ReturnStmt()
        assert stmt_list(BlockStmt(stmts=[s])) == [s]
        assert stmt_list(CaseClause(body=[s])) == [s]
        assert stmt_list(CommClause(body=[s])) == [s]
        assert stmt_list(IfStmt()) is None

    def test_clause_and_boundary_predicates(self):
        assert is_clause(CaseClause())
        assert not is_clause(SwitchStmt())
        assert is_function_boundary(FuncDecl())
        assert is_function_boundary(FuncLit())
        assert not is_function_boundary(BlockStmt())

    def test_describe(self):
        decl, *_ = small_tree()
        text = describe(decl)
        assert text.splitlines()[0].startswith("FuncDecl")
        assert "  AssignStmt :=" in text
        assert "Ident err" in text
