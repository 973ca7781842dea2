from __future__ import annotations

import sys
from typing import Callable, Dict, Iterable, List, Optional, TextIO

from lark import Tree

from .runtime import (
    Completion,
    Frame,
    LoxNil,
    LoxRuntimeError,
    LoxValue,
    init_stdlib,
)
from .tree import node_token, tree_label
from .utils import raise_recursion_limit

from .eval.bind import eval_assign, eval_var_decl, eval_variable
from .eval.blocks import (
    eval_block,
    eval_break_stmt,
    eval_expression_stmt,
    eval_print_stmt,
    eval_return_stmt,
    exec_statements,
)
from .eval.expr import (
    eval_binary,
    eval_comma,
    eval_conditional,
    eval_grouping,
    eval_list,
    eval_literal,
    eval_logical,
    eval_unary,
)
from .eval.fn import eval_function_decl, eval_lambda
from .eval.loops import eval_if_stmt, eval_while_stmt
from .eval.objects import eval_call, eval_class_decl, eval_get, eval_set, eval_super, eval_this

EvalFunc = Callable[[Tree, Frame, 'Interpreter'], LoxValue]
ExecFunc = Callable[[Tree, Frame, 'Interpreter'], Completion]

def _maybe_attach_location(exc: LoxRuntimeError, node: Tree) -> None:
    """Errors raised away from any token (natives, helpers) take the node's first token."""
    if exc.token is not None:
        return

    tok = node_token(node)
    if tok is not None:
        exc.token = tok

class Interpreter:
    """Tree-walking evaluator.

    Holds the global frame and the resolver's distance table. The current frame
    is passed explicitly to every evaluation call; nothing swaps a "current
    environment" in and out.
    """

    def __init__(self, out: Optional[TextIO] = None):
        init_stdlib()
        raise_recursion_limit()
        self.globals = Frame()
        self.locals: Dict[int, int] = {}
        self.out = out

    @property
    def stdout(self) -> TextIO:
        # resolved per print so a redirected sys.stdout is honoured
        return self.out if self.out is not None else sys.stdout

    def resolve(self, table: Dict[int, int]) -> None:
        self.locals.update(table)

    # ---------------- Core evaluator ----------------

    def eval_node(self, n: Tree, frame: Frame) -> LoxValue:
        try:
            handler = _NODE_DISPATCH.get(n.data)
            if handler is None:
                raise RuntimeError(f"Unknown expression node: {n.data}")
            return handler(n, frame, self)
        except LoxRuntimeError as e:
            _maybe_attach_location(e, n)
            raise

    def exec_stmt(self, n: Tree, frame: Frame) -> Completion:
        try:
            handler = _STMT_DISPATCH.get(n.data)
            if handler is None:
                raise RuntimeError(f"Unknown statement node: {n.data}")
            return handler(n, frame, self)
        except LoxRuntimeError as e:
            _maybe_attach_location(e, n)
            raise

    def exec_block(self, statements: Iterable[Tree], frame: Frame) -> Completion:
        return exec_statements(statements, frame, self)

    # ---------------- Public API ----------------

    def evaluate(self, expr: Tree) -> LoxValue:
        """Evaluate one expression in the global frame."""
        try:
            return self.eval_node(expr, self.globals)
        except RecursionError:
            raise LoxRuntimeError("Stack overflow.", node_token(expr)) from None

    def execute(self, statements: List[Tree]) -> LoxValue:
        """Run a program; returns the value of the last top-level expression
        statement (nil if none). Runtime errors propagate."""
        result: LoxValue = LoxNil()

        for stmt in statements:
            try:
                if tree_label(stmt) == 'expression_stmt':
                    result = self.eval_node(stmt.children[0], self.globals)
                    continue

                outcome = self.exec_stmt(stmt, self.globals)
            except RecursionError:
                # reported at the top-level statement that started the descent
                raise LoxRuntimeError("Stack overflow.", node_token(stmt)) from None

            if outcome is not None:
                raise RuntimeError(f"{outcome!r} escaped to top level")

        return result

    def interpret(self, statements: List[Tree], on_error: Callable[[LoxRuntimeError], None]) -> bool:
        """Run a program, reporting the first runtime error instead of raising.

        Returns False when a runtime error halted the run.
        """
        try:
            self.execute(statements)
        except LoxRuntimeError as e:
            on_error(e)
            return False

        return True

def _invalid_node(n: Tree, frame: Frame, interp: Interpreter) -> LoxValue:
    raise RuntimeError(f"{n.data} placeholder reached the evaluator")

_NODE_DISPATCH: dict[str, EvalFunc] = {
    'literal': eval_literal,
    'grouping': eval_grouping,
    'list': eval_list,
    'variable': eval_variable,
    'assign': eval_assign,
    'unary': eval_unary,
    'binary': eval_binary,
    'logical': eval_logical,
    'conditional': eval_conditional,
    'comma': eval_comma,
    'call': eval_call,
    'get': eval_get,
    'set': eval_set,
    'this_expr': eval_this,
    'super_expr': eval_super,
    'lambda_expr': eval_lambda,
    'invalid_expr': _invalid_node,
}

_STMT_DISPATCH: dict[str, ExecFunc] = {
    'expression_stmt': eval_expression_stmt,
    'print_stmt': eval_print_stmt,
    'var_decl': eval_var_decl,
    'block': eval_block,
    'if_stmt': eval_if_stmt,
    'while_stmt': eval_while_stmt,
    'break_stmt': eval_break_stmt,
    'return_stmt': eval_return_stmt,
    'function': eval_function_decl,
    'class_decl': eval_class_decl,
    'invalid_stmt': _invalid_node,
}
