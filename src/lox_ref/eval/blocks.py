from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from lark import Tree

from ..runtime import BREAK, Completion, Frame, LoxNil, Returned
from .common import stringify

if TYPE_CHECKING:
    from ..evaluator import Interpreter

def exec_statements(statements: Iterable[Tree], frame: Frame, interp: 'Interpreter') -> Completion:
    """Run statements in order; the first `Returned`/`Broke` outcome stops the run."""
    for stmt in statements:
        outcome = interp.exec_stmt(stmt, frame)
        if outcome is not None:
            return outcome

    return None

def eval_block(n: Tree, frame: Frame, interp: 'Interpreter') -> Completion:
    return exec_statements(n.children, Frame(parent=frame), interp)

def eval_expression_stmt(n: Tree, frame: Frame, interp: 'Interpreter') -> Completion:
    interp.eval_node(n.children[0], frame)
    return None

def eval_print_stmt(n: Tree, frame: Frame, interp: 'Interpreter') -> Completion:
    value = interp.eval_node(n.children[1], frame)
    print(stringify(value), file=interp.stdout)
    return None

def eval_return_stmt(n: Tree, frame: Frame, interp: 'Interpreter') -> Completion:
    _kw, value_node = n.children

    if value_node is None:
        return Returned(LoxNil())

    return Returned(interp.eval_node(value_node, frame))

def eval_break_stmt(n: Tree, frame: Frame, interp: 'Interpreter') -> Completion:
    return BREAK
