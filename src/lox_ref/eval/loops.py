from __future__ import annotations

from typing import TYPE_CHECKING

from lark import Tree

from ..runtime import Broke, Completion, Frame, Returned
from .helpers import is_truthy

if TYPE_CHECKING:
    from ..evaluator import Interpreter

def eval_if_stmt(n: Tree, frame: Frame, interp: 'Interpreter') -> Completion:
    _kw, cond, then_branch, else_branch = n.children

    if is_truthy(interp.eval_node(cond, frame)):
        return interp.exec_stmt(then_branch, frame)

    if else_branch is not None:
        return interp.exec_stmt(else_branch, frame)

    return None

def eval_while_stmt(n: Tree, frame: Frame, interp: 'Interpreter') -> Completion:
    """`Broke` ends this loop only; `Returned` keeps propagating to the call."""
    _kw, cond, body = n.children

    while is_truthy(interp.eval_node(cond, frame)):
        outcome = interp.exec_stmt(body, frame)

        match outcome:
            case Broke():
                break
            case Returned():
                return outcome

    return None
