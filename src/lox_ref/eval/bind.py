from __future__ import annotations

from typing import TYPE_CHECKING

from lark import Token, Tree

from ..runtime import Frame, LoxNil, LoxValue
from ..tree import node_id

if TYPE_CHECKING:
    from ..evaluator import Interpreter

__all__ = [
    "lookup_variable",
    "assign_variable",
    "eval_variable",
    "eval_assign",
    "eval_var_decl",
]

def lookup_variable(name: Token, n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    """Read through the resolved distance; unresolved names are globals."""
    distance = interp.locals.get(node_id(n))

    if distance is None:
        return interp.globals.get(name)

    return frame.get_at(distance, name)

def assign_variable(name: Token, n: Tree, value: LoxValue, frame: Frame, interp: 'Interpreter') -> None:
    distance = interp.locals.get(node_id(n))

    if distance is None:
        interp.globals.assign(name, value)
    else:
        frame.assign_at(distance, name, value)

def eval_variable(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    return lookup_variable(n.children[0], n, frame, interp)

def eval_assign(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    name, value_node = n.children
    value = interp.eval_node(value_node, frame)
    assign_variable(name, n, value, frame, interp)
    return value

def eval_var_decl(n: Tree, frame: Frame, interp: 'Interpreter') -> None:
    """`var x;` declares x as unassigned; reading it before assignment is an error."""
    name, init = n.children

    if init is None:
        frame.define(str(name), LoxNil(), assigned=False)
    else:
        frame.define(str(name), interp.eval_node(init, frame))
