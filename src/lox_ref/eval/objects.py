from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional

from lark import Tree

from ..runtime import (
    Frame,
    LoxClass,
    LoxFn,
    LoxNameError,
    LoxTypeError,
    LoxValue,
    call_getter,
    call_value,
    get_property,
    set_property,
)
from ..token_types import TT
from ..tree import node_id, synthetic_token
from .bind import lookup_variable
from .fn import make_method

if TYPE_CHECKING:
    from ..evaluator import Interpreter

def eval_call(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    callee_node, paren, args_node = n.children
    callee = interp.eval_node(callee_node, frame)
    args: List[LoxValue] = [interp.eval_node(arg, frame) for arg in args_node.children]

    return call_value(callee, args, interp, paren)

def eval_get(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    obj_node, name = n.children
    obj = interp.eval_node(obj_node, frame)

    return get_property(obj, name, interp)

def eval_set(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    obj_node, name, value_node = n.children
    obj = interp.eval_node(obj_node, frame)
    value = interp.eval_node(value_node, frame)

    return set_property(obj, name, value)

def eval_this(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    return lookup_variable(n.children[0], n, frame, interp)

def eval_super(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxValue:
    """`super.m` looks `m` up starting at the superclass, bound to the current `this`.

    The `this` frame sits directly inside the `super` frame. In a static method
    `this` is the class itself, so the lookup starts at the superclass's metaclass.
    """
    kw, method_name = n.children
    distance = interp.locals[node_id(n)]

    superclass = frame.get_at(distance, kw)
    this_tok = synthetic_token(TT.THIS, "this", kw.line)
    obj = frame.get_at(distance - 1, this_tok)

    assert isinstance(superclass, LoxClass)
    owner: Optional[LoxClass] = superclass.klass if isinstance(obj, LoxClass) else superclass

    method = owner.find_method(str(method_name)) if owner is not None else None
    if method is None:
        raise LoxNameError(f"Undefined property '{method_name}'.", method_name)

    bound = method.bind(obj)
    if bound.is_getter:
        return call_getter(bound, interp)

    return bound

def _methods_table(methods_node: Tree, frame: Frame, static: bool = False) -> Dict[str, LoxFn]:
    return {str(m.children[0]): make_method(m, frame, static) for m in methods_node.children}

def eval_class_decl(n: Tree, frame: Frame, interp: 'Interpreter') -> None:
    """
    Class declaration:
    - the superclass expression must produce a class
    - methods close over the defining frame, or over a frame binding `super`
    - static methods live on the metaclass, whose superclass is the
      superclass's metaclass, so statics are inherited
    """
    name, super_node, methods_node, statics_node = n.children

    superclass: Optional[LoxClass] = None
    if super_node is not None:
        value = interp.eval_node(super_node, frame)
        if not isinstance(value, LoxClass):
            raise LoxTypeError("Superclass must be a class.", super_node.children[0])
        superclass = value

    method_frame = frame
    if superclass is not None:
        method_frame = Frame(parent=frame)
        method_frame.define("super", superclass)

    metaclass = LoxClass(
        f"{name} metaclass",
        superclass.klass if superclass is not None else None,
        _methods_table(statics_node, method_frame, static=True),
    )
    klass = LoxClass(str(name), superclass, _methods_table(methods_node, method_frame), metaclass)

    frame.define(str(name), klass)
