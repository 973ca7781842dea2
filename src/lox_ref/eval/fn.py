from __future__ import annotations

from typing import TYPE_CHECKING

from lark import Tree

from ..runtime import Frame, LoxFn

if TYPE_CHECKING:
    from ..evaluator import Interpreter

def eval_function_decl(n: Tree, frame: Frame, interp: 'Interpreter') -> None:
    """Bind a named function in the current frame, closing over that frame."""
    fn = LoxFn(declaration=n, closure=frame)
    frame.define(str(n.children[0]), fn)

def eval_lambda(n: Tree, frame: Frame, interp: 'Interpreter') -> LoxFn:
    return LoxFn(declaration=n, closure=frame)

def make_method(n: Tree, frame: Frame, static: bool = False) -> LoxFn:
    """Method closure over the class body frame, not yet bound to an instance.

    A method written without a parameter list is a getter. Only instance
    methods named `init` are initializers; a static `init` is an ordinary method.
    """
    name = str(n.children[0])
    is_getter = n.children[1] is None

    return LoxFn(
        declaration=n,
        closure=frame,
        is_initializer=(name == "init" and not is_getter and not static),
        is_getter=is_getter,
    )
